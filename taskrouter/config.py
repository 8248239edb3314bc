import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=False)

DEFAULT_DEPARTMENTS_PATH = Path(__file__).resolve().parent / "departments.json"
GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"


def _as_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _as_float(raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    task_llm_provider: str
    task_llm_model: str
    task_llm_api_key: str | None
    task_llm_api_base_url: str | None
    task_llm_timeout_seconds: int
    task_llm_temperature: float
    chat_llm_model: str
    chat_llm_temperature: float
    chat_llm_max_tokens: int
    google_client_id: str | None
    google_client_secret: str | None
    google_redirect_uri: str | None
    google_oauth_timeout_seconds: int
    gmail_send_timeout_seconds: int
    departments_path: Path
    log_level: str


def load_settings() -> Settings:
    return Settings(
        task_llm_provider=os.getenv("TASK_LLM_PROVIDER", "openai").strip().lower(),
        task_llm_model=os.getenv("TASK_LLM_MODEL") or "gpt-3.5-turbo-1106",
        task_llm_api_key=(
            os.getenv("TASK_LLM_API_KEY") or os.getenv("OPENAI_API_KEY") or None
        ),
        task_llm_api_base_url=(os.getenv("TASK_LLM_API_BASE_URL") or None),
        task_llm_timeout_seconds=_as_int(os.getenv("TASK_LLM_TIMEOUT_SECONDS"), 15),
        task_llm_temperature=max(
            0.0, min(1.0, _as_float(os.getenv("TASK_LLM_TEMPERATURE"), 0.2))
        ),
        chat_llm_model=os.getenv("CHAT_LLM_MODEL") or "gpt-3.5-turbo",
        chat_llm_temperature=_as_float(os.getenv("CHAT_LLM_TEMPERATURE"), 0.7),
        chat_llm_max_tokens=max(16, _as_int(os.getenv("CHAT_LLM_MAX_TOKENS"), 200)),
        google_client_id=(os.getenv("GOOGLE_CLIENT_ID") or None),
        google_client_secret=(os.getenv("GOOGLE_CLIENT_SECRET") or None),
        google_redirect_uri=(os.getenv("GOOGLE_REDIRECT_URI") or None),
        google_oauth_timeout_seconds=_as_int(
            os.getenv("GOOGLE_OAUTH_TIMEOUT_SECONDS"), 8
        ),
        gmail_send_timeout_seconds=_as_int(os.getenv("GMAIL_SEND_TIMEOUT_SECONDS"), 10),
        departments_path=Path(
            os.getenv("DEPARTMENTS_PATH") or str(DEFAULT_DEPARTMENTS_PATH)
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # urllib3 logs every connection at DEBUG; keep it out of INFO runs.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


settings = load_settings()
