from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    provider: str
    model: str
    api_key: str
    timeout_seconds: int
    api_base_url: str | None = None


class OpenAICompatibleClient:
    def __init__(self, cfg: OpenAICompatibleConfig) -> None:
        provider = (cfg.provider or "").strip().lower()
        if provider not in {"groq", "openai", "openai_compatible"}:
            raise ValueError("provider must be one of: groq, openai, openai_compatible")

        api_key = (cfg.api_key or "").strip()
        if not api_key:
            raise RuntimeError("LLM API key is required.")

        self._provider = provider
        self._model = (cfg.model or "").strip()
        if not self._model:
            raise RuntimeError("LLM model is required.")

        self._api_key = api_key
        self._timeout_seconds = max(1, int(cfg.timeout_seconds))
        base = (cfg.api_base_url or "").strip()
        if not base:
            if provider == "groq":
                base = "https://api.groq.com/openai/v1"
            else:
                base = "https://api.openai.com/v1"
        self._base_url = base.rstrip("/")

    @property
    def model(self) -> str:
        return self._model

    def with_model(self, model: str) -> OpenAICompatibleClient:
        return OpenAICompatibleClient(
            OpenAICompatibleConfig(
                provider=self._provider,
                model=model,
                api_key=self._api_key,
                timeout_seconds=self._timeout_seconds,
                api_base_url=self._base_url,
            )
        )

    def complete(
        self,
        *,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> str:
        payload: dict[str, object] = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        logger.debug("Requesting %s completion from %s", self._model, self._provider)
        try:
            response = requests.post(
                f"{self._base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RuntimeError(f"LLM completion request failed: {exc}") from exc
        if not response.ok:
            detail = response.text.strip()
            raise RuntimeError(
                f"LLM completion failed ({response.status_code}): {detail[:400] or 'request failed'}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise RuntimeError("LLM completion returned non-JSON payload.") from exc
        if not isinstance(body, dict):
            raise RuntimeError("LLM completion returned unexpected payload.")
        choices = body.get("choices")
        if not isinstance(choices, list) or not choices:
            raise RuntimeError("LLM completion returned no choices.")
        row = choices[0]
        if not isinstance(row, dict):
            raise RuntimeError("LLM completion returned malformed choice row.")
        message = row.get("message")
        if not isinstance(message, dict):
            raise RuntimeError("LLM completion missing message payload.")
        content = message.get("content")
        if isinstance(content, str):
            return content.strip()
        raise RuntimeError("LLM completion missing content.")
