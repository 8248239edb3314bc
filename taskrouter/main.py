from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskrouter.config import configure_logging, settings
from taskrouter.errors import (
    InvalidInput,
    OAuthExchangeFailed,
    ServiceNotConfigured,
    TaskRouterError,
)
from taskrouter.models import (
    AuthUrlResponse,
    ChatRequest,
    ChatResponse,
    ConfirmationResponse,
    CreateTaskRequest,
    DepartmentResponse,
    SendEmailRequest,
    SendEmailResponse,
)
from taskrouter.services.chat_assistant import ChatAssistant
from taskrouter.services.confirmation import ConfirmationRecord
from taskrouter.services.departments import DepartmentDirectory
from taskrouter.services.google_oauth import GoogleOAuthService, OAuthCredentialSet
from taskrouter.services.intent_extractor import (
    IntentExtractor,
    KeywordIntentExtractor,
    LlmIntentExtractor,
)
from taskrouter.services.llm_client import OpenAICompatibleClient, OpenAICompatibleConfig
from taskrouter.services.mail_dispatcher import MailDispatcher
from taskrouter.services.task_router import TaskRouter

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Task Router API", version="0.1.0")


def _build_llm() -> OpenAICompatibleClient | None:
    key = (settings.task_llm_api_key or "").strip()
    if not key:
        return None
    return OpenAICompatibleClient(
        OpenAICompatibleConfig(
            provider=settings.task_llm_provider,
            model=settings.task_llm_model,
            api_key=key,
            api_base_url=settings.task_llm_api_base_url,
            timeout_seconds=settings.task_llm_timeout_seconds,
        )
    )


def _build_extractor(
    llm: OpenAICompatibleClient | None, directory: DepartmentDirectory
) -> IntentExtractor:
    if llm is None:
        logger.warning("No LLM API key configured; using keyword intent extraction.")
        return KeywordIntentExtractor(directory)
    return LlmIntentExtractor(llm, temperature=settings.task_llm_temperature)


def _build_chat_assistant(llm: OpenAICompatibleClient | None) -> ChatAssistant | None:
    if llm is None:
        return None
    return ChatAssistant(
        llm=llm.with_model(settings.chat_llm_model),
        temperature=settings.chat_llm_temperature,
        max_tokens=settings.chat_llm_max_tokens,
    )


llm = _build_llm()
directory = DepartmentDirectory(settings.departments_path)
google_oauth = GoogleOAuthService(
    client_id=settings.google_client_id,
    client_secret=settings.google_client_secret,
    redirect_uri=settings.google_redirect_uri,
    timeout_seconds=settings.google_oauth_timeout_seconds,
)
task_router = TaskRouter(
    extractor=_build_extractor(llm, directory),
    directory=directory,
    dispatcher=MailDispatcher(
        oauth=google_oauth,
        timeout_seconds=settings.gmail_send_timeout_seconds,
    ),
)
chat_assistant = _build_chat_assistant(llm)


@app.exception_handler(TaskRouterError)
async def _task_router_error_handler(_request: Request, exc: TaskRouterError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    else:
        logger.info("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/auth/google", response_model=AuthUrlResponse)
def google_auth_url() -> AuthUrlResponse:
    return AuthUrlResponse(auth_url=google_oauth.build_auth_url())


@app.get("/api/auth/google/callback")
def google_auth_callback(code: str | None = None) -> dict[str, object]:
    if not code or not code.strip():
        raise InvalidInput("Authorization code is missing")
    try:
        token = google_oauth.exchange_code(code)
    except RuntimeError as exc:
        logger.error("Error exchanging code for tokens: %s", exc)
        raise OAuthExchangeFailed(
            "There was an error connecting your Gmail account."
        ) from exc
    logger.info("Tokens received successfully")
    # The caller stores these and resends them with every send request.
    return {"authorized": True, "tokens": token.to_credentials().to_dict()}


@app.post("/api/chat", response_model=ChatResponse)
def chat_route(payload: ChatRequest) -> ChatResponse:
    if chat_assistant is None:
        raise ServiceNotConfigured(
            "Chat LLM key missing. Set TASK_LLM_API_KEY or OPENAI_API_KEY."
        )
    return ChatResponse(message=chat_assistant.reply(payload.message))


@app.post("/api/create-task", response_model=ConfirmationResponse)
def create_task_route(payload: CreateTaskRequest) -> ConfirmationResponse:
    record = task_router.create_task(payload.text)
    return ConfirmationResponse(
        recipient_email=record.recipient_email,
        recipient_name=record.recipient_name,
        subject=record.subject,
        body=record.body,
    )


@app.post("/api/send-email", response_model=SendEmailResponse)
def send_email_route(payload: SendEmailRequest) -> SendEmailResponse:
    credentials = None
    if payload.tokens is not None:
        credentials = OAuthCredentialSet.from_mapping(payload.tokens.model_dump())
    record = ConfirmationRecord(
        recipient_email=payload.recipient_email,
        recipient_name="",
        subject=payload.subject,
        body=payload.body,
    )
    result = task_router.send_task(record, credentials)
    return SendEmailResponse(message="Task sent successfully!", email_id=result.email_id)


@app.get("/api/departments", response_model=list[DepartmentResponse])
def departments_route() -> list[DepartmentResponse]:
    return [
        DepartmentResponse(name=department.name, email=department.email)
        for department in directory.load()
    ]
