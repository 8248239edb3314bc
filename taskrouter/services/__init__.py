from .chat_assistant import ChatAssistant
from .confirmation import ConfirmationRecord, assemble_confirmation, build_subject
from .departments import Department, DepartmentDirectory, resolve_department
from .google_oauth import GoogleOAuthService, GoogleTokenExchange, OAuthCredentialSet
from .intent_extractor import (
    ExtractedIntent,
    IntentExtractor,
    KeywordIntentExtractor,
    LlmIntentExtractor,
)
from .llm_client import OpenAICompatibleClient, OpenAICompatibleConfig
from .mail_dispatcher import MailDispatcher, SendResult
from .task_router import TaskRouter

__all__ = [
    "ChatAssistant",
    "ConfirmationRecord",
    "Department",
    "DepartmentDirectory",
    "ExtractedIntent",
    "GoogleOAuthService",
    "GoogleTokenExchange",
    "IntentExtractor",
    "KeywordIntentExtractor",
    "LlmIntentExtractor",
    "MailDispatcher",
    "OAuthCredentialSet",
    "OpenAICompatibleClient",
    "OpenAICompatibleConfig",
    "SendResult",
    "TaskRouter",
    "assemble_confirmation",
    "build_subject",
    "resolve_department",
]
