from __future__ import annotations

from dataclasses import dataclass

from taskrouter.services.departments import Department
from taskrouter.services.intent_extractor import ExtractedIntent

SUBJECT_PREFIX = "New Task: "
SUBJECT_MAX_CHARS = 50
ELLIPSIS = "..."


@dataclass(frozen=True)
class ConfirmationRecord:
    recipient_email: str
    recipient_name: str
    subject: str
    body: str


def build_subject(task_description: str) -> str:
    # Subjects are single header lines; line breaks would start new headers.
    text = " ".join((task_description or "").split())
    capitalized = text[:1].upper() + text[1:]
    suffix = ELLIPSIS if len(text) > SUBJECT_MAX_CHARS else ""
    return f"{SUBJECT_PREFIX}{capitalized[:SUBJECT_MAX_CHARS]}{suffix}"


def assemble_confirmation(intent: ExtractedIntent, department: Department) -> ConfirmationRecord:
    return ConfirmationRecord(
        recipient_email=department.email,
        recipient_name=department.name,
        subject=build_subject(intent.task_description),
        body=intent.task_description,
    )
