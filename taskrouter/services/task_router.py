"""Two-phase task routing.

``create_task`` turns free text into a :class:`ConfirmationRecord` and has no
side effects. ``send_task`` takes a record the user approved, plus the
caller's credentials, and sends it. Nothing is kept between the two calls.
"""

from __future__ import annotations

import logging

from .confirmation import ConfirmationRecord, assemble_confirmation
from .departments import DepartmentDirectory, resolve_department
from .google_oauth import OAuthCredentialSet
from .intent_extractor import IntentExtractor
from .mail_dispatcher import MailDispatcher, SendResult

logger = logging.getLogger(__name__)


class TaskRouter:
    def __init__(
        self,
        extractor: IntentExtractor,
        directory: DepartmentDirectory,
        dispatcher: MailDispatcher,
    ) -> None:
        self._extractor = extractor
        self._directory = directory
        self._dispatcher = dispatcher

    def create_task(self, text: str) -> ConfirmationRecord:
        intent = self._extractor.extract(text)
        department = resolve_department(intent.department_keyword, self._directory.load())
        record = assemble_confirmation(intent, department)
        logger.info(
            "Prepared task for %s (keyword %r)",
            department.name,
            intent.department_keyword,
        )
        return record

    def send_task(
        self,
        record: ConfirmationRecord,
        credentials: OAuthCredentialSet | None,
    ) -> SendResult:
        return self._dispatcher.send(
            recipient_email=record.recipient_email,
            subject=record.subject,
            body=record.body,
            credentials=credentials,
        )
