"""Send a confirmed task as a Gmail message.

The dispatcher owns three steps: bring the caller's credential set up to
date, build a minimal RFC 2822 message, and post it base64url-encoded to
``users.messages.send``. Provider failures are split into
:class:`AuthExpired` (caller must re-authorize) and :class:`SendFailed`.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from email.header import Header

import requests

from taskrouter.errors import AuthExpired, AuthRequired, InvalidInput, SendFailed

from .google_oauth import GoogleOAuthService, OAuthCredentialSet
from .token_security import redact_sensitive_text

logger = logging.getLogger(__name__)

CRLF = "\r\n"


@dataclass(frozen=True)
class SendResult:
    email_id: str
    refreshed: bool


def build_rfc822_message(to_addr: str, subject: str, body: str) -> str:
    lines = [
        f"To: {to_addr}",
        f"Subject: {_encode_subject(subject)}",
        "Content-Type: text/plain; charset=utf-8",
        "",
        body,
    ]
    return CRLF.join(lines)


def encode_base64url(message: str) -> str:
    encoded = base64.b64encode(message.encode("utf-8")).decode("ascii")
    return encoded.replace("+", "-").replace("/", "_").rstrip("=")


def decode_base64url(raw: str) -> bytes:
    padded = raw + "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _has_line_break(value: str) -> bool:
    return "\r" in value or "\n" in value


def _encode_subject(subject: str) -> str:
    if subject.isascii():
        return subject
    return Header(subject, "utf-8").encode(linesep=CRLF)


class MailDispatcher:
    GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"

    def __init__(self, oauth: GoogleOAuthService, timeout_seconds: int = 10) -> None:
        self._oauth = oauth
        self._timeout_seconds = max(1, timeout_seconds)

    def send(
        self,
        recipient_email: str,
        subject: str,
        body: str,
        credentials: OAuthCredentialSet | None,
    ) -> SendResult:
        to_addr = (recipient_email or "").strip()
        if not to_addr or not (subject or "").strip() or not (body or "").strip():
            raise InvalidInput(
                "Missing required fields: recipientEmail, subject, and body are required"
            )
        if _has_line_break(to_addr) or _has_line_break(subject):
            raise InvalidInput("recipientEmail and subject must be single-line values")
        if credentials is None:
            raise AuthRequired("Not authenticated. Please authorize the application first.")

        active, refreshed = self._ensure_fresh(credentials)
        raw = encode_base64url(build_rfc822_message(to_addr, subject, body))
        email_id = self._post_raw_message(raw=raw, access_token=active.access_token or "")
        logger.info("Sent task email %s to %s", email_id, to_addr)
        return SendResult(email_id=email_id, refreshed=refreshed)

    def _ensure_fresh(
        self, credentials: OAuthCredentialSet
    ) -> tuple[OAuthCredentialSet, bool]:
        if not credentials.needs_refresh():
            return credentials, False
        if not credentials.refresh_token:
            if not credentials.access_token:
                raise AuthRequired("Not authenticated. Please authorize the application first.")
            raise AuthExpired("Authentication expired. Please re-authorize the application.")

        logger.info("Access token expired, refreshing")
        try:
            refreshed = self._oauth.refresh_credentials(credentials)
        except RuntimeError as exc:
            logger.warning("Token refresh failed: %s", exc)
            raise AuthExpired(
                "Authentication expired. Please re-authorize the application."
            ) from exc
        return refreshed, True

    def _post_raw_message(self, raw: str, access_token: str) -> str:
        try:
            response = requests.post(
                self.GMAIL_SEND_URL,
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                json={"raw": raw},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error("Gmail send request failed: %s", exc)
            raise SendFailed("Failed to send email. Please try again.", details=str(exc)) from exc

        if not response.ok:
            detail = _extract_gmail_error(response)
            logger.error("Gmail send failed (%s): %s", response.status_code, detail)
            if response.status_code == 401 or "invalid_grant" in detail:
                raise AuthExpired("Authentication expired. Please re-authorize the application.")
            raise SendFailed(
                "Failed to send email. Please try again.",
                details=f"Gmail API failed ({response.status_code}): {detail}",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SendFailed(
                "Failed to send email. Please try again.",
                details="Gmail returned a non-JSON payload.",
            ) from exc
        email_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(email_id, str) or not email_id.strip():
            raise SendFailed(
                "Failed to send email. Please try again.",
                details="Gmail response did not include a message id.",
            )
        return email_id.strip()


def _extract_gmail_error(response: requests.Response) -> str:
    text = redact_sensitive_text(response.text.strip())
    try:
        payload = response.json()
    except ValueError:
        return text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        nested = payload.get("error")
        if isinstance(nested, dict):
            message = str(nested.get("message") or "").strip()
            if message:
                return redact_sensitive_text(message)
        if isinstance(nested, str):
            desc = payload.get("error_description")
            return f"{nested}: {desc}" if isinstance(desc, str) else nested
    return text or f"HTTP {response.status_code}"
