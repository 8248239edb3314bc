from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Mapping
from urllib.parse import parse_qs, urlencode

import requests

from taskrouter.config import GMAIL_SEND_SCOPE
from taskrouter.errors import ServiceNotConfigured

from .token_security import redact_sensitive_text

logger = logging.getLogger(__name__)

_KNOWN_CREDENTIAL_FIELDS = ("access_token", "refresh_token", "expiry_date", "token_type", "scope")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OAuthCredentialSet:
    """Caller-owned Google token bundle.

    ``expiry_date`` is epoch milliseconds, the convention Google's client
    libraries use when they hand tokens to browsers. Unknown fields ride
    along in ``extra`` and are returned untouched by :meth:`to_dict`.
    """

    access_token: str | None = None
    refresh_token: str | None = None
    expiry_date: int | None = None
    token_type: str | None = None
    scope: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> OAuthCredentialSet:
        expiry_raw = raw.get("expiry_date")
        expiry: int | None = None
        if isinstance(expiry_raw, bool):
            expiry = None
        elif isinstance(expiry_raw, (int, float)):
            expiry = int(expiry_raw)
        elif isinstance(expiry_raw, str) and expiry_raw.strip().isdigit():
            expiry = int(expiry_raw.strip())
        return cls(
            access_token=_opt_str(raw.get("access_token")),
            refresh_token=_opt_str(raw.get("refresh_token")),
            expiry_date=expiry,
            token_type=_opt_str(raw.get("token_type")),
            scope=_opt_str(raw.get("scope")),
            extra={
                key: value
                for key, value in raw.items()
                if key not in _KNOWN_CREDENTIAL_FIELDS and value is not None
            },
        )

    def is_expired(self, at_ms: int | None = None) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date < (now_ms() if at_ms is None else at_ms)

    def needs_refresh(self, at_ms: int | None = None) -> bool:
        return self.is_expired(at_ms) or not self.access_token

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "access_token": self.access_token,
                "refresh_token": self.refresh_token,
                "expiry_date": self.expiry_date,
                "token_type": self.token_type,
                "scope": self.scope,
            }
        )
        return {key: value for key, value in out.items() if value is not None}


@dataclass(frozen=True)
class GoogleTokenExchange:
    access_token: str
    refresh_token: str | None
    token_type: str | None
    scope: str | None
    expires_in: int | None
    id_token: str | None = None

    def to_credentials(self, issued_at_ms: int | None = None) -> OAuthCredentialSet:
        expiry = None
        if isinstance(self.expires_in, int) and self.expires_in > 0:
            base = now_ms() if issued_at_ms is None else issued_at_ms
            expiry = base + self.expires_in * 1000
        extra = {"id_token": self.id_token} if self.id_token else {}
        return OAuthCredentialSet(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expiry_date=expiry,
            token_type=self.token_type,
            scope=self.scope,
            extra=extra,
        )


class GoogleOAuthService:
    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    SCOPES = (GMAIL_SEND_SCOPE,)

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str | None,
        timeout_seconds: int = 8,
    ) -> None:
        self.client_id = (client_id or "").strip()
        self.client_secret = (client_secret or "").strip()
        self.redirect_uri = (redirect_uri or "").strip()
        self.timeout_seconds = max(1, timeout_seconds)

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    def build_auth_url(self, state: str | None = None) -> str:
        self._require_configured()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            # offline + forced consent so Google always issues a refresh token
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{self.AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> GoogleTokenExchange:
        self._require_configured()
        body = {
            "code": code.strip(),
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        return self._post_token_request(body, action="token exchange")

    def refresh_access_token(self, refresh_token: str) -> GoogleTokenExchange:
        self._require_configured()
        body = {
            "refresh_token": refresh_token.strip(),
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "refresh_token",
        }
        return self._post_token_request(body, action="refresh")

    def refresh_credentials(self, credentials: OAuthCredentialSet) -> OAuthCredentialSet:
        if not credentials.refresh_token:
            raise RuntimeError("Google refresh failed: no refresh_token available.")
        token = self.refresh_access_token(credentials.refresh_token)
        refreshed = token.to_credentials()
        logger.info("Refreshed Google access token")
        # Google omits refresh_token on refresh grants; keep the one we have.
        return replace(
            refreshed,
            refresh_token=refreshed.refresh_token or credentials.refresh_token,
            scope=refreshed.scope or credentials.scope,
            extra={**credentials.extra, **refreshed.extra},
        )

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise ServiceNotConfigured(
                "Google OAuth is not configured. Set GOOGLE_CLIENT_ID, "
                "GOOGLE_CLIENT_SECRET, and GOOGLE_REDIRECT_URI."
            )

    def _post_token_request(self, body: dict[str, str], action: str) -> GoogleTokenExchange:
        try:
            response = requests.post(
                self.TOKEN_URL,
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RuntimeError(f"Google {action} failed: {exc}") from exc
        if not response.ok:
            detail = _extract_google_error(response)
            raise RuntimeError(f"Google {action} failed: {detail}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise RuntimeError(f"Google {action} returned non-JSON payload.") from exc
        if not isinstance(payload, dict):
            raise RuntimeError(f"Google {action} returned unexpected payload.")
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token.strip():
            raise RuntimeError(f"Google {action} missing access_token.")

        expires_in_raw = payload.get("expires_in")
        expires_in: int | None = None
        if isinstance(expires_in_raw, int):
            expires_in = expires_in_raw
        elif isinstance(expires_in_raw, str) and expires_in_raw.isdigit():
            expires_in = int(expires_in_raw)

        return GoogleTokenExchange(
            access_token=access_token.strip(),
            refresh_token=_opt_str(payload.get("refresh_token")),
            token_type=_opt_str(payload.get("token_type")),
            scope=_opt_str(payload.get("scope")),
            expires_in=expires_in,
            id_token=_opt_str(payload.get("id_token")),
        )


def _opt_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _extract_google_error(response: requests.Response) -> str:
    text = redact_sensitive_text(response.text.strip())
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        desc = payload.get("error_description")
        if isinstance(err, str) and isinstance(desc, str):
            return f"{err}: {desc}"
        if isinstance(err, str):
            return err
    if not text:
        return f"HTTP {response.status_code}"
    # Some token endpoint errors come back form-encoded.
    if "=" in text and "&" in text:
        parsed = parse_qs(text, keep_blank_values=True)
        err = parsed.get("error", [""])[0]
        desc = parsed.get("error_description", [""])[0]
        if err and desc:
            return f"{err}: {desc}"
    return text
