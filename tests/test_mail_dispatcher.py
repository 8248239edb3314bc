import email
import unittest
from unittest.mock import patch

import requests

from taskrouter.errors import (
    AuthExpired,
    AuthRequired,
    InvalidInput,
    SendFailed,
    ServiceNotConfigured,
)
from taskrouter.services.confirmation import build_subject
from taskrouter.services.google_oauth import GoogleOAuthService, OAuthCredentialSet, now_ms
from taskrouter.services.mail_dispatcher import (
    MailDispatcher,
    build_rfc822_message,
    decode_base64url,
    encode_base64url,
)


class _FakeResponse:
    def __init__(self, status_code: int, payload=None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _FakeOAuth:
    def __init__(self, result: OAuthCredentialSet | Exception) -> None:
        self._result = result
        self.calls = []

    def refresh_credentials(self, credentials):
        self.calls.append(credentials)
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def _valid_credentials() -> OAuthCredentialSet:
    return OAuthCredentialSet(
        access_token="access-1",
        refresh_token="refresh-1",
        expiry_date=now_ms() + 3_600_000,
    )


def _expired_credentials() -> OAuthCredentialSet:
    return OAuthCredentialSet(
        access_token="access-old",
        refresh_token="refresh-1",
        expiry_date=now_ms() - 60_000,
    )


class MessageEncodingTests(unittest.TestCase):
    def test_builds_crlf_message_with_minimal_headers(self):
        message = build_rfc822_message("hr@co.com", "New Task: Hire", "Please hire.")
        self.assertEqual(
            message,
            "To: hr@co.com\r\n"
            "Subject: New Task: Hire\r\n"
            "Content-Type: text/plain; charset=utf-8\r\n"
            "\r\n"
            "Please hire.",
        )

    def test_non_ascii_subject_uses_encoded_word(self):
        message = build_rfc822_message("hr@co.com", "Задача", "тело")
        subject_line = message.split("\r\n")[1]
        self.assertTrue(subject_line.startswith("Subject: =?utf-8?b?"))
        self.assertTrue(message.endswith("тело"))

    def test_multiline_description_cannot_add_headers(self):
        subject = build_subject("prepare flyer\nBcc: leak@evil.example")
        message = build_rfc822_message("marketing@co.com", subject, "body")

        parsed = email.message_from_string(message)
        self.assertIsNone(parsed["Bcc"])
        self.assertEqual(parsed["Subject"], "New Task: Prepare flyer Bcc: leak@evil.example")
        self.assertEqual(parsed.get_payload(), "body")

    def test_long_non_ascii_subject_folds_with_crlf(self):
        message = build_rfc822_message("hr@co.com", "Задача для отдела " * 8, "b")
        self.assertNotIn("\n", message.replace("\r\n", ""))
        headers = message.split("\r\n\r\n", 1)[0]
        for line in headers.split("\r\n")[2:-1]:
            self.assertTrue(line.startswith(" "), line)

    def test_base64url_round_trip_is_url_safe(self):
        # Bytes 0xfb/0xff force '+' and '/' in standard base64.
        message = build_rfc822_message("it@co.com", "New Task: ??>>", "~~~ûÿ>?" * 7 + "x")
        encoded = encode_base64url(message)
        self.assertNotIn("+", encoded)
        self.assertNotIn("/", encoded)
        self.assertFalse(encoded.endswith("="))
        self.assertEqual(decode_base64url(encoded), message.encode("utf-8"))


class MailDispatcherTests(unittest.TestCase):
    def test_valid_token_sends_without_refresh(self):
        oauth = _FakeOAuth(_valid_credentials())
        dispatcher = MailDispatcher(oauth=oauth)
        with patch(
            "taskrouter.services.mail_dispatcher.requests.post",
            return_value=_FakeResponse(200, {"id": "msg-1"}),
        ) as mock_post:
            result = dispatcher.send(
                "marketing@co.com", "New Task: Flyer", "make a flyer", _valid_credentials()
            )

        self.assertEqual(result.email_id, "msg-1")
        self.assertFalse(result.refreshed)
        self.assertEqual(oauth.calls, [])
        self.assertEqual(mock_post.call_count, 1)
        kwargs = mock_post.call_args.kwargs
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer access-1")
        raw = kwargs["json"]["raw"]
        decoded = decode_base64url(raw).decode("utf-8")
        self.assertIn("To: marketing@co.com\r\n", decoded)
        self.assertTrue(decoded.endswith("\r\n\r\nmake a flyer"))

    def test_expired_token_refreshes_once_before_send(self):
        refreshed = OAuthCredentialSet(
            access_token="access-new",
            refresh_token="refresh-1",
            expiry_date=now_ms() + 3_600_000,
        )
        oauth = _FakeOAuth(refreshed)
        dispatcher = MailDispatcher(oauth=oauth)
        with patch(
            "taskrouter.services.mail_dispatcher.requests.post",
            return_value=_FakeResponse(200, {"id": "msg-2"}),
        ) as mock_post:
            result = dispatcher.send("hr@co.com", "New Task: X", "x", _expired_credentials())

        self.assertTrue(result.refreshed)
        self.assertEqual(len(oauth.calls), 1)
        self.assertEqual(
            mock_post.call_args.kwargs["headers"]["Authorization"], "Bearer access-new"
        )

    def test_refresh_failure_is_auth_expired(self):
        oauth = _FakeOAuth(RuntimeError("Google refresh failed: invalid_grant"))
        dispatcher = MailDispatcher(oauth=oauth)
        with patch("taskrouter.services.mail_dispatcher.requests.post") as mock_post:
            with self.assertRaises(AuthExpired):
                dispatcher.send("hr@co.com", "s", "b", _expired_credentials())
        mock_post.assert_not_called()

    def test_expired_without_refresh_token_is_auth_expired(self):
        creds = OAuthCredentialSet(access_token="a", expiry_date=now_ms() - 1000)
        with self.assertRaises(AuthExpired):
            MailDispatcher(oauth=_FakeOAuth(creds)).send("hr@co.com", "s", "b", creds)

    def test_missing_fields_are_invalid_input(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        for args in [("", "s", "b"), ("hr@co.com", "", "b"), ("hr@co.com", "s", " ")]:
            with self.subTest(args=args):
                with self.assertRaises(InvalidInput):
                    dispatcher.send(*args, _valid_credentials())

    def test_line_breaks_in_headers_are_rejected(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        samples = [
            ("hr@co.com", "New Task: X\r\nBcc: leak@evil.example"),
            ("hr@co.com", "New Task: X\nBcc: leak@evil.example"),
            ("hr@co.com\nBcc: leak@evil.example", "New Task: X"),
        ]
        with patch("taskrouter.services.mail_dispatcher.requests.post") as mock_post:
            for to_addr, subject in samples:
                with self.subTest(to_addr=to_addr, subject=subject):
                    with self.assertRaises(InvalidInput):
                        dispatcher.send(to_addr, subject, "body", _valid_credentials())
        mock_post.assert_not_called()

    def test_missing_credentials_is_auth_required(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        with self.assertRaises(AuthRequired) as ctx:
            dispatcher.send("hr@co.com", "s", "b", None)
        self.assertTrue(ctx.exception.auth_required)

    def test_provider_401_is_auth_expired(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        with patch(
            "taskrouter.services.mail_dispatcher.requests.post",
            return_value=_FakeResponse(
                401, {"error": {"message": "Invalid Credentials"}}, text="unauthorized"
            ),
        ):
            with self.assertRaises(AuthExpired):
                dispatcher.send("hr@co.com", "s", "b", _valid_credentials())

    def test_invalid_grant_detail_is_auth_expired_without_401(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        with patch(
            "taskrouter.services.mail_dispatcher.requests.post",
            return_value=_FakeResponse(
                400,
                {"error": "invalid_grant", "error_description": "Bad Request"},
                text="invalid_grant",
            ),
        ):
            with self.assertRaises(AuthExpired):
                dispatcher.send("hr@co.com", "s", "b", _valid_credentials())

    def test_unconfigured_oauth_surfaces_service_not_configured_on_refresh(self):
        oauth = GoogleOAuthService(client_id=None, client_secret=None, redirect_uri=None)
        dispatcher = MailDispatcher(oauth=oauth)
        with patch("taskrouter.services.mail_dispatcher.requests.post") as mock_post:
            with self.assertRaises(ServiceNotConfigured):
                dispatcher.send("hr@co.com", "s", "b", _expired_credentials())
        mock_post.assert_not_called()

    def test_provider_failure_is_send_failed_with_detail(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        with patch(
            "taskrouter.services.mail_dispatcher.requests.post",
            return_value=_FakeResponse(
                400, {"error": {"message": "Invalid To header"}}, text="bad"
            ),
        ):
            with self.assertRaises(SendFailed) as ctx:
                dispatcher.send("not-an-address", "s", "b", _valid_credentials())
        self.assertIn("Invalid To header", ctx.exception.details)
        self.assertIn("details", ctx.exception.to_payload())
        self.assertFalse(ctx.exception.auth_required)

    def test_network_error_is_send_failed(self):
        dispatcher = MailDispatcher(oauth=_FakeOAuth(_valid_credentials()))
        with patch(
            "taskrouter.services.mail_dispatcher.requests.post",
            side_effect=requests.ConnectionError("connection reset"),
        ):
            with self.assertRaises(SendFailed) as ctx:
                dispatcher.send("hr@co.com", "s", "b", _valid_credentials())
        self.assertIn("connection reset", ctx.exception.details)


if __name__ == "__main__":
    unittest.main()
