"""Print the Google consent URL for granting Gmail send access.

Usage::

    python -m taskrouter.authorize [--state STATE]
"""

import argparse
import sys

from taskrouter.config import settings
from taskrouter.errors import ServiceNotConfigured
from taskrouter.services.google_oauth import GoogleOAuthService

_BANNER = "=" * 46


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Print the Google OAuth consent URL for Gmail send access."
    )
    parser.add_argument("--state", default=None, help="Opaque state value echoed back by Google.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    oauth = GoogleOAuthService(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        timeout_seconds=settings.google_oauth_timeout_seconds,
    )
    try:
        auth_url = oauth.build_auth_url(state=args.state)
    except ServiceNotConfigured as exc:
        print(exc.message, file=sys.stderr)
        return 1

    print(f"\n{_BANNER}")
    print("GMAIL AUTHORIZATION REQUIRED")
    print(f"{_BANNER}\n")
    print("To send emails, you need to authorize Gmail access.\n")
    print("1. Copy the URL below:")
    print(f"\n{auth_url}\n")
    print("2. Paste it in your browser")
    print("3. Sign in with your Gmail account")
    print("4. Grant permission to send emails")
    print("5. Keep the returned token set; send requests must include it\n")
    print(f"{_BANNER}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
