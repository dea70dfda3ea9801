"""
GTD Assistant — Google Calendar Authentication.

The morning digest only reads the calendar, so the read-only scope is all
we ask for. The token is created once with `python -m src.integrations.google_auth`
and refreshed silently afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


def _load_credentials(token_path: Path) -> Credentials | None:
    """Load a stored token, refreshing it if expired. None if unusable."""
    if not token_path.exists():
        return None

    creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
    if creds.expired and creds.refresh_token:
        creds.refresh(Request())
        token_path.write_text(creds.to_json())
        logger.info("Google token refreshed")
    return creds if creds.valid else None


def get_calendar_service():
    """Return a Google Calendar API v3 service built from the stored token.

    Never starts an interactive consent flow: the bot runs unattended, so a
    missing or revoked token is an error the digest reports to the user.
    """
    from src.config import settings

    token_path = Path(settings.GOOGLE_TOKEN_PATH)
    creds = _load_credentials(token_path)
    if creds is None:
        raise RuntimeError(
            f"No valid Google token at {token_path}. "
            "Run `python -m src.integrations.google_auth` once to authorize."
        )
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


def authorize() -> Path:
    """Run the OAuth2 consent flow in a browser and store the token."""
    from src.config import settings

    creds_path = Path(settings.GOOGLE_CREDENTIALS_PATH)
    if not creds_path.exists():
        raise FileNotFoundError(
            f"Google credentials file not found at {creds_path}. "
            "Download it from the Google Cloud Console."
        )

    flow = InstalledAppFlow.from_client_secrets_file(str(creds_path), SCOPES)
    creds = flow.run_local_server(port=0)

    token_path = Path(settings.GOOGLE_TOKEN_PATH)
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.info("Google token saved to %s", token_path)
    return token_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    print("Running Google Calendar authorization flow...")
    saved = authorize()
    print(f"Authorization complete, token stored at {saved}.")
