"""OAuth 2.0 credentials for the support mailbox."""
import logging
from pathlib import Path

import httplib2
from google.auth.transport.requests import Request
from google_auth_httplib2 import AuthorizedHttp
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger("support_triage.auth")
# modify covers reading, labelling and sending replies
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
TOKEN_FILE = "token.json"
CLIENT_SECRET_FILE = "client_secret.json"


def load_credentials(credentials_dir: Path) -> Credentials:
    """Return valid credentials, refreshing the cached token or running the consent flow."""
    credentials_dir.mkdir(parents=True, exist_ok=True)
    token_path = credentials_dir / TOKEN_FILE

    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
    if creds is not None and creds.valid:
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        logger.info("Support mailbox token expired, refreshing")
        creds.refresh(Request())
    else:
        creds = _consent_flow(credentials_dir / CLIENT_SECRET_FILE)
    token_path.write_text(creds.to_json())
    logger.info(f"Stored mailbox token at {token_path}")
    return creds


def _consent_flow(client_secret_path: Path) -> Credentials:
    if not client_secret_path.exists():
        raise FileNotFoundError(
            f"Missing {client_secret_path}. Download the OAuth client secret "
            f"for the support mailbox from Google Cloud Console and save it there."
        )
    logger.info("No usable token; opening the browser consent flow")
    flow = InstalledAppFlow.from_client_secrets_file(str(client_secret_path), SCOPES)
    return flow.run_local_server(port=0)


def get_gmail_service(credentials_dir: Path, timeout: float | None = None):
    """Gmail API client; ``timeout`` bounds every HTTP call it makes, sends included."""
    http = AuthorizedHttp(load_credentials(credentials_dir), http=httplib2.Http(timeout=timeout))
    return build("gmail", "v1", http=http, cache_discovery=False)
