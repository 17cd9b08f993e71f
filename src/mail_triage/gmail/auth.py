"""Multi-account OAuth2 token manager for Gmail.

This is the OAuth collaborator: it owns consent and refresh. The core
only ever sees the resulting ``Account`` (token plus expiry).
"""

from __future__ import annotations

from datetime import timezone
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from mail_triage.exceptions import AuthExpiredError, TriageError
from mail_triage.models import Account

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]


class AuthManager:
    """Manages OAuth2 credentials for multiple Gmail accounts.

    Accounts are keyed by mailbox address, which doubles as account id.

    Args:
        credentials_dir: Directory for storing token files.
        client_secret_file: Path to the client secrets JSON.
        scopes: OAuth2 scopes to request.
    """

    def __init__(
        self,
        credentials_dir: Path,
        client_secret_file: Path,
        scopes: list[str] | None = None,
    ):
        self.scopes = scopes or list(GMAIL_SCOPES)
        self._credentials_dir = credentials_dir
        self._client_secret = client_secret_file

    def _token_path(self, account_id: str) -> Path:
        return self._credentials_dir / f"token_{account_id}.json"

    def authorize_account(self) -> Account:
        """Run the interactive OAuth2 flow. Opens a browser."""
        if not self._client_secret.exists():
            raise TriageError(
                f"Client secret not found at {self._client_secret}. "
                "Download it from Google Cloud Console and place it there."
            )

        flow = InstalledAppFlow.from_client_secrets_file(
            str(self._client_secret), self.scopes,
        )
        creds = flow.run_local_server(port=0)

        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        profile = service.users().getProfile(userId="me").execute()
        address = profile.get("emailAddress")
        if not address:
            raise TriageError("Failed to read the mailbox address from the Gmail profile")

        self._write_token(address, creds)
        return account_from_credentials(address, creds)

    def get_credentials(self, account_id: str) -> Credentials:
        """Load and auto-refresh credentials for an existing account."""
        token_path = self._token_path(account_id)
        if not token_path.exists():
            raise AuthExpiredError(account_id)

        creds = Credentials.from_authorized_user_file(str(token_path), self.scopes)

        if creds.expired and creds.refresh_token:
            creds.refresh(Request())
            self._write_token(account_id, creds)

        if not creds.valid:
            raise AuthExpiredError(account_id)

        return creds

    def account_for(self, account_id: str) -> Account:
        """A fresh ``Account`` for a previously authorized mailbox."""
        return account_from_credentials(account_id, self.get_credentials(account_id))

    def remove_token(self, account_id: str) -> bool:
        """Delete the token file for an account. Returns True if deleted."""
        token_path = self._token_path(account_id)
        if token_path.exists():
            token_path.unlink()
            return True
        return False

    def has_token(self, account_id: str) -> bool:
        return self._token_path(account_id).exists()

    def _write_token(self, account_id: str, creds: Credentials) -> None:
        token_path = self._token_path(account_id)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json())


def account_from_credentials(address: str, creds: Credentials) -> Account:
    # google-auth keeps expiry as a naive UTC datetime.
    expiry = creds.expiry
    if expiry is not None and expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return Account(
        id=address,
        mailbox_address=address,
        credential=creds.token or "",
        credential_expiry=expiry,
    )
