"""
gdocs-source - Google OAuth

Installed-app OAuth 2.0 with a persisted token file.

Flow:
    1. Load the token from token_path, if present
    2. Refresh it when expired and a refresh token exists
    3. Otherwise run the browser consent flow built from client id/secret
    4. Persist the (new or refreshed) token back to token_path

Usage:
    auth = GoogleAuth(client_id, client_secret, token_path="token.json")
    credentials = await auth.authenticate()

Version: 0.1.0
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from ..config import DEFAULT_REDIRECT_URIS, DEFAULT_SCOPES
from ..exceptions import AuthenticationError

__all__ = ['GoogleAuth']

logger = logging.getLogger(__name__)

_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
_TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleAuth:
    """
    Obtains OAuth credentials for the Drive and Docs APIs.

    Attributes:
        client_id: OAuth client id
        client_secret: OAuth client secret
        token_path: Token cache file
        scopes: Requested scopes
        credentials: Credentials after authenticate(), else None
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_path: str = 'google-docs-token.json',
        scopes: Optional[List[str]] = None,
        redirect_uris: Optional[List[str]] = None,
        access_type: str = 'offline',
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_path = Path(token_path).expanduser()
        self.scopes = list(scopes or DEFAULT_SCOPES)
        self.redirect_uris = list(redirect_uris or DEFAULT_REDIRECT_URIS)
        self.access_type = access_type
        self.credentials: Optional[Credentials] = None

    async def authenticate(self) -> Credentials:
        """
        Return valid credentials, running the consent flow if needed.

        Raises:
            AuthenticationError: If no valid credentials can be obtained
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._authenticate_sync)

    def _authenticate_sync(self) -> Credentials:
        """Synchronous authentication (run in executor)."""
        creds = self._load_token()

        if creds and creds.valid:
            self.credentials = creds
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                logger.info("Refreshed expired credentials")
            except GoogleAuthError as e:
                logger.warning(f"Failed to refresh token: {e}")
                creds = None
        else:
            creds = None

        if creds is None:
            creds = self._run_flow()

        self._save_token(creds)
        self.credentials = creds
        return creds

    def _load_token(self) -> Optional[Credentials]:
        if not self.token_path.exists():
            return None
        try:
            creds = Credentials.from_authorized_user_file(str(self.token_path), self.scopes)
            logger.info(f"Loaded credentials from {self.token_path}")
            return creds
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to load token: {e}")
            return None

    def _run_flow(self) -> Credentials:
        flow = InstalledAppFlow.from_client_config(self.client_config(), self.scopes)
        try:
            creds = flow.run_local_server(port=0, access_type=self.access_type)
        except Exception as e:
            raise AuthenticationError(f"OAuth consent flow failed: {e}") from e
        logger.info("Completed OAuth flow")
        return creds

    def _save_token(self, creds: Credentials) -> None:
        try:
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            self.token_path.write_text(creds.to_json(), encoding='utf-8')
        except OSError as e:
            raise AuthenticationError(
                f"Cannot write token file {self.token_path}: {e}"
            ) from e
        logger.info(f"Saved credentials to {self.token_path}")

    def client_config(self) -> Dict[str, Any]:
        """Client secrets in the shape InstalledAppFlow expects."""
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": _AUTH_URI,
                "token_uri": _TOKEN_URI,
                "redirect_uris": self.redirect_uris,
            }
        }
