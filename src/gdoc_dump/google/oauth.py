"""Google OAuth management using Authlib.

This module provides OAuth 2.0 authentication for the Docs and Drive APIs:
- Cached token loading with scope validation
- Interactive authorization code exchange on first run
- Thread-safe Google API service creation

Files default to the working directory:
    credentials.json - OAuth client credentials
    token.json       - OAuth tokens
"""

import json
import logging
import os
import webbrowser
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import httplib2
import requests
from authlib.integrations.requests_client import OAuth2Session
from authlib.oauth2 import OAuth2Error
from google.oauth2.credentials import Credentials as GoogleCredentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest

from gdoc_dump.config import CREDENTIALS_FILE, TOKEN_FILE
from gdoc_dump.google.exceptions import (
    AuthorizationRequired,
    CredentialsFormatError,
    CredentialsNotFoundError,
    ScopeMismatchError,
    TokenError,
)

logger = logging.getLogger(__name__)


# Google OAuth scopes used by the exporter
SCOPES = {
    "docs": "https://www.googleapis.com/auth/documents",
    "docs_readonly": "https://www.googleapis.com/auth/documents.readonly",
    "drive": "https://www.googleapis.com/auth/drive",
    "drive_readonly": "https://www.googleapis.com/auth/drive.readonly",
    "drive_metadata_readonly": "https://www.googleapis.com/auth/drive.metadata.readonly",
}

DEFAULT_SCOPES = ["docs_readonly", "drive_readonly"]
DEFAULT_REDIRECT_URI = "http://localhost"


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Handles the authorization code flow, token caching, and Google API
    service creation.

    Example:
        >>> auth = GoogleOAuth()
        >>> auth.ensure_authorized()  # prompts for a code on first run
        >>> docs_service = auth.build_service("docs", "v1")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        scopes: list[str] | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_path: str | Path | None = None,
        credentials_path: str | Path | None = None,
        redirect_uri: str | None = None,
    ):
        """Initialize Google OAuth.

        Args:
            scopes: List of scope names (e.g., ["docs_readonly"]) or full URLs.
                   If None, defaults to read-only Docs and Drive.
            client_id: OAuth client ID (loaded from credentials file if not provided).
            client_secret: OAuth client secret (loaded from credentials file if not provided).
            token_path: Path to store/load tokens. Defaults to ./token.json.
            credentials_path: Path to OAuth credentials file. Defaults to ./credentials.json.
            redirect_uri: Redirect URI registered for the client. Defaults to the
                first redirect URI in the credentials file.

        Raises:
            ValueError: If a scope name is unknown.
            CredentialsNotFoundError: If the credentials file is missing.
            CredentialsFormatError: If the credentials file cannot be parsed.
        """
        self.token_path = Path(token_path) if token_path else TOKEN_FILE
        self.credentials_path = Path(credentials_path) if credentials_path else CREDENTIALS_FILE

        # Resolve scope names to full URLs
        self.required_scopes = self._resolve_scopes(scopes or DEFAULT_SCOPES)

        file_redirect_uri = None
        if not client_id or not client_secret:
            client_id, client_secret, file_redirect_uri = self._load_client_credentials()

        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri or file_redirect_uri or DEFAULT_REDIRECT_URI

        self.session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.required_scopes),
            redirect_uri=self.redirect_uri,
            token=self._load_token(),
            update_token=self._save_token,
            token_endpoint=self.TOKEN_URL,
            token_endpoint_auth_method="client_secret_post",
        )

        self._state: str | None = None
        self.last_refresh: datetime | None = None
        self.refresh_count = 0

    def _resolve_scopes(self, scopes: list[str]) -> list[str]:
        """Resolve scope names to full URLs."""
        resolved = []
        for scope in scopes:
            if scope.startswith("https://"):
                resolved.append(scope)
            elif scope in SCOPES:
                resolved.append(SCOPES[scope])
            else:
                raise ValueError(
                    f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
                )
        return resolved

    def _load_client_credentials(self) -> tuple[str, str, str | None]:
        """Load OAuth client credentials from file."""
        if not self.credentials_path.exists():
            raise CredentialsNotFoundError(str(self.credentials_path))

        try:
            with open(self.credentials_path) as f:
                creds = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CredentialsFormatError(str(self.credentials_path), str(e)) from e

        # Handle both web and installed app credential formats
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise CredentialsFormatError(
                str(self.credentials_path), "expected 'installed' or 'web' key"
            )

        try:
            client_id = app_creds["client_id"]
            client_secret = app_creds["client_secret"]
        except KeyError as e:
            raise CredentialsFormatError(str(self.credentials_path), f"missing {e}") from e

        redirect_uris = app_creds.get("redirect_uris") or []
        return client_id, client_secret, redirect_uris[0] if redirect_uris else None

    def _load_token(self) -> dict[str, Any] | None:
        """Load token from storage.

        A missing, unreadable, or under-scoped token is treated as absent.
        """
        if not self.token_path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.token_path) as f:
                token_data = json.load(f)

            # Convert expiry to timestamp if in ISO format
            expiry = token_data.get("expiry")
            if expiry and isinstance(expiry, str):
                dt = datetime.fromisoformat(expiry.replace("Z", "+00:00"))
                expires_at = dt.timestamp()
            else:
                expires_at = expiry

            # Convert Google token format to Authlib format
            authlib_token = {
                "access_token": token_data["token"],
                "refresh_token": token_data.get("refresh_token"),
                "token_type": token_data.get("type", "Bearer"),
                "expires_at": expires_at,
                "scope": " ".join(token_data.get("scopes", [])),
            }

            current_scopes = set(token_data.get("scopes", []))
            required_scopes = set(self.required_scopes)

            if not required_scopes.issubset(current_scopes):
                missing = required_scopes - current_scopes
                logger.warning(f"Token missing required scopes: {missing}")
                return None

            logger.info(f"Loaded token with scopes: {current_scopes}")
            return authlib_token

        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load token from {self.token_path}: {e}")
            return None

    def _save_token(
        self,
        token: dict[str, Any],
        refresh_token: str | None = None,
        access_token: str | None = None,
    ):
        """Save token to storage (Authlib callback)."""
        if access_token:
            token["access_token"] = access_token
        if refresh_token and not token.get("refresh_token"):
            token["refresh_token"] = refresh_token

        # Google omits scope on some refresh responses; keep what we asked for
        token_scopes = set(token.get("scope", "").split()) or set(self.required_scopes)
        required_scopes = set(self.required_scopes)

        if not required_scopes.issubset(token_scopes):
            missing = required_scopes - token_scopes
            raise ScopeMismatchError(missing)

        # Convert to Google token format for compatibility
        google_token = {
            "token": token["access_token"],
            "refresh_token": token.get("refresh_token"),
            "token_uri": self.TOKEN_URL,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scopes": sorted(token_scopes),
            "type": token.get("token_type", "Bearer"),
            "expiry": token.get("expires_at"),
        }

        logger.info(f"Saving credential file to: {self.token_path}")
        try:
            fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(google_token, f, indent=2)
        except OSError as e:
            raise TokenError(f"Unable to cache OAuth token at {self.token_path}: {e}") from e

        self.last_refresh = datetime.now()
        self.refresh_count += 1

        logger.info(f"Token saved with scopes: {token_scopes}")

    def is_authorized(self) -> bool:
        """Check if we have a token with the required scopes.

        Returns:
            True if authorized with all required scopes, False otherwise.
        """
        if not self.session.token:
            return False

        token_scopes = set(self.session.token.get("scope", "").split())
        required_scopes = set(self.required_scopes)

        return required_scopes.issubset(token_scopes)

    def get_authorization_url(self) -> str:
        """Start OAuth authorization flow.

        Returns:
            Authorization URL for user to visit.
        """
        authorization_url, state = self.session.create_authorization_url(
            self.AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
        )

        self._state = state
        return authorization_url

    def fetch_token(self, authorization_code: str) -> dict[str, Any]:
        """Exchange an authorization code for a token and persist it.

        Args:
            authorization_code: The bare code shown by Google, or the full
                redirect URL containing it.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If the exchange fails.
            ScopeMismatchError: If the granted scopes are insufficient.
        """
        kwargs: dict[str, Any] = {"grant_type": "authorization_code"}
        if authorization_code.startswith(("http://", "https://")):
            kwargs["authorization_response"] = authorization_code
            kwargs["state"] = self._state
        else:
            kwargs["code"] = authorization_code

        try:
            token = self.session.fetch_token(self.TOKEN_URL, **kwargs)
        except (OAuth2Error, requests.RequestException) as e:
            raise TokenError(f"Unable to retrieve token from web: {e}") from e

        self._save_token(token)
        return token

    def authorize_interactive(
        self,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        open_browser: bool = False,
    ) -> dict[str, Any]:
        """Print the authorization URL, read one code, and exchange it.

        Args:
            input_fn: Reads the authorization code from the user.
            output: Writes prompts for the user.
            open_browser: Also open the URL in the default browser.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If no code could be read or the exchange fails.
        """
        url = self.get_authorization_url()
        output(
            "Go to the following link in your browser then type the authorization code:"
        )
        output(url)

        if open_browser:
            webbrowser.open(url)

        try:
            code = input_fn("Authorization code: ").strip()
        except EOFError as e:
            raise TokenError("Unable to read authorization code") from e

        if not code:
            raise TokenError("Unable to read authorization code: empty input")

        return self.fetch_token(code)

    def ensure_authorized(self, interactive: bool = True, open_browser: bool = False):
        """Reuse the cached token, or run the interactive flow when there is none.

        Raises:
            AuthorizationRequired: If no valid token exists and interactive is False.
            TokenError: If the interactive flow fails.
        """
        if self.is_authorized():
            return

        if not interactive:
            raise AuthorizationRequired(
                self.get_authorization_url(),
                "No valid token found. Run 'gdoc-dump login' to authorize.",
            )

        self.authorize_interactive(open_browser=open_browser)

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object with current token.

        Raises:
            TokenError: If not authorized or token refresh fails.
        """
        if not self.is_authorized():
            raise TokenError("Not authorized or missing required scopes")

        # Refresh if expired
        expires_at = self.session.token.get("expires_at", 0)
        if expires_at and expires_at < datetime.now().timestamp():
            logger.info("Token expired, refreshing...")
            try:
                self.session.refresh_token(
                    self.TOKEN_URL,
                    refresh_token=self.session.token.get("refresh_token"),
                )
            except (OAuth2Error, requests.RequestException) as e:
                raise TokenError(f"Failed to refresh token: {e}") from e

        return GoogleCredentials(
            token=self.session.token["access_token"],
            refresh_token=self.session.token.get("refresh_token"),
            token_uri=self.TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.required_scopes,
        )

    def build_service(self, service_name: str = "docs", version: str = "v1"):
        """Build a Google API service with current credentials.

        httplib2 connections are not thread-safe, so every request the
        service creates gets its own authorized Http. The returned service
        can be shared by concurrent workers.

        Args:
            service_name: Name of the service (e.g., 'docs', 'drive').
            version: API version (e.g., 'v1').

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()

        def build_request(http, *args, **kwargs):
            new_http = AuthorizedHttp(creds, http=httplib2.Http())
            return HttpRequest(new_http, *args, **kwargs)

        authorized_http = AuthorizedHttp(creds, http=httplib2.Http())
        return build(
            service_name,
            version,
            http=authorized_http,
            requestBuilder=build_request,
            cache_discovery=False,
        )

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the current token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        if not self.session.token:
            return {"status": "no_token"}

        token = self.session.token
        expires_at = token.get("expires_at", 0)

        if expires_at:
            expires_in = expires_at - datetime.now().timestamp()
            expires_str = str(timedelta(seconds=max(0, int(expires_in))))
            is_expired = expires_at < datetime.now().timestamp()
        else:
            expires_str = "unknown"
            is_expired = False

        return {
            "status": "valid" if not is_expired else "expired",
            "scopes": token.get("scope", "").split(),
            "expires_in": expires_str,
            "has_refresh_token": bool(token.get("refresh_token")),
            "refresh_count": self.refresh_count,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }
