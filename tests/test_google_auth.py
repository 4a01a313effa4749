"""Tests for Google OAuth authentication."""

import json
import os
import stat

import pytest
import requests

from gdoc_dump.google import (
    AuthorizationRequired,
    CredentialsFormatError,
    CredentialsNotFoundError,
    GoogleOAuth,
    TokenError,
)
from gdoc_dump.google.oauth import DEFAULT_SCOPES, SCOPES


class TestGoogleOAuthBasics:
    """Test basic GoogleOAuth functionality."""

    def test_scope_resolution(self, tmp_path, monkeypatch):
        """Should resolve scope names before loading credentials."""
        monkeypatch.chdir(tmp_path)
        with pytest.raises(CredentialsNotFoundError):
            GoogleOAuth(scopes=["docs_readonly", "drive_readonly"])

    def test_unknown_scope_raises(self):
        """Should raise error for unknown scope names."""
        with pytest.raises(ValueError, match="Unknown scope"):
            GoogleOAuth(scopes=["unknown_scope"])

    def test_full_url_scopes_accepted(self, tmp_path):
        """Should accept full scope URLs."""
        with pytest.raises(CredentialsNotFoundError):
            GoogleOAuth(
                scopes=["https://www.googleapis.com/auth/documents.readonly"],
                credentials_path=tmp_path / "credentials.json",
            )

    def test_credentials_not_found(self, tmp_path):
        """Should raise error when credentials file is missing."""
        with pytest.raises(CredentialsNotFoundError) as exc_info:
            GoogleOAuth(credentials_path=tmp_path / "nonexistent.json")
        assert "nonexistent.json" in exc_info.value.path

    def test_default_scopes_are_read_only(self):
        """Should default to read-only Docs and Drive scopes."""
        assert DEFAULT_SCOPES == ["docs_readonly", "drive_readonly"]
        assert SCOPES["docs_readonly"].endswith("documents.readonly")
        assert SCOPES["drive_readonly"].endswith("drive.readonly")


class TestGoogleOAuthWithCredentials:
    """Tests that require mock credentials."""

    @pytest.fixture
    def mock_credentials(self, tmp_path):
        """Create a mock credentials file."""
        creds = {
            "installed": {
                "client_id": "test-client-id.apps.googleusercontent.com",
                "client_secret": "test-client-secret",
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": ["http://localhost"],
            }
        }
        creds_path = tmp_path / "credentials.json"
        with open(creds_path, "w") as f:
            json.dump(creds, f)
        return creds_path

    @pytest.fixture
    def mock_token(self, tmp_path):
        """Create a mock token file."""
        token = {
            "token": "test-access-token",
            "refresh_token": "test-refresh-token",
            "token_uri": "https://oauth2.googleapis.com/token",
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "scopes": [
                "https://www.googleapis.com/auth/documents.readonly",
                "https://www.googleapis.com/auth/drive.readonly",
            ],
            "type": "Bearer",
            "expiry": "2099-01-01T00:00:00Z",
        }
        token_path = tmp_path / "token.json"
        with open(token_path, "w") as f:
            json.dump(token, f)
        return token_path

    @pytest.fixture
    def auth(self, mock_credentials, tmp_path):
        """GoogleOAuth without a cached token."""
        return GoogleOAuth(
            credentials_path=mock_credentials,
            token_path=tmp_path / "token.json",
        )

    def test_load_installed_credentials(self, auth):
        """Should load installed app credentials."""
        assert auth.client_id == "test-client-id.apps.googleusercontent.com"
        assert auth.client_secret == "test-client-secret"
        assert auth.redirect_uri == "http://localhost"

    def test_load_web_credentials(self, tmp_path):
        """Should load web app credentials."""
        creds = {
            "web": {
                "client_id": "web-client-id.apps.googleusercontent.com",
                "client_secret": "web-client-secret",
            }
        }
        creds_path = tmp_path / "credentials.json"
        with open(creds_path, "w") as f:
            json.dump(creds, f)

        auth = GoogleOAuth(
            credentials_path=creds_path,
            token_path=tmp_path / "token.json",
        )
        assert auth.client_id == "web-client-id.apps.googleusercontent.com"
        assert auth.redirect_uri == "http://localhost"

    def test_unparsable_credentials(self, tmp_path):
        """Should raise a format error for invalid JSON."""
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text("{not json")

        with pytest.raises(CredentialsFormatError):
            GoogleOAuth(credentials_path=creds_path, token_path=tmp_path / "token.json")

    def test_credentials_without_app_section(self, tmp_path):
        """Should reject credentials without 'installed' or 'web'."""
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text(json.dumps({"other": {}}))

        with pytest.raises(CredentialsFormatError, match="installed"):
            GoogleOAuth(credentials_path=creds_path, token_path=tmp_path / "token.json")

    def test_is_authorized_without_token(self, auth):
        """Should return False when no token exists."""
        assert auth.is_authorized() is False

    def test_is_authorized_with_valid_token(self, mock_credentials, mock_token):
        """Should return True when valid token exists."""
        auth = GoogleOAuth(
            credentials_path=mock_credentials,
            token_path=mock_token,
        )
        assert auth.is_authorized() is True

    def test_unreadable_token_treated_as_absent(self, mock_credentials, tmp_path):
        """Should fall back to no token when token.json is garbage."""
        token_path = tmp_path / "token.json"
        token_path.write_text("garbage")

        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=token_path)
        assert auth.is_authorized() is False

    def test_get_authorization_url(self, auth):
        """Should generate an offline authorization URL."""
        url = auth.get_authorization_url()
        assert "accounts.google.com" in url
        assert "client_id=" in url
        assert "scope=" in url
        assert "access_type=offline" in url

    def test_get_token_info_no_token(self, auth):
        """Should return no_token status when no token exists."""
        info = auth.get_token_info()
        assert info["status"] == "no_token"

    def test_get_token_info_with_token(self, mock_credentials, mock_token):
        """Should return token info when token exists."""
        auth = GoogleOAuth(
            credentials_path=mock_credentials,
            token_path=mock_token,
        )
        info = auth.get_token_info()
        assert info["status"] == "valid"
        assert info["has_refresh_token"] is True
        assert len(info["scopes"]) == 2

    def test_scope_validation_on_token_load(self, mock_credentials, tmp_path):
        """Should reject token with missing scopes."""
        token = {
            "token": "test-access-token",
            "refresh_token": "test-refresh-token",
            "scopes": ["https://www.googleapis.com/auth/documents.readonly"],
            "expiry": "2099-01-01T00:00:00Z",
        }
        token_path = tmp_path / "token.json"
        with open(token_path, "w") as f:
            json.dump(token, f)

        auth = GoogleOAuth(
            credentials_path=mock_credentials,
            token_path=token_path,
        )
        assert auth.is_authorized() is False

    def test_get_credentials_requires_authorization(self, auth):
        """Should refuse to build credentials without a token."""
        with pytest.raises(TokenError):
            auth.get_credentials()

    def test_get_credentials_with_token(self, mock_credentials, mock_token):
        """Should build google-auth credentials from the cached token."""
        auth = GoogleOAuth(credentials_path=mock_credentials, token_path=mock_token)
        creds = auth.get_credentials()
        assert creds.token == "test-access-token"
        assert creds.refresh_token == "test-refresh-token"


class TestInteractiveAuthorization:
    """Tests for the code-exchange flow with stubbed input and token endpoint."""

    @pytest.fixture
    def auth(self, tmp_path):
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text(
            json.dumps(
                {
                    "installed": {
                        "client_id": "test-client-id",
                        "client_secret": "test-client-secret",
                        "redirect_uris": ["urn:ietf:wg:oauth:2.0:oob"],
                    }
                }
            )
        )
        return GoogleOAuth(credentials_path=creds_path, token_path=tmp_path / "token.json")

    def _stub_exchange(self, auth, monkeypatch):
        calls = {}

        def fake_fetch_token(url, **kwargs):
            calls["url"] = url
            calls.update(kwargs)
            return {
                "access_token": "new-access-token",
                "refresh_token": "new-refresh-token",
                "token_type": "Bearer",
                "expires_at": 4102444800,
                "scope": " ".join(auth.required_scopes),
            }

        monkeypatch.setattr(auth.session, "fetch_token", fake_fetch_token)
        return calls

    def test_authorize_interactive_exchanges_code(self, auth, monkeypatch):
        """Should print the URL, read the code, and persist the token."""
        calls = self._stub_exchange(auth, monkeypatch)
        printed = []

        auth.authorize_interactive(input_fn=lambda prompt: "  code-123\n", output=printed.append)

        assert calls["code"] == "code-123"
        assert calls["grant_type"] == "authorization_code"
        assert any("accounts.google.com" in line for line in printed)

        saved = json.loads(auth.token_path.read_text())
        assert saved["token"] == "new-access-token"
        assert saved["refresh_token"] == "new-refresh-token"
        assert set(saved["scopes"]) == set(auth.required_scopes)

    def test_saved_token_is_private(self, auth, monkeypatch):
        """Should write token.json readable only by the owner."""
        self._stub_exchange(auth, monkeypatch)
        auth.authorize_interactive(input_fn=lambda prompt: "code", output=lambda line: None)

        mode = stat.S_IMODE(os.stat(auth.token_path).st_mode)
        assert mode == 0o600

    def test_saved_token_is_reused(self, auth, monkeypatch):
        """A second manager should pick up the persisted token."""
        self._stub_exchange(auth, monkeypatch)
        auth.authorize_interactive(input_fn=lambda prompt: "code", output=lambda line: None)

        reloaded = GoogleOAuth(
            credentials_path=auth.credentials_path, token_path=auth.token_path
        )
        assert reloaded.is_authorized() is True
        reloaded.ensure_authorized(interactive=False)

    def test_redirect_url_is_accepted(self, auth, monkeypatch):
        """Should pass a full redirect URL through as authorization_response."""
        calls = self._stub_exchange(auth, monkeypatch)
        redirect = "http://localhost/?code=abc&state=xyz"

        auth.fetch_token(redirect)

        assert calls["authorization_response"] == redirect
        assert "code" not in calls

    def test_empty_code_is_fatal(self, auth):
        """Should raise TokenError when no code is entered."""
        with pytest.raises(TokenError, match="authorization code"):
            auth.authorize_interactive(input_fn=lambda prompt: "   ", output=lambda line: None)

    def test_eof_is_fatal(self, auth):
        """Should raise TokenError when stdin is closed."""

        def closed_stdin(prompt):
            raise EOFError

        with pytest.raises(TokenError, match="authorization code"):
            auth.authorize_interactive(input_fn=closed_stdin, output=lambda line: None)

    def test_exchange_failure_is_fatal(self, auth, monkeypatch):
        """Should wrap transport errors from the token endpoint."""

        def failing_fetch_token(url, **kwargs):
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(auth.session, "fetch_token", failing_fetch_token)

        with pytest.raises(TokenError, match="Unable to retrieve token"):
            auth.fetch_token("bad-code")
        assert not auth.token_path.exists()

    def test_ensure_authorized_non_interactive(self, auth):
        """Should raise AuthorizationRequired with a URL instead of prompting."""
        with pytest.raises(AuthorizationRequired) as exc_info:
            auth.ensure_authorized(interactive=False)
        assert "accounts.google.com" in exc_info.value.authorization_url

    def test_token_write_failure_is_token_error(self, tmp_path, monkeypatch):
        """An unwritable token path surfaces as TokenError, not OSError."""
        creds_path = tmp_path / "credentials.json"
        creds_path.write_text(
            json.dumps({"installed": {"client_id": "id", "client_secret": "secret"}})
        )
        auth = GoogleOAuth(
            credentials_path=creds_path,
            token_path=tmp_path / "missing-dir" / "token.json",
        )
        self._stub_exchange(auth, monkeypatch)

        with pytest.raises(TokenError, match="Unable to cache OAuth token"):
            auth.fetch_token("code-123")
