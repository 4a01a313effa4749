"""Google OAuth and API authentication utilities."""

from gdoc_dump.google.exceptions import (
    AuthorizationRequired,
    CredentialsFormatError,
    CredentialsNotFoundError,
    GoogleAuthError,
    ScopeMismatchError,
    TokenError,
)
from gdoc_dump.google.oauth import GoogleOAuth

__all__ = [
    "GoogleOAuth",
    "GoogleAuthError",
    "AuthorizationRequired",
    "CredentialsFormatError",
    "CredentialsNotFoundError",
    "TokenError",
    "ScopeMismatchError",
]
