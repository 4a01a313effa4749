"""Credential and output configuration.

Files are resolved relative to the working directory by default:
    .env              - optional overrides (GDOC_DUMP_* variables)
    credentials.json  - Google OAuth client credentials
    token.json        - cached Google OAuth token
    doc/              - flattened documents, one file per document id

This module auto-loads the .env file on import. Variables already set in
the environment take precedence over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Default file locations
ENV_FILE = Path(".env")
CREDENTIALS_FILE = Path("credentials.json")
TOKEN_FILE = Path("token.json")
OUTPUT_DIR = Path("doc")

DEFAULT_MAX_DOCUMENTS = 10
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"

# Environment overrides
ENV_CREDENTIALS = "GDOC_DUMP_CREDENTIALS"
ENV_TOKEN = "GDOC_DUMP_TOKEN"
ENV_OUTPUT_DIR = "GDOC_DUMP_OUTPUT_DIR"
ENV_MAX_DOCUMENTS = "GDOC_DUMP_MAX_DOCUMENTS"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


@dataclass
class Settings:
    """Resolved settings for one export run."""

    credentials_path: Path = CREDENTIALS_FILE
    token_path: Path = TOKEN_FILE
    output_dir: Path = OUTPUT_DIR
    max_documents: int = DEFAULT_MAX_DOCUMENTS
    document_ids: list[str] | None = None
    fail_fast: bool = True
    interactive: bool = True
    open_browser: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from GDOC_DUMP_* environment variables.

        Raises:
            ValueError: If GDOC_DUMP_MAX_DOCUMENTS is not a positive integer.
        """
        max_documents = DEFAULT_MAX_DOCUMENTS
        raw_max = os.environ.get(ENV_MAX_DOCUMENTS)
        if raw_max:
            max_documents = int(raw_max)
            if max_documents < 1:
                raise ValueError(f"{ENV_MAX_DOCUMENTS} must be positive, got {raw_max}")

        return cls(
            credentials_path=Path(os.environ.get(ENV_CREDENTIALS) or CREDENTIALS_FILE),
            token_path=Path(os.environ.get(ENV_TOKEN) or TOKEN_FILE),
            output_dir=Path(os.environ.get(ENV_OUTPUT_DIR) or OUTPUT_DIR),
            max_documents=max_documents,
        )


def get_credential_status(settings: Settings | None = None) -> dict:
    """Get status of the configured credential files.

    Returns:
        Dictionary with credential status.
    """
    settings = settings or Settings.from_env()
    return {
        "env_file": ENV_FILE.exists(),
        "credentials": {
            "path": str(settings.credentials_path),
            "exists": settings.credentials_path.exists(),
        },
        "token": {
            "path": str(settings.token_path),
            "exists": settings.token_path.exists(),
        },
        "output_dir": str(settings.output_dir),
    }


# Auto-load .env from the working directory on import
_loaded = _load_env_file(ENV_FILE)
