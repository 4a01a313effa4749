"""Google Drive API client implementation."""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError as GoogleAuthLibraryError
from googleapiclient.errors import HttpError

from gdoc_dump.config import GOOGLE_DOC_MIME_TYPE
from gdoc_dump.drive.exceptions import DriveListError
from gdoc_dump.google import GoogleOAuth
from gdoc_dump.google.exceptions import AuthorizationRequired

logger = logging.getLogger(__name__)

FILE_FIELDS = "files(id, name, mimeType, createdTime, modifiedTime)"


@dataclass
class DriveFile:
    """Represents a Google Drive file."""

    id: str
    name: str
    mime_type: str
    created_time: datetime | None = None
    modified_time: datetime | None = None


class DriveClient:
    """Read-only Google Drive client for listing Google Docs.

    Usage:
        client = DriveClient(service=auth.build_service("drive", "v3"))
        files = client.list_documents(10)
    """

    def __init__(
        self,
        auth: GoogleOAuth | None = None,
        service: Any = None,
    ) -> None:
        """Initialize Drive client.

        Args:
            auth: Authorized OAuth manager used to build the service lazily.
            service: Prebuilt Drive v3 service. Takes precedence over ``auth``.
        """
        self._auth = auth
        self._service = service

    def _get_service(self) -> Any:
        """Get or create Drive API service."""
        if self._service is None:
            if self._auth is None:
                self._auth = GoogleOAuth()
            if not self._auth.is_authorized():
                raise AuthorizationRequired(
                    self._auth.get_authorization_url(),
                    "Drive API requires OAuth authorization. "
                    "Run 'gdoc-dump login' to authorize.",
                )
            self._service = self._auth.build_service("drive", "v3")
        return self._service

    def list_documents(
        self,
        max_results: int = 10,
        mime_type: str = GOOGLE_DOC_MIME_TYPE,
        order_by: str = "createdTime desc",
    ) -> list[DriveFile]:
        """List the user's own files of one MIME type, newest first.

        Args:
            max_results: Maximum number of files to return.
            mime_type: MIME type to match.
            order_by: Sort order.

        Returns:
            List of DriveFile objects, possibly empty.

        Raises:
            DriveListError: If the query fails.
        """
        service = self._get_service()

        try:
            results = (
                service.files()
                .list(
                    corpora="user",
                    orderBy=order_by,
                    pageSize=max_results,
                    q=f"mimeType = '{mime_type}'",
                    fields=FILE_FIELDS,
                )
                .execute()
            )
        except HttpError as e:
            raise DriveListError(str(e), e.resp.status) from e
        except (httplib2.HttpLib2Error, GoogleAuthLibraryError, OSError) as e:
            raise DriveListError(str(e)) from e

        items = results.get("files") or []
        if not items:
            logger.info("No files returned from google drive")
            return []

        logger.info(f"Obtained {len(items)} files")
        return [self._parse_file(item) for item in items[:max_results]]

    def _parse_file(self, data: dict) -> DriveFile:
        """Parse file from API response."""
        created_time = None
        if data.get("createdTime"):
            with contextlib.suppress(ValueError):
                created_time = datetime.fromisoformat(data["createdTime"].replace("Z", "+00:00"))

        modified_time = None
        if data.get("modifiedTime"):
            with contextlib.suppress(ValueError):
                modified_time = datetime.fromisoformat(data["modifiedTime"].replace("Z", "+00:00"))

        return DriveFile(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            created_time=created_time,
            modified_time=modified_time,
        )
