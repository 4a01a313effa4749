"""Google Docs API client implementation."""

from __future__ import annotations

import logging
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError as GoogleAuthLibraryError
from googleapiclient.errors import HttpError

from gdoc_dump.docs.exceptions import DocumentFetchError
from gdoc_dump.docs.models import Document, parse_document
from gdoc_dump.google import GoogleOAuth
from gdoc_dump.google.exceptions import AuthorizationRequired

logger = logging.getLogger(__name__)


class DocsClient:
    """Read-only Google Docs API client.

    Usage:
        auth = GoogleOAuth()
        auth.ensure_authorized()
        client = DocsClient(service=auth.build_service("docs", "v1"))

        doc = client.get_document("1AbC...")
        print(doc.title)

    The client holds no mutable state after the service is built and may
    be shared by concurrent workers.
    """

    def __init__(
        self,
        auth: GoogleOAuth | None = None,
        service: Any = None,
    ) -> None:
        """Initialize Docs client.

        Args:
            auth: Authorized OAuth manager used to build the service lazily.
            service: Prebuilt Docs v1 service. Takes precedence over ``auth``.
        """
        self._auth = auth
        self._service = service

    def _get_service(self) -> Any:
        """Get or create Docs API service."""
        if self._service is None:
            if self._auth is None:
                self._auth = GoogleOAuth()
            if not self._auth.is_authorized():
                raise AuthorizationRequired(
                    self._auth.get_authorization_url(),
                    "Docs API requires OAuth authorization. "
                    "Run 'gdoc-dump login' to authorize.",
                )
            self._service = self._auth.build_service("docs", "v1")
        return self._service

    def get_document_data(self, document_id: str) -> dict[str, Any]:
        """Fetch the raw ``documents.get`` response.

        Raises:
            DocumentFetchError: If the request fails.
        """
        service = self._get_service()
        try:
            return service.documents().get(documentId=document_id).execute()
        except HttpError as e:
            raise DocumentFetchError(document_id, str(e), e.resp.status) from e
        except (httplib2.HttpLib2Error, GoogleAuthLibraryError, OSError) as e:
            raise DocumentFetchError(document_id, str(e)) from e

    def get_document(self, document_id: str) -> Document:
        """Get a document's full structure by ID.

        Args:
            document_id: Google Docs document ID.

        Returns:
            Parsed Document.

        Raises:
            DocumentFetchError: If the request fails.
        """
        doc = parse_document(self.get_document_data(document_id), document_id)
        logger.info(f"Downloaded doc {doc.title} {document_id[:10]}...")
        return doc
