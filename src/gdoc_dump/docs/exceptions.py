"""Google Docs exceptions."""


class DocsError(Exception):
    """Base exception for Docs API errors."""

    pass


class DocumentFetchError(DocsError):
    """Raised when a document cannot be retrieved from the Docs API."""

    def __init__(self, document_id: str, reason: str, status_code: int | None = None):
        self.document_id = document_id
        self.status_code = status_code
        super().__init__(f"Unable to retrieve data from document {document_id}: {reason}")


class DocumentSaveError(DocsError):
    """Raised when a flattened document cannot be written to disk."""

    def __init__(self, document_id: str, title: str, reason: str):
        self.document_id = document_id
        self.title = title
        super().__init__(f"Could not extract and save doc {title} {document_id}: {reason}")
