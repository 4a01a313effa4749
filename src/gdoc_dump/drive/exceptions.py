"""Google Drive exceptions."""


class DriveError(Exception):
    """Base exception for Drive API errors."""

    pass


class DriveListError(DriveError):
    """Raised when the file listing query fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(f"Unable to retrieve file list from google drive: {message}")
