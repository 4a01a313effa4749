"""Google Drive listing of Google Docs.

Usage:
    from gdoc_dump.drive import DriveClient

    client = DriveClient()
    for f in client.list_documents(10):
        print(f.id, f.name)
"""

from __future__ import annotations

from gdoc_dump.drive.client import DriveClient, DriveFile
from gdoc_dump.drive.exceptions import DriveError, DriveListError

__all__ = ["DriveClient", "DriveFile", "DriveError", "DriveListError"]
