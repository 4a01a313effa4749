"""Download, flatten, and save a batch of Google Docs concurrently.

Every document gets its own task and its own worker thread. Tasks share
only the read-only Docs client and write to distinct files.

A fetch failure is fatal by default: the first failing worker raises an
abort flag, the task group is torn down, and the error propagates.
Documents already saved keep their files. Siblings still fetching when the
flag goes up skip their save, so they leave no file. A save failure is
logged and never affects siblings.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from gdoc_dump.config import OUTPUT_DIR, Settings
from gdoc_dump.docs import DocsClient, DocumentFetchError, DocumentSaveError, save_document
from gdoc_dump.drive import DriveClient
from gdoc_dump.google import GoogleOAuth

logger = logging.getLogger(__name__)


class ExportAborted(Exception):
    """Raised in a worker whose save was skipped because the batch aborted."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Export aborted before saving doc {document_id}")


@dataclass
class ExportResult:
    """Outcome of one export run."""

    saved: list[Path] = field(default_factory=list)
    fetch_failures: dict[str, str] = field(default_factory=dict)
    save_failures: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.fetch_failures


def download_extract_save(
    docs_client: DocsClient,
    document_id: str,
    output_dir: str | Path,
    abort: threading.Event | None = None,
) -> Path:
    """Fetch one document and write its flattened text.

    When ``abort`` is given, a fetch failure sets it, and a fetch that
    completes after it was set is not saved.

    Raises:
        DocumentFetchError: If the fetch fails.
        ExportAborted: If another worker's fetch failed first.
    """
    try:
        document = docs_client.get_document(document_id)
    except DocumentFetchError:
        if abort is not None:
            abort.set()
        raise

    if abort is not None and abort.is_set():
        raise ExportAborted(document_id)
    return save_document(document, output_dir)


async def export_documents(
    docs_client: DocsClient,
    document_ids: Sequence[str],
    output_dir: str | Path = OUTPUT_DIR,
    fail_fast: bool = True,
) -> ExportResult:
    """Export every document concurrently and wait for all of them.

    Args:
        docs_client: Shared Docs client.
        document_ids: Documents to export.
        output_dir: Directory receiving one file per document id.
        fail_fast: Abort the whole batch on the first fetch failure.

    Returns:
        ExportResult with saved paths and per-document failures.

    Raises:
        DocumentFetchError: If a fetch fails and ``fail_fast`` is set.
    """
    result = ExportResult()
    if not document_ids:
        return result

    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(
        max_workers=len(document_ids), thread_name_prefix="gdoc-dump"
    )

    abort = threading.Event() if fail_fast else None

    async def process(document_id: str) -> None:
        try:
            path = await loop.run_in_executor(
                executor, download_extract_save, docs_client, document_id, output_dir, abort
            )
        except ExportAborted as e:
            logger.warning(str(e))
        except DocumentSaveError as e:
            logger.error(str(e))
            result.save_failures[document_id] = str(e)
        except DocumentFetchError as e:
            if fail_fast:
                raise
            logger.error(str(e))
            result.fetch_failures[document_id] = str(e)
        else:
            result.saved.append(path)

    try:
        async with asyncio.TaskGroup() as tg:
            for document_id in document_ids:
                tg.create_task(process(document_id))
    except ExceptionGroup as eg:
        # Surface the first task failure directly to the caller
        raise eg.exceptions[0] from eg
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return result


def build_clients(
    settings: Settings, auth: GoogleOAuth | None = None
) -> tuple[DriveClient, DocsClient]:
    """Authorize once and build the shared Drive and Docs clients.

    Raises:
        GoogleAuthError: If credentials are missing or authorization fails.
    """
    if auth is None:
        auth = GoogleOAuth(
            token_path=settings.token_path,
            credentials_path=settings.credentials_path,
        )
    auth.ensure_authorized(
        interactive=settings.interactive, open_browser=settings.open_browser
    )

    drive_client = DriveClient(service=auth.build_service("drive", "v3"))
    docs_client = DocsClient(service=auth.build_service("docs", "v1"))
    return drive_client, docs_client


def resolve_document_ids(drive_client: DriveClient, settings: Settings) -> list[str]:
    """Use explicit document ids if given, otherwise list the newest docs."""
    if settings.document_ids:
        return list(settings.document_ids)
    return [f.id for f in drive_client.list_documents(settings.max_documents)]


def run_export(
    settings: Settings,
    auth: GoogleOAuth | None = None,
    drive_client: DriveClient | None = None,
    docs_client: DocsClient | None = None,
) -> ExportResult:
    """Run the full pipeline: authorize, list, then export concurrently.

    Raises:
        GoogleAuthError: On credential or authorization failure.
        DriveListError: If the listing query fails.
        DocumentFetchError: If a fetch fails and ``settings.fail_fast`` is set.
    """
    if drive_client is None or docs_client is None:
        drive_client, docs_client = build_clients(settings, auth)

    document_ids = resolve_document_ids(drive_client, settings)
    if not document_ids:
        logger.info("No documents to export")
        return ExportResult()

    logger.info(f"Exporting {len(document_ids)} documents to {settings.output_dir}")
    return asyncio.run(
        export_documents(
            docs_client,
            document_ids,
            output_dir=settings.output_dir,
            fail_fast=settings.fail_fast,
        )
    )
