"""CLI for gdoc-dump - export Google Docs as flattened text.

Usage:
    gdoc-dump                              # Same as 'gdoc-dump export'
    gdoc-dump export                       # Export the 10 newest docs to ./doc
    gdoc-dump export --max 25              # Export the 25 newest docs
    gdoc-dump export --document-id ID      # Export specific docs (repeatable)
    gdoc-dump export --keep-going          # Log fetch failures instead of aborting
    gdoc-dump login                        # Interactive OAuth login only
    gdoc-dump status                       # Show credential and token status
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

logger = logging.getLogger("gdoc_dump")


def cmd_export(settings) -> int:
    """Run the export pipeline."""
    from gdoc_dump.docs import DocumentFetchError
    from gdoc_dump.drive import DriveListError
    from gdoc_dump.export import run_export
    from gdoc_dump.google import GoogleAuthError

    try:
        result = run_export(settings)
    except GoogleAuthError as e:
        logger.error(f"Authorization failed: {e}")
        return 1
    except DriveListError as e:
        logger.error(str(e))
        return 1
    except DocumentFetchError as e:
        logger.error(f"Aborting export: {e}")
        return 1

    logger.info(
        f"Saved {len(result.saved)} documents "
        f"({len(result.save_failures)} save failures, "
        f"{len(result.fetch_failures)} fetch failures)"
    )
    return 0 if result.ok else 1


def cmd_login(settings) -> int:
    """Run the interactive OAuth flow and cache the token."""
    from gdoc_dump.google import GoogleAuthError, GoogleOAuth

    print("=" * 60)
    print("GDOC-DUMP GOOGLE LOGIN")
    print("=" * 60)

    try:
        auth = GoogleOAuth(
            token_path=settings.token_path,
            credentials_path=settings.credentials_path,
        )
        if auth.is_authorized():
            print("\nAlready authorized with a cached token")
            return cmd_status(settings)

        auth.authorize_interactive(open_browser=settings.open_browser)
    except GoogleAuthError as e:
        print(f"\nError: {e}")
        return 1

    print("\nToken saved successfully!")
    return cmd_status(settings)


def cmd_status(settings) -> int:
    """Show credential file and token status."""
    from gdoc_dump.config import get_credential_status
    from gdoc_dump.google import GoogleAuthError, GoogleOAuth

    status = get_credential_status(settings)
    creds, token = status["credentials"], status["token"]

    print(f"credentials.json : {'[x]' if creds['exists'] else '[ ]'} {creds['path']}")
    print(f"token.json       : {'[x]' if token['exists'] else '[ ]'} {token['path']}")
    print(f"output dir       : {status['output_dir']}")

    if not status["credentials"]["exists"]:
        return 1

    try:
        auth = GoogleOAuth(
            token_path=settings.token_path,
            credentials_path=settings.credentials_path,
        )
    except GoogleAuthError as e:
        print(f"Error: {e}")
        return 1

    info = auth.get_token_info()
    if info["status"] == "no_token":
        print("No token found - run 'gdoc-dump login'")
        return 1

    print(f"Status     : {info['status']}")
    print(f"Scopes     : {', '.join(info.get('scopes', []))}")
    print(f"Expires in : {info.get('expires_in', 'unknown')}")
    return 0


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--credentials", type=Path, help="OAuth client credentials file")
    parser.add_argument("--token", type=Path, help="Cached OAuth token file")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open the authorization URL in a browser",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_settings(args: argparse.Namespace):
    """Overlay command-line arguments on environment settings."""
    from gdoc_dump.config import Settings

    settings = Settings.from_env()
    overrides = {}
    if getattr(args, "credentials", None):
        overrides["credentials_path"] = args.credentials
    if getattr(args, "token", None):
        overrides["token_path"] = args.token
    if getattr(args, "output_dir", None):
        overrides["output_dir"] = args.output_dir
    if getattr(args, "max", None):
        overrides["max_documents"] = args.max
    if getattr(args, "document_id", None):
        overrides["document_ids"] = args.document_id
    if getattr(args, "keep_going", False):
        overrides["fail_fast"] = False
    overrides["open_browser"] = not getattr(args, "no_browser", True)
    return dataclasses.replace(settings, **overrides)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gdoc-dump",
        description="Export Google Docs as flattened markdown-like text",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # export command
    export_parser = subparsers.add_parser("export", help="Export documents to disk")
    export_parser.add_argument(
        "--max",
        type=_positive_int,
        help="Number of newest documents to export (default: 10)",
    )
    export_parser.add_argument(
        "--document-id",
        action="append",
        help="Export this document instead of listing (repeatable)",
    )
    export_parser.add_argument("--output-dir", type=Path, help="Output directory (default: doc)")
    export_parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Log fetch failures and continue with other documents",
    )
    _add_common_arguments(export_parser)

    # login command
    login_parser = subparsers.add_parser("login", help="Interactive OAuth login")
    _add_common_arguments(login_parser)

    # status command
    status_parser = subparsers.add_parser("status", help="Show credential status")
    _add_common_arguments(status_parser)

    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    command = args.command or "export"

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = build_settings(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if command == "export":
        return cmd_export(settings)

    if command == "login":
        return cmd_login(settings)

    if command == "status":
        return cmd_status(settings)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
