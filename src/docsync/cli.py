"""Command-line entry point for docsync.

Commands:

- ``sync-local PATH_A PATH_B`` -- sync a directory with a store file (the
  two paths may be given in either order).
- ``set STORE PATH CONTENT`` -- write one document.
- ``sync STORE_A STORE_B`` -- exchange document versions between two
  store files.

Each precondition failure exits with its own status (see ``ExitCode``);
a sync run in which some paths failed exits with ``PARTIAL_FAILURE``.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import Config, load_config
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .exceptions import (
    DocumentValidationError,
    ExitCode,
    PreconditionError,
    StoreUnavailableError,
)
from .logger import setup_logging
from .store import DocumentStore, WriteStatus, sync_stores
from .sync import (
    ActionKind,
    SyncEngine,
    SyncManifest,
    create_resolver,
    format_conflict_diff,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def _is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def resolve_endpoints(
    first: str, second: str, store_extension: str
) -> tuple[Path, Path]:
    """Return ``(directory, store_file)`` for a ``sync-local`` pair.

    Raises:
        PreconditionError: If a path is missing, the pair is not one
            directory plus one file, the store has the wrong extension, or
            the store lives inside the directory.
    """
    paths = [Path(first), Path(second)]

    missing = [str(p) for p in paths if not p.exists()]
    if missing:
        raise PreconditionError(
            f"both paths must already exist: {', '.join(missing)}",
            exit_code=ExitCode.MISSING_ENDPOINT,
        )

    directories = [p for p in paths if p.is_dir()]
    files = [p for p in paths if p.is_file()]
    if len(directories) != 1 or len(files) != 1:
        raise PreconditionError(
            "expected one path to an existing directory and one to an "
            f"existing {store_extension} file",
            exit_code=ExitCode.ENDPOINT_KINDS,
        )
    directory, store_file = directories[0], files[0]

    if not store_file.name.endswith(store_extension):
        raise PreconditionError(
            f'expected store file to end in "{store_extension}": {store_file}',
            exit_code=ExitCode.STORE_EXTENSION,
        )

    if store_file.resolve().is_relative_to(directory.resolve()):
        raise PreconditionError(
            "cannot use a store file that is inside the directory to be "
            f"synced: {store_file}",
            exit_code=ExitCode.STORE_NESTED,
        )

    return directory, store_file


def _open_store(path: str | Path, config: Config) -> DocumentStore:
    try:
        return DocumentStore.open(
            path,
            document_format=config.document_format,
            max_content_size=config.max_content_size,
        )
    except StoreUnavailableError as exc:
        raise PreconditionError(
            str(exc), exit_code=ExitCode.STORE_UNAVAILABLE
        ) from exc


def _require_author(config: Config) -> str:
    if not config.author:
        raise PreconditionError(
            "Author not found. Set DOCSYNC_AUTHOR environment variable, "
            "pass --author, or add 'author' to the store section of "
            "config.yml.",
            exit_code=ExitCode.CONFIG,
        )
    return config.author


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_sync_local(args: argparse.Namespace, config: Config) -> int:
    directory, store_file = resolve_endpoints(
        args.path_a, args.path_b, config.store_extension
    )
    author = config.author or ""
    if not args.dry_run:
        author = _require_author(config)

    with _open_store(store_file, config) as store:
        engine = SyncEngine(
            directory=directory,
            store=store,
            author=author,
            manifest=SyncManifest(config.state_dir),
            resolver=create_resolver(config.conflict_strategy),
            exclude=config.exclude,
        )
        report = engine.run(dry_run=args.dry_run)

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
        for action in engine.actions:
            if action.kind == ActionKind.CONFLICT:
                print()
                print(format_conflict_diff(action))
    else:
        print(format_sync_report(report))

    if report.failed:
        logger.warning(
            "%d of %d paths failed", len(report.failed), len(report.results)
        )
        return ExitCode.PARTIAL_FAILURE
    return ExitCode.OK


def cmd_set(args: argparse.Namespace, config: Config) -> int:
    author = _require_author(config)
    with _open_store(args.store, config) as store:
        try:
            result = store.set(author, args.path, args.content)
        except DocumentValidationError as exc:
            print(f"ERROR: set failed\n{exc}", file=sys.stderr)
            return ExitCode.USAGE

    if result.status == WriteStatus.IGNORED:
        print("set was ignored", file=sys.stderr)
    else:
        print("document was set.")
    return ExitCode.OK


def cmd_sync(args: argparse.Namespace, config: Config) -> int:
    if _is_url(args.store_a) or _is_url(args.store_b):
        raise PreconditionError(
            "syncing over HTTP is not supported; sync two local store "
            "files instead",
            exit_code=ExitCode.UNSUPPORTED,
        )
    with (
        _open_store(args.store_a, config) as first,
        _open_store(args.store_b, config) as second,
    ):
        result = sync_stores(first, second)
    print(json.dumps(result.model_dump(), indent=2))
    return ExitCode.OK


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="Synchronise a local directory with a SQLite document store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync a folder with a store (either order)
  docsync sync-local notes/ notes.sqlite --author @suzy

  # Preview what would change
  docsync sync-local notes.sqlite notes/ --dry-run

  # Write one document (empty content deletes it)
  docsync set notes.sqlite todo.txt "buy milk" --author @suzy

  # Exchange versions between two store files
  docsync sync laptop.sqlite backup.sqlite
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"docsync version {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-file",
        help="Also append log records to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log line format on stderr (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_local = subparsers.add_parser(
        "sync-local", help="Sync a directory with a store file"
    )
    sync_local.add_argument("path_a", help="Directory or store file")
    sync_local.add_argument("path_b", help="Directory or store file")
    sync_local.add_argument(
        "--author",
        help="Author identity for store writes (overrides DOCSYNC_AUTHOR)",
    )
    sync_local.add_argument(
        "--strategy",
        help="Conflict strategy: last-writer-wins, store-wins, disk-wins "
        "or manual",
    )
    sync_local.add_argument(
        "--state-dir", help="Directory holding sync manifests"
    )
    sync_local.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without changing anything",
    )
    sync_local.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    sync_local.set_defaults(handler=cmd_sync_local)

    set_cmd = subparsers.add_parser("set", help="Write one document")
    set_cmd.add_argument("store", help="Store file")
    set_cmd.add_argument("path", help="Document path")
    set_cmd.add_argument("content", help="Document content")
    set_cmd.add_argument(
        "--author",
        help="Author identity (overrides DOCSYNC_AUTHOR)",
    )
    set_cmd.set_defaults(handler=cmd_set)

    sync_cmd = subparsers.add_parser(
        "sync", help="Exchange versions between two store files"
    )
    sync_cmd.add_argument("store_a", help="Store file")
    sync_cmd.add_argument("store_b", help="Store file")
    sync_cmd.set_defaults(handler=cmd_sync)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the chosen command and return its exit status."""
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        config = load_config(
            author=getattr(args, "author", None),
            state_dir=getattr(args, "state_dir", None),
            conflict_strategy=getattr(args, "strategy", None),
            debug=args.debug,
            log_file=args.log_file,
            log_format=args.log_format,
            yaml_config=build_config(load_hierarchical_config()),
        )
    except (ValueError, ValidationError, OSError, yaml.YAMLError) as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        return ExitCode.CONFIG

    setup_logging(
        debug=config.debug,
        log_file=config.log_file,
        debug_format=config.log_format,
        level=config.log_level,
    )

    try:
        return args.handler(args, config)
    except PreconditionError as exc:
        logger.debug("Precondition failed: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return exc.exit_code
    except StoreUnavailableError as exc:
        logger.error("Store unavailable: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return ExitCode.STORE_UNAVAILABLE


def run() -> None:
    """Entry point that handles errors gracefully."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
