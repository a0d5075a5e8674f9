"""Exception types for docsync.

Convention:
- ``PreconditionError`` -- fatal, raised before any I/O when the endpoints
  of a run are unusable.  Carries the process exit status the CLI uses.
- ``TraversalError`` / ``StoreUnavailableError`` -- scoped to one path or
  one store; the sync engine records them in the run report instead of
  aborting.
- ``ConflictUnresolved`` -- a resolver declined to pick a side.
- ``ManifestCorruptError`` -- the persisted manifest could not be parsed;
  callers fall back to an empty manifest.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit statuses of the ``docsync`` command."""

    OK = 0
    PARTIAL_FAILURE = 1
    USAGE = 2
    MISSING_ENDPOINT = 3
    ENDPOINT_KINDS = 4
    STORE_EXTENSION = 5
    STORE_NESTED = 6
    STORE_UNAVAILABLE = 7
    CONFIG = 8
    WORKSPACE_MISMATCH = 9
    UNSUPPORTED = 10


class DocsyncError(Exception):
    """Base class for all docsync errors."""


class PreconditionError(DocsyncError):
    """An endpoint pair (or other input) violates a precondition of a run.

    Args:
        message: Human-readable description of the violated precondition.
        exit_code: Process exit status the CLI should terminate with.
    """

    def __init__(
        self, message: str, exit_code: int = ExitCode.USAGE
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class NotFoundError(DocsyncError, FileNotFoundError):
    """A path that must exist does not."""


class TraversalError(DocsyncError):
    """A directory or file below the sync root could not be read.

    Args:
        path: Path relative to the sync root (``""`` for the root itself).
        cause: The underlying ``OSError``.
    """

    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(f"cannot read '{path or '.'}': {cause.strerror or cause}")
        self.path = path
        self.cause = cause


class StoreUnavailableError(DocsyncError):
    """The document store cannot be opened or queried."""


class DocumentValidationError(DocsyncError, ValueError):
    """A document write breaks the store's format rules."""


class ConflictUnresolved(DocsyncError):
    """A conflict resolver declined to choose a winner for a path."""


class ManifestCorruptError(DocsyncError):
    """The persisted sync manifest is unreadable or malformed."""
