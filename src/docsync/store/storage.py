"""SQLite-backed document store.

A store file holds exactly one workspace.  Every write appends an
immutable document version; reads return the latest version per path.

Key design choices:

* **Logical timestamps** -- ``set()`` assigns
  ``max(author's latest timestamp, path's latest timestamp) + 1`` so
  timestamps increase monotonically per author and are causally ordered
  per path, independent of wall-clock time.
* **Explicit handles** -- callers open a ``DocumentStore`` and pass it
  around; there is no module-level store.  Any call on a closed handle
  raises ``StoreUnavailableError``.
* **Error boundary** -- SQLAlchemy errors never leave this module; they
  are re-raised as ``StoreUnavailableError``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Engine, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docsync.exceptions import DocumentValidationError, StoreUnavailableError
from docsync.store.models import (
    DocumentEntry,
    WriteResult,
    WriteStatus,
    sign_document,
)
from docsync.store.schema import Base, DocumentRow, WorkspaceRow
from docsync.validators import (
    validate_author,
    validate_content,
    validate_path,
    validate_workspace,
)

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "es.4"
DEFAULT_MAX_CONTENT_SIZE = 1_000_000


def _engine_for(path: Path) -> Engine:
    """Create a SQLAlchemy engine for the store file at *path*."""
    return create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )


def _to_entry(row: DocumentRow, workspace: str) -> DocumentEntry:
    return DocumentEntry(
        format=row.format,
        workspace=workspace,
        path=row.path,
        author=row.author,
        content=row.content,
        timestamp=row.timestamp,
        signature=row.signature,
    )


class DocumentStore:
    """Handle to one open store file.

    Use :meth:`create` or :meth:`open` rather than the constructor.

    Args:
        path: Path of the SQLite file.
        engine: SQLAlchemy engine bound to *path*.
        workspace: Workspace address held by the file.
        document_format: Format identifier written into new documents.
        max_content_size: Maximum content size in bytes accepted by ``set``.
    """

    def __init__(
        self,
        path: Path,
        engine: Engine,
        workspace: str,
        document_format: str = DEFAULT_FORMAT,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
    ) -> None:
        self.path = path
        self.workspace = workspace
        self.document_format = document_format
        self.max_content_size = max_content_size
        self._engine: Engine | None = engine

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        path: str | Path,
        workspace: str,
        *,
        document_format: str = DEFAULT_FORMAT,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
    ) -> DocumentStore:
        """Create a new store file holding *workspace*.

        Raises:
            FileExistsError: If *path* already exists.
            DocumentValidationError: If *workspace* is malformed.
        """
        path = Path(path)
        ok, msg = validate_workspace(workspace)
        if not ok:
            raise DocumentValidationError(msg)
        if path.exists():
            raise FileExistsError(f"file already exists: {path}")

        engine = _engine_for(path)
        try:
            Base.metadata.create_all(engine)
            with Session(engine) as session, session.begin():
                session.add(
                    WorkspaceRow(
                        address=workspace,
                        format=document_format,
                        created_at=datetime.now(timezone.utc).isoformat(),
                    )
                )
        except SQLAlchemyError as exc:
            engine.dispose()
            raise StoreUnavailableError(
                f"cannot create store {path}: {exc}"
            ) from exc

        logger.info("Created store %s holding workspace %s", path, workspace)
        return cls(path, engine, workspace, document_format, max_content_size)

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        document_format: str = DEFAULT_FORMAT,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
    ) -> DocumentStore:
        """Open an existing store file.

        Raises:
            StoreUnavailableError: If the file is missing, is not a store,
                or holds documents of a different format.
        """
        path = Path(path)
        if not path.is_file():
            raise StoreUnavailableError(f"store file not found: {path}")

        engine = _engine_for(path)
        try:
            with Session(engine) as session:
                row = session.scalars(select(WorkspaceRow)).first()
                workspace = row.address if row else None
                stored_format = row.format if row else None
        except SQLAlchemyError as exc:
            engine.dispose()
            raise StoreUnavailableError(
                f"cannot read store {path}: {exc}"
            ) from exc

        if workspace is None:
            engine.dispose()
            raise StoreUnavailableError(f"store {path} holds no workspace")
        if stored_format != document_format:
            engine.dispose()
            raise StoreUnavailableError(
                f"store {path} uses format '{stored_format}', "
                f"expected '{document_format}'"
            )

        logger.debug("Opened store %s (workspace %s)", path, workspace)
        return cls(path, engine, workspace, document_format, max_content_size)

    def close(self) -> None:
        """Release the database connection pool.  Safe to call twice."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @property
    def closed(self) -> bool:
        return self._engine is None

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, path: str) -> DocumentEntry | None:
        """Return the latest version at *path* (possibly a tombstone)."""
        with self._session() as session:
            row = session.scalars(
                select(DocumentRow)
                .where(DocumentRow.path == path)
                .order_by(
                    DocumentRow.timestamp.desc(),
                    DocumentRow.signature.desc(),
                )
                .limit(1)
            ).first()
            return _to_entry(row, self.workspace) if row else None

    def list(self) -> list[DocumentEntry]:
        """Return the latest version of every path, sorted by path.

        Tombstones are included; check ``DocumentEntry.deleted``.
        """
        latest: list[DocumentEntry] = []
        with self._session() as session:
            rows = session.scalars(
                select(DocumentRow).order_by(
                    DocumentRow.path,
                    DocumentRow.timestamp.desc(),
                    DocumentRow.signature.desc(),
                )
            )
            previous_path: str | None = None
            for row in rows:
                if row.path == previous_path:
                    continue
                previous_path = row.path
                latest.append(_to_entry(row, self.workspace))
        return latest

    def documents(self, history: bool = False) -> list[DocumentEntry]:
        """Return latest versions, or every stored version if *history*."""
        if not history:
            return self.list()
        with self._session() as session:
            rows = session.scalars(
                select(DocumentRow).order_by(
                    DocumentRow.path,
                    DocumentRow.timestamp,
                    DocumentRow.signature,
                )
            )
            return [_to_entry(row, self.workspace) for row in rows]

    def paths(self) -> list[str]:
        """Paths whose latest version is not a tombstone."""
        return [doc.path for doc in self.list() if not doc.deleted]

    def authors(self) -> list[str]:
        with self._session() as session:
            return list(
                session.scalars(
                    select(DocumentRow.author)
                    .distinct()
                    .order_by(DocumentRow.author)
                )
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, author: str, path: str, content: str) -> WriteResult:
        """Write a new version of *path*; empty *content* deletes it.

        Raises:
            DocumentValidationError: If author, path or content are invalid.
            StoreUnavailableError: If the store cannot be written.
        """
        for ok, msg in (
            validate_author(author),
            validate_path(path),
            validate_content(content, self.max_content_size),
        ):
            if not ok:
                raise DocumentValidationError(msg)

        with self._session() as session, session.begin():
            author_latest = session.scalar(
                select(func.max(DocumentRow.timestamp)).where(
                    DocumentRow.author == author
                )
            )
            path_latest = session.scalar(
                select(func.max(DocumentRow.timestamp)).where(
                    DocumentRow.path == path
                )
            )
            timestamp = max(author_latest or 0, path_latest or 0) + 1
            signature = sign_document(
                self.document_format,
                self.workspace,
                path,
                author,
                timestamp,
                content,
            )
            session.add(
                DocumentRow(
                    format=self.document_format,
                    path=path,
                    author=author,
                    content=content,
                    timestamp=timestamp,
                    signature=signature,
                )
            )

        logger.debug(
            "Stored %s at timestamp %d by %s%s",
            path,
            timestamp,
            author,
            " (tombstone)" if content == "" else "",
        )
        return WriteResult(
            status=WriteStatus.ACCEPTED,
            document=DocumentEntry(
                format=self.document_format,
                workspace=self.workspace,
                path=path,
                author=author,
                content=content,
                timestamp=timestamp,
                signature=signature,
            ),
        )

    def ingest(self, document: DocumentEntry) -> WriteResult:
        """Store a version written elsewhere, keeping its timestamp.

        Returns ``INVALID`` for documents from another workspace or format
        or with a bad signature, and ``IGNORED`` when the same author already
        has this or a newer version of the path.
        """
        if document.workspace != self.workspace:
            return WriteResult(
                status=WriteStatus.INVALID,
                reason=f"workspace '{document.workspace}' does not match "
                f"'{self.workspace}'",
            )
        if document.format != self.document_format:
            return WriteResult(
                status=WriteStatus.INVALID,
                reason=f"unsupported format '{document.format}'",
            )
        for ok, msg in (
            validate_author(document.author),
            validate_path(document.path),
        ):
            if not ok:
                return WriteResult(status=WriteStatus.INVALID, reason=msg)
        if not document.verify():
            return WriteResult(
                status=WriteStatus.INVALID, reason="signature mismatch"
            )

        with self._session() as session, session.begin():
            author_latest = session.scalar(
                select(func.max(DocumentRow.timestamp)).where(
                    DocumentRow.path == document.path,
                    DocumentRow.author == document.author,
                )
            )
            if (
                author_latest is not None
                and author_latest >= document.timestamp
            ):
                return WriteResult(
                    status=WriteStatus.IGNORED,
                    reason="version already present or superseded",
                )
            session.add(
                DocumentRow(
                    format=document.format,
                    path=document.path,
                    author=document.author,
                    content=document.content,
                    timestamp=document.timestamp,
                    signature=document.signature,
                )
            )

        return WriteResult(status=WriteStatus.ACCEPTED, document=document)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._engine is None:
            raise StoreUnavailableError(f"store is closed: {self.path}")
        try:
            with Session(self._engine) as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                f"store query failed for {self.path}: {exc}"
            ) from exc
