"""SQLAlchemy ORM schema for the SQLite document store."""

from __future__ import annotations

from sqlalchemy import Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for document store tables."""


class WorkspaceRow(Base):
    """The single workspace a store file holds."""

    __tablename__ = "workspace"

    address: Mapped[str] = mapped_column(Text, primary_key=True)
    format: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)


class DocumentRow(Base):
    """One immutable document version.

    Rows are only ever inserted; the latest version of a path is the row
    with the highest timestamp (ties broken by signature).
    """

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    format: Mapped[str] = mapped_column(Text, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(Integer, nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("path", "author", "timestamp", name="uq_documents_version"),
        Index("idx_documents_path_timestamp", "path", "timestamp"),
        Index("idx_documents_author_timestamp", "author", "timestamp"),
    )
