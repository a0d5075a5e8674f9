"""Directory scanner producing the disk side of a sync.

``PathIndexer`` walks a directory tree with an explicit work stack and
yields one ``FileEntry`` per regular file.  Paths are relative to the root
and always ``/``-separated.

Traversal rules:

1. **Symlinks** are never followed (no cycles) and are not indexed.
2. **Special files** (sockets, FIFOs, devices) are skipped.
3. **Excludes** -- a path is dropped when its relative path or its
   basename matches any exclude glob.  Temporary files left by an
   interrupted write (`DEFAULT_EXCLUDE`) are always excluded.
4. **Errors** -- a subdirectory or file that cannot be read is recorded as
   a ``TraversalError`` in ``errors`` and the walk continues.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from docsync.exceptions import NotFoundError, TraversalError
from docsync.file_handler import TEMP_PREFIX, read_file_with_encoding
from docsync.sync.manifest import content_hash
from docsync.sync.models import FileEntry

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE: tuple[str, ...] = (f"{TEMP_PREFIX}*",)


def _sort_key(entry: os.DirEntry) -> bytes:
    return os.fsencode(entry.name)


class PathIndexer:
    """Restartable iterator over the files below *root*.

    Each iteration starts a fresh walk and resets ``errors``.  Files inside a
    directory are yielded before its subdirectories are entered.

    Args:
        root: Directory to scan.
        exclude: Glob patterns for paths that must not be indexed.
    """

    def __init__(
        self, root: Path, exclude: Sequence[str] = DEFAULT_EXCLUDE
    ) -> None:
        self.root = Path(root)
        self.exclude = tuple(dict.fromkeys((*exclude, *DEFAULT_EXCLUDE)))
        self.errors: list[TraversalError] = []

    def __iter__(self) -> Iterator[FileEntry]:
        if not self.root.exists():
            raise NotFoundError(f"directory not found: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"not a directory: {self.root}")

        self.errors = []
        stack: list[tuple[Path, str]] = [(self.root, "")]
        while stack:
            directory, prefix = stack.pop()
            try:
                with os.scandir(directory) as it:
                    children = sorted(it, key=_sort_key)
            except OSError as exc:
                self._record(prefix, exc)
                continue

            subdirs: list[tuple[Path, str]] = []
            for child in children:
                rel = f"{prefix}/{child.name}" if prefix else child.name
                if self.is_excluded(rel):
                    continue
                try:
                    if child.is_symlink():
                        logger.debug("Skipping symlink %s", rel)
                        continue
                    if child.is_dir(follow_symlinks=False):
                        subdirs.append((Path(child.path), rel))
                        continue
                    if not child.is_file(follow_symlinks=False):
                        logger.debug("Skipping special file %s", rel)
                        continue
                    entry = self._read(Path(child.path), rel)
                except OSError as exc:
                    self._record(rel, exc)
                    continue
                yield entry

            # Reversed so the first subdirectory is popped first.
            stack.extend(reversed(subdirs))

    def scan(self) -> list[FileEntry]:
        """Walk the tree once and return every entry."""
        return list(self)

    def is_excluded(self, rel: str) -> bool:
        name = rel.rsplit("/", 1)[-1]
        return any(
            fnmatch.fnmatchcase(rel, pattern)
            or fnmatch.fnmatchcase(name, pattern)
            for pattern in self.exclude
        )

    def hides(self, rel: str) -> bool:
        """True if *rel* or any directory above it is excluded.

        The walk never enters an excluded directory, so a path below one
        is out of sync scope even though its own name matches nothing.
        """
        parts = rel.split("/")
        return any(
            self.is_excluded("/".join(parts[:depth]))
            for depth in range(1, len(parts) + 1)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read(path: Path, rel: str) -> FileEntry:
        stat = path.stat()
        content, encoding = read_file_with_encoding(path)
        if encoding != "utf-8":
            logger.debug("Decoded %s as %s", rel, encoding)
        return FileEntry(
            path=rel,
            content=content,
            content_hash=content_hash(content),
            size=stat.st_size,
            mtime=stat.st_mtime,
        )

    def _record(self, rel: str, exc: OSError) -> None:
        error = TraversalError(rel, exc)
        logger.warning("%s -- skipping", error)
        self.errors.append(error)
