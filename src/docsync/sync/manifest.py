"""Sync manifest persistence layer.

Manages the JSON manifest files that record, per path, the state a
directory and a store last agreed on.  Each (directory, store) pair gets
its own file (``manifest_{pair_id}.json``) in the state directory, where
``pair_id`` is derived from the absolute paths of both endpoints.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Corruption fallback** -- ``load()`` degrades to an empty manifest when
  the file cannot be parsed, which turns the next run into a full re-plan
  instead of an abort.
* **Content hashing** -- ``content_hash()`` strips a BOM and normalises
  line endings before SHA-256 so hashes are stable across platforms.
* **Dict-based state** -- state is a plain ``dict`` so the executor can
  mutate it during a run and persist once at the end.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from docsync.exceptions import ManifestCorruptError
from docsync.sync.models import ManifestEntry

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


def content_hash(content: str) -> str:
    """Compute a normalised SHA-256 hex digest of *content*.

    Normalisation steps (applied in order):

    1. Strip BOM (``\\ufeff``).
    2. Replace ``\\r\\n`` with ``\\n``.

    The result is encoded as UTF-8 before hashing.
    """
    text = content.lstrip("\ufeff").replace("\r\n", "\n")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class SyncManifest:
    """Load, save, and query manifests for directory/store pairs.

    Args:
        state_dir: Directory where manifest files are stored.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    # ------------------------------------------------------------------
    # Pair identity
    # ------------------------------------------------------------------

    @staticmethod
    def pair_id(directory: Path, store_file: Path) -> str:
        """Derive a stable identifier from both endpoints' absolute paths."""
        key = f"{directory.resolve()}\0{store_file.resolve()}"
        return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def empty(self, directory: Path, store_file: Path) -> dict:
        """Return a well-formed manifest with no entries."""
        return {
            "version": MANIFEST_VERSION,
            "last_sync": None,
            "directory": str(directory.resolve()),
            "store": str(store_file.resolve()),
            "entries": {},
        }

    def load(self, directory: Path, store_file: Path) -> dict:
        """Load the manifest for a pair.

        Returns an empty manifest if the file does not exist, or if it is
        corrupt (a warning is logged).
        """
        path = self._manifest_path(directory, store_file)
        if not path.exists():
            return self.empty(directory, store_file)
        try:
            return self._parse(path)
        except ManifestCorruptError as exc:
            logger.warning(
                "%s -- falling back to an empty manifest (full re-plan)",
                exc,
            )
            return self.empty(directory, store_file)

    def save(self, directory: Path, store_file: Path, state: dict) -> None:
        """Persist the manifest atomically.

        Writes to a temporary file in the state directory then atomically
        replaces the target.  Creates ``state_dir`` if it does not exist.
        The ``last_sync`` field is set to the current UTC ISO 8601 timestamp
        before writing.
        """
        self._state_dir.mkdir(parents=True, exist_ok=True)
        state["last_sync"] = datetime.now(timezone.utc).isoformat()

        target = self._manifest_path(directory, store_file)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, target)
        except BaseException:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    @staticmethod
    def entries(state: dict) -> dict[str, ManifestEntry]:
        """Return the typed entries of a loaded manifest."""
        return {
            path: ManifestEntry(**raw)
            for path, raw in state.get("entries", {}).items()
        }

    @staticmethod
    def update_entry(state: dict, path: str, entry: ManifestEntry) -> None:
        """Upsert *entry* under *path*.  Mutates *state* in place."""
        state.setdefault("entries", {})[path] = entry.model_dump()

    @staticmethod
    def remove_entry(state: dict, path: str) -> None:
        """Remove *path* from the entries.  No-op if not present."""
        state.get("entries", {}).pop(path, None)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _manifest_path(self, directory: Path, store_file: Path) -> Path:
        return (
            self._state_dir
            / f"manifest_{self.pair_id(directory, store_file)}.json"
        )

    def _parse(self, path: Path) -> dict:
        """Read and validate a manifest file.

        Raises:
            ManifestCorruptError: If the file is not valid JSON or its
                entries do not have the expected shape.
        """
        try:
            with open(path, encoding="utf-8") as fh:
                state = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ManifestCorruptError(
                f"cannot read manifest {path}: {exc}"
            ) from exc

        if not isinstance(state, dict) or not isinstance(
            state.get("entries"), dict
        ):
            raise ManifestCorruptError(
                f"manifest {path} has no entries mapping"
            )
        try:
            self.entries(state)
        except (TypeError, ValidationError) as exc:
            raise ManifestCorruptError(
                f"manifest {path} has malformed entries: {exc}"
            ) from exc
        return state
