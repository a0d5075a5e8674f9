"""File handler module: encoding-aware reads and all-or-nothing writes.

Provides the file I/O used by the sync executor.  Writes go through a
temporary file in the destination directory followed by ``os.replace()``
so a file is either fully written or untouched.
"""

import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

# Temporary files created by write_file carry this prefix; the default
# exclude list keeps them out of directory scans.
TEMP_PREFIX = ".docsync-"


# =============================================================================
# File Read
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first and decodes them as UTF-8.  When that fails,
    charset-normalizer is used to detect the encoding.  Defaults to UTF-8
    with replacement characters when detection fails too.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        # Detection failed, fall back to utf-8
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # Normalize ascii to utf-8 (ascii is a strict subset of utf-8)
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


# =============================================================================
# File Write / Remove
# =============================================================================


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Atomically write content to a file, creating parent directories.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=TEMP_PREFIX, suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)


def remove_file(path: Path, root: Path) -> None:
    """Delete *path* and prune parent directories left empty, up to *root*.

    Args:
        path: File to delete.
        root: Directory that bounds pruning (never removed itself).
    """
    path.unlink()
    parent = path.parent
    while parent != root and root in parent.parents:
        try:
            parent.rmdir()  # only succeeds if truly empty
        except OSError:
            break
        parent = parent.parent
