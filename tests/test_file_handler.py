"""Tests for the file handler module.

Covers:
- read_file_with_encoding: UTF-8, empty and non-UTF-8 input
- write_file: atomic writes, parent creation, no temp file leftovers
- remove_file: pruning of emptied parent directories
"""

from docsync.file_handler import (
    TEMP_PREFIX,
    read_file_with_encoding,
    remove_file,
    write_file,
)

# =============================================================================
# read_file_with_encoding
# =============================================================================


class TestReadFileWithEncoding:
    """Tests for read_file_with_encoding(path)."""

    def test_utf8_file(self, tmp_path):
        """UTF-8 file returns content and 'utf-8' encoding."""
        f = tmp_path / "test.txt"
        f.write_text("Hello, world! éèê", encoding="utf-8")
        content, encoding = read_file_with_encoding(f)
        assert content == "Hello, world! éèê"
        assert encoding == "utf-8"

    def test_empty_file(self, tmp_path):
        """Empty file returns empty string with utf-8 encoding."""
        f = tmp_path / "empty.txt"
        f.write_bytes(b"")
        content, encoding = read_file_with_encoding(f)
        assert content == ""
        assert encoding == "utf-8"

    def test_non_utf8_file(self, tmp_path):
        """Non-UTF-8 file detects encoding and returns decoded content."""
        f = tmp_path / "latin1.txt"
        text = (
            "Café résumé naïve üöä "
            "and some more plain words to help detection"
        )
        f.write_bytes(text.encode("latin-1"))
        content, encoding = read_file_with_encoding(f)
        assert "Caf" in content
        assert isinstance(encoding, str)


# =============================================================================
# write_file
# =============================================================================


class TestWriteFile:
    """Tests for write_file(path, content, encoding)."""

    def test_write_basic(self, tmp_path):
        """Writes content and returns bytes written count."""
        f = tmp_path / "output.txt"
        count = write_file(f, "Hello, world!")
        assert f.read_text(encoding="utf-8") == "Hello, world!"
        assert count == len("Hello, world!".encode("utf-8"))

    def test_creates_parent_directories(self, tmp_path):
        """Creates parent directories if they don't exist."""
        f = tmp_path / "sub" / "deep" / "output.txt"
        write_file(f, "nested content")
        assert f.read_text(encoding="utf-8") == "nested content"

    def test_overwrites_existing_file(self, tmp_path):
        f = tmp_path / "output.txt"
        f.write_text("old", encoding="utf-8")
        write_file(f, "new")
        assert f.read_text(encoding="utf-8") == "new"

    def test_leaves_no_temp_files(self, tmp_path):
        """The temporary file is renamed into place, not left behind."""
        write_file(tmp_path / "a.txt", "x")
        leftovers = [
            p for p in tmp_path.iterdir() if p.name.startswith(TEMP_PREFIX)
        ]
        assert leftovers == []

    def test_write_with_encoding(self, tmp_path):
        """Writes with specified encoding."""
        f = tmp_path / "latin.txt"
        count = write_file(f, "Café", encoding="latin-1")
        assert f.read_bytes() == "Café".encode("latin-1")
        assert count == 4


# =============================================================================
# remove_file
# =============================================================================


class TestRemoveFile:
    """Tests for remove_file(path, root)."""

    def test_removes_file(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_text("x")
        remove_file(f, tmp_path)
        assert not f.exists()
        assert tmp_path.is_dir()

    def test_prunes_empty_parents_up_to_root(self, tmp_path):
        """Directories emptied by the delete go too, the root stays."""
        f = tmp_path / "one" / "two" / "a.txt"
        f.parent.mkdir(parents=True)
        f.write_text("x")
        remove_file(f, tmp_path)
        assert not (tmp_path / "one").exists()
        assert tmp_path.is_dir()

    def test_keeps_non_empty_parents(self, tmp_path):
        f = tmp_path / "one" / "two" / "a.txt"
        f.parent.mkdir(parents=True)
        f.write_text("x")
        (tmp_path / "one" / "keep.txt").write_text("y")
        remove_file(f, tmp_path)
        assert not (tmp_path / "one" / "two").exists()
        assert (tmp_path / "one" / "keep.txt").exists()
