"""Tests for file_handler module: encoding-aware read/write, filename sanitizing."""

import pytest

from discussions_sync.file_handler import (
    read_file_with_encoding,
    sanitize_filename,
    write_file,
)

# =============================================================================
# read_file_with_encoding
# =============================================================================


class TestReadFileWithEncoding:
    """Tests for read_file_with_encoding(path)."""

    def test_utf8(self, tmp_path):
        f = tmp_path / "a.md"
        f.write_bytes("naïve ✓".encode("utf-8"))
        content, encoding = read_file_with_encoding(f)
        assert content == "naïve ✓"
        assert encoding == "utf-8"

    def test_empty_file(self, tmp_path):
        f = tmp_path / "empty.md"
        f.write_bytes(b"")
        assert read_file_with_encoding(f) == ("", "utf-8")

    def test_non_utf8_detected(self, tmp_path):
        f = tmp_path / "latin.md"
        text = "Le café est très chaud. " * 20
        f.write_bytes(text.encode("latin-1"))
        content, encoding = read_file_with_encoding(f)
        assert encoding != "utf-8"
        assert "caf" in content

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_file_with_encoding(tmp_path / "missing.md")


# =============================================================================
# write_file
# =============================================================================


class TestWriteFile:
    """Tests for write_file(path, content, encoding)."""

    def test_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "c.md"
        written = write_file(target, "héllo")
        assert target.read_text(encoding="utf-8") == "héllo"
        assert written == len("héllo".encode("utf-8"))

    def test_newlines_not_translated(self, tmp_path):
        target = tmp_path / "crlf.md"
        write_file(target, "a\r\nb\n")
        assert target.read_bytes() == b"a\r\nb\n"

    def test_overwrites(self, tmp_path):
        target = tmp_path / "x.md"
        write_file(target, "old")
        write_file(target, "new")
        assert target.read_text(encoding="utf-8") == "new"


# =============================================================================
# sanitize_filename
# =============================================================================


class TestSanitizeFilename:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Hello World", "Hello World"),
            ("a/b\\c", "a-b-c"),
            ("Why? Because: reasons", "Why- Because- reasons"),
            ("  spaced   out  ", "spaced out"),
            ("tabs\tand\nnewlines", "tabs-and-newlines"),
            ("...hidden.", "hidden"),
            ("", ""),
            ("???", "---"),
        ],
    )
    def test_sanitize(self, title, expected):
        assert sanitize_filename(title) == expected

    def test_unicode_kept(self):
        assert sanitize_filename("Grüße aus Köln") == "Grüße aus Köln"
