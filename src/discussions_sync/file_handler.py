"""File handler module: encoding-aware read/write and filename sanitizing.

Provides the file I/O primitives used by the local document store.
"""

import re
from pathlib import Path

from charset_normalizer import from_bytes

# Characters that are invalid in file names on at least one common platform.
_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")

# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

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
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Filenames
# =============================================================================


def sanitize_filename(name: str) -> str:
    """Turn a discussion title into a safe file stem.

    Path separators and reserved characters are replaced with ``-``,
    whitespace runs collapse to one space, and leading/trailing dots and
    spaces are stripped.  May return an empty string.
    """
    cleaned = _UNSAFE_CHARS.sub("-", name)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip(" .")
