"""Front matter codec for markdown articles and discussion bodies.

Both sides use the same layout::

    ---
    slug: hello-world
    published: 01/02/2024
    ---
    Body text...

Key design choices:

* YAML implicit timestamp resolution is **disabled** in both the loader
  and the dumper, so ``published: 2024-01-02`` stays a plain string and
  is written back unquoted.
* ``split()`` exposes the raw block text so callers can swap the body
  while keeping the block byte-for-byte (``replace_body()``).
* Date conversion is a pure string operation: split on the source
  separator, reorder, join with the target separator.
"""

from __future__ import annotations

from typing import Any

import yaml

from discussions_sync.errors import InvalidDateFormat, MalformedDocument

DELIMITER = "---"

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


def _without_timestamps(resolvers: dict) -> dict:
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != _TIMESTAMP_TAG]
        for first, entries in resolvers.items()
    }


class FrontmatterLoader(yaml.SafeLoader):
    """SafeLoader that keeps dates as strings."""

    yaml_implicit_resolvers = _without_timestamps(
        yaml.SafeLoader.yaml_implicit_resolvers
    )


class FrontmatterDumper(yaml.SafeDumper):
    """SafeDumper that does not quote date-like strings."""

    yaml_implicit_resolvers = _without_timestamps(
        yaml.SafeDumper.yaml_implicit_resolvers
    )


# ---------------------------------------------------------------------------
# Block splitting
# ---------------------------------------------------------------------------


def split(text: str, path: str | None = None) -> tuple[str, str]:
    """Split *text* into ``(raw_block, body)``.

    ``raw_block`` is everything from the opening delimiter line up to and
    including the closing delimiter line (with its line ending), so that
    ``raw_block + body == text`` minus any leading whitespace/BOM.

    Raises:
        MalformedDocument: If fewer than two delimiter lines exist or
            non-blank text precedes the opening delimiter.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)

    delimiters: list[int] = []
    for index, line in enumerate(lines):
        if line.rstrip("\r\n") == DELIMITER:
            delimiters.append(index)
            if len(delimiters) == 2:
                break
        elif not delimiters and line.strip():
            raise MalformedDocument(
                "text found before the opening '---' delimiter", path
            )

    if len(delimiters) < 2:
        raise MalformedDocument(
            "expected a metadata block delimited by two '---' lines", path
        )

    start, end = delimiters
    raw_block = "".join(lines[start : end + 1])
    body = "".join(lines[end + 1 :])
    return raw_block, body


def _load_block(raw_block: str, path: str | None) -> dict[str, Any]:
    inner = raw_block.splitlines(keepends=True)[1:-1]
    try:
        data = yaml.load("".join(inner), Loader=FrontmatterLoader)
    except yaml.YAMLError as exc:
        raise MalformedDocument(f"invalid metadata block: {exc}", path) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedDocument(
            f"metadata block must be a mapping, got {type(data).__name__}",
            path,
        )
    return data


# ---------------------------------------------------------------------------
# Public codec
# ---------------------------------------------------------------------------


def parse(text: str, path: str | None = None) -> tuple[dict[str, Any], str]:
    """Parse *text* into ``(metadata, body)``.

    Args:
        text: Full document text.
        path: Optional document location, included in error messages.

    Raises:
        MalformedDocument: If the block is missing, not YAML, or not a
            mapping.
    """
    raw_block, body = split(text, path)
    return _load_block(raw_block, path), body


def dump_metadata(metadata: dict[str, Any]) -> str:
    """Render *metadata* as YAML lines (no delimiters), preserving key order."""
    if not metadata:
        return ""
    return yaml.dump(
        metadata,
        Dumper=FrontmatterDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def serialize(metadata: dict[str, Any], body: str) -> str:
    """Render a document from *metadata* and *body*."""
    return f"{DELIMITER}\n{dump_metadata(metadata)}{DELIMITER}\n{body}"


def replace_body(text: str, body: str) -> str:
    """Return *text* with its body swapped, keeping the raw block intact."""
    raw_block, _ = split(text)
    if not raw_block.endswith("\n"):
        raw_block += "\n"
    return raw_block + body


def update_metadata(
    text: str,
    changes: dict[str, Any],
    removals: list[str] | tuple[str, ...] = (),
) -> str:
    """Return *text* with *changes* merged into its metadata block.

    Existing key order is kept; new keys are appended.  Keys listed in
    *removals* are dropped.  The body is untouched.
    """
    metadata, body = parse(text)
    for key in removals:
        metadata.pop(key, None)
    metadata.update(changes)
    return serialize(metadata, body)


# ---------------------------------------------------------------------------
# Date conversion
# ---------------------------------------------------------------------------


def _reorder(value: Any, separator: str) -> list[str]:
    if not isinstance(value, str):
        raise InvalidDateFormat(value, separator)
    parts = value.strip().split(separator)
    if len(parts) != 3 or not all(parts):
        raise InvalidDateFormat(value, separator)
    return parts


def to_local_date(value: str) -> str:
    """Convert ``YYYY-MM-DD`` to ``MM/DD/YYYY``."""
    year, month, day = _reorder(value, "-")
    return f"{month}/{day}/{year}"


def to_remote_date(value: str) -> str:
    """Convert ``MM/DD/YYYY`` to ``YYYY-MM-DD``."""
    month, day, year = _reorder(value, "/")
    return f"{year}-{month}-{day}"
