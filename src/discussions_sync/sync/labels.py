"""Label mapping and reconciliation.

Translates between a document's classification (tags, series, draft) and
the flat set of remote label names, and computes label diffs for matched
pairs.

Only the *managed namespace* is ever touched: labels starting with the tag
or series prefix, or equal to the draft literal.  Every other label on a
discussion belongs to someone else and is passed through untouched.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any, NamedTuple

from .models import Classification, LabelPrefixes

logger = logging.getLogger(__name__)


class LabelDiff(NamedTuple):
    """Labels to add and remove, both sorted."""

    to_add: tuple[str, ...]
    to_remove: tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


# ---------------------------------------------------------------------------
# Classification <-> labels
# ---------------------------------------------------------------------------


def is_managed(name: str, prefixes: LabelPrefixes) -> bool:
    """Return ``True`` if *name* belongs to the managed label namespace."""
    return (
        name == prefixes.draft
        or name.startswith(prefixes.tag)
        or name.startswith(prefixes.series)
    )


def to_labels(
    classification: Classification, prefixes: LabelPrefixes
) -> frozenset[str]:
    """Render *classification* as remote label names."""
    labels = {f"{prefixes.tag}{tag}" for tag in classification.tags}
    if classification.series:
        labels.add(f"{prefixes.series}{classification.series}")
    if classification.draft:
        labels.add(prefixes.draft)
    return frozenset(labels)


def from_labels(
    labels: Iterable[str], prefixes: LabelPrefixes
) -> tuple[Classification, list[str]]:
    """Rebuild a classification from remote label names.

    The first series label encountered wins; any further series labels are
    reported in the returned warnings list.  Unmanaged labels are ignored.

    Returns:
        ``(classification, warnings)``.
    """
    tags: set[str] = set()
    series: str | None = None
    draft = False
    warnings: list[str] = []

    for name in labels:
        if name == prefixes.draft:
            draft = True
        elif name.startswith(prefixes.series):
            value = name[len(prefixes.series) :]
            if series is None:
                series = value
            elif value != series:
                warnings.append(
                    f"multiple series labels ('{prefixes.series}{series}', "
                    f"'{name}'); keeping '{series}'"
                )
        elif name.startswith(prefixes.tag):
            tags.add(name[len(prefixes.tag) :])

    return (
        Classification(tags=frozenset(tags), series=series, draft=draft),
        warnings,
    )


_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})


def _is_true(value: Any) -> bool:
    """Interpret a front matter flag; quoted strings such as "false" are false."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def classification_from_metadata(metadata: dict[str, Any]) -> Classification:
    """Read tags, series and draft state from a local metadata block.

    ``tags`` may be a list or a single string; empty values are dropped.
    """
    raw_tags = metadata.get("tags") or []
    if isinstance(raw_tags, str):
        raw_tags = [raw_tags]
    tags = frozenset(str(t).strip() for t in raw_tags if t is not None and str(t).strip())

    series = metadata.get("series")
    series = str(series).strip() if series is not None else None

    return Classification(
        tags=tags,
        series=series or None,
        draft=_is_true(metadata.get("draft")),
    )


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def reconcile_labels(
    desired: Iterable[str],
    current: Iterable[str],
    prefixes: LabelPrefixes,
) -> LabelDiff:
    """Compute the managed-label diff between *desired* and *current*.

    Only managed labels are candidates for removal; unmanaged labels in
    *current* never appear in either list.  Applying the diff and
    reconciling again yields an empty diff.
    """
    desired_managed = {n for n in desired if is_managed(n, prefixes)}
    current_set = set(current)
    current_managed = {n for n in current_set if is_managed(n, prefixes)}

    return LabelDiff(
        to_add=tuple(sorted(desired_managed - current_set)),
        to_remove=tuple(sorted(current_managed - desired_managed)),
    )


def label_description(name: str, prefixes: LabelPrefixes) -> str | None:
    """Description used when creating a label (the series name for series)."""
    if name.startswith(prefixes.series):
        return name[len(prefixes.series) :]
    return None


class LabelCache:
    """Known remote labels, shared by all mutations of one run.

    ``ensure()`` performs read, create and cache write as one critical
    section per call so that two documents introducing the same new tag
    create it only once.
    """

    def __init__(self, known: dict[str, str] | None = None) -> None:
        self._labels: dict[str, str] = dict(known or {})
        self._lock = threading.Lock()

    def ensure(self, name: str, create: Callable[[str], str]) -> str:
        """Return the id for *name*, calling ``create(name)`` if unknown."""
        with self._lock:
            label_id = self._labels.get(name)
            if label_id is None:
                logger.info("Creating label '%s'", name)
                label_id = create(name)
                self._labels[name] = label_id
            return label_id
