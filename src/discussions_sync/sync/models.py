"""Pydantic models for the discussion sync engine.

Defines the data contracts shared by all sync modules:

- ``LocalDocument`` / ``RemoteRecord``: the two sides being reconciled.
- ``Classification`` / ``LabelPrefixes``: tags, series and draft state, and
  the label prefixes used to render them.
- ``RepositoryLabelContext``: repository ids and the known-labels map passed
  explicitly into every planning call.
- ``SyncPair`` / ``MatchResult``: output of the matcher.
- ``Mutation`` subclasses and ``MutationPlan``: output of the planner.
- ``SyncResult`` / ``SyncReport``: outcome of executing a plan.

Value models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Iterator

from pydantic import BaseModel, Field

from . import frontmatter


class Direction(str, Enum):
    """Sync direction: which side is authoritative."""

    UPLOAD = "upload"
    DOWNLOAD = "download"


class MutationClass(str, Enum):
    """Independently confirmable groups of mutations."""

    NEW = "new"
    FRONTMATTER = "frontmatter"
    LABELS = "labels"
    CONTENT = "content"


class MutationKind(str, Enum):
    """Possible operations in a mutation plan."""

    CREATE_REMOTE = "create_remote"
    CREATE_LABEL = "create_label"
    ATTACH_LABELS = "attach_labels"
    UPDATE_REMOTE_METADATA = "update_remote_metadata"
    UPDATE_REMOTE_CONTENT = "update_remote_content"
    UPDATE_REMOTE_LABELS = "update_remote_labels"
    CREATE_LOCAL = "create_local"
    UPDATE_LOCAL_METADATA = "update_local_metadata"
    UPDATE_LOCAL_CONTENT = "update_local_content"


# ---------------------------------------------------------------------------
# Documents and records
# ---------------------------------------------------------------------------


class LocalDocument(BaseModel):
    """A markdown article under the articles root.

    Attributes:
        path: POSIX path relative to the articles root.
        metadata: Parsed front matter, in file order.
        body: Text after the closing delimiter.
        raw_text: Full file content as read.
    """

    path: str
    metadata: dict[str, Any] = {}
    body: str = ""
    raw_text: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_text(cls, path: str, text: str) -> LocalDocument:
        """Parse *text* read from *path*.

        Raises:
            MalformedDocument: If the front matter block is missing.
        """
        metadata, body = frontmatter.parse(text, path)
        return cls(path=path, metadata=metadata, body=body, raw_text=text)

    @property
    def title(self) -> str:
        """File stem, unless overridden by a ``title`` metadata key."""
        override = self.metadata.get("title")
        if override:
            return str(override)
        return PurePosixPath(self.path).stem

    @property
    def slug(self) -> str | None:
        return slug_of(self.metadata)


class RemoteLabel(BaseModel):
    id: str
    name: str

    model_config = {"frozen": True}


class RemoteCategory(BaseModel):
    id: str
    name: str

    model_config = {"frozen": True}


class RemoteRecord(BaseModel):
    """A discussion as returned by the remote search endpoint."""

    id: str
    number: int
    title: str
    body: str = ""
    url: str | None = None
    labels: list[RemoteLabel] = []
    category: RemoteCategory | None = None
    created_at: str | None = None
    updated_at: str | None = None

    model_config = {"frozen": True}

    @property
    def label_names(self) -> list[str]:
        return [label.name for label in self.labels]

    def parse_body(self) -> tuple[dict[str, Any], str]:
        """Parse the embedded front matter of the discussion body.

        Raises:
            MalformedDocument: If the body has no metadata block.
        """
        return frontmatter.parse(self.body, f"discussion #{self.number}")


def slug_of(metadata: dict[str, Any]) -> str | None:
    value = metadata.get("slug")
    if value is None:
        return None
    slug = str(value).strip()
    return slug or None


# ---------------------------------------------------------------------------
# Classification and repository context
# ---------------------------------------------------------------------------


class LabelPrefixes(BaseModel):
    """Prefixes used to render classification values as label names."""

    tag: str = "tag/"
    series: str = "series/"
    draft: str = "state/draft"

    model_config = {"frozen": True}


class Classification(BaseModel):
    """Tags, series and draft state of one document."""

    tags: frozenset[str] = frozenset()
    series: str | None = None
    draft: bool = False

    model_config = {"frozen": True}


class RepositoryLabelContext(BaseModel):
    """Repository state needed for planning.

    Attributes:
        repository_id: Node id of the repository (upload only).
        category_id: Node id of the configured discussion category.
        known_labels: Label name -> label id for labels that already exist.
        prefixes: Label prefixes for tags, series and the draft literal.
    """

    repository_id: str | None = None
    category_id: str | None = None
    known_labels: dict[str, str] = {}
    prefixes: LabelPrefixes = Field(default_factory=LabelPrefixes)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class SyncPair(BaseModel):
    """A local document and a remote record sharing a slug."""

    slug: str
    local: LocalDocument
    remote: RemoteRecord

    model_config = {"frozen": True}


class MatchResult(BaseModel):
    """Partition of slugged inputs produced by the matcher."""

    new_local: list[LocalDocument] = []
    new_remote: list[RemoteRecord] = []
    paired: list[SyncPair] = []
    warnings: list[str] = []

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class Mutation(BaseModel):
    """Base class for planned operations.

    Attributes:
        slug: Slug of the document the operation belongs to.
        local_path: Local document path, when known.
        remote_id: Discussion node id, when known.
    """

    kind: MutationKind
    slug: str
    local_path: str | None = None
    remote_id: str | None = None

    model_config = {"frozen": True}

    def describe(self) -> str:
        target = self.local_path or self.remote_id or ""
        return f"{self.slug} ({target})" if target else self.slug


class CreateLabel(Mutation):
    kind: MutationKind = MutationKind.CREATE_LABEL
    name: str
    description: str | None = None


class CreateRemote(Mutation):
    kind: MutationKind = MutationKind.CREATE_REMOTE
    title: str
    body: str
    category_id: str | None = None


class AttachLabels(Mutation):
    """Attach labels to a discussion created earlier in the same run."""

    kind: MutationKind = MutationKind.ATTACH_LABELS
    label_names: tuple[str, ...] = ()


class UpdateRemoteMetadata(Mutation):
    """Rewrite selected front matter keys of a discussion body."""

    kind: MutationKind = MutationKind.UPDATE_REMOTE_METADATA
    title: str
    original_body: str
    changes: dict[str, Any] = {}

    def apply(self, text: str) -> str:
        return frontmatter.update_metadata(text, self.changes)


class UpdateRemoteContent(Mutation):
    """Replace the free text of a discussion, keeping its metadata block."""

    kind: MutationKind = MutationKind.UPDATE_REMOTE_CONTENT
    title: str
    original_body: str
    body: str

    def apply(self, text: str) -> str:
        return frontmatter.replace_body(text, self.body)


class UpdateRemoteLabels(Mutation):
    """Add and remove managed labels on a discussion.

    ``remove_ids`` are taken from the record; ``add_names`` are resolved to
    ids at execution time (some may be created earlier in the run).
    """

    kind: MutationKind = MutationKind.UPDATE_REMOTE_LABELS
    add_names: tuple[str, ...] = ()
    remove_names: tuple[str, ...] = ()
    remove_ids: tuple[str, ...] = ()


class CreateLocal(Mutation):
    kind: MutationKind = MutationKind.CREATE_LOCAL
    text: str


class UpdateLocalMetadata(Mutation):
    kind: MutationKind = MutationKind.UPDATE_LOCAL_METADATA
    original_text: str
    changes: dict[str, Any] = {}
    removals: tuple[str, ...] = ()

    def apply(self, text: str) -> str:
        return frontmatter.update_metadata(text, self.changes, self.removals)


class UpdateLocalContent(Mutation):
    kind: MutationKind = MutationKind.UPDATE_LOCAL_CONTENT
    original_text: str
    body: str

    def apply(self, text: str) -> str:
        return frontmatter.replace_body(text, self.body)


CLASS_ORDER = (
    MutationClass.NEW,
    MutationClass.FRONTMATTER,
    MutationClass.LABELS,
    MutationClass.CONTENT,
)


class MutationPlan(BaseModel):
    """Ordered, independently gated mutations for one direction."""

    direction: Direction
    new: list[Mutation] = []
    frontmatter: list[Mutation] = []
    labels: list[Mutation] = []
    content: list[Mutation] = []
    warnings: list[str] = []

    def group(self, mutation_class: MutationClass) -> list[Mutation]:
        return getattr(self, mutation_class.value)

    def operations(
        self, accepted: set[MutationClass] | frozenset[MutationClass] | None = None
    ) -> Iterator[tuple[MutationClass, Mutation]]:
        """Yield ``(class, mutation)`` for accepted classes in plan order.

        ``None`` means every class is accepted.
        """
        for mutation_class in CLASS_ORDER:
            if accepted is not None and mutation_class not in accepted:
                continue
            for mutation in self.group(mutation_class):
                yield mutation_class, mutation

    def counts(self) -> dict[str, int]:
        return {c.value: len(self.group(c)) for c in CLASS_ORDER}

    @property
    def is_empty(self) -> bool:
        return not any(self.group(c) for c in CLASS_ORDER)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class SyncResult(BaseModel):
    """Outcome of one executed (or previewed) mutation."""

    slug: str
    kind: MutationKind
    mutation_class: MutationClass
    local_path: str | None = None
    remote_id: str | None = None
    success: bool
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        direction: Upload or download.
        dry_run: Whether mutations were only planned.
        results: Individual mutation results.
        declined: Mutation classes the confirmation layer rejected.
        warnings: Per-document warnings (malformed files, bad dates, ...).
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    direction: Direction
    dry_run: bool = False
    results: list[SyncResult] = []
    declined: list[MutationClass] = []
    warnings: list[str] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _of(self, *kinds: MutationKind) -> list[SyncResult]:
        return [r for r in self.results if r.kind in kinds and r.success]

    @property
    def created_remote(self) -> list[SyncResult]:
        return self._of(MutationKind.CREATE_REMOTE)

    @property
    def created_local(self) -> list[SyncResult]:
        return self._of(MutationKind.CREATE_LOCAL)

    @property
    def updated_remote(self) -> list[SyncResult]:
        return self._of(
            MutationKind.UPDATE_REMOTE_METADATA,
            MutationKind.UPDATE_REMOTE_CONTENT,
        )

    @property
    def updated_local(self) -> list[SyncResult]:
        return self._of(
            MutationKind.UPDATE_LOCAL_METADATA,
            MutationKind.UPDATE_LOCAL_CONTENT,
        )

    @property
    def labels_changed(self) -> list[SyncResult]:
        return self._of(
            MutationKind.CREATE_LABEL,
            MutationKind.ATTACH_LABELS,
            MutationKind.UPDATE_REMOTE_LABELS,
        )

    @property
    def errors(self) -> list[SyncResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        """Format a short multi-line summary with counts by action."""
        lines = [
            f"Sync report ({self.direction.value})"
            + (" (dry run)" if self.dry_run else ""),
            f"  Created remote: {len(self.created_remote)}",
            f"  Created local:  {len(self.created_local)}",
            f"  Updated remote: {len(self.updated_remote)}",
            f"  Updated local:  {len(self.updated_local)}",
            f"  Label changes:  {len(self.labels_changed)}",
            f"  Errors:         {len(self.errors)}",
            f"  Warnings:       {len(self.warnings)}",
            f"  Total:          {len(self.results)}",
        ]
        return "\n".join(lines)
