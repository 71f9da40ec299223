"""Mutation planning for both sync directions.

Planning is pure: given matcher output and a ``RepositoryLabelContext`` it
returns a ``MutationPlan`` and performs no I/O.  The same inputs always
produce the same plan.

Upload (local authoritative)
----------------------------
* new local documents -> ``CreateRemote``, ``CreateLabel`` for each missing
  label (each name planned once per run), then ``AttachLabels``;
* matched pairs -> ``UpdateRemoteMetadata`` (frontmatter),
  ``CreateLabel`` + ``UpdateRemoteLabels`` (labels) and
  ``UpdateRemoteContent`` (content).

Download (remote authoritative)
-------------------------------
* new remote records -> ``CreateLocal``;
* matched pairs -> ``UpdateLocalMetadata`` (frontmatter) and
  ``UpdateLocalContent`` (content).

A date that cannot be converted is kept as-is and reported in the plan
warnings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import Any

from discussions_sync.errors import InvalidDateFormat
from discussions_sync.file_handler import sanitize_filename
from discussions_sync.sync import frontmatter
from discussions_sync.sync.labels import (
    classification_from_metadata,
    from_labels,
    label_description,
    reconcile_labels,
    to_labels,
)
from discussions_sync.sync.models import (
    AttachLabels,
    CreateLabel,
    CreateLocal,
    CreateRemote,
    Direction,
    LocalDocument,
    Mutation,
    MutationPlan,
    RemoteRecord,
    RepositoryLabelContext,
    SyncPair,
    UpdateLocalContent,
    UpdateLocalMetadata,
    UpdateRemoteContent,
    UpdateRemoteLabels,
    UpdateRemoteMetadata,
    slug_of,
)

logger = logging.getLogger(__name__)


def normalize_body(content: str) -> str:
    """Normalize *content* for comparison.

    Strips a BOM, converts CRLF to LF, right-strips every line and drops
    trailing empty lines.
    """
    text = content.lstrip("\ufeff").replace("\r\n", "\n")
    lines = [line.rstrip() for line in text.split("\n")]
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def _convert_date(
    value: Any, convert: Any, where: str, warnings: list[str]
) -> Any:
    try:
        return convert(value)
    except InvalidDateFormat as exc:
        warnings.append(f"{where}: {exc}; keeping original value")
        return value


class _LabelPlanner:
    """Plans each missing label exactly once per run."""

    def __init__(self, context: RepositoryLabelContext) -> None:
        self.context = context
        self._planned: set[str] = set(context.known_labels)

    def creations(
        self, names: Iterable[str], slug: str, local_path: str | None,
        remote_id: str | None = None,
    ) -> list[Mutation]:
        ops: list[Mutation] = []
        for name in sorted(names):
            if name in self._planned:
                continue
            self._planned.add(name)
            ops.append(
                CreateLabel(
                    slug=slug,
                    local_path=local_path,
                    remote_id=remote_id,
                    name=name,
                    description=label_description(name, self.context.prefixes),
                )
            )
        return ops


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


def _remote_metadata(doc: LocalDocument, warnings: list[str]) -> dict[str, Any]:
    """Metadata embedded in the body of a new discussion."""
    metadata: dict[str, Any] = {"slug": doc.slug}
    if "description" in doc.metadata:
        metadata["description"] = doc.metadata["description"]
    if doc.metadata.get("published") is not None:
        metadata["published"] = _convert_date(
            doc.metadata["published"],
            frontmatter.to_remote_date,
            doc.path,
            warnings,
        )
    return metadata


def _plan_new_remote(
    doc: LocalDocument,
    context: RepositoryLabelContext,
    label_planner: _LabelPlanner,
    warnings: list[str],
) -> list[Mutation]:
    slug = doc.slug or ""
    desired = to_labels(
        classification_from_metadata(doc.metadata), context.prefixes
    )

    ops: list[Mutation] = [
        CreateRemote(
            slug=slug,
            local_path=doc.path,
            title=doc.title,
            body=frontmatter.serialize(_remote_metadata(doc, warnings), doc.body),
            category_id=context.category_id,
        )
    ]
    ops.extend(label_planner.creations(desired, slug, doc.path))
    if desired:
        ops.append(
            AttachLabels(
                slug=slug,
                local_path=doc.path,
                label_names=tuple(sorted(desired)),
            )
        )
    return ops


def _remote_metadata_changes(
    pair: SyncPair, remote_meta: dict[str, Any], warnings: list[str]
) -> dict[str, Any]:
    local_meta = pair.local.metadata
    changes: dict[str, Any] = {}

    if "description" in local_meta and local_meta[
        "description"
    ] != remote_meta.get("description"):
        changes["description"] = local_meta["description"]

    if local_meta.get("published") is not None:
        published = _convert_date(
            local_meta["published"],
            frontmatter.to_remote_date,
            pair.local.path,
            warnings,
        )
        if published != remote_meta.get("published"):
            changes["published"] = published

    return changes


def plan_upload(
    paired: list[SyncPair],
    new_local: list[LocalDocument],
    context: RepositoryLabelContext,
    *,
    warnings: list[str] | None = None,
) -> MutationPlan:
    """Plan the mutations that make the remote side match local documents.

    Args:
        paired: Matched pairs from the matcher.
        new_local: Local documents without a remote record.
        context: Repository ids, known labels and label prefixes.
        warnings: Warnings collected earlier in the run; copied into the plan.
    """
    plan_warnings = list(warnings or [])
    label_planner = _LabelPlanner(context)
    prefixes = context.prefixes

    new_ops: list[Mutation] = []
    for doc in new_local:
        new_ops.extend(_plan_new_remote(doc, context, label_planner, plan_warnings))

    fm_ops: list[Mutation] = []
    label_ops: list[Mutation] = []
    content_ops: list[Mutation] = []
    for pair in paired:
        local, remote = pair.local, pair.remote
        remote_meta, remote_body = remote.parse_body()

        changes = _remote_metadata_changes(pair, remote_meta, plan_warnings)
        if changes:
            fm_ops.append(
                UpdateRemoteMetadata(
                    slug=pair.slug,
                    local_path=local.path,
                    remote_id=remote.id,
                    title=local.title,
                    original_body=remote.body,
                    changes=changes,
                )
            )

        desired = to_labels(classification_from_metadata(local.metadata), prefixes)
        diff = reconcile_labels(desired, remote.label_names, prefixes)
        if not diff.is_empty:
            label_ops.extend(
                label_planner.creations(
                    diff.to_add, pair.slug, local.path, remote.id
                )
            )
            label_ops.append(
                UpdateRemoteLabels(
                    slug=pair.slug,
                    local_path=local.path,
                    remote_id=remote.id,
                    add_names=diff.to_add,
                    remove_names=diff.to_remove,
                    remove_ids=tuple(
                        label.id
                        for label in remote.labels
                        if label.name in diff.to_remove
                    ),
                )
            )

        if normalize_body(local.body) != normalize_body(remote_body):
            content_ops.append(
                UpdateRemoteContent(
                    slug=pair.slug,
                    local_path=local.path,
                    remote_id=remote.id,
                    title=local.title,
                    original_body=remote.body,
                    body=local.body,
                )
            )

    return MutationPlan(
        direction=Direction.UPLOAD,
        new=new_ops,
        frontmatter=fm_ops,
        labels=label_ops,
        content=content_ops,
        warnings=plan_warnings,
    )


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------


def _local_path_for(record: RemoteRecord, slug: str, taken: set[str]) -> str:
    stem = (
        sanitize_filename(record.title)
        or sanitize_filename(slug)
        or f"discussion-{record.number}"
    )
    candidate = f"{stem}.md"
    if candidate.lower() in taken:
        candidate = f"{stem}-{record.number}.md"
        counter = 2
        while candidate.lower() in taken:
            candidate = f"{stem}-{record.number}-{counter}.md"
            counter += 1
    taken.add(candidate.lower())
    return candidate


def _plan_new_local(
    record: RemoteRecord,
    context: RepositoryLabelContext,
    taken: set[str],
    warnings: list[str],
) -> Mutation:
    remote_meta, body = record.parse_body()
    slug = slug_of(remote_meta) or ""
    where = f"discussion #{record.number}"

    classification, label_warnings = from_labels(
        record.label_names, context.prefixes
    )
    warnings.extend(f"{where}: {w}" for w in label_warnings)

    metadata = dict(remote_meta)
    if metadata.get("published") is not None:
        metadata["published"] = _convert_date(
            metadata["published"], frontmatter.to_local_date, where, warnings
        )
    metadata["tags"] = sorted(classification.tags)
    if classification.series:
        metadata["series"] = classification.series
    if classification.draft:
        metadata["draft"] = True

    local_path = _local_path_for(record, slug, taken)
    # The file stem is the title unless sanitizing or a collision changed it.
    if record.title and PurePosixPath(local_path).stem != record.title:
        metadata["title"] = record.title

    return CreateLocal(
        slug=slug,
        local_path=local_path,
        remote_id=record.id,
        text=frontmatter.serialize(metadata, body),
    )


def _local_metadata_changes(
    pair: SyncPair,
    remote_meta: dict[str, Any],
    context: RepositoryLabelContext,
    warnings: list[str],
) -> tuple[dict[str, Any], tuple[str, ...]]:
    local_meta = pair.local.metadata
    where = f"discussion #{pair.remote.number}"
    changes: dict[str, Any] = {}
    removals: list[str] = []

    if "description" in remote_meta and remote_meta[
        "description"
    ] != local_meta.get("description"):
        changes["description"] = remote_meta["description"]

    if remote_meta.get("published") is not None:
        published = _convert_date(
            remote_meta["published"], frontmatter.to_local_date, where, warnings
        )
        if published != local_meta.get("published"):
            changes["published"] = published

    remote_cls, label_warnings = from_labels(
        pair.remote.label_names, context.prefixes
    )
    warnings.extend(f"{where}: {w}" for w in label_warnings)
    local_cls = classification_from_metadata(local_meta)

    if remote_cls.tags != local_cls.tags:
        changes["tags"] = sorted(remote_cls.tags)

    if remote_cls.series:
        if remote_cls.series != local_cls.series:
            changes["series"] = remote_cls.series
    elif local_cls.series:
        removals.append("series")

    if remote_cls.draft:
        if not local_cls.draft:
            changes["draft"] = True
    elif local_cls.draft:
        removals.append("draft")

    return changes, tuple(removals)


def plan_download(
    paired: list[SyncPair],
    new_remote: list[RemoteRecord],
    context: RepositoryLabelContext,
    *,
    existing_paths: Iterable[str] = (),
    warnings: list[str] | None = None,
) -> MutationPlan:
    """Plan the mutations that make local documents match the remote side.

    Args:
        paired: Matched pairs from the matcher.
        new_remote: Records without a local document.
        context: Label prefixes (ids are not needed for download).
        existing_paths: Paths already present under the articles root, used
            to avoid file name collisions.
        warnings: Warnings collected earlier in the run; copied into the plan.
    """
    plan_warnings = list(warnings or [])
    taken = {path.lower() for path in existing_paths}

    new_ops: list[Mutation] = [
        _plan_new_local(record, context, taken, plan_warnings)
        for record in new_remote
    ]

    fm_ops: list[Mutation] = []
    content_ops: list[Mutation] = []
    for pair in paired:
        local, remote = pair.local, pair.remote
        remote_meta, remote_body = remote.parse_body()

        changes, removals = _local_metadata_changes(
            pair, remote_meta, context, plan_warnings
        )
        if changes or removals:
            fm_ops.append(
                UpdateLocalMetadata(
                    slug=pair.slug,
                    local_path=local.path,
                    remote_id=remote.id,
                    original_text=local.raw_text,
                    changes=changes,
                    removals=removals,
                )
            )

        if normalize_body(local.body) != normalize_body(remote_body):
            content_ops.append(
                UpdateLocalContent(
                    slug=pair.slug,
                    local_path=local.path,
                    remote_id=remote.id,
                    original_text=local.raw_text,
                    body=remote_body,
                )
            )

    return MutationPlan(
        direction=Direction.DOWNLOAD,
        new=new_ops,
        frontmatter=fm_ops,
        content=content_ops,
        warnings=plan_warnings,
    )
