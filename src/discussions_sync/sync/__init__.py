"""Bidirectional article sync engine.

Public API for synchronising local markdown articles (with YAML front
matter) with GitHub Discussions.

Architecture
------------
Each run has an explicit direction: **upload** makes the local side
authoritative, **download** the remote side.  Documents are matched by the
``slug`` key of their front matter; there is no persisted sync state.

Modules:

- ``frontmatter`` -- metadata block codec and date conversion.
- ``labels``      -- classification <-> label mapping, ``reconcile_labels``,
  ``LabelCache``.
- ``directory``   -- ``RemoteDirectory``: paginated fetch, repository info.
- ``matcher``     -- ``match``: slug-keyed partition of both sides.
- ``planner``     -- ``plan_upload`` / ``plan_download``: pure planning.
- ``executor``    -- ``PlanExecutor``: applies accepted mutation classes.
- ``engine``      -- ``SyncEngine``: orchestrates a full run.
- ``store``       -- ``LocalStore``: articles on disk.
- ``models``      -- data contracts.
- ``reporter``    -- human-readable and JSON formatting.

Usage example
-------------
::

    from discussions_sync.config_schema import SyncSettings
    from discussions_sync.sync import (
        Direction,
        SyncEngine,
        format_plan_preview,
        format_sync_report,
    )

    engine = SyncEngine(client=github_client, settings=SyncSettings())

    # Preview first
    print(format_plan_preview(engine.preview(Direction.UPLOAD)))

    # Upload, confirming each class of changes
    report = engine.upload(confirm=lambda cls, question: True)
    print(format_sync_report(report))
"""

from .directory import RecordFilter, RemoteDirectory, RepositoryInfo
from .engine import SyncEngine
from .executor import PlanExecutor
from .labels import LabelCache, LabelDiff, reconcile_labels
from .matcher import match
from .models import (
    Classification,
    Direction,
    LabelPrefixes,
    LocalDocument,
    MatchResult,
    MutationClass,
    MutationKind,
    MutationPlan,
    RemoteRecord,
    RepositoryLabelContext,
    SyncReport,
    SyncResult,
)
from .planner import plan_download, plan_upload
from .reporter import (
    format_plan_preview,
    format_sync_report,
    plan_to_json,
    report_to_json,
)
from .store import LocalStore

__all__ = [
    "Classification",
    "Direction",
    "LabelCache",
    "LabelDiff",
    "LabelPrefixes",
    "LocalDocument",
    "LocalStore",
    "MatchResult",
    "MutationClass",
    "MutationKind",
    "MutationPlan",
    "PlanExecutor",
    "RecordFilter",
    "RemoteDirectory",
    "RemoteRecord",
    "RepositoryInfo",
    "RepositoryLabelContext",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "format_plan_preview",
    "format_sync_report",
    "match",
    "plan_download",
    "plan_upload",
    "plan_to_json",
    "reconcile_labels",
    "report_to_json",
]
