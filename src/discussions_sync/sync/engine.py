"""Sync engine that orchestrates one upload or download run.

The ``SyncEngine`` ties together the store, directory, matcher, planner
and executor.  A run:

1. Checks preconditions (credential, repository, articles root, and for
   upload a non-empty document set).
2. Resolves repository info and the discussion category; a missing
   category aborts with ``CategoryNotFound`` before any mutation.
3. Fetches every discussion in the category.
4. Loads local documents (malformed ones are skipped and reported).
5. Matches by slug and plans the mutations for the direction.
6. Emits status events and asks for confirmation once per non-empty
   mutation class.
7. Executes the accepted classes (or lists them, for a dry run).
8. Builds and returns a ``SyncReport``.

Per-run errors propagate to the caller; per-document errors end up in the
report.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from discussions_sync.core.client import GitHubClient
from discussions_sync.errors import PreconditionFailed
from discussions_sync.sync.directory import RecordFilter, RemoteDirectory
from discussions_sync.sync.executor import PlanExecutor, planned_results
from discussions_sync.sync.matcher import match
from discussions_sync.sync.models import (
    CLASS_ORDER,
    CreateLocal,
    CreateRemote,
    Direction,
    MutationClass,
    MutationPlan,
    RemoteRecord,
    RepositoryLabelContext,
    SyncReport,
)
from discussions_sync.sync.planner import plan_download, plan_upload
from discussions_sync.sync.store import LocalStore

if TYPE_CHECKING:
    from discussions_sync.config_schema import SyncSettings

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[MutationClass, str], bool]
StatusCallback = Callable[[str], None]

_QUESTIONS = {
    Direction.UPLOAD: {
        MutationClass.NEW: "Create {n} new discussions in GitHub?",
        MutationClass.FRONTMATTER: "Update front matter of {n} discussions?",
        MutationClass.LABELS: "Apply {n} label changes to discussions?",
        MutationClass.CONTENT: "Update the body of {n} discussions?",
    },
    Direction.DOWNLOAD: {
        MutationClass.NEW: "Create {n} new local articles from GitHub?",
        MutationClass.FRONTMATTER: "Update front matter of {n} local articles?",
        MutationClass.LABELS: "Apply {n} label changes to local articles?",
        MutationClass.CONTENT: "Update the body of {n} local articles?",
    },
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def count_documents(plan: MutationPlan, mutation_class: MutationClass) -> int:
    """Number of documents affected by one class of *plan*."""
    group = plan.group(mutation_class)
    if mutation_class == MutationClass.NEW:
        return sum(isinstance(m, (CreateRemote, CreateLocal)) for m in group)
    return len({m.slug for m in group})


def confirmation_question(
    direction: Direction, mutation_class: MutationClass, count: int
) -> str:
    return _QUESTIONS[direction][mutation_class].format(n=count)


class SyncEngine:
    """Run uploads and downloads for one articles root.

    Args:
        client: GraphQL transport.
        settings: Articles root, category and label settings.
        store: Local store; built from *settings* when omitted.
        directory: Remote directory; built from *client* when omitted.
        on_status: Callback receiving human-readable status events.
    """

    def __init__(
        self,
        client: GitHubClient,
        settings: SyncSettings,
        store: LocalStore | None = None,
        directory: RemoteDirectory | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.store = store or LocalStore(
            Path(settings.articles_root),
            skip_folder_note=settings.skip_folder_note,
            exclude=settings.exclude,
        )
        self.directory = directory or RemoteDirectory(client)
        self.on_status = on_status

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def upload(
        self, confirm: ConfirmCallback | None = None, dry_run: bool = False
    ) -> SyncReport:
        """Make discussions match local articles."""
        return self.run(Direction.UPLOAD, confirm=confirm, dry_run=dry_run)

    def download(
        self, confirm: ConfirmCallback | None = None, dry_run: bool = False
    ) -> SyncReport:
        """Make local articles match discussions."""
        return self.run(Direction.DOWNLOAD, confirm=confirm, dry_run=dry_run)

    def preview(self, direction: Direction) -> MutationPlan:
        """Build the plan for *direction* without confirming or executing."""
        plan, _ = self._prepare(direction)
        return plan

    def run(
        self,
        direction: Direction,
        confirm: ConfirmCallback | None = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Execute a full run.

        Args:
            direction: Which side is authoritative.
            confirm: ``confirm(mutation_class, question) -> bool``, asked once
                per non-empty class.  ``None`` accepts every class.
            dry_run: If ``True``, report the accepted mutations without
                executing them.

        Raises:
            PreconditionFailed: If the run cannot start.
            CategoryNotFound: If the configured category does not exist.
            RemoteUnavailable: If the remote cannot be read.
            RemoteQueryError: If a remote read returns an error payload.
        """
        started_at = _now()
        plan, context = self._prepare(direction)
        self._announce(plan)

        accepted, declined = self._confirm(plan, confirm)

        if dry_run:
            results = planned_results(plan, accepted)
        else:
            executor = PlanExecutor(
                self.client,
                self.store,
                context,
                label_color=self.settings.label_color,
            )
            results = executor.execute(plan, accepted)

        report = SyncReport(
            direction=direction,
            dry_run=dry_run,
            results=results,
            declined=declined,
            warnings=plan.warnings,
            started_at=started_at,
            completed_at=_now(),
        )
        if report.errors:
            self._status(f"{len(report.errors)} operations failed")
        return report

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _check_preconditions(self, direction: Direction) -> None:
        config = self.client.config
        if not config.token:
            raise PreconditionFailed(
                "GitHub token is missing. Set GITHUB_TOKEN or pass --token."
            )
        if not config.owner or not config.repo:
            raise PreconditionFailed("Repository owner and name are required.")
        if not self.store.exists():
            raise PreconditionFailed(
                f"Articles directory not found: {self.store.root}"
            )
        if direction == Direction.UPLOAD and not self.store.list_paths():
            raise PreconditionFailed(
                f"No markdown documents found under {self.store.root}"
            )

    def _fetch_records(self, direction: Direction) -> list[RemoteRecord]:
        category = self.settings.category_name
        record_filter = RecordFilter(category_name=category)
        # Upload matches against every record in the category.
        if direction == Direction.DOWNLOAD:
            record_filter = RecordFilter(
                category_name=category,
                labels=tuple(self.settings.download_labels),
                updated_since=self.settings.updated_since,
            )
        records = self.directory.fetch_all_records(record_filter)
        # Search matches categories loosely; keep exact matches only.
        return [
            r
            for r in records
            if r.category is None or r.category.name == category
        ]

    def _prepare(
        self, direction: Direction
    ) -> tuple[MutationPlan, RepositoryLabelContext]:
        self._check_preconditions(direction)

        info = self.directory.get_repository_info()
        category_id = self.directory.resolve_category(self.settings.category_name)
        context = RepositoryLabelContext(
            repository_id=info.id,
            category_id=category_id,
            known_labels=info.label_map,
            prefixes=self.settings.prefixes,
        )

        records = self._fetch_records(direction)
        documents, warnings = self.store.load_documents()
        logger.info(
            "Loaded %d local documents and %d discussions",
            len(documents),
            len(records),
        )

        matched = match(documents, records)
        warnings.extend(matched.warnings)

        if direction == Direction.UPLOAD:
            plan = plan_upload(
                matched.paired, matched.new_local, context, warnings=warnings
            )
        else:
            plan = plan_download(
                matched.paired,
                matched.new_remote,
                context,
                existing_paths=self.store.list_paths(include_excluded=True),
                warnings=warnings,
            )

        for warning in plan.warnings[len(warnings) :]:
            logger.warning(warning)
        return plan, context

    def _announce(self, plan: MutationPlan) -> None:
        new_count = count_documents(plan, MutationClass.NEW)
        self._status(f"{new_count} new documents found")
        for mutation_class in CLASS_ORDER[1:]:
            count = count_documents(plan, mutation_class)
            if count:
                self._status(
                    f"{count} documents with {mutation_class.value} changes"
                )
        if plan.is_empty:
            self._status("Everything is up to date")

    def _confirm(
        self, plan: MutationPlan, confirm: ConfirmCallback | None
    ) -> tuple[list[MutationClass], list[MutationClass]]:
        accepted: list[MutationClass] = []
        declined: list[MutationClass] = []
        for mutation_class in CLASS_ORDER:
            if not plan.group(mutation_class):
                continue
            if confirm is None:
                accepted.append(mutation_class)
                continue
            question = confirmation_question(
                plan.direction,
                mutation_class,
                count_documents(plan, mutation_class),
            )
            if confirm(mutation_class, question):
                accepted.append(mutation_class)
            else:
                logger.info("Declined %s changes", mutation_class.value)
                declined.append(mutation_class)
        return accepted, declined

    def _status(self, message: str) -> None:
        if self.on_status is None:
            logger.info(message)
        else:
            logger.debug(message)
            self.on_status(message)
