"""Execution of accepted mutation plan classes.

Mutations run sequentially in plan order.  Body-rewriting mutations that
target the same discussion or file are folded: each one applies its change
to the text produced by the previous one, so accepting both the
frontmatter and the content class never loses either change.

Failure handling:

* a mutation that fails with a per-document error (``OSError``,
  ``ValueError``, ``MalformedDocument``, ``InvalidDateFormat``) is
  recorded, and later mutations for the same slug are skipped; other
  documents continue;
* ``RemoteUnavailable``, ``RemoteQueryError`` or ``PreconditionFailed``
  stops the run, and every remaining mutation is recorded as not executed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from discussions_sync.core.client import GitHubClient
from discussions_sync.errors import (
    PreconditionFailed,
    RemoteQueryError,
    RemoteUnavailable,
    SyncError,
)
from discussions_sync.sync.labels import LabelCache
from discussions_sync.sync.models import (
    AttachLabels,
    CreateLabel,
    CreateLocal,
    CreateRemote,
    Mutation,
    MutationClass,
    MutationPlan,
    RepositoryLabelContext,
    SyncResult,
    UpdateLocalContent,
    UpdateLocalMetadata,
    UpdateRemoteContent,
    UpdateRemoteLabels,
    UpdateRemoteMetadata,
)
from discussions_sync.sync.store import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLOR = "ededed"


def planned_results(
    plan: MutationPlan, accepted: Iterable[MutationClass] | None = None
) -> list[SyncResult]:
    """Results describing what executing *plan* would do (dry run)."""
    accepted_set = None if accepted is None else set(accepted)
    return [
        SyncResult(
            slug=mutation.slug,
            kind=mutation.kind,
            mutation_class=mutation_class,
            local_path=mutation.local_path,
            remote_id=mutation.remote_id,
            success=True,
        )
        for mutation_class, mutation in plan.operations(accepted_set)
    ]


class PlanExecutor:
    """Apply mutation plans against the remote API and the local store.

    Args:
        client: GraphQL transport.
        store: Local article store.
        context: Repository ids and the labels known before planning.
        label_color: Hex color for labels created during the run.
    """

    def __init__(
        self,
        client: GitHubClient,
        store: LocalStore,
        context: RepositoryLabelContext,
        label_color: str = DEFAULT_LABEL_COLOR,
    ) -> None:
        self.client = client
        self.store = store
        self.context = context
        self.label_color = label_color
        self.labels = LabelCache(context.known_labels)

        self._created: dict[str, str] = {}
        self._remote_bodies: dict[str, str] = {}
        self._local_texts: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def execute(
        self,
        plan: MutationPlan,
        accepted: Iterable[MutationClass] | None = None,
    ) -> list[SyncResult]:
        """Execute the accepted classes of *plan* in order.

        Args:
            plan: Plan produced by the planner.
            accepted: Classes to run; ``None`` runs every class.

        Returns:
            One ``SyncResult`` per mutation of the accepted classes.
        """
        accepted_set = None if accepted is None else set(accepted)
        results: list[SyncResult] = []
        failed: set[str] = set()
        aborted: str | None = None

        for mutation_class, mutation in plan.operations(accepted_set):
            if aborted is not None:
                results.append(
                    self._result(
                        mutation, mutation_class, f"not executed: {aborted}"
                    )
                )
                continue
            if mutation.slug in failed:
                results.append(
                    self._result(
                        mutation,
                        mutation_class,
                        "skipped after an earlier failure for this document",
                    )
                )
                continue

            try:
                self._apply(mutation)
            except (RemoteUnavailable, RemoteQueryError, PreconditionFailed) as exc:
                logger.error(
                    "Aborting run at %s for %s: %s",
                    mutation.kind.value,
                    mutation.describe(),
                    exc,
                )
                aborted = str(exc)
                failed.add(mutation.slug)
                results.append(self._result(mutation, mutation_class, str(exc)))
                continue
            except (SyncError, OSError, ValueError) as exc:
                logger.error(
                    "Failed %s for %s: %s",
                    mutation.kind.value,
                    mutation.describe(),
                    exc,
                )
                failed.add(mutation.slug)
                results.append(self._result(mutation, mutation_class, str(exc)))
                continue

            logger.info("%s: %s", mutation.kind.value, mutation.describe())
            results.append(self._result(mutation, mutation_class))

        return results

    def _result(
        self,
        mutation: Mutation,
        mutation_class: MutationClass,
        error: str | None = None,
    ) -> SyncResult:
        return SyncResult(
            slug=mutation.slug,
            kind=mutation.kind,
            mutation_class=mutation_class,
            local_path=mutation.local_path,
            remote_id=mutation.remote_id or self._created.get(mutation.slug),
            success=error is None,
            error=error,
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _apply(self, mutation: Mutation) -> None:
        if isinstance(mutation, CreateLabel):
            self.labels.ensure(
                mutation.name,
                lambda name: self._create_label(name, mutation.description),
            )
        elif isinstance(mutation, CreateRemote):
            self._create_remote(mutation)
        elif isinstance(mutation, AttachLabels):
            target = self._target(mutation)
            self.client.add_labels(target, self._label_ids(mutation.label_names))
        elif isinstance(mutation, (UpdateRemoteMetadata, UpdateRemoteContent)):
            self._update_remote(mutation)
        elif isinstance(mutation, UpdateRemoteLabels):
            target = self._target(mutation)
            self.client.add_labels(target, self._label_ids(mutation.add_names))
            self.client.remove_labels(target, list(mutation.remove_ids))
        elif isinstance(mutation, CreateLocal):
            self._create_local(mutation)
        elif isinstance(mutation, (UpdateLocalMetadata, UpdateLocalContent)):
            self._update_local(mutation)
        else:
            raise SyncError(f"Unhandled mutation kind: {mutation.kind.value}")

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def _require_repository_id(self) -> str:
        if not self.context.repository_id:
            raise PreconditionFailed("Repository id is required to mutate discussions")
        return self.context.repository_id

    def _create_label(self, name: str, description: str | None) -> str:
        return self.client.create_label(
            self._require_repository_id(), name, self.label_color, description
        )

    def _label_ids(self, names: Iterable[str]) -> list[str]:
        return [
            self.labels.ensure(
                name, lambda n: self._create_label(n, None)
            )
            for name in names
        ]

    def _target(self, mutation: Mutation) -> str:
        target = mutation.remote_id or self._created.get(mutation.slug)
        if not target:
            raise SyncError(f"No discussion exists for '{mutation.slug}'")
        return target

    def _create_remote(self, mutation: CreateRemote) -> None:
        category_id = mutation.category_id or self.context.category_id
        if not category_id:
            raise PreconditionFailed("Category id is required to create discussions")
        discussion_id, number = self.client.create_discussion(
            self._require_repository_id(),
            category_id,
            mutation.title,
            mutation.body,
        )
        logger.debug("Created discussion #%d for '%s'", number, mutation.slug)
        self._created[mutation.slug] = discussion_id
        self._remote_bodies[discussion_id] = mutation.body

    def _update_remote(
        self, mutation: UpdateRemoteMetadata | UpdateRemoteContent
    ) -> None:
        target = self._target(mutation)
        current = self._remote_bodies.get(target, mutation.original_body)
        body = mutation.apply(current)
        self.client.update_discussion(target, mutation.title, body)
        self._remote_bodies[target] = body

    # ------------------------------------------------------------------
    # Local
    # ------------------------------------------------------------------

    def _create_local(self, mutation: CreateLocal) -> None:
        if not mutation.local_path:
            raise SyncError(f"No local path planned for '{mutation.slug}'")
        self.store.create(mutation.local_path, mutation.text)
        self._local_texts[mutation.local_path] = mutation.text

    def _update_local(
        self, mutation: UpdateLocalMetadata | UpdateLocalContent
    ) -> None:
        if not mutation.local_path:
            raise SyncError(f"No local path planned for '{mutation.slug}'")
        current = self._local_texts.get(mutation.local_path, mutation.original_text)
        text = mutation.apply(current)
        self.store.write(mutation.local_path, text)
        self._local_texts[mutation.local_path] = text
