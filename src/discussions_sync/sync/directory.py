"""Remote directory: paginated discussion fetch and repository lookups.

Responses are decoded into explicit pydantic schemas at this boundary, so
the rest of the engine only ever sees ``RemoteRecord`` and
``RepositoryInfo`` values.  A response that does not fit its schema is a
``RemoteQueryError``.

Search pages are idempotent queries and are retried on
``RemoteUnavailable`` up to ``max_retries`` times each.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from discussions_sync.core.client import GitHubClient
from discussions_sync.errors import CategoryNotFound, RemoteQueryError, RemoteUnavailable
from discussions_sync.sync.models import RemoteCategory, RemoteLabel, RemoteRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class _Node(BaseModel):
    id: str
    name: str


class _Connection(BaseModel):
    nodes: list[_Node | None] = []

    def items(self) -> list[_Node]:
        return [node for node in self.nodes if node is not None]


class _PageInfo(BaseModel):
    has_next_page: bool = Field(alias="hasNextPage")
    end_cursor: str | None = Field(default=None, alias="endCursor")


class _DiscussionNode(BaseModel):
    id: str
    number: int
    title: str
    body: str | None = ""
    url: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    category: _Node | None = None
    labels: _Connection | None = None

    def to_record(self) -> RemoteRecord:
        labels = self.labels.items() if self.labels else []
        return RemoteRecord(
            id=self.id,
            number=self.number,
            title=self.title,
            body=self.body or "",
            url=self.url,
            labels=[RemoteLabel(id=n.id, name=n.name) for n in labels],
            category=(
                RemoteCategory(id=self.category.id, name=self.category.name)
                if self.category
                else None
            ),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class _SearchPage(BaseModel):
    page_info: _PageInfo = Field(alias="pageInfo")
    # Non-discussion search hits decode as empty objects.
    nodes: list[dict[str, Any] | None] = []


class _RepositoryNode(BaseModel):
    id: str
    discussion_categories: _Connection = Field(
        default_factory=_Connection, alias="discussionCategories"
    )
    labels: _Connection = Field(default_factory=_Connection)


# ---------------------------------------------------------------------------
# Public values
# ---------------------------------------------------------------------------


class RecordFilter(BaseModel):
    """Server-side filter for the discussion search.

    Attributes:
        category_name: Only discussions in this category.
        labels: Only discussions carrying all of these labels.
        updated_since: Only discussions updated on or after this date
            (``YYYY-MM-DD``).
    """

    category_name: str | None = None
    labels: tuple[str, ...] = ()
    updated_since: str | None = None

    model_config = {"frozen": True}

    def render(self, repository: str) -> str:
        """Render the search query string for ``owner/name``."""
        parts = [f"repo:{repository}"]
        if self.category_name:
            parts.append(f'category:"{self.category_name}"')
        parts.extend(f'label:"{label}"' for label in self.labels)
        if self.updated_since:
            parts.append(f"updated:>={self.updated_since}")
        return " ".join(parts)


class RepositoryInfo(BaseModel):
    """Repository id with its discussion categories and labels."""

    id: str
    categories: list[RemoteCategory] = []
    labels: list[RemoteLabel] = []

    model_config = {"frozen": True}

    @property
    def label_map(self) -> dict[str, str]:
        return {label.name: label.id for label in self.labels}


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


class RemoteDirectory:
    """Read-only view of the discussions of one repository.

    Args:
        client: GraphQL transport.
        page_size: Discussions per search page (defaults to the client config).
        max_retries: Retries per page on ``RemoteUnavailable``.
        retry_delay: Seconds to wait before the first retry; doubles per
            attempt.
    """

    def __init__(
        self,
        client: GitHubClient,
        page_size: int | None = None,
        max_retries: int | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.client = client
        self.page_size = page_size or client.config.page_size
        self.max_retries = (
            client.config.max_retries if max_retries is None else max_retries
        )
        self.retry_delay = retry_delay
        self._repository_info: RepositoryInfo | None = None

    @property
    def repository(self) -> str:
        return self.client.config.repository

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def fetch_all_records(
        self, record_filter: RecordFilter | None = None
    ) -> list[RemoteRecord]:
        """Fetch every discussion matching *record_filter*, following cursors.

        Raises:
            RemoteUnavailable: If a page still fails after all retries.
            RemoteQueryError: On error payloads or undecodable pages.
        """
        query = (record_filter or RecordFilter()).render(self.repository)
        logger.debug("Searching discussions: %s", query)

        records: list[RemoteRecord] = []
        cursor: str | None = None
        while True:
            page = self._fetch_page(query, cursor)
            for raw in page.nodes:
                if not raw:
                    continue
                records.append(_decode(_DiscussionNode, raw).to_record())

            if not page.page_info.has_next_page:
                break
            if not page.page_info.end_cursor:
                raise RemoteQueryError(
                    "Search reported another page but returned no cursor"
                )
            cursor = page.page_info.end_cursor

        logger.info("Fetched %d discussions", len(records))
        return records

    def _fetch_page(self, query: str, cursor: str | None) -> _SearchPage:
        attempt = 0
        while True:
            try:
                data = self.client.search_discussions(
                    query, self.page_size, cursor
                )
                break
            except RemoteUnavailable as exc:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Search page failed (%s); retry %d/%d",
                    exc,
                    attempt,
                    self.max_retries,
                )
                if self.retry_delay:
                    time.sleep(self.retry_delay * 2 ** (attempt - 1))

        return _decode(_SearchPage, data.get("search"))

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    def get_repository_info(self, refresh: bool = False) -> RepositoryInfo:
        """Fetch (and cache) the repository id, categories and labels."""
        if self._repository_info is not None and not refresh:
            return self._repository_info

        data = self.client.get_repository_info()
        node = data.get("repository")
        if node is None:
            raise RemoteQueryError(
                f"Repository {self.repository} not found or not accessible"
            )
        repo = _decode(_RepositoryNode, node)
        self._repository_info = RepositoryInfo(
            id=repo.id,
            categories=[
                RemoteCategory(id=n.id, name=n.name)
                for n in repo.discussion_categories.items()
            ],
            labels=[
                RemoteLabel(id=n.id, name=n.name) for n in repo.labels.items()
            ],
        )
        return self._repository_info

    def resolve_category(self, name: str) -> str:
        """Return the id of the discussion category called *name*.

        Raises:
            CategoryNotFound: If no category has that name.
        """
        info = self.get_repository_info()
        for category in info.categories:
            if category.name == name:
                return category.id
        raise CategoryNotFound(name, [c.name for c in info.categories])


def _decode(schema: type[BaseModel], raw: Any) -> Any:
    if not isinstance(raw, dict):
        raise RemoteQueryError(
            f"Unexpected response shape for {schema.__name__.lstrip('_')}"
        )
    try:
        return schema.model_validate(raw)
    except ValidationError as exc:
        raise RemoteQueryError(
            f"Could not decode {schema.__name__.lstrip('_')}: {exc}"
        ) from exc
