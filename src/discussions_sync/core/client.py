import logging
import threading
from typing import Any

import requests

from ..config import Config
from ..errors import PreconditionFailed, RemoteQueryError, RemoteUnavailable
from . import queries

logger = logging.getLogger(__name__)


def dig(data: Any, *keys: str) -> Any:
    """Walk nested dicts, raising ``RemoteQueryError`` on a missing key."""
    current = data
    for key in keys:
        if not isinstance(current, dict) or current.get(key) is None:
            raise RemoteQueryError(
                f"Unexpected response shape: missing '{'.'.join(keys)}'"
            )
        current = current[key]
    return current


class GitHubClient:
    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.token}",
                "Accept": "application/vnd.github+json",
            }
        )
        return session

    def execute(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Execute a GraphQL query or mutation and return its ``data`` object.

        Raises:
            RemoteUnavailable: On transport errors and non-2xx responses.
            PreconditionFailed: If the token is rejected (HTTP 401).
            RemoteQueryError: If the payload carries ``errors`` or is not
                a JSON object with ``data``.
        """
        session = self._get_session()
        try:
            response = session.post(
                self.config.api_url,
                json={"query": query, "variables": variables or {}},
                timeout=(10, 60),
            )
        except requests.RequestException as exc:
            raise RemoteUnavailable(
                f"GraphQL request to {self.config.api_url} failed: {exc}"
            ) from exc

        if response.status_code == 401:
            raise PreconditionFailed(
                "GitHub rejected the token (HTTP 401). Check GITHUB_TOKEN."
            )
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise RemoteUnavailable(
                f"GraphQL endpoint returned HTTP {response.status_code}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteQueryError(
                "GraphQL endpoint returned a non-JSON response"
            ) from exc

        if not isinstance(payload, dict):
            raise RemoteQueryError("GraphQL response is not a JSON object")

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = (
                first.get("message") if isinstance(first, dict) else str(first)
            )
            raise RemoteQueryError(message or "Unknown GraphQL error")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteQueryError("GraphQL response has no data")
        return data

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def validate_connection(self) -> str:
        """
        Validate the token by querying the viewer.
        Returns the authenticated login.
        """
        data = self.execute(queries.VIEWER_QUERY)
        return str(dig(data, "viewer", "login"))

    def get_repository_info(self) -> dict[str, Any]:
        """
        Fetch repository id, discussion categories and labels.
        """
        return self.execute(
            queries.GET_REPOSITORY_INFO_QUERY,
            {"owner": self.config.owner, "name": self.config.repo},
        )

    def search_discussions(
        self, query: str, limit: int, after: str | None = None
    ) -> dict[str, Any]:
        """
        Fetch one page of discussions matching a search query.
        """
        return self.execute(
            queries.SEARCH_DISCUSSIONS_QUERY,
            {"query": query, "limit": limit, "after": after},
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_discussion(
        self, repository_id: str, category_id: str, title: str, body: str
    ) -> tuple[str, int]:
        """
        Create a discussion.

        Returns:
            ``(discussion_id, number)``
        """
        data = self.execute(
            queries.CREATE_DISCUSSION_MUTATION,
            {
                "repositoryId": repository_id,
                "categoryId": category_id,
                "title": title,
                "body": body,
            },
        )
        discussion = dig(data, "createDiscussion", "discussion")
        return str(dig(discussion, "id")), int(dig(discussion, "number"))

    def update_discussion(
        self, discussion_id: str, title: str, body: str
    ) -> None:
        """
        Replace the title and body of a discussion.
        """
        data = self.execute(
            queries.UPDATE_DISCUSSION_MUTATION,
            {"discussionId": discussion_id, "title": title, "body": body},
        )
        dig(data, "updateDiscussion", "discussion")

    def create_label(
        self,
        repository_id: str,
        name: str,
        color: str,
        description: str | None = None,
    ) -> str:
        """
        Create a repository label and return its id.
        """
        data = self.execute(
            queries.CREATE_LABEL_MUTATION,
            {
                "repositoryId": repository_id,
                "name": name,
                "description": description,
                "color": color,
            },
        )
        return str(dig(data, "createLabel", "label", "id"))

    def add_labels(self, discussion_id: str, label_ids: list[str]) -> None:
        if not label_ids:
            return
        self.execute(
            queries.ADD_LABELS_MUTATION,
            {"labelableId": discussion_id, "labelIds": label_ids},
        )

    def remove_labels(self, discussion_id: str, label_ids: list[str]) -> None:
        if not label_ids:
            return
        self.execute(
            queries.REMOVE_LABELS_MUTATION,
            {"labelableId": discussion_id, "labelIds": label_ids},
        )
