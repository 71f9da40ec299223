"""Shared pytest fixtures for discussions-sync tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from discussions_sync.config import Config
from discussions_sync.config_schema import SyncSettings


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live GitHub repository",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live GitHub repository"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# In-memory GraphQL fake
# ---------------------------------------------------------------------------


class FakeGitHubClient:
    """Minimal GitHubClient replacement for testing.

    Keeps discussions as raw GraphQL nodes so responses go through the
    same decoding as real ones.  Every mutation is recorded in ``calls``.
    """

    def __init__(
        self,
        config: Config,
        categories: Optional[Dict[str, str]] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        self.config = config
        self.repository_id = "R_repo"
        self.categories: Dict[str, str] = (
            {"Blog Posts": "DIC_blog", "General": "DIC_general"}
            if categories is None
            else categories
        )
        self.labels: Dict[str, str] = dict(labels or {})
        self.discussions: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.search_queries: List[str] = []

    # -- helpers ------------------------------------------------------------

    def _label_id(self, name: str) -> str:
        if name not in self.labels:
            self.labels[name] = f"L_{name}"
        return self.labels[name]

    def _find(self, discussion_id: str) -> Dict[str, Any]:
        for node in self.discussions:
            if node["id"] == discussion_id:
                return node
        raise AssertionError(f"unknown discussion {discussion_id}")

    def add_discussion(
        self,
        body: str,
        title: str = "Untitled",
        labels: tuple = (),
        category: str = "Blog Posts",
    ) -> Dict[str, Any]:
        """Seed a discussion and return its raw node."""
        number = len(self.discussions) + 1
        node = {
            "id": f"D_{number}",
            "number": number,
            "title": title,
            "body": body,
            "url": f"https://github.com/octocat/blog/discussions/{number}",
            "createdAt": "2024-01-02T00:00:00Z",
            "updatedAt": "2024-01-02T00:00:00Z",
            "category": {"id": self.categories.get(category, "DIC_x"), "name": category},
            "labels": {
                "nodes": [{"id": self._label_id(n), "name": n} for n in labels]
            },
        }
        self.discussions.append(node)
        return node

    def label_names(self, discussion_id: str) -> List[str]:
        node = self._find(discussion_id)
        return sorted(n["name"] for n in node["labels"]["nodes"])

    # -- GitHubClient surface -----------------------------------------------

    def validate_connection(self) -> str:
        return "octocat"

    def get_repository_info(self) -> Dict[str, Any]:
        return {
            "repository": {
                "id": self.repository_id,
                "discussionCategories": {
                    "nodes": [
                        {"id": cid, "name": name}
                        for name, cid in self.categories.items()
                    ]
                },
                "labels": {
                    "nodes": [
                        {"id": lid, "name": name}
                        for name, lid in self.labels.items()
                    ]
                },
            }
        }

    def search_discussions(
        self, query: str, limit: int, after: Optional[str] = None
    ) -> Dict[str, Any]:
        self.search_queries.append(query)
        start = int(after) if after else 0
        page = self.discussions[start : start + limit]
        end = start + len(page)
        return {
            "search": {
                "pageInfo": {
                    "hasNextPage": end < len(self.discussions),
                    "endCursor": str(end),
                },
                "nodes": [dict(node) for node in page],
            }
        }

    def create_discussion(
        self, repository_id: str, category_id: str, title: str, body: str
    ) -> tuple:
        self.calls.append(("create_discussion", title, body))
        name = next(
            (n for n, cid in self.categories.items() if cid == category_id),
            "Blog Posts",
        )
        node = self.add_discussion(body, title=title, category=name)
        return node["id"], node["number"]

    def update_discussion(self, discussion_id: str, title: str, body: str) -> None:
        self.calls.append(("update_discussion", discussion_id, title, body))
        node = self._find(discussion_id)
        node["title"] = title
        node["body"] = body

    def create_label(
        self,
        repository_id: str,
        name: str,
        color: str,
        description: Optional[str] = None,
    ) -> str:
        self.calls.append(("create_label", name, color, description))
        return self._label_id(name)

    def add_labels(self, discussion_id: str, label_ids: List[str]) -> None:
        if not label_ids:
            return
        self.calls.append(("add_labels", discussion_id, list(label_ids)))
        by_id = {lid: name for name, lid in self.labels.items()}
        node = self._find(discussion_id)
        present = {n["id"] for n in node["labels"]["nodes"]}
        for lid in label_ids:
            if lid not in present:
                node["labels"]["nodes"].append({"id": lid, "name": by_id[lid]})

    def remove_labels(self, discussion_id: str, label_ids: List[str]) -> None:
        if not label_ids:
            return
        self.calls.append(("remove_labels", discussion_id, list(label_ids)))
        node = self._find(discussion_id)
        node["labels"]["nodes"] = [
            n for n in node["labels"]["nodes"] if n["id"] not in label_ids
        ]

    def mutations(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(token="ghp_test", owner="octocat", repo="blog")


@pytest.fixture
def mock_github_client(mock_config):
    """Create a mock GitHubClient instance for testing."""
    from discussions_sync.core.client import GitHubClient

    client = MagicMock(spec=GitHubClient)
    client.config = mock_config
    return client


@pytest.fixture
def fake_client(mock_config):
    """In-memory GraphQL fake with two categories and no labels."""
    return FakeGitHubClient(mock_config)


@pytest.fixture
def articles(tmp_path):
    """Empty articles root named ``Blog``."""
    root = tmp_path / "Blog"
    root.mkdir()
    return root


@pytest.fixture
def settings(articles):
    """Sync settings pointing at the ``articles`` root."""
    return SyncSettings(articles_root=str(articles))
