"""Core infrastructure for discussions_sync."""

from .client import GitHubClient

__all__ = ["GitHubClient"]
