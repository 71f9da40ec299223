"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, github_fallbacks
from ..core.async_utils import run_sync
from ..core.client import GitHubClient
from ..errors import SyncError

logger = logging.getLogger(__name__)

_SETUP_HINT = "Ensure GITHUB_TOKEN, DISCUSSIONS_OWNER, DISCUSSIONS_REPO are set."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create GitHubClient and validate the token
    - Fail fast if GitHub is unreachable

    On shutdown:
    - Log shutdown message

    Args:
        config_overrides: Optional dict with config values from CLI (token, owner, repo, api_url)

    Yields:
        Dict with 'client' key containing the initialized GitHubClient

    Raises:
        RuntimeError: If configuration is invalid or the connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Discussions Sync MCP Server starting...")

    try:
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            raw = load_hierarchical_config()
            yaml_fallbacks = github_fallbacks(build_config(raw))
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            token=overrides.get("token"),
            owner=overrides.get("owner"),
            repo=overrides.get("repo"),
            api_url=overrides.get("api_url"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Repository: %s", config.repository)
        _stderr_print(f"  Repository: {config.repository}")
    except (ValueError, SyncError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(f"  {_SETUP_HINT}")
        raise RuntimeError(f"Configuration error: {e}. {_SETUP_HINT}") from e

    logger.info("Validating GitHub connection...")
    _stderr_print("  Validating GitHub connection...")
    try:
        client = GitHubClient(config)
        login = await run_sync(client.validate_connection)
        logger.info("Authenticated to GitHub as %s", login)
        _stderr_print(f"  Authenticated as {login}")
        _stderr_print("Server ready. Waiting for MCP client connection...")
    except SyncError as e:
        logger.error("Failed to connect to GitHub: %s", e)
        _stderr_print("ERROR: GitHub connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print("  Check GITHUB_TOKEN and DISCUSSIONS_API_URL.")
        raise RuntimeError(
            f"GitHub connection failed: {e}. Check GITHUB_TOKEN and DISCUSSIONS_API_URL."
        ) from e

    yield {"client": client}

    logger.info("MCP server shutting down")
    _stderr_print("Discussions Sync MCP Server shutting down.")
