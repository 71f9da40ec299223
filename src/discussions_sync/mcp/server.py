"""MCP Server for article sync using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents preview and run uploads and downloads between local markdown
articles and GitHub Discussions.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..core.async_utils import run_sync
from ..core.client import GitHubClient
from ..errors import SyncError
from ..logger import DEFAULT_LOG_FILE, setup_logging
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("discussions-sync")

# Global client instance (initialized in main)
_client: GitHubClient | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    client: GitHubClient, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test GitHub connectivity."""
    try:
        login = await run_sync(client.validate_connection)
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=(
                        f"Discussions sync server connected to "
                        f"{client.config.repository} as {login}"
                    ),
                )
            ]
        )
    except SyncError as e:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"GitHub connection failed: {e}. Check GITHUB_TOKEN and DISCUSSIONS_API_URL.",
                )
            ],
            isError=True,
        )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test GitHub connectivity and return the authenticated login",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    read_only=True,
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_client() -> GitHubClient:
    """Get the global GitHubClient instance.

    Raises:
        RuntimeError: If client is not initialized
    """
    if _client is None:
        raise RuntimeError(
            "GitHubClient not initialized. Server lifespan not started."
        )
    return _client


def set_client(client: GitHubClient | None) -> None:
    global _client
    _client = client


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available sync tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    client = get_client()
    try:
        return await get_registry().call_tool(name, arguments, client)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), validates the
    GitHub connection via the lifespan manager, and starts the server.

    Args:
        config_overrides: Optional dict with config values to override
            (token, owner, repo, api_url, log_file, read_only)
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout.
    setup_logging(mode="mcp", log_file=overrides.get("log_file"))

    read_only = bool(overrides.get("read_only", False))
    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    if read_only:
        print(
            f"Read-only mode ({registry.tool_count()} of {len(all_specs)} tools enabled)",
            file=sys.stderr,
        )

    set_registry(registry)

    # set_client() is called here rather than in the lifespan: under
    # `python -m`, this module is __main__ and a relative import from
    # lifespan.py would patch a second copy.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_client(ctx["client"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="discussions-sync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_client(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Discussions Sync MCP Server - sync markdown articles with GitHub Discussions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .discussions_sync/config.yml)
  discussions-sync-mcp

  # Override the repository
  discussions-sync-mcp --owner octocat --repo blog

  # Only expose ping and discussions_plan
  discussions-sync-mcp --read-only

  # Custom log file location
  discussions-sync-mcp --log-file /var/log/discussions-sync.log

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )

    parser.add_argument(
        "--token",
        help="Override GitHub token (visible in process list -- prefer GITHUB_TOKEN env var)",
    )
    parser.add_argument(
        "--owner",
        help="Override repository owner (takes precedence over DISCUSSIONS_OWNER and config files)",
    )
    parser.add_argument(
        "--repo",
        help="Override repository name (takes precedence over DISCUSSIONS_REPO and config files)",
    )
    parser.add_argument(
        "--api-url",
        help="Override GraphQL endpoint (takes precedence over DISCUSSIONS_API_URL)",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Only expose tools that make no changes (ping, discussions_plan)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"discussions-sync-mcp version {__version__}",
    )

    args = parser.parse_args()

    config_overrides: dict = {}
    if args.token:
        config_overrides["token"] = args.token
    if args.owner:
        config_overrides["owner"] = args.owner
    if args.repo:
        config_overrides["repo"] = args.repo
    if args.api_url:
        config_overrides["api_url"] = args.api_url
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.read_only:
        config_overrides["read_only"] = True

    shown = [k for k in config_overrides if k not in ("token", "log_file")]
    if shown:
        print(
            f"Config overrides from CLI: {', '.join(shown)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
