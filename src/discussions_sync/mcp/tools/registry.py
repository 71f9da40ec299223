"""ToolSpec and ToolRegistry for read-only tool filtering.

This module provides a centralized registry for MCP tools that can hide
every tool that mutates discussions or local files, so operators can
expose a planning-only server to AI agents.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, whether it is
  read-only, and an async handler with standardized signature
  (client, args) -> CallToolResult.
- ToolRegistry: Filters specs at construction time, then provides
  list_tools() and call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.client import GitHubClient
from ...errors import SyncError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        read_only: True if the tool never mutates anything.
        handler: Async handler with signature (client, args) -> CallToolResult.
    """

    tool: types.Tool
    read_only: bool
    handler: Callable[[GitHubClient, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs with optional read-only filtering.

    If read_only is False, all specs are included.  Otherwise only specs
    marked read-only are registered.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if not read_only or spec.read_only:
                self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        client: GitHubClient,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Provides centralized error handling for sync errors, validation
        errors, and unexpected exceptions, translating them into structured
        CallToolResult responses with corrective actions.

        Args:
            name: Tool name to invoke.
            arguments: Tool arguments (may be None).
            client: GitHubClient instance.

        Returns:
            CallToolResult from the handler.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, translate_sync_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(client, args)
        except SyncError as e:
            logger.warning("Sync error in %s: %s", name, e)
            return translate_sync_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )
