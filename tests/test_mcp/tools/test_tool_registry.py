"""Tests for ToolSpec and ToolRegistry.

Covers:
- ToolSpec creation and immutability
- ToolRegistry read-only filtering
- ToolRegistry list_tools, tool_count, call_tool and error translation
"""

import asyncio
import unittest
from unittest.mock import MagicMock

import mcp.types as types

from discussions_sync.errors import CategoryNotFound
from discussions_sync.mcp.tools.registry import ToolRegistry, ToolSpec


def _make_spec(name: str, read_only: bool = True, handler=None) -> ToolSpec:
    """Helper to create a ToolSpec for testing."""
    if handler is None:

        async def handler(client, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        read_only=read_only,
        handler=handler,
    )


def _raising(exc):
    async def handler(client, args):
        raise exc

    return handler


class TestToolSpec(unittest.TestCase):
    def test_frozen(self):
        spec = _make_spec("plan")
        with self.assertRaises(AttributeError):
            spec.read_only = False


class TestToolRegistry(unittest.TestCase):
    def setUp(self):
        self.specs = [
            _make_spec("ping"),
            _make_spec("discussions_plan"),
            _make_spec("discussions_upload", read_only=False),
            _make_spec("discussions_download", read_only=False),
        ]

    def test_all_tools_registered(self):
        registry = ToolRegistry(self.specs)
        self.assertEqual(registry.tool_count(), 4)

    def test_read_only_filter(self):
        registry = ToolRegistry(self.specs, read_only=True)
        names = [t.name for t in registry.list_tools()]
        self.assertEqual(names, ["ping", "discussions_plan"])

    def test_call_tool_dispatches_to_handler(self):
        calls = []

        async def handler(client, args):
            calls.append((client, args))
            return types.CallToolResult(
                content=[types.TextContent(type="text", text="dispatched")]
            )

        registry = ToolRegistry([_make_spec("t", handler=handler)])
        client = MagicMock()

        result = asyncio.run(registry.call_tool("t", None, client))

        self.assertEqual(calls, [(client, {})])
        self.assertEqual(result.content[0].text, "dispatched")

    def test_filtered_tool_is_unknown(self):
        registry = ToolRegistry(self.specs, read_only=True)
        with self.assertRaises(ValueError):
            asyncio.run(registry.call_tool("discussions_upload", {}, MagicMock()))

    def test_sync_error_translated(self):
        registry = ToolRegistry(
            [_make_spec("t", handler=_raising(CategoryNotFound("Blog", ["General"])))]
        )
        result = asyncio.run(registry.call_tool("t", {}, MagicMock()))
        self.assertTrue(result.isError)
        self.assertIn("Error (not_found)", result.content[0].text)

    def test_value_error_is_validation_error(self):
        registry = ToolRegistry(
            [_make_spec("t", handler=_raising(ValueError("bad direction")))]
        )
        result = asyncio.run(registry.call_tool("t", {}, MagicMock()))
        self.assertTrue(result.isError)
        self.assertIn("Error (validation_error): bad direction", result.content[0].text)

    def test_unexpected_error_is_server_error(self):
        registry = ToolRegistry(
            [_make_spec("t", handler=_raising(KeyError("oops")))]
        )
        result = asyncio.run(registry.call_tool("t", {}, MagicMock()))
        self.assertTrue(result.isError)
        self.assertIn("Error (server_error)", result.content[0].text)
