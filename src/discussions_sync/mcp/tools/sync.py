"""MCP tool handlers for article sync.

Defines three tools:

- ``discussions_plan`` -- preview the mutations of an upload or download.
- ``discussions_upload`` -- make discussions match local articles.
- ``discussions_download`` -- make local articles match discussions.

Upload and download apply only the mutation classes whose ``accept_*``
argument is true; every other non-empty class is reported as declined.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...config_loader import load_hierarchical_config
from ...config_schema import SyncSettings, apply_sync_overrides, build_config
from ...core.async_utils import run_sync
from ...core.client import GitHubClient
from ...sync.engine import SyncEngine
from ...sync.models import Direction, MutationClass
from ...sync.reporter import (
    format_plan_preview,
    format_sync_report,
    plan_to_json,
    report_to_json,
)
from .registry import ToolSpec

logger = logging.getLogger(__name__)


_COMMON_PROPERTIES: dict[str, Any] = {
    "articles_root": {
        "type": "string",
        "description": (
            "Override the articles directory (absolute path). "
            "Defaults to sync.articles_root from config."
        ),
    },
    "category": {
        "type": "string",
        "description": "Override the discussion category name.",
    },
}

_ACCEPT_PROPERTIES: dict[str, Any] = {
    f"accept_{mutation_class.value}": {
        "type": "boolean",
        "default": False,
        "description": description,
    }
    for mutation_class, description in (
        (MutationClass.NEW, "Create documents that exist only on the source side"),
        (MutationClass.FRONTMATTER, "Apply front matter updates to matched documents"),
        (MutationClass.LABELS, "Apply label changes to matched discussions (upload only)"),
        (MutationClass.CONTENT, "Replace bodies of matched documents"),
    )
}

_RUN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        **_ACCEPT_PROPERTIES,
        "dry_run": {
            "type": "boolean",
            "default": False,
            "description": "Report the accepted changes without applying them",
        },
        **_COMMON_PROPERTIES,
    },
    "required": [],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_settings(args: dict[str, Any]) -> SyncSettings:
    """Load sync settings from config, applying tool argument overrides."""
    unified = build_config(load_hierarchical_config())
    return apply_sync_overrides(
        unified.sync,
        {
            "articles_root": args.get("articles_root"),
            "category_name": args.get("category"),
        },
    )


def _parse_direction(value: Any) -> Direction:
    try:
        return Direction(value)
    except ValueError:
        raise ValueError(
            f"direction must be 'upload' or 'download', got {value!r}"
        ) from None


def _accepted(args: dict[str, Any]) -> set[MutationClass]:
    return {
        mutation_class
        for mutation_class in MutationClass
        if bool(args.get(f"accept_{mutation_class.value}", False))
    }


def _with_status(events: list[str], text: str) -> str:
    if not events:
        return text
    return "\n".join(events) + "\n\n" + text


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_plan(
    client: GitHubClient, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``discussions_plan`` tool."""
    direction = _parse_direction(args.get("direction", "upload"))
    engine = SyncEngine(client=client, settings=_load_settings(args))
    plan = await run_sync(engine.preview, direction)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_plan_preview(plan))],
        structuredContent=plan_to_json(plan),
    )


async def _run(
    client: GitHubClient, args: dict[str, Any], direction: Direction
) -> types.CallToolResult:
    accepted = _accepted(args)
    dry_run = bool(args.get("dry_run", False))
    events: list[str] = []

    engine = SyncEngine(
        client=client,
        settings=_load_settings(args),
        on_status=events.append,
    )
    report = await run_sync(
        engine.run,
        direction,
        lambda mutation_class, _question: mutation_class in accepted,
        dry_run,
    )

    structured = report_to_json(report)
    structured["status"] = events
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=_with_status(events, format_sync_report(report)),
            )
        ],
        structuredContent=structured,
        isError=bool(report.errors),
    )


async def _handle_upload(
    client: GitHubClient, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``discussions_upload`` tool."""
    return await _run(client, args, Direction.UPLOAD)


async def _handle_download(
    client: GitHubClient, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``discussions_download`` tool."""
    return await _run(client, args, Direction.DOWNLOAD)


# ---------------------------------------------------------------------------
# Tool specs
# ---------------------------------------------------------------------------


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=types.Tool(
            name="discussions_plan",
            description=(
                "Preview the changes an upload or download would make, "
                "grouped by class (new, frontmatter, labels, content). "
                "Makes no changes."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=True,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "direction": {
                        "type": "string",
                        "enum": [d.value for d in Direction],
                        "default": "upload",
                        "description": "upload (local wins) or download (GitHub wins)",
                    },
                    **_COMMON_PROPERTIES,
                },
                "required": [],
            },
        ),
        read_only=True,
        handler=_handle_plan,
    ),
    ToolSpec(
        tool=types.Tool(
            name="discussions_upload",
            description=(
                "Publish local markdown articles to GitHub Discussions. "
                "Only classes with accept_<class>=true are applied; call "
                "discussions_plan first to review them."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_RUN_SCHEMA,
        ),
        read_only=False,
        handler=_handle_upload,
    ),
    ToolSpec(
        tool=types.Tool(
            name="discussions_download",
            description=(
                "Write GitHub Discussions back to local markdown articles. "
                "Only classes with accept_<class>=true are applied; call "
                "discussions_plan first to review them."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=True,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_RUN_SCHEMA,
        ),
        read_only=False,
        handler=_handle_download,
    ),
]
