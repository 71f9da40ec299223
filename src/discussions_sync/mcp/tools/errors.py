"""Error response builders for MCP tool handlers.

This module provides structured error responses with corrective actions
to help AI agents recover from errors without human intervention.
"""

import mcp.types as types

from ...errors import (
    CategoryNotFound,
    InvalidDateFormat,
    MalformedDocument,
    PreconditionFailed,
    RemoteQueryError,
    RemoteUnavailable,
    SyncError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, precondition_failed,
            query_error, validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Category 'Blog' not found", "Set sync.category_name.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# ---------------------------------------------------------------------------
# Corrective action messages per exception class
# ---------------------------------------------------------------------------

_SYNC_ERRORS: list[tuple[type[SyncError], str, str]] = [
    (
        CategoryNotFound,
        "not_found",
        "Set sync.category_name in .discussions_sync/config.yml to one of "
        "the available categories, or create the category on GitHub.",
    ),
    (
        PreconditionFailed,
        "precondition_failed",
        "Set GITHUB_TOKEN, DISCUSSIONS_OWNER and DISCUSSIONS_REPO, and make "
        "sure sync.articles_root points to a directory of markdown articles.",
    ),
    (
        RemoteUnavailable,
        "server_error",
        "Check network connectivity and DISCUSSIONS_API_URL, then retry.",
    ),
    (
        RemoteQueryError,
        "query_error",
        "Check that the token can read and write discussions and labels "
        "for the repository, then retry.",
    ),
    (
        MalformedDocument,
        "validation_error",
        "Add a '---' delimited YAML front matter block to the document.",
    ),
    (
        InvalidDateFormat,
        "validation_error",
        "Use MM/DD/YYYY for local 'published' values and YYYY-MM-DD in "
        "discussion bodies.",
    ),
]


def translate_sync_error(error: SyncError) -> types.CallToolResult:
    """Translate a sync exception to a structured error response.

    Args:
        error: Exception raised by the sync engine or the client.

    Returns:
        CallToolResult with isError=True and corrective action
    """
    for error_class, error_type, action in _SYNC_ERRORS:
        if isinstance(error, error_class):
            return build_error_response(error_type, str(error), action)
    return build_error_response(
        "server_error", str(error), "Check the server log and retry later."
    )
