"""
Input validation functions for discussions_sync.

Provides validation for repository coordinates and label prefixes so
configuration problems are caught before any GraphQL call is made.
"""

import re

_REPO_PART = re.compile(r"^[A-Za-z0-9_.-]+$")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Tag prefix")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_repo_part(field_name: str, value: str) -> tuple[bool, str]:
    """
    Validate a repository owner or name.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    label = f"Repository {field_name}"
    if not value or not value.strip():
        return (False, format_validation_error(label, "cannot be empty"))
    if not _REPO_PART.match(value.strip()):
        return (
            False,
            format_validation_error(
                label,
                f"'{value}' may only contain letters, digits, '-', '_' and '.'",
            ),
        )
    return (True, "")


def validate_label_prefixes(
    tag_prefix: str, series_prefix: str, draft_label: str
) -> tuple[bool, str]:
    """
    Validate that label prefixes render classifications unambiguously.

    Validation rules:
        - Tag and series prefixes cannot be empty
        - Neither prefix may be a prefix of the other
        - The draft label cannot start with either prefix
    """
    if not tag_prefix:
        return (False, format_validation_error("Tag prefix", "cannot be empty"))
    if not series_prefix:
        return (
            False,
            format_validation_error("Series prefix", "cannot be empty"),
        )
    if not draft_label:
        return (False, format_validation_error("Draft label", "cannot be empty"))

    if tag_prefix.startswith(series_prefix) or series_prefix.startswith(
        tag_prefix
    ):
        return (
            False,
            format_validation_error(
                "Label prefixes",
                f"'{tag_prefix}' and '{series_prefix}' overlap",
            ),
        )

    for prefix in (tag_prefix, series_prefix):
        if draft_label.startswith(prefix):
            return (
                False,
                format_validation_error(
                    "Draft label",
                    f"'{draft_label}' cannot start with label prefix '{prefix}'",
                ),
            )

    return (True, "")
