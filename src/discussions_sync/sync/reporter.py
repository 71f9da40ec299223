"""Plan and report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_plan_preview`` -- planned mutations grouped by class.
- ``format_sync_report`` -- full post-run summary.
- ``plan_to_json`` / ``report_to_json`` -- structured dicts for ``--json``
  and MCP ``structuredContent`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .models import (
    AttachLabels,
    CreateLabel,
    CreateLocal,
    CreateRemote,
    MutationClass,
    UpdateLocalMetadata,
    UpdateRemoteLabels,
    UpdateRemoteMetadata,
)

if TYPE_CHECKING:
    from .models import Mutation, MutationPlan, SyncReport

_CLASS_TITLES = {
    MutationClass.NEW: "New documents",
    MutationClass.FRONTMATTER: "Front matter updates",
    MutationClass.LABELS: "Label changes",
    MutationClass.CONTENT: "Content updates",
}

# Snapshot fields carried for execution only.
_BULKY_FIELDS = {"original_body", "original_text", "body", "text"}


def describe_mutation(mutation: Mutation) -> str:
    """One-line description of a planned mutation."""
    if isinstance(mutation, CreateLabel):
        return f"create label '{mutation.name}'"
    if isinstance(mutation, CreateRemote):
        return f"create discussion '{mutation.title}' from {mutation.local_path}"
    if isinstance(mutation, AttachLabels):
        return f"attach {', '.join(mutation.label_names)} to '{mutation.slug}'"
    if isinstance(mutation, UpdateRemoteLabels):
        parts = []
        if mutation.add_names:
            parts.append("+" + ", +".join(mutation.add_names))
        if mutation.remove_names:
            parts.append("-" + ", -".join(mutation.remove_names))
        return f"labels of '{mutation.slug}': {' '.join(parts)}"
    if isinstance(mutation, CreateLocal):
        return f"create {mutation.local_path}"
    if isinstance(mutation, (UpdateRemoteMetadata, UpdateLocalMetadata)):
        keys = list(mutation.changes)
        if isinstance(mutation, UpdateLocalMetadata):
            keys += [f"-{key}" for key in mutation.removals]
        return f"front matter of {mutation.describe()}: {', '.join(keys)}"
    return f"body of {mutation.describe()}"


# ------------------------------------------------------------------
# Plan preview
# ------------------------------------------------------------------


def format_plan_preview(plan: MutationPlan) -> str:
    """Format a plan grouped by mutation class.

    Args:
        plan: The plan to preview.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append(f"Planned {plan.direction.value} -- no changes made yet")
    lines.append("")

    for mutation_class, title in _CLASS_TITLES.items():
        group = plan.group(mutation_class)
        if not group:
            continue
        lines.append(f"[{title}]")
        for mutation in group:
            lines.append(f"  {describe_mutation(mutation)}")
        lines.append("")

    if plan.warnings:
        lines.append("Warnings:")
        for warning in plan.warnings:
            lines.append(f"  {warning}")
        lines.append("")

    if plan.is_empty:
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Sync report ({report.direction.value})"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    created = len(report.created_remote) + len(report.created_local)
    updated = len(report.updated_remote) + len(report.updated_local)
    lines.append(
        f"Ran {len(report.results)} operations: "
        f"{created} created, {updated} updated, "
        f"{len(report.labels_changed)} label changes, "
        f"{len(report.errors)} errors"
    )
    lines.append("")

    if report.created_remote:
        lines.append("Created (remote):")
        for r in report.created_remote:
            lines.append(f"  {r.local_path} -> {r.remote_id or r.slug}")
        lines.append("")

    if report.created_local:
        lines.append("Created (local):")
        for r in report.created_local:
            lines.append(f"  {r.remote_id} -> {r.local_path}")
        lines.append("")

    if report.updated_remote:
        lines.append("Updated (remote):")
        for r in report.updated_remote:
            lines.append(f"  {r.local_path} -> {r.remote_id} [{r.mutation_class.value}]")
        lines.append("")

    if report.updated_local:
        lines.append("Updated (local):")
        for r in report.updated_local:
            lines.append(f"  {r.remote_id} -> {r.local_path} [{r.mutation_class.value}]")
        lines.append("")

    if report.declined:
        lines.append(
            "Declined: " + ", ".join(c.value for c in report.declined)
        )
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.slug} ({r.kind.value}): {r.error}")
        lines.append("")

    if report.warnings:
        lines.append("Warnings:")
        for warning in report.warnings:
            lines.append(f"  {warning}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def mutation_to_json(mutation: Mutation) -> dict[str, Any]:
    """Dump a mutation with its subclass fields, minus text snapshots."""
    return mutation.model_dump(mode="json", exclude=_BULKY_FIELDS)


def plan_to_json(plan: MutationPlan) -> dict:
    """Convert a plan to a structured dict for JSON serialisation."""
    return {
        "direction": plan.direction.value,
        "counts": plan.counts(),
        "mutations": {
            mutation_class.value: [
                mutation_to_json(m) for m in plan.group(mutation_class)
            ]
            for mutation_class in _CLASS_TITLES
        },
        "warnings": list(plan.warnings),
    }


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.

    Args:
        report: The sync report.

    Returns:
        Dict with run info, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "slug": r.slug,
            "kind": r.kind.value,
            "class": r.mutation_class.value,
            "local_path": r.local_path,
            "remote_id": r.remote_id,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "direction": report.direction.value,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "created_remote": len(report.created_remote),
            "created_local": len(report.created_local),
            "updated_remote": len(report.updated_remote),
            "updated_local": len(report.updated_local),
            "label_changes": len(report.labels_changed),
            "errors": len(report.errors),
        },
        "declined": [c.value for c in report.declined],
        "warnings": list(report.warnings),
        "results": results_list,
    }
