"""Command line interface: ``discussions-sync {upload,download,plan,init}``.

Each run asks once per non-empty mutation class before applying it,
unless ``--yes`` or ``--accept`` answers up front.  Prompts and status
events go to stderr; reports go to stdout (as JSON with ``--json``).
"""

import argparse
import json
import logging
import sys
from typing import TextIO

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import load_config
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import apply_sync_overrides, build_config, github_fallbacks
from .core.client import GitHubClient
from .errors import SyncError
from .logger import setup_logging
from .sync.engine import ConfirmCallback, SyncEngine
from .sync.models import Direction, MutationClass
from .sync.reporter import (
    format_plan_preview,
    format_sync_report,
    plan_to_json,
    report_to_json,
)

logger = logging.getLogger(__name__)


def parse_accept(value: str) -> set[MutationClass]:
    """Parse ``--accept new,content`` (or ``all``) into mutation classes."""
    names = [part.strip().lower() for part in value.split(",") if part.strip()]
    if names == ["all"]:
        return set(MutationClass)
    classes: set[MutationClass] = set()
    for name in names:
        try:
            classes.add(MutationClass(name))
        except ValueError:
            valid = ", ".join(c.value for c in MutationClass)
            raise argparse.ArgumentTypeError(
                f"unknown class '{name}' (choose from {valid}, or all)"
            ) from None
    return classes


def make_confirm(
    accept: set[MutationClass] | None = None,
    assume_yes: bool = False,
    stdin: TextIO | None = None,
    stderr: TextIO | None = None,
) -> ConfirmCallback:
    """Build the confirmation callback for a run.

    ``--yes`` accepts everything, ``--accept`` accepts exactly the listed
    classes, otherwise the user is asked on stderr.  Without a terminal on
    stdin, unanswered questions are declined.
    """
    if assume_yes:
        return lambda mutation_class, question: True
    if accept is not None:
        return lambda mutation_class, question: mutation_class in accept

    def ask(mutation_class: MutationClass, question: str) -> bool:
        in_stream = stdin or sys.stdin
        out_stream = stderr or sys.stderr
        if not in_stream.isatty():
            print(f"{question} [y/N] declined (no terminal)", file=out_stream)
            return False
        print(f"{question} [y/N] ", end="", file=out_stream, flush=True)
        answer = in_stream.readline()
        return answer.strip().lower() in ("y", "yes")

    return ask


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discussions-sync",
        description="Sync local markdown articles with GitHub Discussions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what an upload would change
  discussions-sync plan upload

  # Publish new articles only, without prompting
  discussions-sync upload --accept new

  # Pull everything from GitHub, answering yes to every question
  discussions-sync download --yes

  # Machine-readable report
  discussions-sync upload --dry-run --json
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"discussions-sync version {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    conn = common.add_argument_group("connection")
    conn.add_argument(
        "--token",
        help="GitHub token (visible in process list -- prefer GITHUB_TOKEN env var)",
    )
    conn.add_argument("--owner", help="Repository owner (overrides DISCUSSIONS_OWNER)")
    conn.add_argument("--repo", help="Repository name (overrides DISCUSSIONS_REPO)")
    conn.add_argument("--api-url", help="GraphQL endpoint (overrides DISCUSSIONS_API_URL)")

    sync_group = common.add_argument_group("sync")
    sync_group.add_argument(
        "--root", help="Articles directory (overrides sync.articles_root)"
    )
    sync_group.add_argument(
        "--category", help="Discussion category (overrides sync.category_name)"
    )
    sync_group.add_argument(
        "--since",
        metavar="YYYY-MM-DD",
        help="Download only discussions updated on or after this date "
        "(overrides sync.updated_since)",
    )
    sync_group.add_argument(
        "--json",
        action="store_true",
        help="Print the plan or report as JSON",
    )

    log_group = common.add_argument_group("logging")
    log_group.add_argument("--debug", action="store_true", help="Enable debug logging")
    log_group.add_argument("--log-file", help="Also write logs to this file")
    log_group.add_argument(
        "--debug-format",
        choices=["text", "json"],
        default="text",
        help="Log line format (default: text)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    for direction, help_text in (
        (Direction.UPLOAD, "Make discussions match local articles"),
        (Direction.DOWNLOAD, "Make local articles match discussions"),
    ):
        sub = commands.add_parser(
            direction.value, parents=[common], help=help_text
        )
        sub.add_argument(
            "--dry-run",
            action="store_true",
            help="Report the accepted changes without applying them",
        )
        gate = sub.add_mutually_exclusive_group()
        gate.add_argument(
            "--yes", "-y", action="store_true", help="Accept every class"
        )
        gate.add_argument(
            "--accept",
            type=parse_accept,
            metavar="CLASS[,CLASS]",
            help="Accept only these classes: new, frontmatter, labels, content, or all",
        )

    plan = commands.add_parser(
        "plan", parents=[common], help="Preview the mutations of a run"
    )
    plan.add_argument(
        "direction",
        choices=[d.value for d in Direction],
        help="upload (local wins) or download (GitHub wins)",
    )

    commands.add_parser(
        "init", help="Create a starter .discussions_sync/config.yml"
    )

    return parser


def _build_engine(args: argparse.Namespace) -> SyncEngine:
    """Load configuration from all sources and build the engine."""
    load_dotenv()
    unified = build_config(load_hierarchical_config())

    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.debug_format,
        level=unified.logging.level,
    )

    config = load_config(
        token=args.token,
        owner=args.owner,
        repo=args.repo,
        api_url=args.api_url,
        debug=args.debug,
        yaml_fallbacks=github_fallbacks(unified),
    )
    settings = apply_sync_overrides(
        unified.sync,
        {
            "articles_root": args.root,
            "category_name": args.category,
            "updated_since": args.since,
        },
    )
    logger.debug(
        "Syncing %s with %s (category '%s')",
        settings.articles_root,
        config.repository,
        settings.category_name,
    )
    return SyncEngine(
        client=GitHubClient(config),
        settings=settings,
        on_status=lambda message: print(message, file=sys.stderr),
    )


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    args = build_parser().parse_args(argv)

    if args.command == "init":
        print(f"Config file: {ensure_config()}")
        return 0

    try:
        engine = _build_engine(args)

        if args.command == "plan":
            plan = engine.preview(Direction(args.direction))
            if args.json:
                print(json.dumps(plan_to_json(plan), indent=2))
            else:
                print(format_plan_preview(plan))
            return 0

        confirm = make_confirm(accept=args.accept, assume_yes=args.yes)
        report = engine.run(
            Direction(args.command), confirm=confirm, dry_run=args.dry_run
        )
        if args.json:
            print(json.dumps(report_to_json(report), indent=2))
        else:
            print(format_sync_report(report))
        return 1 if report.errors else 0

    except (SyncError, ValueError, OSError, yaml.YAMLError) as exc:
        logger.debug("Run failed", exc_info=True)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
