"""
Config file discovery and loading for discussions-sync.

Settings come from YAML files found by convention (explicit path, project
directory, then the user's config directory).  Files may pull sections from
other files with ``!include`` and reference the environment with
``${VAR}`` / ``${VAR:-default}``.

Usage:
    from discussions_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".discussions_sync"
CONFIG_ENV_VAR = "DISCUSSIONS_SYNC_CONFIG"

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<default>.*?))?\}")


# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in *value*.

    An unset or empty variable expands to its default, or to ``""`` when no
    default is given.  An unterminated ``${`` is kept as written.
    """

    def _expand(match: re.Match) -> str:
        return os.environ.get(match["name"]) or match["default"] or ""

    return _ENV_REFERENCE.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(item) for key, item in obj.items()}
    return obj


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class _IncludeLoader(yaml.SafeLoader):
    """SafeLoader that also understands ``!include other.yml``.

    The tag is registered on this subclass only.  ``chain`` holds the files
    currently being loaded, outermost first.
    """

    def __init__(self, stream, chain: list[Path]) -> None:
        super().__init__(stream)
        self.chain = chain


def _construct_include(loader: _IncludeLoader, node: yaml.ScalarNode) -> Any:
    current = loader.chain[-1]
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = current.parent / target
    target = target.resolve()

    if target in loader.chain:
        cycle = " -> ".join(str(p) for p in [*loader.chain, target])
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {current})"
        )
    return _load_yaml_with_includes(target, _chain=loader.chain)


_IncludeLoader.add_constructor("!include", _construct_include)


def _load_yaml_with_includes(path: Path, *, _chain: list[Path] | None = None) -> Any:
    """Parse one YAML file, following its ``!include`` tags."""
    path = path.resolve()
    with open(path, encoding="utf-8") as fh:
        loader = _IncludeLoader(fh, [*(_chain or []), path])
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _candidate_paths() -> list[Path]:
    candidates = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())
    project_dir = Path.cwd() / CONFIG_DIR_NAME
    candidates += [project_dir / "config.yml", project_dir / "config.yaml"]
    candidates.append(Path.home() / ".config" / "discussions_sync" / "config.yml")
    return candidates


def discover_config_files() -> list[Path]:
    """Existing config files, highest precedence first.

    Precedence: ``$DISCUSSIONS_SYNC_CONFIG``, ``./.discussions_sync/config.yml``,
    ``./.discussions_sync/config.yaml``, ``~/.config/discussions_sync/config.yml``.
    """
    return [path for path in _candidate_paths() if path.exists()]


def resolve_config_path() -> Path:
    """The file ``init`` would use: the first existing one, else the project path."""
    found = discover_config_files()
    return found[0] if found else Path.cwd() / CONFIG_DIR_NAME / "config.yml"


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# discussions-sync configuration
#
# Connection settings can also be set via environment variables:
#   GITHUB_TOKEN, DISCUSSIONS_OWNER, DISCUSSIONS_REPO
#
# github:
#   owner: octocat
#   repo: blog
#   token: ${GITHUB_TOKEN}
#   page_size: 50
#
# sync:
#   articles_root: Blog
#   category_name: Blog Posts
#   draft_label: state/draft
#   tag_prefix: tag/
#   series_prefix: series/
#   skip_folder_note: false
#   exclude:
#     - "templates/*"
#   updated_since: 2024-01-01    # download only
#   download_labels:             # download only
#     - tag/published
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to write the starter file.  Defaults to
            ``resolve_config_path()``.
    """
    found = discover_config_files()
    if found:
        logger.debug("Using existing config %s", found[0])
        return found[0]

    path = target or resolve_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config to %s", path)
    return path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one raw dict.

    Files are applied from lowest to highest precedence and each top-level
    section replaces the same section from earlier files as a whole, so a
    project ``sync:`` block hides the user's global one.  Environment
    references are expanded last.  No files gives ``{}``.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Reading config %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.error("Could not load config %s: %s", path, exc)
            raise

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring %s: expected a mapping at the top level, got %s",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)

    if not merged:
        logger.debug("No config sections found; using defaults")
    return _interpolate_recursive(merged)
