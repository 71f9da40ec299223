"""Unified configuration schema for discussions_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the GitHub connection, sync behaviour, and logging.

Usage:
    from discussions_sync.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    settings = unified.sync
"""

from __future__ import annotations

import datetime
import logging

from pydantic import BaseModel, Field, field_validator, model_validator

from .sync.models import LabelPrefixes
from .validators import validate_label_prefixes

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    token: str | None = Field(default=None, description="Bearer token")
    owner: str | None = Field(default=None, description="Repository owner")
    repo: str | None = Field(default=None, description="Repository name")
    api_url: str | None = Field(
        default=None, description="GraphQL endpoint URL"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    page_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Discussions fetched per search page (1-100)",
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries per search page on transport errors (0-10)",
    )

    model_config = {"frozen": True}


class SyncSettings(BaseModel):
    """Where articles live and how classifications map to labels.

    Attributes:
        articles_root: Directory holding the markdown articles.
        category_name: Discussion category the articles are published to.
        draft_label: Literal label marking a draft.
        tag_prefix: Prefix rendering each tag as a label.
        series_prefix: Prefix rendering the series name as a label.
        skip_folder_note: Skip ``<root>/<root name>.md`` (folder notes).
        exclude: Glob patterns (relative to the root) to ignore.
        label_color: Hex color used for labels created by the sync.
        updated_since: Download only discussions updated on or after this
            date (``YYYY-MM-DD``).
        download_labels: Download only discussions carrying all of these
            labels.
    """

    articles_root: str = Field(default="Blog", description="Articles directory")
    category_name: str = Field(
        default="Blog Posts", description="Discussion category name"
    )
    draft_label: str = Field(default="state/draft", description="Draft label")
    tag_prefix: str = Field(default="tag/", description="Tag label prefix")
    series_prefix: str = Field(
        default="series/", description="Series label prefix"
    )
    skip_folder_note: bool = Field(
        default=False,
        description="Ignore the folder note named after the articles root",
    )
    exclude: list[str] = Field(
        default_factory=list, description="Glob patterns to ignore"
    )
    label_color: str = Field(
        default="ededed",
        pattern=r"^[0-9a-fA-F]{6}$",
        description="Color for created labels",
    )
    updated_since: str | None = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Download only discussions updated on or after this date",
    )
    download_labels: list[str] = Field(
        default_factory=list,
        description="Download only discussions carrying all of these labels",
    )

    model_config = {"frozen": True}

    @field_validator("updated_since", mode="before")
    @classmethod
    def _date_to_text(cls, value):
        # An unquoted YAML date arrives as a date object.
        if isinstance(value, datetime.date):
            return value.strftime("%Y-%m-%d")
        return value

    @model_validator(mode="after")
    def _check_prefixes(self) -> SyncSettings:
        is_valid, reason = validate_label_prefixes(
            self.tag_prefix, self.series_prefix, self.draft_label
        )
        if not is_valid:
            raise ValueError(reason)
        return self

    @property
    def prefixes(self) -> LabelPrefixes:
        return LabelPrefixes(
            tag=self.tag_prefix,
            series=self.series_prefix,
            draft=self.draft_label,
        )


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def github_fallbacks(unified: UnifiedConfig) -> dict:
    """Non-None ``github`` values, for use as ``load_config()`` fallbacks."""
    return {
        k: v for k, v in unified.github.model_dump().items() if v is not None
    }


def apply_sync_overrides(
    settings: SyncSettings, overrides: dict | None = None
) -> SyncSettings:
    """Return *settings* with non-None CLI overrides applied."""
    values = {k: v for k, v in (overrides or {}).items() if v is not None}
    if not values:
        return settings
    return SyncSettings(**{**settings.model_dump(), **values})
