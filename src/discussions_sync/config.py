"""Connection configuration for the GitHub GraphQL API.

Reads connection settings from CLI args, environment variables, .env
files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_TOKEN: Bearer token (required). ``OGD_GITHUB_TOKEN`` is
        accepted with a deprecation warning.
    DISCUSSIONS_OWNER: Repository owner (required)
    DISCUSSIONS_REPO: Repository name (required)
    DISCUSSIONS_API_URL: GraphQL endpoint (optional, default: https://api.github.com/graphql)
    DISCUSSIONS_PAGE_SIZE: Discussions per search page (optional, default: 50)
    DISCUSSIONS_MAX_RETRIES: Retries per search page (optional, default: 2)
    DISCUSSIONS_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import PreconditionFailed
from .validators import validate_repo_part

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com/graphql"


@dataclass
class Config:
    token: str
    owner: str
    repo: str
    api_url: str = DEFAULT_API_URL
    debug: bool = False
    page_size: int = 50
    max_retries: int = 2

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def validate_config(config: Config) -> None:
    """Validate configuration values.

    Args:
        config: Config instance to validate.

    Raises:
        PreconditionFailed: If the token, owner or repo is empty.
        ValueError: If the URL or a numeric value is invalid.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    if not config.token.strip():
        raise PreconditionFailed(
            "GitHub token cannot be empty. Set GITHUB_TOKEN environment variable."
        )

    for field_name, value in (("owner", config.owner), ("repo", config.repo)):
        is_valid, reason = validate_repo_part(field_name, value)
        if not is_valid:
            raise PreconditionFailed(reason)

    if not (1 <= config.page_size <= 100):
        raise ValueError(
            f"Invalid page size {config.page_size}: must be a number between 1 and 100"
        )
    if not (0 <= config.max_retries <= 10):
        raise ValueError(
            f"Invalid max retries {config.max_retries}: must be a number between 0 and 10"
        )

    if parsed.scheme == "http":
        logger.warning(
            "WARNING: API URL uses plain http; the token is sent unencrypted."
        )


def _get_token_env() -> str | None:
    token = os.getenv("GITHUB_TOKEN")
    if token:
        return token
    token = os.getenv("OGD_GITHUB_TOKEN")
    if token:
        logger.warning(
            "OGD_GITHUB_TOKEN is deprecated; use GITHUB_TOKEN instead"
        )
    return token


def _get_int(env_key: str, fallback: object, default: int) -> int:
    raw = os.getenv(env_key)
    if raw is None:
        if fallback is None:
            return default
        raw = fallback
    try:
        return int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {env_key} '{raw}': must be a number") from None


def load_config(
    token: str | None = None,
    owner: str | None = None,
    repo: str | None = None,
    api_url: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        token: Override bearer token.
        owner: Override repository owner.
        repo: Override repository name.
        api_url: Override GraphQL endpoint.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Values from the YAML config ``github`` section.

    Returns:
        Validated Config instance.

    Raises:
        PreconditionFailed: If the token, owner or repo is missing after
            checking all sources.
        ValueError: If a value is malformed.
    """
    fb = yaml_fallbacks or {}

    final_token = token or _get_token_env() or fb.get("token")
    if not final_token:
        raise PreconditionFailed(
            "GitHub token not found. Set GITHUB_TOKEN environment variable, "
            "pass --token, or add 'token' to the github section of config.yml."
        )

    final_owner = owner or os.getenv("DISCUSSIONS_OWNER") or fb.get("owner")
    final_repo = repo or os.getenv("DISCUSSIONS_REPO") or fb.get("repo")
    if not final_owner or not final_repo:
        raise PreconditionFailed(
            "Repository owner and name are required. Set DISCUSSIONS_OWNER and "
            "DISCUSSIONS_REPO, pass --owner/--repo, or add them to config.yml."
        )

    final_url = (
        api_url
        or os.getenv("DISCUSSIONS_API_URL")
        or fb.get("api_url")
        or DEFAULT_API_URL
    )

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("DISCUSSIONS_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        token=final_token.strip(),
        owner=final_owner.strip(),
        repo=final_repo.strip(),
        api_url=final_url,
        debug=final_debug,
        page_size=_get_int("DISCUSSIONS_PAGE_SIZE", fb.get("page_size"), 50),
        max_retries=_get_int("DISCUSSIONS_MAX_RETRIES", fb.get("max_retries"), 2),
    )

    validate_config(config)

    return config
