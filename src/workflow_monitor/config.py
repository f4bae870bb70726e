"""Process configuration for Workflow Monitor."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_CACHE_TTL_MS = 30_000
DEFAULT_CACHE_MAX_ENTRIES = 100
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_UI_URL = "http://localhost:3001/ui/index.html"


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass(frozen=True)
class MonitorConfig:
    """Settings read once at process start.

    The token is kept here and handed to the fetcher explicitly; nothing
    else reads it from the environment.
    """

    github_token: str = ""
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    default_repository: str | None = None
    graphql_url: str = DEFAULT_GRAPHQL_URL
    ui_url: str = DEFAULT_UI_URL

    def __repr__(self) -> str:
        token_state = "set" if self.github_token else "unset"
        return (
            f"MonitorConfig(github_token=<{token_state}>, cache_ttl_ms={self.cache_ttl_ms}, "
            f"cache_max_entries={self.cache_max_entries}, "
            f"default_repository={self.default_repository!r}, graphql_url={self.graphql_url!r})"
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MonitorConfig:
        """Build config from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Parsed configuration.

        Raises:
            ConfigError: If a numeric setting is not a positive integer.
        """
        env = os.environ if environ is None else environ

        return cls(
            github_token=env.get("GITHUB_TOKEN", "").strip(),
            cache_ttl_ms=_positive_int(env, "WORKFLOW_MONITOR_CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS),
            cache_max_entries=_positive_int(
                env, "WORKFLOW_MONITOR_CACHE_MAX_ENTRIES", DEFAULT_CACHE_MAX_ENTRIES
            ),
            default_repository=env.get("WORKFLOW_MONITOR_DEFAULT_REPO", "").strip() or None,
            graphql_url=env.get("WORKFLOW_MONITOR_GRAPHQL_URL", DEFAULT_GRAPHQL_URL),
            ui_url=env.get("WORKFLOW_MONITOR_UI_URL", DEFAULT_UI_URL),
        )


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value
