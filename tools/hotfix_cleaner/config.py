"""Configuration for the hotfix branch cleaner."""

import os
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .host import DEFAULT_GITLAB_URL

DEFAULT_HOTFIX_PREFIX = "hotfix"

TRUE_VALUES = {"true", "1", "yes"}


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


def parse_group_filter(value: Optional[str]) -> FrozenSet[str]:
    """
    Parse a comma-separated list of group names.

    Names are trimmed and lowercased; empty entries are dropped.
    """
    if not value:
        return frozenset()
    return normalize_groups(value.split(","))


def normalize_groups(groups: Iterable[str]) -> FrozenSet[str]:
    return frozenset(g.strip().lower() for g in groups if g.strip())


def parse_bool(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() in TRUE_VALUES


@dataclass(frozen=True)
class CleanerConfig:
    """
    Settings read once at process start.

    Attributes:
        token: GitLab access token
        url: GitLab instance URL
        group_filter: Lowercase top-level groups to scan (empty means all)
        project_id: Restrict every run to this single project
        run_now: Run a cleanup immediately at startup
        hotfix_prefix: Branch name prefix that marks a hotfix branch
    """

    token: str
    url: str = DEFAULT_GITLAB_URL
    group_filter: FrozenSet[str] = field(default_factory=frozenset)
    project_id: Optional[str] = None
    run_now: bool = False
    hotfix_prefix: str = DEFAULT_HOTFIX_PREFIX

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True
    ) -> "CleanerConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read (defaults to os.environ)
            dotenv: Load a .env file into os.environ first

        Returns:
            CleanerConfig

        Raises:
            ConfigError: If GITLAB_TOKEN is missing
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True), override=False)
            environ = os.environ

        token = (environ.get("GITLAB_TOKEN") or "").strip()
        if not token:
            raise ConfigError("GITLAB_TOKEN is required in environment variables")

        return cls(
            token=token,
            url=(environ.get("GITLAB_URL") or "").strip() or DEFAULT_GITLAB_URL,
            group_filter=parse_group_filter(environ.get("GROUP_FILTER")),
            project_id=(environ.get("TEST_PROJECT_ID") or "").strip() or None,
            run_now=parse_bool(environ.get("TEST_RUN")),
            hotfix_prefix=(environ.get("HOTFIX_PREFIX") or "").strip() or DEFAULT_HOTFIX_PREFIX,
        )

    def with_overrides(self, **changes) -> "CleanerConfig":
        """Return a copy with the non-None values in changes applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
