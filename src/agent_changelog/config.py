"""Source registry and runtime settings.

The registry describes which tools we know about and how to fetch each
one. It lives in YAML so adding a tool does not need a code change:

    sources:
      codex:
        display_name: Codex
        kind: releases
        repo: openai/codex

The bundled sources.yaml is used unless AGENT_CHANGELOG_SOURCES (or the
CLI's --sources flag) points somewhere else. The file is read once at
startup and validated here; the resulting RegistryConfig is turned into
the immutable adapter registry by agent_changelog.sources.build_registry.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_SOURCES_PATH = Path(__file__).with_name("sources.yaml")
DEFAULT_TAG_PREFIXES = ["rust-v", "v"]
GITHUB_API_BASE = "https://api.github.com"


# ---------------------------------------------------------------------------
# Registry Configuration (YAML)
# ---------------------------------------------------------------------------


class SourceKind(str, Enum):
    """Which upstream format a source publishes.

    MARKDOWN: A raw CHANGELOG.md file with version headers
    RELEASES: GitHub Releases with free-text bodies
    """

    MARKDOWN = "markdown"
    RELEASES = "releases"


class SourceConfig(BaseModel):
    """Configuration for a single tool.

    Attributes:
        display_name: Human-readable tool name used in output
        kind: Upstream format
        url: Raw markdown document URL (markdown sources)
        header_pattern: Version header regex; group 1 is the version, an
                        optional group 2 is a YYYY-MM-DD date
        repo: GitHub repository in "owner/name" format
        path: Path of the changelog inside the repo, used to look up the
              last commit date when the newest entry has no date
        tag_prefixes: Prefixes stripped from release tags, longest first
        api_base: GitHub API base URL
    """

    display_name: str = Field(..., min_length=1)
    kind: SourceKind
    url: str | None = None
    header_pattern: str | None = None
    repo: str | None = None
    path: str | None = None
    tag_prefixes: list[str] = Field(default_factory=lambda: list(DEFAULT_TAG_PREFIXES))
    api_base: str = GITHUB_API_BASE

    @field_validator("header_pattern")
    @classmethod
    def check_header_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            compiled = re.compile(value, re.MULTILINE)
        except re.error as exc:
            raise ValueError(f"header_pattern does not compile: {exc}") from exc
        if not 1 <= compiled.groups <= 2:
            raise ValueError(
                "header_pattern needs a version group and at most one date group, "
                f"got {compiled.groups} groups"
            )
        return value

    @field_validator("tag_prefixes")
    @classmethod
    def longest_prefix_first(cls, value: list[str]) -> list[str]:
        # "rust-v" must be tried before "v"
        return sorted((p for p in value if p), key=len, reverse=True)

    @model_validator(mode="after")
    def check_kind_fields(self) -> "SourceConfig":
        """Ensure each kind has the fields its adapter needs."""
        if self.kind == SourceKind.MARKDOWN:
            if not self.url or not self.header_pattern:
                raise ValueError("markdown sources need both url and header_pattern")
        elif not self.repo:
            raise ValueError("releases sources need repo")
        return self


class RegistryConfig(BaseModel):
    """Top-level configuration loaded from YAML."""

    sources: dict[str, SourceConfig] = Field(..., min_length=1)


def load_registry_config(path: str | Path | None = None) -> RegistryConfig:
    """Load and validate a YAML registry file.

    Args:
        path: Path to the YAML file. The bundled sources.yaml when None.

    Returns:
        A validated RegistryConfig.

    Raises:
        ValueError: If the file is missing, is not valid YAML, or fails
                    validation.
    """
    config_path = Path(path) if path is not None else DEFAULT_SOURCES_PATH
    if not config_path.exists():
        raise ValueError(f"Sources file not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

    try:
        return RegistryConfig.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Invalid sources config in {config_path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Runtime Settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    """Process-wide settings, resolved once at startup.

    Attributes:
        sources_path: Registry YAML; None means the bundled file
        http_timeout: Per-request timeout in seconds
        task_timeout: Deadline for one source in aggregate views, in seconds
        environment: "development" or "production" (log rendering)
        log_level: Logging level name
    """

    sources_path: Path | None = None
    http_timeout: float = Field(30.0, gt=0)
    task_timeout: float = Field(60.0, gt=0)
    environment: str = "development"
    log_level: str = "ERROR"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        values: dict[str, object] = {
            "environment": env.get("ENVIRONMENT", "development"),
            "log_level": env.get("LOG_LEVEL", "ERROR"),
        }
        if env.get("AGENT_CHANGELOG_SOURCES"):
            values["sources_path"] = env["AGENT_CHANGELOG_SOURCES"]
        if env.get("AGENT_CHANGELOG_HTTP_TIMEOUT"):
            values["http_timeout"] = env["AGENT_CHANGELOG_HTTP_TIMEOUT"]
        if env.get("AGENT_CHANGELOG_TASK_TIMEOUT"):
            values["task_timeout"] = env["AGENT_CHANGELOG_TASK_TIMEOUT"]
        return cls.model_validate(values)
