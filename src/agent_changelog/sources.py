"""Source adapters and the source registry.

An adapter knows how to turn one tool's upstream data into a list of
ChangelogEntry, newest first. There are two families:

- MarkdownSource: a raw CHANGELOG.md, parsed on version headers. When the
  newest entry carries no date, the last commit that touched the file
  supplies one. Older entries stay undated.
- ReleasesSource: the GitHub Releases API. Tags are normalized ("rust-v"
  and "v" prefixes stripped), bodies are split into sections, and the
  published timestamp is taken as-is.

Adapters raise FetchError subclasses for network and payload problems
and EmptyResultError when nothing could be parsed. They never retry.

The Registry maps source keys to adapters. It is built once from the
validated YAML config and is read-only afterwards, so concurrent tasks
can share it freely.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from agent_changelog.config import (
    DEFAULT_TAG_PREFIXES,
    RegistryConfig,
    SourceConfig,
    SourceKind,
    load_registry_config,
)
from agent_changelog.errors import (
    DecodeError,
    EmptyResultError,
    FetchError,
    NotFoundError,
)
from agent_changelog.fetcher import FetcherProtocol
from agent_changelog.logging_config import get_logger
from agent_changelog.parsers import parse_markdown_changelog, parse_release_body
from agent_changelog.parsers.markdown import compile_header_pattern
from agent_changelog.schemas import ChangelogEntry, GitHubCommit, GitHubRelease

logger = get_logger(__name__)

_RELEASES = TypeAdapter(list[GitHubRelease])
_COMMITS = TypeAdapter(list[GitHubCommit])


def normalize_version(tag: str, prefixes: Sequence[str] = DEFAULT_TAG_PREFIXES) -> str:
    """Strip at most one known prefix from a release tag.

    Longer prefixes are tried first, so "rust-v0.5.0" becomes "0.5.0"
    rather than being left alone because it does not start with "v".
    Tags without a known prefix are returned unchanged (minus whitespace).
    """
    tag = tag.strip()
    for prefix in sorted(prefixes, key=len, reverse=True):
        if prefix and tag.startswith(prefix):
            return tag[len(prefix):]
    return tag


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class ChangelogSource(Protocol):
    """Anything that can fetch the changelog entries of one tool."""

    key: str
    display_name: str

    async def fetch(self, fetcher: FetcherProtocol) -> list[ChangelogEntry]:
        """Fetch and parse all available entries, newest first.

        Raises:
            FetchError: Transport, status or decode failure
            EmptyResultError: Nothing could be parsed
        """
        ...


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkdownSource:
    """Adapter for tools that publish a raw markdown changelog."""

    key: str
    config: SourceConfig
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_pattern", compile_header_pattern(self.config.header_pattern or "")
        )

    @property
    def display_name(self) -> str:
        return self.config.display_name

    async def fetch(self, fetcher: FetcherProtocol) -> list[ChangelogEntry]:
        text = await fetcher.get_text(self.config.url or "")
        entries = parse_markdown_changelog(text, self._pattern)
        if not entries:
            raise EmptyResultError(f"No changelog entries found for {self.display_name}")

        newest = entries[0]
        if newest.released_at is None:
            released_at = await self._last_commit_date(fetcher)
            if released_at is not None:
                entries[0] = newest.model_copy(update={"released_at": released_at})
        return entries

    async def _last_commit_date(self, fetcher: FetcherProtocol) -> datetime | None:
        """Date of the last commit touching the changelog file, if known.

        Failures here are logged and swallowed: an undated entry is still
        a useful entry.
        """
        if not self.config.repo or not self.config.path:
            return None

        url = f"{self.config.api_base}/repos/{self.config.repo}/commits"
        try:
            payload = await fetcher.get_json(
                url, params={"path": self.config.path, "per_page": 1}
            )
            commits = _COMMITS.validate_python(payload)
        except (FetchError, ValidationError) as exc:
            logger.warning(
                "commit_date_fallback_failed",
                source=self.key,
                error=str(exc),
            )
            return None

        if not commits:
            return None
        return commits[0].commit.committer.date


@dataclass(frozen=True)
class ReleasesSource:
    """Adapter for tools that publish GitHub Releases."""

    key: str
    config: SourceConfig

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def releases_url(self) -> str:
        return f"{self.config.api_base}/repos/{self.config.repo}/releases"

    async def fetch(self, fetcher: FetcherProtocol) -> list[ChangelogEntry]:
        payload = await fetcher.get_json(self.releases_url)
        try:
            releases = _RELEASES.validate_python(payload)
        except ValidationError as exc:
            raise DecodeError(
                f"Unexpected releases payload from {self.releases_url}: {exc}"
            ) from exc

        entries: list[ChangelogEntry] = []
        seen: set[str] = set()
        for release in releases:
            version = normalize_version(release.tag_name, self.config.tag_prefixes)
            if not version or version in seen:
                logger.debug("release_skipped", source=self.key, tag=release.tag_name)
                continue
            seen.add(version)

            sections, ungrouped = parse_release_body(release.body)
            entries.append(
                ChangelogEntry(
                    version=version,
                    released_at=release.published_at,
                    sections=sections,
                    changes=ungrouped,
                )
            )

        if not entries:
            raise EmptyResultError(f"No releases found for {self.display_name}")
        return entries


def build_source(key: str, config: SourceConfig) -> ChangelogSource:
    if config.kind == SourceKind.MARKDOWN:
        return MarkdownSource(key=key, config=config)
    return ReleasesSource(key=key, config=config)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class Registry(Mapping[str, ChangelogSource]):
    """Read-only mapping of source key -> adapter, in config order."""

    def __init__(self, sources: Mapping[str, ChangelogSource]) -> None:
        self._sources = MappingProxyType(dict(sources))

    def __getitem__(self, key: str) -> ChangelogSource:
        return self._sources[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def get_source(self, key: str) -> ChangelogSource:
        """Look up a source by key.

        Raises:
            NotFoundError: If the key is not registered
        """
        try:
            return self._sources[key]
        except KeyError:
            available = ", ".join(sorted(self._sources))
            raise NotFoundError(
                f"Unknown source: {key} (available: {available})"
            ) from None


def build_registry(config: RegistryConfig) -> Registry:
    return Registry(
        {key: build_source(key, source) for key, source in config.sources.items()}
    )


def load_registry(path: str | Path | None = None) -> Registry:
    """Load the YAML registry (bundled default when path is None) and build it."""
    return build_registry(load_registry_config(path))
