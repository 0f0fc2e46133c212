"""Changelog service: the single entry point for the CLI and the API.

Ties together the pieces:
- Registry (sources.py) to resolve a source key
- Fetcher (fetcher.py) to talk to the network
- Aggregator (aggregator.py) for the cross-source views

Single-source calls run sequentially: fetch, parse, select. Any error is
fatal to the call. The latest/status views fan out to every source and
tolerate partial failure; see aggregator.py.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from agent_changelog import aggregator
from agent_changelog.aggregator import LatestReport, StatusReport
from agent_changelog.config import Settings
from agent_changelog.errors import ChangelogError, EmptyResultError, NotFoundError
from agent_changelog.fetcher import FetcherProtocol, HTTPFetcher
from agent_changelog.logging_config import get_logger
from agent_changelog.schemas import ChangelogEntry
from agent_changelog.sources import Registry, load_registry

logger = get_logger(__name__)


def select_entry(
    entries: Sequence[ChangelogEntry],
    version: str | None = None,
) -> ChangelogEntry:
    """Pick the newest entry, or the one whose version matches exactly.

    Raises:
        EmptyResultError: If there are no entries at all
        NotFoundError: If a version was requested and is absent
    """
    if not entries:
        raise EmptyResultError("No changelog entries found")
    if version is None:
        return entries[0]
    for entry in entries:
        if entry.version == version:
            return entry
    raise NotFoundError(f"Version {version} not found")


class ChangelogService:
    """Fetches, selects and aggregates changelog entries.

    Stateless apart from its collaborators; nothing fetched is kept
    between calls.

    Usage:
        service = ChangelogService()
        entry = await service.entry("codex")
        report = await service.status()
    """

    def __init__(
        self,
        registry: Registry | None = None,
        fetcher: FetcherProtocol | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service with its dependencies.

        Args:
            registry: Source registry. Loaded from settings.sources_path
                      (or the bundled file) if None.
            fetcher: HTTP fetcher. An HTTPFetcher if None.
            settings: Runtime settings. Defaults if None.
        """
        self.settings = settings or Settings()
        self.registry = (
            registry if registry is not None else load_registry(self.settings.sources_path)
        )
        self.fetcher = fetcher or HTTPFetcher(timeout=self.settings.http_timeout)

    def describe_sources(self) -> list[dict[str, str]]:
        return [
            {"key": key, "display_name": source.display_name}
            for key, source in self.registry.items()
        ]

    def display_name(self, key: str) -> str:
        return self.registry.get_source(key).display_name

    async def entries(self, key: str) -> list[ChangelogEntry]:
        """All entries of one source, newest first.

        Raises:
            NotFoundError: Unknown source key (nothing is fetched)
            FetchError: Transport, status or decode failure
            EmptyResultError: The source produced no entries
        """
        source = self.registry.get_source(key)
        logger.info("fetch_started", source=key)
        try:
            entries = await source.fetch(self.fetcher)
        except ChangelogError as e:
            logger.warning("fetch_failed", source=key, error=str(e))
            raise
        logger.info("fetch_complete", source=key, entries_count=len(entries))
        return entries

    async def entry(self, key: str, version: str | None = None) -> ChangelogEntry:
        return select_entry(await self.entries(key), version)

    async def versions(self, key: str) -> list[str]:
        return [entry.version for entry in await self.entries(key)]

    async def latest(self, now: datetime | None = None) -> LatestReport:
        return await aggregator.latest(
            self.registry,
            self.fetcher,
            now=now,
            task_timeout=self.settings.task_timeout,
        )

    async def status(self, now: datetime | None = None) -> StatusReport:
        return await aggregator.status(
            self.registry,
            self.fetcher,
            now=now,
            task_timeout=self.settings.task_timeout,
        )
