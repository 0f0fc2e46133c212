"""Cross-source aggregation for the "latest" and "status" views.

Both views fetch every registered source concurrently: one asyncio task
per source, joined with asyncio.gather. Each task catches its own
ChangelogError (and its deadline) and hands back a SourceFailure instead
of raising, so one broken upstream never takes the whole view down.
Results are collected only after the join, and the final order is always
re-derived from timestamps and names, never from completion order.

latest: newest entry of each source, kept only if it has a timestamp
        inside the trailing 24h window, sorted newest first.
status: one StatusRow per source with latest/previous version, relative
        age, 24h flag and average release cadence.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from agent_changelog.errors import ChangelogError, EmptyResultError, TransportError
from agent_changelog.fetcher import FetcherProtocol
from agent_changelog.logging_config import get_logger
from agent_changelog.schemas import ChangelogEntry, StatusRow
from agent_changelog.sources import ChangelogSource, Registry

logger = get_logger(__name__)

T = TypeVar("T")

RECENT_WINDOW = timedelta(hours=24)
STATUS_ENTRY_LIMIT = 10
CADENCE_SAMPLE = 10
PLACEHOLDER = "-"

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY


# ---------------------------------------------------------------------------
# Result Types
# ---------------------------------------------------------------------------


@dataclass
class SourceFailure:
    """A source that was excluded from an aggregate view.

    Attributes:
        key: Registry key of the source
        display_name: Human-readable tool name
        error: What went wrong
    """

    key: str
    display_name: str
    error: ChangelogError

    @property
    def message(self) -> str:
        return f"{self.display_name}: {self.error}"


@dataclass
class LatestReport:
    entries: list[ChangelogEntry] = field(default_factory=list)
    failures: list[SourceFailure] = field(default_factory=list)


@dataclass
class StatusReport:
    rows: list[StatusRow] = field(default_factory=list)
    failures: list[SourceFailure] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------


async def _fetch_one(
    source: ChangelogSource,
    fetcher: FetcherProtocol,
    task_timeout: float | None,
) -> list[ChangelogEntry] | SourceFailure:
    try:
        if task_timeout is None:
            return await source.fetch(fetcher)
        return await asyncio.wait_for(source.fetch(fetcher), timeout=task_timeout)
    except asyncio.TimeoutError:
        error: ChangelogError = TransportError(
            f"Timed out after {task_timeout:g}s"
        )
    except ChangelogError as exc:
        error = exc

    logger.warning("source_fetch_failed", source=source.key, error=str(error))
    return SourceFailure(key=source.key, display_name=source.display_name, error=error)


async def fetch_all(
    registry: Registry,
    fetcher: FetcherProtocol,
    task_timeout: float | None = None,
) -> tuple[dict[str, list[ChangelogEntry]], list[SourceFailure]]:
    """Fetch every registered source concurrently.

    Args:
        registry: Sources to fetch
        fetcher: Shared fetcher (stateless per call)
        task_timeout: Deadline per source in seconds; None waits forever

    Returns:
        (entries by source key in registry order, failures)

    Raises:
        EmptyResultError: If no source returned any entries
    """
    keys = list(registry)
    outcomes = await asyncio.gather(
        *(_fetch_one(registry[key], fetcher, task_timeout) for key in keys)
    )

    results: dict[str, list[ChangelogEntry]] = {}
    failures: list[SourceFailure] = []
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, SourceFailure):
            failures.append(outcome)
        else:
            results[key] = outcome

    if not results:
        detail = "; ".join(f.message for f in failures) or "no sources registered"
        raise EmptyResultError(f"No source returned any entries ({detail})")
    return results, failures


# ---------------------------------------------------------------------------
# Time Helpers
# ---------------------------------------------------------------------------


def _bucket(delta: timedelta) -> tuple[int, str]:
    seconds = max(delta.total_seconds(), 0.0)
    if seconds < HOUR:
        return int(seconds // MINUTE), "m"
    if seconds < DAY:
        return int(seconds // HOUR), "h"
    if seconds < WEEK:
        return int(seconds // DAY), "d"
    if seconds < 4 * WEEK:
        return int(seconds // WEEK), "w"
    return max(int(seconds // MONTH), 1), "mo"


def format_ago(delta: timedelta) -> str:
    """Human-relative age: "5m ago", "3h ago", "2d ago", "1w ago", "4mo ago"."""
    amount, unit = _bucket(delta)
    return f"{amount}{unit} ago"


def format_cadence(delta: timedelta | None) -> str:
    """Approximate magnitude of a release interval: "~1d", "~2w"."""
    if delta is None:
        return PLACEHOLDER
    amount, unit = _bucket(abs(delta))
    return f"~{amount}{unit}"


def is_recent(
    released_at: datetime | None,
    now: datetime,
    window: timedelta = RECENT_WINDOW,
) -> bool:
    """Whether a timestamp falls inside the trailing window ending at now."""
    if released_at is None:
        return False
    return now - released_at <= window


def average_cadence(
    entries: Sequence[ChangelogEntry],
    sample: int = CADENCE_SAMPLE,
) -> timedelta | None:
    """Mean gap between consecutive dated entries.

    Uses at most the first `sample` dated entries. None when fewer than
    two entries carry a date.
    """
    dated = [e.released_at for e in entries if e.released_at is not None][:sample]
    if len(dated) < 2:
        return None
    gaps = [dated[i] - dated[i + 1] for i in range(len(dated) - 1)]
    return sum(gaps, timedelta()) / len(gaps)


def sort_by_recency(
    items: Iterable[T],
    timestamp: Callable[[T], datetime | None],
    name: Callable[[T], str],
) -> list[T]:
    """Newest first; undated items last, ordered by name."""
    by_name = sorted(items, key=name)
    dated = [item for item in by_name if timestamp(item) is not None]
    undated = [item for item in by_name if timestamp(item) is None]
    dated.sort(key=timestamp, reverse=True)  # type: ignore[arg-type]
    return dated + undated


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


async def latest(
    registry: Registry,
    fetcher: FetcherProtocol,
    now: datetime | None = None,
    window: timedelta = RECENT_WINDOW,
    task_timeout: float | None = None,
) -> LatestReport:
    """Newest entry of each source released within the window.

    Entries without a timestamp are never included. Each returned entry
    is stamped with its source's display name. An empty report is a
    valid result ("no recent releases").
    """
    now = now or datetime.now(timezone.utc)
    results, failures = await fetch_all(registry, fetcher, task_timeout)

    recent: list[ChangelogEntry] = []
    for key, entries in results.items():
        newest = entries[0]
        if not is_recent(newest.released_at, now, window):
            continue
        recent.append(newest.model_copy(update={"source": registry[key].display_name}))

    entries = sort_by_recency(
        recent,
        timestamp=lambda e: e.released_at,
        name=lambda e: e.source or "",
    )
    return LatestReport(entries=entries, failures=failures)


def build_status_row(
    key: str,
    display_name: str,
    entries: Sequence[ChangelogEntry],
    now: datetime,
) -> StatusRow:
    entries = entries[:STATUS_ENTRY_LIMIT]
    newest = entries[0]
    released_at = newest.released_at
    return StatusRow(
        source=key,
        display_name=display_name,
        latest_version=newest.version,
        previous_version=entries[1].version if len(entries) > 1 else PLACEHOLDER,
        released_at=released_at,
        updated_ago=format_ago(now - released_at) if released_at else PLACEHOLDER,
        updated_recently=is_recent(released_at, now),
        cadence=format_cadence(average_cadence(entries)),
    )


async def status(
    registry: Registry,
    fetcher: FetcherProtocol,
    now: datetime | None = None,
    task_timeout: float | None = None,
) -> StatusReport:
    """One summary row per source, most recently updated first."""
    now = now or datetime.now(timezone.utc)
    results, failures = await fetch_all(registry, fetcher, task_timeout)

    rows = [
        build_status_row(key, registry[key].display_name, entries, now)
        for key, entries in results.items()
    ]
    rows = sort_by_recency(
        rows,
        timestamp=lambda r: r.released_at,
        name=lambda r: r.display_name,
    )
    return StatusReport(rows=rows, failures=failures)
