"""Markdown changelog parser.

Splits a CHANGELOG.md style document into one entry per version header.
The header format differs per tool, so the caller supplies the pattern:
group 1 captures the version, an optional group 2 captures a YYYY-MM-DD
release date.

    ## 1.2.0            -> ^## (\\d+\\.\\d+\\.\\d+)\\s*$
    ## 1.2.0 (2025-06-01)

Only "- " bullet lines count as changes. Prose, blank lines, nested
formatting and anything before the first header are ignored.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from agent_changelog.logging_config import get_logger
from agent_changelog.schemas import ChangelogEntry

logger = get_logger(__name__)

CHANGE_MARKER = "- "
DATE_FORMAT = "%Y-%m-%d"


def compile_header_pattern(header_pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    if isinstance(header_pattern, re.Pattern):
        return header_pattern
    return re.compile(header_pattern, re.MULTILINE)


def parse_markdown_changelog(
    text: str,
    header_pattern: str | re.Pattern[str],
) -> list[ChangelogEntry]:
    """Parse a markdown changelog into entries, in document order.

    A header's span runs from the end of its line to the start of the
    next header line (or the end of the document). Headers are matched
    against whole lines, so they are always anchored at a line start.

    Args:
        text: Raw document text
        header_pattern: Version header regex (string or compiled)

    Returns:
        One ChangelogEntry per distinct version header. An empty list
        when no header matches; callers must treat that as a failure.
    """
    pattern = compile_header_pattern(header_pattern)
    has_date_group = pattern.groups >= 2

    entries: list[ChangelogEntry] = []
    seen: set[str] = set()

    version: str | None = None
    released_at: datetime | None = None
    changes: list[str] = []

    def flush() -> None:
        if not version:
            return
        if version in seen:
            logger.debug("duplicate_version_skipped", version=version)
            return
        seen.add(version)
        entries.append(
            ChangelogEntry(version=version, released_at=released_at, changes=changes)
        )

    for line in text.split("\n"):
        match = pattern.match(line)
        if match:
            flush()
            version = (match.group(1) or "").strip()
            released_at = _parse_date(match.group(2)) if has_date_group else None
            changes = []
            continue

        if version is None:
            continue

        trimmed = line.strip()
        if trimmed.startswith(CHANGE_MARKER):
            changes.append(trimmed[len(CHANGE_MARKER):])

    flush()
    return entries


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.debug("invalid_header_date", value=value)
        return None
