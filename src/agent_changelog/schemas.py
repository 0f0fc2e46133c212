"""Pydantic models for normalized changelog data.

Every upstream format (markdown CHANGELOG files, GitHub Release bodies)
is parsed into the same ChangelogEntry shape, so rendering and
aggregation never need to know where an entry came from.

The module also holds the wire models for the GitHub payloads we read.
They only declare the fields we consume; anything else in the response
is ignored.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """How an entry (or list of entries) is rendered."""

    TEXT = "text"
    MARKDOWN = "markdown"
    JSON = "json"


# ---------------------------------------------------------------------------
# Normalized Entries
# ---------------------------------------------------------------------------


class Section(BaseModel):
    """A named group of changes inside one release (e.g. "TUI").

    Attributes:
        name: Header text the group was opened with
        changes: Change lines, in document order. Never empty.
    """

    name: str = Field(..., min_length=1, description="Section header text")
    changes: list[str] = Field(
        ..., min_length=1, description="Change lines in this section"
    )


class ChangelogEntry(BaseModel):
    """One release of one tool.

    Attributes:
        version: Normalized version string (prefixes like "v" stripped)
        released_at: Release timestamp, if known
        source: Display name of the tool; only set by aggregate views
        sections: Named groups of changes
        changes: Changes that do not belong to any section
    """

    version: str = Field(..., min_length=1, description="Normalized version")
    released_at: datetime | None = Field(None, description="Release timestamp")
    source: str | None = Field(None, description="Tool display name")
    sections: list[Section] = Field(
        default_factory=list, description="Named change groups"
    )
    changes: list[str] = Field(
        default_factory=list, description="Ungrouped change lines"
    )

    @field_validator("released_at")
    @classmethod
    def released_at_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict; unset fields and an empty change list are omitted."""
        data = self.model_dump(mode="json", exclude_none=True)
        if not self.changes:
            data.pop("changes", None)
        return data


class StatusRow(BaseModel):
    """Summary of one tool for the status view.

    Attributes:
        source: Registry key
        display_name: Human-readable tool name
        latest_version: Version of the newest entry
        previous_version: Version of the second entry, or "-"
        released_at: Timestamp of the newest entry, if known
        updated_ago: Relative time since the newest release, or "-"
        updated_recently: Whether the newest release is within the last 24h
        cadence: Approximate average time between releases, or "-"
    """

    source: str
    display_name: str
    latest_version: str
    previous_version: str = "-"
    released_at: datetime | None = None
    updated_ago: str = "-"
    updated_recently: bool = False
    cadence: str = "-"

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# GitHub Wire Models
# ---------------------------------------------------------------------------


class GitHubRelease(BaseModel):
    """One element of GET /repos/{repo}/releases."""

    tag_name: str
    body: str | None = None
    published_at: datetime | None = None

    @field_validator("published_at", mode="before")
    @classmethod
    def empty_timestamp_is_unset(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @field_validator("published_at")
    @classmethod
    def published_at_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class CommitSignature(BaseModel):
    date: datetime

    @field_validator("date")
    @classmethod
    def date_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class CommitDetail(BaseModel):
    committer: CommitSignature


class GitHubCommit(BaseModel):
    """One element of GET /repos/{repo}/commits."""

    commit: CommitDetail
