"""Rendering of entries, version lists and status rows.

All functions return a string without a trailing newline; callers print
it. Three formats are supported for entries:

Plain text:
    Codex 0.5.0 (2025-06-01)
    ----------------------------------------
    [TUI]
      * Added X

      * Ungrouped change

Markdown:
    ## 0.5.0 (2025-06-01)

    ### TUI
    - Added X

    - Ungrouped change

JSON: the entry payload (see ChangelogEntry.to_payload), indented.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from agent_changelog.schemas import ChangelogEntry, OutputFormat, StatusRow

RULE_WIDTH = 40
DATE_FORMAT = "%Y-%m-%d"
NO_RECENT_RELEASES = "No releases in the last 24 hours."


def render_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _date_suffix(entry: ChangelogEntry) -> str:
    if entry.released_at is None:
        return ""
    return f" ({entry.released_at.strftime(DATE_FORMAT)})"


# ---------------------------------------------------------------------------
# Single Entry
# ---------------------------------------------------------------------------


def render_text(entry: ChangelogEntry, display_name: str | None = None) -> str:
    """Plain-text rendering with a title line and a fixed-width rule."""
    name = entry.source or display_name
    title = f"{name} {entry.version}" if name else entry.version
    lines = [title + _date_suffix(entry), "-" * RULE_WIDTH]

    for index, section in enumerate(entry.sections):
        if index:
            lines.append("")
        lines.append(f"[{section.name}]")
        lines.extend(f"  * {change}" for change in section.changes)

    if entry.sections and entry.changes:
        lines.append("")
    lines.extend(f"  * {change}" for change in entry.changes)
    return "\n".join(lines)


def render_markdown(entry: ChangelogEntry) -> str:
    """Markdown rendering: "## version", "### section" blocks, "- " bullets."""
    prefix = f"{entry.source} " if entry.source else ""
    lines = [f"## {prefix}{entry.version}{_date_suffix(entry)}", ""]

    for section in entry.sections:
        lines.append(f"### {section.name}")
        lines.extend(f"- {change}" for change in section.changes)
        lines.append("")

    lines.extend(f"- {change}" for change in entry.changes)

    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def render_entry(
    entry: ChangelogEntry,
    fmt: OutputFormat = OutputFormat.TEXT,
    display_name: str | None = None,
) -> str:
    if fmt == OutputFormat.JSON:
        return render_json(entry.to_payload())
    if fmt == OutputFormat.MARKDOWN:
        return render_markdown(entry)
    return render_text(entry, display_name)


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


def render_entries(
    entries: Sequence[ChangelogEntry],
    fmt: OutputFormat = OutputFormat.TEXT,
) -> str:
    """Render several entries (the latest view); blank line between them."""
    if fmt == OutputFormat.JSON:
        return render_json([entry.to_payload() for entry in entries])
    if not entries:
        return NO_RECENT_RELEASES
    return "\n\n".join(render_entry(entry, fmt) for entry in entries)


def render_versions(
    entries: Sequence[ChangelogEntry],
    fmt: OutputFormat = OutputFormat.TEXT,
) -> str:
    versions = [entry.version for entry in entries]
    if fmt == OutputFormat.JSON:
        return render_json(versions)
    return "\n".join(versions)


STATUS_COLUMNS = ("TOOL", "LATEST", "PREVIOUS", "UPDATED", "24H", "CADENCE")


def _status_cells(row: StatusRow) -> tuple[str, ...]:
    return (
        row.display_name,
        row.latest_version,
        row.previous_version,
        row.updated_ago,
        "yes" if row.updated_recently else "no",
        row.cadence,
    )


def render_status(
    rows: Sequence[StatusRow],
    fmt: OutputFormat = OutputFormat.TEXT,
) -> str:
    """Fixed-width status table, or a JSON list of rows."""
    if fmt == OutputFormat.JSON:
        return render_json([row.to_payload() for row in rows])

    table = [STATUS_COLUMNS, *(_status_cells(row) for row in rows)]
    widths = [max(len(cells[i]) for cells in table) for i in range(len(STATUS_COLUMNS))]
    lines = [
        "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()
        for cells in table
    ]
    return "\n".join(lines)
