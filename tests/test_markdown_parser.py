"""Tests for the markdown changelog parser.

These tests verify that parse_markdown_changelog:
- Produces one entry per version header, in document order
- Collects only "- " bullets strictly between consecutive headers
- Reads an embedded YYYY-MM-DD date when the pattern captures one
- Returns an empty list when nothing matches

Run with: pytest tests/test_markdown_parser.py -v
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from agent_changelog.parsers.markdown import parse_markdown_changelog

PLAIN_PATTERN = r"^## (\d+\.\d+\.\d+)\s*$"
DATED_PATTERN = r"^## (\d+\.\d+\.\d+)(?:\s+\((\d{4}-\d{2}-\d{2})\))?\s*$"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def claude_changelog() -> str:
    """A changelog shaped like the Claude Code CHANGELOG.md."""
    return (
        "# Changelog\n"
        "\n"
        "- Not a change, appears before any version\n"
        "\n"
        "## 2.0.71\n"
        "\n"
        "- Added `/config` toggle for prompt suggestions\n"
        "  - Nested bullet is still a change line\n"
        "Some prose that is ignored.\n"
        "* Star bullets are not changes here\n"
        "\n"
        "## 2.0.70\n"
        "- Fixed flicker in the TUI\n"
        "-No space after the marker\n"
        "## 2.0.69\n"
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseMarkdownChangelog:
    """Tests for splitting documents on version headers."""

    def test_scenario_two_versions(self) -> None:
        """The canonical two-version document parses to two entries."""
        text = "## 1.2.0\n- Fixed bug\n## 1.1.0\n- Initial\n"
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)

        assert [e.version for e in entries] == ["1.2.0", "1.1.0"]
        assert entries[0].changes == ["Fixed bug"]
        assert entries[1].changes == ["Initial"]
        assert all(e.released_at is None for e in entries)
        assert all(e.sections == [] for e in entries)

    def test_document_order_and_spans(self, claude_changelog: str) -> None:
        entries = parse_markdown_changelog(claude_changelog, PLAIN_PATTERN)

        assert [e.version for e in entries] == ["2.0.71", "2.0.70", "2.0.69"]
        assert entries[0].changes == [
            "Added `/config` toggle for prompt suggestions",
            "Nested bullet is still a change line",
        ]
        assert entries[1].changes == ["Fixed flicker in the TUI"]

    def test_last_entry_runs_to_end_of_document(self) -> None:
        text = "## 1.0.0\n- One\n\n- Two\n"
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)
        assert entries[0].changes == ["One", "Two"]

    def test_entry_without_bullets_is_valid(self, claude_changelog: str) -> None:
        entries = parse_markdown_changelog(claude_changelog, PLAIN_PATTERN)
        assert entries[-1].version == "2.0.69"
        assert entries[-1].changes == []

    def test_no_headers_returns_empty_list(self) -> None:
        assert parse_markdown_changelog("# Changelog\n- stray\n", PLAIN_PATTERN) == []
        assert parse_markdown_changelog("", PLAIN_PATTERN) == []

    def test_header_must_start_the_line(self) -> None:
        text = "  ## 1.0.0\n- Indented header is not a header\n## 0.9.0\n- Real\n"
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)
        assert [e.version for e in entries] == ["0.9.0"]

    def test_header_with_trailing_text_does_not_match_strict_pattern(self) -> None:
        text = "## 1.0.0 - beta\n- Hidden\n## 0.9.0\n- Visible\n"
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)
        assert [e.version for e in entries] == ["0.9.0"]

    def test_crlf_line_endings(self) -> None:
        text = "## 1.0.0\r\n- Windows line\r\n## 0.9.0\r\n- Other\r\n"
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)
        assert entries[0].changes == ["Windows line"]
        assert entries[1].changes == ["Other"]

    def test_duplicate_version_keeps_first(self) -> None:
        text = "## 1.0.0\n- First\n## 1.0.0\n- Second\n## 0.9.0\n- Older\n"
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)
        assert [e.version for e in entries] == ["1.0.0", "0.9.0"]
        assert entries[0].changes == ["First"]

    def test_accepts_compiled_pattern(self) -> None:
        pattern = re.compile(PLAIN_PATTERN, re.MULTILINE)
        entries = parse_markdown_changelog("## 3.1.4\n- Pi\n", pattern)
        assert entries[0].version == "3.1.4"

    def test_bullet_count_matches_lines_between_headers(self) -> None:
        """Each entry gets exactly the "- " lines before the next header."""
        blocks = {
            "3.0.0": ["a", "b", "c"],
            "2.0.0": [],
            "1.0.0": ["d"],
        }
        text = "".join(
            f"## {version}\nintro text\n" + "".join(f"  - {c}\n" for c in changes)
            for version, changes in blocks.items()
        )
        entries = parse_markdown_changelog(text, PLAIN_PATTERN)
        assert {e.version: e.changes for e in entries} == blocks


# ---------------------------------------------------------------------------
# Embedded Dates
# ---------------------------------------------------------------------------


class TestEmbeddedDates:
    """Tests for the optional date capture group."""

    def test_date_group_sets_released_at(self) -> None:
        text = "## 1.2.0 (2025-06-01)\n- Dated\n## 1.1.0\n- Undated\n"
        entries = parse_markdown_changelog(text, DATED_PATTERN)

        assert entries[0].released_at == datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert entries[1].released_at is None

    def test_invalid_calendar_date_is_left_unset(self) -> None:
        text = "## 1.2.0 (2025-13-45)\n- Bad date\n"
        entries = parse_markdown_changelog(text, DATED_PATTERN)
        assert entries[0].version == "1.2.0"
        assert entries[0].released_at is None

    def test_single_group_pattern_never_dates(self) -> None:
        entries = parse_markdown_changelog("## 1.0.0\n- x\n", PLAIN_PATTERN)
        assert entries[0].released_at is None
