"""Parsers that turn upstream changelog formats into ChangelogEntry data.

- markdown: whole CHANGELOG.md documents split on version headers
- release_body: a single GitHub Release body split into named sections
"""

from agent_changelog.parsers.markdown import parse_markdown_changelog
from agent_changelog.parsers.release_body import parse_release_body

__all__ = ["parse_markdown_changelog", "parse_release_body"]
