"""Changelog aggregator for AI coding assistant tools.

Fetches release notes from raw markdown changelogs and GitHub Releases,
normalizes them into a common entry model, and renders them as plain
text, markdown, or JSON.
"""

__version__ = "0.1.0"
