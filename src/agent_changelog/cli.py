"""Command-line interface.

Usage:
    agent-changelog                    # Latest Claude Code entry as plain text
    agent-changelog codex --json       # Latest Codex entry as JSON
    agent-changelog gemini --md        # Latest Gemini CLI entry as markdown
    agent-changelog claude --version 2.0.70
    agent-changelog opencode --list    # All known versions
    agent-changelog latest             # Everything released in the last 24h
    agent-changelog status             # One-line summary per tool
    agent-changelog sources            # Registered tools

Rendered output goes to stdout. Errors and warnings go to stderr; any
error exits with status 1.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from agent_changelog import __version__
from agent_changelog.aggregator import SourceFailure
from agent_changelog.config import Settings
from agent_changelog.errors import ChangelogError
from agent_changelog.logging_config import setup_logging
from agent_changelog.render import (
    render_entries,
    render_entry,
    render_json,
    render_status,
    render_versions,
)
from agent_changelog.schemas import OutputFormat
from agent_changelog.service import ChangelogService
from agent_changelog.sources import load_registry

DEFAULT_SOURCE = "claude"
LATEST = "latest"
STATUS = "status"
SOURCES = "sources"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-changelog",
        description="Fetch the latest changelog entries of AI coding assistants",
    )
    parser.add_argument(
        "source",
        nargs="?",
        default=DEFAULT_SOURCE,
        help=(
            f"Source key (default: {DEFAULT_SOURCE}), or one of "
            f"'{LATEST}', '{STATUS}', '{SOURCES}'"
        ),
    )
    fmt = parser.add_mutually_exclusive_group()
    fmt.add_argument("--json", action="store_true", help="Output as JSON")
    fmt.add_argument("--md", action="store_true", help="Output raw markdown")
    parser.add_argument(
        "--version",
        dest="target_version",
        metavar="VERSION",
        help="Fetch a specific version (e.g. 2.0.70)",
    )
    parser.add_argument(
        "--list", action="store_true", help="List all available versions"
    )
    parser.add_argument(
        "--sources",
        dest="sources_path",
        metavar="PATH",
        help="YAML file with source definitions (default: bundled sources)",
    )
    parser.add_argument(
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show agent-changelog version",
    )
    return parser


def _output_format(args: argparse.Namespace) -> OutputFormat:
    if args.json:
        return OutputFormat.JSON
    if args.md:
        return OutputFormat.MARKDOWN
    return OutputFormat.TEXT


def _warn(failures: Sequence[SourceFailure]) -> None:
    for failure in failures:
        print(f"Warning: {failure.message}", file=sys.stderr)


async def run_command(
    service: ChangelogService,
    args: argparse.Namespace,
    fmt: OutputFormat,
) -> str:
    """Execute the selected command and return the rendered output."""
    if args.source == SOURCES:
        sources = service.describe_sources()
        if fmt == OutputFormat.JSON:
            return render_json(sources)
        width = max(len(s["key"]) for s in sources)
        return "\n".join(f"{s['key'].ljust(width)}  {s['display_name']}" for s in sources)

    if args.source == LATEST:
        report = await service.latest()
        _warn(report.failures)
        return render_entries(report.entries, fmt)

    if args.source == STATUS:
        report = await service.status()
        _warn(report.failures)
        return render_status(report.rows, fmt)

    display_name = service.display_name(args.source)
    if args.list:
        return render_versions(await service.entries(args.source), fmt)
    entry = await service.entry(args.source, args.target_version)
    return render_entry(entry, fmt, display_name)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.source in (LATEST, STATUS, SOURCES) and (args.list or args.target_version):
        parser.error("--list and --version only apply to a single source")

    settings = Settings.from_env()
    if args.sources_path:
        settings = settings.model_copy(update={"sources_path": Path(args.sources_path)})
    setup_logging(environment=settings.environment, log_level=settings.log_level)

    try:
        registry = load_registry(settings.sources_path)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    service = ChangelogService(registry=registry, settings=settings)
    try:
        output = asyncio.run(run_command(service, args, _output_format(args)))
    except ChangelogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
