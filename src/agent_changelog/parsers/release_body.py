"""Release body section parser.

GitHub Release bodies are free text. Most tools group their notes under
markdown headers ("## TUI", "### Desktop") and some wrap everything in a
"## What's Changed" header. This parser makes one linear pass over the
lines with a single cursor:

- no section open: bullets go to the ungrouped list
- section open:    bullets go to the open section

A level 1-3 header opens a new section and flushes the previous one if it
collected at least one change. "What's Changed" is a wrapper, not a
section: its header is skipped and the cursor is left where it was.
Bullets attributed to a mention ("- @user ...") are dropped. Header
detection wins over bullet detection on the same line.
"""

from __future__ import annotations

import re

from agent_changelog.schemas import Section

HEADER_RE = re.compile(r"^#{1,3}\s+(.+?)\s*$")
BULLET_MARKERS = ("- ", "* ")
WRAPPER_SECTION = "What's Changed"


def parse_release_body(body: str | None) -> tuple[list[Section], list[str]]:
    """Split one release body into named sections and ungrouped changes.

    Args:
        body: Markdown body of the release (None is treated as empty)

    Returns:
        (sections, ungrouped). Every returned section has at least one
        change, and none is named "What's Changed".
    """
    sections: list[Section] = []
    ungrouped: list[str] = []

    current_name: str | None = None
    current_changes: list[str] = []

    def flush() -> None:
        if current_name is not None and current_changes:
            sections.append(Section(name=current_name, changes=current_changes))

    for line in (body or "").splitlines():
        trimmed = line.strip()

        header = HEADER_RE.match(trimmed)
        if header:
            name = header.group(1).strip()
            if name == WRAPPER_SECTION:
                continue
            flush()
            current_name = name
            current_changes = []
            continue

        if not trimmed.startswith(BULLET_MARKERS):
            continue

        text = trimmed[2:].strip()
        if not text or text.startswith("@"):
            continue
        if current_name is not None:
            current_changes.append(text)
        else:
            ungrouped.append(text)

    flush()
    return sections, ungrouped
