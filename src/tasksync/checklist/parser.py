"""Markdown checklist parser.

Turns checklist text into a ``FileSnapshot``. Lines of the form
``- [ ] text`` become backlog tasks and ``- [x] text`` (either case of
``x``) become completed tasks, in file order. Every other line is kept
verbatim as filler so it can be written back unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tasksync.models import Document

CHECKLIST_RE = re.compile(r"^(?P<indent>\s*)- \[(?P<mark>[ xX])\](?:[ \t]+(?P<text>.*))?$")
FRONTMATTER_DELIMITER = "---"


@dataclass(frozen=True)
class ChecklistLine:
    """One line of the checklist file."""

    raw: str
    indent: str = ""
    checked: bool | None = None
    text: str | None = None

    @property
    def is_task(self) -> bool:
        return self.text is not None


@dataclass(frozen=True)
class FileSnapshot:
    """Tasks and filler lines from one read of the checklist file.

    Snapshots are never mutated; each read produces a new one.
    """

    lines: tuple[ChecklistLine, ...] = ()
    newline: str = "\n"
    trailing_newline: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)
    source: Path | None = None

    @property
    def incomplete(self) -> list[str]:
        """Unchecked task texts, in file order."""
        return [line.text for line in self.lines if line.is_task and not line.checked]

    @property
    def complete(self) -> list[str]:
        """Checked task texts, in file order."""
        return [line.text for line in self.lines if line.is_task and line.checked]

    @property
    def filler(self) -> list[str]:
        return [line.raw for line in self.lines if not line.is_task]

    def to_document(self) -> Document:
        """Build a fresh Document from the snapshot (Active is always empty)."""
        return Document(backlog=self.incomplete, completed=self.complete)


def parse_line(raw: str) -> ChecklistLine:
    """Classify a single line as a checklist item or filler.

    Args:
        raw: Line content without its line terminator.

    Returns:
        ChecklistLine; ``text`` is None for filler.
    """
    match = CHECKLIST_RE.match(raw)
    if not match:
        return ChecklistLine(raw=raw)

    text = (match.group("text") or "").strip()
    if not text:
        # Marker without text is kept as filler
        return ChecklistLine(raw=raw)

    return ChecklistLine(
        raw=raw,
        indent=match.group("indent"),
        checked=match.group("mark") != " ",
        text=text,
    )


def split_frontmatter(lines: list[str]) -> tuple[dict[str, Any], int]:
    """Detect a leading YAML front-matter block.

    Args:
        lines: File lines.

    Returns:
        Tuple of (parsed mapping, number of lines the block spans).
        The span is 0 when the file has no front-matter, including when
        the block is not a YAML mapping; its lines are then parsed as
        ordinary checklist lines.
    """
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return {}, 0

    for end in range(1, len(lines)):
        if lines[end].strip() == FRONTMATTER_DELIMITER:
            break
    else:
        return {}, 0

    try:
        data = yaml.safe_load("\n".join(lines[1:end])) or {}
    except yaml.YAMLError:
        return {}, 0
    if not isinstance(data, dict):
        # A horizontal rule around plain Markdown, not front-matter
        return {}, 0

    return data, end + 1


def parse_checklist(text: str, source: Path | None = None) -> FileSnapshot:
    """Parse checklist text into a snapshot.

    Parsing never fails: text without checklist lines simply yields a
    snapshot whose task sections are empty.

    Args:
        text: Full file content.
        source: Path the text was read from, if any.

    Returns:
        FileSnapshot for the text.
    """
    newline = "\r\n" if "\r\n" in text else "\n"
    trailing_newline = not text or text.endswith(("\n", "\r"))
    raw_lines = text.splitlines()

    metadata, header_len = split_frontmatter(raw_lines)
    lines = [ChecklistLine(raw=raw) for raw in raw_lines[:header_len]]
    lines.extend(parse_line(raw) for raw in raw_lines[header_len:])

    return FileSnapshot(
        lines=tuple(lines),
        newline=newline,
        trailing_newline=trailing_newline,
        metadata=metadata,
        source=source,
    )
