"""Exact-text reconciliation between the in-memory document and the file.

Two pairings are compared independently:

- memory Backlog + Active  vs  file unchecked items
- memory Completed         vs  file checked items

Only membership is compared. A text present on both sides is unchanged
no matter where it sits; a text on one side only is an addition on that
side. Which side wins is decided by the user, so nothing is ever
reported as "removed". Duplicate text inside a pairing is never merged:
the first occurrence takes part in matching and every later one is
reported as ambiguous.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import structlog

from tasksync.checklist.parser import FileSnapshot
from tasksync.models import Document, Section

log = structlog.get_logger()


class DivergenceKind(str, Enum):
    """How a task differs between memory and the file."""

    ADDED_IN_MEMORY = "added_in_memory"
    ADDED_IN_FILE = "added_in_file"
    AMBIGUOUS = "ambiguous"


class Side(str, Enum):
    """Which copy of the task list an entry comes from."""

    MEMORY = "memory"
    FILE = "file"


class MatchOutcome(str, Enum):
    """Result of looking up a text on one side."""

    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class Divergence:
    """One task whose presence differs between memory and the file."""

    kind: DivergenceKind
    section: Section
    text: str
    side: Side

    @property
    def is_ambiguous(self) -> bool:
        return self.kind == DivergenceKind.AMBIGUOUS


# (memory sections, file section)
PAIRINGS: tuple[tuple[tuple[Section, ...], Section], ...] = (
    ((Section.BACKLOG, Section.ACTIVE), Section.BACKLOG),
    ((Section.COMPLETED,), Section.COMPLETED),
)


class TextMatcher:
    """Exact-text index over the tasks of one side of a pairing."""

    def __init__(self, entries: Iterable[tuple[str, Section]]):
        """Initialize the matcher.

        Args:
            entries: (text, section) pairs in document order.
        """
        self._counts: Counter[str] = Counter()
        self._first: dict[str, Section] = {}
        self._duplicates: list[tuple[str, Section]] = []

        for text, section in entries:
            self._counts[text] += 1
            if text in self._first:
                self._duplicates.append((text, section))
            else:
                self._first[text] = section

    def match(self, text: str) -> MatchOutcome:
        """Look up a text.

        Returns:
            MATCHED for exactly one occurrence, AMBIGUOUS for more than
            one, UNMATCHED for none.
        """
        count = self._counts[text.strip()]
        if count == 0:
            return MatchOutcome.UNMATCHED
        if count == 1:
            return MatchOutcome.MATCHED
        return MatchOutcome.AMBIGUOUS

    def __contains__(self, text: object) -> bool:
        return text in self._first

    def unique(self) -> list[tuple[str, Section]]:
        """First occurrence of every text, in document order."""
        return list(self._first.items())

    def duplicates(self) -> list[tuple[str, Section]]:
        """Every occurrence beyond the first, in document order."""
        return list(self._duplicates)


def _entries(document: Document, sections: tuple[Section, ...]) -> list[tuple[str, Section]]:
    return [(text, section) for section in sections for text in document.texts(section)]


def reconcile(current: Document, snapshot: FileSnapshot) -> list[Divergence]:
    """Compare the in-memory document with a fresh file snapshot.

    Args:
        current: Live in-memory document.
        snapshot: Snapshot from the latest read of the file.

    Returns:
        Divergences, grouped per pairing (incomplete first): memory
        additions, then file additions, then ambiguous duplicates.
        Empty when both sides hold the same tasks.
    """
    file_doc = snapshot.to_document()
    divergences: list[Divergence] = []

    for memory_sections, file_section in PAIRINGS:
        memory = TextMatcher(_entries(current, memory_sections))
        file = TextMatcher(_entries(file_doc, (file_section,)))

        for text, section in memory.unique():
            if file.match(text) == MatchOutcome.UNMATCHED:
                divergences.append(
                    Divergence(DivergenceKind.ADDED_IN_MEMORY, section, text, Side.MEMORY)
                )
        for text, section in file.unique():
            if memory.match(text) == MatchOutcome.UNMATCHED:
                divergences.append(
                    Divergence(DivergenceKind.ADDED_IN_FILE, section, text, Side.FILE)
                )
        for side, matcher in ((Side.MEMORY, memory), (Side.FILE, file)):
            for text, section in matcher.duplicates():
                divergences.append(Divergence(DivergenceKind.AMBIGUOUS, section, text, side))

    log.debug(
        "reconciled",
        total=len(divergences),
        ambiguous=sum(1 for d in divergences if d.is_ambiguous),
    )
    return divergences
