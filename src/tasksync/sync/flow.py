"""Interactive sync resolution flow.

A flow compares the document with the file once, then waits in the
``presenting`` state until the caller picks a resolution. While it waits
the document is locked against unrelated edits. Every path out of the
flow (write, read, cancel, or a failed write/read) unlocks the document
and returns the flow to ``idle``; ``outcome`` records how it ended.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping
from enum import Enum
from pathlib import Path

import structlog

from tasksync.checklist import (
    FileSnapshot,
    load_snapshot,
    parse_checklist,
    serialize_document,
    write_checklist,
)
from tasksync.errors import (
    AmbiguousMatchError,
    FileChangedError,
    SyncStateError,
    TaskSyncError,
)
from tasksync.models import Document, Section
from tasksync.sync.reconcile import Divergence, DivergenceKind, reconcile

log = structlog.get_logger()


class SyncState(str, Enum):
    """Sync flow state."""

    IDLE = "idle"
    COMPARING = "comparing"
    PRESENTING = "presenting"


class SyncOutcome(str, Enum):
    """How a finished flow ended."""

    NO_CHANGES = "no_changes"
    WRITE_TO_FILE = "write_to_file"
    READ_FROM_FILE = "read_from_file"
    MERGED = "merged"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Resolution(str, Enum):
    """Bulk resolutions offered while presenting."""

    WRITE_TO_FILE = "write_to_file"
    READ_FROM_FILE = "read_from_file"
    CANCEL = "cancel"


class Choice(str, Enum):
    """Per-divergence resolution."""

    KEEP_MEMORY = "keep_memory"
    KEEP_FILE = "keep_file"


class SyncFlow:
    """One sync attempt between a document and its checklist file."""

    def __init__(
        self,
        document: Document,
        path: Path,
        on_finish: Callable[[SyncFlow], None] | None = None,
    ):
        """Initialize the flow.

        Args:
            document: Live in-memory document.
            path: Checklist file path.
            on_finish: Called once when the flow reaches an outcome.
        """
        self.document = document
        self.path = path
        self.state = SyncState.IDLE
        self.outcome: SyncOutcome | None = None
        self.snapshot: FileSnapshot | None = None
        self._divergences: list[Divergence] = []
        self._on_finish = on_finish

    @property
    def is_presenting(self) -> bool:
        return self.state == SyncState.PRESENTING

    @property
    def is_finished(self) -> bool:
        return self.outcome is not None

    def divergences(self) -> list[Divergence]:
        """Divergences found by the comparison, for display."""
        return list(self._divergences)

    def compare(self) -> list[Divergence]:
        """Read the file and reconcile it with the document.

        Moves to ``presenting`` when there is anything to show, otherwise
        finishes straight away with ``NO_CHANGES``.

        Raises:
            SyncStateError: If the flow already compared.
            FileUnreadableError: If the file cannot be read.
        """
        if self.state != SyncState.IDLE or self.is_finished:
            raise SyncStateError(self.state.value, "compare")

        self.state = SyncState.COMPARING
        log.info("sync_comparing", path=str(self.path))
        try:
            self.snapshot = load_snapshot(self.path)
        except TaskSyncError as e:
            self._finish(SyncOutcome.FAILED, error=e.message)
            raise

        self._divergences = reconcile(self.document, self.snapshot)
        if not self._divergences:
            self._finish(SyncOutcome.NO_CHANGES)
            return []

        self.document.lock()
        self.state = SyncState.PRESENTING
        log.info("sync_presenting", path=str(self.path), divergences=len(self._divergences))
        return self.divergences()

    def resolve(self, resolution: Resolution) -> None:
        """Apply a bulk resolution.

        Args:
            resolution: WRITE_TO_FILE overwrites the file with the
                document; READ_FROM_FILE replaces Backlog and Completed
                with the tasks that were compared (Active is kept);
                CANCEL changes nothing.

        Raises:
            SyncStateError: If the flow is not presenting.
            FileUnwritableError: If the file cannot be written.
            FileUnreadableError: If the file cannot be re-read.
            FileChangedError: If the file's tasks changed since the
                comparison, on READ_FROM_FILE.
        """
        if resolution == Resolution.CANCEL:
            self.cancel()
            return
        self._require_presenting("resolve")

        try:
            if resolution == Resolution.WRITE_TO_FILE:
                self._write(self.document)
                outcome = SyncOutcome.WRITE_TO_FILE
            else:
                self._read()
                outcome = SyncOutcome.READ_FROM_FILE
        except TaskSyncError as e:
            self._finish(SyncOutcome.FAILED, error=e.message)
            raise

        self._finish(outcome)

    def resolve_each(self, choices: Mapping[Divergence, Choice]) -> None:
        """Resolve divergences one by one.

        The merged result is written to the file first and only then
        committed to the document, so a failed write changes nothing.

        Args:
            choices: Choice per divergence. Divergences not listed keep
                the in-memory side.

        Raises:
            SyncStateError: If the flow is not presenting.
            AmbiguousMatchError: If a choice targets an ambiguous entry.
            ValueError: If a choice targets an unknown divergence.
            FileUnwritableError: If the file cannot be written.
        """
        self._require_presenting("resolve")
        for divergence in choices:
            if divergence not in self._divergences:
                raise ValueError(f"Unknown divergence: {divergence.text!r}")
            if divergence.is_ambiguous:
                raise AmbiguousMatchError(divergence.text, divergence.section.value)

        merged = self.document.copy()
        for divergence in self._divergences:
            if divergence.is_ambiguous:
                continue
            if choices.get(divergence, Choice.KEEP_MEMORY) != Choice.KEEP_FILE:
                continue
            if divergence.kind == DivergenceKind.ADDED_IN_FILE:
                merged.add_task(divergence.text, divergence.section)
            else:
                index = merged.find(divergence.text, divergence.section)
                merged.delete_task(divergence.section, index)

        try:
            self._write(merged)
        except TaskSyncError as e:
            self._finish(SyncOutcome.FAILED, error=e.message)
            raise

        self.document.unlock()
        for section in Section:
            self.document.replace_section(section, merged.texts(section))
        self._finish(SyncOutcome.MERGED)

    def cancel(self) -> None:
        """Leave the flow without touching the document or the file."""
        if self.is_finished:
            return
        self._finish(SyncOutcome.CANCELLED)

    def _require_presenting(self, operation: str) -> None:
        if self.state != SyncState.PRESENTING:
            raise SyncStateError(self.state.value, operation)

    def _write(self, document: Document) -> None:
        content = serialize_document(document, self.snapshot)
        write_checklist(self.path, content)
        self.snapshot = parse_checklist(content, source=self.path)

    def _read(self) -> None:
        snapshot = load_snapshot(self.path)
        shown = self.snapshot
        if shown is None or (snapshot.incomplete, snapshot.complete) != (
            shown.incomplete,
            shown.complete,
        ):
            raise FileChangedError(self.path)

        # Tasks already active stay in Active rather than reappearing in Backlog
        active = Counter(self.document.texts(Section.ACTIVE))
        backlog: list[str] = []
        for text in snapshot.incomplete:
            if active[text]:
                active[text] -= 1
            else:
                backlog.append(text)

        self.document.unlock()
        self.document.replace_section(Section.BACKLOG, backlog)
        self.document.replace_section(Section.COMPLETED, snapshot.complete)
        self.snapshot = snapshot

    def _finish(self, outcome: SyncOutcome, error: str | None = None) -> None:
        self.document.unlock()
        self.state = SyncState.IDLE
        self.outcome = outcome
        if error:
            log.warning("sync_failed", path=str(self.path), error=error)
        else:
            log.info("sync_resolved", path=str(self.path), outcome=outcome.value)
        if self._on_finish:
            self._on_finish(self)
