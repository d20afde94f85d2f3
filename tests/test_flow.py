"""Tests for the sync resolution flow."""

import os
import sys
from pathlib import Path

import pytest

from tasksync.errors import (
    AmbiguousMatchError,
    FileChangedError,
    FileUnreadableError,
    FileUnwritableError,
    SyncInProgressError,
    SyncStateError,
)
from tasksync.models import Document, Section
from tasksync.sync import (
    Choice,
    DivergenceKind,
    Resolution,
    SyncFlow,
    SyncOutcome,
    SyncState,
)


@pytest.fixture
def task_file(tmp_path: Path) -> Path:
    """A checklist file with backlog [B, C] and a filler header."""
    path = tmp_path / "tasks.md"
    path.write_text("# Tasks\n- [ ] B\n- [ ] C\n")
    return path


@pytest.fixture
def document() -> Document:
    """A document with backlog [A, B] and one active task."""
    return Document(backlog=["A", "B"], active=["Focus"])


def presenting_flow(document: Document, path: Path) -> SyncFlow:
    flow = SyncFlow(document, path)
    flow.compare()
    assert flow.state == SyncState.PRESENTING
    return flow


class TestCompare:
    """Test the comparing step."""

    def test_presents_divergences(self, document: Document, task_file: Path):
        """Test divergences are exposed and the document is locked."""
        flow = presenting_flow(document, task_file)
        found = [(d.kind, d.text) for d in flow.divergences()]
        assert found == [
            (DivergenceKind.ADDED_IN_MEMORY, "A"),
            (DivergenceKind.ADDED_IN_MEMORY, "Focus"),
            (DivergenceKind.ADDED_IN_FILE, "C"),
        ]
        assert flow.is_presenting
        assert document.locked
        assert flow.outcome is None

    def test_no_changes_short_circuits(self, tmp_path: Path):
        """Test an in-sync document goes straight back to idle."""
        path = tmp_path / "tasks.md"
        path.write_text("- [ ] A\n- [x] B\n")
        flow = SyncFlow(Document(backlog=["A"], completed=["B"]), path)

        assert flow.compare() == []
        assert flow.state == SyncState.IDLE
        assert flow.outcome == SyncOutcome.NO_CHANGES
        assert not flow.document.locked

    def test_missing_file(self, document: Document, tmp_path: Path):
        """Test an unreadable file fails without locking."""
        flow = SyncFlow(document, tmp_path / "missing.md")
        with pytest.raises(FileUnreadableError):
            flow.compare()
        assert flow.outcome == SyncOutcome.FAILED
        assert not document.locked

    def test_compare_twice(self, document: Document, task_file: Path):
        """Test a flow compares only once."""
        flow = presenting_flow(document, task_file)
        with pytest.raises(SyncStateError):
            flow.compare()

    def test_document_locked_while_presenting(self, document: Document, task_file: Path):
        """Test unrelated edits are rejected until the flow resolves."""
        flow = presenting_flow(document, task_file)
        with pytest.raises(SyncInProgressError):
            document.add_task("Sneaky", Section.BACKLOG)
        flow.cancel()
        document.add_task("Allowed", Section.BACKLOG)


class TestBulkResolution:
    """Test write-to-file, read-from-file and cancel."""

    def test_write_to_file(self, document: Document, task_file: Path):
        """Test memory overwrites the file, keeping filler."""
        flow = presenting_flow(document, task_file)
        flow.resolve(Resolution.WRITE_TO_FILE)

        assert task_file.read_text() == "# Tasks\n- [ ] A\n- [ ] B\n- [ ] Focus\n"
        assert flow.outcome == SyncOutcome.WRITE_TO_FILE
        assert flow.state == SyncState.IDLE
        assert not document.locked
        assert document.as_dict() == {"backlog": ["A", "B"], "active": ["Focus"], "completed": []}

    def test_write_then_backlog_matches_memory(self, task_file: Path):
        """Test the written file's backlog is exactly the memory backlog."""
        flow = presenting_flow(Document(backlog=["A", "B"]), task_file)
        flow.resolve(Resolution.WRITE_TO_FILE)
        assert flow.snapshot.incomplete == ["A", "B"]

    def test_read_from_file(self, document: Document, task_file: Path):
        """Test the file replaces Backlog and Completed, Active is kept."""
        original = task_file.read_text()
        flow = presenting_flow(document, task_file)
        flow.resolve(Resolution.READ_FROM_FILE)

        assert document.texts(Section.BACKLOG) == ["B", "C"]
        assert document.texts(Section.ACTIVE) == ["Focus"]
        assert document.texts(Section.COMPLETED) == []
        assert task_file.read_text() == original
        assert flow.outcome == SyncOutcome.READ_FROM_FILE

    def test_read_skips_tasks_already_active(self, tmp_path: Path):
        """Test an active task found in the file is not duplicated in Backlog."""
        path = tmp_path / "tasks.md"
        path.write_text("- [ ] Focus\n- [ ] New\n- [x] Old\n")
        document = Document(active=["Focus"])

        flow = presenting_flow(document, path)
        flow.resolve(Resolution.READ_FROM_FILE)

        assert document.as_dict() == {
            "backlog": ["New"],
            "active": ["Focus"],
            "completed": ["Old"],
        }

    def test_cancel(self, document: Document, task_file: Path):
        """Test cancelling changes neither side."""
        original = task_file.read_text()
        before = document.as_dict()

        flow = presenting_flow(document, task_file)
        flow.resolve(Resolution.CANCEL)

        assert flow.outcome == SyncOutcome.CANCELLED
        assert document.as_dict() == before
        assert task_file.read_text() == original
        assert not document.locked

    def test_cancel_is_idempotent(self, document: Document, task_file: Path):
        """Test cancelling a finished flow keeps its outcome."""
        flow = presenting_flow(document, task_file)
        flow.resolve(Resolution.WRITE_TO_FILE)
        flow.cancel()
        assert flow.outcome == SyncOutcome.WRITE_TO_FILE

    def test_resolve_after_finish(self, document: Document, task_file: Path):
        """Test a flow resolves only once."""
        flow = presenting_flow(document, task_file)
        flow.resolve(Resolution.WRITE_TO_FILE)
        with pytest.raises(SyncStateError):
            flow.resolve(Resolution.READ_FROM_FILE)

    def test_completed_task_written_checked(self, tmp_path: Path):
        """Test completing an active task rewrites its line as checked."""
        path = tmp_path / "tasks.md"
        path.write_text("- [ ] A\n- [ ] B\n- [x] C\n")
        document = Document(backlog=["A", "B"], completed=["C"])
        document.start("B")
        document.complete("B")

        flow = presenting_flow(document, path)
        flow.resolve(Resolution.WRITE_TO_FILE)

        assert path.read_text() == "- [ ] A\n- [x] C\n- [x] B\n"

    def test_write_keeps_tasks_under_their_headings(self, tmp_path: Path):
        """Test a write leaves untouched tasks on their own lines."""
        path = tmp_path / "tasks.md"
        path.write_text("# Work\n- [ ] A\n# Home\n- [ ] B\n")
        document = Document(backlog=["A", "B"])
        document.complete("A")

        flow = presenting_flow(document, path)
        flow.resolve(Resolution.WRITE_TO_FILE)

        assert path.read_text() == "# Work\n# Home\n- [ ] B\n- [x] A\n"

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_write_through_symlink(self, document: Document, tmp_path: Path):
        """Test writing to a linked checklist updates the file it points to."""
        real = tmp_path / "real.md"
        real.write_text("- [ ] B\n")
        link = tmp_path / "link.md"
        link.symlink_to(real)

        flow = presenting_flow(document, link)
        flow.resolve(Resolution.WRITE_TO_FILE)

        assert link.is_symlink()
        assert real.read_text() == "- [ ] A\n- [ ] B\n- [ ] Focus\n"
        assert SyncFlow(document, link).compare() == []


class TestFailures:
    """Test failed writes and reads leave the document alone."""

    def test_read_after_file_changed(self, document: Document, task_file: Path):
        """Test tasks edited after the comparison are not applied unseen."""
        before = document.as_dict()
        flow = presenting_flow(document, task_file)
        task_file.write_text("# Tasks\n- [ ] B\n- [ ] C\n- [ ] Unseen\n")

        with pytest.raises(FileChangedError):
            flow.resolve(Resolution.READ_FROM_FILE)

        assert document.as_dict() == before
        assert flow.outcome == SyncOutcome.FAILED
        assert not document.locked

    def test_read_after_filler_changed(self, document: Document, task_file: Path):
        """Test edits outside the task lines do not block a read."""
        flow = presenting_flow(document, task_file)
        task_file.write_text("# Renamed heading\n- [ ] B\n- [ ] C\n")

        flow.resolve(Resolution.READ_FROM_FILE)

        assert document.texts(Section.BACKLOG) == ["B", "C"]
        assert flow.snapshot.filler == ["# Renamed heading"]

    def test_read_from_vanished_file(self, document: Document, task_file: Path):
        """Test the file disappearing before read-from-file."""
        before = document.as_dict()
        flow = presenting_flow(document, task_file)
        task_file.unlink()

        with pytest.raises(FileUnreadableError):
            flow.resolve(Resolution.READ_FROM_FILE)

        assert document.as_dict() == before
        assert flow.outcome == SyncOutcome.FAILED
        assert not document.locked

    def test_write_to_vanished_directory(self, document: Document, tmp_path: Path):
        """Test the directory disappearing before write-to-file."""
        folder = tmp_path / "gone"
        folder.mkdir()
        path = folder / "tasks.md"
        path.write_text("- [ ] C\n")
        before = document.as_dict()

        flow = presenting_flow(document, path)
        path.unlink()
        folder.rmdir()

        with pytest.raises(FileUnwritableError):
            flow.resolve(Resolution.WRITE_TO_FILE)
        assert document.as_dict() == before
        assert flow.outcome == SyncOutcome.FAILED

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced",
    )
    def test_write_to_read_only_file(self, document: Document, task_file: Path):
        """Test a read-only file is left unchanged."""
        original = task_file.read_text()
        flow = presenting_flow(document, task_file)
        task_file.chmod(0o444)
        try:
            with pytest.raises(FileUnwritableError):
                flow.resolve(Resolution.WRITE_TO_FILE)
            assert task_file.read_text() == original
        finally:
            task_file.chmod(0o644)


class TestPerItemResolution:
    """Test resolving divergences one by one."""

    def test_mixed_choices(self, task_file: Path):
        """Test keeping some memory additions and some file additions."""
        document = Document(backlog=["A", "B", "D"])
        flow = presenting_flow(document, task_file)
        by_text = {d.text: d for d in flow.divergences()}

        flow.resolve_each(
            {
                by_text["A"]: Choice.KEEP_MEMORY,
                by_text["D"]: Choice.KEEP_FILE,
                by_text["C"]: Choice.KEEP_FILE,
            }
        )

        assert document.texts(Section.BACKLOG) == ["A", "B", "C"]
        assert task_file.read_text() == "# Tasks\n- [ ] A\n- [ ] B\n- [ ] C\n"
        assert flow.outcome == SyncOutcome.MERGED
        assert not document.locked

    def test_unlisted_keep_memory(self, document: Document, task_file: Path):
        """Test an empty choice map behaves like write-to-file."""
        flow = presenting_flow(document, task_file)
        flow.resolve_each({})
        assert document.texts(Section.BACKLOG) == ["A", "B"]
        assert task_file.read_text() == "# Tasks\n- [ ] A\n- [ ] B\n- [ ] Focus\n"

    def test_keep_file_removes_active(self, document: Document, task_file: Path):
        """Test dropping a memory-only active task."""
        flow = presenting_flow(document, task_file)
        focus = next(d for d in flow.divergences() if d.text == "Focus")
        flow.resolve_each({focus: Choice.KEEP_FILE})
        assert document.texts(Section.ACTIVE) == []

    def test_ambiguous_cannot_be_chosen(self, tmp_path: Path):
        """Test choosing a side for a duplicate is rejected."""
        path = tmp_path / "tasks.md"
        path.write_text("- [ ] A\n- [ ] A\n")
        document = Document(backlog=["A"])
        flow = presenting_flow(document, path)
        ambiguous = flow.divergences()[0]
        assert ambiguous.is_ambiguous

        with pytest.raises(AmbiguousMatchError):
            flow.resolve_each({ambiguous: Choice.KEEP_FILE})
        assert flow.is_presenting
        flow.cancel()

    def test_unknown_divergence(self, document: Document, task_file: Path, tmp_path: Path):
        """Test choices must come from this flow."""
        other_path = tmp_path / "other.md"
        other_path.write_text("- [ ] Elsewhere\n")
        other = presenting_flow(Document(), other_path)
        stranger = other.divergences()[0]

        flow = presenting_flow(document, task_file)
        with pytest.raises(ValueError):
            flow.resolve_each({stranger: Choice.KEEP_FILE})

    def test_failed_write_keeps_document(self, document: Document, tmp_path: Path):
        """Test a failed merge write changes nothing in memory."""
        folder = tmp_path / "gone"
        folder.mkdir()
        path = folder / "tasks.md"
        path.write_text("- [ ] C\n")
        before = document.as_dict()

        flow = presenting_flow(document, path)
        path.unlink()
        folder.rmdir()
        file_only = next(d for d in flow.divergences() if d.text == "C")

        with pytest.raises(FileUnwritableError):
            flow.resolve_each({file_only: Choice.KEEP_FILE})
        assert document.as_dict() == before
        assert not document.locked
