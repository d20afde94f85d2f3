"""Task manager: the document plus its optional checklist file."""

from __future__ import annotations

from pathlib import Path

import structlog

from tasksync.checklist import FileSnapshot, load_snapshot
from tasksync.errors import FileUnwritableError, SyncDisabledError, SyncInProgressError
from tasksync.models import Document, Section
from tasksync.sync import SyncFlow

log = structlog.get_logger()


class TaskManager:
    """Owns the in-memory document and starts syncs with the task file.

    Without a file path the manager works on an in-memory document only
    and ``start_sync`` raises ``SyncDisabledError``.
    """

    def __init__(
        self,
        path: Path | None = None,
        document: Document | None = None,
        snapshot: FileSnapshot | None = None,
    ):
        self.path = path
        self.document = document or Document()
        self.snapshot = snapshot
        self._flow: SyncFlow | None = None

    @classmethod
    def load(cls, path: Path) -> TaskManager:
        """Load tasks from a checklist file.

        Unchecked items go to Backlog and checked items to Completed;
        Active starts empty.

        Args:
            path: Checklist file path.

        Returns:
            TaskManager attached to the file.

        Raises:
            FileUnreadableError: If the file cannot be read.
        """
        path = Path(path).expanduser()
        snapshot = load_snapshot(path)
        manager = cls(path=path, document=snapshot.to_document(), snapshot=snapshot)
        log.info(
            "checklist_loaded",
            path=str(path),
            backlog=manager.document.section_len(Section.BACKLOG),
            completed=manager.document.section_len(Section.COMPLETED),
        )
        return manager

    @property
    def has_file_path(self) -> bool:
        return self.path is not None

    @property
    def sync_in_progress(self) -> bool:
        return self._flow is not None and self._flow.is_presenting

    def start_sync(self) -> SyncFlow:
        """Compare the document with the file.

        Returns:
            A flow that is presenting divergences, or one that already
            finished because there was nothing to resolve.

        Raises:
            SyncDisabledError: If no file is attached.
            SyncInProgressError: If another flow awaits resolution.
            FileUnreadableError: If the file cannot be read.
        """
        if self.path is None:
            raise SyncDisabledError()
        if self.sync_in_progress:
            raise SyncInProgressError()

        log.info("sync_started", path=str(self.path))
        flow = SyncFlow(self.document, self.path, on_finish=self._flow_finished)
        self._flow = flow
        flow.compare()
        return flow

    def _flow_finished(self, flow: SyncFlow) -> None:
        if flow.snapshot is not None:
            self.snapshot = flow.snapshot
        if self._flow is flow:
            self._flow = None

    def create_default_file(self, path: Path) -> None:
        """Attach a task file, creating it if needed.

        Tasks already in the file that memory does not know yet are
        merged in: unchecked ones into Backlog (unless already in Backlog
        or Active), checked ones into Completed.

        Args:
            path: Task file to create or open.

        Raises:
            SyncInProgressError: If a sync awaits resolution.
            FileUnwritableError: If the file cannot be created.
            FileUnreadableError: If the existing file cannot be read.
        """
        if self.sync_in_progress:
            raise SyncInProgressError()

        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
        except OSError as e:
            raise FileUnwritableError(path, e.strerror or str(e)) from e

        snapshot = load_snapshot(path)
        self.path = path
        self.snapshot = snapshot

        merged = 0
        for text in snapshot.incomplete:
            if not (
                self.document.contains(text, Section.BACKLOG)
                or self.document.contains(text, Section.ACTIVE)
            ):
                self.document.add_task(text, Section.BACKLOG)
                merged += 1
        for text in snapshot.complete:
            if not self.document.contains(text, Section.COMPLETED):
                self.document.add_task(text, Section.COMPLETED)
                merged += 1

        log.info("task_file_attached", path=str(path), merged=merged)
