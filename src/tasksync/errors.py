"""Exceptions raised by the task sync engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class TaskSyncError(Exception):
    """Base exception for tasksync errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FileUnreadableError(TaskSyncError):
    """The checklist file is missing, unreadable, or not valid text."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Cannot read task file {path}: {reason}",
            {"path": str(path)},
        )
        self.path = path
        self.reason = reason


class FileUnwritableError(TaskSyncError):
    """The checklist file could not be written."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Cannot write task file {path}: {reason}",
            {"path": str(path)},
        )
        self.path = path
        self.reason = reason


class FileChangedError(TaskSyncError):
    """The checklist file changed after it was compared."""

    def __init__(self, path: Path):
        super().__init__(
            f"Task file {path} changed since it was compared; sync again",
            {"path": str(path)},
        )
        self.path = path


class InvalidTaskTextError(TaskSyncError, ValueError):
    """Task text is empty or spans more than one line."""

    def __init__(self, text: str, reason: str):
        super().__init__(
            f"Invalid task text {text!r}: {reason}",
            {"text": text, "reason": reason},
        )
        self.text = text
        self.reason = reason


class AmbiguousMatchError(TaskSyncError):
    """Duplicate task text prevents a confident match."""

    def __init__(self, text: str, section: str):
        super().__init__(
            f"Task '{text}' appears more than once in {section}",
            {"text": text, "section": section},
        )
        self.text = text
        self.section = section


class TaskNotFoundError(TaskSyncError, LookupError):
    """No task with the given text exists in the section."""

    def __init__(self, text: str, section: str):
        super().__init__(
            f"Task '{text}' not found in {section}",
            {"text": text, "section": section},
        )
        self.text = text
        self.section = section


class PositionOutOfRangeError(TaskSyncError, IndexError):
    """An index does not refer to a valid position in the section."""

    def __init__(self, index: int, section: str, size: int):
        super().__init__(
            f"Position {index} is out of range for {section} ({size} tasks)",
            {"index": index, "section": section, "size": size},
        )
        self.index = index
        self.section = section
        self.size = size


class SyncDisabledError(TaskSyncError):
    """Sync was requested but no task file is attached."""

    def __init__(self) -> None:
        super().__init__("No task file is attached; sync is disabled")


class SyncInProgressError(TaskSyncError):
    """The document is locked by a sync flow awaiting resolution."""

    def __init__(self) -> None:
        super().__init__("A sync is awaiting resolution; finish or cancel it first")


class SyncStateError(TaskSyncError):
    """A sync flow operation was called in the wrong state."""

    def __init__(self, state: str, operation: str):
        super().__init__(
            f"Cannot {operation} while sync is {state}",
            {"state": state, "operation": operation},
        )
        self.state = state
        self.operation = operation
