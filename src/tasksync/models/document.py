"""In-memory task document: three ordered sections of tasks."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, Field, ValidationError, field_validator

from tasksync.errors import (
    InvalidTaskTextError,
    PositionOutOfRangeError,
    SyncInProgressError,
    TaskNotFoundError,
)


class Section(str, Enum):
    """Task section enumeration."""

    BACKLOG = "backlog"
    ACTIVE = "active"
    COMPLETED = "completed"


class Task(BaseModel):
    """A single checklist item, identified by its exact text."""

    text: str
    section: Section = Section.BACKLOG
    position: int = Field(default=0, ge=0)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Trim surrounding whitespace; internal whitespace is kept."""
        v = v.strip()
        if not v:
            raise ValueError("Task text must not be empty")
        # A checklist item ends at the end of its line
        if len(v.splitlines()) > 1:
            raise ValueError("Task text must be a single line")
        return v


def make_task(text: str, section: Section, position: int = 0) -> Task:
    """Build a Task, reporting invalid text as InvalidTaskTextError."""
    try:
        return Task(text=text, section=section, position=position)
    except ValidationError as e:
        reason = e.errors()[0]["msg"].removeprefix("Value error, ")
        raise InvalidTaskTextError(text, reason) from e


class Document:
    """Task state grouped by section.

    Positions inside each section are kept contiguous and zero-based;
    every mutation renumbers the sections it touches. While a sync flow
    is presenting divergences the document is locked and mutations raise
    ``SyncInProgressError``.
    """

    def __init__(
        self,
        backlog: Iterable[str] = (),
        active: Iterable[str] = (),
        completed: Iterable[str] = (),
    ):
        """Initialize the document.

        Args:
            backlog: Backlog task texts, in order.
            active: Active task texts, in order.
            completed: Completed task texts, in order.
        """
        self._sections: dict[Section, list[Task]] = {
            Section.BACKLOG: [],
            Section.ACTIVE: [],
            Section.COMPLETED: [],
        }
        self._locked = False
        for section, texts in (
            (Section.BACKLOG, backlog),
            (Section.ACTIVE, active),
            (Section.COMPLETED, completed),
        ):
            self._sections[section] = [
                make_task(text, section, i)
                for i, text in enumerate(texts)
            ]

    # -------------------- read access --------------------

    @property
    def backlog(self) -> list[Task]:
        return list(self._sections[Section.BACKLOG])

    @property
    def active(self) -> list[Task]:
        return list(self._sections[Section.ACTIVE])

    @property
    def completed(self) -> list[Task]:
        return list(self._sections[Section.COMPLETED])

    @property
    def locked(self) -> bool:
        """Whether a sync flow currently holds the document."""
        return self._locked

    @property
    def is_empty(self) -> bool:
        return not any(self._sections.values())

    def tasks(self, section: Section) -> list[Task]:
        """Return a copy of the tasks in a section, in order."""
        return list(self._sections[section])

    def texts(self, section: Section) -> list[str]:
        """Return the task texts of a section, in order."""
        return [t.text for t in self._sections[section]]

    def section_len(self, section: Section) -> int:
        return len(self._sections[section])

    def find(self, text: str, section: Section) -> int:
        """Find the index of the first task with ``text`` in a section.

        Args:
            text: Task text (surrounding whitespace is ignored).
            section: Section to search.

        Returns:
            Index of the task.

        Raises:
            TaskNotFoundError: If no task in the section has this text.
        """
        key = text.strip()
        for i, task in enumerate(self._sections[section]):
            if task.text == key:
                return i
        raise TaskNotFoundError(key, section.value)

    def contains(self, text: str, section: Section) -> bool:
        key = text.strip()
        return any(t.text == key for t in self._sections[section])

    def active_task(self) -> Task | None:
        """The task currently being worked on (first in Active)."""
        active = self._sections[Section.ACTIVE]
        return active[0] if active else None

    def as_dict(self) -> dict[str, list[str]]:
        """Section name -> ordered task texts."""
        return {section.value: self.texts(section) for section in Section}

    def copy(self) -> Document:
        """Return an unlocked deep copy of the document."""
        return Document(
            backlog=self.texts(Section.BACKLOG),
            active=self.texts(Section.ACTIVE),
            completed=self.texts(Section.COMPLETED),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        counts = ", ".join(f"{s.value}={len(t)}" for s, t in self._sections.items())
        return f"Document({counts})"

    # -------------------- locking --------------------

    def lock(self) -> None:
        self._locked = True

    def unlock(self) -> None:
        self._locked = False

    def _check_unlocked(self) -> None:
        if self._locked:
            raise SyncInProgressError()

    def _renumber(self, *sections: Section) -> None:
        for section in sections:
            for i, task in enumerate(self._sections[section]):
                task.section = section
                task.position = i

    def _check_index(self, section: Section, index: int) -> None:
        size = len(self._sections[section])
        if not 0 <= index < size:
            raise PositionOutOfRangeError(index, section.value, size)

    # -------------------- mutations --------------------

    def add_task(
        self, text: str, section: Section, at_position: int | None = None
    ) -> Task:
        """Add a new task to a section.

        Args:
            text: Task text.
            section: Target section.
            at_position: Insert position; appends when None.

        Returns:
            The created task.

        Raises:
            InvalidTaskTextError: If the text is empty or spans several lines.
            PositionOutOfRangeError: If ``at_position`` is past the end.
        """
        self._check_unlocked()
        tasks = self._sections[section]
        if at_position is None:
            at_position = len(tasks)
        elif not 0 <= at_position <= len(tasks):
            raise PositionOutOfRangeError(at_position, section.value, len(tasks))
        task = make_task(text, section)
        tasks.insert(at_position, task)
        self._renumber(section)
        return task

    def delete_task(self, section: Section, index: int) -> Task:
        """Remove the task at ``index`` from a section and return it."""
        self._check_unlocked()
        self._check_index(section, index)
        task = self._sections[section].pop(index)
        self._renumber(section)
        return task

    def move_task(
        self,
        text: str,
        from_section: Section,
        to_section: Section,
        at_position: int | None = None,
    ) -> Task:
        """Move a task between sections (or within one).

        Args:
            text: Text of the task to move.
            from_section: Section currently holding the task.
            to_section: Destination section.
            at_position: Destination index; appends when None.

        Returns:
            The moved task.

        Raises:
            TaskNotFoundError: If the task is not in ``from_section``.
            PositionOutOfRangeError: If ``at_position`` is not a valid
                insert position in the destination.
        """
        self._check_unlocked()
        index = self.find(text, from_section)
        target = self._sections[to_section]
        # Size of the destination once the task has left its source
        size = len(target) - (1 if from_section == to_section else 0)
        if at_position is None:
            at_position = size
        elif not 0 <= at_position <= size:
            raise PositionOutOfRangeError(at_position, to_section.value, size)

        task = self._sections[from_section].pop(index)
        target.insert(at_position, task)
        self._renumber(from_section, to_section)
        return task

    def reorder(self, section: Section, from_index: int, to_index: int) -> None:
        """Move the task at ``from_index`` to ``to_index`` within a section."""
        self._check_unlocked()
        self._check_index(section, from_index)
        self._check_index(section, to_index)
        tasks = self._sections[section]
        tasks.insert(to_index, tasks.pop(from_index))
        self._renumber(section)

    def move_up(self, section: Section, index: int) -> None:
        """Swap a task with its predecessor; no-op at the top."""
        self._check_unlocked()
        self._check_index(section, index)
        if index > 0:
            self.reorder(section, index, index - 1)

    def move_down(self, section: Section, index: int) -> None:
        """Swap a task with its successor; no-op at the bottom."""
        self._check_unlocked()
        self._check_index(section, index)
        if index + 1 < len(self._sections[section]):
            self.reorder(section, index, index + 1)

    def start(self, text: str) -> Task:
        """Move a backlog task to the tail of Active."""
        return self.move_task(text, Section.BACKLOG, Section.ACTIVE)

    def complete(self, text: str) -> Task:
        """Move a task to the tail of Completed.

        Active is searched first, then Backlog.

        Raises:
            TaskNotFoundError: If neither Active nor Backlog holds the task.
        """
        self._check_unlocked()
        for section in (Section.ACTIVE, Section.BACKLOG):
            if self.contains(text, section):
                return self.move_task(text, section, Section.COMPLETED)
        raise TaskNotFoundError(text.strip(), "active or backlog")

    def complete_current(self) -> Task | None:
        """Complete the first active task, if any."""
        self._check_unlocked()
        task = self.active_task()
        if task is None:
            return None
        return self.toggle_completion(Section.ACTIVE, 0)

    def cycle(self, section: Section, index: int) -> Task | None:
        """Move a task between Backlog and Active.

        Completed tasks are left where they are and None is returned.
        """
        self._check_unlocked()
        self._check_index(section, index)
        if section == Section.COMPLETED:
            return None
        target = Section.ACTIVE if section == Section.BACKLOG else Section.BACKLOG
        task = self._sections[section].pop(index)
        self._sections[target].append(task)
        self._renumber(section, target)
        return task

    def toggle_completion(self, section: Section, index: int) -> Task | None:
        """Active -> Completed, or Completed -> Backlog.

        Backlog tasks must be started first; None is returned for them.
        """
        self._check_unlocked()
        self._check_index(section, index)
        if section == Section.BACKLOG:
            return None
        target = Section.COMPLETED if section == Section.ACTIVE else Section.BACKLOG
        task = self._sections[section].pop(index)
        self._sections[target].append(task)
        self._renumber(section, target)
        return task

    def replace_section(self, section: Section, texts: Iterable[str]) -> None:
        """Replace the whole content of a section."""
        self._check_unlocked()
        self._sections[section] = [make_task(text, section) for text in texts]
        self._renumber(section)
