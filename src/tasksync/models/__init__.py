"""Task document model."""

from tasksync.models.document import Document, Section, Task

__all__ = ["Document", "Section", "Task"]
