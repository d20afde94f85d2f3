"""Markdown checklist parsing, serialization and file access."""

from tasksync.checklist.fileio import load_snapshot, read_checklist, write_checklist
from tasksync.checklist.parser import (
    ChecklistLine,
    FileSnapshot,
    parse_checklist,
    parse_line,
)
from tasksync.checklist.serializer import format_task_line, serialize_document

__all__ = [
    "ChecklistLine",
    "FileSnapshot",
    "format_task_line",
    "load_snapshot",
    "parse_checklist",
    "parse_line",
    "read_checklist",
    "serialize_document",
    "write_checklist",
]
