"""tasksync - keep a task list in sync with a Markdown checklist file."""

__version__ = "0.1.0"
