"""Line-oriented interactive shell over the task manager."""

from __future__ import annotations

import shlex
from collections.abc import Callable

import structlog

from tasksync.config import Settings
from tasksync.errors import TaskSyncError
from tasksync.formatters import (
    format_divergence,
    format_divergences,
    format_document,
    parse_index,
    parse_section,
)
from tasksync.manager import TaskManager
from tasksync.models import Document, Section
from tasksync.sync import Choice, Resolution, SyncFlow

log = structlog.get_logger()

HELP_TEXT = """\
Commands:
  list                              Show all tasks
  add [SECTION] TEXT                Add a task (default section: backlog)
  start TEXT                        Move a backlog task to active
  done TEXT                         Complete an active or backlog task
  finish                            Complete the current (first active) task
  reopen N                          Move completed task N back to backlog
  move TEXT FROM TO [N]             Move a task between sections
  up SECTION N / down SECTION N     Reorder a task
  delete SECTION N                  Delete a task
  sync                              Reconcile memory with the task file
  default                           Attach (and create) the default task file
  help                              Show this help
  quit                              Leave

Sections: backlog (b), active (a), completed (c). Quote text with spaces
when more arguments follow it: move "Buy milk" backlog active"""

SYNC_PROMPT = "[w]rite memory to file, [r]ead file into memory, [p]ick per item, [c]ancel: "


class TaskShell:
    """Reads commands and applies them to a TaskManager."""

    def __init__(
        self,
        manager: TaskManager,
        settings: Settings,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        """Initialize the shell.

        Args:
            manager: Task manager to drive.
            settings: Loaded settings.
            input_func: Reads one line given a prompt.
            output: Writes one message.
        """
        self.manager = manager
        self.settings = settings
        self._input = input_func
        self._output = output
        self._commands: dict[str, Callable[[list[str]], None]] = {
            "list": self.cmd_list,
            "ls": self.cmd_list,
            "add": self.cmd_add,
            "start": self.cmd_start,
            "done": self.cmd_done,
            "finish": self.cmd_finish,
            "reopen": self.cmd_reopen,
            "move": self.cmd_move,
            "up": self.cmd_up,
            "down": self.cmd_down,
            "delete": self.cmd_delete,
            "rm": self.cmd_delete,
            "sync": self.cmd_sync,
            "default": self.cmd_default,
            "help": self.cmd_help,
        }

    def run(self) -> None:
        """Run until ``quit`` or end of input."""
        if not self.manager.has_file_path:
            self._output("No task file given; sync is disabled.")
        while True:
            try:
                line = self._input(self.settings.prompt)
            except (EOFError, KeyboardInterrupt):
                self._output("")
                break
            if not self.handle(line):
                break

    def handle(self, line: str) -> bool:
        """Execute one command line.

        Returns:
            False when the shell should exit.
        """
        try:
            args = shlex.split(line)
        except ValueError as e:
            self._output(f"Error: {e}")
            return True
        if not args:
            return True

        name, rest = args[0].lower(), args[1:]
        if name in ("quit", "exit", "q"):
            return False

        command = self._commands.get(name)
        if command is None:
            self._output(f"Unknown command '{name}'. Type 'help' for commands.")
            return True

        try:
            command(rest)
        except TaskSyncError as e:
            log.debug("command_failed", command=name, error=e.message)
            self._output(f"Error: {e.message}")
        except ValueError as e:
            self._output(f"Error: {e}")
        return True

    # -------------------- commands --------------------

    @property
    def _document(self) -> Document:
        return self.manager.document

    def _text(self, args: list[str], usage: str) -> str:
        text = " ".join(args).strip()
        if not text:
            raise ValueError(f"Usage: {usage}")
        return text

    def cmd_help(self, args: list[str]) -> None:
        self._output(HELP_TEXT)

    def cmd_list(self, args: list[str]) -> None:
        self._output(format_document(self._document))

    def cmd_add(self, args: list[str]) -> None:
        section = Section.BACKLOG
        # Only full section names here; "a" could start the task text
        if len(args) > 1 and args[0].lower() in {s.value for s in Section}:
            section = Section(args[0].lower())
            args = args[1:]
        task = self._document.add_task(self._text(args, "add [SECTION] TEXT"), section)
        self._output(f"Added to {section.value}: {task.text}")

    def cmd_start(self, args: list[str]) -> None:
        task = self._document.start(self._text(args, "start TEXT"))
        self._output(f"Started: {task.text}")

    def cmd_done(self, args: list[str]) -> None:
        task = self._document.complete(self._text(args, "done TEXT"))
        self._output(f"Completed: {task.text}")

    def cmd_finish(self, args: list[str]) -> None:
        task = self._document.complete_current()
        if task is None:
            self._output("No active task.")
        else:
            self._output(f"Completed: {task.text}")

    def cmd_reopen(self, args: list[str]) -> None:
        if len(args) != 1:
            raise ValueError("Usage: reopen N")
        task = self._document.toggle_completion(Section.COMPLETED, parse_index(args[0]))
        if task is not None:
            self._output(f"Reopened: {task.text}")

    def cmd_move(self, args: list[str]) -> None:
        if len(args) not in (3, 4):
            raise ValueError('Usage: move "TEXT" FROM TO [N]')
        position = parse_index(args[3]) if len(args) == 4 else None
        task = self._document.move_task(
            args[0], parse_section(args[1]), parse_section(args[2]), position
        )
        self._output(f"Moved to {task.section.value} #{task.position + 1}: {task.text}")

    def cmd_up(self, args: list[str]) -> None:
        if len(args) != 2:
            raise ValueError("Usage: up SECTION N")
        self._document.move_up(parse_section(args[0]), parse_index(args[1]))

    def cmd_down(self, args: list[str]) -> None:
        if len(args) != 2:
            raise ValueError("Usage: down SECTION N")
        self._document.move_down(parse_section(args[0]), parse_index(args[1]))

    def cmd_delete(self, args: list[str]) -> None:
        if len(args) != 2:
            raise ValueError("Usage: delete SECTION N")
        task = self._document.delete_task(parse_section(args[0]), parse_index(args[1]))
        self._output(f"Deleted: {task.text}")

    def cmd_default(self, args: list[str]) -> None:
        path = self.settings.default_task_file
        self.manager.create_default_file(path)
        self._output(f"Using task file {path}")

    def cmd_sync(self, args: list[str]) -> None:
        flow = self.manager.start_sync()
        divergences = flow.divergences()
        if not flow.is_presenting:
            self._output(format_divergences([]))
            return

        self._output(format_divergences(divergences))
        try:
            self._resolve(flow)
        except (EOFError, KeyboardInterrupt):
            flow.cancel()
            self._output("Sync cancelled.")

    def _resolve(self, flow: SyncFlow) -> None:
        while True:
            answer = self._input(SYNC_PROMPT).strip().lower()
            if answer in ("w", "write"):
                flow.resolve(Resolution.WRITE_TO_FILE)
                self._output(f"Wrote {flow.path}")
                return
            if answer in ("r", "read"):
                flow.resolve(Resolution.READ_FROM_FILE)
                self._output(f"Reloaded tasks from {flow.path}")
                return
            if answer in ("p", "pick"):
                self._pick(flow)
                return
            if answer in ("c", "cancel", ""):
                flow.resolve(Resolution.CANCEL)
                self._output("Sync cancelled.")
                return
            self._output(f"Unknown choice '{answer}'.")

    def _pick(self, flow: SyncFlow) -> None:
        choices = {}
        for divergence in flow.divergences():
            if divergence.is_ambiguous:
                continue
            self._output(format_divergence(divergence))
            answer = self._input("  keep [m]emory side or [f]ile side? ").strip().lower()
            choices[divergence] = Choice.KEEP_FILE if answer.startswith("f") else Choice.KEEP_MEMORY
        flow.resolve_each(choices)
        self._output(f"Merged and wrote {flow.path}")
