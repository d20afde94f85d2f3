"""tasksync CLI entry point."""

import argparse
import logging
import sys
from pathlib import Path

import structlog
from dotenv import load_dotenv

from tasksync import __version__
from tasksync.checklist import load_snapshot, serialize_document
from tasksync.config import Settings, load_settings
from tasksync.errors import TaskSyncError
from tasksync.formatters import format_snapshot
from tasksync.manager import TaskManager
from tasksync.shell import TaskShell


def configure_logging(level: str) -> None:
    """Configure structlog for the application."""
    # Configure stdlib logging; stdout belongs to the shell
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.WARNING),
        stream=sys.stderr,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="tasksync",
        description="Track tasks in memory and keep them in sync with a Markdown checklist",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=None,
        help="Checklist file (default: $TASKSYNC_TASK_FILE; none disables sync)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Logging level (default: $TASKSYNC_LOG_LEVEL or WARNING)",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--show",
        action="store_true",
        help="Print the tasks parsed from the file and exit",
    )
    mode.add_argument(
        "--normalize",
        action="store_true",
        help="Print the file as it would be written back and exit",
    )
    return parser


def run_shell(settings: Settings, path: Path | None) -> int:
    """Load the task file (if any) and run the interactive shell.

    Args:
        settings: Loaded settings.
        path: Checklist file, or None for an in-memory session.

    Returns:
        Process exit code.
    """
    log = structlog.get_logger()

    if path is None:
        manager = TaskManager()
        log.info("no_task_file", message="Running without a task file; sync disabled")
    else:
        try:
            manager = TaskManager.load(path)
        except TaskSyncError as e:
            log.error("task_file_load_failed", path=str(path), error=e.message)
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    TaskShell(manager, settings).run()
    return 0


def run_oneshot(path: Path | None, normalize: bool) -> int:
    """Handle ``--show`` and ``--normalize``."""
    if path is None:
        print("Error: a checklist file is required", file=sys.stderr)
        return 2
    try:
        snapshot = load_snapshot(path)
    except TaskSyncError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if normalize:
        sys.stdout.write(serialize_document(snapshot.to_document(), snapshot))
    else:
        print(format_snapshot(snapshot))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Load .env into os.environ before settings are read
    load_dotenv()
    settings = load_settings(log_level=args.log_level)
    configure_logging(settings.log_level)

    path = args.path or settings.task_file
    if args.show or args.normalize:
        return run_oneshot(path, args.normalize)
    return run_shell(settings, path)


if __name__ == "__main__":
    sys.exit(main())
