"""Reading and writing the checklist file on disk."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path

import structlog

from tasksync.checklist.parser import FileSnapshot, parse_checklist
from tasksync.errors import FileUnreadableError, FileUnwritableError

log = structlog.get_logger()


def read_checklist(path: Path) -> str:
    """Read the checklist file as UTF-8 text.

    Args:
        path: Checklist file path.

    Returns:
        File content.

    Raises:
        FileUnreadableError: If the file is missing, cannot be opened,
            or is not valid UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileUnreadableError(path, "file not found") from None
    except PermissionError:
        raise FileUnreadableError(path, "permission denied") from None
    except UnicodeDecodeError as e:
        raise FileUnreadableError(path, f"not valid UTF-8 text ({e.reason})") from e
    except OSError as e:
        raise FileUnreadableError(path, e.strerror or str(e)) from e


def load_snapshot(path: Path) -> FileSnapshot:
    """Read and parse the checklist file."""
    snapshot = parse_checklist(read_checklist(path), source=path)
    log.debug(
        "checklist_parsed",
        path=str(path),
        incomplete=len(snapshot.incomplete),
        complete=len(snapshot.complete),
        filler=len(snapshot.filler),
    )
    return snapshot


def write_checklist(path: Path, content: str) -> None:
    """Replace the checklist file content atomically.

    The new content is written to a temporary file next to the target
    and moved over it, so a failed write never leaves a truncated file.
    Symlinks are followed: the file they point to is replaced, the link
    itself is left in place.

    Args:
        path: Checklist file path.
        content: New file content.

    Raises:
        FileUnwritableError: If the file or its directory cannot be written.
    """
    try:
        target = path.resolve()
    except (OSError, RuntimeError) as e:
        # Symlink loop
        raise FileUnwritableError(path, str(e)) from e
    if not target.parent.is_dir():
        raise FileUnwritableError(path, "directory does not exist")
    if target.exists() and not os.access(target, os.W_OK):
        raise FileUnwritableError(path, "permission denied")

    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            delete=False,
            dir=str(target.parent),
            prefix=f".{target.name}.",
            suffix=".tmp",
            encoding="utf-8",
            newline="",
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
        os.replace(tmp_name, target)
    except OSError as e:
        if tmp_name:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        log.error("checklist_write_failed", path=str(path), error=str(e))
        raise FileUnwritableError(path, e.strerror or str(e)) from e

    log.debug("checklist_written", path=str(path), size=len(content))
