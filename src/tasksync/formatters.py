"""Plain-text formatters for shell output.

Numbers shown to the user are 1-based; ``parse_index`` converts them
back to the 0-based indices the document uses.
"""

from tasksync.checklist import FileSnapshot
from tasksync.models import Document, Section
from tasksync.sync import Divergence, DivergenceKind

SECTION_TITLES: dict[Section, str] = {
    Section.BACKLOG: "Backlog",
    Section.ACTIVE: "Active",
    Section.COMPLETED: "Completed",
}

SECTION_MARKS: dict[Section, str] = {
    Section.BACKLOG: "[ ]",
    Section.ACTIVE: "[>]",
    Section.COMPLETED: "[x]",
}

KIND_LABELS: dict[DivergenceKind, str] = {
    DivergenceKind.ADDED_IN_MEMORY: "only in memory",
    DivergenceKind.ADDED_IN_FILE: "only in file",
    DivergenceKind.AMBIGUOUS: "duplicate, needs attention",
}


def format_section(document: Document, section: Section) -> str:
    """Format one section as a numbered list."""
    tasks = document.tasks(section)
    lines = [f"{SECTION_TITLES[section]} ({len(tasks)})"]
    if not tasks:
        lines.append("  (empty)")
    for task in tasks:
        lines.append(f"  {task.position + 1:>2}. {SECTION_MARKS[section]} {task.text}")
    return "\n".join(lines)


def format_document(document: Document) -> str:
    """Format all three sections, Active first."""
    order = (Section.ACTIVE, Section.BACKLOG, Section.COMPLETED)
    return "\n\n".join(format_section(document, section) for section in order)


def format_divergence(divergence: Divergence, number: int | None = None) -> str:
    """Format one divergence as a single line.

    Args:
        divergence: Divergence to format.
        number: Optional 1-based number to prefix.

    Returns:
        e.g. ``"  2. backlog    Buy milk  (only in file)"``
    """
    label = KIND_LABELS[divergence.kind]
    if divergence.is_ambiguous:
        label = f"{label}, {divergence.side.value}"
    prefix = f"{number:>3}. " if number is not None else "  - "
    return f"{prefix}{divergence.section.value:<10} {divergence.text}  ({label})"


def format_divergences(divergences: list[Divergence]) -> str:
    """Format the divergence list shown while a sync is presenting."""
    if not divergences:
        return "File and memory are in sync."
    lines = [f"{len(divergences)} difference(s) between memory and file:"]
    lines.extend(format_divergence(d, i) for i, d in enumerate(divergences, start=1))
    return "\n".join(lines)


def format_snapshot(snapshot: FileSnapshot) -> str:
    """Summarize a parsed file for ``--show``."""
    document = snapshot.to_document()
    parts = []
    if snapshot.metadata:
        keys = ", ".join(str(k) for k in snapshot.metadata)
        parts.append(f"Front-matter: {keys}")
    parts.append(format_section(document, Section.BACKLOG))
    parts.append(format_section(document, Section.COMPLETED))
    parts.append(f"Other lines: {len(snapshot.filler)}")
    return "\n\n".join(parts)


def parse_section(value: str) -> Section:
    """Parse a section name or its first letter.

    Raises:
        ValueError: If the name is not a section.
    """
    value = value.strip().lower()
    for section in Section:
        if value in (section.value, section.value[0]):
            return section
    valid = [s.value for s in Section]
    raise ValueError(f"Invalid section '{value}'. Valid: {valid}")


def parse_index(value: str) -> int:
    """Convert a 1-based number typed by the user to a 0-based index.

    Raises:
        ValueError: If the value is not a positive integer.
    """
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"Expected a task number, got '{value}'") from None
    if number < 1:
        raise ValueError(f"Task numbers start at 1, got {number}")
    return number - 1
