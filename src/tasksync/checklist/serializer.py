"""Write a Document back out as checklist text."""

from __future__ import annotations

from collections import defaultdict

from tasksync.checklist.parser import FileSnapshot
from tasksync.models import Document, Section


def format_task_line(text: str, checked: bool, indent: str = "") -> str:
    """Render one checklist line."""
    mark = "x" if checked else " "
    return f"{indent}- [{mark}] {text}"


def align(texts: list[str], slot_texts: list[str]) -> dict[int, int]:
    """Pair tasks with existing lines holding the same text.

    Finds the longest common subsequence of the two lists, so paired
    tasks keep their relative order. Ties prefer keeping earlier lines.

    Args:
        texts: Task texts in document order.
        slot_texts: Texts of the file's lines of the same kind, in file order.

    Returns:
        Task index -> slot index for every paired task.
    """
    n, m = len(texts), len(slot_texts)
    # lcs[i][j]: longest common subsequence of texts[i:] and slot_texts[j:]
    lcs = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        for j in range(m - 1, -1, -1):
            if texts[i] == slot_texts[j]:
                lcs[i][j] = lcs[i + 1][j + 1] + 1
            else:
                lcs[i][j] = max(lcs[i + 1][j], lcs[i][j + 1])

    pairs: dict[int, int] = {}
    i = j = 0
    while i < n and j < m:
        if texts[i] == slot_texts[j]:
            pairs[i] = j
            i += 1
            j += 1
        elif lcs[i + 1][j] >= lcs[i][j + 1]:
            i += 1
        else:
            j += 1
    return pairs


def serialize_document(document: Document, snapshot: FileSnapshot | None = None) -> str:
    """Serialize a document, reusing the layout of a previous snapshot.

    Tasks are identified by text. A task whose text is still on a line of
    the same kind (unchecked for Backlog and Active, checked for
    Completed) stays on that line, under whatever heading it sits. Other
    tasks are written next to their neighbour in document order, so each
    kind ends up in document order. Lines of tasks that are gone are
    dropped and filler lines are emitted verbatim.

    A kind with no kept line goes where its old lines were; failing
    that, unchecked tasks go before the first checked line and checked
    tasks after the last unchecked line, or at the end of the file.

    Args:
        document: Document to write.
        snapshot: Layout to preserve. None writes a bare checklist.

    Returns:
        File content.
    """
    snapshot = snapshot or FileSnapshot()
    lines = snapshot.lines

    texts: dict[bool, list[str]] = {
        False: document.texts(Section.BACKLOG) + document.texts(Section.ACTIVE),
        True: document.texts(Section.COMPLETED),
    }
    slots: dict[bool, list[int]] = {False: [], True: []}
    for i, line in enumerate(lines):
        if line.is_task:
            slots[bool(line.checked)].append(i)

    kept: dict[int, str] = {}
    before: defaultdict[int, list[str]] = defaultdict(list)
    after: defaultdict[int, list[str]] = defaultdict(list)
    tail: list[str] = []

    # Unchecked first so both kinds queued at one line come out in that order
    for checked in (False, True):
        kind_slots = slots[checked]
        pairs = align(texts[checked], [lines[i].text for i in kind_slots])

        leading: list[str] = []
        anchor: int | None = None
        for k, text in enumerate(texts[checked]):
            if k in pairs:
                anchor = kind_slots[pairs[k]]
                kept[anchor] = text
            elif anchor is None:
                leading.append(text)
            else:
                after[anchor].append(format_task_line(text, checked, lines[anchor].indent))

        if not leading:
            continue
        if pairs:
            at, queue = kind_slots[min(pairs.values())], before
        elif kind_slots:
            at, queue = kind_slots[0], before
        elif not checked and slots[True]:
            at, queue = slots[True][0], before
        elif checked and slots[False]:
            at, queue = slots[False][-1], after
        else:
            tail.extend(format_task_line(text, checked) for text in leading)
            continue
        indent = lines[at].indent
        queue[at].extend(format_task_line(text, checked, indent) for text in leading)

    out: list[str] = []
    for i, line in enumerate(lines):
        out.extend(before[i])
        if not line.is_task:
            out.append(line.raw)
        elif i in kept:
            out.append(format_task_line(kept[i], bool(line.checked), line.indent))
        out.extend(after[i])
    out.extend(tail)

    if not out:
        return ""
    text = snapshot.newline.join(out)
    if snapshot.trailing_newline:
        text += snapshot.newline
    return text
