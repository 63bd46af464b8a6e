"""Per-pane text buffer: line storage, ghost lines, flags and undo."""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple

from mergebuf.errors import BufferStateError, BufferValidationError
from mergebuf.runtime import telemetry
from mergebuf.text.encoding import FileTextEncoding
from mergebuf.text.eol import EolStyle, style_of

from .line import EDIT_CLEARED, RESCAN_CLEARED, Line, LineFlags, ghost_line
from .state import Position
from .undo import UndoCorrelation, UndoRecord, UndoTimeline
from .validation import ensure_line, ensure_position, ensure_range

_EOL_RE = re.compile(r"\r\n|\r|\n")


class EditListener(Protocol):
    """Observer handed to mutating calls; the document uses it for sync points.

    Line numbers are buffer indices observed before the change is applied.
    """

    def before_delete(
        self, pane: int, start_line: int, start_char: int, end_line: int
    ) -> None:
        ...

    def lines_removed(self, pane: int, start_line: int, count: int) -> None:
        ...

    def lines_inserted(self, pane: int, line: int, char: int, count: int) -> None:
        ...


def split_text(text: str) -> List[Tuple[str, str]]:
    """Split ``text`` into ``(content, terminator)`` pairs.

    The final pair always has an empty terminator, so ``"a\\n"`` gives
    ``[("a", "\\n"), ("", "")]``.
    """

    pieces: List[Tuple[str, str]] = []
    pos = 0
    for match in _EOL_RE.finditer(text):
        pieces.append((text[pos : match.start()], match.group()))
        pos = match.end()
    pieces.append((text[pos:], ""))
    return pieces


def _platform_eol() -> EolStyle:
    return style_of(os.linesep) or EolStyle.DOS


class TextBuffer:
    """Ordered lines of one pane plus the metadata needed to save them back.

    Edit positions are ``(line, char)`` buffer indices. A position on a ghost
    line refers to the start of the next real line. Undo records are kept in
    ghost-free coordinates so that ghost lines added or dropped by a rescan
    do not invalidate the history.
    """

    def __init__(self, pane: int = 0, *, name: Optional[str] = None) -> None:
        self.pane = pane
        self.name = name or f"pane{pane}"
        self._lines: List[Line] = []
        self.encoding = FileTextEncoding()
        self.eol_style = _platform_eol()
        self.default_eol = self.eol_style
        self.initialized = False
        self.modified = False
        self.read_only = False
        self.revision = 0
        self.saved_revision = 0
        self.unpacker_subcode = 0
        self.undo = UndoTimeline()
        self._group_depth = 0
        self._group_begin_pending = False

    # -- lifecycle -----------------------------------------------------

    def init_new(self) -> None:
        """Make the buffer a valid, empty, initialized document."""

        self._lines = [Line()]
        self._finish_init()

    def populate(
        self,
        lines: Sequence[Line],
        *,
        encoding: FileTextEncoding,
        eol_style: EolStyle,
        default_eol: EolStyle,
    ) -> None:
        """Fill the buffer once with loaded lines."""

        if self.initialized:
            raise BufferStateError(f"{self.name}: buffer is already loaded")
        self._lines = list(lines) or [Line()]
        self.encoding = encoding
        self.eol_style = eol_style
        self.default_eol = default_eol
        self._finish_init()

    def _finish_init(self) -> None:
        self.initialized = True
        self.modified = False
        self.revision = 0
        self.saved_revision = 0
        self.undo.reset()
        self._group_depth = 0
        self._group_begin_pending = False

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise BufferStateError(f"{self.name}: buffer is not initialized")

    def mark_saved(self, *, stamp_revision: bool = True) -> None:
        """Clear the modified state; diff-engine temp saves keep the revision."""

        self.modified = False
        self.undo.mark_synced()
        if stamp_revision:
            self.saved_revision = self.revision

    # -- queries -------------------------------------------------------

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def snapshot(self) -> Tuple[Line, ...]:
        return tuple(replace(line) for line in self._lines)

    def iter_lines(
        self, start: int = 0, count: Optional[int] = None
    ) -> Iterator[Tuple[int, Line]]:
        """Yield ``(index, line)`` pairs without copying; callers must not mutate."""

        stop = len(self._lines)
        if count is not None:
            stop = min(start + count, stop)
        for index in range(max(start, 0), stop):
            yield index, self._lines[index]

    def _valid(self, index: int) -> bool:
        return 0 <= index < len(self._lines)

    def get_line(self, index: int) -> Optional[str]:
        """Line text without terminator, or ``None`` for an invalid index."""

        if not self._valid(index):
            return None
        return self._lines[index].text

    def get_full_line(self, index: int) -> Tuple[str, bool]:
        """Line text with terminator and whether ``index`` was valid."""

        if not self._valid(index):
            return "", False
        return self._lines[index].full_text, True

    def get_line_eol(self, index: int) -> str:
        return self._lines[ensure_line(self._lines, index)].eol

    def get_line_length(self, index: int) -> int:
        """Length without terminator; -1 for an invalid index."""

        return len(self._lines[index].text) if self._valid(index) else -1

    def get_full_line_length(self, index: int) -> int:
        return len(self._lines[index].full_text) if self._valid(index) else 0

    def get_line_flags(self, index: int) -> LineFlags:
        return self._lines[ensure_line(self._lines, index)].flags

    def flag_is_set(self, index: int, flag: LineFlags) -> bool:
        return self._lines[ensure_line(self._lines, index)].has_flags(flag)

    def get_line_revision(self, index: int) -> int:
        return self._lines[ensure_line(self._lines, index)].revision

    def get_text(
        self, start_line: int, start_char: int, end_line: int, end_char: int
    ) -> str:
        """Text between two positions; ghost lines contribute nothing."""

        ensure_range(self._lines, (start_line, start_char), (end_line, end_char))
        if start_line == end_line:
            return self._lines[start_line].text[start_char:end_char]
        head = self._lines[start_line]
        parts = [head.text[start_char:], head.eol]
        parts.extend(line.full_text for line in self._lines[start_line + 1 : end_line])
        parts.append(self._lines[end_line].text[:end_char])
        return "".join(parts)

    def apparent_last_real_line(self) -> int:
        """Index of the last non-ghost line, -1 if there is none."""

        for index in range(len(self._lines) - 1, -1, -1):
            if not self._lines[index].is_ghost:
                return index
        return -1

    def real_line_count(self) -> int:
        return sum(1 for line in self._lines if not line.is_ghost)

    # -- coordinates ---------------------------------------------------

    def _real_index(self, index: int) -> int:
        return sum(1 for line in self._lines[:index] if not line.is_ghost)

    def _stream_position(self, line: int, char: int) -> Position:
        if not self._lines[line].is_ghost:
            return self._real_index(line), char
        for index in range(line + 1, len(self._lines)):
            if not self._lines[index].is_ghost:
                return self._real_index(index), 0
        last = self.apparent_last_real_line()
        if last < 0:
            raise BufferStateError(f"{self.name}: buffer holds only ghost lines")
        return self._real_index(last), len(self._lines[last].text)

    def _buffer_position(self, position: Position) -> Position:
        real, char = position
        seen = 0
        for index, line in enumerate(self._lines):
            if line.is_ghost:
                continue
            if seen == real:
                return index, char
            seen += 1
        raise BufferValidationError("Real line out of range", position=position)

    # -- undo groups ---------------------------------------------------

    def begin_undo_group(self, merge: bool = False) -> None:
        """Open a group; nested calls join the outermost group."""

        if self._group_depth == 0:
            self._group_begin_pending = not merge
        self._group_depth += 1

    def flush_undo_group(self) -> None:
        if self._group_depth == 0:
            raise BufferStateError(f"{self.name}: no undo group is open")
        self._group_depth -= 1
        if self._group_depth == 0:
            self._group_begin_pending = False

    @contextmanager
    def undo_group(self, label: str = "edit", *, merge: bool = False) -> Iterator[None]:
        outermost = self._group_depth == 0
        self.begin_undo_group(merge)
        try:
            if outermost:
                with telemetry.span(
                    f"buffer::{label}",
                    component="buffer",
                    metadata={"buffer": self.name},
                ):
                    yield
            else:
                yield
        finally:
            self.flush_undo_group()

    def _record(
        self, record: UndoRecord, correlation: Optional[UndoCorrelation]
    ) -> None:
        begin = self._group_depth == 0 or self._group_begin_pending
        self._group_begin_pending = False
        record.begin_group = begin
        record.revision = self.revision
        self.undo.push(record)
        self.modified = True
        if begin and correlation is not None:
            correlation.begin_group(self.pane)

    # -- primitives ----------------------------------------------------

    def _touch(self, line: Line) -> None:
        line.flags &= ~EDIT_CLEARED
        line.revision = self.revision

    def _insert(
        self, start: Position, text: str, listener: Optional[EditListener]
    ) -> Position:
        index, char = self._buffer_position(start)
        head = self._lines[index]
        pieces = split_text(text)
        self.revision += 1

        if len(pieces) == 1:
            head.text = head.text[:char] + text + head.text[char:]
            self._touch(head)
            return start[0], char + len(text)

        suffix, tail_eol = head.text[char:], head.eol
        head.text = head.text[:char] + pieces[0][0]
        head.eol = pieces[0][1]
        self._touch(head)
        added = [Line(content, eol) for content, eol in pieces[1:-1]]
        last_text = pieces[-1][0]
        added.append(Line(last_text + suffix, tail_eol))
        for line in added:
            line.revision = self.revision

        if listener is not None:
            listener.lines_inserted(self.pane, index, char, len(added))
        self._lines[index + 1 : index + 1] = added
        return start[0] + len(added), len(last_text)

    def _delete(
        self,
        start: Position,
        end: Position,
        listener: Optional[EditListener],
        *,
        announce: bool = True,
    ) -> str:
        start_line, start_char = self._buffer_position(start)
        end_line, end_char = self._buffer_position(end)
        text = self.get_text(start_line, start_char, end_line, end_char)
        if announce and listener is not None:
            listener.before_delete(self.pane, start_line, start_char, end_line)

        head, tail = self._lines[start_line], self._lines[end_line]
        self.revision += 1
        head.text = head.text[:start_char] + tail.text[end_char:]
        head.eol = tail.eol
        self._touch(head)
        if end_line > start_line:
            if listener is not None:
                listener.lines_removed(self.pane, start_line, end_line - start_line)
            del self._lines[start_line + 1 : end_line + 1]
        return text

    # -- edits ---------------------------------------------------------

    def insert_text(
        self,
        line: int,
        char: int,
        text: str,
        *,
        action: str = "insert",
        listener: Optional[EditListener] = None,
        correlation: Optional[UndoCorrelation] = None,
    ) -> Position:
        """Insert ``text`` at ``(line, char)``; returns the end position."""

        self._require_initialized()
        ensure_position(self._lines, (line, char))
        start = self._stream_position(line, char)
        if not text:
            return self._buffer_position(start)
        end = self._insert(start, text, listener)
        self._record(
            UndoRecord(insert=True, start=start, end=end, text=text, action=action),
            correlation,
        )
        return self._buffer_position(end)

    def delete_text(
        self,
        start_line: int,
        start_char: int,
        end_line: int,
        end_char: int,
        *,
        action: str = "delete",
        listener: Optional[EditListener] = None,
        correlation: Optional[UndoCorrelation] = None,
    ) -> str:
        """Delete a range and return the removed text.

        Ghost lines inside ``[start_line, end_line)`` are dropped as well;
        they hold no text, so no undo record covers them.
        """

        self._require_initialized()
        ensure_range(self._lines, (start_line, start_char), (end_line, end_char))
        start = self._stream_position(start_line, start_char)
        end = self._stream_position(end_line, end_char)
        ghosts = any(line.is_ghost for line in self._lines[start_line:end_line])
        if end <= start and not ghosts:
            return ""
        if listener is not None:
            listener.before_delete(self.pane, start_line, start_char, end_line)
        self._remove_ghosts(start_line, end_line, listener)
        if end <= start:
            return ""
        text = self._delete(start, end, listener, announce=False)
        self._record(
            UndoRecord(insert=False, start=start, end=end, text=text, action=action),
            correlation,
        )
        return text

    def replace_full_lines(
        self,
        source: "TextBuffer",
        line_begin: int,
        line_end: int,
        *,
        action: str = "merge",
        listener: Optional[EditListener] = None,
        correlation: Optional[UndoCorrelation] = None,
    ) -> None:
        """Replace lines ``line_begin..line_end`` with the same lines of ``source``.

        Only the terminator of the last copied line is carried over, so
        copying the source's final (unterminated) line leaves this buffer's
        block unterminated as well.
        """

        ensure_range(source._lines, (line_begin, 0), (line_end, 0))
        ensure_line(self._lines, line_begin)

        text = ""
        if line_begin != line_end or source.get_line_length(line_end) > 0:
            text = source.get_text(
                line_begin, 0, line_end, source.get_line_length(line_end)
            )
        text += source.get_line_eol(line_end)

        with self.undo_group(action):
            if line_begin != line_end or self.get_full_line_length(line_end) > 0:
                end = min(line_end, self.line_count - 1)
                if line_end + 1 < self.line_count:
                    self.delete_text(
                        line_begin,
                        0,
                        end + 1,
                        0,
                        action=action,
                        listener=listener,
                        correlation=correlation,
                    )
                else:
                    self.delete_text(
                        line_begin,
                        0,
                        end,
                        self.get_line_length(end),
                        action=action,
                        listener=listener,
                        correlation=correlation,
                    )
            if text:
                self.insert_text(
                    line_begin,
                    0,
                    text,
                    action=action,
                    listener=listener,
                    correlation=correlation,
                )

    def undo_last(self, listener: Optional[EditListener] = None) -> Optional[Position]:
        """Revert the most recent undo group; returns where the caret belongs."""

        records = self.undo.undo_group()
        if not records:
            return None
        for record in records:
            if record.insert:
                self._delete(record.start, record.end, listener)
            else:
                self._insert(record.start, record.text, listener)
        self.modified = not self.undo.at_sync
        return self._buffer_position(records[-1].start)

    def redo_next(self, listener: Optional[EditListener] = None) -> Optional[Position]:
        records = self.undo.redo_group()
        if not records:
            return None
        end = records[-1].end
        for record in records:
            if record.insert:
                end = self._insert(record.start, record.text, listener)
            else:
                self._delete(record.start, record.end, listener)
                end = record.start
        self.modified = not self.undo.at_sync
        return self._buffer_position(end)

    # -- flags and ghost lines ----------------------------------------

    def set_line_flag(self, index: int, flag: LineFlags, on: bool = True) -> None:
        line = self._lines[ensure_line(self._lines, index)]
        if flag & LineFlags.GHOST:
            raise BufferValidationError(
                "Ghost status is set through insert_ghost_lines", position=(index, 0)
            )
        if on:
            line.flags |= flag
        else:
            line.flags &= ~flag

    def insert_ghost_lines(
        self, index: int, count: int, *, listener: Optional[EditListener] = None
    ) -> None:
        """Insert ``count`` ghost lines before ``index`` (``line_count`` appends)."""

        if index < 0 or index > len(self._lines):
            raise BufferValidationError("Line out of range", position=(index, 0))
        if count <= 0:
            return
        if listener is not None:
            listener.lines_inserted(self.pane, index, 0, count)
        self._lines[index:index] = [ghost_line() for _ in range(count)]

    def remove_all_ghost_lines(
        self, *, listener: Optional[EditListener] = None
    ) -> int:
        return self._remove_ghosts(0, len(self._lines), listener)

    def _remove_ghosts(
        self, start: int, stop: int, listener: Optional[EditListener]
    ) -> int:
        """Drop ghost lines with indices in ``[start, stop)``, bottom-up by run."""

        removed = 0
        index = stop
        while index > start:
            index -= 1
            if not self._lines[index].is_ghost:
                continue
            run_end = index + 1
            while index > start and self._lines[index - 1].is_ghost:
                index -= 1
            if listener is not None:
                listener.lines_removed(self.pane, index, run_end - index)
            del self._lines[index:run_end]
            removed += run_end - index
        return removed

    def prepare_for_rescan(self, *, listener: Optional[EditListener] = None) -> None:
        """Drop ghost lines and stale diff decoration before a new comparison."""

        self.remove_all_ghost_lines(listener=listener)
        for line in self._lines:
            line.flags &= ~RESCAN_CLEARED


__all__ = ["EditListener", "TextBuffer", "split_text"]
