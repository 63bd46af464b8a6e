"""Validation helpers shared across buffer services."""

from __future__ import annotations

from typing import Sequence

from mergebuf.errors import BufferValidationError

from .line import Line
from .state import Position


def ensure_line(lines: Sequence[Line], index: int) -> int:
    if index < 0 or index >= len(lines):
        raise BufferValidationError("Line out of range", position=(index, 0))
    return index


def ensure_position(lines: Sequence[Line], position: Position) -> Position:
    line, char = position
    ensure_line(lines, line)
    if char < 0 or char > len(lines[line].text):
        raise BufferValidationError("Column out of range", position=position)
    return position


def ensure_range(lines: Sequence[Line], start: Position, end: Position) -> None:
    ensure_position(lines, start)
    ensure_position(lines, end)
    if end < start:
        raise BufferValidationError("Range end precedes start", position=end)
