"""Line records held by a text buffer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag


class LineFlags(IntFlag):
    NONE = 0
    DIFF = 0x01
    TRIVIAL = 0x02
    MOVED = 0x04
    SNAPSHOT_DIFF = 0x08
    INVISIBLE = 0x10
    GHOST = 0x20


# Decoration owned by the diff annotator; stale after an edit or a rescan.
EDIT_CLEARED = (
    LineFlags.DIFF | LineFlags.TRIVIAL | LineFlags.MOVED | LineFlags.SNAPSHOT_DIFF
)
RESCAN_CLEARED = EDIT_CLEARED | LineFlags.INVISIBLE


@dataclass(slots=True)
class Line:
    text: str = ""
    eol: str = ""
    flags: LineFlags = LineFlags.NONE
    revision: int = 0

    @property
    def full_text(self) -> str:
        return self.text + self.eol

    @property
    def is_ghost(self) -> bool:
        return bool(self.flags & LineFlags.GHOST)

    def has_flags(self, flags: LineFlags) -> bool:
        return (self.flags & flags) == flags


def ghost_line() -> Line:
    return Line(flags=LineFlags.GHOST)


__all__ = ["EDIT_CLEARED", "RESCAN_CLEARED", "Line", "LineFlags", "ghost_line"]
