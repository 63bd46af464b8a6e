"""Per-pane text buffers, line records and undo bookkeeping."""

from .buffer import EditListener, TextBuffer, split_text
from .line import Line, LineFlags
from .state import Position
from .undo import UndoCorrelation, UndoRecord, UndoTimeline
from .validation import ensure_line, ensure_position, ensure_range

__all__ = [
    "EditListener",
    "Line",
    "LineFlags",
    "Position",
    "TextBuffer",
    "UndoCorrelation",
    "UndoRecord",
    "UndoTimeline",
    "ensure_line",
    "ensure_position",
    "ensure_range",
    "split_text",
]
