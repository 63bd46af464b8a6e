"""Undo log with group boundaries, plus cross-pane undo correlation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .state import Position


@dataclass(slots=True)
class UndoRecord:
    """One primitive edit, in ghost-free (real line) coordinates."""

    insert: bool
    start: Position
    end: Position
    text: str
    action: str = "unknown"
    begin_group: bool = True
    revision: int = 0


class UndoTimeline:
    """Linear undo/redo history navigated a whole group at a time.

    ``position`` counts the records currently applied. ``sync_position`` is
    the position at the last save, or -1 once that state can no longer be
    reached.
    """

    def __init__(self) -> None:
        self._entries: List[UndoRecord] = []
        self.position = 0
        self.sync_position = 0

    def __len__(self) -> int:
        return len(self._entries)

    def reset(self) -> None:
        self._entries.clear()
        self.position = 0
        self.sync_position = 0

    def push(self, record: UndoRecord) -> None:
        if self.position < len(self._entries):
            del self._entries[self.position :]
            if self.sync_position > self.position:
                self.sync_position = -1
        self._entries.append(record)
        self.position = len(self._entries)

    def can_undo(self) -> bool:
        return self.position > 0

    def can_redo(self) -> bool:
        return self.position < len(self._entries)

    def undo_group(self) -> List[UndoRecord]:
        """Step back over one group; records come back newest first."""

        records: List[UndoRecord] = []
        while self.position > 0:
            self.position -= 1
            record = self._entries[self.position]
            records.append(record)
            if record.begin_group:
                break
        return records

    def redo_group(self) -> List[UndoRecord]:
        """Step forward over one group; records come back oldest first."""

        records: List[UndoRecord] = []
        while self.position < len(self._entries):
            record = self._entries[self.position]
            if records and record.begin_group:
                break
            records.append(record)
            self.position += 1
        return records

    def mark_synced(self) -> None:
        self.sync_position = self.position

    @property
    def at_sync(self) -> bool:
        return self.position == self.sync_position


@dataclass(slots=True)
class UndoCorrelation:
    """Which pane receives focus for each undo group of a document.

    ``targets`` lists one pane per group in the order the groups were
    started; ``position`` separates undone from redoable groups.
    """

    targets: List[int] = field(default_factory=list)
    position: int = 0

    def begin_group(self, pane: int) -> None:
        del self.targets[self.position :]
        self.targets.append(pane)
        self.position = len(self.targets)

    def next_undo(self) -> int | None:
        if self.position == 0:
            return None
        self.position -= 1
        return self.targets[self.position]

    def next_redo(self) -> int | None:
        if self.position >= len(self.targets):
            return None
        pane = self.targets[self.position]
        self.position += 1
        return pane

    def reset(self) -> None:
        self.targets.clear()
        self.position = 0


__all__ = ["UndoCorrelation", "UndoRecord", "UndoTimeline"]
