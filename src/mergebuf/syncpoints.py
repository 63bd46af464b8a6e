"""Cross-pane sync points.

A sync point holds one line index per pane and asks the comparison to
align those lines. The manager doubles as the ``EditListener`` handed to
buffer edits, so anchors are dropped or moved from pre-edit line numbers.
"""

from __future__ import annotations

import bisect
from typing import List, Sequence, Tuple

from mergebuf.errors import SyncPointError
from mergebuf.runtime import telemetry

SyncPoint = Tuple[int, ...]


class SyncPointManager:
    def __init__(self, panes: int) -> None:
        self.panes = panes
        self._points: List[List[int]] = []

    def __len__(self) -> int:
        return len(self._points)

    def points(self) -> List[SyncPoint]:
        return [tuple(point) for point in self._points]

    def add(self, point: Sequence[int]) -> SyncPoint:
        """Insert ``point`` keeping every pane's anchors non-decreasing."""

        if len(point) != self.panes:
            raise SyncPointError(f"expected {self.panes} anchors, got {len(point)}")
        if any(line < 0 for line in point):
            raise SyncPointError(f"negative anchor in {tuple(point)}")
        anchors = list(point)
        if anchors in self._points:
            raise SyncPointError(f"sync point {tuple(point)} already exists")

        index = bisect.bisect_right([p[0] for p in self._points], anchors[0])
        before = self._points[index - 1] if index > 0 else None
        after = self._points[index] if index < len(self._points) else None
        for pane in range(self.panes):
            crossed = (before is not None and before[pane] > anchors[pane]) or (
                after is not None and after[pane] < anchors[pane]
            )
            if crossed:
                raise SyncPointError(f"sync point {tuple(point)} crosses pane {pane}")
        self._points.insert(index, anchors)
        return tuple(anchors)

    def remove(self, pane: int, line: int) -> bool:
        """Drop the sync point anchored at ``line`` in ``pane``."""

        for index, point in enumerate(self._points):
            if point[pane] == line:
                del self._points[index]
                return True
        return False

    def clear(self) -> None:
        self._points.clear()

    def invalidate(
        self, pane: int, start_line: int, start_char: int, end_line: int
    ) -> List[SyncPoint]:
        """Remove sync points whose ``pane`` anchor a deletion collapses.

        An anchor is lost when the deleted range starts on it at column 0, or
        starts above it, and ends on a later line.
        """

        removed: List[SyncPoint] = []
        for point in list(self._points):
            anchor = point[pane]
            starts_on = start_char == 0 and start_line == anchor
            if (starts_on or start_line < anchor) and anchor < end_line:
                self._points.remove(point)
                removed.append(tuple(point))
        if removed:
            telemetry.record_event(
                "syncpoints.invalidated",
                data={
                    "pane": pane,
                    "range": (start_line, end_line),
                    "removed": removed,
                },
            )
        return removed

    # EditListener protocol

    def before_delete(
        self, pane: int, start_line: int, start_char: int, end_line: int
    ) -> None:
        self.invalidate(pane, start_line, start_char, end_line)

    def lines_removed(self, pane: int, start_line: int, count: int) -> None:
        for point in self._points:
            if point[pane] > start_line:
                point[pane] = max(start_line, point[pane] - count)

    def lines_inserted(self, pane: int, line: int, char: int, count: int) -> None:
        for point in self._points:
            anchor = point[pane]
            if anchor > line or (anchor == line and char == 0):
                point[pane] = anchor + count


__all__ = ["SyncPoint", "SyncPointManager"]
