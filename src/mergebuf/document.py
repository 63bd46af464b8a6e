"""Multi-pane merge document owning the buffers, sync points and undo focus."""

from __future__ import annotations

import os
import tempfile
from typing import List, Optional, Protocol, Sequence, Tuple

from mergebuf.buffer import Position, TextBuffer, UndoCorrelation
from mergebuf.config import Options
from mergebuf.files import (
    FileLoader,
    FileSaver,
    FileTransform,
    LoadOutcome,
    LoadResult,
    NullTransform,
    PackingInfo,
    SaveOutcome,
)
from mergebuf.runtime import telemetry
from mergebuf.syncpoints import SyncPoint, SyncPointManager
from mergebuf.text.encoding import FileTextEncoding
from mergebuf.text.eol import EolStyle


class DiffAnnotator(Protocol):
    """Comparison engine: sets line flags and ghost lines after a rescan."""

    def annotate(self, document: "MergeDocument") -> None:
        ...


class MergeDocument:
    """Owns two or three pane buffers for the lifetime of one comparison.

    Every edit goes through the document so that sync point bookkeeping and
    undo focus travel with the buffer's own undo record.
    """

    def __init__(
        self,
        panes: int = 2,
        *,
        options: Optional[Options] = None,
        transform: Optional[FileTransform] = None,
    ) -> None:
        if panes not in (2, 3):
            raise ValueError(f"a merge document has 2 or 3 panes, not {panes}")
        self.panes = panes
        self.options = options or Options.from_env()
        self.transform = transform or NullTransform()
        self.loader = FileLoader(self.options, self.transform)
        self.saver = FileSaver(self.options, self.transform)
        self.packing = PackingInfo()
        self.sync_points = SyncPointManager(panes)
        self.undo_correlation = UndoCorrelation()
        self.buffers: List[TextBuffer] = [TextBuffer(pane) for pane in range(panes)]

    def buffer(self, pane: int) -> TextBuffer:
        return self.buffers[pane]

    @property
    def is_modified(self) -> bool:
        return any(buffer.modified for buffer in self.buffers)

    # -- loading and saving --------------------------------------------

    def load_files(
        self,
        paths: Sequence[str],
        *,
        encodings: Optional[Sequence[Optional[FileTextEncoding]]] = None,
        eol_style: EolStyle = EolStyle.AUTOMATIC,
    ) -> List[LoadOutcome]:
        """Load one file per pane into fresh buffers.

        All panes share one ``PackingInfo``; a pane whose unpack sub-code
        differs from the first pane's is reported as UNPACK_FAILED.
        """

        if len(paths) != self.panes:
            raise ValueError(f"expected {self.panes} paths, got {len(paths)}")
        hints = list(encodings) if encodings is not None else [None] * self.panes

        self.buffers = [TextBuffer(pane) for pane in range(self.panes)]
        self.sync_points.clear()
        self.undo_correlation.reset()
        self.packing = PackingInfo(disallow_mixed_eol=self.packing.disallow_mixed_eol)

        outcomes: List[LoadOutcome] = []
        subcode: Optional[int] = None
        plugin_name = ""
        for pane, path in enumerate(paths):
            buffer = self.buffers[pane]
            outcome = self.loader.load(
                buffer,
                path,
                packing=self.packing,
                encoding=hints[pane],
                eol_style=eol_style,
            )
            if outcome.result is not LoadResult.UNPACK_FAILED:
                if subcode is None:
                    subcode = buffer.unpacker_subcode
                    plugin_name = self.packing.plugin_name
                elif buffer.unpacker_subcode != subcode:
                    outcome = self._reject_subcode(pane, subcode)
                    self.packing.subcode = subcode
                    self.packing.plugin_name = plugin_name
            outcomes.append(outcome)
        return outcomes

    def _reject_subcode(self, pane: int, expected: int) -> LoadOutcome:
        found = self.buffers[pane].unpacker_subcode
        fresh = TextBuffer(pane)
        fresh.init_new()
        fresh.unpacker_subcode = expected
        self.buffers[pane] = fresh
        telemetry.record_event(
            "load.subcode_mismatch",
            level="warning",
            data={"pane": pane, "expected": expected, "found": found},
        )
        return LoadOutcome(
            LoadResult.UNPACK_FAILED,
            error=(
                f"pane {pane} needs unpacker sub-code {found}, "
                f"comparison uses {expected}"
            ),
        )

    def save_file(
        self,
        pane: int,
        path: str,
        *,
        eol_style: EolStyle = EolStyle.AUTOMATIC,
        clear_modified: bool = True,
    ) -> SaveOutcome:
        return self.saver.save(
            self.buffers[pane],
            path,
            temp=False,
            packing=self.packing,
            eol_style=eol_style,
            clear_modified=clear_modified,
        )

    def save_temp_files(self, directory: Optional[str] = None) -> List[SaveOutcome]:
        """Write every pane to an escaped working file for the diff engine."""

        outcomes = []
        for buffer in self.buffers:
            fd, path = tempfile.mkstemp(
                prefix=f"WMDIFF{buffer.pane}_",
                suffix=".txt",
                dir=directory or self.options.temp_dir,
            )
            os.close(fd)
            outcomes.append(
                self.saver.save(buffer, path, temp=True, clear_modified=False)
            )
        return outcomes

    # -- edits -----------------------------------------------------------

    def insert_text(self, pane: int, line: int, char: int, text: str) -> Position:
        return self.buffers[pane].insert_text(
            line,
            char,
            text,
            listener=self.sync_points,
            correlation=self.undo_correlation,
        )

    def delete_text(
        self, pane: int, start_line: int, start_char: int, end_line: int, end_char: int
    ) -> str:
        return self.buffers[pane].delete_text(
            start_line,
            start_char,
            end_line,
            end_char,
            listener=self.sync_points,
            correlation=self.undo_correlation,
        )

    def copy_lines(
        self, source: int, target: int, line_begin: int, line_end: int
    ) -> None:
        """Copy lines ``line_begin..line_end`` of pane ``source`` over ``target``."""

        self.buffers[target].replace_full_lines(
            self.buffers[source],
            line_begin,
            line_end,
            listener=self.sync_points,
            correlation=self.undo_correlation,
        )

    def undo(self) -> Optional[Tuple[int, Position]]:
        """Undo the latest group of whichever pane made it."""

        pane = self.undo_correlation.next_undo()
        if pane is None:
            return None
        position = self.buffers[pane].undo_last(listener=self.sync_points)
        return None if position is None else (pane, position)

    def redo(self) -> Optional[Tuple[int, Position]]:
        pane = self.undo_correlation.next_redo()
        if pane is None:
            return None
        position = self.buffers[pane].redo_next(listener=self.sync_points)
        return None if position is None else (pane, position)

    # -- sync points and rescans ------------------------------------------

    def add_sync_point(self, lines: Sequence[int]) -> SyncPoint:
        return self.sync_points.add(lines)

    def sync_point_list(self) -> List[SyncPoint]:
        return self.sync_points.points()

    def rescan(self, annotator: DiffAnnotator) -> None:
        with telemetry.span("document::rescan", component="document"):
            for buffer in self.buffers:
                buffer.prepare_for_rescan(listener=self.sync_points)
            annotator.annotate(self)


__all__ = ["DiffAnnotator", "MergeDocument"]
