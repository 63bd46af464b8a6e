"""Loading files into text buffers.

The loader runs UNPACK -> OPEN -> DETECT_ENCODING -> STREAM_LINES -> FINALIZE.
Any failure aborts to an empty, initialized buffer so callers never see a
partially populated pane.
"""

from __future__ import annotations

import io
import os
from enum import Enum
from typing import List, Optional, Tuple

from mergebuf.buffer import Line, TextBuffer
from mergebuf.config import Options
from mergebuf.errors import BufferStateError, TransformError
from mergebuf.runtime import telemetry
from mergebuf.text.encoding import (
    SAMPLE_SIZE,
    FileTextEncoding,
    guess_from_sample,
    resolve_encoding,
    sniff_bom,
)
from mergebuf.text.eol import EolStyle, TextStats, classify, dominant_style, is_pure

from .results import LoadOutcome, LoadResult
from .transform import FileTransform, NullTransform, PackingInfo

BINARY_SNIFF_SIZE = 8 * 1024
REPLACEMENT_CHAR = "\ufffd"


class LoadState(str, Enum):
    UNPACK = "unpack"
    OPEN = "open"
    DETECT_ENCODING = "detect_encoding"
    STREAM_LINES = "stream_lines"
    FINALIZE = "finalize"


def _split_record(record: str) -> Tuple[str, str]:
    if record.endswith("\r\n"):
        return record[:-2], "\r\n"
    if record.endswith(("\n", "\r")):
        return record[:-1], record[-1]
    return record, ""


def stream_lines(text: str, stats: TextStats) -> List[Line]:
    """Split decoded text into lines, counting terminators into ``stats``.

    A trailing terminator yields one extra empty line; empty text yields a
    single empty line.
    """

    lines: List[Line] = []
    for record in io.StringIO(text, newline=""):
        content, eol = _split_record(record)
        stats.count(eol)
        lines.append(Line(content, eol))
    if not lines or lines[-1].eol:
        lines.append(Line())
    return lines


def decode(data: bytes, encoding: FileTextEncoding, stats: TextStats) -> str:
    """Decode ``data`` (BOM already stripped); losses are counted, not raised."""

    try:
        return data.decode(encoding.codec)
    except UnicodeDecodeError:
        text = data.decode(encoding.codec, errors="replace")
        stats.nlosses = max(1, text.count(REPLACEMENT_CHAR))
        return text


class FileLoader:
    """Populates a :class:`TextBuffer` from a file on disk."""

    def __init__(
        self,
        options: Optional[Options] = None,
        transform: Optional[FileTransform] = None,
    ) -> None:
        self.options = options or Options()
        self.transform = transform or NullTransform()

    def load(
        self,
        buffer: TextBuffer,
        path: str,
        *,
        packing: Optional[PackingInfo] = None,
        encoding: Optional[FileTextEncoding] = None,
        eol_style: EolStyle = EolStyle.AUTOMATIC,
    ) -> LoadOutcome:
        """Load ``path`` into ``buffer``.

        ``encoding`` is the caller's hint; ``None`` lets the configured code
        page detection decide. ``packing`` is updated with the sub-code the
        unpack stage reports.
        """

        if buffer.initialized:
            raise BufferStateError(f"{buffer.name}: create a new buffer to reload")
        packing = packing if packing is not None else PackingInfo()

        with telemetry.span(
            "loader::load",
            component="loader",
            metadata={"path": path, "pane": buffer.pane},
        ) as handle:
            outcome = self._unpack_and_read(buffer, path, packing, encoding, eol_style)
            handle.outcome(outcome.result.value)

        telemetry.record_event(
            "file.loaded",
            level="info" if outcome.succeeded else "warning",
            data={
                "path": path,
                "pane": buffer.pane,
                "result": outcome.result.value,
                "lossy": outcome.lossy,
                "lines": buffer.line_count,
                "error": outcome.error,
            },
        )
        return outcome

    def _abort(
        self,
        buffer: TextBuffer,
        state: LoadState,
        result: LoadResult,
        error: str = "",
    ) -> LoadOutcome:
        buffer.init_new()
        telemetry.record_event(
            "load.abort",
            level="warning",
            data={"pane": buffer.pane, "state": state.value, "result": result.value},
        )
        return LoadOutcome(result=result, error=error)

    def _unpack_and_read(
        self,
        buffer: TextBuffer,
        path: str,
        packing: PackingInfo,
        hint: Optional[FileTextEncoding],
        eol_style: EolStyle,
    ) -> LoadOutcome:
        try:
            unpacked = self.transform.unpack(path, packing)
        except TransformError as exc:
            return self._abort(
                buffer, LoadState.UNPACK, LoadResult.UNPACK_FAILED, str(exc)
            )
        buffer.unpacker_subcode = unpacked.subcode
        packing.subcode = unpacked.subcode
        packing.plugin_name = unpacked.plugin_name

        try:
            return self._read(buffer, unpacked.path, packing, hint, eol_style)
        finally:
            if os.path.abspath(unpacked.path) != os.path.abspath(path):
                discard_file(unpacked.path)

    def _read(
        self,
        buffer: TextBuffer,
        working: str,
        packing: PackingInfo,
        hint: Optional[FileTextEncoding],
        eol_style: EolStyle,
    ) -> LoadOutcome:
        try:
            with open(working, "rb") as handle:
                data = handle.read()
        except OSError as exc:
            return self._abort(
                buffer, LoadState.OPEN, LoadResult.ERROR, exc.strerror or str(exc)
            )

        sample = data[:SAMPLE_SIZE]
        try:
            if hint is None or packing.plugin_name:
                encoding = guess_from_sample(
                    sample,
                    self.options.cp_detect_mode,
                    default_codepage=self.options.default_codepage,
                    truncated=len(data) > SAMPLE_SIZE,
                )
            else:
                encoding = resolve_encoding(sample, hint)
        except LookupError as exc:
            return self._abort(
                buffer, LoadState.DETECT_ENCODING, LoadResult.ERROR, str(exc)
            )

        body = data[sniff_bom(data)[1] :] if encoding.bom else data
        stats = TextStats()
        if not encoding.unicoding.is_wide:
            stats.nzeros = body[:BINARY_SNIFF_SIZE].count(0)
            if stats.nzeros:
                return self._abort(
                    buffer, LoadState.DETECT_ENCODING, LoadResult.BINARY
                )

        lines = stream_lines(decode(body, encoding, stats), stats)

        style = classify(stats) if eol_style is EolStyle.AUTOMATIC else eol_style
        default = dominant_style(stats) if style is EolStyle.MIXED else style
        buffer.populate(lines, encoding=encoding, eol_style=style, default_eol=default)

        lossy = stats.nlosses > 0
        buffer.read_only = lossy
        result = LoadResult.OK if is_pure(stats) else LoadResult.OK_IMPURE
        return LoadOutcome(result=result, read_only=lossy, lossy=lossy)


def discard_file(path: str) -> None:
    """Remove an intermediate file; failures are logged, never raised."""

    try:
        os.remove(path)
    except OSError as exc:
        telemetry.log_error("temp file cleanup failed", path=path, reason=str(exc))


__all__ = ["FileLoader", "LoadState", "decode", "discard_file", "stream_lines"]
