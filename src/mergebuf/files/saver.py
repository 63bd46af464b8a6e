"""Writing text buffers back to disk.

User files are never written in place: lines go to an intermediate file,
the pack transform runs over it and only a successfully packed result
replaces the destination.
"""

from __future__ import annotations

import codecs
import errno
import os
import shutil
import tempfile
from typing import Optional

from mergebuf.buffer import TextBuffer
from mergebuf.config import Options
from mergebuf.errors import BufferStateError, TransformError
from mergebuf.runtime import telemetry
from mergebuf.text.eol import EolStyle
from mergebuf.text.escape import escape_control_chars

from .loader import discard_file
from .results import SaveOutcome, SaveResult
from .transform import FileTransform, NullTransform, PackingInfo

INTERMEDIATE_PREFIX = "MRG_"


def replace_file(source: str, destination: str) -> None:
    """Move ``source`` over ``destination``, keeping the destination's mode."""

    if os.path.exists(destination):
        shutil.copymode(destination, source)
    try:
        os.replace(source, destination)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        shutil.copyfile(source, destination)
        discard_file(source)


class FileSaver:
    """Serializes a :class:`TextBuffer`, honouring EOL policy and encoding."""

    def __init__(
        self,
        options: Optional[Options] = None,
        transform: Optional[FileTransform] = None,
    ) -> None:
        self.options = options or Options()
        self.transform = transform or NullTransform()

    def resolve_eol(
        self,
        buffer: TextBuffer,
        eol_style: EolStyle,
        packing: Optional[PackingInfo] = None,
    ) -> EolStyle:
        """Effective style: AUTOMATIC (or MIXED) keeps each line's terminator."""

        forced = eol_style is EolStyle.AUTOMATIC and not self.options.allow_mixed_eol
        if forced or (packing is not None and packing.disallow_mixed_eol):
            return buffer.default_eol
        return eol_style

    def save(
        self,
        buffer: TextBuffer,
        path: str,
        *,
        temp: bool = False,
        packing: Optional[PackingInfo] = None,
        eol_style: EolStyle = EolStyle.AUTOMATIC,
        clear_modified: bool = True,
        start_line: int = 0,
        line_count: Optional[int] = None,
    ) -> SaveOutcome:
        """Save ``buffer`` to ``path``.

        ``temp`` marks a working file for the diff engine: it is written
        directly, with control characters escaped, and never packed.
        """

        if not buffer.initialized:
            raise BufferStateError(f"{buffer.name}: nothing loaded to save")
        if not path:
            return SaveOutcome(SaveResult.FAILED, "No file name given")
        if line_count is None:
            line_count = buffer.line_count - start_line

        with telemetry.span(
            "saver::save",
            component="saver",
            metadata={"path": path, "pane": buffer.pane, "temp": temp},
        ) as handle:
            style = self.resolve_eol(buffer, eol_style, packing)
            if temp:
                outcome = self._save_temp(buffer, path, style, start_line, line_count)
            else:
                outcome = self._save_user(
                    buffer,
                    path,
                    packing or PackingInfo(),
                    style,
                    start_line,
                    line_count,
                )
            handle.outcome(outcome.result.value)

        if outcome.succeeded:
            if clear_modified:
                buffer.mark_saved(stamp_revision=not temp)
            elif not temp:
                buffer.saved_revision = buffer.revision
        telemetry.record_event(
            "file.saved",
            level="info" if outcome.succeeded else "error",
            data={"path": path, "pane": buffer.pane, "result": outcome.result.value},
        )
        return outcome

    def _save_temp(
        self,
        buffer: TextBuffer,
        path: str,
        style: EolStyle,
        start_line: int,
        line_count: int,
    ) -> SaveOutcome:
        try:
            self.write_lines(buffer, path, style, start_line, line_count, escape=True)
        except (OSError, UnicodeError) as exc:
            return self._write_failed(path, exc)
        return SaveOutcome(SaveResult.DONE, path=path)

    def _save_user(
        self,
        buffer: TextBuffer,
        path: str,
        packing: PackingInfo,
        style: EolStyle,
        start_line: int,
        line_count: int,
    ) -> SaveOutcome:
        try:
            fd, intermediate = tempfile.mkstemp(
                prefix=INTERMEDIATE_PREFIX, dir=self.options.temp_dir
            )
            os.close(fd)
        except OSError as exc:
            return self._write_failed(self.options.temp_dir, exc)

        try:
            self.write_lines(
                buffer, intermediate, style, start_line, line_count, escape=False
            )
        except (OSError, UnicodeError) as exc:
            discard_file(intermediate)
            return self._write_failed(intermediate, exc)

        packing.subcode = buffer.unpacker_subcode
        try:
            packed = self.transform.pack(intermediate, packing)
        except TransformError as exc:
            discard_file(intermediate)
            return SaveOutcome(SaveResult.PACK_FAILED, str(exc))
        if packed != intermediate:
            discard_file(intermediate)
            intermediate = packed

        try:
            replace_file(intermediate, path)
        except OSError as exc:
            discard_file(intermediate)
            return self._write_failed(path, exc)
        return SaveOutcome(SaveResult.DONE, path=path)

    def _write_failed(self, path: str, exc: Exception) -> SaveOutcome:
        message = getattr(exc, "strerror", None) or str(exc)
        telemetry.log_error("writing file failed", path=path, reason=message)
        return SaveOutcome(SaveResult.FAILED, message)

    def write_lines(
        self,
        buffer: TextBuffer,
        path: str,
        style: EolStyle,
        start_line: int,
        line_count: int,
        *,
        escape: bool,
    ) -> None:
        """Encode lines to ``path``.

        Ghost lines are skipped and the last real line never gets a
        terminator, mirroring how the loader splits records.
        """

        encoding = buffer.encoding
        encoder = codecs.getincrementalencoder(encoding.codec)()
        last_real = buffer.apparent_last_real_line()
        keep_own = style in (EolStyle.AUTOMATIC, EolStyle.MIXED)

        with open(path, "wb") as handle:
            handle.write(encoding.bom_bytes)
            for index, line in buffer.iter_lines(start_line, line_count):
                if line.is_ghost:
                    continue
                text = escape_control_chars(line.text) if escape else line.text
                if index == last_real:
                    handle.write(encoder.encode(text))
                    break
                eol = line.eol if keep_own else style.terminator
                handle.write(encoder.encode(text + eol))
            handle.write(encoder.encode("", final=True))


__all__ = ["FileSaver", "INTERMEDIATE_PREFIX", "replace_file"]
