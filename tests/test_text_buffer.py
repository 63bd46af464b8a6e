from __future__ import annotations

import pytest

from mergebuf.buffer import LineFlags, TextBuffer, UndoCorrelation, split_text
from mergebuf.errors import BufferStateError, BufferValidationError
from mergebuf.files.loader import stream_lines
from mergebuf.text import EolStyle, FileTextEncoding, TextStats


def make_buffer(text: str, pane: int = 0) -> TextBuffer:
    buffer = TextBuffer(pane)
    buffer.populate(
        stream_lines(text, TextStats()),
        encoding=FileTextEncoding(),
        eol_style=EolStyle.UNIX,
        default_eol=EolStyle.UNIX,
    )
    return buffer


def contents(buffer: TextBuffer) -> str:
    return "".join(line.full_text for line in buffer.snapshot())


def test_split_text_keeps_terminators() -> None:
    assert split_text("a\r\nb\rc\n") == [
        ("a", "\r\n"),
        ("b", "\r"),
        ("c", "\n"),
        ("", ""),
    ]
    assert split_text("plain") == [("plain", "")]


def test_line_queries_report_invalid_indexes() -> None:
    buffer = make_buffer("a\nbc")

    assert buffer.line_count == 2
    assert buffer.get_line(1) == "bc"
    assert buffer.get_line(2) is None
    assert buffer.get_line(-1) is None
    assert buffer.get_full_line(0) == ("a\n", True)
    assert buffer.get_full_line(5) == ("", False)
    assert buffer.get_line_length(1) == 2
    assert buffer.get_line_length(9) == -1
    assert buffer.get_full_line_length(0) == 2
    assert buffer.get_full_line_length(9) == 0
    assert buffer.get_line_eol(1) == ""


def test_trailing_terminator_leaves_valid_empty_last_line() -> None:
    buffer = make_buffer("a\n")

    assert buffer.get_full_line(1) == ("", True)


def test_edits_require_initialized_buffer() -> None:
    buffer = TextBuffer()

    with pytest.raises(BufferStateError):
        buffer.insert_text(0, 0, "x")


def test_populate_twice_is_rejected() -> None:
    buffer = make_buffer("a")

    with pytest.raises(BufferStateError):
        buffer.populate(
            [],
            encoding=FileTextEncoding(),
            eol_style=EolStyle.UNIX,
            default_eol=EolStyle.UNIX,
        )


def test_insert_within_line() -> None:
    buffer = make_buffer("hello")

    end = buffer.insert_text(0, 5, " world")

    assert end == (0, 11)
    assert buffer.get_line(0) == "hello world"
    assert buffer.modified


def test_insert_multiline_text_splits_line() -> None:
    buffer = make_buffer("ab\ncd")

    end = buffer.insert_text(0, 1, "X\nY")

    assert end == (1, 1)
    assert contents(buffer) == "aX\nYb\ncd"
    assert buffer.get_line_eol(1) == "\n"


def test_delete_across_lines_returns_removed_text() -> None:
    buffer = make_buffer("ab\ncd\nef")

    removed = buffer.delete_text(0, 1, 2, 1)

    assert removed == "b\ncd\ne"
    assert buffer.line_count == 1
    assert buffer.get_line(0) == "af"
    assert buffer.get_line_eol(0) == ""


def test_delete_rejects_out_of_range_positions() -> None:
    buffer = make_buffer("ab\ncd")

    with pytest.raises(BufferValidationError):
        buffer.delete_text(0, 0, 5, 0)
    with pytest.raises(BufferValidationError):
        buffer.insert_text(0, 3, "x")
    assert not buffer.undo.can_undo()


def test_edit_clears_diff_decoration_and_stamps_revision() -> None:
    buffer = make_buffer("a\nb")
    buffer.set_line_flag(0, LineFlags.DIFF | LineFlags.MOVED)
    buffer.set_line_flag(1, LineFlags.TRIVIAL)

    buffer.insert_text(0, 1, "!")

    assert not buffer.flag_is_set(0, LineFlags.DIFF)
    assert not buffer.flag_is_set(0, LineFlags.MOVED)
    assert buffer.flag_is_set(1, LineFlags.TRIVIAL)
    assert buffer.get_line_revision(0) == buffer.revision == 1
    assert buffer.get_line_revision(1) == 0


def test_ghost_flag_cannot_be_set_directly() -> None:
    buffer = make_buffer("a")

    with pytest.raises(BufferValidationError):
        buffer.set_line_flag(0, LineFlags.GHOST)


def test_ghost_lines_are_skipped_by_text_queries() -> None:
    buffer = make_buffer("a\nb")
    buffer.insert_ghost_lines(1, 2)

    assert buffer.line_count == 4
    assert buffer.real_line_count() == 2
    assert buffer.flag_is_set(1, LineFlags.GHOST)
    assert buffer.get_text(0, 0, 3, 1) == "a\nb"


def test_insert_on_ghost_line_lands_on_next_real_line() -> None:
    buffer = make_buffer("a\nb")
    buffer.insert_ghost_lines(1, 1)

    end = buffer.insert_text(1, 0, "x")

    assert end == (2, 1)
    assert buffer.get_line(2) == "xb"
    assert buffer.flag_is_set(1, LineFlags.GHOST)


def test_apparent_last_real_line_ignores_trailing_ghosts() -> None:
    buffer = make_buffer("a\nb")
    buffer.insert_ghost_lines(buffer.line_count, 3)

    assert buffer.apparent_last_real_line() == 1


def test_prepare_for_rescan_drops_ghosts_and_flags() -> None:
    buffer = make_buffer("a\nb\nc")
    buffer.insert_ghost_lines(1, 2)
    buffer.insert_ghost_lines(buffer.line_count, 1)
    buffer.set_line_flag(0, LineFlags.DIFF)
    buffer.set_line_flag(3, LineFlags.INVISIBLE)

    buffer.prepare_for_rescan()

    assert contents(buffer) == "a\nb\nc"
    assert all(line.flags == LineFlags.NONE for line in buffer.snapshot())


def test_remove_all_ghost_lines_reports_count() -> None:
    buffer = make_buffer("a\nb")
    buffer.insert_ghost_lines(0, 1)
    buffer.insert_ghost_lines(2, 2)

    assert buffer.remove_all_ghost_lines() == 3
    assert buffer.line_count == 2


def test_undo_and_redo_whole_groups() -> None:
    buffer = make_buffer("abc")
    with buffer.undo_group("typing"):
        buffer.insert_text(0, 3, "d")
        buffer.insert_text(0, 4, "e")
    buffer.insert_text(0, 5, "f")

    assert buffer.undo_last() == (0, 5)
    assert buffer.get_line(0) == "abcde"
    assert buffer.undo_last() == (0, 3)
    assert buffer.get_line(0) == "abc"
    assert buffer.undo_last() is None

    assert buffer.redo_next() == (0, 5)
    assert buffer.get_line(0) == "abcde"


def test_undo_back_to_saved_state_clears_modified() -> None:
    buffer = make_buffer("abc")
    buffer.insert_text(0, 0, "x")
    assert buffer.modified

    buffer.undo_last()
    assert not buffer.modified

    buffer.redo_next()
    assert buffer.modified


def test_undo_restores_deleted_lines() -> None:
    buffer = make_buffer("one\ntwo\nthree")
    buffer.delete_text(0, 2, 2, 1)

    buffer.undo_last()

    assert contents(buffer) == "one\ntwo\nthree"


def test_undo_survives_ghost_lines_added_later() -> None:
    buffer = make_buffer("a\nb\nc")
    buffer.insert_text(2, 0, "x")
    buffer.insert_ghost_lines(1, 2)

    assert buffer.undo_last() == (4, 0)
    assert buffer.get_line(4) == "c"


def test_replace_full_lines_copies_middle_line() -> None:
    source = make_buffer("a\nB\nc")
    target = make_buffer("a\nb\nc")

    target.replace_full_lines(source, 1, 1)

    assert contents(target) == "a\nB\nc"
    target.undo_last()
    assert contents(target) == "a\nb\nc"


def test_replace_full_lines_copies_unterminated_last_line() -> None:
    source = make_buffer("a\nb\nX")
    target = make_buffer("a\nb\nc")

    target.replace_full_lines(source, 2, 2)

    assert contents(target) == "a\nb\nX"


def test_replace_full_lines_reports_to_correlation() -> None:
    source = make_buffer("x\ny")
    target = make_buffer("a\nb", pane=1)
    correlation = UndoCorrelation()

    target.replace_full_lines(source, 0, 1, correlation=correlation)

    assert contents(target) == "x\ny"
    assert correlation.targets == [1]


def test_replace_full_lines_fills_ghost_block() -> None:
    source = make_buffer("a\nb\nc\nd")
    target = make_buffer("a\nd")
    target.insert_ghost_lines(1, 2)

    target.replace_full_lines(source, 1, 2)

    assert contents(target) == "a\nb\nc\nd"
    assert target.line_count == target.real_line_count() == 4
    target.undo_last()
    assert contents(target) == "a\nd"


def test_delete_over_ghost_lines_removes_them() -> None:
    buffer = make_buffer("a\nb\nc")
    buffer.insert_ghost_lines(1, 2)

    removed = buffer.delete_text(0, 1, 4, 0)

    assert removed == "\nb\n"
    assert buffer.line_count == 1
    assert buffer.get_line(0) == "ac"
    buffer.undo_last()
    assert contents(buffer) == "a\nb\nc"
