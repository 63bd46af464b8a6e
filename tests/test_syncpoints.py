from __future__ import annotations

import pytest

from mergebuf.config import Options
from mergebuf.document import MergeDocument
from mergebuf.errors import BufferValidationError, SyncPointError
from mergebuf.syncpoints import SyncPointManager

TEN_LINES = "".join(f"line{i}\n" for i in range(10))


def make_document(tmp_path, panes: int = 2) -> MergeDocument:
    paths = []
    for pane in range(panes):
        path = tmp_path / f"pane{pane}.txt"
        path.write_text(TEN_LINES, newline="")
        paths.append(str(path))
    document = MergeDocument(panes, options=Options(temp_dir=str(tmp_path)))
    document.load_files(paths)
    return document


def test_points_are_kept_in_order() -> None:
    manager = SyncPointManager(2)
    manager.add((5, 6))
    manager.add((2, 3))

    assert manager.points() == [(2, 3), (5, 6)]
    assert len(manager) == 2


def test_crossing_or_malformed_points_are_rejected() -> None:
    manager = SyncPointManager(2)
    manager.add((5, 6))

    with pytest.raises(SyncPointError):
        manager.add((6, 2))
    with pytest.raises(SyncPointError):
        manager.add((1, 2, 3))
    with pytest.raises(SyncPointError):
        manager.add((-1, 0))
    with pytest.raises(SyncPointError):
        manager.add((5, 6))


def test_remove_by_pane_anchor() -> None:
    manager = SyncPointManager(3)
    manager.add((1, 2, 3))

    assert not manager.remove(1, 1)
    assert manager.remove(2, 3)
    assert manager.points() == []


def test_deleting_across_anchor_removes_sync_point(tmp_path) -> None:
    document = make_document(tmp_path)
    document.add_sync_point((5, 5))

    document.delete_text(0, 3, 0, 7, 0)

    assert document.sync_point_list() == []
    assert document.buffer(0).undo.can_undo()


def test_deletion_below_anchor_keeps_sync_point(tmp_path) -> None:
    document = make_document(tmp_path)
    document.add_sync_point((5, 5))

    document.delete_text(0, 6, 0, 7, 0)

    assert document.sync_point_list() == [(5, 5)]


def test_deletion_starting_on_anchor(tmp_path) -> None:
    document = make_document(tmp_path)
    document.add_sync_point((5, 5))

    document.delete_text(0, 5, 1, 6, 0)
    assert document.sync_point_list() == [(5, 5)]

    document.delete_text(0, 5, 0, 6, 0)
    assert document.sync_point_list() == []


def test_other_panes_do_not_affect_anchor(tmp_path) -> None:
    document = make_document(tmp_path, panes=3)
    document.add_sync_point((5, 5, 5))

    document.delete_text(1, 0, 0, 2, 0)

    assert document.sync_point_list() == [(5, 3, 5)]


def test_failed_edit_leaves_sync_points_alone(tmp_path) -> None:
    document = make_document(tmp_path)
    document.add_sync_point((5, 5))

    with pytest.raises(BufferValidationError):
        document.delete_text(0, 3, 0, 40, 0)

    assert document.sync_point_list() == [(5, 5)]
    assert not document.buffer(0).undo.can_undo()


def test_anchors_follow_inserted_and_deleted_lines(tmp_path) -> None:
    document = make_document(tmp_path)
    document.add_sync_point((5, 5))

    document.insert_text(0, 0, 0, "x\ny\n")
    assert document.sync_point_list() == [(7, 5)]

    document.delete_text(0, 1, 0, 3, 0)
    assert document.sync_point_list() == [(5, 5)]

    document.insert_text(0, 5, 2, "\n")
    assert document.sync_point_list() == [(5, 5)]


def test_ghost_lines_shift_anchors_until_rescan(tmp_path) -> None:
    document = make_document(tmp_path)
    document.add_sync_point((5, 5))

    document.buffer(0).insert_ghost_lines(2, 3, listener=document.sync_points)
    assert document.sync_point_list() == [(8, 5)]

    document.rescan(NoDiffs())
    assert document.sync_point_list() == [(5, 5)]


class NoDiffs:
    def annotate(self, document: MergeDocument) -> None:
        del document


def test_deletion_starting_on_ghost_anchor_removes_sync_point(tmp_path) -> None:
    document = make_document(tmp_path)
    document.buffer(0).insert_ghost_lines(5, 2, listener=document.sync_points)
    document.add_sync_point((5, 5))

    document.delete_text(0, 5, 0, 7, 0)

    assert document.sync_point_list() == []
    assert document.buffer(0).real_line_count() == document.buffer(0).line_count


def test_removed_ghost_lines_shift_later_anchors(tmp_path) -> None:
    document = make_document(tmp_path)
    document.buffer(0).insert_ghost_lines(2, 2, listener=document.sync_points)
    document.add_sync_point((8, 6))

    document.delete_text(0, 2, 0, 4, 0)

    assert document.sync_point_list() == [(6, 6)]
    assert document.buffer(0).get_line(6) == "line6"
