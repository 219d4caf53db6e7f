from berry_editor.editor.history import HistoryStack
from berry_editor.editor.models import Snapshot
from berry_editor.common.models import SelectionRange


def test_undo_redo_swaps_stacks():
    history = HistoryStack()
    history.push(1)
    history.push(2)

    assert history.undo(3) == 2
    assert history.undo(2) == 1
    assert history.undo(1) is None
    assert history.redo(1) == 2
    assert history.redo(2) == 3
    assert history.redo(3) is None


def test_duplicate_push_is_suppressed():
    history = HistoryStack()
    history.push("x")
    history.push("x")
    assert len(history) == 1


def test_push_clears_redo():
    history = HistoryStack()
    history.push("a")
    history.undo("b")
    assert history.can_redo()

    history.push("c")
    assert not history.can_redo()
    assert history.can_undo()


def test_clear_empties_both_stacks():
    history = HistoryStack()
    history.push("a")
    history.push("b")
    history.undo("c")

    history.clear()
    assert not history.can_undo()
    assert not history.can_redo()
    assert history.undo("d") is None


def test_custom_equality_compares_html_only():
    history = HistoryStack(are_equal=lambda a, b: a.html == b.html)
    history.push(Snapshot(html="<p>a</p>", selection=SelectionRange(anchor=0, focus=0)))
    history.push(Snapshot(html="<p>a</p>", selection=SelectionRange(anchor=1, focus=1)))
    assert len(history) == 1
