"""
Tests for the history manager.
"""

import pytest

from photoedits.core.errors import InvalidInput
from photoedits.core.history import HISTORY_LIMIT, HistoryManager, Snapshot
from photoedits.core.layers import LayerManager


def snap(reason):
    return Snapshot(reason=reason, base=None, canvas_width=0, canvas_height=0, layers=LayerManager())


def reasons(history):
    return [entry.reason for entry in history.entries]


class TestHistoryManager:
    """Tests for HistoryManager."""

    def test_empty(self):
        history = HistoryManager()
        assert len(history) == 0
        assert history.cursor == -1
        assert history.current is None
        assert not history.can_undo()
        assert not history.can_redo()
        assert history.undo() is None
        assert history.redo() is None

    def test_default_limit(self):
        assert HistoryManager().limit == HISTORY_LIMIT == 50

    def test_invalid_limit(self):
        with pytest.raises(InvalidInput, match="at least 1"):
            HistoryManager(0)

    def test_push_moves_cursor(self):
        history = HistoryManager()
        history.push(snap("a"))
        assert not history.can_undo()
        history.push(snap("b"))
        assert history.cursor == 1
        assert history.can_undo()
        assert not history.can_redo()
        assert history.current.reason == "b"

    def test_undo_redo(self):
        history = HistoryManager()
        for r in "abc":
            history.push(snap(r))
        assert history.undo().reason == "b"
        assert history.undo().reason == "a"
        assert history.undo() is None
        assert history.redo().reason == "b"
        assert history.can_redo()

    def test_branch_discard(self):
        history = HistoryManager()
        for r in "abc":
            history.push(snap(r))
        history.undo()
        history.undo()
        history.push(snap("d"))
        assert reasons(history) == ["a", "d"]
        assert history.redo() is None
        assert not history.can_redo()

    def test_limit_evicts_oldest(self):
        history = HistoryManager(limit=3)
        for r in "abcde":
            history.push(snap(r))
        assert reasons(history) == ["c", "d", "e"]
        assert history.cursor == 2

    def test_cursor_invariants_after_many_pushes(self):
        history = HistoryManager()
        for i in range(HISTORY_LIMIT + 20):
            history.push(snap(str(i)))
            assert len(history) <= HISTORY_LIMIT
            assert history.can_undo() == (history.cursor > 0)
            assert history.can_redo() == (history.cursor < len(history) - 1)
        assert history.entries[0].reason == "20"

    def test_clear(self):
        history = HistoryManager()
        history.push(snap("a"))
        history.clear()
        assert len(history) == 0
        assert history.current is None
