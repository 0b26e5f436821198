"""Per-session undo/redo history."""

import pytest

from ontosketch.history import History


class TestHistory:

    def test_empty(self):
        history = History()
        assert history.current is None
        assert not history.can_undo()
        assert not history.can_redo()
        assert history.undo() is None
        assert history.redo() is None

    def test_undo_redo(self):
        history = History(initial="a")
        history.push("b")
        history.push("c")
        assert history.undo() == "b"
        assert history.undo() == "a"
        assert history.undo() is None
        assert history.current == "a"
        assert history.redo() == "b"
        assert history.redo() == "c"
        assert not history.can_redo()

    def test_push_clears_redo(self):
        history = History(initial="a")
        history.push("b")
        history.undo()
        assert history.can_redo()
        history.push("c")
        assert not history.can_redo()
        assert history.undo() == "a"

    def test_unchanged_value_is_not_recorded(self):
        history = History(initial="a")
        assert history.push("a") is False
        assert not history.can_undo()

    def test_limit_drops_oldest(self):
        history = History(limit=2, initial="a")
        for value in ("b", "c", "d"):
            history.push(value)
        assert history.undo() == "c"
        assert history.undo() == "b"
        assert history.undo() is None

    def test_clear_keeps_current(self):
        history = History(initial="a")
        history.push("b")
        history.clear()
        assert history.current == "b"
        assert not history.can_undo()

    def test_sessions_are_independent(self):
        first, second = History(initial="a"), History(initial="x")
        first.push("b")
        assert not second.can_undo()

    def test_len(self):
        history = History(initial="a")
        history.push("b")
        history.undo()
        assert len(history) == 2

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            History(limit=0)
