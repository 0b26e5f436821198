"""
Undo / redo history for one editing session.

Holds canonical document strings. A History is owned by whoever edits the
document (one per document in the service); nothing here is shared
process-wide.
"""

from typing import List, Optional

DEFAULT_LIMIT = 100


class History:
    def __init__(self, limit: int = DEFAULT_LIMIT, initial: Optional[str] = None):
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._undo: List[str] = []
        self._redo: List[str] = []
        self._current = initial

    @property
    def current(self) -> Optional[str]:
        return self._current

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def push(self, value: str) -> bool:
        """Record a new accepted value. Returns False when nothing changed.

        Pushing clears the redo stack; the oldest undo entry is dropped once
        the limit is reached.
        """
        if value == self._current:
            return False
        if self._current is not None:
            self._undo.append(self._current)
            if len(self._undo) > self.limit:
                del self._undo[0]
        self._redo.clear()
        self._current = value
        return True

    def undo(self) -> Optional[str]:
        if not self._undo:
            return None
        self._redo.append(self._current)
        self._current = self._undo.pop()
        return self._current

    def redo(self) -> Optional[str]:
        if not self._redo:
            return None
        self._undo.append(self._current)
        self._current = self._redo.pop()
        return self._current

    def clear(self) -> None:
        """Forget past and future values; the current value stays."""
        self._undo.clear()
        self._redo.clear()

    def __len__(self) -> int:
        return len(self._undo) + len(self._redo) + (self._current is not None)
