"""
State persistence for the sketch service.

Canonical document strings (plus the shared scene value) persisted to a JSON
state file on every mutation. Undo/redo history is kept in-memory only, one
History per document, so a restart starts each document with a clean history.
Uses an asyncio.Event to notify SSE listeners of changes (zero polling).
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ontosketch.compile_ontology import compile_document
from ontosketch.history import DEFAULT_LIMIT, History
from ontosketch.validate import validate_scene

STATE_FILE = Path("ontosketch_state.json")

DEFAULT_SCENE = {"x": 0, "y": 0, "k": 1}


class DocumentStore:
    def __init__(self, path: Optional[Path] = None, history_limit: int = DEFAULT_LIMIT):
        self._path = path or STATE_FILE
        self._history_limit = history_limit
        self._documents: Dict[str, str] = {}
        self._histories: Dict[str, History] = {}
        self._scene: Dict[str, Any] = dict(DEFAULT_SCENE)
        self._version = 0
        self._event: Optional[asyncio.Event] = None
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                state = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, IOError):
            return
        if not isinstance(state, dict):
            return
        self._documents = dict(state.get("documents", {}))
        self._scene = dict(state.get("scene", DEFAULT_SCENE))

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump({"documents": self._documents, "scene": self._scene}, f, indent=2, ensure_ascii=False)

    def save(self) -> None:
        """Explicit save for shutdown / flush."""
        self._save()

    def _notify(self) -> None:
        """Bump version and wake any SSE listeners."""
        self._version += 1
        if self._event is not None:
            self._event.set()

    @property
    def version(self) -> int:
        return self._version

    async def wait_for_change(self, since_version: int) -> int:
        """Block until the store version exceeds *since_version*. Returns new version."""
        if self._event is None:
            self._event = asyncio.Event()
        while self._version <= since_version:
            self._event.clear()
            await self._event.wait()
        return self._version

    def _history(self, doc_id: str) -> History:
        history = self._histories.get(doc_id)
        if history is None:
            history = History(self._history_limit, initial=self._documents.get(doc_id))
            self._histories[doc_id] = history
        return history

    # ── Documents ──────────────────────────────────────────────────

    def list_documents(self) -> Dict[str, Dict[str, Any]]:
        result = {}
        for doc_id in sorted(self._documents):
            history = self._history(doc_id)
            result[doc_id] = {
                "id": doc_id,
                "elements": len(json.loads(self._documents[doc_id])["elements"]),
                "can_undo": history.can_undo(),
                "can_redo": history.can_redo(),
            }
        return result

    def get(self, doc_id: str) -> Optional[str]:
        return self._documents.get(doc_id)

    def put(self, doc_id: str, value: Any) -> Tuple[str, bool]:
        """Accept a new document value (JSON text or mapping).

        Raises ValidationError / StatementParseError and keeps the previous
        value when the new one is rejected. Returns (canonical, changed).
        """
        canonical = compile_document(value).canonical
        changed = self._history(doc_id).push(canonical)
        if changed:
            self._documents[doc_id] = canonical
            self._save()
            self._notify()
        return canonical, changed

    def remove(self, doc_id: str) -> bool:
        if doc_id in self._documents:
            del self._documents[doc_id]
            self._histories.pop(doc_id, None)
            self._save()
            self._notify()
            return True
        return False

    def undo(self, doc_id: str) -> Optional[str]:
        return self._step(doc_id, self._history(doc_id).undo)

    def redo(self, doc_id: str) -> Optional[str]:
        return self._step(doc_id, self._history(doc_id).redo)

    def _step(self, doc_id: str, move) -> Optional[str]:
        value = move()
        if value is None:
            return None
        self._documents[doc_id] = value
        self._save()
        self._notify()
        return value

    # ── Scene ──────────────────────────────────────────────────────

    def get_scene(self) -> Dict[str, Any]:
        return dict(self._scene)

    def set_scene(self, scene: Any) -> Dict[str, Any]:
        validate_scene(scene)
        self._scene = dict(scene)
        self._save()
        self._notify()
        return self.get_scene()
