from __future__ import annotations
import copy
from typing import Optional, Callable, List

from .models import Element

Snapshot = List[Element]


class UndoManager:
    def __init__(self, on_change: Optional[Callable[[], None]] = None, limit: int = 100):
        self._undo_stack: List[Snapshot] = []
        self._redo_stack: List[Snapshot] = []
        self.limit = max(1, int(limit))
        self.on_change = on_change

    @staticmethod
    def _freeze(elements: Snapshot) -> Snapshot:
        return copy.deepcopy(list(elements))

    def reset(self, initial: Optional[Snapshot] = None):
        self._undo_stack.clear()
        self._redo_stack.clear()
        if initial is not None:
            self._undo_stack.append(self._freeze(initial))
        if self.on_change: self.on_change()

    def push(self, snapshot: Snapshot):
        self._undo_stack.append(self._freeze(snapshot))
        self._redo_stack.clear()
        # bounded: the oldest step falls off
        if len(self._undo_stack) > self.limit:
            del self._undo_stack[0]
        if self.on_change: self.on_change()

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def history_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    def undo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self.can_undo():
            return None
        snap = self._undo_stack.pop()
        self._redo_stack.append(self._freeze(current))
        if self.on_change: self.on_change()
        return self._freeze(snap)

    def redo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self.can_redo():
            return None
        snap = self._redo_stack.pop()
        self._undo_stack.append(self._freeze(current))
        if self.on_change: self.on_change()
        return self._freeze(snap)

    def top(self) -> Optional[Snapshot]:
        return self._freeze(self._undo_stack[-1]) if self._undo_stack else None
