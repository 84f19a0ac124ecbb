from __future__ import annotations
import logging
from typing import Callable, Iterable, List, Optional

from .models import Element, Layout, new_id, utc_now
from .undo import UndoManager

logger = logging.getLogger(__name__)


class LayoutStore:
    """In-memory state of the layout being edited: element list, selection and
    undo/redo history of full element-list snapshots.

    One instance per editing session. Elements are copied on the way in and
    on the way out, so nothing a caller holds can alter the store or its
    history behind its back. Operations on unknown ids are silent no-ops.
    """

    def __init__(self, history_limit: int = 100):
        self._layout = Layout(name="")
        self._elements: List[Element] = []
        self._selected: List[str] = []
        self._dirty = False
        self.history = UndoManager(limit=history_limit)
        self.on_change: Optional[Callable[["LayoutStore"], None]] = None
        self.on_selection: Optional[Callable[["LayoutStore"], None]] = None

    # ---- read side ----
    @property
    def layout(self) -> Layout:
        """Layout metadata (id, name, store, bounds) without the live elements."""
        meta = self._layout.clone()
        meta.elements = []
        return meta

    @property
    def elements(self) -> List[Element]:
        return [el.copy() for el in self._elements]

    @property
    def selected_ids(self) -> List[str]:
        return list(self._selected)

    @property
    def selected_element(self) -> Optional[Element]:
        if not self._selected:
            return None
        return self.find(self._selected[0])

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def history_depth(self) -> int:
        return self.history.history_depth

    @property
    def redo_depth(self) -> int:
        return self.history.redo_depth

    def find(self, element_id: str) -> Optional[Element]:
        for el in self._elements:
            if el.id == element_id:
                return el.copy()
        return None

    def snapshot(self) -> Layout:
        layout = self._layout.clone()
        layout.elements = self.elements
        return layout

    # ---- lifecycle ----
    def load(self, layout: Optional[Layout]):
        if layout is None:
            self._layout = Layout(name="")
            self._elements = []
        else:
            self._layout = layout.clone()
            self._elements = [el.copy() for el in layout.elements]
            self._layout.elements = []
        self._selected = []
        self.history.reset(self._elements)
        self._dirty = False
        logger.debug("Loaded layout %s with %d elements", self._layout.id, len(self._elements))
        self._emit_change()
        self._emit_selection()

    def rename(self, name: str):
        self._layout.name = name
        self._dirty = True
        self._emit_change()

    def mark_saved(self, layout: Optional[Layout] = None):
        if layout is not None:
            self._layout.id = layout.id
            self._layout.updated_at = layout.updated_at
        self._dirty = False
        self._emit_change()

    def mark_dirty(self):
        self._dirty = True
        self._emit_change()

    # ---- mutations ----
    def _commit(self, elements: List[Element]):
        self.history.push(self._elements)
        self._elements = elements
        self._dirty = True

    def add_element(self, element: Element):
        el = element.copy()
        self._commit(self._elements + [el])
        self._selected = [el.id]
        self._emit_change()
        self._emit_selection()

    def update_element(self, element: Element):
        idx = self._index(element.id)
        if idx is None:
            return
        nxt = list(self._elements)
        nxt[idx] = element.copy()
        self._commit(nxt)
        self._selected = [element.id]
        self._emit_change()
        self._emit_selection()

    def remove_element(self, element_id: str):
        if self._index(element_id) is None:
            return
        self._commit([el for el in self._elements if el.id != element_id])
        self._selected = []
        self._emit_change()
        self._emit_selection()

    def duplicate_element(self, element_id: str, offset: float = 20.0) -> Optional[Element]:
        original = self.find(element_id)
        if original is None:
            return None
        dup = original.copy(id=new_id(), label=f"{original.label} (copy)",
                            x=original.x + offset, y=original.y + offset,
                            updated_at=utc_now())
        self.add_element(dup)
        return dup

    def reorder_element(self, element_id: str, direction: str):
        idx = self._index(element_id)
        if idx is None:
            return
        nxt = list(self._elements)
        item = nxt.pop(idx)
        if direction == "front":
            nxt.append(item)
        else:
            nxt.insert(0, item)
        if [e.id for e in nxt] == [e.id for e in self._elements]:
            return
        self._commit(nxt)
        self._selected = [element_id]
        self._emit_change()
        self._emit_selection()

    def clear(self):
        if not self._elements:
            return
        self._commit([])
        self._selected = []
        self._emit_change()
        self._emit_selection()

    # ---- history ----
    def undo(self):
        snap = self.history.undo(self._elements)
        if snap is None:
            return
        self._restore(snap)

    def redo(self):
        snap = self.history.redo(self._elements)
        if snap is None:
            return
        self._restore(snap)

    def _restore(self, elements: List[Element]):
        self._elements = elements
        ids = {el.id for el in elements}
        self._selected = [i for i in self._selected if i in ids]
        self._dirty = True
        self._emit_change()
        self._emit_selection()

    # ---- selection ----
    def select_elements(self, ids: Iterable[str]):
        self._selected = list(dict.fromkeys(ids))
        self._emit_selection()

    def select_element(self, element_id: Optional[str]):
        self.select_elements([element_id] if element_id else [])

    # ---- helpers ----
    def _index(self, element_id: str) -> Optional[int]:
        for i, el in enumerate(self._elements):
            if el.id == element_id:
                return i
        return None

    def _emit_change(self):
        if self.on_change: self.on_change(self)

    def _emit_selection(self):
        if self.on_selection: self.on_selection(self)
