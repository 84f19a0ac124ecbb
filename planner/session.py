from __future__ import annotations
import logging
from typing import Callable, Optional

from .models import Layout, new_id
from .persistence import LayoutRepository, PersistenceError
from .store import LayoutStore
from .utils import BOUNDARY_W, BOUNDARY_H

logger = logging.getLogger(__name__)

INFO = "info"
ERROR = "error"


class EditorSession:
    """Ties the open layout in a :class:`LayoutStore` to a layout repository.

    Saving is explicit. A failed save leaves the store dirty with the user's
    edits intact, reports an error through ``notify(level, message)`` and
    re-raises :class:`PersistenceError`.
    """

    def __init__(self, store: LayoutStore, layouts: LayoutRepository,
                 notify: Optional[Callable[[str, str], None]] = None,
                 boundary=(BOUNDARY_W, BOUNDARY_H)):
        self.store = store
        self.layouts = layouts
        self.notify = notify
        self.boundary = boundary

    def _notify(self, level: str, message: str):
        if self.notify: self.notify(level, message)

    @property
    def current_object_id(self) -> str:
        return self.store.layout.object_id

    # ---- opening ----
    def open_store(self, object_id: str) -> Optional[Layout]:
        try:
            layout = self.layouts.get_layout_by_object_id(object_id)
        except PersistenceError as e:
            self._notify(ERROR, f"Could not load layouts: {e}")
            raise
        if layout is None:
            logger.info("No layout stored for %s", object_id)
            return None
        self.store.load(layout)
        self._notify(INFO, f"Opened {layout.name or layout.id}")
        return layout

    def open_layout(self, layout_id: str) -> Optional[Layout]:
        try:
            layout = self.layouts.get_layout_by_id(layout_id)
        except PersistenceError as e:
            self._notify(ERROR, f"Could not load layouts: {e}")
            raise
        if layout is None:
            return None
        self.store.load(layout)
        self._notify(INFO, f"Opened {layout.name or layout.id}")
        return layout

    def new_layout(self, object_id: str, name: Optional[str] = None,
                   width: Optional[float] = None, height: Optional[float] = None) -> Layout:
        layout = Layout.new_for_store(object_id, name,
                                      width or self.boundary[0], height or self.boundary[1])
        self.store.load(layout)
        try:
            return self.save()
        except PersistenceError:
            # the new layout exists only in memory until a save succeeds
            self.store.mark_dirty()
            raise

    # ---- saving ----
    def _save(self, layout: Layout) -> Layout:
        try:
            return self.layouts.save_layout(layout)
        except PersistenceError as e:
            self._notify(ERROR, f"Save failed: {e}")
            raise

    def save(self) -> Layout:
        saved = self._save(self.store.snapshot())
        self.store.mark_saved(saved)
        self._notify(INFO, f"Saved {saved.name or saved.id}")
        return saved

    def copy_to_store(self, target_object_id: str, name: Optional[str] = None) -> Layout:
        """Saves a copy of the open layout for another store. Layout and
        element ids are fresh; the open layout stays as it is."""
        source = self.store.snapshot()
        copy = source.clone()
        copy.id = new_id()
        copy.object_id = target_object_id
        copy.name = name or f"{source.name} (copy)"
        for el in copy.elements:
            el.id = new_id()
        saved = self._save(copy)
        self._notify(INFO, f"Copied layout to {target_object_id}")
        return saved

    def reset_to_sample(self) -> Optional[Layout]:
        try:
            self.layouts.reset_to_sample()
        except PersistenceError as e:
            self._notify(ERROR, str(e))
            raise
        object_id = self.current_object_id
        layout = self.layouts.get_layout_by_object_id(object_id) if object_id else None
        self.store.load(layout)
        self._notify(INFO, "Layouts reset to sample data")
        return layout
