"""Pointer gestures on the layout canvas.

Raw pointer input (down / move / up / leave / double click) is turned into
Layout Store calls. While a gesture runs only a preview copy of the element
changes; the store sees exactly one ``update_element`` when the gesture ends.

Gestures are small state objects; the controller holds at most one of them::

    Idle --down on element--> Dragging --up/leave--> Idle
    Idle --down on corner---> Resizing --up/leave--> Idle
    Idle --down on rotor----> Rotating --up/leave--> Idle

Nothing here knows about Qt or SVG, render adapters read
``displayed_elements()`` and call the pointer methods with layout coordinates.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .models import Element, Mode
from .store import LayoutStore
from .utils import (PX_GRID, MIN_ELEMENT_W, MIN_ELEMENT_H, HANDLE_SIZE,
                    ROTATE_HANDLE_OFFSET, ROTATE_HANDLE_SIZE,
                    snap, normalize_angle, clamp, rotate_point, to_local)

logger = logging.getLogger(__name__)

CORNERS = ("tl", "tr", "bl", "br")
# unit offsets of each corner from the centre, in the element's own frame
_CORNER_SIGN = {"tl": (-1, -1), "tr": (1, -1), "bl": (-1, 1), "br": (1, 1)}
_OPPOSITE = {"tl": "br", "tr": "bl", "bl": "tr", "br": "tl"}


class GestureState:
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    ROTATING = "rotating"


@dataclass
class Hit:
    target: str                      # "element" | "resize" | "rotate"
    element_id: str
    corner: Optional[str] = None


# ---- geometry helpers ----
def corner_point(el: Element, corner: str) -> Tuple[float, float]:
    cx, cy = el.center()
    sx, sy = _CORNER_SIGN[corner]
    return rotate_point(cx + sx * el.width / 2.0, cy + sy * el.height / 2.0, cx, cy, el.rotation)


def rotate_handle_point(el: Element) -> Tuple[float, float]:
    cx, cy = el.center()
    return rotate_point(cx, cy - el.height / 2.0 - ROTATE_HANDLE_OFFSET, cx, cy, el.rotation)


def contains(el: Element, x: float, y: float) -> bool:
    cx, cy = el.center()
    lx, ly = to_local(x, y, cx, cy, el.rotation)
    return abs(lx) <= el.width / 2.0 and abs(ly) <= el.height / 2.0


def _near(ax: float, ay: float, bx: float, by: float, radius: float) -> bool:
    return math.hypot(ax - bx, ay - by) <= radius


# ---- gestures ----
class _Gesture:
    state = GestureState.IDLE

    def __init__(self, start: Element, x: float, y: float):
        self.start = start.copy()
        self.preview = start.copy()
        self.origin = (x, y)
        self.moved = False

    def move(self, x: float, y: float) -> Element:
        if (x, y) != self.origin:
            self.moved = True
        return self.update(x, y)

    def update(self, x: float, y: float) -> Element:
        raise NotImplementedError

    def final(self) -> Element:
        return self.preview.copy()


class DragGesture(_Gesture):
    state = GestureState.DRAGGING

    def __init__(self, start: Element, x: float, y: float, snap_step: Optional[float]):
        super().__init__(start, x, y)
        self.snap_step = snap_step

    def _place(self, x: float, y: float) -> Tuple[float, float]:
        if self.snap_step:
            return snap(x, self.snap_step), snap(y, self.snap_step)
        return x, y

    def update(self, x, y):
        dx, dy = x - self.origin[0], y - self.origin[1]
        nx, ny = self._place(self.start.x + dx, self.start.y + dy)
        self.preview = self.start.copy(x=nx, y=ny)
        return self.preview

    def final(self):
        nx, ny = self._place(self.preview.x, self.preview.y)
        return self.preview.copy(x=nx, y=ny)


class ResizeGesture(_Gesture):
    """Corner resize in the element's own (rotated) frame; the opposite
    corner keeps its world position."""
    state = GestureState.RESIZING

    def __init__(self, start: Element, x: float, y: float, corner: str,
                 min_w: float, min_h: float, snap_step: Optional[float]):
        super().__init__(start, x, y)
        self.corner = corner
        self.min_w = min_w
        self.min_h = min_h
        self.snap_step = snap_step

    def update(self, x, y):
        el = self.start
        cx, cy = el.center()
        lx, ly = to_local(x, y, cx, cy, el.rotation)
        sx, sy = _CORNER_SIGN[self.corner]
        ox, oy = _CORNER_SIGN[_OPPOSITE[self.corner]]
        fx, fy = ox * el.width / 2.0, oy * el.height / 2.0

        w = (lx - fx) * sx
        h = (ly - fy) * sy
        if self.snap_step:
            w, h = snap(w, self.snap_step), snap(h, self.snap_step)
        w = max(self.min_w, round(w))
        h = max(self.min_h, round(h))

        # new centre, expressed in the old frame, then back to world space
        ncx_l = fx + sx * w / 2.0
        ncy_l = fy + sy * h / 2.0
        wcx, wcy = rotate_point(cx + ncx_l, cy + ncy_l, cx, cy, el.rotation)
        self.preview = el.copy(x=wcx - w / 2.0, y=wcy - h / 2.0, width=w, height=h)
        return self.preview


class RotateGesture(_Gesture):
    state = GestureState.ROTATING

    def __init__(self, start: Element, x: float, y: float, limit: Optional[float]):
        super().__init__(start, x, y)
        self.limit = limit
        self.center = start.center()

    def update(self, x, y):
        cx, cy = self.center
        if _near(x, y, cx, cy, 1e-9):
            return self.preview
        # the handle sits above the centre, so straight up means 0 degrees
        angle = normalize_angle(math.degrees(math.atan2(y - cy, x - cx)) + 90.0)
        if self.limit is not None:
            angle = clamp(angle, -self.limit, self.limit)
        self.preview = self.start.copy(rotation=angle)
        return self.preview

    def final(self):
        return self.preview.copy(rotation=float(round(self.preview.rotation)))


class InteractionController:
    def __init__(self, store: LayoutStore, *, snap_to_grid: bool = True, grid: float = PX_GRID,
                 min_width: float = MIN_ELEMENT_W, min_height: float = MIN_ELEMENT_H,
                 rotation_limit: Optional[float] = None, mode: str = Mode.EDIT):
        self.store = store
        self.snap_to_grid = snap_to_grid
        self.grid = grid
        self.min_width = max(1.0, float(min_width))
        self.min_height = max(1.0, float(min_height))
        self.rotation_limit = rotation_limit
        self.mode = mode
        self.active: Optional[_Gesture] = None
        self.on_create: Optional[Callable[[float, float], None]] = None
        self.on_edit: Optional[Callable[[Element], None]] = None
        self.on_commit: Optional[Callable[[Element], None]] = None
        self.on_preview: Optional[Callable[[Optional[Element]], None]] = None

    @classmethod
    def from_config(cls, store: LayoutStore, cfg) -> "InteractionController":
        return cls(store, snap_to_grid=cfg.snap_to_grid, grid=cfg.grid_size,
                   min_width=cfg.min_width, min_height=cfg.min_height,
                   rotation_limit=cfg.rotation_limit)

    # ---- state ----
    @property
    def state(self) -> str:
        return self.active.state if self.active else GestureState.IDLE

    @property
    def preview(self) -> Optional[Element]:
        return self.active.preview.copy() if self.active else None

    def _snap_step(self) -> Optional[float]:
        return self.grid if (self.snap_to_grid and self.grid and self.grid > 0) else None

    def displayed_elements(self) -> List[Element]:
        elements = self.store.elements
        if self.active is None:
            return elements
        pv = self.active.preview
        return [pv.copy() if el.id == pv.id else el for el in elements]

    def _element(self, element_id: str) -> Optional[Element]:
        for el in self.displayed_elements():
            if el.id == element_id:
                return el
        return None

    # ---- hit testing ----
    def hit_test(self, x: float, y: float) -> Optional[Hit]:
        elements = self.displayed_elements()
        selected = self.store.selected_ids
        if self.mode != Mode.VIEW and len(selected) == 1:
            sel = next((el for el in elements if el.id == selected[0]), None)
            if sel is not None:
                hx, hy = rotate_handle_point(sel)
                if _near(x, y, hx, hy, ROTATE_HANDLE_SIZE / 2.0 + 2.0):
                    return Hit("rotate", sel.id)
                for corner in CORNERS:
                    px, py = corner_point(sel, corner)
                    if _near(x, y, px, py, HANDLE_SIZE / 2.0 + 2.0):
                        return Hit("resize", sel.id, corner)
        for el in reversed(elements):
            if contains(el, x, y):
                return Hit("element", el.id)
        return None

    # ---- pointer events ----
    def pointer_down(self, x: float, y: float) -> Optional[Hit]:
        if self.active is not None:
            return None
        hit = self.hit_test(x, y)
        if hit is None:
            self.store.select_element(None)
            if self.mode == Mode.CREATE and self.on_create:
                self.on_create(x, y)
            return None

        el = self._element(hit.element_id)
        if self.store.selected_ids != [hit.element_id]:
            self.store.select_element(hit.element_id)
        if self.mode == Mode.VIEW or el is None:
            return hit

        if hit.target == "rotate":
            self.active = RotateGesture(el, x, y, self.rotation_limit)
        elif hit.target == "resize":
            self.active = ResizeGesture(el, x, y, hit.corner, self.min_width,
                                        self.min_height, self._snap_step())
        else:
            self.active = DragGesture(el, x, y, self._snap_step())
        logger.debug("Gesture %s started on %s", self.active.state, el.id)
        return hit

    def pointer_move(self, x: float, y: float) -> Optional[Element]:
        if self.active is None:
            return None
        preview = self.active.move(x, y)
        if self.on_preview: self.on_preview(preview.copy())
        return preview.copy()

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[Element]:
        gesture = self.active
        if gesture is None:
            return None
        if x is not None and y is not None:
            gesture.move(x, y)
        self.active = None
        if self.on_preview: self.on_preview(None)
        # a click that never left its origin must not re-snap the element
        if not gesture.moved:
            return None
        final = gesture.final()
        if final.same_geometry(gesture.start):
            return None
        final.touch()
        self.store.update_element(final)
        logger.debug("Gesture %s committed on %s", gesture.state, final.id)
        if self.on_commit: self.on_commit(final.copy())
        return final

    def pointer_leave(self) -> Optional[Element]:
        return self.pointer_up()

    def double_click(self, x: float, y: float) -> Optional[Element]:
        if self.active is not None:
            self.pointer_up()
        hit = self.hit_test(x, y)
        if hit is None:
            return None
        self.store.select_element(hit.element_id)
        el = self.store.find(hit.element_id)
        if el is not None and self.mode != Mode.VIEW and self.on_edit:
            self.on_edit(el)
        return el

    def nudge(self, dx: float, dy: float) -> Optional[Element]:
        if self.active is not None or self.mode == Mode.VIEW:
            return None
        el = self.store.selected_element
        if el is None:
            return None
        moved = el.copy(x=el.x + dx, y=el.y + dy).touch()
        self.store.update_element(moved)
        if self.on_commit: self.on_commit(moved.copy())
        return moved
