from __future__ import annotations
import logging
import math
from typing import Callable, Dict, Optional

from PySide6.QtCore import Qt, QLineF, QRectF, Signal
from PySide6.QtGui import QPainter, QPen, QColor, QWheelEvent
from PySide6.QtWidgets import QGraphicsScene, QGraphicsView, QApplication

from .factory import ItemFactory
from .gestures import InteractionController, GestureState
from .items import ElementItem
from .models import Element, Mode
from .utils import (BG_COLOR, GRID_STEP, MAJOR_EVERY, GRID_MAJOR, GRID_MINOR, BOUNDARY_COLOR,
                    BOUNDARY_W, BOUNDARY_H, PX_PER_MM, size_label)

logger = logging.getLogger(__name__)

KIND_MIME = "application/x-retail-kind"
SCENE_MARGIN = 200.0
ZOOM_MIN = 0.4
ZOOM_MAX = 2.4
ZOOM_STEP = 1.15


class PlanScene(QGraphicsScene):
    """Draws ``controller.displayed_elements()`` and feeds the controller
    with layout-space pointer events. Items never move themselves."""

    def __init__(self, controller: InteractionController, factory: Optional[ItemFactory] = None,
                 status_cb: Optional[Callable[[str], None]] = None, px_per_mm: float = PX_PER_MM,
                 *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.controller = controller
        self.px_per_mm = px_per_mm
        self.store = controller.store
        self.factory = factory or ItemFactory(snap_to_grid=controller.snap_to_grid, grid=controller.grid)
        self._status_cb = status_cb
        self._items: Dict[str, ElementItem] = {}
        self.grid_step = controller.grid or GRID_STEP
        self.boundary = QRectF(0, 0, BOUNDARY_W, BOUNDARY_H)
        self.setItemIndexMethod(QGraphicsScene.NoIndex)
        self.set_boundary(BOUNDARY_W, BOUNDARY_H)
        controller.on_preview = self._on_preview

    @property
    def mode(self) -> str:
        return self.controller.mode

    def set_boundary(self, width: float, height: float):
        self.boundary = QRectF(0, 0, width, height)
        self.setSceneRect(self.boundary.adjusted(-SCENE_MARGIN, -SCENE_MARGIN, SCENE_MARGIN, SCENE_MARGIN))
        self.update()

    # ---- rendering ----
    def refresh(self):
        elements = self.controller.displayed_elements()
        selected = set(self.store.selected_ids)
        preview = self.controller.preview
        editable = self.mode != Mode.VIEW
        alive = set()
        for z, el in enumerate(elements):
            alive.add(el.id)
            item = self._items.get(el.id)
            if item is None:
                item = ElementItem(el, self.px_per_mm)
                self.addItem(item)
                self._items[el.id] = item
            item.set_element(el, preview=preview is not None and preview.id == el.id)
            item.setZValue(z)
            item.set_selected_visual(el.id in selected, editable)
        for el_id in list(self._items):
            if el_id not in alive:
                item = self._items.pop(el_id)
                item.set_selected_visual(False)
                self.removeItem(item)

    def item_for(self, element_id: str) -> Optional[ElementItem]:
        return self._items.get(element_id)

    def _on_preview(self, _preview: Optional[Element]):
        self.refresh()

    def _status(self, text: str):
        if self._status_cb: self._status_cb(text)

    # ---- pointer ----
    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return
        p = event.scenePos()
        self.controller.pointer_down(p.x(), p.y())
        self.refresh()
        event.accept()

    def mouseMoveEvent(self, event):
        if self.controller.state == GestureState.IDLE:
            super().mouseMoveEvent(event)
            return
        p = event.scenePos()
        self.controller.pointer_move(p.x(), p.y())
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mouseReleaseEvent(event)
            return
        p = event.scenePos()
        committed = self.controller.pointer_up(p.x(), p.y())
        self.refresh()
        if committed is not None:
            size = size_label(committed.width, committed.height, self.px_per_mm)
            self._status(f"{committed.label}: {size}, {committed.rotation:.0f}°")
        event.accept()

    def mouseDoubleClickEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mouseDoubleClickEvent(event)
            return
        p = event.scenePos()
        self.controller.double_click(p.x(), p.y())
        self.refresh()
        event.accept()

    def pointer_leave(self):
        if self.controller.pointer_leave() is not None:
            self.refresh()

    # ---- palette drops ----
    def dragEnterEvent(self, event):
        if self.mode != Mode.VIEW and event.mimeData().hasFormat(KIND_MIME):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if self.mode != Mode.VIEW and event.mimeData().hasFormat(KIND_MIME):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        if self.mode == Mode.VIEW or not event.mimeData().hasFormat(KIND_MIME):
            event.ignore()
            return
        kind = bytes(event.mimeData().data(KIND_MIME).data()).decode("utf-8")
        p = event.scenePos()
        self.factory.snap_to_grid = self.controller.snap_to_grid
        el = self.factory.create(kind, p.x(), p.y(), centered=True)
        self.store.add_element(el)
        self._status(f"Added {el.label}")
        event.acceptProposedAction()

    # ---- background ----
    def drawBackground(self, painter: QPainter, rect: QRectF):
        painter.fillRect(rect, QColor(BG_COLOR))
        step = self.grid_step
        minor = QPen(QColor(GRID_MINOR), 1, Qt.SolidLine, Qt.SquareCap)
        major = QPen(QColor(GRID_MAJOR), 1.5, Qt.SolidLine, Qt.SquareCap)
        x = math.floor(rect.left() / step) * step
        i = int(round(x / step))
        while x < rect.right():
            painter.setPen(major if i % MAJOR_EVERY == 0 else minor)
            painter.drawLine(QLineF(x, rect.top(), x, rect.bottom()))
            x += step; i += 1
        y = math.floor(rect.top() / step) * step
        j = int(round(y / step))
        while y < rect.bottom():
            painter.setPen(major if j % MAJOR_EVERY == 0 else minor)
            painter.drawLine(QLineF(rect.left(), y, rect.right(), y))
            y += step; j += 1
        painter.setPen(QPen(QColor(BOUNDARY_COLOR), 3, Qt.DashLine))
        painter.setBrush(Qt.NoBrush)
        painter.drawRect(self.boundary)


class PlanView(QGraphicsView):
    scaleChanged = Signal(float)

    def __init__(self, scene: PlanScene):
        super().__init__(scene)
        self.setRenderHint(QPainter.Antialiasing, True)
        self.setViewportUpdateMode(QGraphicsView.FullViewportUpdate)
        self.setDragMode(QGraphicsView.NoDrag)
        self.setTransformationAnchor(QGraphicsView.AnchorUnderMouse)
        self.setResizeAnchor(QGraphicsView.AnchorUnderMouse)
        self.setMouseTracking(True)
        self.setAcceptDrops(True)
        self._space_down = False

    @property
    def zoom(self) -> float:
        return self.transform().m11()

    def set_zoom(self, value: float):
        value = max(ZOOM_MIN, min(ZOOM_MAX, value))
        factor = value / self.zoom
        if abs(factor - 1.0) < 1e-6:
            return
        self.scale(factor, factor)
        self.scaleChanged.emit(self.zoom)

    def wheelEvent(self, event: QWheelEvent):
        if QApplication.keyboardModifiers() & Qt.ControlModifier:
            angle = event.angleDelta().y()
            self.set_zoom(self.zoom * (ZOOM_STEP if angle > 0 else 1.0 / ZOOM_STEP))
            event.accept()
            return
        super().wheelEvent(event)

    def leaveEvent(self, event):
        scene = self.scene()
        if isinstance(scene, PlanScene):
            scene.pointer_leave()
        super().leaveEvent(event)

    def keyPressEvent(self, event):
        if event.key() == Qt.Key_Space and not event.isAutoRepeat() and not self._space_down:
            self._space_down = True
            self.setInteractive(False)
            self.setDragMode(QGraphicsView.ScrollHandDrag)
            event.accept()
            return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event):
        if event.key() == Qt.Key_Space and not event.isAutoRepeat() and self._space_down:
            self._space_down = False
            self.setDragMode(QGraphicsView.NoDrag)
            self.setInteractive(True)
            event.accept()
            return
        super().keyReleaseEvent(event)
