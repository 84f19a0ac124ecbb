from __future__ import annotations
from typing import Dict, Optional
from PySide6.QtCore import Qt, QRectF, QPointF
from PySide6.QtGui import QBrush, QColor, QPainter, QPen, QFont
from PySide6.QtWidgets import QGraphicsRectItem, QGraphicsEllipseItem, QGraphicsLineItem, QGraphicsItem

from .models import Element
from .utils import (HANDLE_SIZE, ROTATE_HANDLE_OFFSET, ROTATE_HANDLE_SIZE, SELECTION_COLOR,
                    ROTATE_HANDLE_COLOR, PX_PER_MM, status_color, kind_style, size_label)

PREVIEW_OPACITY = 0.75


class ResizeHandle(QGraphicsRectItem):
    """Corner square. Purely visual, the scene hands presses to the controller."""
    SIZE = HANDLE_SIZE
    CURSORS = {
        "tl": Qt.SizeFDiagCursor, "br": Qt.SizeFDiagCursor,
        "tr": Qt.SizeBDiagCursor, "bl": Qt.SizeBDiagCursor,
    }

    def __init__(self, owner: "ElementItem", corner: str):
        super().__init__(0, 0, self.SIZE, self.SIZE, owner)
        self.corner = corner
        self.setZValue(1000)
        self.setBrush(QColor(255, 255, 255))
        self.setPen(QPen(QColor(SELECTION_COLOR), 1.5))
        self.setCursor(self.CURSORS[corner])
        self.setAcceptedMouseButtons(Qt.NoButton)

    def update_pos(self, cx: float, cy: float):
        self.setPos(cx - self.SIZE / 2, cy - self.SIZE / 2)


class RotateHandle(QGraphicsEllipseItem):
    SIZE = ROTATE_HANDLE_SIZE

    def __init__(self, owner: "ElementItem"):
        super().__init__(0, 0, self.SIZE, self.SIZE, owner)
        self.setZValue(1000)
        self.setBrush(QColor(ROTATE_HANDLE_COLOR))
        self.setPen(QPen(QColor(255, 255, 255), 1.5))
        self.setCursor(Qt.CrossCursor)
        self.setAcceptedMouseButtons(Qt.NoButton)
        self.stem = QGraphicsLineItem(owner)
        self.stem.setPen(QPen(QColor(ROTATE_HANDLE_COLOR), 1.5, Qt.DashLine))
        self.stem.setAcceptedMouseButtons(Qt.NoButton)

    def update_pos(self, top: float):
        y = top - ROTATE_HANDLE_OFFSET
        self.setPos(-self.SIZE / 2, y - self.SIZE / 2)
        self.stem.setLine(0, top, 0, y + self.SIZE / 2)

    def detach(self):
        scene = self.scene()
        for it in (self.stem, self):
            it.setParentItem(None)
            if scene:
                scene.removeItem(it)


class ElementItem(QGraphicsRectItem):
    """Drawn fixture. The item's origin is the element centre, so Qt's own
    rotation turns it about the same point the controller does."""

    def __init__(self, element: Element, px_per_mm: float = PX_PER_MM):
        super().__init__()
        self.element = element
        self.px_per_mm = px_per_mm
        self.setAcceptHoverEvents(True)
        self.setFlag(QGraphicsItem.ItemIsSelectable, False)
        self.setFlag(QGraphicsItem.ItemIsMovable, False)
        self._handles: Dict[str, ResizeHandle] = {}
        self._rotor: Optional[RotateHandle] = None
        self._rounded = 8.0
        self._selected = False
        self._preview = False
        self.set_element(element)

    @property
    def element_id(self) -> str:
        return self.element.id

    def set_element(self, el: Element, preview: bool = False):
        self.element = el
        self._preview = preview
        cx, cy = el.center()
        self.prepareGeometryChange()
        self.setRect(QRectF(-el.width / 2, -el.height / 2, el.width, el.height))
        self.setPos(QPointF(cx, cy))
        self.setRotation(el.rotation)
        self.setOpacity(PREVIEW_OPACITY if preview else 1.0)
        self._layout_handles()
        self.update_tooltip()
        self.update()

    def set_selected_visual(self, on: bool, editable: bool = True):
        self._selected = on
        if on and editable:
            self._create_handles()
        else:
            self._remove_handles()
        self.update()

    def update_tooltip(self):
        el = self.element
        lines = [f"{el.kind}: {el.label or '(unnamed)'}",
                 f"Size: {size_label(el.width, el.height, self.px_per_mm)}",
                 f"Status: {el.status}"]
        if el.tenant:
            lines.append(f"Tenant: {el.tenant}")
        if el.note:
            lines.append(el.note)
        self.setToolTip("\n".join(lines))

    # ---- handles ----
    def _create_handles(self):
        if self._handles:
            return
        for corner in ("tl", "tr", "bl", "br"):
            self._handles[corner] = ResizeHandle(self, corner)
        self._rotor = RotateHandle(self)
        self._layout_handles()

    def _remove_handles(self):
        for h in self._handles.values():
            h.setParentItem(None)
            scene = self.scene()
            if scene:
                scene.removeItem(h)
        self._handles.clear()
        if self._rotor is not None:
            self._rotor.detach()
            self._rotor = None

    def _layout_handles(self):
        if not self._handles:
            return
        r = self.rect()
        self._handles["tl"].update_pos(r.left(), r.top())
        self._handles["tr"].update_pos(r.right(), r.top())
        self._handles["bl"].update_pos(r.left(), r.bottom())
        self._handles["br"].update_pos(r.right(), r.bottom())
        if self._rotor is not None:
            self._rotor.update_pos(r.top())

    # ---- painting ----
    def boundingRect(self) -> QRectF:
        return self.rect().adjusted(-6, -6, 6, 6)

    def paint(self, painter: QPainter, option, widget=None):
        painter.setRenderHint(QPainter.Antialiasing, True)
        el = self.element
        r = self.rect()
        fill, short = kind_style(el.kind)
        c = QColor(fill)
        c.setAlpha(170 if self._preview else 215)
        painter.setBrush(QBrush(c))
        painter.setPen(QPen(QColor(status_color(el.status)), 3))
        painter.drawRoundedRect(r, self._rounded, self._rounded)

        if self._selected:
            painter.setBrush(Qt.NoBrush)
            painter.setPen(QPen(QColor(SELECTION_COLOR), 2, Qt.DashLine))
            painter.drawRoundedRect(r.adjusted(-4, -4, 4, 4), self._rounded + 2, self._rounded + 2)

        # label + size, skipped when the shape is too thin to read
        if r.height() < 18 or r.width() < 30:
            return
        painter.setPen(QColor(255, 255, 255))
        painter.setFont(QFont("", 9, QFont.DemiBold))
        top = QRectF(r.left() + 4, r.top() + 2, r.width() - 8, r.height() / 2)
        painter.drawText(top, Qt.AlignHCenter | Qt.AlignBottom, el.label or short)
        sub = size_label(el.width, el.height, self.px_per_mm)
        if el.tenant:
            sub += f" · {el.tenant}"
        painter.setFont(QFont("", 8))
        bottom = QRectF(r.left() + 4, r.center().y() + 2, r.width() - 8, r.height() / 2 - 4)
        painter.drawText(bottom, Qt.AlignHCenter | Qt.AlignTop, sub)
