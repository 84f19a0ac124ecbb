from __future__ import annotations
from typing import Optional
from PySide6.QtCore import Qt, QPoint, QRectF, QSize, QMimeData, QByteArray, Signal
from PySide6.QtGui import QPainter, QPen, QFont, QDrag, QColor
from PySide6.QtWidgets import QWidget, QHBoxLayout, QVBoxLayout, QApplication, QGridLayout, QScrollArea, QToolButton

from .factory import default_dimensions
from .models import ElementKind
from .scene import KIND_MIME
from .utils import kind_style

# palette categories
FIXTURES = tuple(k for k in ElementKind.ALL if not ElementKind.is_construction(k))
CONSTRUCTION = tuple(ElementKind.CONSTRUCTION)
TILE_MAX = 64.0


class KindTile(QWidget):
    """Click to add at the default spot, or drag onto the plan."""
    clicked = Signal(str)

    def __init__(self, kind: str, parent: QWidget | None = None):
        super().__init__(parent)
        self.kind = kind
        self._press_pos: Optional[QPoint] = None
        self.setCursor(Qt.OpenHandCursor)
        self.setToolTip(f"{kind}: click to add, drag to place")

    def sizeHint(self) -> QSize:
        return QSize(110, int(TILE_MAX) + 30)

    def paintEvent(self, ev):
        p = QPainter(self); p.setRenderHint(QPainter.Antialiasing)
        w, h, _, _ = default_dimensions(self.kind)
        k = min(TILE_MAX / max(1.0, w), TILE_MAX / max(1.0, h))
        iw, ih = max(6.0, w * k), max(6.0, h * k)
        r = QRectF((self.width() - iw) / 2, 6 + (TILE_MAX - ih) / 2, iw, ih)
        fill, short = kind_style(self.kind)
        p.setBrush(QColor(fill))
        p.setPen(QPen(QColor(70, 70, 70), 1))
        p.drawRoundedRect(r, 4, 4)
        p.setPen(QPen(QColor("#222"), 1))
        p.setFont(QFont("", 8, QFont.DemiBold))
        p.drawText(QRectF(0, TILE_MAX + 8, self.width(), 18), Qt.AlignCenter, short)
        p.end()

    def mousePressEvent(self, ev):
        self._press_pos = ev.pos() if ev.button() == Qt.LeftButton else None
        super().mousePressEvent(ev)

    def mouseMoveEvent(self, ev):
        if self._press_pos is None:
            return
        if (ev.pos() - self._press_pos).manhattanLength() < QApplication.startDragDistance():
            return
        drag = QDrag(self)
        mime = QMimeData()
        mime.setData(KIND_MIME, QByteArray(self.kind.encode("utf-8")))
        drag.setMimeData(mime)
        self._press_pos = None
        drag.exec(Qt.CopyAction)

    def mouseReleaseEvent(self, ev):
        if self._press_pos is not None and ev.button() == Qt.LeftButton:
            self.clicked.emit(self.kind)
        self._press_pos = None
        super().mouseReleaseEvent(ev)


class PalettePanel(QWidget):
    kindChosen = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._current = ""
        self._build_ui()

    def _build_ui(self):
        root = QHBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        icon_bar = QWidget(self)
        icon_bar.setFixedWidth(72)
        icon_bar.setStyleSheet("background:#f0f2f5; border-right:1px solid #e5e7eb;")
        vb = QVBoxLayout(icon_bar)
        vb.setContentsMargins(6, 6, 6, 6)
        vb.setSpacing(8)

        self.btn_fixtures = QToolButton(icon_bar)
        self.btn_construction = QToolButton(icon_bar)
        for b, text in ((self.btn_fixtures, "Fixtures"), (self.btn_construction, "Build")):
            b.setText(text)
            b.setAutoExclusive(True)
            b.setCheckable(True)
            b.setFixedSize(60, 44)
            vb.addWidget(b)
        vb.addStretch(1)
        root.addWidget(icon_bar)

        self.scroll = QScrollArea(self)
        self.scroll.setWidgetResizable(True)
        self.scroll.setStyleSheet("QScrollArea{background:#ffffff;}")
        root.addWidget(self.scroll, 1)

        self.content = QWidget()
        self.content.setObjectName("PaletteContent")
        self.scroll.setWidget(self.content)
        self.content_layout = QVBoxLayout(self.content)
        self.content_layout.setContentsMargins(8, 8, 8, 8)
        self.content_layout.setSpacing(8)

        self.btn_fixtures.clicked.connect(lambda: self._switch("fixtures"))
        self.btn_construction.clicked.connect(lambda: self._switch("construction"))

        self.btn_fixtures.setChecked(True)
        self._switch("fixtures")

    def _clear_content(self):
        while self.content_layout.count():
            item = self.content_layout.takeAt(0)
            w = item.widget()
            if w: w.deleteLater()

    def _switch(self, cat: str):
        if cat == self._current:
            return
        self._current = cat
        self._clear_content()
        kinds = FIXTURES if cat == "fixtures" else CONSTRUCTION
        grid_host = QWidget(); grid = QGridLayout(grid_host)
        grid.setContentsMargins(0, 0, 0, 0)
        grid.setHorizontalSpacing(8); grid.setVerticalSpacing(8)
        for i, kind in enumerate(kinds):
            tile = KindTile(kind)
            tile.clicked.connect(self.kindChosen.emit)
            grid.addWidget(tile, i // 2, i % 2)
        self.content_layout.addWidget(grid_host)
        self.content_layout.addStretch(1)

    @property
    def category(self) -> str:
        return self._current
