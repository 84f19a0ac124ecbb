#!/usr/bin/env python3
from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import List, Optional

from PySide6.QtCore import Qt, QKeyCombination, QSizeF
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QToolBar, QStatusBar, QFileDialog, QMessageBox,
    QDockWidget, QStyle, QToolButton, QMenu, QWidgetAction, QInputDialog
)

from planner import (
    EditorConfig, load_config, LayoutStore, InteractionController, ItemFactory, ElementKind, Mode,
    EditorSession, ReconciliationBridge, JsonLayoutRepository, SupabaseLayoutRepository,
    InMemoryPositionRepository, SupabasePositionRepository, PersistenceError,
    AnalysisClient, AnalysisError, parse_analysis, export_svg,
)
from planner.scene import PlanScene, PlanView
from planner.palette import PalettePanel
from planner.properties import DetailsDialog

logger = logging.getLogger("retail_planner")

LOG_FORMAT = "[%(asctime)s %(name)s] [%(levelname)s] %(message)s"
SPAWN_POINT = (60.0, 60.0)


class MainWindow(QMainWindow):
    def __init__(self, cfg: EditorConfig):
        super().__init__()
        self.cfg = cfg
        self.resize(1360, 880)

        # 1) core state
        self.store = LayoutStore(history_limit=cfg.history_limit)
        if cfg.remote_enabled:
            self.layouts = SupabaseLayoutRepository(cfg.supabase_url, cfg.supabase_key)
            self.positions = SupabasePositionRepository(cfg.supabase_url, cfg.supabase_key)
        else:
            self.layouts = JsonLayoutRepository(cfg.storage_path, cfg.sample_path)
            self.positions = InMemoryPositionRepository()
        boundary = (cfg.boundary_width, cfg.boundary_height)
        self.controller = InteractionController.from_config(self.store, cfg)
        self.factory = ItemFactory(snap_to_grid=cfg.snap_to_grid, grid=cfg.grid_size)
        self.session = EditorSession(self.store, self.layouts, notify=self._notify, boundary=boundary)
        self.bridge = ReconciliationBridge(self.layouts, self.positions, self.store,
                                           px_per_mm=cfg.px_per_mm, boundary=boundary)
        self._create_kind = ElementKind.DEFAULT

        # 2) scene / view
        self.scene = PlanScene(self.controller, self.factory, status_cb=self._status, px_per_mm=cfg.px_per_mm)
        self.view = PlanView(self.scene)
        self.setCentralWidget(self.view)

        # 3) palette
        self.palette = PalettePanel()
        self.palette.kindChosen.connect(self._on_kind_chosen)
        self.palette_dock = QDockWidget("Palette", self)
        self.palette_dock.setWidget(self.palette)
        self.palette_dock.setAllowedAreas(Qt.LeftDockWidgetArea | Qt.RightDockWidgetArea)
        self.palette_dock.setMinimumWidth(220)
        self.palette_dock.setMaximumWidth(420)
        self.addDockWidget(Qt.LeftDockWidgetArea, self.palette_dock)

        # 4) toolbar / status
        self._build_toolbar()
        self.setStatusBar(QStatusBar(self))
        self.view.scaleChanged.connect(lambda _s: self._update_status())

        # 5) wiring
        self.store.on_change = self._on_store_change
        self.store.on_selection = self._on_selection
        self.controller.on_create = self._create_at
        self.controller.on_edit = self._edit_element
        self.controller.on_commit = self._on_commit

        self._on_store_change(self.store)

    # ===== toolbar =====
    def _action(self, text: str, icon, slot, shortcut=None, checkable=False) -> QAction:
        act = QAction(self.style().standardIcon(icon), text, self, checkable=checkable)
        if shortcut:
            act.setShortcut(QKeySequence(shortcut))
        (act.toggled if checkable else act.triggered).connect(slot)
        self.addAction(act)
        return act

    def _build_toolbar(self):
        tb = QToolBar("Main", self)
        tb.setMovable(False)
        tb.setIconSize(QSizeF(18, 18).toSize())
        tb.setToolButtonStyle(Qt.ToolButtonTextBesideIcon)
        self.addToolBar(Qt.TopToolBarArea, tb)

        # ----- layout -----
        self.act_open = self._action("Open store…", QStyle.SP_DirOpenIcon, self._open_store_dialog, "Ctrl+O")
        self.act_new = self._action("New layout…", QStyle.SP_FileIcon, self._new_layout_dialog, "Ctrl+N")
        self.act_save = self._action("Save", QStyle.SP_DialogSaveButton, self._save, "Ctrl+S")
        self.act_copy = self._action("Copy to store…", QStyle.SP_FileDialogNewFolder, self._copy_to_store_dialog)
        self.act_export = self._action("Export SVG…", QStyle.SP_ArrowRight, self._export_svg_dialog, "Ctrl+E")
        self.act_reset = self._action("Reset to sample data", QStyle.SP_BrowserReload, self._reset_to_sample)

        # ----- edit -----
        self.act_undo = self._action("Undo", QStyle.SP_ArrowBack, self._undo, "Ctrl+Z")
        self.act_redo = self._action("Redo", QStyle.SP_ArrowForward, self._redo, "Ctrl+Y")
        self.act_redo_alt = QAction(self)
        self.act_redo_alt.setShortcut(QKeySequence("Ctrl+Shift+Z"))
        self.act_redo_alt.triggered.connect(self._redo)
        self.addAction(self.act_redo_alt)
        self.act_delete = self._action("Delete", QStyle.SP_TrashIcon, self._delete, QKeySequence.Delete)
        self.act_duplicate = self._action("Duplicate", QStyle.SP_FileDialogContentsView, self._duplicate, "Ctrl+D")
        self.act_front = self._action("Bring to front", QStyle.SP_ArrowUp, lambda: self._reorder("front"), "Ctrl+]")
        self.act_back = self._action("Send to back", QStyle.SP_ArrowDown, lambda: self._reorder("back"), "Ctrl+[")

        # ----- mode -----
        self.act_snap = self._action("Snap to grid", QStyle.SP_DialogResetButton, self._toggle_snap, "G", True)
        self.act_snap.blockSignals(True); self.act_snap.setChecked(self.cfg.snap_to_grid); self.act_snap.blockSignals(False)
        self.act_create = self._action("Create mode", QStyle.SP_FileDialogStart, self._toggle_create, "C", True)
        self.act_view = self._action("View only", QStyle.SP_DesktopIcon, self._toggle_view, "V", True)

        # ----- leasing -----
        self.act_sync = self._action("Sync positions", QStyle.SP_BrowserReload, self._sync_positions, "Ctrl+R")
        self.act_analyze = self._action("Analyze floor plan…", QStyle.SP_FileDialogInfoView, self._analyze_dialog)
        self.act_import = self._action("Import analysis JSON…", QStyle.SP_DialogOpenButton, self._import_analysis_dialog)
        self.act_analyze.setEnabled(bool(self.cfg.analysis_url))

        for key, dx, dy in ((Qt.Key_Left, -1, 0), (Qt.Key_Right, 1, 0), (Qt.Key_Up, 0, -1), (Qt.Key_Down, 0, 1)):
            for mod, step in ((Qt.NoModifier, 1.0), (Qt.ShiftModifier, self.cfg.grid_size)):
                act = QAction(self)
                act.setShortcut(QKeySequence(QKeyCombination(mod, key)))
                act.triggered.connect(lambda _=False, x=dx * step, y=dy * step: self._nudge(x, y))
                self.view.addAction(act)

        def add_menu_button(title: str, fallback, actions: List[Optional[QAction]]):
            btn = QToolButton(self)
            btn.setText(title)
            btn.setIcon(self.style().standardIcon(fallback))
            btn.setPopupMode(QToolButton.InstantPopup)
            btn.setToolButtonStyle(Qt.ToolButtonTextBesideIcon)
            m = QMenu(btn)
            for a in actions:
                if a is None: m.addSeparator()
                else: m.addAction(a)
            btn.setMenu(m)
            wa = QWidgetAction(self); wa.setDefaultWidget(btn)
            tb.addAction(wa)

        add_menu_button("Layout", QStyle.SP_DirOpenIcon,
                        [self.act_open, self.act_new, None, self.act_save, self.act_copy,
                         self.act_export, None, self.act_reset])
        add_menu_button("Arrange", QStyle.SP_FileDialogListView,
                        [self.act_duplicate, self.act_delete, None, self.act_front, self.act_back])
        add_menu_button("Leasing", QStyle.SP_FileDialogInfoView,
                        [self.act_sync, self.act_analyze, self.act_import])
        tb.addSeparator()
        for a in (self.act_save, self.act_undo, self.act_redo, None, self.act_snap, self.act_create, self.act_view):
            if a is None: tb.addSeparator()
            else: tb.addAction(a)

    # ===== store callbacks =====
    def _on_store_change(self, store: LayoutStore):
        meta = store.layout
        self.scene.set_boundary(meta.boundary_width, meta.boundary_height)
        self.scene.refresh()
        title = meta.name or "No layout"
        if meta.object_id:
            title += f" · {meta.object_id}"
        self.setWindowTitle(f"{'*' if store.is_dirty else ''}{title} — Retail Planner")
        self._update_actions()
        self._update_status()

    def _on_selection(self, _store: LayoutStore):
        self.scene.refresh()
        self._update_actions()

    def _update_actions(self):
        has_layout = bool(self.store.layout.object_id)
        has_sel = self.store.selected_element is not None
        editable = self.controller.mode != Mode.VIEW
        self.act_undo.setEnabled(editable and self.store.history.can_undo())
        self.act_redo.setEnabled(editable and self.store.history.can_redo())
        self.act_save.setEnabled(has_layout)
        self.act_copy.setEnabled(has_layout)
        self.act_sync.setEnabled(has_layout)
        for a in (self.act_delete, self.act_duplicate, self.act_front, self.act_back):
            a.setEnabled(editable and has_sel)

    def _update_status(self):
        mode = {Mode.EDIT: "Edit", Mode.CREATE: f"Create ({self._create_kind})", Mode.VIEW: "View"}
        self.statusBar().showMessage(
            f"Mode: {mode.get(self.controller.mode, self.controller.mode)} | "
            f"Grid: {'ON' if self.controller.snap_to_grid else 'OFF'} | "
            f"Elements: {len(self.store.elements)} | "
            f"Zoom: {int(self.view.zoom * 100)}%"
            f"{' | unsaved' if self.store.is_dirty else ''}"
        )

    def _status(self, text: str):
        self.statusBar().showMessage(text, 3000)

    def _notify(self, level: str, message: str):
        if level == "error":
            QMessageBox.critical(self, "Retail Planner", message)
        else:
            self._status(message)

    # ===== elements =====
    def _on_kind_chosen(self, kind: str):
        if self.controller.mode == Mode.CREATE:
            self._create_kind = kind
            self._update_status()
            return
        self._spawn(kind, *SPAWN_POINT)

    def _spawn(self, kind: str, x: float, y: float, centered: bool = False):
        if self.controller.mode == Mode.VIEW:
            return
        self.factory.snap_to_grid = self.controller.snap_to_grid
        el = self.factory.create(kind, x, y, centered=centered)
        self.store.add_element(el)
        self._status(f"Added {el.label}")

    def _create_at(self, x: float, y: float):
        self._spawn(self._create_kind, x, y, centered=True)

    def _edit_element(self, element):
        result = DetailsDialog.edit(element, self.bridge.details_for(element.id), parent=self,
                                    min_width=self.cfg.min_width, min_height=self.cfg.min_height)
        if result is None:
            return
        el, details = result
        try:
            self.bridge.save_element_details(self.store.layout.object_id, el, details)
        except PersistenceError as e:
            QMessageBox.critical(self, "Position not saved", str(e))

    def _on_commit(self, element):
        object_id = self.store.layout.object_id
        if not object_id:
            return
        try:
            self.bridge.record_element_geometry(object_id, element)
        except PersistenceError as e:
            self._status(f"Position record not updated: {e}")

    def _nudge(self, dx: float, dy: float):
        self.controller.nudge(dx, dy)

    def _delete(self):
        el = self.store.selected_element
        if el is not None:
            self.store.remove_element(el.id)

    def _duplicate(self):
        el = self.store.selected_element
        if el is not None:
            self.store.duplicate_element(el.id, offset=self.cfg.grid_size)

    def _reorder(self, direction: str):
        el = self.store.selected_element
        if el is not None:
            self.store.reorder_element(el.id, direction)

    def _undo(self):
        if self.controller.mode != Mode.VIEW:
            self.store.undo()

    def _redo(self):
        if self.controller.mode != Mode.VIEW:
            self.store.redo()

    # ===== modes =====
    def _toggle_snap(self, on: bool):
        self.controller.snap_to_grid = on
        self._update_status()

    def _toggle_create(self, on: bool):
        if on and self.act_view.isChecked():
            self.act_view.setChecked(False)
        self.controller.mode = Mode.CREATE if on else Mode.EDIT
        self._update_status()

    def _toggle_view(self, on: bool):
        if on and self.act_create.isChecked():
            self.act_create.blockSignals(True); self.act_create.setChecked(False); self.act_create.blockSignals(False)
        self.controller.mode = Mode.VIEW if on else Mode.EDIT
        self.scene.refresh()
        self._update_actions()
        self._update_status()

    # ===== layouts =====
    def _confirm_discard(self) -> bool:
        if not self.store.is_dirty:
            return True
        ans = QMessageBox.question(self, "Unsaved changes", "Save changes to the current layout?",
                                   QMessageBox.Save | QMessageBox.Discard | QMessageBox.Cancel)
        if ans == QMessageBox.Cancel:
            return False
        if ans == QMessageBox.Save:
            return self._save()
        return True

    def _known_stores(self) -> List[str]:
        try:
            return sorted({l.object_id for l in self.layouts.load_layouts() if l.object_id})
        except PersistenceError as e:
            QMessageBox.critical(self, "Layouts unavailable", str(e))
            return []

    def _open_store_dialog(self):
        if not self._confirm_discard():
            return
        object_id, ok = QInputDialog.getItem(self, "Open store", "Store id:", self._known_stores(), 0, True)
        if ok and object_id.strip():
            self.open_store(object_id.strip())

    def open_store(self, object_id: str):
        try:
            layout = self.session.open_store(object_id)
        except PersistenceError:
            return
        if layout is None:
            ans = QMessageBox.question(self, "No layout", f"Store {object_id} has no layout yet. Create one?")
            if ans == QMessageBox.Yes:
                self._new_layout(object_id)
            return
        self._load_details(object_id)
        self.view.centerOn(layout.boundary_width / 2, layout.boundary_height / 2)

    def _load_details(self, object_id: str):
        try:
            self.bridge.load_details(object_id)
        except PersistenceError as e:
            self._status(f"Leasing details unavailable: {e}")

    def _new_layout_dialog(self):
        if not self._confirm_discard():
            return
        object_id, ok = QInputDialog.getText(self, "New layout", "Store id:")
        if ok and object_id.strip():
            self._new_layout(object_id.strip())

    def _new_layout(self, object_id: str):
        name, ok = QInputDialog.getText(self, "New layout", "Layout name:", text=f"Layout {object_id}")
        if not ok:
            return
        try:
            self.session.new_layout(object_id, name.strip() or None)
        except PersistenceError:
            return
        self._load_details(object_id)

    def _save(self) -> bool:
        try:
            self.session.save()
        except PersistenceError:
            return False
        return True

    def _copy_to_store_dialog(self):
        target, ok = QInputDialog.getItem(self, "Copy layout", "Target store id:", self._known_stores(), 0, True)
        if not ok or not target.strip():
            return
        try:
            self.session.copy_to_store(target.strip())
        except PersistenceError:
            pass

    def _reset_to_sample(self):
        ans = QMessageBox.question(self, "Reset", "Discard all stored layouts and go back to the sample data?")
        if ans != QMessageBox.Yes:
            return
        try:
            self.session.reset_to_sample()
        except PersistenceError:
            pass

    def _export_svg_dialog(self):
        meta = self.store.layout
        default = f"{meta.name or 'layout'}.svg".replace(" ", "_")
        path, _ = QFileDialog.getSaveFileName(self, "Export SVG", default, "SVG (*.svg)")
        if not path:
            return
        if not path.lower().endswith(".svg"):
            path += ".svg"
        try:
            export_svg(path, self.store.snapshot(), selected_ids=self.store.selected_ids,
                       grid=self.cfg.grid_size, px_per_mm=self.cfg.px_per_mm)
            self._status(f"Exported: {os.path.basename(path)}")
        except OSError as e:
            QMessageBox.critical(self, "Export failed", str(e))

    # ===== leasing =====
    def _sync_positions(self):
        object_id = self.store.layout.object_id
        try:
            self.bridge.sync_store(object_id)
        except PersistenceError as e:
            QMessageBox.critical(self, "Sync failed", str(e))
            return
        self._status(f"Positions synced for {object_id}")

    def _analyze_dialog(self):
        url, ok = QInputDialog.getText(self, "Analyze floor plan", "Plan image URL:")
        if not ok or not url.strip():
            return
        client = AnalysisClient(self.cfg.analysis_url, self.cfg.supabase_key)
        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            analysis = client.analyze(url.strip(), self.store.layout.object_id)
        except AnalysisError as e:
            QMessageBox.critical(self, "Analysis failed", str(e))
            return
        finally:
            QApplication.restoreOverrideCursor()
        self._import_analysis(analysis)

    def _import_analysis_dialog(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import analysis", "", "JSON (*.json);;Text (*.txt)")
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                analysis = parse_analysis(f.read())
        except (OSError, AnalysisError) as e:
            QMessageBox.critical(self, "Import failed", str(e))
            return
        self._import_analysis(analysis)

    def _import_analysis(self, analysis):
        try:
            created = self.bridge.import_analysis(self.store.layout.object_id, analysis)
        except PersistenceError as e:
            QMessageBox.critical(self, "Import failed", str(e))
            return
        self._status(f"Imported {len(created)} positions ({analysis.overall_confidence:.0f}% confidence)")

    def closeEvent(self, event):
        if self._confirm_discard():
            event.accept()
        else:
            event.ignore()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Retail floor-plan layout editor.")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--env-file", help=".env file with RETAIL_PLANNER_* / SUPABASE_* settings")
    parser.add_argument("--store", help="store id to open on start")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config, args.env_file)
    logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.INFO), format=LOG_FORMAT)
    logger.info("Starting with %s storage", "remote" if cfg.remote_enabled else f"local ({cfg.storage_path})")

    app = QApplication(sys.argv[:1])
    win = MainWindow(cfg)
    win.show()
    if args.store:
        win.open_store(args.store)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
