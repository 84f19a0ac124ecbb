"""Keeps canvas elements and relational position records in step.

The element id is the join key: a position record with id ``P1`` is drawn as
the element ``P1`` on its store's layout. Leasing-only attributes (format,
department, expiry date, ...) are kept here by element id as
:class:`LeasingDetails`, never on the drawn shapes.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional, Tuple

from .models import (Element, ElementKind, FloorplanAnalysis, Layout, LeasingDetails,
                     PositionRecord, utc_now)
from .persistence import LayoutRepository, PersistenceError, PositionRepository
from .store import LayoutStore
from .utils import PX_PER_MM, BOUNDARY_W, BOUNDARY_H, to_pixels, to_millimeters, percent_to_pixels

logger = logging.getLogger(__name__)

# row-major default placement for positions that have never been drawn
GRID_ORIGIN = (40.0, 40.0)
GRID_SPACING = (240.0, 180.0)
GRID_COLUMNS = 5

# format labels used by the positions table and the floorplan analysis
FORMAT_KINDS = {
    "polica": ElementKind.SHELF,
    "shelf": ElementKind.SHELF,
    "vitrina": ElementKind.DISPLAY_CASE,
    "displej": ElementKind.STAND,
    "display": ElementKind.STAND,
    "gondola": ElementKind.GONDOLA,
    "promo": ElementKind.PROMO,
}


def default_placement(index: int) -> Tuple[float, float]:
    row, col = divmod(index, GRID_COLUMNS)
    return GRID_ORIGIN[0] + col * GRID_SPACING[0], GRID_ORIGIN[1] + row * GRID_SPACING[1]


def kind_for_format(fmt: Optional[str], fallback: str = ElementKind.DEFAULT) -> str:
    if not fmt:
        return fallback
    return FORMAT_KINDS.get(fmt.strip().lower()) or ElementKind.parse(fmt)


class ReconciliationBridge:
    def __init__(self, layouts: LayoutRepository, positions: PositionRepository,
                 store: Optional[LayoutStore] = None, px_per_mm: float = PX_PER_MM,
                 boundary: Tuple[float, float] = (BOUNDARY_W, BOUNDARY_H)):
        self.layouts = layouts
        self.positions = positions
        self.store = store
        self.px_per_mm = px_per_mm
        self.boundary = boundary
        self._details: Dict[str, LeasingDetails] = {}

    # ---- leasing metadata ----
    def details_for(self, element_id: str) -> Optional[LeasingDetails]:
        return self._details.get(element_id)

    def load_details(self, store_id: str) -> int:
        records = self.positions.find_by_store(store_id)
        for rec in records:
            self._details[rec.id] = rec.details()
        return len(records)

    # ---- positions -> canvas ----
    def _is_active(self, store_id: str) -> bool:
        return self.store is not None and self.store.layout.object_id == store_id

    def _layout_for(self, store_id: str) -> Layout:
        layout = self.layouts.get_layout_by_object_id(store_id)
        if layout is None:
            logger.info("Store %s has no layout yet, creating a default one", store_id)
            layout = Layout.new_for_store(store_id, width=self.boundary[0], height=self.boundary[1])
        return layout

    def _element_for(self, position: PositionRecord, existing: Optional[Element], index: int,
                     placement: Optional[Tuple[float, float]] = None) -> Element:
        w = to_pixels(position.width_mm, self.px_per_mm)
        h = to_pixels(position.height_mm, self.px_per_mm)
        if placement is not None:
            x, y = placement
            rotation = existing.rotation if existing else 0.0
        elif existing is not None:
            x, y, rotation = existing.x, existing.y, existing.rotation
        else:
            (x, y), rotation = default_placement(index), 0.0
        return Element(
            id=position.id,
            label=position.name or position.position_number,
            kind=position.kind,
            status=position.status,
            x=x, y=y, width=w, height=h, rotation=rotation,
            tenant=position.tenant,
            note=position.note if position.note is not None else (existing.note if existing else None),
            updated_at=utc_now(),
        )

    def _apply_to_layout(self, layout: Layout, position: PositionRecord,
                         placement: Optional[Tuple[float, float]] = None) -> Element:
        for i, el in enumerate(layout.elements):
            if el.id == position.id:
                layout.elements[i] = self._element_for(position, el, i, placement)
                return layout.elements[i]
        el = self._element_for(position, None, len(layout.elements), placement)
        layout.elements.append(el)
        return el

    def _apply_to_store(self, position: PositionRecord,
                        placement: Optional[Tuple[float, float]] = None) -> Element:
        existing = self.store.find(position.id)
        if existing is not None:
            el = self._element_for(position, existing, 0, placement)
            self.store.update_element(el)
        else:
            el = self._element_for(position, None, len(self.store.elements), placement)
            self.store.add_element(el)
        return el

    def _restore_selection(self, ids: List[str]):
        self.store.select_elements([i for i in ids if self.store.find(i) is not None])

    def sync_position_on_layout(self, position: PositionRecord) -> Layout:
        """Draw ``position`` on its store's layout, creating layout and element
        as needed. Existing placement and rotation survive; repeated calls with
        the same record leave exactly one element for its id.

        The layout open in the bound store is changed through the store and
        stays unsaved until the user saves; any other layout is saved directly.
        """
        self._details[position.id] = position.details()
        if self._is_active(position.store_id):
            selected = self.store.selected_ids
            self._apply_to_store(position)
            self._restore_selection(selected)
            return self.store.snapshot()
        layout = self._layout_for(position.store_id)
        self._apply_to_layout(layout, position)
        return self.layouts.save_layout(layout)

    def sync_store(self, store_id: str) -> Layout:
        records = self.positions.find_by_store(store_id)
        for rec in records:
            self._details[rec.id] = rec.details()
        if self._is_active(store_id):
            selected = self.store.selected_ids
            for rec in records:
                self._apply_to_store(rec)
            self._restore_selection(selected)
            return self.store.snapshot()
        layout = self._layout_for(store_id)
        for rec in records:
            self._apply_to_layout(layout, rec)
        return self.layouts.save_layout(layout)

    # ---- canvas -> positions ----
    def _geometry_to_record(self, rec: PositionRecord, element: Element):
        rec.x_mm = to_millimeters(element.x, self.px_per_mm)
        rec.y_mm = to_millimeters(element.y, self.px_per_mm)
        rec.width_mm = to_millimeters(element.width, self.px_per_mm)
        rec.height_mm = to_millimeters(element.height, self.px_per_mm)

    def record_element_geometry(self, store_id: str, element: Element) -> Optional[PositionRecord]:
        rec = self.positions.get_by_id(store_id, element.id)
        if rec is None:
            return None
        self._geometry_to_record(rec, element)
        return self.positions.upsert(rec)

    def save_element_details(self, store_id: str, element: Element,
                             details: LeasingDetails) -> PositionRecord:
        """Confirmation of the double-click editor: writes the canvas element
        and the position record. Construction kinds keep their status and
        carry no tenant. A position number already used by another record is
        refused with :class:`PersistenceError` before anything changes."""
        rec = self.positions.get_by_id(store_id, element.id) or PositionRecord(id=element.id, store_id=store_id)
        number = details.position_number or rec.position_number or element.label
        clash = self.positions.get(store_id, number)
        if clash is not None and clash.id != rec.id:
            raise PersistenceError(f"Position number {number} is already used by {clash.id}")

        previous = self.store.find(element.id) if self.store is not None else None
        el = element.copy()
        if ElementKind.is_construction(el.kind):
            el.tenant = None
            if previous is not None:
                el.status = previous.status
        el.touch()
        if previous is not None:
            self.store.update_element(el)

        if rec.position_number and rec.position_number != number:
            # upserts are keyed by number, so the row under the old one goes first
            self.positions.delete(rec.id)
        rec.position_number = number
        rec.name = el.label
        rec.kind = el.kind
        rec.status = el.status
        rec.tenant = el.tenant
        rec.note = el.note
        rec.format = details.format or None
        rec.display_type = details.display_type or None
        rec.department = details.department or None
        rec.category = details.category or None
        rec.purpose = details.purpose or None
        rec.expiry_date = details.expiry_date or None
        self._geometry_to_record(rec, el)
        saved = self.positions.upsert(rec)
        self._details[el.id] = details
        return saved

    # ---- floorplan analysis ----
    def import_analysis(self, store_id: str, analysis: FloorplanAnalysis,
                        min_confidence: float = 0.0) -> List[Element]:
        """Turn detected rectangles (percent of the plan image, top-left
        anchored) into elements and position records. Re-imports match
        records by position number, so nothing is duplicated."""
        active = self._is_active(store_id)
        if active:
            meta = self.store.layout
            layout = None
            bw, bh = meta.boundary_width, meta.boundary_height
        else:
            layout = self._layout_for(store_id)
            bw, bh = layout.boundary_width, layout.boundary_height

        selected = self.store.selected_ids if active else []
        created: List[Element] = []
        for det in analysis.positions:
            if det.confidence < min_confidence or not det.position_number:
                continue
            x, y = percent_to_pixels(det.x, bw), percent_to_pixels(det.y, bh)
            w, h = percent_to_pixels(det.width, bw), percent_to_pixels(det.height, bh)
            rec = self.positions.get(store_id, det.position_number) or PositionRecord(
                store_id=store_id, position_number=det.position_number, name=det.position_number)
            rec.kind = kind_for_format(det.format, rec.kind)
            rec.status = det.status
            rec.format = det.format or rec.format
            rec.display_type = det.display_type or rec.display_type
            rec.x_mm, rec.y_mm = to_millimeters(x, self.px_per_mm), to_millimeters(y, self.px_per_mm)
            rec.width_mm = to_millimeters(max(w, 1.0), self.px_per_mm)
            rec.height_mm = to_millimeters(max(h, 1.0), self.px_per_mm)
            rec = self.positions.upsert(rec)
            self._details[rec.id] = rec.details()
            if active:
                created.append(self._apply_to_store(rec, placement=(x, y)))
            else:
                created.append(self._apply_to_layout(layout, rec, placement=(x, y)))

        if active:
            self._restore_selection(selected)
        elif created:
            self.layouts.save_layout(layout)
        logger.info("Imported %d of %d detected positions for store %s",
                    len(created), len(analysis.positions), store_id)
        return created
