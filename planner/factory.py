from __future__ import annotations
import random
from typing import Dict, Optional

from .models import Element, ElementKind, PositionStatus, new_id, utc_now
from .utils import PX_GRID, snap, kind_style

# width, height, note, default tenant
DEFAULT_DIMENSIONS: Dict[str, tuple] = {
    ElementKind.ENTRANCE:      (120, 80,  "Customer entrance / exit", None),
    ElementKind.CASH_REGISTER: (240, 140, "Checkout area with POS equipment", "TechNova"),
    ElementKind.DISPLAY_CASE:  (200, 140, "Refrigerated display case", "Fresh & Co"),
    ElementKind.SHELF:         (160, 320, "Wall shelf", "Fresh & Co"),
    ElementKind.DOOR:          (100, 24,  "Door / passage", None),
    ElementKind.WINDOW:        (220, 20,  "Window or shop window", None),
    ElementKind.WALL:          (400, 22,  "Wall segment", None),
    ElementKind.COUNTER:       (220, 120, "Service or tasting counter", "Local Craft"),
    ElementKind.PROMO:         (200, 140, "Reserved for featured promotions", "BeautyLine"),
    ElementKind.STAND:         (140, 160, "Free-standing stand", "Local Craft"),
}
FALLBACK_DIMENSIONS = (200, 120, "Standard module", "Fresh & Co")


def default_dimensions(kind: str) -> tuple:
    return DEFAULT_DIMENSIONS.get(kind, FALLBACK_DIMENSIONS)


class ItemFactory:
    def __init__(self, snap_to_grid: bool = True, grid: float = PX_GRID,
                 rng: Optional[random.Random] = None):
        self.snap_to_grid = snap_to_grid
        self.grid = grid
        self._rng = rng or random.Random()

    def create(self, kind: str, x: float, y: float, centered: bool = False) -> Element:
        kind = ElementKind.parse(kind)
        w, h, note, tenant = default_dimensions(kind)
        if centered:
            x -= w / 2.0
            y -= h / 2.0
        if self.snap_to_grid:
            x = snap(x, self.grid); y = snap(y, self.grid)
        _, short = kind_style(kind)
        return Element(
            id=new_id(),
            label=f"{short} {self._rng.randint(10, 99)}",
            kind=kind,
            status=PositionStatus.AVAILABLE,
            x=max(0.0, x), y=max(0.0, y),
            width=float(w), height=float(h),
            rotation=0.0,
            tenant=None if ElementKind.is_construction(kind) else tenant,
            note=note,
            updated_at=utc_now(),
        )
