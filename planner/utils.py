from __future__ import annotations
import math

# ===== Canvas / grid =====
PX_GRID = 20.0
GRID_STEP = PX_GRID
MAJOR_EVERY = 5
BOUNDARY_W = 1200.0
BOUNDARY_H = 800.0
EPS = 0.5

# ===== Scale =====
# 1 px on the canvas = 1 cm = 10 mm on the shop floor
PX_PER_MM = 0.1

# ===== Handles =====
HANDLE_SIZE = 12.0
ROTATE_HANDLE_OFFSET = 24.0
ROTATE_HANDLE_SIZE = 14.0
MIN_ELEMENT_W = 20.0
MIN_ELEMENT_H = 20.0

# ===== Colors (hex, shared by the Qt scene and the SVG export) =====
BG_COLOR = "#F8FAFC"
GRID_MINOR = "#E2E8F0"
GRID_MAJOR = "#CBD5E1"
BOUNDARY_COLOR = "#22C55E"
SELECTION_COLOR = "#0EA5E9"
ROTATE_HANDLE_COLOR = "#F59E0B"

STATUS_COLORS = {
    "Available": "#16A34A",
    "Reserved": "#2563EB",
    "Occupied": "#DC2626",
    "ExpiringSoon": "#F97316",
    "Inactive": "#94A3B8",
}

# fill colour, short display label
KIND_STYLES = {
    "Gondola":       ("#6366F1", "Gondola"),
    "Promo":         ("#F59E0B", "Promo"),
    "Stand":         ("#3B82F6", "Stand"),
    "Cash Register": ("#EF4444", "Cash"),
    "Entrance":      ("#10B981", "Entrance"),
    "Display Case":  ("#14B8A6", "Display"),
    "Shelf":         ("#8B5CF6", "Shelf"),
    "Door":          ("#0EA5E9", "Door"),
    "Window":        ("#38BDF8", "Window"),
    "Wall":          ("#475569", "Wall"),
    "Counter":       ("#E11D48", "Counter"),
}
FALLBACK_KIND_STYLE = ("#334155", "")


def status_color(status: str) -> str:
    return STATUS_COLORS.get(status, STATUS_COLORS["Occupied"])


def kind_style(kind: str):
    fill, label = KIND_STYLES.get(kind, FALLBACK_KIND_STYLE)
    return fill, (label or kind)


# ===== Unit conversion =====
def to_pixels(mm: float, px_per_mm: float = PX_PER_MM) -> float:
    return mm * px_per_mm


def to_millimeters(px: float, px_per_mm: float = PX_PER_MM) -> float:
    return px / px_per_mm


def cm_to_pixels(cm: float, px_per_mm: float = PX_PER_MM) -> float:
    return to_pixels(cm * 10.0, px_per_mm)


def size_label(width_px: float, height_px: float, px_per_mm: float = PX_PER_MM) -> str:
    w = to_millimeters(width_px, px_per_mm) / 10.0
    h = to_millimeters(height_px, px_per_mm) / 10.0
    return f"{w:.0f}×{h:.0f} cm"


def percent_to_pixels(pct: float, extent_px: float) -> float:
    return pct / 100.0 * extent_px


def snap(v: float, step: float) -> float:
    """Nearest multiple of ``step``; an unusable step leaves ``v`` unsnapped."""
    if not step or step <= 0 or not math.isfinite(step) or not math.isfinite(v):
        return v
    return round(v / step) * step


def normalize_angle(deg: float) -> float:
    """Map any angle into (-180, 180]."""
    a = math.fmod(deg, 360.0)
    if a <= -180.0:
        a += 360.0
    elif a > 180.0:
        a -= 360.0
    return a


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


# ===== Rotated rectangle helpers =====
def rotate_point(x: float, y: float, cx: float, cy: float, deg: float):
    """Rotate (x, y) about (cx, cy) by ``deg`` degrees (screen coordinates, y down)."""
    r = math.radians(deg)
    c, s = math.cos(r), math.sin(r)
    dx, dy = x - cx, y - cy
    return cx + dx * c - dy * s, cy + dx * s + dy * c


def to_local(px: float, py: float, cx: float, cy: float, deg: float):
    """World point -> offset from the centre in the shape's unrotated frame."""
    lx, ly = rotate_point(px, py, cx, cy, -deg)
    return lx - cx, ly - cy
