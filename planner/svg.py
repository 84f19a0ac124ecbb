from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Sequence, Union
from xml.sax.saxutils import escape, quoteattr

from .models import Element, Layout
from .utils import (PX_GRID, MAJOR_EVERY, BOUNDARY_W, BOUNDARY_H, BG_COLOR, GRID_MINOR, GRID_MAJOR,
                    BOUNDARY_COLOR, SELECTION_COLOR, PX_PER_MM, status_color, kind_style, size_label)

logger = logging.getLogger(__name__)

MARGIN = 40.0
FONT = "Inter, Arial, sans-serif"


def _f(v: float) -> str:
    return f"{v:.1f}"


def _grid_defs(out: List[str], step: float):
    major = step * MAJOR_EVERY
    out.append("<defs>")
    out.append(f'<pattern id="grid-minor" width="{_f(step)}" height="{_f(step)}" patternUnits="userSpaceOnUse">'
               f'<path d="M {_f(step)} 0 L 0 0 0 {_f(step)}" fill="none" stroke="{GRID_MINOR}" stroke-width="1"/>'
               f'</pattern>')
    out.append(f'<pattern id="grid-major" width="{_f(major)}" height="{_f(major)}" patternUnits="userSpaceOnUse">'
               f'<rect width="{_f(major)}" height="{_f(major)}" fill="url(#grid-minor)"/>'
               f'<path d="M {_f(major)} 0 L 0 0 0 {_f(major)}" fill="none" stroke="{GRID_MAJOR}" stroke-width="1.5"/>'
               f'</pattern>')
    out.append("</defs>")


def element_svg(out: List[str], el: Element, selected: bool = False, px_per_mm: float = PX_PER_MM):
    """One ``<g>`` per element, rotated about its centre."""
    fill, short = kind_style(el.kind)
    cx, cy = el.center()
    out.append(f'<g class="element" data-id={quoteattr(el.id)} '
               f'transform="rotate({_f(el.rotation)} {_f(cx)} {_f(cy)})">')
    out.append(f'<rect x="{_f(el.x)}" y="{_f(el.y)}" width="{_f(el.width)}" height="{_f(el.height)}" '
               f'rx="8" fill="{fill}" fill-opacity="0.85" stroke="{status_color(el.status)}" stroke-width="3"/>')
    if selected:
        out.append(f'<rect x="{_f(el.x - 4)}" y="{_f(el.y - 4)}" width="{_f(el.width + 8)}" '
                   f'height="{_f(el.height + 8)}" rx="10" fill="none" stroke="{SELECTION_COLOR}" '
                   f'stroke-width="2" stroke-dasharray="6 4"/>')
    out.append(f'<text x="{_f(cx)}" y="{_f(cy - 4)}" text-anchor="middle" font-family="{FONT}" '
               f'font-size="13" font-weight="600" fill="#FFFFFF">{escape(el.label or short)}</text>')
    sub = size_label(el.width, el.height, px_per_mm)
    if el.tenant:
        sub += f" · {el.tenant}"
    out.append(f'<text x="{_f(cx)}" y="{_f(cy + 12)}" text-anchor="middle" font-family="{FONT}" '
               f'font-size="10" fill="#F1F5F9">{escape(sub)}</text>')
    out.append("</g>")


def render_svg(source: Union[Layout, Sequence[Element]], selected_ids: Iterable[str] = (),
               width: Optional[float] = None, height: Optional[float] = None,
               grid: float = PX_GRID, px_per_mm: float = PX_PER_MM) -> str:
    """Standalone SVG document of a layout (or a bare element list)."""
    if isinstance(source, Layout):
        elements = list(source.elements)
        width = width or source.boundary_width
        height = height or source.boundary_height
        title = source.name
    else:
        elements = list(source)
        title = ""
    width = width or BOUNDARY_W
    height = height or BOUNDARY_H
    selected = set(selected_ids)

    total_w, total_h = width + 2 * MARGIN, height + 2 * MARGIN
    out: List[str] = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{_f(total_w)}" height="{_f(total_h)}" '
        f'viewBox="{_f(-MARGIN)} {_f(-MARGIN)} {_f(total_w)} {_f(total_h)}">',
    ]
    if title:
        out.append(f"<title>{escape(title)}</title>")
    _grid_defs(out, grid if grid and grid > 0 else PX_GRID)
    out.append(f'<rect x="{_f(-MARGIN)}" y="{_f(-MARGIN)}" width="{_f(total_w)}" height="{_f(total_h)}" fill="{BG_COLOR}"/>')
    out.append(f'<rect x="0" y="0" width="{_f(width)}" height="{_f(height)}" fill="url(#grid-major)"/>')
    out.append(f'<rect class="boundary" x="0" y="0" width="{_f(width)}" height="{_f(height)}" fill="none" '
               f'stroke="{BOUNDARY_COLOR}" stroke-width="3" stroke-dasharray="12 8"/>')
    for el in elements:
        element_svg(out, el, el.id in selected, px_per_mm)
    out.append("</svg>")
    logger.debug("Rendered %d elements to SVG", len(elements))
    return "\n".join(out)


def export_svg(path: str, source: Union[Layout, Sequence[Element]], **kwargs):
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_svg(source, **kwargs))
    logger.info("Exported SVG to %s", path)
