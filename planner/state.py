from __future__ import annotations
import json
import logging
from typing import Dict, List, Optional

from .models import Element, ElementKind, Layout, PositionStatus, new_id
from .utils import BOUNDARY_W, BOUNDARY_H

logger = logging.getLogger(__name__)


def element_to_dict(el: Element) -> Dict:
    data = {
        "id": el.id,
        "label": el.label,
        "type": el.kind,
        "status": el.status,
        "width": el.width, "height": el.height,
        "x": el.x, "y": el.y,
        "rotation": el.rotation,
    }
    if el.tenant:
        data["supplier"] = el.tenant
    if el.note:
        data["note"] = el.note
    if el.updated_at:
        data["updatedAt"] = el.updated_at
    return data


def element_from_dict(d: Dict) -> Optional[Element]:
    try:
        return Element(
            id=str(d.get("id") or new_id()),
            label=str(d.get("label", "")),
            kind=ElementKind.parse(d.get("type")),
            status=PositionStatus.parse(d.get("status")),
            x=float(d.get("x", 0)), y=float(d.get("y", 0)),
            width=float(d.get("width", 100)), height=float(d.get("height", 100)),
            rotation=float(d.get("rotation", 0) or 0),
            tenant=d.get("supplier") or None,
            note=d.get("note") or None,
            updated_at=d.get("updatedAt"),
        )
    except (TypeError, ValueError, AttributeError):
        logger.warning("Skipping malformed layout element: %r", d)
        return None


def layout_to_dict(layout: Layout) -> Dict:
    return {
        "id": layout.id,
        "name": layout.name,
        "objectId": layout.object_id,
        "boundaryWidth": layout.boundary_width,
        "boundaryHeight": layout.boundary_height,
        "elements": [element_to_dict(el) for el in layout.elements],
        "updatedAt": layout.updated_at,
    }


def layout_from_dict(data: Dict) -> Layout:
    elements: List[Element] = []
    for raw in data.get("elements") or []:
        el = element_from_dict(raw) if isinstance(raw, dict) else None
        if el is not None:
            elements.append(el)
    try:
        bw = float(data.get("boundaryWidth") or BOUNDARY_W)
        bh = float(data.get("boundaryHeight") or BOUNDARY_H)
    except (TypeError, ValueError):
        bw, bh = BOUNDARY_W, BOUNDARY_H
    return Layout(
        id=str(data.get("id") or new_id()),
        name=str(data.get("name") or ""),
        object_id=str(data.get("objectId") or ""),
        boundary_width=bw,
        boundary_height=bh,
        elements=elements,
        updated_at=data.get("updatedAt"),
    )


def layouts_from_json(text: str) -> List[Layout]:
    """Raises ValueError for anything that is not a JSON list of layouts."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("layout document must be a list")
    return [layout_from_dict(d) for d in data if isinstance(d, dict)]


def layouts_to_json(layouts: List[Layout]) -> str:
    return json.dumps([layout_to_dict(l) for l in layouts], ensure_ascii=False, indent=2)
