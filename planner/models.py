from __future__ import annotations
import copy
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _key(text) -> str:
    return re.sub(r"[\s_\-]+", "", str(text or "")).lower()


class ElementKind:
    GONDOLA = "Gondola"
    PROMO = "Promo"
    STAND = "Stand"
    CASH_REGISTER = "Cash Register"
    ENTRANCE = "Entrance"
    DISPLAY_CASE = "Display Case"
    SHELF = "Shelf"
    DOOR = "Door"
    WINDOW = "Window"
    WALL = "Wall"
    COUNTER = "Counter"

    ALL = (GONDOLA, PROMO, STAND, CASH_REGISTER, ENTRANCE, DISPLAY_CASE,
           SHELF, DOOR, WINDOW, WALL, COUNTER)
    CONSTRUCTION = (WALL, DOOR, WINDOW, ENTRANCE, CASH_REGISTER)
    DEFAULT = GONDOLA

    _BY_KEY = {_key(k): k for k in ALL}

    @classmethod
    def parse(cls, value) -> str:
        return cls._BY_KEY.get(_key(value), cls.DEFAULT)

    @classmethod
    def is_construction(cls, kind: str) -> bool:
        return kind in cls.CONSTRUCTION


class PositionStatus:
    AVAILABLE = "Available"
    RESERVED = "Reserved"
    OCCUPIED = "Occupied"
    EXPIRING_SOON = "ExpiringSoon"
    INACTIVE = "Inactive"

    ALL = (AVAILABLE, RESERVED, OCCUPIED, EXPIRING_SOON, INACTIVE)
    DEFAULT = AVAILABLE

    # vocabulary of the remote positions table / floorplan analysis
    _REMOTE = {"free": AVAILABLE, "occupied": OCCUPIED, "partially": RESERVED,
               "expiring": EXPIRING_SOON, "inactive": INACTIVE}
    _TO_REMOTE = {AVAILABLE: "free", OCCUPIED: "occupied", RESERVED: "partially",
                  EXPIRING_SOON: "expiring", INACTIVE: "inactive"}
    _BY_KEY = {_key(s): s for s in ALL}

    @classmethod
    def parse(cls, value) -> str:
        k = _key(value)
        if k in cls._REMOTE:
            return cls._REMOTE[k]
        return cls._BY_KEY.get(k, cls.DEFAULT)

    @classmethod
    def to_remote(cls, status: str) -> str:
        return cls._TO_REMOTE.get(status, "free")


@dataclass
class Element:
    """A fixture placed on a layout. Geometry is in layout pixels, x/y is the
    unrotated top-left corner and rotation turns the shape about its centre."""
    id: str = field(default_factory=new_id)
    label: str = ""
    kind: str = ElementKind.DEFAULT
    status: str = PositionStatus.DEFAULT
    x: float = 0.0
    y: float = 0.0
    width: float = 100.0
    height: float = 100.0
    rotation: float = 0.0
    tenant: Optional[str] = None
    note: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        self.width = max(1.0, float(self.width))
        self.height = max(1.0, float(self.height))

    def center(self):
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def copy(self, **changes) -> "Element":
        return replace(self, **changes) if changes else replace(self)

    def touch(self) -> "Element":
        self.updated_at = utc_now()
        return self

    def same_geometry(self, other: "Element") -> bool:
        return (self.x, self.y, self.width, self.height, self.rotation) == \
               (other.x, other.y, other.width, other.height, other.rotation)


@dataclass
class LeasingDetails:
    position_number: str = ""
    format: str = ""
    display_type: str = ""
    department: str = ""
    category: str = ""
    purpose: str = ""
    responsible_person: str = ""
    expiry_date: Optional[str] = None
    price: Optional[float] = None
    contract_start: Optional[str] = None
    contract_end: Optional[str] = None


@dataclass
class Layout:
    id: str = field(default_factory=new_id)
    name: str = ""
    object_id: str = ""
    boundary_width: float = 1200.0
    boundary_height: float = 800.0
    elements: List[Element] = field(default_factory=list)
    updated_at: Optional[str] = None

    @classmethod
    def new_for_store(cls, object_id: str, name: Optional[str] = None,
                      width: float = 1200.0, height: float = 800.0) -> "Layout":
        return cls(name=name or f"Layout {object_id}", object_id=object_id,
                   boundary_width=width, boundary_height=height, updated_at=utc_now())

    def clone(self) -> "Layout":
        return copy.deepcopy(self)

    def find(self, element_id: str) -> Optional[Element]:
        for el in self.elements:
            if el.id == element_id:
                return el
        return None


def _num(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _opt(value) -> Optional[str]:
    return None if value in (None, "") else str(value)


@dataclass
class PositionRecord:
    """Relational leasing row, natural key (store_id, position_number), millimetres."""
    id: str = field(default_factory=new_id)
    store_id: str = ""
    position_number: str = ""
    name: str = ""
    kind: str = ElementKind.DEFAULT
    status: str = PositionStatus.DEFAULT
    x_mm: float = 0.0
    y_mm: float = 0.0
    width_mm: float = 1000.0
    height_mm: float = 1000.0
    tenant: Optional[str] = None
    expiry_date: Optional[str] = None
    format: Optional[str] = None
    display_type: Optional[str] = None
    department: Optional[str] = None
    category: Optional[str] = None
    purpose: Optional[str] = None
    note: Optional[str] = None

    @property
    def key(self):
        return (self.store_id, self.position_number)

    @classmethod
    def from_api(cls, data: Dict) -> "PositionRecord":
        """Admin API shape: retailObjectId, widthCm/heightCm, positionType, supplier."""
        name = data.get("name") or ""
        return cls(
            id=str(data.get("id") or new_id()),
            store_id=str(data.get("retailObjectId") or data.get("storeId") or ""),
            position_number=str(data.get("positionNumber") or name),
            name=name,
            kind=ElementKind.parse(data.get("positionType")),
            status=PositionStatus.parse(data.get("status")),
            x_mm=_num(data.get("xCm")) * 10.0,
            y_mm=_num(data.get("yCm")) * 10.0,
            width_mm=_num(data.get("widthCm"), 100.0) * 10.0,
            height_mm=_num(data.get("heightCm"), 100.0) * 10.0,
            tenant=_opt(data.get("supplier")),
            expiry_date=_opt(data.get("expiryDate")),
            note=_opt(data.get("note")),
        )

    @classmethod
    def from_row(cls, row: Dict) -> "PositionRecord":
        """Remote ``positions`` table row (snake_case, millimetres)."""
        return cls(
            id=str(row.get("id") or new_id()),
            store_id=str(row.get("store_id") or ""),
            position_number=str(row.get("position_number") or ""),
            name=str(row.get("name") or row.get("position_number") or ""),
            kind=ElementKind.parse(row.get("position_type") or row.get("format")),
            status=PositionStatus.parse(row.get("status")),
            x_mm=_num(row.get("x")),
            y_mm=_num(row.get("y")),
            width_mm=_num(row.get("width"), 1000.0),
            height_mm=_num(row.get("height"), 1000.0),
            tenant=_opt(row.get("tenant")),
            expiry_date=_opt(row.get("expiry_date")),
            format=_opt(row.get("format")),
            display_type=_opt(row.get("display_type")),
            department=_opt(row.get("department")),
            category=_opt(row.get("category")),
            purpose=_opt(row.get("purpose")),
            note=_opt(row.get("note")),
        )

    def to_row(self) -> Dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "position_number": self.position_number,
            "name": self.name,
            "position_type": self.kind,
            "status": PositionStatus.to_remote(self.status),
            "x": self.x_mm, "y": self.y_mm,
            "width": self.width_mm, "height": self.height_mm,
            "tenant": self.tenant,
            "expiry_date": self.expiry_date,
            "format": self.format,
            "display_type": self.display_type,
            "department": self.department,
            "category": self.category,
            "purpose": self.purpose,
            "note": self.note,
        }

    def details(self) -> LeasingDetails:
        return LeasingDetails(
            position_number=self.position_number,
            format=self.format or "",
            display_type=self.display_type or "",
            department=self.department or "",
            category=self.category or "",
            purpose=self.purpose or "",
            expiry_date=self.expiry_date,
        )


@dataclass
class DetectedPosition:
    position_number: str
    x: float
    y: float
    width: float
    height: float
    status: str = PositionStatus.DEFAULT
    format: Optional[str] = None
    display_type: Optional[str] = None
    confidence: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict) -> "DetectedPosition":
        return cls(
            position_number=str(data.get("position_number") or ""),
            x=_num(data.get("x")),
            y=_num(data.get("y")),
            width=_num(data.get("width"), 10.0),
            height=_num(data.get("height"), 8.0),
            status=PositionStatus.parse(data.get("status")),
            format=_opt(data.get("format")),
            display_type=_opt(data.get("display_type")),
            confidence=_num(data.get("confidence")),
        )


@dataclass
class FloorplanAnalysis:
    positions: List[DetectedPosition] = field(default_factory=list)
    overall_confidence: float = 75.0


class Mode:
    EDIT = "edit"
    CREATE = "create"
    VIEW = "view"
