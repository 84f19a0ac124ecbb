import json

import pytest

from planner.models import (Element, ElementKind, PositionStatus, Layout, PositionRecord,
                            DetectedPosition)
from planner.state import (element_to_dict, element_from_dict, layout_to_dict, layout_from_dict,
                           layouts_from_json, layouts_to_json)


@pytest.mark.parametrize("raw", ["cash_register", "CashRegister", "Cash Register", "cash-register"])
def test_kind_parse_is_spacing_insensitive(raw):
    assert ElementKind.parse(raw) == ElementKind.CASH_REGISTER


def test_kind_parse_unknown_falls_back_to_gondola():
    assert ElementKind.parse("spaceship") == ElementKind.GONDOLA
    assert ElementKind.parse(None) == ElementKind.GONDOLA


def test_construction_kinds():
    assert ElementKind.is_construction(ElementKind.WALL)
    assert ElementKind.is_construction(ElementKind.CASH_REGISTER)
    assert not ElementKind.is_construction(ElementKind.PROMO)


@pytest.mark.parametrize("raw,expected", [("free", "Available"), ("occupied", "Occupied"),
                                          ("partially", "Reserved"), ("expiring", "ExpiringSoon"),
                                          ("Expiring Soon", "ExpiringSoon"), ("??", "Available")])
def test_status_parse(raw, expected):
    assert PositionStatus.parse(raw) == expected


def test_status_to_remote():
    assert PositionStatus.to_remote(PositionStatus.RESERVED) == "partially"
    assert PositionStatus.to_remote(PositionStatus.AVAILABLE) == "free"


def test_element_size_floor_and_centre():
    el = Element(width=0, height=-5, x=10, y=10)
    assert el.width == 1 and el.height == 1
    assert Element(x=0, y=0, width=200, height=100).center() == (100, 50)


def test_element_copy_is_independent():
    el = Element(id="A", x=1)
    cp = el.copy(x=2)
    assert el.x == 1 and cp.x == 2 and cp.id == "A"
    assert el.touch().updated_at is not None


def test_position_record_from_api_converts_centimetres():
    rec = PositionRecord.from_api({"id": "P1", "retailObjectId": "S1", "name": "G-01",
                                   "widthCm": 100, "heightCm": 80, "positionType": "promo",
                                   "supplier": "BeautyLine", "status": "partially"})
    assert rec.width_mm == 1000 and rec.height_mm == 800
    assert rec.store_id == "S1"
    assert rec.position_number == "G-01"
    assert rec.kind == ElementKind.PROMO
    assert rec.status == PositionStatus.RESERVED
    assert rec.tenant == "BeautyLine"


def test_position_record_row_round_trip():
    rec = PositionRecord(id="P1", store_id="S1", position_number="7", status=PositionStatus.RESERVED,
                         x_mm=100, width_mm=2000, format="Polica")
    row = rec.to_row()
    assert row["status"] == "partially"
    back = PositionRecord.from_row(row)
    assert back.status == PositionStatus.RESERVED
    assert back.key == ("S1", "7")
    assert back.details().format == "Polica"


def test_detected_position_defaults():
    det = DetectedPosition.from_dict({"position_number": "A1", "x": "12.5", "status": "occupied"})
    assert det.x == 12.5
    assert det.width == 10.0 and det.height == 8.0
    assert det.status == PositionStatus.OCCUPIED


# ---- document codec ----
def test_element_dict_uses_document_keys():
    el = Element(id="E", label="Promo 1", kind="Promo", x=1, y=2, width=3, height=4, rotation=5,
                 tenant="Fresh & Co")
    d = element_to_dict(el)
    assert d["type"] == "Promo"
    assert d["supplier"] == "Fresh & Co"
    assert "note" not in d
    assert element_from_dict(d) == el


def test_malformed_element_is_skipped():
    assert element_from_dict({"id": "x", "x": "not a number"}) is None
    layout = layout_from_dict({"id": "L", "elements": [{"id": "ok"}, {"x": "bad"}, "junk"]})
    assert [e.id for e in layout.elements] == ["ok"]


def test_layout_document_round_trip():
    layout = Layout(id="L", name="Shop", object_id="S1", boundary_width=900, boundary_height=600,
                    elements=[Element(id="A")], updated_at="2024-01-01T00:00:00+00:00")
    d = layout_to_dict(layout)
    assert d["objectId"] == "S1" and d["boundaryWidth"] == 900
    [back] = layouts_from_json(layouts_to_json([layout]))
    assert back == layout


def test_layouts_from_json_rejects_non_list():
    with pytest.raises(ValueError):
        layouts_from_json(json.dumps({"id": "L"}))
    with pytest.raises(ValueError):
        layouts_from_json("{broken")
