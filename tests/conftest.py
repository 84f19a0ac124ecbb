import os
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from planner.models import Element, Layout, PositionRecord
from planner.persistence import JsonLayoutRepository, InMemoryPositionRepository
from planner.store import LayoutStore
from planner.gestures import InteractionController


def make_element(**kw) -> Element:
    base = dict(id="A", label="Gondola 10", kind="Gondola", x=100.0, y=100.0, width=200.0, height=120.0)
    base.update(kw)
    return Element(**base)


@pytest.fixture
def store():
    return LayoutStore()


@pytest.fixture
def loaded_store():
    s = LayoutStore()
    layout = Layout(id="L1", name="Test", object_id="S1",
                    elements=[make_element(), make_element(id="B", label="Promo 20", kind="Promo", x=500.0)])
    s.load(layout)
    return s


@pytest.fixture
def controller(loaded_store):
    return InteractionController(loaded_store, snap_to_grid=False)


@pytest.fixture
def layouts(tmp_path):
    return JsonLayoutRepository(tmp_path / "layouts.json")


@pytest.fixture
def positions():
    return InMemoryPositionRepository()


@pytest.fixture
def record():
    return PositionRecord.from_api({"id": "P1", "retailObjectId": "S1", "name": "G-01",
                                    "widthCm": 100, "heightCm": 80, "status": "occupied",
                                    "supplier": "Fresh & Co"})


class FakeResponse:
    def __init__(self, payload=None, status=200, content=None):
        import json
        self.status_code = status
        self._payload = payload
        self.content = content if content is not None else (b"" if payload is None else json.dumps(payload).encode())

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload

    def raise_for_status(self):
        import requests
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def fake_session():
    session = Mock()
    session.request = Mock(return_value=FakeResponse([]))
    session.post = Mock(return_value=FakeResponse({}))
    return session
