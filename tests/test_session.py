import pytest

from planner.models import Element, Layout
from planner.persistence import JsonLayoutRepository, PersistenceError
from planner.session import EditorSession, ERROR, INFO
from planner.state import layouts_to_json

from conftest import make_element


class FailingRepository(JsonLayoutRepository):
    def _write(self, layouts, changed, deleted_id):
        raise PersistenceError("disk full")


@pytest.fixture
def messages():
    return []


@pytest.fixture
def session(loaded_store, layouts, messages):
    return EditorSession(loaded_store, layouts, notify=lambda level, msg: messages.append((level, msg)))


def test_save_clears_dirty_and_stores_layout(session, layouts, messages):
    session.store.remove_element("B")
    saved = session.save()
    assert not session.store.is_dirty
    assert session.store.layout.updated_at == saved.updated_at
    assert [e.id for e in layouts.get_layout_by_id("L1").elements] == ["A"]
    assert messages[-1][0] == INFO


def test_failed_save_keeps_edits_and_reports(loaded_store, tmp_path, messages):
    repo = FailingRepository(tmp_path / "layouts.json")
    session = EditorSession(loaded_store, repo, notify=lambda level, msg: messages.append((level, msg)))
    loaded_store.remove_element("B")

    with pytest.raises(PersistenceError):
        session.save()
    assert loaded_store.is_dirty
    assert [e.id for e in loaded_store.elements] == ["A"]
    level, msg = messages[-1]
    assert level == ERROR
    assert "disk full" in msg


def test_open_store_loads_latest_layout(session, layouts):
    layouts.save_layout(Layout(id="L9", object_id="S9", elements=[Element(id="Z")]))
    layout = session.open_store("S9")
    assert layout.id == "L9"
    assert session.current_object_id == "S9"
    assert [e.id for e in session.store.elements] == ["Z"]
    assert not session.store.is_dirty


def test_open_missing_store_leaves_editor_alone(session):
    assert session.open_store("nowhere") is None
    assert session.current_object_id == "S1"
    assert session.open_layout("nothing") is None


def test_open_layout_by_id(session, layouts):
    layouts.save_layout(Layout(id="L7", object_id="S7"))
    assert session.open_layout("L7").object_id == "S7"
    assert session.current_object_id == "S7"


def test_new_layout_is_saved_for_store(session, layouts):
    layout = session.new_layout("S5", name="Fresh", width=600)
    assert layout.object_id == "S5"
    assert layout.boundary_width == 600
    assert layout.boundary_height == 800
    assert session.store.elements == []
    assert not session.store.is_dirty
    assert layouts.get_layout_by_object_id("S5").name == "Fresh"


def test_copy_to_store_uses_fresh_ids(session, layouts):
    copy = session.copy_to_store("S2")
    assert copy.object_id == "S2"
    assert copy.id != "L1"
    assert copy.name == "Test (copy)"
    source_ids = {"A", "B"}
    assert len(copy.elements) == 2
    assert not source_ids & {e.id for e in copy.elements}
    assert [e.label for e in copy.elements] == ["Gondola 10", "Promo 20"]
    assert session.current_object_id == "S1"
    assert {e.id for e in session.store.elements} == source_ids


def test_reset_to_sample_reloads_current_store(loaded_store, tmp_path, messages):
    sample = tmp_path / "sample.json"
    sample.write_text(layouts_to_json([Layout(id="LS", object_id="S1", elements=[make_element(id="S")])]),
                      encoding="utf-8")
    repo = JsonLayoutRepository(tmp_path / "layouts.json", sample_path=sample)
    session = EditorSession(loaded_store, repo, notify=lambda level, msg: messages.append((level, msg)))
    session.save()

    layout = session.reset_to_sample()
    assert layout.id == "LS"
    assert [e.id for e in loaded_store.elements] == ["S"]
    assert messages[-1] == (INFO, "Layouts reset to sample data")


def test_reset_without_sample_support_reports(loaded_store, fake_session, messages):
    from planner.persistence import SupabaseLayoutRepository
    repo = SupabaseLayoutRepository("https://db.example", "k", session=fake_session)
    session = EditorSession(loaded_store, repo, notify=lambda level, msg: messages.append((level, msg)))
    with pytest.raises(PersistenceError):
        session.reset_to_sample()
    assert messages[-1][0] == ERROR
    assert len(loaded_store.elements) == 2


def test_failed_new_layout_save_stays_unsaved(loaded_store, tmp_path, messages):
    repo = FailingRepository(tmp_path / "layouts.json")
    session = EditorSession(loaded_store, repo, notify=lambda level, msg: messages.append((level, msg)))

    with pytest.raises(PersistenceError):
        session.new_layout("S9")
    assert session.current_object_id == "S9"
    assert loaded_store.is_dirty
    assert messages[-1][0] == ERROR
