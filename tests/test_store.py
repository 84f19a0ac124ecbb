from planner.models import Element, Layout
from planner.store import LayoutStore
from planner.undo import UndoManager

from conftest import make_element


def test_add_update_undo_redo_walkthrough(store):
    e1 = Element(id="E1", x=40, y=40, width=180, height=120, rotation=0)
    store.add_element(e1)
    assert store.selected_ids == ["E1"]
    assert store.history_depth == 1

    store.update_element(e1.copy(x=100))
    assert store.history_depth == 2

    store.undo()
    assert store.elements == [e1]
    assert store.redo_depth == 1

    store.undo()
    assert store.elements == []
    assert store.redo_depth == 2

    store.redo()
    store.redo()
    assert store.elements == [e1.copy(x=100)]
    assert store.redo_depth == 0


def test_new_mutation_discards_redo(store):
    store.add_element(make_element(id="A"))
    store.undo()
    assert store.redo_depth == 1
    store.add_element(make_element(id="B"))
    assert store.redo_depth == 0
    store.redo()
    assert [e.id for e in store.elements] == ["B"]


def test_caller_mutation_cannot_reach_store(store):
    el = make_element(id="A", x=40)
    store.add_element(el)
    el.x = 999
    assert store.find("A").x == 40

    got = store.elements[0]
    got.x = 555
    assert store.find("A").x == 40

    store.update_element(make_element(id="A", x=60))
    store.undo()
    assert store.find("A").x == 40


def test_unknown_ids_are_noops(loaded_store):
    depth = loaded_store.history_depth
    loaded_store.update_element(make_element(id="ghost"))
    loaded_store.remove_element("ghost")
    loaded_store.reorder_element("ghost", "front")
    assert loaded_store.duplicate_element("ghost") is None
    assert loaded_store.history_depth == depth
    assert loaded_store.find("ghost") is None


def test_load_resets_history_and_dirty(loaded_store):
    assert loaded_store.history_depth == 1
    assert loaded_store.redo_depth == 0
    assert not loaded_store.is_dirty
    assert loaded_store.layout.object_id == "S1"
    assert loaded_store.layout.elements == []
    assert [e.id for e in loaded_store.snapshot().elements] == ["A", "B"]


def test_mutation_marks_dirty_until_saved(loaded_store):
    loaded_store.remove_element("B")
    assert loaded_store.is_dirty
    assert loaded_store.selected_ids == []
    saved = loaded_store.snapshot()
    saved.updated_at = "2024-06-01T00:00:00+00:00"
    loaded_store.mark_saved(saved)
    assert not loaded_store.is_dirty
    assert loaded_store.layout.updated_at == "2024-06-01T00:00:00+00:00"


def test_duplicate_offsets_and_selects_copy(loaded_store):
    dup = loaded_store.duplicate_element("A")
    assert dup.id != "A"
    assert dup.label == "Gondola 10 (copy)"
    assert (dup.x, dup.y) == (120, 120)
    assert loaded_store.selected_ids == [dup.id]
    assert len(loaded_store.elements) == 3


def test_reorder_front_and_back(loaded_store):
    loaded_store.reorder_element("A", "front")
    assert [e.id for e in loaded_store.elements] == ["B", "A"]
    depth = loaded_store.history_depth
    loaded_store.reorder_element("A", "front")
    assert loaded_store.history_depth == depth
    loaded_store.reorder_element("A", "back")
    assert [e.id for e in loaded_store.elements] == ["A", "B"]


def test_clear_is_undoable(loaded_store):
    loaded_store.clear()
    assert loaded_store.elements == []
    depth = loaded_store.history_depth
    loaded_store.clear()
    assert loaded_store.history_depth == depth
    loaded_store.undo()
    assert len(loaded_store.elements) == 2


def test_undo_prunes_selection(store):
    store.add_element(make_element(id="A"))
    assert store.selected_ids == ["A"]
    store.undo()
    assert store.selected_ids == []


def test_history_is_bounded():
    store = LayoutStore(history_limit=3)
    for i in range(5):
        store.add_element(make_element(id=f"E{i}"))
    assert store.history_depth == 3
    for _ in range(5):
        store.undo()
    assert [e.id for e in store.elements] == ["E0", "E1"]


def test_undo_on_empty_history_does_nothing(store):
    store.undo()
    store.redo()
    assert store.elements == []
    assert not store.is_dirty


def test_callbacks_fire(store):
    changes, selections = [], []
    store.on_change = changes.append
    store.on_selection = selections.append
    store.add_element(make_element())
    store.select_elements(["A", "A"])
    assert changes == [store]
    assert len(selections) == 2
    assert store.selected_ids == ["A"]


def test_selected_element_is_first_selected(loaded_store):
    loaded_store.select_elements(["B", "A"])
    assert loaded_store.selected_element.id == "B"
    loaded_store.select_element(None)
    assert loaded_store.selected_element is None


def test_undo_manager_reset_and_top():
    calls = []
    mgr = UndoManager(on_change=lambda: calls.append(1), limit=0)
    assert mgr.limit == 1
    mgr.reset([make_element()])
    assert mgr.history_depth == 1
    top = mgr.top()
    top[0].x = 1
    assert mgr.top()[0].x == 100
    mgr.push([])
    assert mgr.history_depth == 1
    assert calls == [1, 1]


def test_rename_marks_dirty():
    store = LayoutStore()
    store.load(Layout(id="L", name="Old", object_id="S"))
    store.rename("New")
    assert store.layout.name == "New"
    assert store.is_dirty
