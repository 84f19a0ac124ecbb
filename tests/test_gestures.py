import random

import pytest

from planner.factory import ItemFactory, default_dimensions
from planner.gestures import (InteractionController, GestureState, corner_point,
                              rotate_handle_point, contains)
from planner.models import ElementKind, Layout, Mode

from conftest import make_element


def _select(controller, element_id):
    controller.store.select_element(element_id)


def test_drag_previews_then_commits_once(controller):
    store = controller.store
    hit = controller.pointer_down(150, 150)
    assert hit.target == "element" and hit.element_id == "A"
    assert controller.state == GestureState.DRAGGING

    controller.pointer_move(170, 180)
    assert store.find("A").x == 100
    shown = {e.id: e for e in controller.displayed_elements()}
    assert (shown["A"].x, shown["A"].y) == (120, 130)
    assert store.history_depth == 1

    final = controller.pointer_up()
    assert (final.x, final.y) == (120, 130)
    assert store.find("A").x == 120
    assert store.history_depth == 2
    assert controller.state == GestureState.IDLE


def test_drag_snaps_to_grid(loaded_store):
    controller = InteractionController(loaded_store, snap_to_grid=True, grid=20)
    controller.pointer_down(150, 150)
    controller.pointer_move(163, 150)
    assert controller.preview.x == 120
    controller.pointer_up()
    assert loaded_store.find("A").x == 120


def test_plain_click_selects_without_history(controller):
    controller.pointer_down(550, 150)
    assert controller.pointer_up() is None
    assert controller.store.selected_ids == ["B"]
    assert controller.store.history_depth == 1


def test_click_on_off_grid_element_leaves_it_in_place(store):
    store.load(Layout(id="L", elements=[make_element(id="A", x=103, y=107)]))
    controller = InteractionController(store, snap_to_grid=True, grid=20)
    committed = []
    controller.on_commit = committed.append
    controller.pointer_down(150, 150)
    assert controller.pointer_up(150, 150) is None
    assert (store.find("A").x, store.find("A").y) == (103, 107)
    assert store.history_depth == 1
    assert committed == []


def test_click_on_empty_canvas_clears_selection(controller):
    _select(controller, "A")
    assert controller.pointer_down(1000, 700) is None
    assert controller.store.selected_ids == []


def test_resize_from_bottom_right_keeps_top_left(controller):
    _select(controller, "A")
    hit = controller.pointer_down(300, 220)
    assert hit.target == "resize" and hit.corner == "br"
    controller.pointer_move(400, 300)
    final = controller.pointer_up()
    assert (final.x, final.y, final.width, final.height) == (100, 100, 300, 200)


def test_resize_is_floored_at_minimum_size(controller):
    _select(controller, "A")
    controller.pointer_down(300, 220)
    controller.pointer_move(90, 90)
    final = controller.pointer_up()
    assert (final.width, final.height) == (20, 20)
    assert (final.x, final.y) == (100, 100)


def test_resize_rotated_element_keeps_opposite_corner(loaded_store):
    loaded_store.add_element(make_element(id="C", x=0, y=0, width=200, height=100, rotation=90))
    controller = InteractionController(loaded_store, snap_to_grid=False)
    before = corner_point(loaded_store.find("C"), "tl")

    bx, by = corner_point(loaded_store.find("C"), "br")
    hit = controller.pointer_down(bx, by)
    assert hit.target == "resize" and hit.corner == "br"
    controller.pointer_move(30, 170)
    final = controller.pointer_up()

    assert (final.width, final.height) == (220, 120)
    assert final.rotation == 90
    assert corner_point(final, "tl") == pytest.approx(before, abs=1e-6)


def test_rotation_follows_pointer_angle(controller):
    _select(controller, "A")
    hx, hy = rotate_handle_point(controller.store.find("A"))
    assert (hx, hy) == pytest.approx((200, 76))
    hit = controller.pointer_down(hx, hy)
    assert hit.target == "rotate"
    assert controller.state == GestureState.ROTATING

    controller.pointer_move(200, 40)
    assert controller.preview.rotation == pytest.approx(0)
    controller.pointer_move(300, 160)
    assert controller.preview.rotation == pytest.approx(90)
    controller.pointer_move(100, 160)
    assert controller.preview.rotation == pytest.approx(-90)
    controller.pointer_move(200, 260)
    assert controller.preview.rotation == pytest.approx(180)

    final = controller.pointer_up(300, 160)
    assert final.rotation == 90
    assert controller.store.find("A").rotation == 90


def test_rotation_limit_clamps(loaded_store):
    controller = InteractionController(loaded_store, snap_to_grid=False, rotation_limit=45)
    loaded_store.select_element("A")
    controller.pointer_down(200, 76)
    controller.pointer_move(300, 160)
    assert controller.pointer_up().rotation == 45


def test_pointer_leave_commits_gesture(controller):
    controller.pointer_down(150, 150)
    controller.pointer_move(190, 150)
    final = controller.pointer_leave()
    assert final.x == 140
    assert controller.store.find("A").x == 140
    assert controller.state == GestureState.IDLE


def test_second_pointer_down_is_ignored_during_gesture(controller):
    controller.pointer_down(150, 150)
    assert controller.pointer_down(550, 150) is None
    assert controller.state == GestureState.DRAGGING
    assert controller.store.selected_ids == ["A"]


def test_preview_callback_reports_and_clears(controller):
    seen = []
    controller.on_preview = seen.append
    controller.pointer_down(150, 150)
    controller.pointer_move(160, 150)
    controller.pointer_up()
    assert seen[0].x == 110
    assert seen[-1] is None


def test_commit_callback_receives_final(controller):
    committed = []
    controller.on_commit = committed.append
    controller.pointer_down(150, 150)
    controller.pointer_up(170, 150)
    assert [e.x for e in committed] == [120]


def test_create_mode_requests_new_element(controller):
    calls = []
    controller.mode = Mode.CREATE
    controller.on_create = lambda x, y: calls.append((x, y))
    controller.pointer_down(900, 700)
    assert calls == [(900, 700)]
    assert len(controller.store.elements) == 2


def test_view_mode_selects_but_never_edits(controller):
    controller.mode = Mode.VIEW
    edits = []
    controller.on_edit = edits.append
    hit = controller.pointer_down(150, 150)
    assert hit.element_id == "A"
    assert controller.state == GestureState.IDLE
    assert controller.nudge(10, 0) is None
    controller.double_click(150, 150)
    assert edits == []


def test_double_click_opens_editor(controller):
    edits = []
    controller.on_edit = edits.append
    el = controller.double_click(550, 150)
    assert el.id == "B"
    assert [e.id for e in edits] == ["B"]
    assert controller.double_click(1100, 700) is None


def test_nudge_moves_selected(controller):
    assert controller.nudge(5, 0) is None
    _select(controller, "A")
    moved = controller.nudge(5, -5)
    assert (moved.x, moved.y) == (105, 95)
    assert controller.store.history_depth == 2


def test_hit_test_respects_rotation():
    el = make_element(x=0, y=0, width=200, height=20, rotation=90)
    # rotated about (100, 10) the bar now runs vertically
    assert contains(el, 100, 80)
    assert not contains(el, 180, 10)


def test_topmost_element_wins(loaded_store):
    loaded_store.add_element(make_element(id="C", x=150, y=150, width=40, height=40))
    controller = InteractionController(loaded_store, snap_to_grid=False)
    loaded_store.select_element(None)
    assert controller.hit_test(160, 160).element_id == "C"


def test_from_config_copies_settings(loaded_store):
    class Cfg:
        snap_to_grid = False
        grid_size = 10.0
        min_width = 30.0
        min_height = 40.0
        rotation_limit = 60.0

    controller = InteractionController.from_config(loaded_store, Cfg())
    assert controller.grid == 10.0
    assert controller.min_width == 30.0
    assert controller.rotation_limit == 60.0
    assert not controller.snap_to_grid


# ---- element factory ----
def test_factory_uses_kind_defaults_and_snaps():
    factory = ItemFactory(snap_to_grid=True, grid=20, rng=random.Random(1))
    el = factory.create("promo", 205, 207)
    assert el.kind == ElementKind.PROMO
    assert (el.x, el.y) == (200, 200)
    assert (el.width, el.height) == (200, 140)
    assert el.label.startswith("Promo ")
    assert el.tenant == "BeautyLine"


def test_factory_centres_and_clamps():
    factory = ItemFactory(snap_to_grid=True, grid=20)
    el = factory.create(ElementKind.GONDOLA, 300, 300, centered=True)
    assert (el.x, el.y) == (200, 240)
    assert default_dimensions(ElementKind.GONDOLA)[:2] == (200, 120)
    corner = factory.create(ElementKind.STAND, 10, 10, centered=True)
    assert (corner.x, corner.y) == (0, 0)


def test_factory_construction_has_no_tenant():
    el = ItemFactory(snap_to_grid=False).create("wall", 13, 17)
    assert el.tenant is None
    assert (el.x, el.y) == (13, 17)
