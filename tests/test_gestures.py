"""
Tests for gesture mapping onto the viewport.
"""
import pytest

from pointbook.core.gestures import GestureController, InteractionMode
from pointbook.core.viewport import Viewport


@pytest.fixture
def vp():
    return Viewport(800, 600)


class TestTaps:
    def test_tap_reports_mode(self, vp):
        g = GestureController(vp, mode=InteractionMode.PLACE)
        g.pointer_down(1, 100, 120)
        tap = g.pointer_up(1, 100, 120)
        assert tap is not None
        assert (tap.x, tap.y, tap.mode) == (100, 120, InteractionMode.PLACE)

    def test_jitter_within_slop_is_still_a_tap(self, vp):
        g = GestureController(vp, tap_slop_px=6)
        g.pointer_down(1, 100, 100)
        g.pointer_move(1, 103, 102)
        tap = g.pointer_up(1, 103, 102)
        assert tap is not None
        assert tap.mode == InteractionMode.PAN
        assert vp.offset == (0, 0)

    def test_toggle_mode(self, vp):
        g = GestureController(vp)
        assert g.mode == InteractionMode.PAN
        assert g.toggle_mode() == InteractionMode.PLACE
        assert g.toggle_mode() == InteractionMode.PAN


class TestDragAndPinch:
    def test_single_pointer_drag_pans(self, vp):
        g = GestureController(vp, tap_slop_px=6)
        g.pointer_down(1, 100, 100)
        g.pointer_move(1, 150, 100)
        g.pointer_move(1, 160, 90)
        assert g.pointer_up(1, 160, 90) is None
        assert vp.offset == (60, -10)

    def test_pinch_zooms_around_midpoint(self, vp):
        g = GestureController(vp)
        g.pointer_down(1, 300, 300)
        g.pointer_down(2, 500, 300)
        g.pointer_move(2, 700, 300)

        assert vp.zoom == pytest.approx(2.0)
        # zoom about (400, 300) then pan by the midpoint shift (+100, 0)
        assert vp.offset == pytest.approx((-300, -300))

        assert g.pointer_up(2, 700, 300) is None
        assert g.pointer_up(1, 300, 300) is None


class TestWheel:
    def test_plain_wheel_pans(self, vp):
        g = GestureController(vp)
        g.wheel(0, 30, 100, 100)
        assert vp.offset == (0, -30)

    def test_modifier_wheel_zooms_at_cursor(self, vp):
        g = GestureController(vp, wheel_zoom_step=1.1)
        before = vp.screen_to_normalized(200, 200)
        g.wheel(0, -1, 200, 200, modifier=True)
        assert vp.zoom == pytest.approx(1.1)
        assert vp.screen_to_normalized(200, 200) == pytest.approx(before)

    def test_modifier_wheel_out_stops_at_min_zoom(self, vp):
        g = GestureController(vp)
        g.wheel(0, 5, 200, 200, modifier=True)
        assert vp.zoom == 1.0
