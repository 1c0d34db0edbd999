# pointbook/core/gestures.py
"""
Maps raw pointer / wheel input onto viewport operations.

Touch taps can't be told apart from the start of a pan, so placement is an
explicit mode: in PLACE mode a tap places a point, in PAN mode a tap only
inspects. Drags always pan, pinches always zoom.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .viewport import Viewport, Vec


class InteractionMode(str, Enum):
    PLACE = "place"
    PAN = "pan"


@dataclass
class Tap:
    x: float  # viewport-local
    y: float
    mode: InteractionMode


@dataclass
class _Pointer:
    start: Vec
    last: Vec
    moved: bool = False


def _dist(a: Vec, b: Vec) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def _mid(a: Vec, b: Vec) -> Vec:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


class GestureController:
    """
    Feed pointer events in viewport-local pixels. `pointer_up` returns a Tap
    when the pointer went down and up without moving past the slop radius.
    """

    def __init__(
        self,
        viewport: Viewport,
        *,
        tap_slop_px: float = 6.0,
        wheel_zoom_step: float = 1.1,
        mode: InteractionMode = InteractionMode.PAN,
    ):
        self.viewport = viewport
        self.tap_slop_px = tap_slop_px
        self.wheel_zoom_step = wheel_zoom_step
        self.mode = mode
        self._pointers: Dict[int, _Pointer] = {}
        # Set once a second finger lands; the gesture can no longer be a tap
        self._multi = False

    def toggle_mode(self) -> InteractionMode:
        self.mode = InteractionMode.PAN if self.mode == InteractionMode.PLACE else InteractionMode.PLACE
        return self.mode

    def pointer_down(self, pointer_id: int, x: float, y: float) -> None:
        self._pointers[pointer_id] = _Pointer(start=(x, y), last=(x, y))
        if len(self._pointers) > 1:
            self._multi = True

    def pointer_move(self, pointer_id: int, x: float, y: float) -> None:
        ptr = self._pointers.get(pointer_id)
        if ptr is None:
            return

        if len(self._pointers) == 2:
            self._pinch(pointer_id, (x, y))
            return

        if not ptr.moved and _dist(ptr.start, (x, y)) <= self.tap_slop_px:
            # still within the tap radius; don't pan yet
            ptr.last = (x, y)
            return

        if not ptr.moved:
            ptr.moved = True
            dx, dy = x - ptr.start[0], y - ptr.start[1]
        else:
            dx, dy = x - ptr.last[0], y - ptr.last[1]
        ptr.last = (x, y)
        if not self._multi:
            self.viewport.pan(dx, dy)

    def pointer_up(self, pointer_id: int, x: float, y: float) -> Optional[Tap]:
        ptr = self._pointers.pop(pointer_id, None)
        if ptr is None:
            return None

        tap: Optional[Tap] = None
        if not self._multi and not ptr.moved and _dist(ptr.start, (x, y)) <= self.tap_slop_px:
            tap = Tap(x=ptr.start[0], y=ptr.start[1], mode=self.mode)

        if not self._pointers:
            self._multi = False
        return tap

    def cancel(self) -> None:
        self._pointers.clear()
        self._multi = False

    def wheel(self, delta_x: float, delta_y: float, x: float, y: float, modifier: bool = False) -> None:
        """Plain wheel scrolls the page; with ctrl/cmd held it zooms at the cursor."""
        if modifier:
            if delta_y == 0:
                return
            factor = self.wheel_zoom_step if delta_y < 0 else 1.0 / self.wheel_zoom_step
            self.viewport.zoom_by(factor, x, y)
        else:
            self.viewport.pan(-delta_x, -delta_y)

    def _pinch(self, moving_id: int, pos: Vec) -> None:
        ids = list(self._pointers)
        other_id = ids[0] if ids[1] == moving_id else ids[1]
        moving = self._pointers[moving_id]
        other = self._pointers[other_id]

        old_mid: Tuple[float, float] = _mid(moving.last, other.last)
        old_dist = _dist(moving.last, other.last)
        new_mid = _mid(pos, other.last)
        new_dist = _dist(pos, other.last)

        moving.last = pos
        moving.moved = True

        if old_dist > 0 and new_dist > 0:
            self.viewport.zoom_by(new_dist / old_dist, old_mid[0], old_mid[1])
        self.viewport.pan(new_mid[0] - old_mid[0], new_mid[1] - old_mid[1])
