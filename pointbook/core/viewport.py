# pointbook/core/viewport.py
"""
Screen <-> page coordinate engine with pan and zoom.

Coordinates passed in as `client` are device pixels in the same space as
`origin` (the top-left of the viewport on screen). Everything else here is
viewport-local: offset is where the page's top-left sits inside the viewport.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

Vec = Tuple[float, float]


class Viewport:
    """Pan/zoom state for one fixed-size viewport overlaying a rendered page."""

    def __init__(
        self,
        viewport_width: float,
        viewport_height: float,
        *,
        min_zoom: float = 1.0,
        max_zoom: float = 4.0,
        min_visible_px: float = 40.0,
    ):
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError("viewport width/height must be > 0")
        if not (0 < min_zoom <= max_zoom):
            raise ValueError("zoom range must satisfy 0 < min_zoom <= max_zoom")

        self.viewport_width = float(viewport_width)
        self.viewport_height = float(viewport_height)
        self.min_zoom = float(min_zoom)
        self.max_zoom = float(max_zoom)
        self.min_visible_px = float(min_visible_px)

        # Page size in px at zoom 1; until a page is fitted it fills the viewport
        self.content_width = self.viewport_width
        self.content_height = self.viewport_height

        self.zoom: float = self.min_zoom
        self.offset_x: float = 0.0
        self.offset_y: float = 0.0

    # --------------------
    # Derived sizes
    # --------------------
    @property
    def offset(self) -> Vec:
        return (self.offset_x, self.offset_y)

    def page_size_px(self) -> Vec:
        """Size of the page on screen at the current zoom."""
        return (self.content_width * self.zoom, self.content_height * self.zoom)

    # --------------------
    # Transforms
    # --------------------
    def screen_to_page(
        self,
        client_x: float,
        client_y: float,
        origin: Vec = (0.0, 0.0),
    ) -> Vec:
        """Map a screen position to page coordinates; may fall outside 0..1."""
        w, h = self.page_size_px()
        return (
            ((client_x - origin[0]) - self.offset_x) / w,
            ((client_y - origin[1]) - self.offset_y) / h,
        )

    def screen_to_normalized(
        self,
        client_x: float,
        client_y: float,
        origin: Vec = (0.0, 0.0),
    ) -> Optional[Vec]:
        """
        Map a screen position to normalized page coordinates.
        Returns None when the position is not over the page.
        """
        nx, ny = self.screen_to_page(client_x, client_y, origin)
        if not (0.0 <= nx <= 1.0 and 0.0 <= ny <= 1.0):
            return None
        return (nx, ny)

    def normalized_to_screen(self, nx: float, ny: float, origin: Vec = (0.0, 0.0)) -> Vec:
        w, h = self.page_size_px()
        return (
            origin[0] + self.offset_x + nx * w,
            origin[1] + self.offset_y + ny * h,
        )

    # --------------------
    # Zoom / pan
    # --------------------
    def clamp_zoom(self, zoom: float) -> float:
        return min(self.max_zoom, max(self.min_zoom, float(zoom)))

    def zoom_at(self, cursor_x: float, cursor_y: float, new_zoom: float) -> float:
        """
        Change zoom keeping the page point under the (viewport-local) cursor
        fixed on screen. Returns the zoom actually applied.
        """
        old_zoom = self.zoom
        target = self.clamp_zoom(new_zoom)
        if target == old_zoom:
            return old_zoom

        ratio = target / old_zoom
        self.offset_x = cursor_x - (cursor_x - self.offset_x) * ratio
        self.offset_y = cursor_y - (cursor_y - self.offset_y) * ratio
        self.zoom = target
        self._clamp_offset()
        return target

    def zoom_by(self, factor: float, cursor_x: float, cursor_y: float) -> float:
        return self.zoom_at(cursor_x, cursor_y, self.zoom * factor)

    def pan(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy
        self._clamp_offset()

    def set_offset(self, offset_x: float, offset_y: float) -> None:
        self.offset_x = float(offset_x)
        self.offset_y = float(offset_y)
        self._clamp_offset()

    def _clamp_offset(self) -> None:
        # Keep at least min_visible_px of the scaled page inside the viewport
        w, h = self.page_size_px()
        self.offset_x = self._clamp_axis(self.offset_x, w, self.viewport_width)
        self.offset_y = self._clamp_axis(self.offset_y, h, self.viewport_height)

    def _clamp_axis(self, offset: float, content: float, viewport: float) -> float:
        keep = min(self.min_visible_px, content, viewport)
        lo = keep - content
        hi = viewport - keep
        return min(hi, max(lo, offset))

    # --------------------
    # Fit
    # --------------------
    def fit_to_container(self, page_width: float, page_height: float) -> float:
        """
        Size the page to fit the viewport (aspect ratio preserved), reset zoom
        and centre it. Returns the scale from page units to pixels.
        """
        if page_width <= 0 or page_height <= 0:
            raise ValueError("page_width/page_height must be > 0")

        scale = min(self.viewport_width / page_width, self.viewport_height / page_height)
        self.content_width = page_width * scale
        self.content_height = page_height * scale
        self.zoom = self.min_zoom
        w, h = self.page_size_px()
        self.offset_x = (self.viewport_width - w) / 2.0
        self.offset_y = (self.viewport_height - h) / 2.0
        logger.debug(
            f"Fitted page {page_width}x{page_height} into "
            f"{self.viewport_width}x{self.viewport_height} (scale={scale:.4f})"
        )
        return scale

    def resize(self, viewport_width: float, viewport_height: float, page_width: float, page_height: float) -> float:
        """Viewport changed size (e.g. device rotation); refit the page."""
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError("viewport width/height must be > 0")
        self.viewport_width = float(viewport_width)
        self.viewport_height = float(viewport_height)
        return self.fit_to_container(page_width, page_height)
