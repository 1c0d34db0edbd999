# pointbook/core/rendering.py
"""
Page rasterization collaborator.

The rest of the package only relies on the DocumentRenderer protocol; the
default implementation wraps python-pdfium2.
"""
from __future__ import annotations

import logging
from typing import List, Protocol, Tuple

import pypdfium2 as pdfium
from PIL import Image, ImageDraw, ImageFont

from pointbook.core.errors import ValidationError

logger = logging.getLogger(__name__)


class DocumentRenderer(Protocol):
    def page_count(self, data: bytes) -> int:
        ...

    def page_size(self, data: bytes, page: int) -> Tuple[float, float]:
        """Size of 1-based `page` in document units (PDF points)."""
        ...

    def render_page(self, data: bytes, page: int, width_px: int) -> Image.Image:
        ...


class PdfiumRenderer:
    """DocumentRenderer over pypdfium2."""

    def _open(self, data: bytes) -> pdfium.PdfDocument:
        try:
            return pdfium.PdfDocument(data)
        except pdfium.PdfiumError as e:
            raise ValidationError(f"Not a readable PDF: {e}") from e

    def page_count(self, data: bytes) -> int:
        doc = self._open(data)
        try:
            return len(doc)
        finally:
            doc.close()

    def page_size(self, data: bytes, page: int) -> Tuple[float, float]:
        doc = self._open(data)
        try:
            return tuple(doc[page - 1].get_size())  # type: ignore[return-value]
        finally:
            doc.close()

    def render_page(self, data: bytes, page: int, width_px: int) -> Image.Image:
        doc = self._open(data)
        try:
            pdf_page = doc[page - 1]
            width_pt, _ = pdf_page.get_size()
            # Rough DPI = 72 * scale
            scale = width_px / width_pt if width_pt else 1.0
            return pdf_page.render(scale=scale).to_pil().convert("RGB")
        finally:
            doc.close()


def _load_bold_font(size: int) -> ImageFont.ImageFont:
    # Try common DejaVu paths (Linux) and fall back to PIL's bitmap font
    candidates = [
        "DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    ]
    for p in candidates:
        try:
            return ImageFont.truetype(p, size=size)
        except OSError:
            continue
    return ImageFont.load_default()


def draw_markers(page_img: Image.Image, markers: List[Tuple[int, float, float]]) -> Image.Image:
    """
    Draw numbered balloons onto a rendered page.

    markers: (ordinal, x, y) with x/y normalized.
    """
    img = page_img.convert("RGB")
    draw = ImageDraw.Draw(img)
    W, H = img.size

    base = min(W, H)
    r = max(8, int(base * 0.012))
    stroke = max(2, int(base * 0.002))
    font = _load_bold_font(max(10, int(r * 1.2)))

    red = (200, 30, 30)
    white = (255, 255, 255)

    for ordinal, x, y in markers:
        cx, cy = int(x * W), int(y * H)
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=red, outline=white, width=stroke)
        label = str(ordinal)
        bbox = draw.textbbox((0, 0), label, font=font)
        tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
        draw.text((cx - tw / 2 - bbox[0], cy - th / 2 - bbox[1]), label, fill=white, font=font)

    return img
