# pointbook/core/photos.py
from __future__ import annotations

import asyncio
import base64
import io
import logging
import re
from pathlib import Path
from typing import BinaryIO, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from pointbook.core.errors import PhotoReadError

logger = logging.getLogger(__name__)

PhotoSource = Union[str, Path, bytes, bytearray, BinaryIO]

_DATA_URL = re.compile(r"^data:(.+?);base64,")


def _read_source(source: PhotoSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        with open(source, "rb") as f:
            return f.read()
    return source.read()


def ingest_photo(source: PhotoSource, *, max_side: int = 1600, quality: int = 80) -> str:
    """
    Read a camera/gallery image, apply EXIF orientation, shrink it so the
    longer side is at most `max_side`, and re-encode as JPEG.

    Returns a `data:image/jpeg;base64,...` URL ready to store on a point.

    Raises:
        PhotoReadError: the file can't be read or isn't a decodable image
    """
    try:
        raw = _read_source(source)
    except OSError as e:
        logger.warning(f"Photo read failed: {e}")
        raise PhotoReadError(f"Could not read photo: {e}") from e

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img = ImageOps.exif_transpose(img)
            img = img.convert("RGB")
            img.thumbnail((max_side, max_side))
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Photo decode failed: {e}")
        raise PhotoReadError(f"Not a readable image: {e}") from e

    return "data:image/jpeg;base64," + base64.b64encode(out.getvalue()).decode("ascii")


async def ingest_photo_async(source: PhotoSource, *, max_side: int = 1600, quality: int = 80) -> str:
    """Same as ingest_photo, off the event loop."""
    return await asyncio.to_thread(ingest_photo, source, max_side=max_side, quality=quality)


def data_url_to_bytes(data_url: str) -> bytes:
    """
    Decode the base64 payload of a data: URL.

    Raises:
        ValueError: not a base64 data URL, or the payload is not valid base64
    """
    if not _DATA_URL.match(data_url or ""):
        raise ValueError("not a base64 data: URL")
    _, _, b64 = data_url.partition(",")
    # binascii.Error is a ValueError subclass
    return base64.b64decode(b64, validate=True)


def ext_from_data_url(data_url: str) -> str:
    """File extension for the data URL's mime type (default: jpg)."""
    m = _DATA_URL.match(data_url or "")
    if not m:
        return "jpg"
    mime = m.group(1).lower()
    if "png" in mime:
        return "png"
    if "webp" in mime:
        return "webp"
    if "gif" in mime:
        return "gif"
    return "jpg"
