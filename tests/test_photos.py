"""
Tests for photo ingestion.
"""
import asyncio
import io

import pytest
from PIL import Image

from conftest import jpeg_bytes, png_data_url
from pointbook.core.errors import PhotoReadError
from pointbook.core.photos import (
    data_url_to_bytes,
    ext_from_data_url,
    ingest_photo,
    ingest_photo_async,
)


def _decode(data_url):
    return Image.open(io.BytesIO(data_url_to_bytes(data_url)))


class TestIngestPhoto:
    def test_returns_jpeg_data_url(self):
        url = ingest_photo(jpeg_bytes())
        assert url.startswith("data:image/jpeg;base64,")
        assert _decode(url).format == "JPEG"

    def test_downscales_longer_side(self):
        url = ingest_photo(jpeg_bytes(size=(400, 200)), max_side=100)
        assert _decode(url).size == (100, 50)

    def test_small_image_keeps_size(self):
        assert _decode(ingest_photo(jpeg_bytes(size=(40, 30)))).size == (40, 30)

    def test_png_with_alpha_becomes_rgb(self):
        bio = io.BytesIO()
        Image.new("RGBA", (10, 10), (255, 0, 0, 128)).save(bio, format="PNG")
        assert _decode(ingest_photo(bio.getvalue())).mode == "RGB"

    def test_reads_from_path_and_stream(self, tmp_path):
        path = tmp_path / "shot.jpg"
        path.write_bytes(jpeg_bytes())
        assert ingest_photo(path).startswith("data:image/jpeg")
        assert ingest_photo(str(path)).startswith("data:image/jpeg")
        assert ingest_photo(io.BytesIO(jpeg_bytes())).startswith("data:image/jpeg")

    def test_not_an_image(self):
        with pytest.raises(PhotoReadError):
            ingest_photo(b"not an image")

    def test_missing_file(self, tmp_path):
        with pytest.raises(PhotoReadError):
            ingest_photo(tmp_path / "nope.jpg")

    def test_async(self):
        url = asyncio.run(ingest_photo_async(jpeg_bytes(), max_side=10))
        assert max(_decode(url).size) == 10


class TestDataUrls:
    def test_extension_from_mime(self):
        assert ext_from_data_url(png_data_url()) == "png"
        assert ext_from_data_url("data:image/webp;base64,AAAA") == "webp"
        assert ext_from_data_url("data:image/gif;base64,AAAA") == "gif"
        assert ext_from_data_url("data:image/jpeg;base64,AAAA") == "jpg"
        assert ext_from_data_url("garbage") == "jpg"

    def test_payload_decodes(self):
        assert _decode(png_data_url(size=(3, 2))).size == (3, 2)

    def test_payload_must_be_valid_base64(self):
        with pytest.raises(ValueError):
            data_url_to_bytes("data:image/png;base64,abc")
        with pytest.raises(ValueError):
            data_url_to_bytes("data:image/png;base64,@@@@")

    def test_requires_base64_data_url(self):
        with pytest.raises(ValueError):
            data_url_to_bytes("data:image/png,rawbytes")
        with pytest.raises(ValueError):
            data_url_to_bytes("")
