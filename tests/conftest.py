"""
Pytest configuration for Pointbook tests.

Adds the project root to sys.path so that `import pointbook` works from
within the tests/ directory without an installed package.
"""
import base64
import io
import os
import sys
from datetime import datetime

import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pointbook.adapters.json import JsonAdapter  # noqa: E402
from pointbook.core.store import AnnotationStore  # noqa: E402
from pointbook.models import Project  # noqa: E402
from pointbook.session import ProjectSession  # noqa: E402
from pointbook.settings import Settings  # noqa: E402


class FakeRenderer:
    """
    Stand-in for the PDF renderer. Document bytes look like b"PDF:<pages>".
    """

    def __init__(self):
        self.rendered = []

    def page_count(self, data: bytes) -> int:
        return int(data.split(b":", 1)[1])

    def page_size(self, data: bytes, page: int):
        return (600.0, 800.0)

    def render_page(self, data: bytes, page: int, width_px: int):
        self.rendered.append(page)
        return Image.new("RGB", (width_px, int(width_px * 4 / 3)), "white")


def fake_pdf(pages: int) -> bytes:
    return f"PDF:{pages}".encode("ascii")


def png_data_url(size=(8, 8), color="red") -> str:
    bio = io.BytesIO()
    Image.new("RGB", size, color).save(bio, format="PNG")
    return "data:image/png;base64," + base64.b64encode(bio.getvalue()).decode("ascii")


def jpeg_bytes(size=(64, 48), color="blue") -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", size, color).save(bio, format="JPEG")
    return bio.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path / "data"),
        db_url=f"sqlite:///{tmp_path / 'data' / 'pointbook.db'}",
        backup_dir=str(tmp_path / "backups"),
        export_dir=str(tmp_path / "exports"),
        export_page_snapshots=False,
    )


@pytest.fixture
def gateway(settings):
    return JsonAdapter(data_dir=settings.data_dir, quota_bytes=settings.storage_quota_bytes)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def session(gateway, settings, renderer):
    return ProjectSession(
        gateway,
        settings,
        renderer=renderer,
        viewport_size=(1000, 1000),
        clock=lambda: datetime(2024, 5, 1, 10, 11, 12),
    )


@pytest.fixture
def store():
    """Project "RN1" with one two-page document."""
    s = AnnotationStore(Project(name="RN1"), proximity_threshold_px=18.0, max_documents=10)
    s.add_document("plan.pdf", fake_pdf(2), page_count=2)
    return s


PAGE_PX = (1000.0, 1000.0)
