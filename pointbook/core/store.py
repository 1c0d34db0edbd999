# pointbook/core/store.py
"""
Annotation store: documents and points of one project plus their invariants.

Every mutating method builds the new state first and assigns it last, so a
rejected call leaves the project exactly as it was.
"""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from pointbook.core.errors import (
    CapacityError,
    PointNotFoundError,
    ProximityError,
    ValidationError,
)
from pointbook.models import Document, Point, Project

logger = logging.getLogger(__name__)

PagePx = Tuple[float, float]


class AnnotationStore:
    """
    Owns one Project. Not thread-safe; a single UI actor drives it.
    """

    def __init__(
        self,
        project: Project,
        *,
        proximity_threshold_px: float = 18.0,
        max_documents: int = 10,
    ):
        self.project = project
        self.proximity_threshold_px = float(proximity_threshold_px)
        self.max_documents = int(max_documents)
        # Never reuse an id, even after the newest point is deleted
        self._next_id = project.next_point_id()

    # ========== Read helpers ==========

    @property
    def documents(self) -> List[Document]:
        return self.project.documents

    @property
    def points(self) -> List[Point]:
        return self.project.points

    def get(self, point_id: int) -> Point:
        for p in self.project.points:
            if p.id == point_id:
                return p
        raise PointNotFoundError(f"Point {point_id} not found")

    def points_on(self, document_index: int, page: int) -> List[Point]:
        return [
            p for p in self.project.points
            if p.document_index == document_index and p.page == page
        ]

    def _require_page(self, document_index: int, page: int) -> Document:
        if not (0 <= document_index < len(self.project.documents)):
            raise ValidationError(f"Unknown document index {document_index}")
        doc = self.project.documents[document_index]
        if not (1 <= page <= max(1, doc.page_count)):
            raise ValidationError(
                f"Page {page} out of range for '{doc.name}' (1..{doc.page_count})"
            )
        return doc

    # ========== Documents ==========

    def add_document(self, name: str, binary: Optional[bytes], page_count: int = 1) -> int:
        """Append a document and return its index."""
        if len(self.project.documents) >= self.max_documents:
            raise CapacityError(
                f"Maximum number of documents ({self.max_documents}) reached for this project"
            )
        clean = (name or "").strip() or f"drawing-{len(self.project.documents) + 1}.pdf"
        doc = Document(name=clean, binary=binary, page_count=max(1, int(page_count)))
        self.project.documents = [*self.project.documents, doc]
        logger.info(f"Added document '{clean}' ({doc.page_count} pages) to '{self.project.name}'")
        return len(self.project.documents) - 1

    def rename_document(self, index: int, name: str) -> None:
        self._require_page(index, 1)
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Document name must not be empty")
        self.project.documents[index].name = clean

    def set_page_count(self, index: int, page_count: int) -> None:
        self._require_page(index, 1)
        if page_count < 1:
            raise ValidationError(f"page_count must be >= 1, got {page_count}")
        self.project.documents[index].page_count = int(page_count)

    def remove_document(self, index: int) -> List[Point]:
        """
        Delete document `index` together with its points. Points and page_map
        entries of later documents shift down by one. Returns removed points.
        """
        self._require_page(index, 1)

        removed = [p for p in self.project.points if p.document_index == index]
        kept: List[Point] = []
        for p in self.project.points:
            if p.document_index == index:
                continue
            if p.document_index > index:
                p = replace(p, document_index=p.document_index - 1)
            kept.append(p)

        page_map = {
            (k - 1 if k > index else k): v
            for k, v in self.project.page_map.items()
            if k != index
        }
        documents = [d for i, d in enumerate(self.project.documents) if i != index]

        name = self.project.documents[index].name
        self.project.documents = documents
        self.project.points = kept
        self.project.page_map = page_map
        logger.info(f"Removed document '{name}' and {len(removed)} point(s)")
        return removed

    # ========== Pages ==========

    def set_last_page(self, document_index: int, page: int) -> None:
        self._require_page(document_index, page)
        self.project.page_map = {**self.project.page_map, document_index: page}

    def last_page(self, document_index: int) -> int:
        return self.project.page_map.get(document_index, 1)

    # ========== Points ==========

    def _too_close(
        self,
        document_index: int,
        page: int,
        x: float,
        y: float,
        page_px: PagePx,
    ) -> Optional[Point]:
        w, h = page_px
        for p in self.points_on(document_index, page):
            if math.hypot((p.x - x) * w, (p.y - y) * h) < self.proximity_threshold_px:
                return p
        return None

    def place(
        self,
        document_index: int,
        page: int,
        x: float,
        y: float,
        fields: Optional[Dict[str, Any]] = None,
        *,
        page_size_px: PagePx,
    ) -> Point:
        """
        Create a point at normalized (x, y).

        `page_size_px` is the on-screen page size at the current zoom; the
        proximity check runs in that pixel space.

        Raises:
            ValidationError: unknown document/page or bad field
            ProximityError: another point on the page is too close
        """
        self._require_page(document_index, page)

        candidate = Point(
            id=self._next_id,
            document_index=document_index,
            page=page,
            x=x,
            y=y,
        ).merged(dict(fields or {}))

        clash = self._too_close(document_index, page, candidate.x, candidate.y, page_size_px)
        if clash is not None:
            raise ProximityError(
                f"Point is too close to existing point '{clash.title}'; pick a nearby position"
            )

        self.project.points = [*self.project.points, candidate]
        self.project.seq_counter += 1
        self._next_id = candidate.id + 1
        return candidate

    def update(self, point_id: int, **fields: Any) -> Point:
        """Merge `fields` into a point; x/y are clamped again."""
        current = self.get(point_id)
        updated = current.merged(fields)
        self.project.points = [updated if p.id == point_id else p for p in self.project.points]
        return updated

    def remove(self, point_id: int) -> Point:
        point = self.get(point_id)
        self.project.points = [p for p in self.project.points if p.id != point_id]
        return point

    def point_at(
        self,
        document_index: int,
        page: int,
        x: float,
        y: float,
        *,
        page_size_px: PagePx,
    ) -> Optional[Point]:
        """Nearest point within the threshold of (x, y), if any."""
        w, h = page_size_px
        best: Optional[Point] = None
        best_d = self.proximity_threshold_px
        for p in self.points_on(document_index, page):
            d = math.hypot((p.x - x) * w, (p.y - y) * h)
            if d <= best_d:
                best, best_d = p, d
        return best
