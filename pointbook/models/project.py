# pointbook/models/project.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .document import Document
from .point import Point


@dataclass
class Project:
    """
    A work order: ordered documents plus a flat list of points.

    `page_map` remembers the last viewed page per document index.
    `seq_counter` counts points ever placed and feeds default titles.
    """

    name: str
    documents: List[Document] = field(default_factory=list)
    points: List[Point] = field(default_factory=list)
    seq_counter: int = 0
    page_map: Dict[int, int] = field(default_factory=dict)

    def document_name(self, index: int) -> str:
        if 0 <= index < len(self.documents):
            return self.documents[index].name
        return ""

    def next_point_id(self) -> int:
        return max((p.id for p in self.points), default=0) + 1
