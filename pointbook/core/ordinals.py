# pointbook/core/ordinals.py
"""
Display numbering for points.

A point's number is its 1-based rank among the points on the same
(document, page), ordered by creation id. Nothing here is cached or stored:
call these on every read so deletions renumber page-mates automatically.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from pointbook.models import Point


def _page_key(p: Point) -> Tuple[int, int]:
    return (p.document_index, p.page)


def ordinal_of(point: Point, points: Iterable[Point]) -> Optional[int]:
    """
    Rank of `point` on its page, or None if it is not in `points`.
    """
    same_page = sorted(
        (p for p in points if _page_key(p) == _page_key(point)),
        key=lambda p: p.id,
    )
    for idx, p in enumerate(same_page):
        if p.id == point.id:
            return idx + 1
    return None


def ordinal_map(points: Iterable[Point]) -> Dict[int, int]:
    """point id -> ordinal, for every point in one pass."""
    by_page: Dict[Tuple[int, int], List[Point]] = defaultdict(list)
    for p in points:
        by_page[_page_key(p)].append(p)

    result: Dict[int, int] = {}
    for page_points in by_page.values():
        page_points.sort(key=lambda p: p.id)
        for idx, p in enumerate(page_points):
            result[p.id] = idx + 1
    return result


def export_order(points: Iterable[Point]) -> List[Point]:
    """Points sorted by (document, page, id), the order used for export rows."""
    return sorted(points, key=lambda p: (p.document_index, p.page, p.id))
