# pointbook/models/point.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from pointbook.core.errors import ValidationError


# Fields a caller may change through update(); id/document/page are fixed
EDITABLE_FIELDS = (
    "x",
    "y",
    "title",
    "date_iso",
    "time_iso",
    "note",
    "author_initials",
    "photo",
)


def clamp_unit(value: Any) -> float:
    """Clamp a coordinate into [0, 1]. NaN collapses to 0."""
    v = float(value)
    if v != v:
        return 0.0
    return min(1.0, max(0.0, v))


def _str_or_empty(val: Any) -> str:
    if val is None:
        return ""
    return str(val)


@dataclass
class Point:
    """
    Domain model for a single marker on one page of one document.

    `x`/`y` are NORMALIZED (0..1), origin top-left of the page.
    `page` is 1-based. `id` only orders points by creation and is
    never shown to the user; display numbers come from the ordinal resolver.
    """

    id: int
    document_index: int
    page: int
    x: float
    y: float
    title: str = ""
    date_iso: str = ""
    time_iso: str = ""
    note: str = ""
    author_initials: str = ""
    photo: Optional[str] = None  # data: URL

    def __post_init__(self) -> None:
        self.x = clamp_unit(self.x)
        self.y = clamp_unit(self.y)

    # --------------------
    # Validation
    # --------------------
    def validate(self) -> None:
        """
        Raises ValidationError if any invariant is broken.
        """
        if self.document_index < 0:
            raise ValidationError("document_index must be >= 0")

        if self.page < 1:
            raise ValidationError(f"page must be >= 1, got {self.page}")

        for field_name in ("x", "y"):
            v = getattr(self, field_name)
            if not (0.0 <= v <= 1.0):
                raise ValidationError(f"{field_name} must be in [0, 1], got {v}")

        if self.photo is not None and not str(self.photo).startswith("data:"):
            raise ValidationError("photo must be a data: URL")

    def merged(self, updates: Dict[str, Any]) -> "Point":
        """Return a copy with `updates` applied; coordinates re-clamped."""
        unknown = sorted(set(updates) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown point field(s): {', '.join(unknown)}")
        clean = {}
        for key, val in updates.items():
            if key in ("x", "y"):
                clean[key] = clamp_unit(val)
            elif key == "photo":
                clean[key] = val or None
            else:
                clean[key] = _str_or_empty(val)
        point = replace(self, **clean)
        point.validate()
        return point

    @property
    def has_photo(self) -> bool:
        return bool(self.photo)

    # --------------------
    # Conversions – storage / archive (camelCase records)
    # --------------------
    @classmethod
    def from_storage(cls, row: Dict[str, Any]) -> "Point":
        """
        Create from a stored record (autosave snapshot or points.json).
        Older archives used `pdfIdx` and `imageData`; both are accepted.
        """
        if not isinstance(row, dict):
            raise ValidationError("point record must be an object")
        if row.get("id") is None:
            raise ValidationError("point record has no id")

        doc_idx = row.get("documentIndex", row.get("pdfIdx", 0))
        photo = row.get("photo", row.get("imageData"))
        try:
            point = cls(
                id=int(row["id"]),
                document_index=int(doc_idx if doc_idx is not None else 0),
                page=int(row.get("page") or 1),
                x=row.get("x") or 0.0,
                y=row.get("y") or 0.0,
                title=_str_or_empty(row.get("title")),
                date_iso=_str_or_empty(row.get("dateISO")),
                time_iso=_str_or_empty(row.get("timeISO")),
                note=_str_or_empty(row.get("note")),
                author_initials=_str_or_empty(row.get("authorInitials")),
                photo=photo or None,
            )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed point record: {e}") from e
        point.validate()
        return point

    def to_storage(self) -> Dict[str, Any]:
        """
        Flat dict used by both the autosave snapshot and points.json.
        """
        self.validate()
        return {
            "id": self.id,
            "documentIndex": self.document_index,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "title": self.title,
            "dateISO": self.date_iso,
            "timeISO": self.time_iso,
            "note": self.note,
            "authorInitials": self.author_initials,
            "photo": self.photo,
        }
