# pointbook/models/document.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import uuid4


def _gen_id() -> str:
    return f"d-{uuid4().hex[:10]}"


@dataclass
class Document:
    """
    One uploaded multi-page drawing.

    `binary` is None when the project was resumed from the autosave cache,
    which never holds drawing bytes.
    """

    name: str
    binary: Optional[bytes] = None
    page_count: int = 1
    id: str = field(default_factory=_gen_id)

    def to_metadata(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "pageCount": self.page_count}
