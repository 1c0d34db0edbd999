from __future__ import annotations

import json
from typing import Any, Dict, Tuple

from pydantic import ValidationError as SchemaError

from pointbook.core.errors import ValidationError

from . import Document, Point, Project, ProjectSnapshot


def project_to_snapshot(
    project: Project,
    active_document_index: int = 0,
    page_number: int = 1,
) -> str:
    """
    Serialize the autosave payload. Drawing binaries are left out on purpose
    so the cache stays within its storage quota.
    """
    payload: Dict[str, Any] = {
        "projectName": project.name,
        "documents": [d.to_metadata() for d in project.documents],
        "points": [p.to_storage() for p in project.points],
        "seqCounter": project.seq_counter,
        "pageMap": {str(k): v for k, v in project.page_map.items()},
        "activeDocumentIndex": max(0, active_document_index),
        "pageNumber": max(1, page_number),
    }
    return json.dumps(payload, ensure_ascii=False)


def project_from_snapshot(raw: str) -> Tuple[Project, int, int]:
    """
    Inverse of project_to_snapshot.
    Returns (project, active_document_index, page_number).
    """
    try:
        snap = ProjectSnapshot.model_validate_json(raw)
    except SchemaError as e:
        raise ValidationError(f"Malformed project snapshot: {e}") from e

    documents = [
        Document(id=d.id, name=d.name, page_count=d.page_count, binary=None)
        for d in snap.documents
    ]
    points = [Point.from_storage(row) for row in snap.points]
    project = Project(
        name=snap.project_name,
        documents=documents,
        points=points,
        seq_counter=snap.seq_counter,
        page_map=dict(snap.page_map),
    )
    active = snap.active_document_index if snap.active_document_index < len(documents) else 0
    return project, active, snap.page_number
