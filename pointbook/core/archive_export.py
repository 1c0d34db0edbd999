# pointbook/core/archive_export.py
from __future__ import annotations

import asyncio
import io
import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pointbook.core.archive import (
    DOCUMENTS_DIR,
    DRAWINGS_DIR,
    MANIFEST,
    PHOTOS_DIR,
    POINTS,
    SPREADSHEET,
    Archive,
    dump_json,
)
from pointbook.core.errors import ExportCancelled
from pointbook.core.ordinals import ordinal_map
from pointbook.core.photos import data_url_to_bytes, ext_from_data_url
from pointbook.core.rendering import DocumentRenderer, draw_markers
from pointbook.core.spreadsheet import build_points_workbook
from pointbook.core.validation import sanitize_filename
from pointbook.models import ArchiveManifest, ManifestDocument, ManifestTotals, Project

logger = logging.getLogger(__name__)

ARCHIVE_FORMAT = 1


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def file_stamp(iso: Optional[str] = None) -> str:
    """Timestamp safe for file names: 2024-05-01T10-11-12-123456+00-00."""
    return (iso or utc_now_iso()).replace(":", "-").replace(".", "-")


def _unique(name: str, taken: set) -> str:
    if name not in taken:
        return name
    stem, dot, ext = name.rpartition(".")
    if not dot:
        stem, ext = name, ""
    n = 2
    while True:
        candidate = f"{stem}-{n}.{ext}" if ext else f"{stem}-{n}"
        if candidate not in taken:
            return candidate
        n += 1


def _document_label(project: Project, index: int) -> str:
    return sanitize_filename(project.document_name(index), fallback=f"document-{index + 1}")


def _build_manifest(
    project: Project,
    exported_at: str,
    files: List[Optional[str]],
    active_document_index: int,
    page_number: int,
) -> Dict:
    manifest = ArchiveManifest(
        project_name=project.name,
        exported_at=exported_at,
        documents=[
            ManifestDocument(
                index=i,
                id=d.id,
                name=d.name,
                page_count=max(1, d.page_count),
                file=files[i],
            )
            for i, d in enumerate(project.documents)
        ],
        totals=ManifestTotals(points=len(project.points), documents=len(project.documents)),
        seq_counter=project.seq_counter,
        page_map=dict(sorted(project.page_map.items())),
        active_document_index=active_document_index,
        page_number=page_number,
        format=ARCHIVE_FORMAT,
    )
    return manifest.model_dump(by_alias=True)


def _add_drawings(
    archive: Archive,
    project: Project,
    renderer: DocumentRenderer,
    width_px: int,
    cancel: Optional[threading.Event],
    ordinals: Dict[int, int],
) -> None:
    by_page: Dict[Tuple[int, int], List[Tuple[int, float, float]]] = defaultdict(list)
    for p in project.points:
        by_page[(p.document_index, p.page)].append((ordinals[p.id], p.x, p.y))

    for i, doc in enumerate(project.documents):
        if not doc.binary:
            logger.warning(f"Skipping page snapshots for '{doc.name}': no binary cached")
            continue
        label = _document_label(project, i)
        for page in range(1, max(1, doc.page_count) + 1):
            if cancel is not None and cancel.is_set():
                raise ExportCancelled(f"Export of '{project.name}' cancelled")
            img = renderer.render_page(doc.binary, page, width_px)
            annotated = draw_markers(img, by_page.get((i, page), []))
            bio = io.BytesIO()
            annotated.save(bio, format="PNG")
            archive.add(f"{DRAWINGS_DIR}{label}-p{page}.png", bio.getvalue())


def serialize(
    project: Project,
    *,
    renderer: Optional[DocumentRenderer] = None,
    snapshot_width_px: int = 1600,
    cancel: Optional[threading.Event] = None,
    exported_at: Optional[str] = None,
    active_document_index: int = 0,
    page_number: int = 1,
) -> Archive:
    """
    Build the full archive for `project`.

    When `renderer` is given every page is rendered with its numbered markers
    into drawings/. `cancel` is checked before each page; if set, the partly
    built archive is dropped and ExportCancelled is raised.
    `active_document_index`/`page_number` record the view to restore on import.
    """
    exported_at = exported_at or utc_now_iso()
    archive = Archive()
    ordinals = ordinal_map(project.points)

    # 1) Drawing binaries, one unique sanitized name each
    files: List[Optional[str]] = []
    taken: set = set()
    binaries: List[Tuple[str, bytes]] = []
    for i, doc in enumerate(project.documents):
        if doc.binary is None:
            files.append(None)
            continue
        name = _unique(_document_label(project, i), taken)
        taken.add(name)
        files.append(DOCUMENTS_DIR + name)
        binaries.append((DOCUMENTS_DIR + name, doc.binary))

    # 2) Manifest + points (photos stay inline so import is self-contained)
    manifest = _build_manifest(project, exported_at, files, active_document_index, page_number)
    archive.add(MANIFEST, dump_json(manifest))
    archive.add(POINTS, dump_json([p.to_storage() for p in project.points]))
    for name, data in binaries:
        archive.add(name, data)

    # 3) Spreadsheet
    archive.add(SPREADSHEET, build_points_workbook(project))

    # 4) Photos as separate files
    photo_names: set = set()
    for p in project.points:
        if not p.photo:
            continue
        title = sanitize_filename(p.title, fallback="photo")
        doc_label = _document_label(project, p.document_index)
        ext = ext_from_data_url(p.photo)
        name = _unique(f"{ordinals[p.id]}_{title}_{doc_label}.{ext}", photo_names)
        photo_names.add(name)
        archive.add(PHOTOS_DIR + name, data_url_to_bytes(p.photo))

    # 5) Rendered pages with markers
    if renderer is not None:
        _add_drawings(archive, project, renderer, snapshot_width_px, cancel, ordinals)

    logger.info(
        f"Serialized '{project.name}': {len(project.documents)} document(s), "
        f"{len(project.points)} point(s), {len(photo_names)} photo(s)"
    )
    return archive


async def serialize_async(project: Project, **kwargs) -> Archive:
    """serialize() in a worker thread; pass `cancel` to abort between pages."""
    return await asyncio.to_thread(serialize, project, **kwargs)
