# pointbook/core/archive_import.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import ValidationError as SchemaError

from pointbook.core.archive import MANIFEST, POINTS, Archive
from pointbook.core.errors import CapacityError, FormatError, ValidationError
from pointbook.core.photos import data_url_to_bytes
from pointbook.models import ArchiveManifest, Document, ManifestDocument, Point, Project

logger = logging.getLogger(__name__)

# Older exports listed drawings in their own manifest, paths relative to pdfs/
LEGACY_DOCUMENTS_MANIFEST = "pdfs/manifest.json"
LEGACY_DOCUMENTS_DIR = "pdfs/"


@dataclass
class ImportedArchive:
    """A parsed archive: the candidate project plus the view to restore."""

    project: Project
    active_document_index: int = 0
    page_number: int = 1


def _read_manifest(archive: Archive) -> ArchiveManifest:
    raw = archive.read_json(MANIFEST)
    if not isinstance(raw, dict):
        raise FormatError(f"{MANIFEST} must be a JSON object")
    try:
        return ArchiveManifest.model_validate(raw)
    except SchemaError as e:
        raise FormatError(f"{MANIFEST} is malformed: {e}") from e


def _manifest_documents(archive: Archive, manifest: ArchiveManifest) -> List[ManifestDocument]:
    if manifest.documents or LEGACY_DOCUMENTS_MANIFEST not in archive.entries:
        return manifest.documents

    raw = archive.read_json(LEGACY_DOCUMENTS_MANIFEST)
    if not isinstance(raw, list):
        raise FormatError(f"{LEGACY_DOCUMENTS_MANIFEST} must be a JSON array")
    try:
        entries = [ManifestDocument.model_validate(row) for row in raw]
    except SchemaError as e:
        raise FormatError(f"{LEGACY_DOCUMENTS_MANIFEST} is malformed: {e}") from e
    for entry in entries:
        if entry.file and not entry.file.startswith(LEGACY_DOCUMENTS_DIR):
            entry.file = LEGACY_DOCUMENTS_DIR + entry.file
    return entries


def _read_documents(archive: Archive, manifest: ArchiveManifest) -> List[Document]:
    entries = sorted(_manifest_documents(archive, manifest), key=lambda d: d.index)
    if [d.index for d in entries] != list(range(len(entries))):
        raise FormatError(f"{MANIFEST} document indexes must be 0..{len(entries) - 1}")

    documents: List[Document] = []
    for entry in entries:
        binary: Optional[bytes] = None
        if entry.file:
            if entry.file not in archive.entries:
                raise FormatError(f"Document binary '{entry.file}' listed in manifest is missing")
            binary = archive.entries[entry.file]
        doc = Document(name=entry.name or f"document-{entry.index + 1}", binary=binary, page_count=entry.page_count)
        if entry.id:
            doc.id = entry.id
        documents.append(doc)
    return documents


def _read_points(archive: Archive, documents: List[Document]) -> List[Point]:
    raw = archive.read_json(POINTS)
    if not isinstance(raw, list):
        raise FormatError(f"{POINTS} must be a JSON array")

    points: List[Point] = []
    seen = set()
    for i, row in enumerate(raw):
        try:
            p = Point.from_storage(row)
        except ValidationError as e:
            raise FormatError(f"{POINTS}[{i}]: {e}") from e
        if p.id in seen:
            raise FormatError(f"{POINTS}[{i}]: duplicate id {p.id}")
        if p.document_index >= len(documents):
            raise FormatError(f"{POINTS}[{i}]: unknown document index {p.document_index}")
        doc = documents[p.document_index]
        if p.page > doc.page_count:
            raise FormatError(
                f"{POINTS}[{i}]: page {p.page} is beyond the {doc.page_count} page(s) of '{doc.name}'"
            )
        if p.photo:
            # Export writes the payload out as a file, so it must decode
            try:
                data_url_to_bytes(p.photo)
            except ValueError as e:
                raise FormatError(f"{POINTS}[{i}]: photo is not a valid base64 data URL: {e}") from e
        seen.add(p.id)
        points.append(p)
    return points


def deserialize_archive(
    archive: Union[Archive, bytes],
    *,
    max_documents: Optional[int] = None,
) -> ImportedArchive:
    """
    Parse a whole archive into a candidate Project without touching any
    live state. Photo and drawing files are derived data and are ignored;
    photos come from points.json.

    Raises:
        FormatError: unreadable zip, missing/malformed manifest.json or
            points.json, missing document binary, dangling document index or
            page, undecodable photo payload
        CapacityError: more documents than `max_documents`
    """
    if isinstance(archive, (bytes, bytearray)):
        archive = Archive.from_bytes(bytes(archive))

    manifest = _read_manifest(archive)
    documents = _read_documents(archive, manifest)
    if max_documents is not None and len(documents) > max_documents:
        raise CapacityError(
            f"Archive holds {len(documents)} documents; at most {max_documents} are allowed per project"
        )
    points = _read_points(archive, documents)

    page_map = {k: v for k, v in manifest.page_map.items() if 0 <= k < len(documents)}
    seq_counter = manifest.seq_counter if manifest.seq_counter is not None else len(points)

    project = Project(
        name=manifest.project_name,
        documents=documents,
        points=points,
        seq_counter=seq_counter,
        page_map=page_map,
    )

    active = manifest.active_document_index if manifest.active_document_index < len(documents) else 0
    page = 1
    if documents:
        page = min(manifest.page_number, documents[active].page_count)

    logger.info(
        f"Deserialized '{project.name}': {len(documents)} document(s), {len(points)} point(s)"
    )
    return ImportedArchive(project=project, active_document_index=active, page_number=page)


def deserialize(archive: Union[Archive, bytes], *, max_documents: Optional[int] = None) -> Project:
    """deserialize_archive() without the view state."""
    return deserialize_archive(archive, max_documents=max_documents).project


async def deserialize_async(archive: Union[Archive, bytes], **kwargs) -> Project:
    return await asyncio.to_thread(deserialize, archive, **kwargs)
