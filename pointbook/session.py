# pointbook/session.py
"""
Session controller: the single owner of all mutable Pointbook state.

Active project, active document, page, zoom/offset and interaction mode are
fields here rather than globals. Every command either succeeds or raises a
PointbookError; successful mutations are followed by an autosave of the
lightweight snapshot (no drawing binaries).
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

from pointbook.adapters import PersistenceGateway
from pointbook.core.archive import Archive
from pointbook.core.archive_export import file_stamp, serialize
from pointbook.core.archive_import import deserialize_archive
from pointbook.core.errors import (
    CapacityError,
    StorageQuotaError,
    ValidationError,
)
from pointbook.core.gestures import GestureController, InteractionMode, Tap
from pointbook.core.ordinals import ordinal_map, ordinal_of
from pointbook.core.photos import PhotoSource, ingest_photo
from pointbook.core.rendering import DocumentRenderer, PdfiumRenderer
from pointbook.core.store import AnnotationStore
from pointbook.core.validation import (
    require_typed_confirmation,
    validate_new_name,
    validate_normalized_point,
)
from pointbook.core.viewport import Viewport
from pointbook.models import Point, Project
from pointbook.models.converters import project_from_snapshot, project_to_snapshot
from pointbook.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Marker:
    """A point ready to draw: its display number and screen position."""
    point: Point
    ordinal: int
    screen_x: float
    screen_y: float


class ProjectSession:
    def __init__(
        self,
        gateway: PersistenceGateway,
        settings: Optional[Settings] = None,
        *,
        renderer: Optional[DocumentRenderer] = None,
        viewport_size: tuple = (1024.0, 768.0),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or get_settings()
        self.gateway = gateway
        self.renderer: DocumentRenderer = renderer or PdfiumRenderer()
        self.clock = clock

        self.viewport = Viewport(
            viewport_size[0],
            viewport_size[1],
            min_zoom=self.settings.min_zoom,
            max_zoom=self.settings.max_zoom,
            min_visible_px=self.settings.min_visible_px,
        )
        self.gestures = GestureController(
            self.viewport,
            tap_slop_px=self.settings.tap_slop_px,
            wheel_zoom_step=self.settings.wheel_zoom_step,
        )

        self.project_names: List[str] = self._load_project_names()
        self.store: Optional[AnnotationStore] = None
        self.active_document_index: int = 0
        self.page_number: int = 1
        self.staged_photo: Optional[str] = None
        self.persist_warning: str = ""
        self.user_initials: str = self.gateway.read(self.settings.user_initials_key) or ""

    # ========== Persistence ==========

    def _load_project_names(self) -> List[str]:
        raw = self.gateway.read(self.settings.project_index_key)
        if not raw:
            return []
        try:
            names = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Project list is corrupt, starting empty: {e}")
            return []
        return [str(n) for n in names] if isinstance(names, list) else []

    def _safe_persist(self, key: str, value: str) -> bool:
        """Write through the gateway; quota failures only raise a warning."""
        try:
            self.gateway.write(key, value)
        except StorageQuotaError as e:
            self.persist_warning = "Warning: not enough storage space to keep all data/photos."
            logger.warning(f"Autosave of '{key}' failed: {e}")
            return False
        self.persist_warning = ""
        return True

    def _save_project_names(self) -> None:
        self._safe_persist(self.settings.project_index_key, json.dumps(self.project_names, ensure_ascii=False))

    def autosave(self) -> bool:
        if self.store is None:
            return False
        snapshot = project_to_snapshot(self.project, self.active_document_index, self.page_number)
        return self._safe_persist(self.settings.project_key(self.project.name), snapshot)

    def set_user_initials(self, initials: str) -> None:
        self.user_initials = (initials or "").strip().upper()
        self._safe_persist(self.settings.user_initials_key, self.user_initials)

    # ========== Projects ==========

    @property
    def project(self) -> Project:
        return self._require_store().project

    @property
    def active_project(self) -> Optional[str]:
        return self.store.project.name if self.store else None

    def _require_store(self) -> AnnotationStore:
        if self.store is None:
            raise ValidationError("No active project")
        return self.store

    def _new_store(self, project: Project) -> AnnotationStore:
        return AnnotationStore(
            project,
            proximity_threshold_px=self.settings.proximity_threshold_px,
            max_documents=self.settings.max_documents,
        )

    def _activate(self, project: Project, active_document_index: int = 0, page_number: int = 1) -> None:
        self.store = self._new_store(project)
        self.active_document_index = active_document_index
        self.page_number = page_number
        self.staged_photo = None

    def create_project(self, name: str) -> Project:
        if len(self.project_names) >= self.settings.max_projects:
            raise CapacityError(f"Maximum number of projects ({self.settings.max_projects}) reached")
        clean = validate_new_name(name, self.project_names, what="Project")

        self.project_names = [*self.project_names, clean]
        self._save_project_names()
        self._activate(Project(name=clean))
        self.autosave()
        logger.info(f"Created project '{clean}'")
        return self.project

    def open_project(self, name: str) -> Project:
        if name not in self.project_names:
            raise ValidationError(f"Unknown project '{name}'")
        raw = self.gateway.read(self.settings.project_key(name))
        if not raw:
            self._activate(Project(name=name))
            return self.project

        project, active, page = project_from_snapshot(raw)
        project.name = name
        self._activate(project, active, page)
        logger.info(f"Opened project '{name}' ({len(project.points)} points)")
        return project

    def rename_project(self, new_name: str) -> None:
        store = self._require_store()
        old = store.project.name
        if (new_name or "").strip() == old:
            return
        clean = validate_new_name(new_name, self.project_names, what="Project")

        # Old key only goes once the snapshot exists under the new one
        store.project.name = clean
        if not self.autosave():
            store.project.name = old
            raise StorageQuotaError(f"Not enough storage to rename '{old}'")
        self.gateway.remove(self.settings.project_key(old))

        self.project_names = [clean if n == old else n for n in self.project_names]
        self._save_project_names()
        logger.info(f"Renamed project '{old}' -> '{clean}'")

    def delete_project(self, name: str, typed: Optional[str], confirmed: bool) -> None:
        if name not in self.project_names:
            raise ValidationError(f"Unknown project '{name}'")
        require_typed_confirmation(name, typed, confirmed)

        self.gateway.remove(self.settings.project_key(name))
        self.project_names = [n for n in self.project_names if n != name]
        self._save_project_names()
        if self.active_project == name:
            self.store = None
            self.active_document_index = 0
            self.page_number = 1
        logger.info(f"Deleted project '{name}'")

    # ========== Documents ==========

    def add_document(self, name: str, data: bytes) -> int:
        store = self._require_store()
        if len(store.documents) >= store.max_documents:
            raise CapacityError(
                f"Maximum number of documents ({store.max_documents}) reached for this project"
            )
        page_count = self.renderer.page_count(data)
        index = store.add_document(name, data, page_count)
        self.autosave()
        return index

    def rename_document(self, index: int, name: str) -> None:
        self._require_store().rename_document(index, name)
        self.autosave()

    def delete_document(self, index: int, typed: Optional[str], confirmed: bool) -> None:
        store = self._require_store()
        if not (0 <= index < len(store.documents)):
            raise ValidationError(f"Unknown document index {index}")
        require_typed_confirmation(store.documents[index].name, typed, confirmed)

        store.remove_document(index)
        if index < self.active_document_index or (
            index == self.active_document_index and self.active_document_index > 0
        ):
            self.active_document_index -= 1
        self.page_number = 1
        self.autosave()

    def set_active_document(self, index: int) -> None:
        store = self._require_store()
        if not (0 <= index < len(store.documents)):
            raise ValidationError(f"Unknown document index {index}")
        self.active_document_index = index
        self.page_number = min(store.last_page(index), store.documents[index].page_count)
        self.autosave()

    def set_page(self, page: int) -> None:
        store = self._require_store()
        store.set_last_page(self.active_document_index, page)
        self.page_number = page
        self.autosave()

    def fit_page(self) -> None:
        """Fit the active page into the viewport (load, page change, rotation)."""
        store = self._require_store()
        doc = store.documents[self.active_document_index]
        if doc.binary is None:
            raise ValidationError(f"'{doc.name}' has no cached drawing; import an archive to restore it")
        w, h = self.renderer.page_size(doc.binary, self.page_number)
        self.viewport.fit_to_container(w, h)

    # ========== Points ==========

    def _now_parts(self) -> tuple:
        now = self.clock()
        return now.strftime("%Y-%m-%d"), now.strftime("%H:%M:%S")

    def toggle_mode(self) -> InteractionMode:
        return self.gestures.toggle_mode()

    def place_at(self, local_x: float, local_y: float, **fields: Any) -> Point:
        """
        Place a point at a viewport-local screen position on the active page.

        Missing fields default to: title "T<n>", current date/time, the
        user's initials and the staged photo (consumed on success).
        """
        store = self._require_store()
        pos = self.viewport.screen_to_page(local_x, local_y)
        validate_normalized_point(*pos)

        date_iso, time_iso = self._now_parts()
        values = {
            "title": f"T{store.project.seq_counter + 1}",
            "date_iso": date_iso,
            "time_iso": time_iso,
            "author_initials": self.user_initials,
            "photo": self.staged_photo,
        }
        values.update({k: v for k, v in fields.items() if v is not None})

        point = store.place(
            self.active_document_index,
            self.page_number,
            pos[0],
            pos[1],
            values,
            page_size_px=self.viewport.page_size_px(),
        )
        self.staged_photo = None
        self.autosave()
        return point

    def point_at(self, local_x: float, local_y: float) -> Optional[Point]:
        store = self._require_store()
        pos = self.viewport.screen_to_normalized(local_x, local_y)
        if pos is None:
            return None
        return store.point_at(
            self.active_document_index,
            self.page_number,
            pos[0],
            pos[1],
            page_size_px=self.viewport.page_size_px(),
        )

    def handle_tap(self, tap: Tap, **fields: Any) -> Optional[Point]:
        """PLACE mode creates a point; PAN mode returns the point under the tap."""
        if tap.mode == InteractionMode.PLACE:
            return self.place_at(tap.x, tap.y, **fields)
        return self.point_at(tap.x, tap.y)

    def update_point(self, point_id: int, **fields: Any) -> Point:
        point = self._require_store().update(point_id, **fields)
        self.autosave()
        return point

    def delete_point(self, point_id: int, typed: Optional[str], confirmed: bool) -> None:
        store = self._require_store()
        require_typed_confirmation(store.get(point_id).title, typed, confirmed)
        store.remove(point_id)
        self.autosave()

    def ordinal_of(self, point_id: int) -> Optional[int]:
        store = self._require_store()
        return ordinal_of(store.get(point_id), store.points)

    def visible_markers(self) -> List[Marker]:
        """Points of the active page with their numbers and screen positions."""
        store = self._require_store()
        on_page = store.points_on(self.active_document_index, self.page_number)
        ordinals = ordinal_map(store.points)
        markers = []
        for p in sorted(on_page, key=lambda p: p.id):
            sx, sy = self.viewport.normalized_to_screen(p.x, p.y)
            markers.append(Marker(point=p, ordinal=ordinals[p.id], screen_x=sx, screen_y=sy))
        return markers

    # ========== Photos ==========

    def _ingest(self, source: PhotoSource) -> str:
        return ingest_photo(
            source,
            max_side=self.settings.photo_max_side,
            quality=self.settings.photo_jpeg_quality,
        )

    def stage_photo(self, source: PhotoSource) -> None:
        """Keep a photo for the next placed point and switch to PLACE mode."""
        self.staged_photo = self._ingest(source)
        self.gestures.mode = InteractionMode.PLACE

    def attach_photo(self, point_id: int, source: PhotoSource) -> Point:
        """Replace a point's photo. On PhotoReadError the point is untouched."""
        store = self._require_store()
        store.get(point_id)
        photo = self._ingest(source)
        return self.update_point(point_id, photo=photo)

    def remove_photo(self, point_id: int) -> Point:
        return self.update_point(point_id, photo=None)

    # ========== Archive ==========

    def export_archive(self, cancel: Optional[threading.Event] = None) -> Archive:
        renderer = self.renderer if self.settings.export_page_snapshots else None
        return serialize(
            self.project,
            renderer=renderer,
            snapshot_width_px=self.settings.snapshot_width_px,
            cancel=cancel,
            active_document_index=self.active_document_index,
            page_number=self.page_number,
        )

    def save_archive(self, directory: Optional[str] = None, cancel: Optional[threading.Event] = None) -> Path:
        archive = self.export_archive(cancel=cancel)
        target = Path(directory or self.settings.export_dir) / f"{self.project.name}-{file_stamp()}.zip"
        archive.save(target)
        logger.info(f"Exported '{self.project.name}' to {target}")
        return target

    def backup(self) -> Path:
        """Snapshot the current project into backup_dir before it gets replaced."""
        archive = serialize(
            self.project,
            active_document_index=self.active_document_index,
            page_number=self.page_number,
        )
        target = Path(self.settings.backup_dir) / f"BACKUP-{self.project.name}-{file_stamp()}.zip"
        archive.save(target)
        logger.info(f"Backup of '{self.project.name}' written to {target}")
        return target

    def import_archive(self, archive: Archive | bytes) -> Project:
        """
        Replace the active project's contents with an archive.

        The current state is backed up first; the archive is parsed fully
        before the swap, so a FormatError leaves everything as it was. The
        active project keeps its name. Without an active project, one is
        created under the archive's project name. The exported document and
        page become the active view again.

        Raises:
            FormatError: the archive is unreadable or malformed
            CapacityError: the archive holds more than max_documents documents
        """
        if self.store is not None:
            self.backup()

        imported = deserialize_archive(archive, max_documents=self.settings.max_documents)
        candidate = imported.project

        if self.store is None:
            created = self.create_project(candidate.name)
            candidate.name = created.name
        else:
            candidate.name = self.project.name

        self._activate(candidate, imported.active_document_index, imported.page_number)
        self.autosave()
        logger.info(
            f"Imported {len(candidate.points)} point(s) and "
            f"{len(candidate.documents)} document(s) into '{candidate.name}'"
        )
        return candidate

    async def export_archive_async(self, cancel: Optional[threading.Event] = None) -> Archive:
        return await asyncio.to_thread(self.export_archive, cancel)

    async def import_archive_async(self, archive: Archive | bytes) -> Project:
        # Parse off the loop first; the swap itself is quick
        if isinstance(archive, (bytes, bytearray)):
            archive = await asyncio.to_thread(Archive.from_bytes, bytes(archive))
        return self.import_archive(archive)

    async def stage_photo_async(self, source: PhotoSource) -> None:
        self.staged_photo = await asyncio.to_thread(self._ingest, source)
        self.gestures.mode = InteractionMode.PLACE


__all__ = ["Marker", "ProjectSession"]
