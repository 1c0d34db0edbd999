from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .document import Document
from .point import Point, clamp_unit
from .project import Project


class ManifestDocument(BaseModel):
    """
    One entry of `documents` in manifest.json.
    """
    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(..., ge=0)
    id: Optional[str] = None
    name: str = ""
    page_count: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("pageCount", "numPages"),
        serialization_alias="pageCount",
    )
    # Path inside the archive; None when the binary was not available
    file: Optional[str] = None


class ManifestTotals(BaseModel):
    points: int = Field(default=0, ge=0)
    documents: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("documents", "pdfs"),
    )


class ArchiveManifest(BaseModel):
    """
    Schema of manifest.json. Older exports used rnName/pdfs; both are read.
    """
    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("projectName", "rnName"),
        serialization_alias="projectName",
    )
    exported_at: str = Field(
        default="",
        validation_alias=AliasChoices("exportedAt"),
        serialization_alias="exportedAt",
    )
    documents: List[ManifestDocument] = Field(
        default_factory=list,
        validation_alias=AliasChoices("documents", "pdfs"),
    )
    totals: ManifestTotals = Field(default_factory=ManifestTotals)
    seq_counter: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("seqCounter"),
        serialization_alias="seqCounter",
    )
    page_map: Dict[int, int] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("pageMap"),
        serialization_alias="pageMap",
    )
    # View restored on import
    active_document_index: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("activeDocumentIndex", "activePdfIdx"),
        serialization_alias="activeDocumentIndex",
    )
    page_number: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("pageNumber"),
        serialization_alias="pageNumber",
    )
    format: int = 1


class SnapshotDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    page_count: int = Field(default=1, ge=1, alias="pageCount")


class ProjectSnapshot(BaseModel):
    """
    Lightweight autosave payload: metadata and points, never drawing bytes.
    """
    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field(..., alias="projectName")
    documents: List[SnapshotDocument] = Field(default_factory=list)
    points: List[Dict[str, Any]] = Field(default_factory=list)
    seq_counter: int = Field(default=0, ge=0, alias="seqCounter")
    page_map: Dict[int, int] = Field(default_factory=dict, alias="pageMap")
    active_document_index: int = Field(default=0, ge=0, alias="activeDocumentIndex")
    page_number: int = Field(default=1, ge=1, alias="pageNumber")


__all__ = [
    "ArchiveManifest",
    "Document",
    "ManifestDocument",
    "ManifestTotals",
    "Point",
    "Project",
    "ProjectSnapshot",
    "SnapshotDocument",
    "clamp_unit",
]
