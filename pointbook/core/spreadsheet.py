# pointbook/core/spreadsheet.py
"""
Points table (xlsx) that ships inside every archive.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from pointbook.core.ordinals import export_order, ordinal_map
from pointbook.models import Project

logger = logging.getLogger(__name__)

SHEET_TITLE = "Points"

HEADERS = [
    "No.",
    "Title",
    "Date",
    "Time",
    "Note",
    "Author",
    "Document",
    "Page",
    "X",
    "Y",
    "Has photo",
]

COLUMN_WIDTHS = [6, 24, 12, 10, 40, 8, 28, 6, 10, 10, 10]


def point_rows(project: Project) -> List[List[Any]]:
    """
    One row per point, sorted by (document, page, id), in HEADERS order.
    """
    ordinals = ordinal_map(project.points)
    rows: List[List[Any]] = []
    for p in export_order(project.points):
        rows.append([
            ordinals.get(p.id, ""),
            p.title,
            p.date_iso,
            p.time_iso,
            p.note,
            p.author_initials,
            project.document_name(p.document_index),
            p.page,
            p.x,
            p.y,
            "YES" if p.has_photo else "NO",
        ])
    return rows


def build_points_workbook(project: Project) -> bytes:
    """Render the points table to xlsx bytes."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(HEADERS)
    header_fill = PatternFill("solid", fgColor="DDEBF7")
    for col_idx in range(1, len(HEADERS) + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = Font(bold=True)
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")

    rows = point_rows(project)
    for row in rows:
        ws.append(row)

    for col_idx, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width
    ws.freeze_panes = "A2"

    output = BytesIO()
    wb.save(output)
    logger.info(f"Built points sheet for '{project.name}': {len(rows)} rows")
    return output.getvalue()
