"""
Pointbook: dated, photographed markers on multi-page drawings, grouped into
work orders and exchanged as portable zip archives.
"""
from pointbook.core.errors import (
    CapacityError,
    FormatError,
    PhotoReadError,
    PointbookError,
    ProximityError,
    ValidationError,
)
from pointbook.session import ProjectSession

__version__ = "1.0.0"

__all__ = [
    "CapacityError",
    "FormatError",
    "PhotoReadError",
    "PointbookError",
    "ProjectSession",
    "ProximityError",
    "ValidationError",
]
