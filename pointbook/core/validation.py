"""
Validation utilities for Pointbook.
Ensures data integrity and provides clear error messages.
"""
import re
from typing import Iterable, Optional

from pointbook.core.errors import ConfirmationError, DuplicateNameError, ValidationError

# Characters that are not allowed in file names on common platforms
_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|]+')


def validate_normalized_point(x: float, y: float) -> None:
    """
    Validate that normalized coordinates are within the page.

    Raises:
        ValidationError: if x or y is outside [0, 1]
    """
    if not (0 <= x <= 1):
        raise ValidationError(f"x must be in range [0, 1], got {x}")
    if not (0 <= y <= 1):
        raise ValidationError(f"y must be in range [0, 1], got {y}")


def validate_new_name(name: Optional[str], existing: Iterable[str], what: str = "Project") -> str:
    """
    Validate a name for a new (or renamed) item and return it stripped.

    Rules:
    - must not be empty after stripping
    - must not collide with an existing name (exact match)

    Raises:
        ValidationError: empty name
        DuplicateNameError: name already taken
    """
    clean = (name or "").strip()
    if not clean:
        raise ValidationError(f"{what} name must not be empty")
    if clean in set(existing):
        raise DuplicateNameError(f"{what} named '{clean}' already exists")
    return clean


def require_typed_confirmation(expected: str, typed: Optional[str], confirmed: bool) -> None:
    """
    Guard for destructive operations: the user types the target's name
    and then answers yes to the final prompt.

    Raises:
        ConfirmationError: typed text differs from `expected`, or not confirmed
    """
    if typed != expected:
        raise ConfirmationError(f"Typed name does not match '{expected}', deletion cancelled")
    if not confirmed:
        raise ConfirmationError("Deletion was not confirmed")


def sanitize_filename(name: Optional[str], fallback: str = "file") -> str:
    """
    Replace characters that are unsafe in file names with '_'.
    Empty results fall back to `fallback`.
    """
    clean = _UNSAFE_FILENAME.sub("_", (name or "").strip())
    return clean or fallback
