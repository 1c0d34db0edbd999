# pointbook/core/errors.py
"""
Error taxonomy for Pointbook.

Every failure raised by the store, the archive codec or the session derives
from PointbookError so callers can catch the whole family at once.
"""


class PointbookError(Exception):
    """Base class for all Pointbook errors."""


class ValidationError(PointbookError, ValueError):
    """Rejected input; the operation is aborted and nothing changes."""


class ProximityError(ValidationError):
    """A point already sits within the proximity threshold on that page."""


class DuplicateNameError(ValidationError):
    pass


class ConfirmationError(ValidationError):
    """Typed confirmation did not match, or the yes/no prompt was declined."""


class CapacityError(PointbookError):
    """A configured maximum was reached."""


class StorageQuotaError(CapacityError):
    """The persistence gateway has no room left for the value."""


class FormatError(PointbookError):
    """Archive is missing a required entry or an entry is malformed."""


class PhotoReadError(PointbookError, OSError):
    pass


class PointNotFoundError(PointbookError, LookupError):
    pass


class ExportCancelled(PointbookError):
    pass
