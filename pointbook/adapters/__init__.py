"""
Persistence gateway backends.
"""
import logging
from typing import Optional

from pointbook.settings import Settings, get_settings

from .base import PersistenceGateway

logger = logging.getLogger(__name__)


def make_gateway(settings: Optional[Settings] = None) -> PersistenceGateway:
    """Build the gateway selected by `settings.storage_backend`."""
    settings = settings or get_settings()
    backend = settings.storage_backend.lower()
    logger.info(f"Storage backend: {backend.upper()}")

    if backend == "json":
        from .json import JsonAdapter

        return JsonAdapter(data_dir=settings.data_dir, quota_bytes=settings.storage_quota_bytes)

    if backend == "sqlite":
        from .sqlite import SqliteAdapter

        return SqliteAdapter(db_url=settings.db_url, quota_bytes=settings.storage_quota_bytes)

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


__all__ = ["PersistenceGateway", "make_gateway"]
