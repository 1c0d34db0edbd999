# pointbook/adapters/sqlite/__init__.py
from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    cast,
    create_engine,
    delete,
    event,
    func,
    select,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from pointbook.core.errors import StorageQuotaError

logger = logging.getLogger(__name__)

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)

def make_engine(db_url: str) -> Engine:
    # Create data dir if sqlite file
    if db_url.startswith("sqlite:///"):
        file_path = db_url.replace("sqlite:///", "", 1)
        _ensure_dir(file_path)

    engine = create_engine(db_url, future=True, pool_pre_ping=True)

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

kv = Table(
    "kv",
    metadata,
    Column("key", String, primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", DateTime, nullable=False, default=datetime.utcnow),
)


class SqliteAdapter:
    """
    Key-value gateway on a single SQLite table. Each write runs in one
    transaction, so a rejected or failed write keeps the previous value.
    """

    def __init__(self, db_url: str = "sqlite:///data/pointbook.db", quota_bytes: Optional[int] = None):
        self.engine = make_engine(db_url)
        self.quota_bytes = quota_bytes
        metadata.create_all(self.engine)

    def read(self, key: str) -> Optional[str]:
        with self.engine.begin() as conn:
            row = conn.execute(select(kv.c.value).where(kv.c.key == key)).first()
        return row.value if row else None

    def write(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        try:
            with self.engine.begin() as conn:
                if self.quota_bytes is not None:
                    # length() of a BLOB counts bytes, matching the UTF-8 size above
                    used = conn.execute(
                        select(
                            func.coalesce(func.sum(func.length(cast(kv.c.value, LargeBinary))), 0)
                        ).where(kv.c.key != key)
                    ).scalar_one()
                    if used + size > self.quota_bytes:
                        raise StorageQuotaError(
                            f"Storage quota exceeded writing '{key}': "
                            f"{used + size} > {self.quota_bytes} bytes"
                        )

                stmt = sqlite_insert(kv).values(key=key, value=value, updated_at=datetime.utcnow())
                stmt = stmt.on_conflict_do_update(
                    index_elements=[kv.c.key],
                    set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
                )
                conn.execute(stmt)
        except OperationalError as e:
            # SQLITE_FULL: "database or disk is full"
            if "full" not in str(e.orig).lower():
                raise
            logger.warning(f"Database full writing '{key}': {e.orig}")
            raise StorageQuotaError(f"No space left in database writing '{key}'") from e

    def remove(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(kv).where(kv.c.key == key))

    def keys(self) -> List[str]:
        with self.engine.begin() as conn:
            rows = conn.execute(select(kv.c.key).order_by(kv.c.key.asc())).all()
        return [r.key for r in rows]
