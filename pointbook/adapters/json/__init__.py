"""
JSON file storage adapter for Pointbook.
Simple file-based key-value store: one file per key under the data directory.
Not suitable for concurrent access (no locking); a single session owns it.
"""
import errno
import logging
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

from pointbook.core.errors import StorageQuotaError

logger = logging.getLogger(__name__)

_SUFFIX = ".json"

# Disk full / quota exhausted at the OS level
_NO_SPACE = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class JsonAdapter:
    """
    File-based key-value adapter.
    Uses atomic file operations (write temp file, then rename) for consistency.
    """

    def __init__(self, data_dir: str = "data", quota_bytes: Optional[int] = None):
        """
        Initialize the JSON adapter.

        Args:
            data_dir: Directory to store one file per key
            quota_bytes: Upper bound for the sum of all stored values; None = unlimited
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        # Project names may hold any character; percent-encode for the file system
        return self.data_dir / (quote(key, safe="") + _SUFFIX)

    def _used_bytes(self, exclude: Optional[Path] = None) -> int:
        total = 0
        for f in self.data_dir.glob("*" + _SUFFIX):
            if f != exclude:
                total += f.stat().st_size
        return total

    def read(self, key: str) -> Optional[str]:
        """Read a value; None if the key was never written."""
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def write(self, key: str, value: str) -> None:
        """Write a value atomically, refusing writes over the quota."""
        path = self._path(key)
        data = value.encode("utf-8")

        if self.quota_bytes is not None:
            used = self._used_bytes(exclude=path)
            if used + len(data) > self.quota_bytes:
                raise StorageQuotaError(
                    f"Storage quota exceeded writing '{key}': "
                    f"{used + len(data)} > {self.quota_bytes} bytes"
                )

        # Write to temporary file first
        tmp_file = path.with_suffix(".tmp")
        try:
            with open(tmp_file, "wb") as f:
                f.write(data)
        except OSError as e:
            tmp_file.unlink(missing_ok=True)
            if e.errno in _NO_SPACE:
                logger.warning(f"No space left writing '{key}': {e}")
                raise StorageQuotaError(f"No space left on device writing '{key}'") from e
            raise

        # Atomic rename
        tmp_file.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        return sorted(unquote(f.name[: -len(_SUFFIX)]) for f in self.data_dir.glob("*" + _SUFFIX))
