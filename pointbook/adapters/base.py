"""
Persistence gateway interface for Pointbook.
Defines the contract that all key-value backends must implement.
"""

from typing import List, Optional, Protocol


class PersistenceGateway(Protocol):
    """
    Protocol for the durable key -> value cache of project state.

    Keys look like "<namespace>_<project name>"; values are JSON strings.
    This allows swapping between the JSON-file and SQLite backends
    without changing the session code.

    NOTE:
    - write() replaces the whole value or nothing; a failed write must leave
      the previous value readable.
    - Running out of room is reported with StorageQuotaError, never with a
      backend-specific exception.
    """

    def read(self, key: str) -> Optional[str]:
        """
        Return the stored value, or None if the key is absent.
        """
        ...

    def write(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            StorageQuotaError: the new value would exceed the quota
        """
        ...

    def remove(self, key: str) -> None:
        """
        Delete `key`. Missing keys are ignored.
        """
        ...

    def keys(self) -> List[str]:
        """
        All stored keys, sorted.
        """
        ...
