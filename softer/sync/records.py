"""Versioned record store contract.

The backing store is a replicated key/value store offering only eventual
consistency, per-record version tokens, conditional writes and an
at-least-once change feed. Replication itself is the store's business.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RecordNotFoundError(Exception):
    """No record exists under the requested key."""

    def __init__(self, key: str):
        super().__init__(f"Record not found: {key}")
        self.key = key


class RecordConflictError(Exception):
    """A conditional write lost: the record changed since it was read."""

    def __init__(self, key: str, expected_version: str | None):
        super().__init__(f"Record {key} changed since version {expected_version}")
        self.key = key
        self.expected_version = expected_version


class RecordStoreUnavailableError(Exception):
    """The backing store could not be reached; a later attempt may succeed."""

    def __init__(self, operation: str, key: str | None = None):
        message = f"Record store unavailable during {operation}"
        super().__init__(f"{message} of {key}" if key else message)
        self.operation = operation
        self.key = key


class VersionedRecord(BaseModel):
    """A record value with the version token it was read at."""

    model_config = ConfigDict(frozen=True)

    key: str
    record_type: str
    value: dict[str, Any]
    version: str


class ChangeType(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"


class ChangeNotification(BaseModel):
    """One entry of the change feed. May be delivered more than once."""

    model_config = ConfigDict(frozen=True)

    change: ChangeType
    record_type: str
    key: str
    payload: dict[str, Any] = Field(default_factory=dict)
    version: str | None = None


class RecordStore(ABC):
    """Abstract interface for the replicated record store."""

    @abstractmethod
    async def read(self, key: str) -> VersionedRecord:
        """Read a record and its current version token.

        Raises:
            RecordNotFoundError: if the key does not exist
        """
        pass

    @abstractmethod
    async def scan(self, prefix: str) -> list[VersionedRecord]:
        """Read every record whose key starts with `prefix`, in no particular order."""
        pass

    @abstractmethod
    async def conditional_write(
        self,
        key: str,
        record_type: str,
        value: dict[str, Any],
        expected_version: str | None,
    ) -> str:
        """Write only if the stored version still equals `expected_version`.

        `expected_version=None` means "create; the key must not exist".

        Returns:
            The new version token

        Raises:
            RecordConflictError: the record changed (or exists) since the read
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a record, returning whether it existed."""
        pass

    @abstractmethod
    def subscribe(self) -> AsyncIterator[ChangeNotification]:
        """Async iterator over change notifications from now on."""
        pass
