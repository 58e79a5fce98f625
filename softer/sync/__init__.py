"""Multi-device synchronisation.

- records: the versioned record store contract
- claim: compare-and-swap claim on a room's Need
- merge: reconciliation of local and remote observations
- repository / syncer: writing rooms and following the change feed
- messages: messages replicated as one record each
"""

from softer.sync.claim import AtomicClaim
from softer.sync.merge import (
    MergeStrategy,
    merge_messages,
    merge_room,
    merge_room_for_write,
    merge_turn_for_write,
    merge_turn_state,
)
from softer.sync.messages import RecordMessageStore
from softer.sync.records import (
    ChangeNotification,
    ChangeType,
    RecordConflictError,
    RecordNotFoundError,
    RecordStore,
    RecordStoreUnavailableError,
    VersionedRecord,
)
from softer.sync.repository import RoomRepository
from softer.sync.syncer import RoomSyncer

__all__ = [
    "AtomicClaim",
    "ChangeNotification",
    "ChangeType",
    "MergeStrategy",
    "RecordConflictError",
    "RecordMessageStore",
    "RecordNotFoundError",
    "RecordStore",
    "RecordStoreUnavailableError",
    "RoomRepository",
    "RoomSyncer",
    "VersionedRecord",
    "merge_messages",
    "merge_room",
    "merge_room_for_write",
    "merge_turn_for_write",
    "merge_turn_state",
]
