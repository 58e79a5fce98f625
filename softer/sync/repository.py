"""Room records in the replicated store."""

from softer.observability.logging import get_logger
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import RoomSpec, TurnState
from softer.sync.codec import ROOM_RECORD_TYPE, decode_room, encode_room, room_key
from softer.sync.merge import merge_room_for_write, merge_turn_for_write
from softer.sync.records import RecordConflictError, RecordNotFoundError, RecordStore

logger = get_logger(__name__)


class RoomRepository:
    """Reads and writes room records, tracking the version last seen per room.

    A write that loses to a concurrent change is merged onto the fresh
    snapshot and retried once; a second loss is raised. Writes never replace
    a Need that another device claimed at the same turn index.
    """

    def __init__(self, store: RecordStore, device_id: str | None = None):
        self._store = store
        self._device_id = device_id
        self._versions: dict[str, str] = {}
        self._rooms: dict[str, RoomLifecycle] = {}

    async def load(self, room_id: str) -> RoomLifecycle | None:
        try:
            record = await self._store.read(room_key(room_id))
        except RecordNotFoundError:
            return None

        lifecycle = decode_room(record.value)
        if lifecycle is not None:
            self._versions[room_id] = record.version
            self._rooms[room_id] = lifecycle
        return lifecycle

    async def create(self, lifecycle: RoomLifecycle) -> RoomLifecycle:
        """Write a new room record.

        Raises:
            RecordConflictError: a record already exists for this room
        """
        room_id = lifecycle.spec.id
        version = await self._store.conditional_write(
            room_key(room_id), ROOM_RECORD_TYPE, encode_room(lifecycle), None
        )
        self._remember(lifecycle, version)
        logger.info("room_record_created", room_id=room_id, state=lifecycle.state.kind)
        return lifecycle

    async def save(self, lifecycle: RoomLifecycle) -> RoomLifecycle:
        """Write a room, merging once with the stored copy on conflict.

        Returns:
            The lifecycle as written

        Raises:
            RecordConflictError: the merged rewrite lost as well
        """
        room_id = lifecycle.spec.id
        key = room_key(room_id)
        try:
            version = await self._store.conditional_write(
                key, ROOM_RECORD_TYPE, encode_room(lifecycle), self._versions.get(room_id)
            )
        except RecordConflictError:
            logger.info("room_write_conflict", room_id=room_id)
            snapshot = await self.load(room_id)
            if snapshot is None:
                raise
            lifecycle = merge_room_for_write(snapshot, lifecycle, self._device_id)
            version = await self._store.conditional_write(
                key, ROOM_RECORD_TYPE, encode_room(lifecycle), self._versions[room_id]
            )

        self._remember(lifecycle, version)
        return lifecycle

    async def save_turn(self, spec: RoomSpec, turn: TurnState) -> RoomLifecycle:
        """Persist an active room's turn state.

        Matches ConversationCoordinator's `on_turn_change` once `spec` is bound.
        """
        current = self._rooms.get(spec.id)
        if current is None or not current.is_active:
            current = await self.load(spec.id)
        if current is None:
            raise RecordNotFoundError(room_key(spec.id))
        stored_turn = current.turn_state
        if stored_turn is not None:
            turn = merge_turn_for_write(stored_turn, turn, self._device_id)
        return await self.save(current.with_turn_state(turn))

    def _remember(self, lifecycle: RoomLifecycle, version: str) -> None:
        self._versions[lifecycle.spec.id] = version
        self._rooms[lifecycle.spec.id] = lifecycle
