"""Compare-and-swap claim on a room's outstanding Need.

The only cross-device serialisation point for Lightward work: a device may
run a Need only after its conditional write recording the claim wins.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from softer.config.models.claims import ClaimConfig
from softer.observability.logging import get_logger
from softer.observability.metrics import NEED_CLAIMS
from softer.rooms.events import NeedClaimed
from softer.rooms.models import Need, utc_now
from softer.sync.codec import ROOM_RECORD_TYPE, decode_room, encode_room, room_key
from softer.sync.records import RecordConflictError, RecordNotFoundError, RecordStore

logger = get_logger(__name__)


class AtomicClaim:
    """Claims Needs through conditional writes on the room record."""

    def __init__(
        self,
        store: RecordStore,
        *,
        stale_after: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the claimer.

        Args:
            store: Replicated record store holding room records
            stale_after: Claims older than this may be taken over; None disables
            clock: Source of claim timestamps
        """
        self._store = store
        self._stale_after = stale_after
        self._clock = clock

    @classmethod
    def from_config(cls, store: RecordStore, config: ClaimConfig) -> "AtomicClaim":
        stale_after = (
            timedelta(seconds=config.stale_after_seconds)
            if config.stale_after_seconds is not None
            else None
        )
        return cls(store, stale_after=stale_after)

    async def claim(self, room_id: str, need_id: str, device_id: str) -> bool:
        """Try to claim `need_id` for `device_id`.

        Returns:
            True iff this device's write recorded the claim. False when the
            need is gone, replaced, already claimed, or the write lost a race.

        Raises:
            Any store failure other than a lost conditional write.
        """
        key = room_key(room_id)
        try:
            record = await self._store.read(key)
        except RecordNotFoundError:
            return self._lost(room_id, need_id, device_id, "room_missing")

        lifecycle = decode_room(record.value)
        if lifecycle is None or not lifecycle.is_active:
            return self._lost(room_id, need_id, device_id, "room_inactive")

        need = lifecycle.current_need
        if need is None or need.id != need_id:
            return self._lost(room_id, need_id, device_id, "need_changed")

        now = self._clock()
        if need.is_claimed and not self._is_stale(need, now):
            return self._lost(room_id, need_id, device_id, "already_claimed")

        lifecycle.apply(NeedClaimed(device_id=device_id, claimed_at=now), now)
        try:
            await self._store.conditional_write(
                key, ROOM_RECORD_TYPE, encode_room(lifecycle), record.version
            )
        except RecordConflictError:
            return self._lost(room_id, need_id, device_id, "conflict")

        if need.is_claimed:
            logger.warning(
                "stale_claim_overridden",
                room_id=room_id,
                need_id=need_id,
                previous_claimant=need.claimed_by,
                device_id=device_id,
            )
        NEED_CLAIMS.labels(outcome="won").inc()
        logger.info("need_claimed", room_id=room_id, need_id=need_id, device_id=device_id)
        return True

    def claimer_for(self, room_id: str, device_id: str) -> Callable[[Need], Awaitable[bool]]:
        """Bind a room and device, for use as ConversationCoordinator's `claim_need`."""

        async def claim_need(need: Need) -> bool:
            return await self.claim(room_id, need.id, device_id)

        return claim_need

    def _is_stale(self, need: Need, now: datetime) -> bool:
        if self._stale_after is None or need.claimed_at is None:
            return False
        return now - need.claimed_at >= self._stale_after

    @staticmethod
    def _lost(room_id: str, need_id: str, device_id: str, outcome: str) -> bool:
        NEED_CLAIMS.labels(outcome=outcome).inc()
        logger.debug(
            "need_claim_lost",
            room_id=room_id,
            need_id=need_id,
            device_id=device_id,
            outcome=outcome,
        )
        return False
