"""Turn state and the single outstanding Need of an active room."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from softer.rooms.models.participant import new_id, utc_now


class NeedType(str, Enum):
    """Kinds of Lightward-side work."""

    HAND_RAISE_CHECK = "hand_raise_check"  # lightweight check: should Lightward speak?
    LIGHTWARD_TURN = "lightward_turn"  # full response generation


class Need(BaseModel):
    """A unit of Lightward work that a device must claim before executing."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    type: NeedType
    claimed_by: str | None = Field(default=None, description="Device that claimed it")
    claimed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_claimed(self) -> bool:
        return self.claimed_by is not None

    def claimed(self, device_id: str, at: datetime) -> "Need":
        return self.model_copy(update={"claimed_by": device_id, "claimed_at": at})


class TurnState(BaseModel):
    """Turn position of an active room.

    `current_turn_index` only grows; whose turn it is comes from
    ``current_turn_index % participant_count``. Keeping the raw counter lets
    devices reconcile with a plain integer comparison.
    """

    model_config = ConfigDict(frozen=True)

    current_turn_index: int = Field(default=0, ge=0)
    raised_hands: frozenset[str] = Field(default_factory=frozenset)
    current_need: Need | None = None

    @classmethod
    def initial(cls) -> "TurnState":
        return cls()

    def advance_turn(self) -> "TurnState":
        """Move to the next speaker, clearing raised hands and the need."""
        return TurnState(
            current_turn_index=self.current_turn_index + 1,
            raised_hands=frozenset(),
            current_need=None,
        )

    def raise_hand(self, participant_id: str) -> "TurnState":
        return self.model_copy(update={"raised_hands": self.raised_hands | {participant_id}})

    def lower_hand(self, participant_id: str) -> "TurnState":
        return self.model_copy(update={"raised_hands": self.raised_hands - {participant_id}})

    def with_need(self, need: Need | None) -> "TurnState":
        return self.model_copy(update={"current_need": need})

    def speaker_index(self, participant_count: int) -> int:
        return self.current_turn_index % participant_count
