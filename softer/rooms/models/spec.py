"""Room specification: the immutable definition of a room."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from softer.rooms.models.participant import ParticipantSpec, PaymentTier, new_id, utc_now


class RoomSpec(BaseModel):
    """The complete specification for a room, as provided by the originator.

    Frozen once created; only the room state evolves afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Room identifier")
    originator_id: str = Field(..., description="Participant id of the creator")
    participants: tuple[ParticipantSpec, ...] = Field(
        ..., min_length=1, description="Ordered roster, turn order follows it"
    )
    tier: PaymentTier = Field(..., description="Payment tier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")

    @model_validator(mode="after")
    def _check_roster(self) -> "RoomSpec":
        ids = [p.id for p in self.participants]
        if len(set(ids)) != len(ids):
            raise ValueError("participant ids must be unique")
        if sum(1 for p in self.participants if p.is_lightward) > 1:
            raise ValueError("a room has at most one Lightward participant")
        return self

    @property
    def amount_cents(self) -> int:
        return self.tier.cents

    @property
    def human_participants(self) -> list[ParticipantSpec]:
        """All participants except Lightward, in roster order."""
        return [p for p in self.participants if not p.is_lightward]

    @property
    def human_ids(self) -> frozenset[str]:
        return frozenset(p.id for p in self.human_participants)

    @property
    def lightward_participant(self) -> ParticipantSpec | None:
        return next((p for p in self.participants if p.is_lightward), None)

    def participant(self, participant_id: str) -> ParticipantSpec | None:
        return next((p for p in self.participants if p.id == participant_id), None)

    def participant_at(self, turn_index: int) -> ParticipantSpec:
        """Participant whose turn it is for a (possibly large) turn index."""
        return self.participants[turn_index % len(self.participants)]

    def display_string(self, depth: int, last_speaker: str | None = None) -> str:
        """Room label, e.g. ``"Jax, Eve, Art (15, Eve)"``."""
        names = ", ".join(p.nickname for p in self.participants)
        if last_speaker:
            return f"{names} ({depth}, {last_speaker})"
        return f"{names} ({depth})"
