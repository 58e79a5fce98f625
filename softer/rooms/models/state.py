"""Room lifecycle state: a tagged union over the creation and active phases."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from softer.rooms.models.turn import TurnState


class DefunctReasonKind(str, Enum):
    """Why a room ended without (or after) becoming active."""

    RESOLUTION_FAILED = "resolution_failed"
    LIGHTWARD_DECLINED = "lightward_declined"
    PAYMENT_AUTHORIZATION_FAILED = "payment_authorization_failed"
    PAYMENT_CAPTURE_FAILED = "payment_capture_failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PARTICIPANT_DEPARTED = "participant_departed"


_DISPLAY_TEXT = {
    DefunctReasonKind.RESOLUTION_FAILED: "Couldn't find {participant}",
    DefunctReasonKind.LIGHTWARD_DECLINED: "Lightward declined",
    DefunctReasonKind.PAYMENT_AUTHORIZATION_FAILED: "Payment failed",
    DefunctReasonKind.PAYMENT_CAPTURE_FAILED: "Payment capture failed",
    DefunctReasonKind.CANCELLED: "Cancelled",
    DefunctReasonKind.EXPIRED: "Expired",
    DefunctReasonKind.PARTICIPANT_DEPARTED: "{participant} departed",
}


class DefunctReason(BaseModel):
    """Typed reason carried by a defunct room."""

    model_config = ConfigDict(frozen=True)

    kind: DefunctReasonKind
    participant_id: str | None = None

    @classmethod
    def resolution_failed(cls, participant_id: str) -> "DefunctReason":
        return cls(kind=DefunctReasonKind.RESOLUTION_FAILED, participant_id=participant_id)

    @classmethod
    def participant_departed(cls, participant_id: str) -> "DefunctReason":
        return cls(kind=DefunctReasonKind.PARTICIPANT_DEPARTED, participant_id=participant_id)

    def display_text(self, participant_name: str | None = None) -> str:
        """Stable user-facing description of the reason."""
        name = participant_name or self.participant_id or "a participant"
        return _DISPLAY_TEXT[self.kind].format(participant=name)


class Draft(BaseModel):
    """Spec created; participants not yet resolved and nothing paid."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["draft"] = "draft"


class PendingLightward(BaseModel):
    """Payment authorized; waiting for Lightward to accept or decline."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pending_lightward"] = "pending_lightward"


class PendingHumans(BaseModel):
    """Lightward accepted; waiting for every human to signal presence."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pending_humans"] = "pending_humans"
    signaled: frozenset[str] = Field(default_factory=frozenset)


class PendingCapture(BaseModel):
    """Everyone is here; capturing the authorized payment."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pending_capture"] = "pending_capture"


class Active(BaseModel):
    """The room is live and turns are being taken."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["active"] = "active"
    turn: TurnState = Field(default_factory=TurnState.initial)


class Locked(BaseModel):
    """The room reached its natural end; terminal."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["locked"] = "locked"
    cenotaph: str
    final_turn: TurnState


class Defunct(BaseModel):
    """Creation failed, was cancelled, or a participant departed; terminal."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["defunct"] = "defunct"
    reason: DefunctReason


RoomState = Annotated[
    Union[Draft, PendingLightward, PendingHumans, PendingCapture, Active, Locked, Defunct],
    Field(discriminator="kind"),
]

# Order in which states are reached; terminal states share the last rank.
STATE_RANK: dict[str, int] = {
    "draft": 0,
    "pending_lightward": 1,
    "pending_humans": 2,
    "pending_capture": 3,
    "active": 4,
    "locked": 5,
    "defunct": 5,
}

PRE_ACTIVE_KINDS = frozenset({"draft", "pending_lightward", "pending_humans", "pending_capture"})
TERMINAL_KINDS = frozenset({"locked", "defunct"})
