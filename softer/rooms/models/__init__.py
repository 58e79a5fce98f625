"""Room domain models.

- ParticipantSpec / PaymentTier: roster entries and price
- RoomSpec: immutable room definition
- TurnState / Need: turn position and outstanding Lightward work
- RoomState: lifecycle state union with DefunctReason
"""

from softer.rooms.models.participant import (
    IdentifierKind,
    ParticipantIdentifier,
    ParticipantSpec,
    PaymentTier,
    new_id,
    utc_now,
)
from softer.rooms.models.spec import RoomSpec
from softer.rooms.models.state import (
    PRE_ACTIVE_KINDS,
    STATE_RANK,
    TERMINAL_KINDS,
    Active,
    Defunct,
    DefunctReason,
    DefunctReasonKind,
    Draft,
    Locked,
    PendingCapture,
    PendingHumans,
    PendingLightward,
    RoomState,
)
from softer.rooms.models.turn import Need, NeedType, TurnState

__all__ = [
    # Participants
    "IdentifierKind",
    "ParticipantIdentifier",
    "ParticipantSpec",
    "PaymentTier",
    "new_id",
    "utc_now",
    # Spec
    "RoomSpec",
    # Turns
    "Need",
    "NeedType",
    "TurnState",
    # State
    "Active",
    "Defunct",
    "DefunctReason",
    "DefunctReasonKind",
    "Draft",
    "Locked",
    "PendingCapture",
    "PendingHumans",
    "PendingLightward",
    "RoomState",
    "PRE_ACTIVE_KINDS",
    "STATE_RANK",
    "TERMINAL_KINDS",
]
