"""Events consumed by the room lifecycle and the effects it requests."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from softer.rooms.models import Need


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


# Creation flow


class ParticipantsResolved(_Event):
    kind: Literal["participants_resolved"] = "participants_resolved"


class ResolutionFailed(_Event):
    kind: Literal["resolution_failed"] = "resolution_failed"
    participant_id: str


class PaymentAuthorized(_Event):
    kind: Literal["payment_authorized"] = "payment_authorized"


class PaymentAuthorizationFailed(_Event):
    kind: Literal["payment_authorization_failed"] = "payment_authorization_failed"


class LightwardAccepted(_Event):
    kind: Literal["lightward_accepted"] = "lightward_accepted"


class LightwardDeclined(_Event):
    kind: Literal["lightward_declined"] = "lightward_declined"


class HumanSignaledHere(_Event):
    kind: Literal["human_signaled_here"] = "human_signaled_here"
    participant_id: str


class PaymentCaptured(_Event):
    kind: Literal["payment_captured"] = "payment_captured"


class PaymentCaptureFailed(_Event):
    kind: Literal["payment_capture_failed"] = "payment_capture_failed"


class Cancelled(_Event):
    kind: Literal["cancelled"] = "cancelled"


class Expired(_Event):
    kind: Literal["expired"] = "expired"


# Active room


class MessageSent(_Event):
    """The current speaker finished (spoke or yielded); the turn advances."""

    kind: Literal["message_sent"] = "message_sent"


class HandRaised(_Event):
    kind: Literal["hand_raised"] = "hand_raised"
    participant_id: str


class HandLowered(_Event):
    kind: Literal["hand_lowered"] = "hand_lowered"
    participant_id: str


class NeedCreated(_Event):
    kind: Literal["need_created"] = "need_created"
    need: Need


class NeedClaimed(_Event):
    kind: Literal["need_claimed"] = "need_claimed"
    device_id: str
    claimed_at: datetime | None = None


class NeedCompleted(_Event):
    kind: Literal["need_completed"] = "need_completed"


class ParticipantDeparted(_Event):
    kind: Literal["participant_departed"] = "participant_departed"
    participant_id: str


# End of room


class CenotaphWritten(_Event):
    kind: Literal["cenotaph_written"] = "cenotaph_written"
    text: str


RoomEvent = Annotated[
    Union[
        ParticipantsResolved,
        ResolutionFailed,
        PaymentAuthorized,
        PaymentAuthorizationFailed,
        LightwardAccepted,
        LightwardDeclined,
        HumanSignaledHere,
        PaymentCaptured,
        PaymentCaptureFailed,
        Cancelled,
        Expired,
        MessageSent,
        HandRaised,
        HandLowered,
        NeedCreated,
        NeedClaimed,
        NeedCompleted,
        ParticipantDeparted,
        CenotaphWritten,
    ],
    Field(discriminator="kind"),
]


class RoomEffect(str, Enum):
    """Side effects the lifecycle asks its coordinator to perform."""

    AUTHORIZE_PAYMENT = "authorize_payment"
    REQUEST_LIGHTWARD_PRESENCE = "request_lightward_presence"
    DISPATCH_INVITES = "dispatch_invites"
    CAPTURE_PAYMENT = "capture_payment"
    RELEASE_PAYMENT_AUTHORIZATION = "release_payment_authorization"
    ACTIVATE_ROOM = "activate_room"
