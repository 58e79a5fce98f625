"""Error taxonomy for room creation and lifecycle sequencing.

Collaborator errors (`ResolutionError`, `PaymentError`) are caught by the
coordinator, recorded on the room as a defunct reason, and re-raised as the
matching `RoomLifecycleError` subclass.
"""

from enum import Enum

from softer.rooms.models import ParticipantSpec


class ResolutionErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    NOT_DISCOVERABLE = "not_discoverable"
    NETWORK_ERROR = "network_error"


class ResolutionError(Exception):
    """A single participant identifier could not be resolved."""

    def __init__(self, kind: ResolutionErrorKind, detail: str | None = None):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class ParticipantResolutionError(Exception):
    """Resolving a roster failed; identifies which participant and why."""

    def __init__(self, participant: ParticipantSpec, error: ResolutionError):
        super().__init__(f"Could not resolve participant {participant.id}: {error.kind.value}")
        self.participant = participant
        self.error = error


class PaymentErrorKind(str, Enum):
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    NETWORK_ERROR = "network_error"
    NOT_CONFIGURED = "not_configured"


class PaymentError(Exception):
    """Payment authorization or capture failed; terminal for the attempt."""

    def __init__(self, kind: PaymentErrorKind, detail: str | None = None):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class RoomLifecycleError(Exception):
    """Base exception for room lifecycle coordination."""

    pass


class ResolutionFailedError(RoomLifecycleError):
    """A participant could not be resolved; the room is defunct."""

    def __init__(self, participant_id: str, error: ResolutionError):
        super().__init__(f"Resolution failed for {participant_id}: {error.kind.value}")
        self.participant_id = participant_id
        self.error = error


class PaymentFailedError(RoomLifecycleError):
    """Authorization or capture failed; the room is defunct."""

    def __init__(self, error: PaymentError):
        super().__init__(f"Payment failed: {error.kind.value}")
        self.error = error


class LightwardDeclinedError(RoomLifecycleError):
    """Lightward declined to join; the room is defunct."""

    def __init__(self) -> None:
        super().__init__("Lightward declined to join the room")


class InvalidStateError(RoomLifecycleError):
    """An operation was invoked in a state that does not allow it."""

    pass
