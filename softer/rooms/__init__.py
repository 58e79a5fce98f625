"""Room lifecycle: creation workflow and active-room state machine."""

from softer.rooms.coordinator import RoomLifecycleCoordinator
from softer.rooms.errors import (
    InvalidStateError,
    LightwardDeclinedError,
    ParticipantResolutionError,
    PaymentError,
    PaymentErrorKind,
    PaymentFailedError,
    ResolutionError,
    ResolutionErrorKind,
    ResolutionFailedError,
    RoomLifecycleError,
)
from softer.rooms.evaluator import LightwardDecision, LightwardEvaluator
from softer.rooms.events import RoomEffect, RoomEvent
from softer.rooms.lifecycle import RoomLifecycle, transition
from softer.rooms.payment import PaymentAuthorization, PaymentProcessor
from softer.rooms.resolver import ParticipantResolver, ResolvedParticipant

__all__ = [
    "RoomLifecycle",
    "RoomLifecycleCoordinator",
    "RoomEffect",
    "RoomEvent",
    "transition",
    # Collaborators
    "LightwardDecision",
    "LightwardEvaluator",
    "ParticipantResolver",
    "PaymentAuthorization",
    "PaymentProcessor",
    "ResolvedParticipant",
    # Errors
    "InvalidStateError",
    "LightwardDeclinedError",
    "ParticipantResolutionError",
    "PaymentError",
    "PaymentErrorKind",
    "PaymentFailedError",
    "ResolutionError",
    "ResolutionErrorKind",
    "ResolutionFailedError",
    "RoomLifecycleError",
]
