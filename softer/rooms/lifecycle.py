"""Room lifecycle state machine.

`transition` is a pure function over (spec, state, event) returning the next
state and the effects the caller must perform. `RoomLifecycle` holds one
room's state and applies events through it. Neither performs I/O; pairs that
are not in the transition table leave the state untouched and are logged.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from softer.observability.logging import get_logger
from softer.observability.metrics import ROOM_TRANSITIONS, ROOM_TRANSITIONS_REJECTED
from softer.rooms.events import (
    Cancelled,
    CenotaphWritten,
    Expired,
    HandLowered,
    HandRaised,
    HumanSignaledHere,
    LightwardAccepted,
    LightwardDeclined,
    MessageSent,
    NeedClaimed,
    NeedCompleted,
    NeedCreated,
    ParticipantDeparted,
    ParticipantsResolved,
    PaymentAuthorizationFailed,
    PaymentAuthorized,
    PaymentCaptured,
    PaymentCaptureFailed,
    ResolutionFailed,
    RoomEffect,
    RoomEvent,
)
from softer.rooms.models import (
    PRE_ACTIVE_KINDS,
    TERMINAL_KINDS,
    Active,
    Defunct,
    DefunctReason,
    DefunctReasonKind,
    Draft,
    Locked,
    Need,
    ParticipantSpec,
    PendingCapture,
    PendingHumans,
    PendingLightward,
    RoomSpec,
    RoomState,
    TurnState,
    utc_now,
)

logger = get_logger(__name__)

Transition = tuple[RoomState, list[RoomEffect]]


def _defunct(kind: DefunctReasonKind) -> Defunct:
    return Defunct(reason=DefunctReason(kind=kind))


def _creation_transition(spec: RoomSpec, state: RoomState, event: RoomEvent) -> Transition | None:
    if isinstance(state, Draft):
        if isinstance(event, ParticipantsResolved):
            return state, [RoomEffect.AUTHORIZE_PAYMENT]
        if isinstance(event, ResolutionFailed):
            return Defunct(reason=DefunctReason.resolution_failed(event.participant_id)), []
        if isinstance(event, PaymentAuthorized):
            return PendingLightward(), [RoomEffect.REQUEST_LIGHTWARD_PRESENCE]
        if isinstance(event, PaymentAuthorizationFailed):
            return _defunct(DefunctReasonKind.PAYMENT_AUTHORIZATION_FAILED), []
        if isinstance(event, Cancelled):
            # Nothing has been authorized while still in draft
            return _defunct(DefunctReasonKind.CANCELLED), []

    elif isinstance(state, PendingLightward):
        if isinstance(event, LightwardAccepted):
            return PendingHumans(), [RoomEffect.DISPATCH_INVITES]
        if isinstance(event, LightwardDeclined):
            return (
                _defunct(DefunctReasonKind.LIGHTWARD_DECLINED),
                [RoomEffect.RELEASE_PAYMENT_AUTHORIZATION],
            )
        if isinstance(event, Cancelled):
            return (
                _defunct(DefunctReasonKind.CANCELLED),
                [RoomEffect.RELEASE_PAYMENT_AUTHORIZATION],
            )

    elif isinstance(state, PendingHumans):
        if isinstance(event, HumanSignaledHere):
            signaled = state.signaled | {event.participant_id}
            if signaled == spec.human_ids:
                return PendingCapture(), [RoomEffect.CAPTURE_PAYMENT]
            return PendingHumans(signaled=signaled), []
        if isinstance(event, Expired):
            return (
                _defunct(DefunctReasonKind.EXPIRED),
                [RoomEffect.RELEASE_PAYMENT_AUTHORIZATION],
            )
        if isinstance(event, Cancelled):
            return (
                _defunct(DefunctReasonKind.CANCELLED),
                [RoomEffect.RELEASE_PAYMENT_AUTHORIZATION],
            )

    elif isinstance(state, PendingCapture):
        if isinstance(event, PaymentCaptured):
            return Active(turn=TurnState.initial()), [RoomEffect.ACTIVATE_ROOM]
        if isinstance(event, PaymentCaptureFailed):
            # Capture was attempted; there is no authorization left to release
            return _defunct(DefunctReasonKind.PAYMENT_CAPTURE_FAILED), []
        if isinstance(event, Cancelled):
            return (
                _defunct(DefunctReasonKind.CANCELLED),
                [RoomEffect.RELEASE_PAYMENT_AUTHORIZATION],
            )

    return None


def _active_transition(state: Active, event: RoomEvent, now: datetime) -> Transition | None:
    turn = state.turn

    if isinstance(event, MessageSent):
        return Active(turn=turn.advance_turn()), []
    if isinstance(event, HandRaised):
        return Active(turn=turn.raise_hand(event.participant_id)), []
    if isinstance(event, HandLowered):
        return Active(turn=turn.lower_hand(event.participant_id)), []
    if isinstance(event, NeedCreated):
        return Active(turn=turn.with_need(event.need)), []
    if isinstance(event, NeedClaimed):
        if turn.current_need is None:
            return None
        claimed = turn.current_need.claimed(event.device_id, event.claimed_at or now)
        return Active(turn=turn.with_need(claimed)), []
    if isinstance(event, NeedCompleted):
        return Active(turn=turn.with_need(None)), []
    if isinstance(event, CenotaphWritten):
        return Locked(cenotaph=event.text, final_turn=turn), []
    if isinstance(event, ParticipantDeparted):
        return Defunct(reason=DefunctReason.participant_departed(event.participant_id)), []

    return None


def transition(
    spec: RoomSpec,
    state: RoomState,
    event: RoomEvent,
    now: datetime | None = None,
) -> Transition | None:
    """Compute the next state and requested effects.

    Returns None when the (state, event) pair is not a legal transition.
    """
    if isinstance(state, Active):
        return _active_transition(state, event, now or utc_now())
    if state.kind in PRE_ACTIVE_KINDS:
        return _creation_transition(spec, state, event)
    # locked and defunct accept nothing
    return None


class RoomLifecycle(BaseModel):
    """A room's immutable spec together with its evolving state."""

    model_config = ConfigDict(validate_assignment=True)

    spec: RoomSpec
    state: RoomState = Field(default_factory=Draft)
    modified_at: datetime = Field(default_factory=utc_now)

    def apply(self, event: RoomEvent, now: datetime | None = None) -> list[RoomEffect]:
        """Apply an event and return the effects the caller should perform.

        Events the current state does not accept are ignored: state stays
        unchanged and no effects are returned.
        """
        result = transition(self.spec, self.state, event, now)
        if result is None:
            logger.warning(
                "room_transition_rejected",
                room_id=self.spec.id,
                state=self.state.kind,
                event_kind=event.kind,
            )
            ROOM_TRANSITIONS_REJECTED.labels(state=self.state.kind, event=event.kind).inc()
            return []

        next_state, effects = result
        logger.debug(
            "room_transition",
            room_id=self.spec.id,
            from_state=self.state.kind,
            event_kind=event.kind,
            to_state=next_state.kind,
            effects=[e.value for e in effects],
        )
        ROOM_TRANSITIONS.labels(
            from_state=self.state.kind, event=event.kind, to_state=next_state.kind
        ).inc()
        self.state = next_state
        self.modified_at = now or utc_now()
        return effects

    def accepts(self, event: RoomEvent) -> bool:
        """Whether `event` is a legal transition from the current state."""
        return transition(self.spec, self.state, event) is not None

    def with_turn_state(self, turn: TurnState) -> "RoomLifecycle":
        """Copy with a replaced turn state; only meaningful for active rooms."""
        if not isinstance(self.state, Active):
            return self
        return RoomLifecycle(spec=self.spec, state=Active(turn=turn), modified_at=utc_now())

    # State queries

    @property
    def is_active(self) -> bool:
        return isinstance(self.state, Active)

    @property
    def is_locked(self) -> bool:
        return isinstance(self.state, Locked)

    @property
    def is_defunct(self) -> bool:
        return isinstance(self.state, Defunct)

    @property
    def is_pending(self) -> bool:
        return self.state.kind in PRE_ACTIVE_KINDS

    @property
    def is_terminal(self) -> bool:
        return self.state.kind in TERMINAL_KINDS

    @property
    def signaled_participants(self) -> frozenset[str]:
        if isinstance(self.state, PendingHumans):
            return self.state.signaled
        return frozenset()

    @property
    def pending_participants(self) -> frozenset[str]:
        """Humans who have not yet signaled presence."""
        return self.spec.human_ids - self.signaled_participants

    # Turn queries

    @property
    def turn_state(self) -> TurnState | None:
        if isinstance(self.state, Active):
            return self.state.turn
        if isinstance(self.state, Locked):
            return self.state.final_turn
        return None

    @property
    def current_turn_participant(self) -> ParticipantSpec | None:
        turn = self.turn_state
        if turn is None:
            return None
        return self.spec.participant_at(turn.current_turn_index)

    @property
    def is_lightward_turn(self) -> bool:
        participant = self.current_turn_participant
        return participant is not None and participant.is_lightward

    @property
    def current_need(self) -> Need | None:
        turn = self.turn_state
        return turn.current_need if turn else None

    @property
    def raised_hands(self) -> frozenset[str]:
        turn = self.turn_state
        return turn.raised_hands if turn else frozenset()
