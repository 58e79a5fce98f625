"""Room creation coordinator.

Drives a RoomLifecycle through the creation workflow: it performs the
effects the lifecycle requests against the external collaborators and feeds
their outcomes back in as events. The coordinator also owns the payment
authorization held between authorization and capture.

Collaborator failures are applied to the lifecycle first (so the room records
a typed defunct reason) and then raised as the matching RoomLifecycleError.
Nothing is retried; a new attempt means a new room.
"""

import asyncio
from typing import Awaitable, Callable

from softer.observability.logging import get_logger
from softer.rooms.errors import (
    InvalidStateError,
    LightwardDeclinedError,
    ParticipantResolutionError,
    PaymentError,
    PaymentErrorKind,
    PaymentFailedError,
    ResolutionFailedError,
)
from softer.rooms.evaluator import LightwardDecision, LightwardEvaluator
from softer.rooms.events import (
    Cancelled,
    CenotaphWritten,
    Expired,
    HumanSignaledHere,
    LightwardAccepted,
    LightwardDeclined,
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
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import Active, Draft, PendingHumans, RoomSpec, RoomState
from softer.rooms.payment import PaymentAuthorization, PaymentProcessor
from softer.rooms.resolver import ParticipantResolver, ResolvedParticipant

logger = get_logger(__name__)

StateListener = Callable[[RoomLifecycle], Awaitable[None]]
InviteDispatcher = Callable[[RoomSpec, list[ResolvedParticipant]], Awaitable[None]]


class RoomLifecycleCoordinator:
    """Sequences room creation for one room.

    Every public operation runs under a per-room lock, so operations on the
    same coordinator execute one at a time in arrival order while other
    rooms proceed independently.
    """

    def __init__(
        self,
        spec: RoomSpec,
        resolver: ParticipantResolver,
        payment: PaymentProcessor,
        evaluator: LightwardEvaluator,
        *,
        lifecycle: RoomLifecycle | None = None,
        authorization: PaymentAuthorization | None = None,
        on_state_change: StateListener | None = None,
        invite_dispatcher: InviteDispatcher | None = None,
        on_activated: StateListener | None = None,
    ):
        """Initialize the coordinator.

        Args:
            spec: Room definition
            resolver: Participant identity resolver
            payment: Payment processor
            evaluator: Asks Lightward whether to join
            lifecycle: Existing lifecycle when resuming a room
            authorization: Authorization already held when resuming
            on_state_change: Called after every applied event
            invite_dispatcher: Sends invitations once Lightward accepts
            on_activated: Called once the room becomes active
        """
        self._lifecycle = lifecycle or RoomLifecycle(spec=spec)
        self._authorization = authorization
        self._resolved: list[ResolvedParticipant] = []
        self._resolver = resolver
        self._payment = payment
        self._evaluator = evaluator
        self._on_state_change = on_state_change
        self._invite_dispatcher = invite_dispatcher
        self._on_activated = on_activated
        self._lock = asyncio.Lock()

    @property
    def lifecycle(self) -> RoomLifecycle:
        return self._lifecycle

    @property
    def state(self) -> RoomState:
        return self._lifecycle.state

    @property
    def authorization(self) -> PaymentAuthorization | None:
        return self._authorization

    @property
    def resolved_participants(self) -> list[ResolvedParticipant]:
        return list(self._resolved)

    async def start(self) -> RoomState:
        """Resolve participants, authorize payment and ask Lightward.

        On success the room waits in pending_humans with nobody signaled.

        Raises:
            InvalidStateError: if the room is not in draft
            ResolutionFailedError: a participant could not be resolved
            PaymentFailedError: authorization failed
            LightwardDeclinedError: Lightward declined to join
        """
        async with self._lock:
            if not isinstance(self._lifecycle.state, Draft):
                raise InvalidStateError(
                    f"Cannot start room in state {self._lifecycle.state.kind}"
                )

            spec = self._lifecycle.spec
            logger.info(
                "room_creation_started",
                room_id=spec.id,
                participant_count=len(spec.participants),
                tier=spec.tier.value,
            )

            try:
                self._resolved = await self._resolver.resolve_all(list(spec.participants))
            except ParticipantResolutionError as e:
                logger.warning(
                    "participant_resolution_failed",
                    room_id=spec.id,
                    participant_id=e.participant.id,
                    reason=e.error.kind.value,
                )
                await self._apply(ResolutionFailed(participant_id=e.participant.id))
                raise ResolutionFailedError(e.participant.id, e.error) from e

            await self._apply(ParticipantsResolved())
            return self._lifecycle.state

    async def signal_here(self, participant_id: str) -> RoomState:
        """Record that a human participant is present.

        The last human to signal triggers payment capture and activation.

        Raises:
            InvalidStateError: outside pending_humans or for a non-human id
            PaymentFailedError: capture failed after the last signal
        """
        async with self._lock:
            state = self._lifecycle.state
            if not isinstance(state, PendingHumans):
                raise InvalidStateError(f"Cannot signal here in state {state.kind}")
            if participant_id not in self._lifecycle.spec.human_ids:
                raise InvalidStateError(
                    f"{participant_id} is not a human participant of this room"
                )

            await self._apply(HumanSignaledHere(participant_id=participant_id))
            return self._lifecycle.state

    async def cancel(self) -> RoomState:
        """Cancel a room that is not yet active.

        Any held authorization is released before the room becomes defunct.
        In any other state this is a logged no-op.
        """
        async with self._lock:
            await self._terminate(Cancelled())
            return self._lifecycle.state

    async def expire(self) -> RoomState:
        """Expire a room whose authorization window elapsed in pending_humans.

        The caller decides when the window has elapsed.
        """
        async with self._lock:
            await self._terminate(Expired())
            return self._lifecycle.state

    async def lock(self, cenotaph: str) -> RoomState:
        """Close an active room permanently with its cenotaph.

        Raises:
            InvalidStateError: if the room is not active
        """
        async with self._lock:
            self._require_active("lock")
            await self._apply(CenotaphWritten(text=cenotaph))
            return self._lifecycle.state

    async def mark_departed(self, participant_id: str) -> RoomState:
        """Mark an active room defunct because a participant left.

        Raises:
            InvalidStateError: if the room is not active
        """
        async with self._lock:
            self._require_active("mark departure")
            await self._apply(ParticipantDeparted(participant_id=participant_id))
            return self._lifecycle.state

    # Internals

    def _require_active(self, action: str) -> None:
        if not isinstance(self._lifecycle.state, Active):
            raise InvalidStateError(
                f"Cannot {action} in state {self._lifecycle.state.kind}"
            )

    async def _terminate(self, event: RoomEvent) -> None:
        if self._lifecycle.accepts(event):
            await self._release_authorization()
        await self._apply(event)

    async def _apply(self, event: RoomEvent) -> None:
        effects = self._lifecycle.apply(event)
        if self._on_state_change is not None:
            await self._on_state_change(self._lifecycle)
        for effect in effects:
            await self._perform(effect)

    async def _perform(self, effect: RoomEffect) -> None:
        if effect == RoomEffect.AUTHORIZE_PAYMENT:
            await self._authorize()
        elif effect == RoomEffect.REQUEST_LIGHTWARD_PRESENCE:
            await self._request_lightward()
        elif effect == RoomEffect.DISPATCH_INVITES:
            if self._invite_dispatcher is not None:
                await self._invite_dispatcher(self._lifecycle.spec, list(self._resolved))
        elif effect == RoomEffect.CAPTURE_PAYMENT:
            await self._capture()
        elif effect == RoomEffect.RELEASE_PAYMENT_AUTHORIZATION:
            await self._release_authorization()
        elif effect == RoomEffect.ACTIVATE_ROOM:
            logger.info("room_activated", room_id=self._lifecycle.spec.id)
            if self._on_activated is not None:
                await self._on_activated(self._lifecycle)

    async def _authorize(self) -> None:
        cents = self._lifecycle.spec.amount_cents
        try:
            authorization = await self._payment.authorize(cents)
        except PaymentError as e:
            logger.warning(
                "payment_authorization_failed",
                room_id=self._lifecycle.spec.id,
                reason=e.kind.value,
            )
            await self._apply(PaymentAuthorizationFailed())
            raise PaymentFailedError(e) from e

        self._authorization = authorization
        logger.info(
            "payment_authorized",
            room_id=self._lifecycle.spec.id,
            authorization_id=authorization.id,
            cents=authorization.cents,
        )
        await self._apply(PaymentAuthorized())

    async def _request_lightward(self) -> None:
        spec = self._lifecycle.spec
        decision = await self._evaluator.evaluate(list(spec.participants), spec.tier)
        logger.info("lightward_decision", room_id=spec.id, decision=decision.value)

        if decision == LightwardDecision.ACCEPTED:
            await self._apply(LightwardAccepted())
        else:
            await self._apply(LightwardDeclined())
            raise LightwardDeclinedError()

    async def _capture(self) -> None:
        authorization = self._authorization
        if authorization is None:
            await self._apply(PaymentCaptureFailed())
            raise PaymentFailedError(
                PaymentError(PaymentErrorKind.NOT_CONFIGURED, "No authorization to capture")
            )

        try:
            await self._payment.capture(authorization)
        except PaymentError as e:
            logger.warning(
                "payment_capture_failed",
                room_id=self._lifecycle.spec.id,
                authorization_id=authorization.id,
                reason=e.kind.value,
            )
            self._authorization = None
            await self._apply(PaymentCaptureFailed())
            raise PaymentFailedError(e) from e

        self._authorization = None
        await self._apply(PaymentCaptured())

    async def _release_authorization(self) -> None:
        authorization = self._authorization
        if authorization is None:
            return
        self._authorization = None
        await self._payment.release(authorization)
        logger.info(
            "payment_authorization_released",
            room_id=self._lifecycle.spec.id,
            authorization_id=authorization.id,
        )
