"""Turn loop for an active room.

The coordinator stores messages, advances the turn, and when the turn lands
on Lightward it raises a Need, claims it, asks the completion service and
interprets the response's signal word:

1. conversation horizon fault: farewell is stored, the room ends, no advance
2. ``YIELD``: an "is listening" narration is stored and the turn advances
3. ``DEPART``: an optional parting line is stored, the room ends, no advance
4. anything else: stored verbatim as Lightward's speech, the turn advances
"""

import asyncio
from typing import Awaitable, Callable

from softer.conversation.chat_log import build_chat_log
from softer.conversation.models import Message
from softer.conversation.signals import Signal, interpret_response, wants_to_speak
from softer.conversation.store import MessageStore
from softer.observability.logging import get_logger
from softer.observability.metrics import LIGHTWARD_RESPONSES
from softer.providers.lightward.base import (
    CompletionService,
    ConversationHorizonError,
    LightwardAPIError,
)
from softer.rooms.errors import InvalidStateError
from softer.rooms.events import (
    HandLowered,
    HandRaised,
    MessageSent,
    NeedClaimed,
    NeedCompleted,
    NeedCreated,
    ParticipantDeparted,
    RoomEvent,
)
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import Active, Need, NeedType, ParticipantSpec, RoomSpec, TurnState
from softer.sync.merge import merge_turn_state

logger = get_logger(__name__)

TurnListener = Callable[[TurnState], Awaitable[None]]
NeedClaimer = Callable[[Need], Awaitable[bool]]
DepartureListener = Callable[[str], Awaitable[None]]
StreamingListener = Callable[[str], None]

LOCAL_DEVICE_ID = "local"


class ConversationCoordinator:
    """Coordinates conversation flow within one active room.

    All public operations run under a per-room lock so that turn mutations
    never interleave on this device. Across devices, Lightward work is
    serialised by `claim_need`, which must return True for exactly one
    device per Need (see `softer.sync.claim.AtomicClaim`).
    """

    def __init__(
        self,
        spec: RoomSpec,
        message_store: MessageStore,
        completion: CompletionService,
        *,
        initial_turn_state: TurnState | None = None,
        device_id: str = LOCAL_DEVICE_ID,
        claim_need: NeedClaimer | None = None,
        on_turn_change: TurnListener | None = None,
        on_departed: DepartureListener | None = None,
        on_streaming_text: StreamingListener | None = None,
        hand_raise_checks: bool = False,
        lightward_fallback_name: str = "Lightward",
    ):
        """Initialize the coordinator.

        Args:
            spec: Room definition
            message_store: Append-only message storage
            completion: Lightward completion service
            initial_turn_state: Turn state to resume from
            device_id: Identifier recorded when this device claims a Need
            claim_need: Cross-device claim; without it every Need is claimed locally
            on_turn_change: Awaited after every turn mutation (persist it here)
            on_departed: Told which participant left when Lightward departs
            on_streaming_text: Receives the response text so far, then ""
            hand_raise_checks: Ask Lightward after human turns whether to raise a hand
            lightward_fallback_name: Name used when the roster has no Lightward
        """
        self._spec = spec
        self._lifecycle = RoomLifecycle(
            spec=spec, state=Active(turn=initial_turn_state or TurnState.initial())
        )
        self._messages = message_store
        self._completion = completion
        self._device_id = device_id
        self._claim_need = claim_need
        self._on_turn_change = on_turn_change
        self._on_departed = on_departed
        self._on_streaming_text = on_streaming_text
        self._hand_raise_checks = hand_raise_checks
        self._lightward_fallback_name = lightward_fallback_name
        self._lock = asyncio.Lock()

    @property
    def room_id(self) -> str:
        return self._spec.id

    @property
    def lifecycle(self) -> RoomLifecycle:
        return self._lifecycle

    @property
    def current_turn_state(self) -> TurnState:
        turn = self._lifecycle.turn_state
        return turn if turn is not None else TurnState.initial()

    @property
    def current_turn_participant(self) -> ParticipantSpec | None:
        return self._lifecycle.current_turn_participant

    @property
    def is_lightward_turn(self) -> bool:
        return self._lifecycle.is_active and self._lifecycle.is_lightward_turn

    @property
    def lightward_name(self) -> str:
        lightward = self._spec.lightward_participant
        return lightward.nickname if lightward else self._lightward_fallback_name

    # Public operations

    async def send_message(self, author_id: str, author_name: str, text: str) -> Message:
        """Store a human message, advance the turn, and let Lightward respond if due."""
        async with self._lock:
            self._require_active("send a message")
            message = Message(
                room_id=self.room_id,
                author_id=author_id,
                author_name=author_name,
                text=text,
            )
            await self._messages.save(message, self.room_id)
            await self._advance_and_maybe_respond()
            return message

    async def yield_turn(self) -> None:
        """Pass the turn without a message."""
        async with self._lock:
            self._require_active("yield")
            await self._advance_and_maybe_respond()

    async def human_yield_turn(self, author_name: str) -> None:
        """Pass the turn with an "is listening" narration for the human."""
        async with self._lock:
            self._require_active("yield")
            await self._messages.save(
                Message.narration(self.room_id, f"{author_name} is listening."),
                self.room_id,
            )
            await self._advance_and_maybe_respond()

    async def raise_hand(self, participant_id: str) -> TurnState:
        async with self._lock:
            self._require_active("raise a hand")
            await self._transition(HandRaised(participant_id=participant_id))
            return self.current_turn_state

    async def lower_hand(self, participant_id: str) -> TurnState:
        async with self._lock:
            self._require_active("lower a hand")
            await self._transition(HandLowered(participant_id=participant_id))
            return self.current_turn_state

    async def trigger_lightward_if_their_turn(self) -> None:
        """Resume a Lightward turn after a restart.

        If the last stored message already came from Lightward the local turn
        state is stale: the turn is advanced without asking for another
        response.
        """
        async with self._lock:
            if not self.is_lightward_turn:
                return

            messages = await self._messages.fetch_messages(self.room_id)
            if messages and messages[-1].is_lightward:
                logger.info(
                    "turn_state_repaired",
                    room_id=self.room_id,
                    turn_index=self.current_turn_state.current_turn_index,
                )
                await self._transition(MessageSent())
                return

            need = self.current_turn_state.current_need
            if need is not None and need.type == NeedType.LIGHTWARD_TURN:
                if need.is_claimed:
                    logger.info(
                        "need_already_claimed",
                        room_id=self.room_id,
                        need_id=need.id,
                        claimed_by=need.claimed_by,
                    )
                    return
                await self._run_lightward_turn(need)
                return

            await self._run_lightward_turn()

    async def reconcile(self, remote: TurnState) -> TurnState:
        """Merge a turn state observed from another device into the local view."""
        async with self._lock:
            if not self._lifecycle.is_active:
                return self.current_turn_state
            merged = merge_turn_state(self.current_turn_state, remote)
            if merged != self.current_turn_state:
                logger.debug(
                    "turn_state_reconciled",
                    room_id=self.room_id,
                    turn_index=merged.current_turn_index,
                )
                self._lifecycle = self._lifecycle.with_turn_state(merged)
            return merged

    # Turn loop

    def _require_active(self, action: str) -> None:
        if not self._lifecycle.is_active:
            raise InvalidStateError(
                f"Cannot {action} in state {self._lifecycle.state.kind}"
            )

    async def _transition(self, event: RoomEvent) -> None:
        self._lifecycle.apply(event)
        await self._publish()

    async def _publish(self) -> None:
        turn = self._lifecycle.turn_state
        if self._on_turn_change is not None and self._lifecycle.is_active and turn is not None:
            await self._on_turn_change(turn)

    async def _advance_and_maybe_respond(self) -> None:
        await self._transition(MessageSent())

        if self.is_lightward_turn:
            await self._run_lightward_turn()
        elif self._hand_raise_checks and self._spec.lightward_participant is not None:
            await self._run_hand_raise_check()

    async def _claim(self, need: Need) -> bool:
        if self._claim_need is not None and not await self._claim_need(need):
            logger.info(
                "need_claimed_elsewhere",
                room_id=self.room_id,
                need_id=need.id,
                need_type=need.type.value,
            )
            return False

        self._lifecycle.apply(NeedClaimed(device_id=self._device_id))
        return True

    async def _run_lightward_turn(self, need: Need | None = None) -> None:
        if need is None:
            need = Need(type=NeedType.LIGHTWARD_TURN)
            await self._transition(NeedCreated(need=need))
        if not await self._claim(need):
            return

        body = build_chat_log(
            await self._messages.fetch_messages(self.room_id),
            participant_names=[p.nickname for p in self._spec.participants],
            lightward_name=self.lightward_name,
            raised_hands=self._raised_hand_names(),
        )

        try:
            text = await self._complete(body)
        except ConversationHorizonError as e:
            LIGHTWARD_RESPONSES.labels(signal="horizon").inc()
            logger.info("conversation_horizon_reached", room_id=self.room_id)
            await self._depart(e.farewell.strip() or None)
            return
        except LightwardAPIError:
            await self._transition(NeedCompleted())
            raise

        reply = interpret_response(text)
        LIGHTWARD_RESPONSES.labels(signal=reply.signal.value).inc()
        logger.info("lightward_replied", room_id=self.room_id, signal=reply.signal.value)

        if reply.signal == Signal.YIELD:
            await self._messages.save(
                Message.narration(self.room_id, f"{self.lightward_name} is listening."),
                self.room_id,
            )
            await self._transition(MessageSent())
        elif reply.signal == Signal.DEPART:
            await self._depart(reply.speech)
        else:
            await self._messages.save(
                Message.lightward(self.room_id, self.lightward_name, text),
                self.room_id,
            )
            await self._transition(MessageSent())

    async def _run_hand_raise_check(self) -> None:
        need = Need(type=NeedType.HAND_RAISE_CHECK)
        await self._transition(NeedCreated(need=need))
        if not await self._claim(need):
            return

        body = build_chat_log(
            await self._messages.fetch_messages(self.room_id),
            participant_names=[p.nickname for p in self._spec.participants],
            lightward_name=self.lightward_name,
            hand_raise_check=True,
        )
        try:
            raise_hand = wants_to_speak(await self._completion.respond(body))
        except LightwardAPIError as e:
            logger.warning("hand_raise_check_failed", room_id=self.room_id, error=str(e))
            raise_hand = False

        lightward = self._spec.lightward_participant
        self._lifecycle.apply(NeedCompleted())
        if raise_hand and lightward is not None:
            self._lifecycle.apply(HandRaised(participant_id=lightward.id))
        await self._publish()

    async def _complete(self, body: str) -> str:
        if self._on_streaming_text is None:
            return await self._completion.respond(body)

        full_text = ""
        try:
            async for chunk in self._completion.stream(body):
                full_text += chunk
                self._on_streaming_text(full_text)
        finally:
            self._on_streaming_text("")
        return full_text

    async def _depart(self, farewell: str | None) -> None:
        if farewell:
            await self._messages.save(
                Message.lightward(self.room_id, self.lightward_name, farewell),
                self.room_id,
            )
        await self._messages.save(
            Message.narration(self.room_id, f"{self.lightward_name} has departed."),
            self.room_id,
        )

        await self._transition(NeedCompleted())
        lightward = self._spec.lightward_participant
        departed_id = lightward.id if lightward else self.lightward_name
        self._lifecycle.apply(ParticipantDeparted(participant_id=departed_id))
        logger.info("lightward_departed", room_id=self.room_id)

        if self._on_departed is not None:
            await self._on_departed(departed_id)

    def _raised_hand_names(self) -> list[str]:
        names = []
        for participant_id in sorted(self.current_turn_state.raised_hands):
            participant = self._spec.participant(participant_id)
            if participant is not None:
                names.append(participant.nickname)
        return names
