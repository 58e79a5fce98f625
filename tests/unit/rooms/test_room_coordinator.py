"""Unit tests for RoomLifecycleCoordinator."""

from unittest.mock import AsyncMock

import pytest

from softer.rooms.coordinator import RoomLifecycleCoordinator
from softer.rooms.errors import (
    InvalidStateError,
    LightwardDeclinedError,
    PaymentErrorKind,
    PaymentFailedError,
    ResolutionError,
    ResolutionErrorKind,
    ResolutionFailedError,
)
from softer.rooms.evaluator import LightwardDecision
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import (
    Active,
    Defunct,
    DefunctReasonKind,
    Draft,
    Locked,
    PendingHumans,
    PendingLightward,
    TurnState,
)
from tests.factories.rooms import (
    FakeEvaluator,
    FakePaymentProcessor,
    FakeResolver,
    RoomSpecFactory,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def spec():
    return RoomSpecFactory.create(humans=("Ada", "Grace"), lightward_index=1)


@pytest.fixture
def humans(spec):
    return [p.id for p in spec.human_participants]


@pytest.fixture
def payment():
    return FakePaymentProcessor()


@pytest.fixture
def evaluator():
    return FakeEvaluator()


@pytest.fixture
def make_coordinator(spec, payment, evaluator):
    def _make(**kwargs):
        kwargs.setdefault("resolver", FakeResolver())
        return RoomLifecycleCoordinator(
            spec,
            kwargs.pop("resolver"),
            payment,
            evaluator,
            **kwargs,
        )

    return _make


async def started(make_coordinator, **kwargs) -> RoomLifecycleCoordinator:
    coordinator = make_coordinator(**kwargs)
    await coordinator.start()
    return coordinator


# =============================================================================
# Tests: start()
# =============================================================================


class TestStart:
    @pytest.mark.asyncio
    async def test_reaches_pending_humans(self, make_coordinator, payment, evaluator) -> None:
        invites = AsyncMock()
        coordinator = make_coordinator(invite_dispatcher=invites)

        state = await coordinator.start()

        assert state == PendingHumans()
        assert payment.authorized == [100]
        assert evaluator.calls == 1
        assert coordinator.authorization is not None
        invites.assert_awaited_once()
        dispatched_spec, resolved = invites.await_args.args
        assert len(resolved) == 3
        assert len(coordinator.resolved_participants) == 3

    @pytest.mark.asyncio
    async def test_reports_every_state_change(self, make_coordinator) -> None:
        kinds = []

        async def on_change(lifecycle: RoomLifecycle) -> None:
            kinds.append(lifecycle.state.kind)

        await started(make_coordinator, on_state_change=on_change)

        assert kinds == ["draft", "pending_lightward", "pending_humans"]

    @pytest.mark.asyncio
    async def test_resolution_failure(self, make_coordinator, humans, payment) -> None:
        resolver = FakeResolver({humans[1]: ResolutionError(ResolutionErrorKind.NOT_DISCOVERABLE)})
        coordinator = make_coordinator(resolver=resolver)

        with pytest.raises(ResolutionFailedError) as exc_info:
            await coordinator.start()

        assert exc_info.value.participant_id == humans[1]
        assert exc_info.value.error.kind == ResolutionErrorKind.NOT_DISCOVERABLE
        assert coordinator.state.reason.kind == DefunctReasonKind.RESOLUTION_FAILED
        assert coordinator.state.reason.participant_id == humans[1]
        assert payment.authorized == []

    @pytest.mark.asyncio
    async def test_resolution_short_circuits(self, spec, make_coordinator, humans) -> None:
        resolver = FakeResolver({humans[0]: ResolutionError(ResolutionErrorKind.NOT_FOUND)})
        coordinator = make_coordinator(resolver=resolver)

        with pytest.raises(ResolutionFailedError):
            await coordinator.start()

        assert resolver.calls == [humans[0]]

    @pytest.mark.asyncio
    async def test_authorization_failure(self, spec, evaluator) -> None:
        payment = FakePaymentProcessor(authorize_error=PaymentErrorKind.DECLINED)
        coordinator = RoomLifecycleCoordinator(spec, FakeResolver(), payment, evaluator)

        with pytest.raises(PaymentFailedError) as exc_info:
            await coordinator.start()

        assert exc_info.value.error.kind == PaymentErrorKind.DECLINED
        assert coordinator.state.reason.kind == DefunctReasonKind.PAYMENT_AUTHORIZATION_FAILED
        assert evaluator.calls == 0

    @pytest.mark.asyncio
    async def test_lightward_declines(self, spec, payment) -> None:
        coordinator = RoomLifecycleCoordinator(
            spec, FakeResolver(), payment, FakeEvaluator(LightwardDecision.DECLINED)
        )

        with pytest.raises(LightwardDeclinedError):
            await coordinator.start()

        assert coordinator.state.reason.kind == DefunctReasonKind.LIGHTWARD_DECLINED
        assert payment.released == ["auth-1"]
        assert coordinator.authorization is None

    @pytest.mark.asyncio
    async def test_start_twice_is_invalid(self, make_coordinator) -> None:
        coordinator = await started(make_coordinator)

        with pytest.raises(InvalidStateError):
            await coordinator.start()


# =============================================================================
# Tests: signal_here()
# =============================================================================


class TestSignalHere:
    @pytest.mark.asyncio
    async def test_last_signal_captures_and_activates(
        self, make_coordinator, humans, payment
    ) -> None:
        activated = AsyncMock()
        coordinator = await started(make_coordinator, on_activated=activated)

        assert await coordinator.signal_here(humans[0]) == PendingHumans(
            signaled=frozenset({humans[0]})
        )
        assert payment.captured == []

        state = await coordinator.signal_here(humans[1])

        assert state == Active(turn=TurnState.initial())
        assert payment.captured == ["auth-1"]
        assert coordinator.authorization is None
        activated.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_capture_failure(self, spec, evaluator, humans) -> None:
        payment = FakePaymentProcessor(capture_error=PaymentErrorKind.EXPIRED)
        coordinator = RoomLifecycleCoordinator(spec, FakeResolver(), payment, evaluator)
        await coordinator.start()
        await coordinator.signal_here(humans[0])

        with pytest.raises(PaymentFailedError):
            await coordinator.signal_here(humans[1])

        assert coordinator.state.reason.kind == DefunctReasonKind.PAYMENT_CAPTURE_FAILED

    @pytest.mark.asyncio
    async def test_capture_without_authorization(self, spec, payment, evaluator, humans) -> None:
        coordinator = RoomLifecycleCoordinator(
            spec,
            FakeResolver(),
            payment,
            evaluator,
            lifecycle=RoomLifecycle(spec=spec, state=PendingHumans(signaled=frozenset({humans[0]}))),
        )

        with pytest.raises(PaymentFailedError) as exc_info:
            await coordinator.signal_here(humans[1])

        assert exc_info.value.error.kind == PaymentErrorKind.NOT_CONFIGURED
        assert isinstance(coordinator.state, Defunct)

    @pytest.mark.asyncio
    async def test_outside_pending_humans_is_invalid(self, make_coordinator, humans) -> None:
        coordinator = make_coordinator()

        with pytest.raises(InvalidStateError):
            await coordinator.signal_here(humans[0])

        assert isinstance(coordinator.state, Draft)

    @pytest.mark.asyncio
    async def test_lightward_cannot_signal(self, spec, make_coordinator) -> None:
        coordinator = await started(make_coordinator)

        with pytest.raises(InvalidStateError):
            await coordinator.signal_here(spec.lightward_participant.id)


# =============================================================================
# Tests: cancel() / expire()
# =============================================================================


class TestTermination:
    @pytest.mark.asyncio
    async def test_cancel_releases_authorization(self, make_coordinator, payment) -> None:
        coordinator = await started(make_coordinator)

        state = await coordinator.cancel()

        assert state.reason.kind == DefunctReasonKind.CANCELLED
        assert payment.released == ["auth-1"]
        assert coordinator.authorization is None

    @pytest.mark.asyncio
    async def test_release_happens_before_defunct(self, make_coordinator, payment) -> None:
        observed = []

        async def on_change(lifecycle: RoomLifecycle) -> None:
            observed.append((lifecycle.state.kind, list(payment.released)))

        coordinator = await started(make_coordinator, on_state_change=on_change)
        await coordinator.cancel()

        assert observed[-1] == ("defunct", ["auth-1"])

    @pytest.mark.asyncio
    async def test_cancel_draft_needs_no_release(self, make_coordinator, payment) -> None:
        coordinator = make_coordinator()

        state = await coordinator.cancel()

        assert state.reason.kind == DefunctReasonKind.CANCELLED
        assert payment.released == []

    @pytest.mark.asyncio
    async def test_expire(self, make_coordinator, payment) -> None:
        coordinator = await started(make_coordinator)

        state = await coordinator.expire()

        assert state.reason.kind == DefunctReasonKind.EXPIRED
        assert payment.released == ["auth-1"]

    @pytest.mark.asyncio
    async def test_expire_outside_pending_humans_is_no_op(self, spec, payment, evaluator) -> None:
        coordinator = RoomLifecycleCoordinator(
            spec,
            FakeResolver(),
            payment,
            evaluator,
            lifecycle=RoomLifecycle(spec=spec, state=PendingLightward()),
        )

        state = await coordinator.expire()

        assert state == PendingLightward()
        assert payment.released == []

    @pytest.mark.asyncio
    async def test_cancel_active_room_is_no_op(self, spec, payment, evaluator) -> None:
        coordinator = RoomLifecycleCoordinator(
            spec,
            FakeResolver(),
            payment,
            evaluator,
            lifecycle=RoomLifecycle(spec=spec, state=Active()),
        )

        assert await coordinator.cancel() == Active()


# =============================================================================
# Tests: active room
# =============================================================================


class TestActiveRoom:
    @pytest.mark.asyncio
    async def test_lock_writes_cenotaph(self, spec, payment, evaluator) -> None:
        turn = TurnState(current_turn_index=30)
        coordinator = RoomLifecycleCoordinator(
            spec,
            FakeResolver(),
            payment,
            evaluator,
            lifecycle=RoomLifecycle(spec=spec, state=Active(turn=turn)),
        )

        state = await coordinator.lock("we were here")

        assert state == Locked(cenotaph="we were here", final_turn=turn)

    @pytest.mark.asyncio
    async def test_lock_requires_active(self, make_coordinator) -> None:
        with pytest.raises(InvalidStateError):
            await make_coordinator().lock("too soon")

    @pytest.mark.asyncio
    async def test_mark_departed(self, spec, payment, evaluator) -> None:
        coordinator = RoomLifecycleCoordinator(
            spec,
            FakeResolver(),
            payment,
            evaluator,
            lifecycle=RoomLifecycle(spec=spec, state=Active()),
        )

        state = await coordinator.mark_departed(spec.lightward_participant.id)

        assert state.reason.kind == DefunctReasonKind.PARTICIPANT_DEPARTED
        assert state.reason.participant_id == spec.lightward_participant.id
