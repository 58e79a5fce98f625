"""Unit tests for bootstrap wiring."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from softer.bootstrap import bootstrap
from softer.config.settings import Settings, set_toml_config
from softer.providers.lightward.client import LightwardClient
from softer.providers.lightward.mock import MockCompletionService
from softer.rooms.coordinator import RoomLifecycleCoordinator
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import Active, DefunctReasonKind, PendingHumans
from softer.conversation.stores import InMemoryMessageStore
from softer.sync.codec import decode_room, room_key
from softer.sync.messages import RecordMessageStore
from softer.sync.stores import InMemoryRecordStore, RedisRecordStore
from tests.factories.rooms import FakeEvaluator, FakePaymentProcessor, FakeResolver, RoomSpecFactory


@pytest.fixture
def settings() -> Settings:
    set_toml_config({})
    return Settings(device_id="device-a", payment={"authorization_window_seconds": 3600})


async def waiting_room():
    payment = FakePaymentProcessor()
    coordinator = RoomLifecycleCoordinator(
        RoomSpecFactory.create(), FakeResolver(), payment, FakeEvaluator()
    )
    await coordinator.start()
    return coordinator, payment


class TestBootstrap:
    def test_builds_context_from_settings(self, settings) -> None:
        ctx = bootstrap(settings)

        assert ctx.device_id == "device-a"
        assert isinstance(ctx.record_store, InMemoryRecordStore)
        assert isinstance(ctx.completion, LightwardClient)
        assert ctx.authorization_window == timedelta(hours=1)
        assert isinstance(ctx.message_store, InMemoryMessageStore)

    def test_redis_backend_replicates_messages(self) -> None:
        set_toml_config({})
        settings = Settings(storage={"backend": "redis", "connection_url": "redis://cache:6379/0"})

        with patch("softer.sync.factory.Redis") as redis_cls:
            redis_cls.from_url = MagicMock()
            ctx = bootstrap(settings, completion=MockCompletionService())

        assert isinstance(ctx.record_store, RedisRecordStore)
        assert isinstance(ctx.message_store, RecordMessageStore)
        assert ctx.message_store._store is ctx.record_store

    def test_generates_device_id(self) -> None:
        ctx = bootstrap(Settings(), completion=MockCompletionService())
        assert ctx.device_id

    @pytest.mark.asyncio
    async def test_conversation_claims_and_persists_through_store(self, settings) -> None:
        completion = MockCompletionService(default_response="welcome")
        ctx = bootstrap(settings, completion=completion)
        spec = RoomSpecFactory.create(humans=("Ada", "Grace"), lightward_index=1)
        await ctx.repository.create(RoomLifecycle(spec=spec, state=Active()))
        conversation = ctx.conversation(spec)
        ada = spec.participants[0]

        await conversation.send_message(ada.id, ada.nickname, "hello")

        record = await ctx.record_store.read(room_key(spec.id))
        stored = decode_room(record.value)
        assert stored.turn_state.current_turn_index == 2
        assert stored.current_need is None
        assert len(completion.call_history) == 1

    @pytest.mark.asyncio
    async def test_streaming_disabled_by_config(self, settings) -> None:
        settings.lightward.stream = False
        ctx = bootstrap(settings, completion=MockCompletionService())
        spec = RoomSpecFactory.create()
        partials: list[str] = []

        conversation = ctx.conversation(spec, on_streaming_text=partials.append)

        assert conversation._on_streaming_text is None


class TestExpireIfDue:
    @pytest.fixture
    def ctx(self, settings):
        return bootstrap(settings, completion=MockCompletionService())

    @pytest.mark.asyncio
    async def test_not_due(self, ctx) -> None:
        coordinator, payment = await waiting_room()

        state = await ctx.expire_if_due(coordinator, datetime.now(UTC) + timedelta(minutes=30))

        assert isinstance(state, PendingHumans)
        assert payment.released == []

    @pytest.mark.asyncio
    async def test_due_after_window(self, ctx) -> None:
        coordinator, payment = await waiting_room()

        state = await ctx.expire_if_due(coordinator, datetime.now(UTC) + timedelta(hours=2))

        assert state.reason.kind == DefunctReasonKind.EXPIRED
        assert payment.released == ["auth-1"]
