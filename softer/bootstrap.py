"""Wire a device's Softer stack from configuration.

Example usage:

    from softer.bootstrap import bootstrap

    ctx = bootstrap()
    conversation = ctx.conversation(spec, on_departed=mark_departed)
    await conversation.send_message(me.id, me.nickname, "hello")
"""

import asyncio
import functools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from prometheus_client import start_http_server

from softer.config import get_settings
from softer.config.settings import Settings
from softer.conversation.coordinator import ConversationCoordinator, StreamingListener
from softer.conversation.store import MessageStore
from softer.conversation.stores import InMemoryMessageStore
from softer.observability.logging import get_logger, setup_logging
from softer.providers.lightward import CompletionService, LightwardClient
from softer.rooms.coordinator import RoomLifecycleCoordinator
from softer.rooms.models import PendingHumans, RoomSpec, RoomState, new_id, utc_now
from softer.sync.claim import AtomicClaim
from softer.sync.factory import create_record_store
from softer.sync.messages import RecordMessageStore
from softer.sync.records import RecordStore
from softer.sync.repository import RoomRepository
from softer.sync.syncer import RoomSyncer

logger = get_logger(__name__)


@dataclass
class SofterContext:
    """A device's stores, claimer and completion service."""

    settings: Settings
    device_id: str
    record_store: RecordStore
    message_store: MessageStore
    completion: CompletionService
    repository: RoomRepository = field(init=False)
    claim: AtomicClaim = field(init=False)
    syncer: RoomSyncer = field(init=False)

    def __post_init__(self) -> None:
        self.repository = RoomRepository(self.record_store, device_id=self.device_id)
        self.claim = AtomicClaim.from_config(self.record_store, self.settings.claims)
        self.syncer = RoomSyncer(self.record_store, message_store=self.message_store)

    async def run_sync(self) -> None:
        """Follow the change feed for rooms, and for messages when they are replicated."""
        tasks = [self.syncer.run()]
        if isinstance(self.message_store, RecordMessageStore):
            tasks.append(self.message_store.run())
        await asyncio.gather(*tasks)

    @property
    def authorization_window(self) -> timedelta:
        return timedelta(seconds=self.settings.payment.authorization_window_seconds)

    def conversation(
        self,
        spec: RoomSpec,
        *,
        on_streaming_text: StreamingListener | None = None,
        **kwargs: Any,
    ) -> ConversationCoordinator:
        """Build a ConversationCoordinator that claims and persists through the store."""
        if not self.settings.lightward.stream:
            on_streaming_text = None
        return ConversationCoordinator(
            spec,
            self.message_store,
            self.completion,
            device_id=self.device_id,
            claim_need=self.claim.claimer_for(spec.id, self.device_id),
            on_turn_change=functools.partial(self.repository.save_turn, spec),
            on_streaming_text=on_streaming_text,
            lightward_fallback_name=self.settings.lightward.nickname,
            **kwargs,
        )

    async def expire_if_due(
        self, coordinator: RoomLifecycleCoordinator, now: datetime | None = None
    ) -> RoomState:
        """Expire a room still waiting on humans once its authorization window closed."""
        now = now or utc_now()
        authorization = coordinator.authorization
        if not isinstance(coordinator.state, PendingHumans) or authorization is None:
            return coordinator.state

        deadline = min(authorization.expires_at, authorization.authorized_at + self.authorization_window)
        if now < deadline:
            return coordinator.state

        logger.info(
            "authorization_window_elapsed",
            room_id=coordinator.lifecycle.spec.id,
            authorization_id=authorization.id,
        )
        return await coordinator.expire()


def bootstrap(
    settings: Settings | None = None,
    *,
    completion: CompletionService | None = None,
    message_store: MessageStore | None = None,
    serve_metrics: bool = False,
) -> SofterContext:
    """Configure logging and build a SofterContext.

    Args:
        settings: Settings to use (default: get_settings())
        completion: Completion service (default: LightwardClient from config)
        message_store: Message store (default: replicated through the record
            store for the redis backend, in-memory otherwise)
        serve_metrics: Start the Prometheus HTTP endpoint when metrics are enabled
    """
    settings = settings or get_settings()
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_pii=log_config.redact_pii,
    )

    metrics = settings.observability.metrics
    if serve_metrics and metrics.enabled:
        start_http_server(metrics.port)
        logger.info("metrics_server_started", port=metrics.port)

    device_id = settings.device_id or new_id()
    record_store = create_record_store(settings.storage)
    if message_store is None:
        if settings.storage.backend == "redis":
            message_store = RecordMessageStore(record_store)
        else:
            message_store = InMemoryMessageStore()
    context = SofterContext(
        settings=settings,
        device_id=device_id,
        record_store=record_store,
        message_store=message_store,
        completion=completion or LightwardClient.from_config(settings.lightward),
    )
    logger.info(
        "softer_bootstrapped",
        device_id=device_id,
        backend=settings.storage.backend,
    )
    return context
