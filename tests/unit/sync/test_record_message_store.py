"""Unit tests for RecordMessageStore."""

import asyncio
import contextlib
from datetime import UTC, datetime, timedelta

import pytest

from softer.conversation.models import Message
from softer.sync.codec import (
    MESSAGE_RECORD_TYPE,
    ROOM_RECORD_TYPE,
    encode_message,
    message_key,
    room_key,
)
from softer.sync.messages import RecordMessageStore
from softer.sync.records import ChangeNotification, ChangeType
from softer.sync.stores import InMemoryRecordStore

T0 = datetime(2026, 2, 1, tzinfo=UTC)


def msg(text: str, offset: int = 0, room_id: str = "room-1", id: str | None = None) -> Message:
    kwargs = {"id": id} if id else {}
    return Message(
        room_id=room_id,
        author_id="ada",
        author_name="Ada",
        text=text,
        created_at=T0 + timedelta(seconds=offset),
        **kwargs,
    )


def inserted(message: Message) -> ChangeNotification:
    return ChangeNotification(
        change=ChangeType.INSERTED,
        record_type=MESSAGE_RECORD_TYPE,
        key=message_key(message.room_id, message.id),
        payload=encode_message(message),
    )


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def store(records) -> RecordMessageStore:
    return RecordMessageStore(records)


class TestSaveAndFetch:
    @pytest.mark.asyncio
    async def test_one_record_per_message(self, store, records) -> None:
        message = msg("hello")

        await store.save(message, "room-1")

        record = await records.read(message_key("room-1", message.id))
        assert record.record_type == MESSAGE_RECORD_TYPE
        assert record.value["text"] == "hello"

    @pytest.mark.asyncio
    async def test_other_device_fetches_saved_messages(self, store, records) -> None:
        await store.save(msg("second", 2), "room-1")
        await store.save(msg("first", 1), "room-1")
        await store.save(msg("elsewhere", room_id="room-2"), "room-2")

        other = RecordMessageStore(records)

        assert [m.text for m in await other.fetch_messages("room-1")] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_saving_twice_keeps_one_copy(self, store, records) -> None:
        message = msg("hello")

        await store.save(message, "room-1")
        await store.save(message, "room-1")

        assert len(await records.scan("message:room-1:")) == 1
        assert await store.fetch_messages("room-1") == [message]

    @pytest.mark.asyncio
    async def test_undecodable_records_are_skipped(self, store, records) -> None:
        await records.conditional_write(message_key("room-1", "bad"), MESSAGE_RECORD_TYPE, {"text": 1}, None)
        await store.save(msg("hello"), "room-1")

        assert [m.text for m in await store.fetch_messages("room-1")] == ["hello"]

    @pytest.mark.asyncio
    async def test_fetch_of_empty_room(self, store) -> None:
        assert await store.fetch_messages("room-1") == []


class TestObservation:
    @pytest.mark.asyncio
    async def test_observe_delivers_current_list(self, store) -> None:
        await store.save(msg("hello"), "room-1")
        seen: list[list[str]] = []

        await store.observe("room-1", lambda ms: seen.append([m.text for m in ms]))

        assert seen == [["hello"]]

    @pytest.mark.asyncio
    async def test_change_feed_reaches_observers(self, store) -> None:
        seen: list[list[str]] = []
        await store.observe("room-1", lambda ms: seen.append([m.text for m in ms]))
        remote = msg("from another device", 5)

        await store.handle(inserted(remote))
        await store.handle(inserted(remote))

        assert seen == [[], ["from another device"]]

    @pytest.mark.asyncio
    async def test_room_records_and_deletions_are_ignored(self, store) -> None:
        seen: list[list[Message]] = []
        await store.observe("room-1", seen.append)

        await store.handle(ChangeNotification(change=ChangeType.UPDATED, record_type=ROOM_RECORD_TYPE, key=room_key("room-1")))
        await store.handle(
            ChangeNotification(change=ChangeType.DELETED, record_type=MESSAGE_RECORD_TYPE, key=message_key("room-1", "x"))
        )

        assert seen == [[]]

    @pytest.mark.asyncio
    async def test_cancelled_observer_is_not_called(self, store) -> None:
        seen: list[list[Message]] = []
        token = await store.observe("room-1", seen.append)

        token.cancel()
        await store.save(msg("hello"), "room-1")

        assert seen == [[]]

    @pytest.mark.asyncio
    async def test_run_follows_the_feed(self, store, records) -> None:
        seen: list[list[str]] = []
        await store.observe("room-1", lambda ms: seen.append([m.text for m in ms]))
        task = asyncio.create_task(store.run())
        await asyncio.sleep(0)

        await RecordMessageStore(records).save(msg("remote"), "room-1")
        for _ in range(10):
            await asyncio.sleep(0)
            if len(seen) > 1:
                break
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        assert seen[-1] == ["remote"]
