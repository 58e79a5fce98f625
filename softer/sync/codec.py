"""Record keys and payload encoding for rooms and messages."""

from typing import Any

from pydantic import ValidationError

from softer.conversation.models import Message
from softer.observability.logging import get_logger
from softer.rooms.lifecycle import RoomLifecycle

logger = get_logger(__name__)

ROOM_RECORD_TYPE = "room"
MESSAGE_RECORD_TYPE = "message"


def room_key(room_id: str) -> str:
    return f"{ROOM_RECORD_TYPE}:{room_id}"


def message_key(room_id: str, message_id: str) -> str:
    return f"{MESSAGE_RECORD_TYPE}:{room_id}:{message_id}"


def encode_room(lifecycle: RoomLifecycle) -> dict[str, Any]:
    return lifecycle.model_dump(mode="json")


def decode_room(payload: dict[str, Any]) -> RoomLifecycle | None:
    """Decode a room record, or None when the payload is not a valid room."""
    try:
        return RoomLifecycle.model_validate(payload)
    except ValidationError as e:
        logger.warning("room_record_undecodable", error_count=e.error_count())
        return None


def encode_message(message: Message) -> dict[str, Any]:
    return message.model_dump(mode="json")


def decode_message(payload: dict[str, Any]) -> Message | None:
    try:
        return Message.model_validate(payload)
    except ValidationError as e:
        logger.warning("message_record_undecodable", error_count=e.error_count())
        return None
