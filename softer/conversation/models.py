"""Conversation message model."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from softer.rooms.models.participant import utc_now

NARRATOR_AUTHOR_ID = "narrator"
NARRATOR_NAME = "Narrator"
LIGHTWARD_AUTHOR_ID = "lightward"


class Message(BaseModel):
    """A message in a room. Append-only: never edited or deleted once saved."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    room_id: str
    author_id: str
    author_name: str
    text: str
    created_at: datetime = Field(default_factory=utc_now)
    is_lightward: bool = False
    is_narration: bool = False

    @classmethod
    def narration(cls, room_id: str, text: str) -> "Message":
        return cls(
            room_id=room_id,
            author_id=NARRATOR_AUTHOR_ID,
            author_name=NARRATOR_NAME,
            text=text,
            is_narration=True,
        )

    @classmethod
    def lightward(cls, room_id: str, nickname: str, text: str) -> "Message":
        return cls(
            room_id=room_id,
            author_id=LIGHTWARD_AUTHOR_ID,
            author_name=nickname,
            text=text,
            is_lightward=True,
        )
