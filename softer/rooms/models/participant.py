"""Participant and payment tier models."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Return a fresh string identifier."""
    return str(uuid4())


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class IdentifierKind(str, Enum):
    """How a participant is identified for lookup."""

    EMAIL = "email"
    PHONE = "phone"
    LIGHTWARD = "lightward"  # never resolved externally
    LOCAL_USER = "local_user"  # the signed-in user of this device


class ParticipantIdentifier(BaseModel):
    """Tagged identifier: an email, a phone number, Lightward or the local user."""

    model_config = ConfigDict(frozen=True)

    kind: IdentifierKind
    value: str | None = None

    @classmethod
    def email(cls, address: str) -> "ParticipantIdentifier":
        return cls(kind=IdentifierKind.EMAIL, value=address)

    @classmethod
    def phone(cls, number: str) -> "ParticipantIdentifier":
        return cls(kind=IdentifierKind.PHONE, value=number)

    @classmethod
    def lightward(cls) -> "ParticipantIdentifier":
        return cls(kind=IdentifierKind.LIGHTWARD)

    @classmethod
    def local_user(cls) -> "ParticipantIdentifier":
        return cls(kind=IdentifierKind.LOCAL_USER)

    @property
    def is_lightward(self) -> bool:
        return self.kind == IdentifierKind.LIGHTWARD

    @property
    def display_string(self) -> str:
        if self.kind == IdentifierKind.LIGHTWARD:
            return "Lightward AI"
        if self.kind == IdentifierKind.LOCAL_USER:
            return "Me"
        return self.value or ""


class ParticipantSpec(BaseModel):
    """A participant as named by the room originator at creation time."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Participant identifier")
    identifier: ParticipantIdentifier = Field(..., description="Lookup identity")
    nickname: str = Field(..., min_length=1, description="Name shown in the room")

    @property
    def is_lightward(self) -> bool:
        return self.identifier.is_lightward

    @classmethod
    def lightward(cls, nickname: str = "Lightward") -> "ParticipantSpec":
        """Create the Lightward participant with the given nickname."""
        return cls(identifier=ParticipantIdentifier.lightward(), nickname=nickname)


class PaymentTier(int, Enum):
    """Room price in whole dollars.

    Orders of magnitude with identical access.
    """

    ONE = 1
    TEN = 10
    HUNDRED = 100
    THOUSAND = 1000

    @property
    def cents(self) -> int:
        return self.value * 100

    @property
    def display_string(self) -> str:
        return f"${self.value}"
