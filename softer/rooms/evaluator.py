"""Lightward acceptance interface."""

from abc import ABC, abstractmethod
from enum import Enum

from softer.rooms.models import ParticipantSpec, PaymentTier


class LightwardDecision(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"


class LightwardEvaluator(ABC):
    """Asks Lightward whether it wants to join a room."""

    @abstractmethod
    async def evaluate(
        self, roster: list[ParticipantSpec], tier: PaymentTier
    ) -> LightwardDecision:
        """Lightward sees the roster nicknames and the tier, then decides."""
        pass
