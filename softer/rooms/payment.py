"""Payment processor interface."""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from softer.rooms.models import utc_now


class PaymentAuthorization(BaseModel):
    """An authorized payment that has not been captured yet."""

    model_config = ConfigDict(frozen=True)

    id: str
    cents: int = Field(..., ge=0)
    authorized_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return utc_now() > self.expires_at


class PaymentProcessor(ABC):
    """Authorizes, captures and releases room payments."""

    @abstractmethod
    async def authorize(self, cents: int) -> PaymentAuthorization:
        """Hold `cents` without capturing.

        Raises:
            PaymentError: declined, cancelled, expired, network, not configured
        """
        pass

    @abstractmethod
    async def capture(self, authorization: PaymentAuthorization) -> None:
        """Capture a previously authorized payment.

        Raises:
            PaymentError: if capture fails
        """
        pass

    @abstractmethod
    async def release(self, authorization: PaymentAuthorization) -> None:
        """Release an authorization without capturing. Best effort."""
        pass
