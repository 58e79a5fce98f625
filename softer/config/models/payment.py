"""Payment configuration."""

from pydantic import BaseModel, Field


class PaymentConfig(BaseModel):
    """Payment authorization settings.

    The authorization window is enforced by the caller, which invokes
    `RoomLifecycleCoordinator.expire()` once it has elapsed.
    """

    authorization_window_seconds: int = Field(
        default=604800,  # 7 days
        gt=0,
        description="How long an authorization may be held before expiry",
    )
    merchant_identifier: str | None = Field(
        default=None,
        description="Merchant identifier passed to the payment processor",
    )
