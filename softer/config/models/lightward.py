"""Lightward completion endpoint configuration."""

from pydantic import BaseModel, Field


class LightwardConfig(BaseModel):
    """Configuration for the Lightward completion service."""

    base_url: str = Field(
        default="https://lightward.com/api/plain",
        description="Plaintext completion endpoint",
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Request timeout in seconds",
    )
    stream: bool = Field(
        default=True,
        description="Request server-sent events instead of a single body",
    )
    nickname: str = Field(
        default="Lightward",
        description="Fallback nickname when a roster names no AI participant",
    )
