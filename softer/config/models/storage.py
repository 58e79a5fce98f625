"""Record store backend configuration."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "redis"]


class StorageConfig(BaseModel):
    """Configuration for the replicated record store."""

    backend: BackendType = Field(
        default="inmemory",
        description="Backend type",
    )
    connection_url: str | None = Field(
        default=None,
        description="Connection URL (from env var)",
    )
    key_prefix: str = Field(
        default="softer",
        description="Prefix for record keys and change channels",
    )
