"""Need claim configuration."""

from pydantic import BaseModel, Field


class ClaimConfig(BaseModel):
    """Settings for AtomicClaim.

    With no `stale_after_seconds`, a claim is held until the claimer clears
    it. Setting it lets a later device take over a claim older than that.
    """

    stale_after_seconds: int | None = Field(
        default=None,
        gt=0,
        description="Age after which an uncompleted claim may be overridden",
    )
