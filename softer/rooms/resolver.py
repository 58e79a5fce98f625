"""Participant resolution interface."""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from softer.rooms.errors import ParticipantResolutionError, ResolutionError
from softer.rooms.models import ParticipantSpec


class ResolvedParticipant(BaseModel):
    """A participant whose identity has been resolved.

    `user_record_id` is None for Lightward, which is never looked up.
    """

    model_config = ConfigDict(frozen=True)

    spec: ParticipantSpec
    user_record_id: str | None = None

    @property
    def is_lightward(self) -> bool:
        return self.spec.is_lightward


class ParticipantResolver(ABC):
    """Resolves participant identifiers to external user identities."""

    @abstractmethod
    async def resolve(self, spec: ParticipantSpec) -> ResolvedParticipant:
        """Resolve a single participant.

        Raises:
            ResolutionError: not found, not discoverable, or network failure
        """
        pass

    async def resolve_all(self, specs: list[ParticipantSpec]) -> list[ResolvedParticipant]:
        """Resolve every participant in order, stopping at the first failure.

        Raises:
            ParticipantResolutionError: naming the participant that failed
        """
        resolved: list[ResolvedParticipant] = []
        for spec in specs:
            try:
                resolved.append(await self.resolve(spec))
            except ResolutionError as e:
                raise ParticipantResolutionError(spec, e) from e
        return resolved
