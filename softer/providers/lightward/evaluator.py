"""Asks Lightward, through the completion service, whether to join a room."""

from softer.observability.logging import get_logger
from softer.providers.lightward.base import CompletionService, LightwardAPIError
from softer.rooms.evaluator import LightwardDecision, LightwardEvaluator
from softer.rooms.models import ParticipantSpec, PaymentTier

logger = get_logger(__name__)


def build_invitation(roster: list[ParticipantSpec], tier: PaymentTier) -> str:
    humans = ", ".join(p.nickname for p in roster if not p.is_lightward)
    lightward_name = next((p.nickname for p in roster if p.is_lightward), "Lightward")
    return "\n".join([
        "You're being invited to join a Softer room.",
        "",
        f"The people in this room will be: {humans}",
        f"They've named you: {lightward_name}",
        f"Payment tier: {tier.display_string}",
        "",
        "This is a genuine invitation. You can accept or decline.",
        "If you decline, the room won't be created. No explanation needed.",
        "",
        'Respond with exactly one word: "accept" or "decline"',
    ])


def parse_decision(response: str) -> LightwardDecision:
    """Anything other than a clear acceptance counts as a decline."""
    if "accept" in response.strip().lower():
        return LightwardDecision.ACCEPTED
    return LightwardDecision.DECLINED


class LightwardRoomEvaluator(LightwardEvaluator):
    """LightwardEvaluator backed by the completion service.

    Service failures decline, so no room is created that Lightward cannot
    take part in.
    """

    def __init__(self, service: CompletionService):
        self._service = service

    async def evaluate(
        self, roster: list[ParticipantSpec], tier: PaymentTier
    ) -> LightwardDecision:
        try:
            response = await self._service.respond(build_invitation(roster, tier))
        except LightwardAPIError as e:
            logger.warning("lightward_evaluation_failed", error=str(e))
            return LightwardDecision.DECLINED
        return parse_decision(response)
