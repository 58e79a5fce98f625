"""Lightward completion service: HTTP/SSE client, evaluator and mock."""

from softer.providers.lightward.base import (
    CompletionService,
    ConversationHorizonError,
    LightwardAPIError,
)
from softer.providers.lightward.client import LightwardClient
from softer.providers.lightward.evaluator import LightwardRoomEvaluator
from softer.providers.lightward.mock import MockCompletionService

__all__ = [
    "CompletionService",
    "ConversationHorizonError",
    "LightwardAPIError",
    "LightwardClient",
    "LightwardRoomEvaluator",
    "MockCompletionService",
]
