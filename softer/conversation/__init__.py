"""Conversation within an active room.

The turn loop lives in `softer.conversation.coordinator`.
"""

from softer.conversation.chat_log import build_chat_log, build_warmup
from softer.conversation.models import Message
from softer.conversation.signals import LightwardReply, Signal, interpret_response, wants_to_speak
from softer.conversation.store import MessageStore, ObservationToken
from softer.conversation.stores import InMemoryMessageStore

__all__ = [
    "InMemoryMessageStore",
    "LightwardReply",
    "Message",
    "MessageStore",
    "ObservationToken",
    "Signal",
    "build_chat_log",
    "build_warmup",
    "interpret_response",
    "wants_to_speak",
]
