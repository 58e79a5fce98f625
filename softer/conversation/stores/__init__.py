"""Message store implementations."""

from softer.conversation.stores.inmemory import InMemoryMessageStore

__all__ = ["InMemoryMessageStore"]
