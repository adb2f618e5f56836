"""
Vector store backed chat memory.

Provides long-term conversation memory through an advisor that runs around
each chat call:

- Before the call: retrieve the most similar past messages of the same
  conversation and render them into the system prompt
- After the call: store the new user and assistant messages as documents,
  tagged with the conversation id and custom metadata

Writes are handed to a scheduler (a concurrent.futures.Executor by default),
so persistence never adds latency to the chat call.
"""

from .advisor import MemoryGate
from .config import (
    DEFAULT_SYSTEM_PROMPT_TEMPLATE,
    MemoryAdvisorConfig,
    MemoryAdvisorConfigBuilder,
)
from .documents import (
    CONVERSATION_ID_KEY,
    MESSAGE_TYPE_KEY,
    ConversationTurn,
    MessageType,
)
from .errors import InvalidConfiguration, UpstreamFailure, WriteFailure
from .store import MemoryStore, VectorStoreMemory

__all__ = [
    "MemoryGate",
    "MemoryAdvisorConfig",
    "MemoryAdvisorConfigBuilder",
    "DEFAULT_SYSTEM_PROMPT_TEMPLATE",
    "ConversationTurn",
    "MessageType",
    "CONVERSATION_ID_KEY",
    "MESSAGE_TYPE_KEY",
    "InvalidConfiguration",
    "UpstreamFailure",
    "WriteFailure",
    "MemoryStore",
    "VectorStoreMemory",
]
