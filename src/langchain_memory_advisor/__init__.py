"""LangChain chat memory advisor backed by a vector store."""

from .chat import ChatRequest, ChatResponse
from .memory import (
    InvalidConfiguration,
    MemoryAdvisorConfig,
    MemoryGate,
    UpstreamFailure,
    VectorStoreMemory,
    WriteFailure,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "InvalidConfiguration",
    "MemoryAdvisorConfig",
    "MemoryGate",
    "UpstreamFailure",
    "VectorStoreMemory",
    "WriteFailure",
]
