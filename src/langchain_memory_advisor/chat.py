"""
Chat request and response passed through advisors.

Both carry LangChain messages plus a free-form context dict that advisors
read per-request options from (conversation id, top-K override).
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

# Context keys understood by the memory advisor
CONVERSATION_ID_CONTEXT_KEY = "chat_memory_conversation_id"
TOP_K_CONTEXT_KEY = "chat_memory_vector_store_top_k"


def message_text(msg: BaseMessage) -> str:
    """Extract plain text from a message, including list-of-blocks content."""
    content = msg.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                text = block.get("text") or ""
                if text:
                    parts.append(text)
        return "\n".join(parts)
    return str(content) if content else ""


@dataclass
class ChatRequest:
    """An outgoing chat request."""

    messages: list[BaseMessage] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_text(
        cls,
        content: str,
        system: Optional[str] = None,
        **context: Any,
    ) -> "ChatRequest":
        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=content))
        return cls(messages=messages, context=dict(context))

    @property
    def user_message(self) -> Optional[HumanMessage]:
        """The most recent user message, if any."""
        for msg in reversed(self.messages):
            if isinstance(msg, HumanMessage):
                return msg
        return None

    @property
    def system_text(self) -> str:
        return "\n\n".join(
            message_text(m) for m in self.messages if isinstance(m, SystemMessage)
        )

    def with_system_prompt(self, text: str) -> "ChatRequest":
        """
        Return a copy whose only system message is `text`, placed first.

        The original request is not modified.
        """
        conversation = [m for m in self.messages if not isinstance(m, SystemMessage)]
        return replace(
            self,
            messages=[SystemMessage(content=text), *conversation],
            context=dict(self.context),
        )


@dataclass
class ChatResponse:
    """The result of a chat call."""

    messages: list[BaseMessage] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def assistant_messages(self) -> list[AIMessage]:
        return [m for m in self.messages if isinstance(m, AIMessage)]
