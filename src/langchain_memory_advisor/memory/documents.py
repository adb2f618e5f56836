"""
Conversation turns and the documents they are stored as.

A turn is one user or assistant message belonging to a conversation. It is
only ever persisted wrapped in a LangChain Document whose metadata carries the
conversation id, the message type and any custom metadata.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from langchain_core.documents import Document
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from ..chat import message_text

# Reserved metadata keys; these override custom metadata on collision
CONVERSATION_ID_KEY = "conversation_id"
MESSAGE_TYPE_KEY = "message_type"


class MessageType(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


def message_type_of(msg: BaseMessage) -> Optional[MessageType]:
    if isinstance(msg, HumanMessage):
        return MessageType.USER
    if isinstance(msg, AIMessage):
        return MessageType.ASSISTANT
    return None


@dataclass(frozen=True)
class ConversationTurn:
    """One message of a conversation, ready to be stored."""

    text: str
    conversation_id: str
    role: MessageType = MessageType.USER

    @classmethod
    def from_message(
        cls, msg: BaseMessage, conversation_id: str
    ) -> Optional["ConversationTurn"]:
        """Build a turn from a user or assistant message; None for other types."""
        role = message_type_of(msg)
        if role is None:
            return None
        return cls(text=message_text(msg), conversation_id=conversation_id, role=role)

    def is_empty(self) -> bool:
        return not self.text.strip()

    def to_document(self, custom_metadata: Optional[Mapping[str, object]] = None) -> Document:
        """
        Wrap the turn into a Document.

        Custom metadata entries are copied first and the reserved keys are
        written last, so a custom entry can never re-point a document at
        another conversation.
        """
        metadata: dict[str, object] = dict(custom_metadata or {})
        metadata[CONVERSATION_ID_KEY] = self.conversation_id
        metadata[MESSAGE_TYPE_KEY] = self.role.value
        return Document(page_content=self.text, metadata=metadata)


def turns_to_documents(
    turns: list[ConversationTurn],
    custom_metadata: Optional[Mapping[str, object]] = None,
) -> list[Document]:
    """Convert non-empty turns to documents, preserving order."""
    return [t.to_document(custom_metadata) for t in turns if not t.is_empty()]
