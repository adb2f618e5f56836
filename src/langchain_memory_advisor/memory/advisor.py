"""
Vector store chat memory advisor.

Wraps each chat call with long-term conversation memory:

- before(): retrieve the top-K documents most similar to the user message
  within the conversation, render them into the system prompt, and submit the
  user message for storage
- after(): submit the assistant reply for storage
- advise(): before() → model call → after()

Reads are on the request path and fail the request (UpstreamFailure).
Writes go to the configured scheduler and are never awaited; failures are
logged.
"""

import logging
from typing import Any, Callable, Mapping

from langchain_core.documents import Document

from ..chat import (
    CONVERSATION_ID_CONTEXT_KEY,
    TOP_K_CONTEXT_KEY,
    ChatRequest,
    ChatResponse,
)
from .config import INSTRUCTIONS_VARIABLE, MEMORY_VARIABLE, MemoryAdvisorConfig
from .documents import ConversationTurn, turns_to_documents
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)


class MemoryGate:
    """
    Request-scoped memory advisor.

    Usage:
        gate = MemoryGate(MemoryAdvisorConfig.builder(store).build())
        advised = gate.before(request)
        # Send advised.messages to the LLM, then:
        gate.after(response)
    """

    def __init__(self, config: MemoryAdvisorConfig):
        self.config = config

    def _resolve_conversation_id(self, context: Mapping[str, Any]) -> str:
        conversation_id = context.get(CONVERSATION_ID_CONTEXT_KEY)
        if isinstance(conversation_id, str) and conversation_id.strip():
            return conversation_id
        return self.config.default_conversation_id

    def _resolve_top_k(self, context: Mapping[str, Any]) -> int:
        top_k = context.get(TOP_K_CONTEXT_KEY)
        if isinstance(top_k, int) and not isinstance(top_k, bool) and top_k > 0:
            return top_k
        return self.config.default_top_k

    def _retrieve(self, conversation_id: str, query: str, top_k: int) -> list[Document]:
        """Query the store; relevance scores, best match first, at most top_k."""
        try:
            scored = self.config.store.query(
                conversation_id=conversation_id,
                query=query,
                top_k=top_k,
                filter_expression=self.config.custom_filter_expression,
            )
        except UpstreamFailure:
            raise
        except Exception as e:
            raise UpstreamFailure(
                f"Memory retrieval failed for conversation {conversation_id}: {e}"
            ) from e

        ranked = sorted(scored, key=lambda pair: pair[1], reverse=True)
        return [doc for doc, _score in ranked[:top_k]]

    def _render_system_prompt(self, instructions: str, documents: list[Document]) -> str:
        template = self.config.system_prompt_template
        bindings = {
            INSTRUCTIONS_VARIABLE: instructions,
            MEMORY_VARIABLE: "\n".join(doc.page_content for doc in documents),
        }
        return template.format(
            **{k: v for k, v in bindings.items() if k in template.input_variables}
        )

    def _write_documents(self, conversation_id: str, documents: list[Document]):
        """Runs on the scheduler. Never raises."""
        try:
            self.config.store.write(documents)
        except Exception as e:
            logger.warning(
                "Failed to write %d memory documents for conversation %s: %s",
                len(documents),
                conversation_id,
                e,
            )

    def _schedule_write(self, conversation_id: str, turns: list[ConversationTurn]):
        documents = turns_to_documents(turns, self.config.custom_metadata)
        if not documents:
            logger.debug("Nothing to store for conversation %s", conversation_id)
            return
        try:
            self.config.scheduler.submit(self._write_documents, conversation_id, documents)
        except Exception as e:
            logger.warning(
                "Failed to schedule memory write for conversation %s: %s",
                conversation_id,
                e,
            )

    def before(self, request: ChatRequest, chain: Any = None) -> ChatRequest:
        """
        Augment the request with retrieved memory and store the user message.

        Returns a new request; the input request is not modified.
        Raises UpstreamFailure if retrieval fails.
        """
        conversation_id = self._resolve_conversation_id(request.context)
        top_k = self._resolve_top_k(request.context)

        user_message = request.user_message
        turn = (
            ConversationTurn.from_message(user_message, conversation_id)
            if user_message is not None
            else None
        )
        query = turn.text if turn else ""

        documents = self._retrieve(conversation_id, query, top_k)
        logger.debug(
            "Injecting %d memory documents into conversation %s (top_k=%d)",
            len(documents),
            conversation_id,
            top_k,
        )

        system_prompt = self._render_system_prompt(request.system_text, documents)
        advised = request.with_system_prompt(system_prompt)

        if turn is not None:
            self._schedule_write(conversation_id, [turn])
        return advised

    def after(self, response: ChatResponse, chain: Any = None) -> ChatResponse:
        """Store the assistant reply. Returns the response unchanged."""
        conversation_id = self._resolve_conversation_id(response.context)
        turns = [
            ConversationTurn.from_message(msg, conversation_id)
            for msg in response.assistant_messages
        ]
        self._schedule_write(conversation_id, [t for t in turns if t is not None])
        return response

    def advise(
        self,
        request: ChatRequest,
        call_next: Callable[[ChatRequest], ChatResponse],
    ) -> ChatResponse:
        """Run before(), the chat call, then after()."""
        advised = self.before(request)
        response = call_next(advised)
        if response.context.get(CONVERSATION_ID_CONTEXT_KEY) is None:
            response.context[CONVERSATION_ID_CONTEXT_KEY] = self._resolve_conversation_id(
                advised.context
            )
        return self.after(response)

