"""
Store collaborator for the memory advisor.

The advisor talks to its store through two calls:

  - query(conversation_id, query, top_k, filter_expression) → [(Document, relevance)]
  - write(documents)

VectorStoreMemory implements both on top of any LangChain VectorStore.

Filtering strategy:
  - InMemoryVectorStore (or a callable filter expression): one predicate that
    checks the conversation id, then the filter expression
  - Other vector stores: a metadata dict, the backend's native filter format

Scoring:
  - Scores are relevance, higher is closer. Distance-scored backends (FAISS,
    Chroma, PGVector) go through similarity_search_with_relevance_scores
  - InMemoryVectorStore already scores by cosine similarity and has no
    relevance function, so its raw scores are used
"""

import hashlib
import logging
from typing import Any, Callable, Protocol, Sequence, Union

from langchain_core.documents import Document
from langchain_core.vectorstores import InMemoryVectorStore, VectorStore

from .documents import CONVERSATION_ID_KEY, MESSAGE_TYPE_KEY
from .errors import UpstreamFailure, WriteFailure

logger = logging.getLogger(__name__)

ScoredDocument = tuple[Document, float]
FilterExpression = Union[dict[str, Any], Callable[[Document], bool], None]


class MemoryStore(Protocol):
    """
    What the advisor needs from a store.

    query() scores are relevance: higher means more similar.
    """

    def query(
        self,
        conversation_id: str,
        query: str,
        top_k: int,
        filter_expression: Any = None,
    ) -> list[ScoredDocument]:
        ...

    def write(self, documents: Sequence[Document]) -> None:
        ...


class VectorStoreMemory:
    """
    Conversation memory on top of a LangChain VectorStore.

    Usage:
        store = VectorStoreMemory(InMemoryVectorStore(embeddings))
        store.write(documents)
        hits = store.query("thread-1", "what did I say about Python?", top_k=5)
    """

    def __init__(
        self,
        vector_store: VectorStore,
        conversation_id_key: str = CONVERSATION_ID_KEY,
    ):
        self._vector_store = vector_store
        self._conversation_id_key = conversation_id_key

    def _make_id(self, document: Document) -> str:
        """Deterministic ID for deduplication."""
        meta = document.metadata
        key = (
            f"{meta.get(self._conversation_id_key, '')}:"
            f"{meta.get(MESSAGE_TYPE_KEY, '')}:"
            f"{document.page_content}"
        )
        h = hashlib.sha256(key.encode()).hexdigest()[:16]
        return f"mem-{h}"

    def _build_filter(self, conversation_id: str, filter_expression: FilterExpression):
        """Scope the search to one conversation, narrowed by filter_expression."""
        key = self._conversation_id_key
        if isinstance(self._vector_store, InMemoryVectorStore) or callable(filter_expression):

            def predicate(doc: Document) -> bool:
                if doc.metadata.get(key) != conversation_id:
                    return False
                if filter_expression is None:
                    return True
                if callable(filter_expression):
                    return bool(filter_expression(doc))
                return all(doc.metadata.get(k) == v for k, v in filter_expression.items())

            return predicate

        conditions: dict[str, Any] = dict(filter_expression or {})
        conditions[key] = conversation_id
        return conditions

    def query(
        self,
        conversation_id: str,
        query: str,
        top_k: int,
        filter_expression: FilterExpression = None,
    ) -> list[ScoredDocument]:
        """
        Similarity search within one conversation.

        Returns (document, relevance) pairs, best match first.
        Raises UpstreamFailure if the vector store fails.
        """
        search_filter = self._build_filter(conversation_id, filter_expression)
        try:
            if isinstance(self._vector_store, InMemoryVectorStore):
                search = self._vector_store.similarity_search_with_score
            else:
                search = self._vector_store.similarity_search_with_relevance_scores
            results = search(query, k=top_k, filter=search_filter)
        except Exception as e:
            raise UpstreamFailure(
                f"Vector search failed for conversation {conversation_id}: {e}"
            ) from e

        logger.debug(
            "Retrieved %d memory documents for conversation %s",
            len(results),
            conversation_id,
        )
        return sorted(results, key=lambda pair: pair[1], reverse=True)

    def write(self, documents: Sequence[Document]) -> None:
        """Add documents to the vector store. Raises WriteFailure on error."""
        if not documents:
            return
        ids = [self._make_id(doc) for doc in documents]
        try:
            self._vector_store.add_documents(list(documents), ids=ids)
        except Exception as e:
            raise WriteFailure(f"Failed to store {len(documents)} documents: {e}") from e
        logger.info("Stored %d memory documents", len(documents))

