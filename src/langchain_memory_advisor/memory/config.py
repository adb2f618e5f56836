"""
Memory advisor configuration.

MemoryAdvisorConfig is immutable once built. The only way to get one is
through MemoryAdvisorConfig.builder(store) (or from_env, which uses the same
builder), so an invalid configuration never reaches the advisor.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from langchain_core.prompts import BasePromptTemplate, PromptTemplate

from .errors import InvalidConfiguration

DEFAULT_CONVERSATION_ID = "default"
DEFAULT_TOP_K = 20

# Template input variables
INSTRUCTIONS_VARIABLE = "instructions"
MEMORY_VARIABLE = "memory"
ALLOWED_VARIABLES = frozenset({INSTRUCTIONS_VARIABLE, MEMORY_VARIABLE})

DEFAULT_SYSTEM_PROMPT_TEMPLATE = """{instructions}

Use the long term conversation memory from the LONG_TERM_MEMORY section to provide accurate answers.

---------------------
LONG_TERM_MEMORY:
{memory}
---------------------"""

# Shared write-back pool for advisors built without an explicit scheduler
DEFAULT_SCHEDULER = ThreadPoolExecutor(max_workers=4, thread_name_prefix="memory-write")

_UNSET = object()


@dataclass(frozen=True)
class MemoryAdvisorConfig:
    """Validated configuration for MemoryGate."""

    store: Any
    default_conversation_id: str
    scheduler: Any
    system_prompt_template: BasePromptTemplate
    default_top_k: int
    custom_filter_expression: Any
    custom_metadata: Mapping[str, Any]

    @classmethod
    def builder(cls, store: Any) -> "MemoryAdvisorConfigBuilder":
        return MemoryAdvisorConfigBuilder(store)

    @classmethod
    def from_env(cls, store: Any, scheduler: Any = None) -> "MemoryAdvisorConfig":
        """Load configuration from environment variables (and .env)."""
        load_dotenv()
        builder = cls.builder(store)
        builder.conversation_id(os.getenv("MEMORY_CONVERSATION_ID", DEFAULT_CONVERSATION_ID))
        top_k = os.getenv("MEMORY_TOP_K", str(DEFAULT_TOP_K)).strip()
        try:
            top_k = int(top_k)
        except ValueError:
            pass  # left for build() to reject
        builder.default_top_k(top_k)
        template = os.getenv("MEMORY_SYSTEM_PROMPT")
        if template:
            builder.system_prompt_template(template)
        if scheduler is not None:
            builder.scheduler(scheduler)
        return builder.build()


class MemoryAdvisorConfigBuilder:
    """
    Chained builder for MemoryAdvisorConfig.

    Setters only record values; build() checks every field and reports all
    problems at once.

    Usage:
        config = (
            MemoryAdvisorConfig.builder(store)
            .conversation_id("thread-1")
            .default_top_k(5)
            .custom_metadata({"source": "chat"})
            .build()
        )
    """

    def __init__(self, store: Any):
        self._store = store
        self._conversation_id: Optional[str] = DEFAULT_CONVERSATION_ID
        self._scheduler: Any = _UNSET
        self._system_prompt_template: Any = DEFAULT_SYSTEM_PROMPT_TEMPLATE
        self._default_top_k: Any = DEFAULT_TOP_K
        self._custom_filter_expression: Any = None
        self._custom_metadata: Optional[Mapping[str, Any]] = {}

    def conversation_id(self, conversation_id: Optional[str]) -> "MemoryAdvisorConfigBuilder":
        self._conversation_id = conversation_id
        return self

    def scheduler(self, scheduler: Any) -> "MemoryAdvisorConfigBuilder":
        self._scheduler = scheduler
        return self

    def system_prompt_template(self, template: Any) -> "MemoryAdvisorConfigBuilder":
        self._system_prompt_template = template
        return self

    def default_top_k(self, top_k: Any) -> "MemoryAdvisorConfigBuilder":
        self._default_top_k = top_k
        return self

    def custom_filter_expression(self, expression: Any) -> "MemoryAdvisorConfigBuilder":
        self._custom_filter_expression = expression
        return self

    def custom_metadata(self, metadata: Optional[Mapping[str, Any]]) -> "MemoryAdvisorConfigBuilder":
        self._custom_metadata = metadata
        return self

    def _compile_template(self, errors: list[str]) -> Optional[BasePromptTemplate]:
        template = self._system_prompt_template
        if template is None:
            errors.append("systemPromptTemplate cannot be null")
            return None
        if isinstance(template, str):
            try:
                template = PromptTemplate.from_template(template)
            except ValueError as e:
                errors.append(f"systemPromptTemplate is not a valid template: {e}")
                return None
        if not isinstance(template, BasePromptTemplate):
            errors.append(
                f"systemPromptTemplate must be a string or prompt template, "
                f"got {type(template).__name__}"
            )
            return None
        if MEMORY_VARIABLE not in template.input_variables:
            errors.append(
                f"systemPromptTemplate must contain a '{{{MEMORY_VARIABLE}}}' placeholder"
            )
            return None
        unknown = sorted(set(template.input_variables) - ALLOWED_VARIABLES)
        if unknown:
            errors.append(
                f"systemPromptTemplate has unsupported placeholders: {', '.join(unknown)}; "
                f"only {INSTRUCTIONS_VARIABLE} and {MEMORY_VARIABLE} are filled in"
            )
            return None
        return template

    def build(self) -> MemoryAdvisorConfig:
        """Validate every field and return an immutable config."""
        errors: list[str] = []

        if self._store is None:
            errors.append("vectorStore cannot be null (store cannot be null)")

        conversation_id = self._conversation_id
        if not isinstance(conversation_id, str) or not conversation_id.strip():
            errors.append("defaultConversationId cannot be null or empty")

        scheduler = DEFAULT_SCHEDULER if self._scheduler is _UNSET else self._scheduler
        if scheduler is None:
            errors.append("scheduler cannot be null")
        elif not callable(getattr(scheduler, "submit", None)):
            errors.append("scheduler must provide a submit() method")

        template = self._compile_template(errors)

        top_k = self._default_top_k
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
            errors.append("topK must be greater than 0")

        if self._custom_metadata is None:
            errors.append("customMetaData cannot be null")
        elif not isinstance(self._custom_metadata, Mapping):
            errors.append(
                f"customMetaData must be a mapping, got {type(self._custom_metadata).__name__}"
            )

        if errors:
            raise InvalidConfiguration(errors)

        return MemoryAdvisorConfig(
            store=self._store,
            default_conversation_id=conversation_id,
            scheduler=scheduler,
            system_prompt_template=template,
            default_top_k=top_k,
            custom_filter_expression=self._custom_filter_expression,
            custom_metadata=MappingProxyType(dict(self._custom_metadata)),
        )
