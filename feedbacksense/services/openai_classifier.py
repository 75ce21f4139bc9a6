"""Feedback categorization using an OpenAI chat model through LangChain."""

import logging
import os
from typing import Any

import openai
from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..config import MODEL_CONFIG
from ..exceptions import (
    ClassificationError,
    ConfigurationError,
    MalformedResponseError,
    RateLimitedError,
    ServiceUnavailableError,
    TransientClassificationError,
)
from ..models.classification import CategoryDefinition, active_categories

logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = {"your_api_key", "your_openai_api_key_here", "replace_me", "xxx"}

SYSTEM_PROMPT = """You are an AI assistant specialized in categorizing customer feedback with enhanced confidence scoring.

Categorize the feedback into exactly one of these categories:
{category_descriptions}

Consider these factors for confidence scoring:
- How clearly the feedback matches category keywords and patterns
- Ambiguity or overlap with other categories
- Completeness and clarity of the feedback text
- Specificity of language used

Higher confidence (0.8+) should only be given when the categorization is very clear and unambiguous.

You must respond with valid JSON containing these exact fields:
{{
    "category": "one of the category IDs above",
    "confidence": 0.0 to 1.0,
    "reasoning": "detailed explanation including confidence factors",
    "key_indicators": ["words", "or", "phrases", "that", "influenced", "the", "decision"]
}}"""

USER_PROMPT = """Feedback text:
\"\"\"{feedback}\"\"\"

Categorize this feedback and explain your reasoning."""


class CategoryPrediction(BaseModel):
    """Schema for a feedback categorization response."""

    category: str = Field(description="One of the configured category IDs")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence score between 0 and 1")
    reasoning: str = Field(default="AI-based categorization", description="Explanation of the decision")
    key_indicators: list[str] = Field(default_factory=list)


def is_usable_api_key(api_key: str | None) -> bool:
    """Check that an API key is present and not an obvious placeholder."""
    if not api_key or len(api_key.strip()) < 10:
        return False
    return api_key.strip().lower() not in PLACEHOLDER_KEYS


class OpenAIClassificationService:
    """Single-call feedback classifier backed by ``ChatOpenAI``.

    Each call is one network request. Retries are left to the caller, so the
    underlying client is created with ``max_retries=0`` and failures are
    translated into retryable or permanent classification errors.
    """

    def __init__(
        self,
        api_key: str | None = None,
        categories: list[CategoryDefinition] | None = None,
        model: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            api_key: OpenAI API key (defaults to ``OPENAI_API_KEY``)
            categories: Custom categories merged over the built-in set
            model: Chat model name (defaults to ``MODEL_CONFIG``)
            request_timeout: Default per-request timeout in seconds

        Raises:
            ConfigurationError: If no usable API key is available

        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not is_usable_api_key(self.api_key):
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")

        self.model = model or str(MODEL_CONFIG["classification_model"])
        self.request_timeout = float(request_timeout or MODEL_CONFIG["request_timeout"])
        self.categories = active_categories(categories)
        self.valid_categories = {c.id for c in self.categories}
        self._category_descriptions = "\n".join(c.prompt_line() for c in self.categories)
        self._chains: dict[float, Any] = {}

    def _build_llm(self, timeout: float) -> ChatOpenAI:
        return ChatOpenAI(
            model=self.model,
            temperature=float(MODEL_CONFIG["temperature"]),
            max_tokens=int(MODEL_CONFIG["max_tokens"]),
            api_key=self.api_key,
            timeout=timeout,
            max_retries=0,
            model_kwargs={"response_format": {"type": "json_object"}},
        )

    def _get_chain(self, timeout: float) -> Any:
        """Get or build the prompt | llm | parser chain for a timeout value."""
        if timeout not in self._chains:
            prompt = ChatPromptTemplate.from_messages(
                [("system", SYSTEM_PROMPT), ("user", USER_PROMPT)]
            )
            parser = JsonOutputParser(pydantic_object=CategoryPrediction)
            self._chains[timeout] = prompt | self._build_llm(timeout) | parser
        return self._chains[timeout]

    def classify(self, text: str, timeout: float | None = None) -> dict[str, Any]:
        """Categorize one feedback text with a single model call.

        Args:
            text: Feedback text
            timeout: Per-attempt timeout in seconds

        Returns:
            Dict with ``category``, ``confidence``, ``reasoning`` and ``key_indicators``

        Raises:
            RateLimitedError: The service reported a rate limit or exhausted quota
            TransientClassificationError: Timeout, connection failure or 5xx response
            MalformedResponseError: The response could not be used
            ServiceUnavailableError: The credentials were rejected
            ClassificationError: Any other request failure

        """
        chain = self._get_chain(timeout or self.request_timeout)
        try:
            raw = chain.invoke({
                "category_descriptions": self._category_descriptions,
                "feedback": text,
            })
        except openai.RateLimitError as e:
            raise RateLimitedError(f"Rate limited by classification service: {e}") from e
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise TransientClassificationError(f"Request failed: {e}") from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ServiceUnavailableError(f"Credentials rejected: {e}") from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                raise TransientClassificationError(
                    f"Service error {e.status_code}: {e}"
                ) from e
            raise ClassificationError(f"Request rejected ({e.status_code}): {e}") from e
        except OutputParserException as e:
            raise MalformedResponseError(f"Unparsable response: {e}") from e

        return self._validate(raw)

    def _validate(self, raw: Any) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"Expected a JSON object, got {type(raw).__name__}")
        try:
            prediction = CategoryPrediction.model_validate(raw)
        except PydanticValidationError as e:
            raise MalformedResponseError(f"Invalid response fields: {e}") from e

        if prediction.category not in self.valid_categories:
            raise MalformedResponseError(f"Invalid category returned: {prediction.category}")

        return {
            "category": prediction.category,
            "confidence": round(prediction.confidence, 2),
            "reasoning": prediction.reasoning,
            "key_indicators": prediction.key_indicators,
        }
