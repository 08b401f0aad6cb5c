"""
Model Provider Module

The pipeline needs two capabilities from a remote model provider:

    embed(text)                  -> EmbeddingResult   (text -> vector)
    complete(messages, options)  -> ChatCompletion    (messages -> text)

Both are black boxes. Every component that needs them receives a provider
object in its constructor instead of reaching for a global client, which
lets the tests plug in a deterministic fake.

OpenAIProvider implements the capability with the openai SDK (OpenAI or
Azure OpenAI). Timeouts and bounded exponential-backoff retries for
transient failures are delegated to the SDK client (`timeout`,
`max_retries`); whatever still fails is re-raised as ProviderError.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import openai
from openai import AzureOpenAI, OpenAI

from config.settings import OpenAIConfig, get_settings
from docqa.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Usage:
    """Token counters reported by the provider for one call."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def zero(cls) -> "Usage":
        return cls()

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class EmbeddingResult:
    """
    Result of embedding a piece of text.

    token_count is approximate for batched calls (the API reports one
    total per request).
    """
    text: str
    embedding: List[float]
    model: str
    token_count: int

    @property
    def dimension(self) -> int:
        return len(self.embedding)


@dataclass
class ChatCompletion:
    """Generated text plus the usage counters used for cost accounting."""
    text: str
    usage: Usage
    model: str


class ModelProvider(Protocol):
    """The capability every pipeline component depends on."""

    embedding_model: str
    chat_model: str

    def embed(self, text: str) -> EmbeddingResult:
        ...

    def embed_batch(self, texts: List[str]) -> List[EmbeddingResult]:
        ...

    def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 800,
        temperature: float = 0.7,
    ) -> ChatCompletion:
        ...


@contextmanager
def _translate_errors(operation: str):
    """Re-raise openai SDK exceptions as ProviderError."""
    try:
        yield
    except (openai.RateLimitError, openai.InternalServerError) as e:
        raise ProviderError(f"{operation} failed: {e}", transient=True) from e
    except openai.APIConnectionError as e:
        # Includes APITimeoutError
        raise ProviderError(f"{operation} failed: {e}", transient=True) from e
    except openai.APIError as e:
        raise ProviderError(f"{operation} failed: {e}", transient=False) from e


class OpenAIProvider:
    """
    Embeddings and chat completions through the openai SDK.

    Uses AzureOpenAI when an Azure endpoint is configured (model names are
    then deployment names), the plain OpenAI client otherwise.
    """

    def __init__(
        self,
        config: Optional[OpenAIConfig] = None,
        client: Optional[OpenAI] = None,
    ):
        """
        Args:
            config: Provider settings (defaults to settings from the environment)
            client: Pre-built SDK client, mostly for tests
        """
        self.config = config or get_settings().openai
        self.embedding_model = self.config.embedding_model
        self.chat_model = self.config.chat_model
        self.client = client or self._create_client(self.config)

    @staticmethod
    def _create_client(config: OpenAIConfig) -> OpenAI:
        if config.use_azure:
            if not config.azure_api_key:
                raise ConfigurationError(
                    "AZURE_OPENAI_API_KEY not set. "
                    "Add it to your .env file or set it as an environment variable."
                )
            return AzureOpenAI(
                azure_endpoint=config.azure_endpoint,
                api_key=config.azure_api_key,
                api_version=config.azure_api_version,
                timeout=config.timeout,
                max_retries=config.max_retries,
            )

        if not config.api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY not set. "
                "Add it to your .env file or set it as an environment variable."
            )
        return OpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def embed(self, text: str) -> EmbeddingResult:
        """Generate the embedding for a single text."""
        with _translate_errors("Embedding request"):
            response = self.client.embeddings.create(
                input=text,
                model=self.embedding_model,
            )

        if not response.data or not response.data[0].embedding:
            raise ProviderError("Embedding response contained no vector")

        return EmbeddingResult(
            text=text,
            embedding=list(response.data[0].embedding),
            model=self.embedding_model,
            token_count=_total_tokens(response.usage),
        )

    def embed_batch(self, texts: List[str]) -> List[EmbeddingResult]:
        """
        Generate embeddings for several texts in one request.

        Results come back in the order of `texts`.
        """
        if not texts:
            return []

        with _translate_errors("Embedding request"):
            response = self.client.embeddings.create(
                input=texts,
                model=self.embedding_model,
            )

        if len(response.data) != len(texts):
            raise ProviderError(
                f"Embedding response returned {len(response.data)} vectors "
                f"for {len(texts)} inputs"
            )

        per_text_tokens = _total_tokens(response.usage) // len(texts)
        results = []
        for item in sorted(response.data, key=lambda d: d.index):
            if not item.embedding:
                raise ProviderError(f"Embedding response item {item.index} is empty")
            results.append(EmbeddingResult(
                text=texts[item.index],
                embedding=list(item.embedding),
                model=self.embedding_model,
                token_count=per_text_tokens,
            ))
        return results

    def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 800,
        temperature: float = 0.7,
    ) -> ChatCompletion:
        """Send a chat conversation and return the assistant's reply."""
        with _translate_errors("Chat completion request"):
            response = self.client.chat.completions.create(
                model=self.chat_model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )

        if not response.choices:
            raise ProviderError("Chat completion response contained no choices")

        usage = response.usage
        logger.debug(
            "Chat completion used %s tokens", usage.total_tokens if usage else "?"
        )
        return ChatCompletion(
            text=response.choices[0].message.content or "",
            usage=Usage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
            ) if usage else Usage.zero(),
            # The configured name, not the dated one echoed back, keys the price table
            model=self.chat_model,
        )


def _total_tokens(usage) -> int:
    if usage is None:
        return 0
    return getattr(usage, "total_tokens", 0) or 0
