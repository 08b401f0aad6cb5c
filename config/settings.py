"""
Configuration settings for the Smart Document Q&A system.

WHY THIS FILE EXISTS:
- Centralizes all configuration in one place
- Keeps secrets separate from code (loaded from .env)
- Every component receives its settings explicitly, so tests can build
  a Settings object by hand without touching the environment

PROVIDERS:
- OpenAI (default): set OPENAI_API_KEY
- Azure OpenAI: set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY.
  With Azure, the model names below are your deployment names.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class OpenAIConfig:
    """
    Configuration for the remote model provider.

    timeout / max_retries are handed to the openai client, which retries
    rate limits, timeouts and 5xx responses with exponential backoff.
    """
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    azure_endpoint: Optional[str] = None
    azure_api_key: Optional[str] = None
    azure_api_version: str = "2024-02-15-preview"
    chat_model: str = "gpt-3.5-turbo"                # For generating answers
    embedding_model: str = "text-embedding-3-small"  # For creating vectors
    timeout: float = 30.0
    max_retries: int = 3

    @property
    def use_azure(self) -> bool:
        return bool(self.azure_endpoint)


@dataclass
class ChunkingConfig:
    """
    Configuration for document chunking.

    Sizes are in words, not characters:
    - chunk_size=500: roughly one page of prose per chunk
    - chunk_overlap=50: 10% overlap keeps sentences that straddle a
      boundary retrievable from either side
    """
    chunk_size: int = 500
    chunk_overlap: int = 50
    embedding_batch_size: int = 1   # Chunks per embedding request

    def __post_init__(self):
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(
                f"chunk_overlap must satisfy 0 <= overlap < chunk_size, "
                f"got chunk_size={self.chunk_size}, chunk_overlap={self.chunk_overlap}"
            )
        if self.embedding_batch_size < 1:
            raise ConfigurationError("embedding_batch_size must be at least 1")


@dataclass
class RetrievalConfig:
    """Configuration for document retrieval."""
    top_k: int = 3   # Number of chunks to retrieve

    def __post_init__(self):
        if self.top_k < 0:
            raise ConfigurationError(f"top_k must be non-negative, got {self.top_k}")


@dataclass
class GenerationConfig:
    """Configuration for answer generation."""
    max_tokens: int = 800
    temperature: float = 0.7


@dataclass
class PathsConfig:
    """Where the corpus, the index and the evaluation files live."""
    knowledge_base_dir: str = "./knowledge-base"
    index_path: str = "./knowledge-base-index.json"
    report_path: str = "./evaluation-report.json"
    test_questions_path: str = "./data/evaluation/test_questions.json"


@dataclass
class Settings:
    """
    Main settings container.

    Organized by domain (provider, chunking, retrieval, generation, paths).
    """
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def load_settings() -> Settings:
    """
    Load settings from environment variables.

    Credentials are not validated here: indexing and evaluation scripts
    fail only once they actually build a provider (see
    docqa.provider.OpenAIProvider).

    RECOGNIZED ENVIRONMENT VARIABLES:
    - OPENAI_API_KEY, OPENAI_BASE_URL
    - AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY, AZURE_OPENAI_API_VERSION
    - OPENAI_CHAT_MODEL, OPENAI_EMBEDDING_MODEL
    - OPENAI_TIMEOUT, OPENAI_MAX_RETRIES
    - CHUNK_SIZE, CHUNK_OVERLAP, EMBEDDING_BATCH_SIZE, TOP_K
    - MAX_TOKENS, TEMPERATURE
    - KNOWLEDGE_BASE_DIR, INDEX_PATH, REPORT_PATH, TEST_QUESTIONS_PATH
    - LOG_LEVEL
    """
    defaults = Settings()

    return Settings(
        openai=OpenAIConfig(
            api_key=os.getenv("OPENAI_API_KEY"),
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT") or None,
            azure_api_key=os.getenv("AZURE_OPENAI_API_KEY"),
            azure_api_version=os.getenv(
                "AZURE_OPENAI_API_VERSION", defaults.openai.azure_api_version
            ),
            chat_model=os.getenv("OPENAI_CHAT_MODEL", defaults.openai.chat_model),
            embedding_model=os.getenv(
                "OPENAI_EMBEDDING_MODEL", defaults.openai.embedding_model
            ),
            timeout=_env_float("OPENAI_TIMEOUT", defaults.openai.timeout),
            max_retries=_env_int("OPENAI_MAX_RETRIES", defaults.openai.max_retries),
        ),
        chunking=ChunkingConfig(
            chunk_size=_env_int("CHUNK_SIZE", defaults.chunking.chunk_size),
            chunk_overlap=_env_int("CHUNK_OVERLAP", defaults.chunking.chunk_overlap),
            embedding_batch_size=_env_int(
                "EMBEDDING_BATCH_SIZE", defaults.chunking.embedding_batch_size
            ),
        ),
        retrieval=RetrievalConfig(
            top_k=_env_int("TOP_K", defaults.retrieval.top_k),
        ),
        generation=GenerationConfig(
            max_tokens=_env_int("MAX_TOKENS", defaults.generation.max_tokens),
            temperature=_env_float("TEMPERATURE", defaults.generation.temperature),
        ),
        paths=PathsConfig(
            knowledge_base_dir=os.getenv(
                "KNOWLEDGE_BASE_DIR", defaults.paths.knowledge_base_dir
            ),
            index_path=os.getenv("INDEX_PATH", defaults.paths.index_path),
            report_path=os.getenv("REPORT_PATH", defaults.paths.report_path),
            test_questions_path=os.getenv(
                "TEST_QUESTIONS_PATH", defaults.paths.test_questions_path
            ),
        ),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
    )


# Load settings once and reuse
_settings = None

def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings():
    """Forget the cached settings (used by tests after changing the environment)."""
    global _settings
    _settings = None


# Imported last: the docqa package init imports modules that import this one
from docqa.errors import ConfigurationError  # noqa: E402
