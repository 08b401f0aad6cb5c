import pytest

from config import settings as settings_module
from config.settings import (
    ChunkingConfig,
    RetrievalConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from docqa.errors import ConfigurationError

ENV_VARS = [
    "OPENAI_API_KEY", "OPENAI_BASE_URL", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY",
    "OPENAI_CHAT_MODEL", "OPENAI_EMBEDDING_MODEL", "OPENAI_TIMEOUT", "OPENAI_MAX_RETRIES",
    "CHUNK_SIZE", "CHUNK_OVERLAP", "EMBEDDING_BATCH_SIZE", "TOP_K", "MAX_TOKENS",
    "TEMPERATURE", "KNOWLEDGE_BASE_DIR", "INDEX_PATH", "REPORT_PATH", "TEST_QUESTIONS_PATH",
    "AZURE_OPENAI_API_VERSION", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def test_defaults():
    s = load_settings()
    assert s.openai.chat_model == "gpt-3.5-turbo"
    assert s.openai.embedding_model == "text-embedding-3-small"
    assert not s.openai.use_azure
    assert (s.chunking.chunk_size, s.chunking.chunk_overlap) == (500, 50)
    assert s.retrieval.top_k == 3
    assert s.generation.max_tokens == 800
    assert s.paths.index_path == "./knowledge-base-index.json"
    assert s.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "200")
    monkeypatch.setenv("CHUNK_OVERLAP", "20")
    monkeypatch.setenv("TOP_K", "5")
    monkeypatch.setenv("TEMPERATURE", "0.2")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")
    monkeypatch.setenv("INDEX_PATH", "/tmp/index.json")

    s = load_settings()

    assert (s.chunking.chunk_size, s.chunking.chunk_overlap) == (200, 20)
    assert s.retrieval.top_k == 5
    assert s.generation.temperature == 0.2
    assert s.openai.use_azure
    assert s.paths.index_path == "/tmp/index.json"


def test_non_numeric_value(monkeypatch):
    monkeypatch.setenv("TOP_K", "three")
    with pytest.raises(ConfigurationError, match="TOP_K"):
        load_settings()


@pytest.mark.parametrize("size, overlap", [(50, 50), (50, 60), (50, -1)])
def test_invalid_chunk_parameters(size, overlap):
    with pytest.raises(ConfigurationError):
        ChunkingConfig(chunk_size=size, chunk_overlap=overlap)


def test_invalid_chunk_parameters_from_environment(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "40")
    monkeypatch.setenv("CHUNK_OVERLAP", "40")
    with pytest.raises(ConfigurationError):
        load_settings()


def test_negative_top_k():
    with pytest.raises(ConfigurationError):
        RetrievalConfig(top_k=-1)


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("TOP_K", "7")

    assert get_settings() is first
    reset_settings()
    assert get_settings().retrieval.top_k == 7
    assert isinstance(settings_module.get_settings(), Settings)
