import hashlib
import re
import sys
from pathlib import Path

import pytest

# Repo root = one level above tests/
REPO_ROOT = Path(__file__).resolve().parents[1]

# Ensure repo root is on sys.path so `docqa` and `config` import without installing.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config.settings import ChunkingConfig, PathsConfig, Settings  # noqa: E402
from docqa.errors import ProviderError  # noqa: E402
from docqa.provider import ChatCompletion, EmbeddingResult, Usage  # noqa: E402

DIMENSIONS = 64

# Crude synonym folding so questions can match documents with different wording
_SYNONYMS = {"vacation": "pto", "paid": "pto", "time": "pto", "off": "pto"}


def _tokens(text):
    words = re.findall(r"[a-z0-9]+", text.lower())
    return [_SYNONYMS.get(w, w) for w in words]


def bag_of_words_embedding(text):
    vector = [0.0] * DIMENSIONS
    for token in _tokens(text):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % DIMENSIONS
        vector[bucket] += 1.0
    return vector


class FakeProvider:
    """Deterministic stand-in for the remote model provider."""

    embedding_model = "fake-embedding"

    def __init__(self, answer="A grounded answer [Source 1].", chat_model="gpt-3.5-turbo",
                 usage=None, fail_embed_on=None, fail_complete_on=None):
        self.answer = answer
        self.chat_model = chat_model
        self.usage = usage or Usage(prompt_tokens=1000, completion_tokens=500, total_tokens=1500)
        self.fail_embed_on = fail_embed_on
        self.fail_complete_on = fail_complete_on
        self.embed_calls = []
        self.batch_calls = []
        self.complete_calls = []

    def embed(self, text):
        self.embed_calls.append(text)
        if self.fail_embed_on and self.fail_embed_on in text:
            raise ProviderError("embedding service unavailable", transient=True)
        return EmbeddingResult(
            text=text,
            embedding=bag_of_words_embedding(text),
            model=self.embedding_model,
            token_count=len(text.split()),
        )

    def embed_batch(self, texts):
        self.batch_calls.append(list(texts))
        return [self.embed(text) for text in texts]

    def complete(self, messages, max_tokens=800, temperature=0.7):
        self.complete_calls.append(
            {"messages": messages, "max_tokens": max_tokens, "temperature": temperature}
        )
        if self.fail_complete_on and self.fail_complete_on in messages[-1]["content"]:
            raise ProviderError("chat model overloaded", transient=True)
        answer = self.answer(messages) if callable(self.answer) else self.answer
        return ChatCompletion(text=answer, usage=self.usage, model=self.chat_model)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def knowledge_base(tmp_path):
    kb = tmp_path / "knowledge-base"
    kb.mkdir()
    (kb / "pto-policy.txt").write_text(
        "Paid time off is 15 days per year. Unused vacation days roll over.", encoding="utf-8"
    )
    (kb / "cloudsync.txt").write_text(
        "CloudSync Pro costs 12 dollars per month and includes 1 TB of storage.", encoding="utf-8"
    )
    (kb / "passwords.txt").write_text(
        "To reset your password open the account page and click forgot password.",
        encoding="utf-8",
    )
    return kb


@pytest.fixture
def settings(tmp_path, knowledge_base):
    return Settings(
        chunking=ChunkingConfig(chunk_size=50, chunk_overlap=5),
        paths=PathsConfig(
            knowledge_base_dir=str(knowledge_base),
            index_path=str(tmp_path / "index.json"),
            report_path=str(tmp_path / "report.json"),
        ),
    )
