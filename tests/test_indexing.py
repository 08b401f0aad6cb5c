import pytest

from docqa.chunking import Document
from docqa.errors import ConfigurationError, ProviderError
from docqa.indexing import build_index

from conftest import FakeProvider


def _docs():
    return [
        Document("a.txt", " ".join(f"a{i}" for i in range(12))),
        Document("b.txt", "short document"),
        Document("empty.txt", "   "),
    ]


def test_records_follow_document_then_chunk_order(provider):
    result = build_index(_docs(), provider, chunk_size=5, overlap=1)

    assert [r.id for r in result.records] == [
        "a.txt-chunk-0",
        "a.txt-chunk-1",
        "a.txt-chunk-2",
        "b.txt-chunk-0",
    ]
    assert result.records[1].text == "a4 a5 a6 a7 a8"
    assert result.documents_indexed == 3
    assert result.chunks_created == 4


def test_one_embedding_call_per_chunk(provider):
    result = build_index(_docs(), provider, chunk_size=5, overlap=1)

    assert provider.embed_calls == [r.text for r in result.records]
    assert provider.batch_calls == []
    assert result.tokens_used == sum(len(r.text.split()) for r in result.records)


def test_batching_produces_identical_records():
    single = build_index(_docs(), FakeProvider(), chunk_size=5, overlap=1)

    batched_provider = FakeProvider()
    batched = build_index(_docs(), batched_provider, chunk_size=5, overlap=1, batch_size=2)

    assert batched.records == single.records
    # Batches never mix documents
    assert batched_provider.batch_calls == [
        ["a0 a1 a2 a3 a4", "a4 a5 a6 a7 a8"],
        ["a8 a9 a10 a11"],
        ["short document"],
    ]


def test_provider_failure_aborts_build():
    failing = FakeProvider(fail_embed_on="short")
    with pytest.raises(ProviderError):
        build_index(_docs(), failing, chunk_size=5, overlap=1)


def test_empty_embedding_is_rejected():
    class BrokenProvider(FakeProvider):
        def embed(self, text):
            result = super().embed(text)
            result.embedding = []
            return result

    with pytest.raises(ProviderError):
        build_index(_docs(), BrokenProvider())


def test_invalid_batch_size(provider):
    with pytest.raises(ConfigurationError):
        build_index(_docs(), provider, batch_size=0)


def test_no_documents(provider):
    result = build_index([], provider)
    assert result.records == []
    assert result.chunks_created == 0
