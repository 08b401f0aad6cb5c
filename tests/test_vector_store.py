import json

import pytest

from docqa.errors import ConfigurationError, DataIntegrityError
from docqa.vector_store import (
    IndexRecord,
    ScoredChunk,
    load_index,
    rank_records,
    retrieve_top_k,
    save_index,
)


def _record(name, embedding, i=0):
    return IndexRecord(id=f"{name}-chunk-{i}", filename=name, text=f"text of {name}", embedding=embedding)


@pytest.fixture
def records():
    return [
        _record("a.txt", [1.0, 0.0, 0.0]),
        _record("b.txt", [0.0, 1.0, 0.0]),
        _record("c.txt", [0.7, 0.7, 0.0]),
        _record("d.txt", [0.0, 0.0, 1.0]),
    ]


def test_save_and_load_round_trip(tmp_path, records):
    path = tmp_path / "index.json"
    save_index(records, str(path))
    assert load_index(str(path)) == records


def test_saved_file_is_a_plain_json_list(tmp_path, records):
    path = tmp_path / "index.json"
    save_index(records, str(path))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[0] == {
        "id": "a.txt-chunk-0",
        "filename": "a.txt",
        "text": "text of a.txt",
        "embedding": [1.0, 0.0, 0.0],
    }


def test_save_replaces_previous_index(tmp_path, records):
    path = tmp_path / "index.json"
    save_index(records, str(path))
    save_index(records[:1], str(path))

    assert load_index(str(path)) == records[:1]
    # No temporary files are left behind
    assert [p.name for p in tmp_path.iterdir()] == ["index.json"]


def test_save_is_deterministic(tmp_path, records):
    first, second = tmp_path / "one.json", tmp_path / "two.json"
    save_index(records, str(first))
    save_index(list(records), str(second))
    assert first.read_bytes() == second.read_bytes()


def test_save_creates_parent_directories(tmp_path, records):
    path = tmp_path / "nested" / "dir" / "index.json"
    save_index(records, str(path))
    assert path.is_file()


def test_load_missing_index(tmp_path):
    with pytest.raises(ConfigurationError):
        load_index(str(tmp_path / "missing.json"))


def test_load_invalid_json(tmp_path):
    path = tmp_path / "index.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(DataIntegrityError):
        load_index(str(path))


def test_load_rejects_non_list(tmp_path):
    path = tmp_path / "index.json"
    path.write_text('{"id": "x"}', encoding="utf-8")
    with pytest.raises(DataIntegrityError):
        load_index(str(path))


def test_load_rejects_record_without_embedding(tmp_path):
    path = tmp_path / "index.json"
    path.write_text('[{"id": "a", "filename": "a.txt", "text": "t"}]', encoding="utf-8")
    with pytest.raises(DataIntegrityError):
        load_index(str(path))


def test_rank_records_sorted_and_truncated(records):
    ranked = rank_records([1.0, 0.1, 0.0], records, top_k=3)

    assert [c.filename for c in ranked] == ["a.txt", "c.txt", "b.txt"]
    scores = [c.similarity_score for c in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(isinstance(c, ScoredChunk) for c in ranked)


@pytest.mark.parametrize("k,expected", [(0, 0), (1, 1), (4, 4), (10, 4)])
def test_rank_records_length(records, k, expected):
    assert len(rank_records([1.0, 0.0, 0.0], records, top_k=k)) == expected


def test_rank_records_ties_keep_index_order():
    tied = [_record("x.txt", [0.0, 1.0], 0), _record("y.txt", [0.0, 2.0], 1), _record("z.txt", [0.0, 3.0], 2)]
    ranked = rank_records([0.0, 1.0], tied, top_k=3)
    assert [c.filename for c in ranked] == ["x.txt", "y.txt", "z.txt"]


def test_rank_records_negative_k(records):
    with pytest.raises(ConfigurationError):
        rank_records([1.0, 0.0, 0.0], records, top_k=-1)


def test_rank_records_dimension_mismatch(records):
    with pytest.raises(DataIntegrityError):
        rank_records([1.0, 0.0], records, top_k=2)


def test_scored_chunk_exposes_record_fields(records):
    chunk = ScoredChunk(record=records[0], similarity_score=0.5)
    assert chunk.id == "a.txt-chunk-0"
    assert chunk.filename == "a.txt"
    assert chunk.text == "text of a.txt"


def test_retrieve_top_k_empty_index_skips_provider(provider):
    assert retrieve_top_k("anything?", [], provider, top_k=3) == []
    assert provider.embed_calls == []


def test_retrieve_top_k_embeds_query(provider):
    records = [
        IndexRecord(id="pto.txt-chunk-0", filename="pto.txt", text="pto days",
                    embedding=provider.embed("Paid time off is 15 days per year.").embedding),
    ]
    result = retrieve_top_k("How many vacation days?", records, provider, top_k=3)

    assert len(result) == 1
    assert result[0].filename == "pto.txt"
    assert provider.embed_calls[-1] == "How many vacation days?"
