"""
Vector Store Module

The index is a flat list of IndexRecords (chunk text + embedding) kept in
memory and persisted as a single JSON file.

LIFECYCLE:
- Built wholesale by docqa.indexing.build_index
- Saved with save_index, which replaces any previous file in one step
- Loaded wholesale with load_index and never mutated afterwards;
  any corpus change means a full rebuild

SEARCH:
Brute force: the query is compared to every stored vector. That is exact
and fast enough for a few thousand chunks.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from docqa.embeddings import find_most_similar
from docqa.errors import ConfigurationError, DataIntegrityError
from docqa.provider import ModelProvider

logger = logging.getLogger(__name__)


@dataclass
class IndexRecord:
    """
    A chunk stored in the index.

    id is "{filename}-chunk-{chunk_index}".
    """
    id: str
    filename: str
    text: str
    embedding: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "text": self.text,
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexRecord":
        try:
            return cls(
                id=str(data["id"]),
                filename=str(data["filename"]),
                text=str(data["text"]),
                embedding=[float(x) for x in data["embedding"]],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataIntegrityError(f"Malformed index record: {e!r}") from e


@dataclass
class ScoredChunk:
    """
    An index record with its similarity to the current query.

    Only exists for the duration of one query.
    """
    record: IndexRecord
    similarity_score: float

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def filename(self) -> str:
        return self.record.filename

    @property
    def text(self) -> str:
        return self.record.text

    def __repr__(self):
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        return f"ScoredChunk(score={self.similarity_score:.4f}, source={self.filename}, text='{preview}')"


def save_index(records: List[IndexRecord], file_path: str):
    """
    Write the index to a JSON file, replacing whatever was there.

    The data goes to a temporary file next to the target first, so a
    crash mid-write never leaves a truncated index behind. Serialization
    is deterministic: the same records always produce the same bytes.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps([record.to_dict() for record in records], ensure_ascii=False)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    logger.info("Saved %d index records to %s", len(records), file_path)


def load_index(file_path: str) -> List[IndexRecord]:
    """
    Load an index written by save_index.

    Raises:
        ConfigurationError: the file does not exist (build the index first)
        DataIntegrityError: the file is not a valid index
    """
    path = Path(file_path)
    if not path.is_file():
        raise ConfigurationError(
            f"Index file not found: {file_path}. Run build_index.py first."
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DataIntegrityError(f"Index file {file_path} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise DataIntegrityError(f"Index file {file_path} must contain a list of records")

    records = [IndexRecord.from_dict(item) for item in data]
    logger.info("Loaded %d index records from %s", len(records), file_path)
    return records


def rank_records(
    query_embedding: List[float],
    records: List[IndexRecord],
    top_k: int = 3
) -> List[ScoredChunk]:
    """
    Score every record against the query and keep the best top_k.

    Returns min(top_k, len(records)) chunks sorted by non-increasing
    similarity; ties keep index order.
    """
    if top_k < 0:
        raise ConfigurationError(f"top_k must be non-negative, got {top_k}")

    ranked = find_most_similar(
        query_embedding,
        [record.embedding for record in records],
        top_k=top_k,
    )
    return [ScoredChunk(record=records[i], similarity_score=score) for i, score in ranked]


def retrieve_top_k(
    query: str,
    records: List[IndexRecord],
    provider: ModelProvider,
    top_k: int = 3
) -> List[ScoredChunk]:
    """
    Embed the query and return the top_k most similar chunks.

    An empty index is a valid (if unhelpful) state: the result is an empty
    list and the provider is not called.
    """
    if not records:
        logger.warning("Index is empty; nothing to retrieve for %r", query)
        return []

    query_embedding = provider.embed(query).embedding
    return rank_records(query_embedding, records, top_k=top_k)
