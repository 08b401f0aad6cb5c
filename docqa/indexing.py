"""
Index building: documents -> chunks -> embeddings -> IndexRecords.

    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
    │ Document │───▶│ Chunking │───▶│Embedding │───▶│  Index   │
    │  (.txt)  │    │ (words)  │    │(provider)│    │  (JSON)  │
    └──────────┘    └──────────┘    └──────────┘    └──────────┘

The build is fail-fast: if any embedding call fails, the ProviderError
propagates and nothing is returned, so a half-built index never reaches
disk.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List

from docqa.chunking import Document, chunk_document
from docqa.errors import ConfigurationError, ProviderError
from docqa.provider import ModelProvider
from docqa.vector_store import IndexRecord

logger = logging.getLogger(__name__)


@dataclass
class IndexingResult:
    """Records produced by a build plus stats about it."""
    records: List[IndexRecord] = field(default_factory=list)
    documents_indexed: int = 0
    chunks_created: int = 0
    tokens_used: int = 0
    time_seconds: float = 0.0


def build_index(
    documents: List[Document],
    provider: ModelProvider,
    chunk_size: int = 500,
    overlap: int = 50,
    batch_size: int = 1
) -> IndexingResult:
    """
    Chunk and embed every document.

    Args:
        documents: Corpus documents, in the order records should appear
        provider: Embedding capability
        chunk_size: Words per chunk
        overlap: Words shared by consecutive chunks
        batch_size: Chunks of one document sent per embedding request.
            The records are identical for any batch size.

    Returns:
        IndexingResult whose records follow document order, then chunk order

    Raises:
        ProviderError: an embedding call failed or returned unusable data
        ConfigurationError: invalid chunking parameters or batch size
    """
    if batch_size < 1:
        raise ConfigurationError(f"batch_size must be at least 1, got {batch_size}")

    start_time = time.time()
    result = IndexingResult()

    for document in documents:
        chunks = chunk_document(document, chunk_size=chunk_size, overlap=overlap)
        logger.info("%s: %d chunks", document.filename, len(chunks))

        for i in range(0, len(chunks), batch_size):
            batch = chunks[i:i + batch_size]
            if batch_size == 1:
                embeddings = [provider.embed(batch[0].text)]
            else:
                embeddings = provider.embed_batch([chunk.text for chunk in batch])

            if len(embeddings) != len(batch):
                raise ProviderError(
                    f"Expected {len(batch)} embeddings for {document.filename}, "
                    f"got {len(embeddings)}"
                )

            for chunk, embedding in zip(batch, embeddings):
                if not embedding.embedding:
                    raise ProviderError(f"Empty embedding returned for {chunk.chunk_id}")
                result.records.append(IndexRecord(
                    id=chunk.chunk_id,
                    filename=chunk.source,
                    text=chunk.text,
                    embedding=list(embedding.embedding),
                ))
                result.tokens_used += embedding.token_count

        result.documents_indexed += 1
        result.chunks_created += len(chunks)

    result.time_seconds = time.time() - start_time
    logger.info(
        "Indexed %d documents into %d chunks using %d tokens in %.2fs",
        result.documents_indexed, result.chunks_created,
        result.tokens_used, result.time_seconds,
    )
    return result
