"""
RAG Pipeline - The Complete System

This module wires the components into a working Q&A system:
1. Indexing: knowledge base -> chunks -> embeddings -> index file
2. Query: question -> embedding -> top-K chunks -> cited answer + cost

QUERY PHASE:
┌──────────┐    ┌──────────┐    ┌──────────┐
│ Question │───▶│Embedding │───▶│  Cosine  │
│          │    │(provider)│    │  Top-K   │
└──────────┘    └──────────┘    └────┬─────┘
                                     │
                                     ▼
┌──────────┐    ┌──────────────────────────┐
│  Answer  │◀───│ Chat model               │
│ + cost   │    │ "[Source 1: a.txt] ...   │
└──────────┘    │  Question: ..."          │
                └──────────────────────────┘

The provider is passed in explicitly; settings default to the environment.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.settings import Settings, get_settings
from docqa.chunking import load_knowledge_base
from docqa.generator import AnswerResult, Generator
from docqa.indexing import IndexingResult, build_index
from docqa.provider import ModelProvider, Usage
from docqa.vector_store import IndexRecord, ScoredChunk, load_index, retrieve_top_k, save_index

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """
    Result of a RAG query.

    - retrieved_chunks: the ranked context, [Source i] == retrieved_chunks[i-1]
    - answer_result: generated text, usage and cost
    - timing: milliseconds per stage
    """
    question: str
    retrieved_chunks: List[ScoredChunk]
    answer_result: AnswerResult
    timing: Dict[str, float] = field(default_factory=dict)

    @property
    def answer(self) -> str:
        return self.answer_result.answer

    @property
    def usage(self) -> Usage:
        return self.answer_result.usage

    @property
    def cost(self) -> float:
        return self.answer_result.cost


class RAGPipeline:
    """
    Indexing and querying over one knowledge base.

    USAGE:
        provider = OpenAIProvider()

        # Index the corpus (once, or after any document change)
        rag = RAGPipeline(provider)
        rag.build_index("./knowledge-base")

        # Later runs just load the saved index
        rag = RAGPipeline.from_index_file(provider)
        result = rag.query("How many vacation days do I get?")
        print(result.answer)
    """

    def __init__(
        self,
        provider: ModelProvider,
        settings: Optional[Settings] = None,
        records: Optional[List[IndexRecord]] = None
    ):
        self.settings = settings or get_settings()
        self.provider = provider
        self.generator = Generator(provider)
        self.records: List[IndexRecord] = list(records or [])

    @classmethod
    def from_index_file(
        cls,
        provider: ModelProvider,
        settings: Optional[Settings] = None,
        index_path: Optional[str] = None
    ) -> "RAGPipeline":
        """Create a pipeline over a previously saved index."""
        settings = settings or get_settings()
        records = load_index(index_path or settings.paths.index_path)
        return cls(provider, settings=settings, records=records)

    def build_index(
        self,
        directory: Optional[str] = None,
        index_path: Optional[str] = None
    ) -> IndexingResult:
        """
        Rebuild the index from the knowledge base and save it.

        The previous index file is only replaced once every chunk has been
        embedded; a failure leaves it untouched.
        """
        directory = directory or self.settings.paths.knowledge_base_dir
        index_path = index_path or self.settings.paths.index_path
        chunking = self.settings.chunking

        documents = load_knowledge_base(directory)
        result = build_index(
            documents,
            self.provider,
            chunk_size=chunking.chunk_size,
            overlap=chunking.chunk_overlap,
            batch_size=chunking.embedding_batch_size,
        )
        save_index(result.records, index_path)
        self.records = result.records
        return result

    def retrieve(self, question: str, top_k: Optional[int] = None) -> List[ScoredChunk]:
        """The top_k chunks most similar to the question."""
        if top_k is None:
            top_k = self.settings.retrieval.top_k
        return retrieve_top_k(question, self.records, self.provider, top_k=top_k)

    def answer(self, question: str, chunks: List[ScoredChunk]) -> AnswerResult:
        """Compose a cited answer from already retrieved chunks."""
        generation = self.settings.generation
        return self.generator.answer(
            question,
            chunks,
            max_tokens=generation.max_tokens,
            temperature=generation.temperature,
        )

    def query(self, question: str, top_k: Optional[int] = None) -> QueryResult:
        """
        Retrieve, then answer.

        Provider failures propagate: a single query either fully succeeds
        or raises.
        """
        timing = {}

        start = time.time()
        chunks = self.retrieve(question, top_k=top_k)
        timing["retrieval_ms"] = (time.time() - start) * 1000

        start = time.time()
        answer_result = self.answer(question, chunks)
        timing["generation_ms"] = (time.time() - start) * 1000

        timing["total_ms"] = sum(timing.values())

        return QueryResult(
            question=question,
            retrieved_chunks=chunks,
            answer_result=answer_result,
            timing=timing,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Statistics about the loaded index."""
        documents = list(dict.fromkeys(record.filename for record in self.records))
        return {
            "indexed_documents": len(documents),
            "total_chunks": len(self.records),
            "documents": documents,
            "embedding_dimension": len(self.records[0].embedding) if self.records else 0,
        }
