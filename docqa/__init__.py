# Smart Document Q&A package
from .errors import ConfigurationError, DataIntegrityError, DocQAError, ProviderError
from .chunking import Chunk, Document, DocumentLoader, chunk_document, chunk_text, load_knowledge_base
from .embeddings import cosine_similarity, find_most_similar
from .provider import ModelProvider, OpenAIProvider, Usage
from .vector_store import IndexRecord, ScoredChunk, load_index, retrieve_top_k, save_index
from .indexing import IndexingResult, build_index
from .generator import AnswerResult, Generator
from .rag_pipeline import QueryResult, RAGPipeline

__version__ = "0.1.0"
