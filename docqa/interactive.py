"""
Interactive Q&A loop.

Commands:
  <question>          ask anything about the knowledge base
  view sources        list the available documents
  view <filename>     print one document (".txt" is added when missing)
  stats               session cost statistics
  exit                show the statistics and quit

Requests are handled one at a time. Session statistics are an immutable
value: every handled input returns the (possibly updated) stats.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Tuple

from docqa.chunking import DocumentLoader, list_documents
from docqa.errors import DocQAError
from docqa.formatting import format_cost, format_similarity_score, preview
from docqa.rag_pipeline import QueryResult, RAGPipeline

logger = logging.getLogger(__name__)

RULE = "=" * 50


@dataclass(frozen=True)
class SessionStats:
    """Costs of the queries answered so far."""
    costs: Tuple[float, ...] = ()

    def record(self, cost: float) -> "SessionStats":
        return SessionStats(costs=self.costs + (cost,))

    @property
    def queries(self) -> int:
        return len(self.costs)

    @property
    def total_cost(self) -> float:
        return sum(self.costs)

    @property
    def average_cost(self) -> float:
        return self.total_cost / self.queries if self.queries else 0.0

    def projected_cost(self, queries: int = 100) -> float:
        return self.average_cost * queries


def print_banner():
    print("Smart Document Q&A System")
    print(RULE)
    print("Ask questions about the documents in the knowledge base!")
    print("Available commands:")
    print("  - Ask any question")
    print("  - 'view sources' - See all available documents")
    print("  - 'view [filename]' - Read a specific document")
    print("  - 'stats' - View session statistics")
    print("  - 'exit' - Quit the application")
    print(RULE)


def show_session_stats(stats: SessionStats):
    print("\nSESSION STATISTICS:")
    print(RULE)

    if not stats.queries:
        print("No queries processed in this session.")
        return

    print(f"Queries processed: {stats.queries}")
    print(f"Total cost: {format_cost(stats.total_cost)}")
    print(f"Average cost per query: {format_cost(stats.average_cost)}")
    print(f"Estimated cost per 100 queries: ${stats.projected_cost(100):.4f}")


def show_available_documents(knowledge_base_dir: str):
    try:
        documents = list_documents(knowledge_base_dir)
    except DocQAError as e:
        print(f"Error reading knowledge base: {e}")
        return

    print("\nAvailable Documents:")
    print(RULE)

    if not documents:
        print("No documents found in knowledge base.")
        return

    for info in documents:
        print(f" {info.filename} ({info.word_count} words)")
        print(f"   Preview: {info.preview}...")
        print()


def view_document(knowledge_base_dir: str, filename: str):
    if not filename.endswith(".txt"):
        filename += ".txt"

    # Only plain names inside the knowledge base
    path = Path(knowledge_base_dir) / Path(filename).name
    try:
        document = DocumentLoader.load(str(path))
    except DocQAError as e:
        if path.is_file():
            print(f"Could not read '{filename}': {e}")
        else:
            print(f"Document '{filename}' not found. Use 'view sources' to see available documents.")
        return

    print(f"\nDocument: {document.filename}")
    print(RULE)
    print(document.content)


def show_query_result(result: QueryResult):
    print("\nTOP RELEVANT SOURCES:")
    print(RULE)
    for i, chunk in enumerate(result.retrieved_chunks, 1):
        print(f"{i}. Source: {chunk.filename}")
        print(f"   Similarity: {format_similarity_score(chunk.similarity_score)}")
        print(f"   Preview: {preview(chunk.text)}")
        print()

    print("\nANSWER:")
    print(RULE)
    print(result.answer)

    usage = result.usage
    print("\nQUERY STATISTICS:")
    print(RULE)
    print(
        f"Tokens used: {usage.prompt_tokens} input + {usage.completion_tokens} output "
        f"= {usage.total_tokens} total"
    )
    print(f"Estimated cost: {format_cost(result.cost)}")


def handle_input(
    line: str,
    stats: SessionStats,
    pipeline: RAGPipeline,
    knowledge_base_dir: str
) -> Tuple[SessionStats, bool]:
    """
    Process one line of user input.

    Returns:
        (stats, keep_running)
    """
    command = line.strip().lower()

    if command == "exit":
        show_session_stats(stats)
        print("\nGoodbye!")
        return stats, False

    if command == "stats":
        show_session_stats(stats)
        return stats, True

    if command == "view sources":
        show_available_documents(knowledge_base_dir)
        return stats, True

    if command.startswith("view "):
        view_document(knowledge_base_dir, line.strip()[5:].strip())
        return stats, True

    if not command:
        print("Please enter a question or command.")
        return stats, True

    try:
        result = pipeline.query(line.strip())
    except DocQAError as e:
        logger.debug("Query failed", exc_info=True)
        print(f"Error processing your question: {e}")
        return stats, True

    show_query_result(result)
    return stats.record(result.cost), True


def run_interactive(
    pipeline: RAGPipeline,
    knowledge_base_dir: str,
    input_fn: Callable[[str], str] = input
) -> SessionStats:
    """Read commands until 'exit' or end of input; returns the final stats."""
    print_banner()

    stats = SessionStats()
    keep_running = True
    while keep_running:
        try:
            line = input_fn("\nYour question: ")
        except EOFError:
            show_session_stats(stats)
            break
        stats, keep_running = handle_input(line, stats, pipeline, knowledge_base_dir)

    return stats
