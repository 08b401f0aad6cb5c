"""
Smart Document Q&A - Demo Script

Asks a few sample questions against the saved index and prints each answer
with its sources and cost.

BEFORE RUNNING:
1. Copy .env.example to .env and set OPENAI_API_KEY
2. Build the index: python build_index.py

RUN:
    python demo.py
    python demo.py "How do I reset my password?"
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_settings
from docqa.errors import DocQAError
from docqa.formatting import format_cost
from docqa.interactive import show_query_result
from docqa.logging_utils import setup_logging
from docqa.provider import OpenAIProvider
from docqa.rag_pipeline import RAGPipeline

SAMPLE_QUESTIONS = [
    "What is the useState hook in React?",
    "How do arrow functions work in JavaScript?",
    "What are Core Web Vitals?",
]


def main(argv=None) -> int:
    settings = get_settings()
    setup_logging(settings.log_level)
    questions = (argv if argv is not None else sys.argv[1:]) or SAMPLE_QUESTIONS

    print("=" * 60)
    print("Smart Document Q&A Demo")
    print("=" * 60)

    try:
        rag = RAGPipeline.from_index_file(OpenAIProvider(settings.openai), settings=settings)
    except DocQAError as e:
        print(f"Could not load the index: {e}", file=sys.stderr)
        return 1

    stats = rag.get_stats()
    print(f"✓ Documents indexed: {stats['indexed_documents']}")
    print(f"✓ Total chunks: {stats['total_chunks']}\n")

    total_cost = 0.0
    for question in questions:
        print(f"Q: {question}")
        try:
            result = rag.query(question)
        except DocQAError as e:
            print(f"Error: {e}")
            return 1
        show_query_result(result)
        total_cost += result.cost
        print(f"⏱️ Time: {result.timing['total_ms']:.0f}ms")
        print("=" * 70)

    print(f"\nTotal cost for {len(questions)} questions: {format_cost(total_cost)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
