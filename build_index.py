"""
Build the knowledge base index.

Chunks every .txt file of the knowledge base, embeds each chunk and writes
the complete index to a JSON file, replacing any previous one.

RUN:
    python build_index.py
    python build_index.py --knowledge-base ./knowledge-base --output ./knowledge-base-index.json
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_settings
from docqa.errors import DocQAError
from docqa.logging_utils import setup_logging
from docqa.provider import OpenAIProvider
from docqa.rag_pipeline import RAGPipeline


def main(argv=None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Create the knowledge base index")
    parser.add_argument("--knowledge-base", default=settings.paths.knowledge_base_dir)
    parser.add_argument("--output", default=settings.paths.index_path)
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)

    print("==== Creating knowledge base index ====")
    try:
        rag = RAGPipeline(OpenAIProvider(settings.openai), settings=settings)
        result = rag.build_index(args.knowledge_base, args.output)
    except DocQAError as e:
        print(f"Index build failed: {e}", file=sys.stderr)
        return 1

    print(f"✓ Indexed {result.documents_indexed} documents")
    print(f"✓ Created {result.chunks_created} chunks")
    print(f"✓ Used {result.tokens_used} tokens for embeddings")
    print(f"✓ Saved index to {args.output} in {result.time_seconds:.2f} seconds")
    return 0


if __name__ == "__main__":
    sys.exit(main())
