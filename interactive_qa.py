"""
Smart Document Q&A - interactive command line.

BEFORE RUNNING:
1. Put OPENAI_API_KEY in .env
2. Build the index: python build_index.py

RUN:
    python interactive_qa.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_settings
from docqa.errors import DocQAError
from docqa.interactive import run_interactive
from docqa.logging_utils import setup_logging
from docqa.provider import OpenAIProvider
from docqa.rag_pipeline import RAGPipeline


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        rag = RAGPipeline.from_index_file(OpenAIProvider(settings.openai), settings=settings)
    except DocQAError as e:
        print(f"Could not start: {e}", file=sys.stderr)
        return 1

    run_interactive(rag, settings.paths.knowledge_base_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
