"""
Evaluate retrieval accuracy and answer quality.

Runs the labelled test questions through the pipeline, prints a report and
saves the detailed results as JSON.

RUN:
    python evaluate.py
    python evaluate.py --questions data/evaluation/test_questions.json --report evaluation-report.json
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_settings
from docqa.errors import DocQAError
from docqa.evaluation import (
    EVALUATION_TOP_K,
    format_result_line,
    load_test_cases,
    render_report,
    run_evaluation,
    save_report,
)
from docqa.logging_utils import setup_logging
from docqa.provider import OpenAIProvider
from docqa.rag_pipeline import RAGPipeline


def main(argv=None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Evaluate the RAG system")
    parser.add_argument("--questions", default=settings.paths.test_questions_path)
    parser.add_argument("--report", default=settings.paths.report_path)
    parser.add_argument(
        "--top-k", type=int, default=EVALUATION_TOP_K,
        help="Chunks retrieved per question (accuracy is defined for 3)"
    )
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)

    try:
        test_cases = load_test_cases(args.questions)
        rag = RAGPipeline.from_index_file(OpenAIProvider(settings.openai), settings=settings)
    except DocQAError as e:
        print(f"Could not start evaluation: {e}", file=sys.stderr)
        return 1

    print("🧪 RAG SYSTEM EVALUATION")
    print("=" * 60)
    print(f"Running {len(test_cases)} test questions...")
    print()

    def show_progress(result):
        label = result.test_case.id if result.test_case.id is not None else "-"
        print(f"Question {label}: {result.test_case.question}")
        print(format_result_line(result))
        print()

    report = run_evaluation(test_cases, rag, top_k=args.top_k, on_result=show_progress)

    print()
    print(render_report(report))

    save_report(report, args.report)
    print(f"\n💾 Detailed results saved to {args.report}")
    return 0 if report.successful else 1


if __name__ == "__main__":
    sys.exit(main())
