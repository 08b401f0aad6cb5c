"""
Evaluation Module

Runs a fixed set of labelled questions through the pipeline and measures
how well it retrieves and answers.

PER-QUESTION METRICS:
- retrieval_accuracy: share of the expected source files that appear among
  the retrieved chunks, in percent
- keyword_coverage: share of the expected keywords found in the answer
  (case-insensitive substring match), in percent
- answer_quality: integer 1-5,
      round_half_up(clamp(coverage/100 * 3 + accuracy/100 * 2, 1, 5))
  A heuristic kept as-is so scores stay comparable between runs.
- top_source_relevance: similarity score of the rank-1 chunk

BATCH BEHAVIOUR:
Unlike a single interactive query, one failing question does not stop the
run. The error is logged, the question is recorded as failed, and the
report is computed over the questions that succeeded.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from docqa.errors import ConfigurationError, DocQAError
from docqa.formatting import format_cost, format_similarity_score
from docqa.provider import Usage
from docqa.rag_pipeline import RAGPipeline
from docqa.vector_store import ScoredChunk

logger = logging.getLogger(__name__)

# Retrieval accuracy is defined over the top 3 chunks, whatever TOP_K is
EVALUATION_TOP_K = 3


@dataclass(frozen=True)
class TestCase:
    """A labelled question: which files should be retrieved, which words answered."""
    __test__ = False  # not a pytest class

    question: str
    expected_sources: FrozenSet[str]
    expected_keywords: Tuple[str, ...]
    id: Optional[int] = None

    def __post_init__(self):
        if not self.question.strip():
            raise ConfigurationError("Test question must not be empty")
        if not self.expected_sources:
            raise ConfigurationError(f"Test question {self.question!r} has no expected sources")
        if not self.expected_keywords:
            raise ConfigurationError(f"Test question {self.question!r} has no expected keywords")
        object.__setattr__(self, "expected_sources", frozenset(self.expected_sources))
        # Keywords form a set; the tuple only keeps them in a stable display order
        object.__setattr__(self, "expected_keywords", tuple(dict.fromkeys(self.expected_keywords)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCase":
        try:
            return cls(
                id=data.get("id"),
                question=data["question"],
                expected_sources=frozenset(data["expected_sources"]),
                expected_keywords=tuple(data["expected_keywords"]),
            )
        except KeyError as e:
            raise ConfigurationError(f"Test question is missing field {e}") from e


@dataclass(frozen=True)
class EvaluationMetrics:
    retrieval_accuracy: float
    keyword_coverage: float
    answer_quality: int
    top_source_relevance: float
    expected_sources_found: int
    keywords_found: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retrieval_accuracy": self.retrieval_accuracy,
            "keyword_coverage": self.keyword_coverage,
            "answer_quality": self.answer_quality,
            "top_source_relevance": self.top_source_relevance,
            "expected_sources_found": self.expected_sources_found,
            "keywords_found": self.keywords_found,
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome for one test question; `error` is set when it failed."""
    test_case: TestCase
    retrieved_chunks: Tuple[ScoredChunk, ...] = ()
    answer: str = ""
    metrics: Optional[EvaluationMetrics] = None
    usage: Usage = field(default_factory=Usage.zero)
    cost: float = 0.0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """JSON form for the detailed report (embeddings left out)."""
        return {
            "id": self.test_case.id,
            "question": self.test_case.question,
            "expected_sources": sorted(self.test_case.expected_sources),
            "expected_keywords": list(self.test_case.expected_keywords),
            "retrieved_chunks": [
                {
                    "id": chunk.id,
                    "filename": chunk.filename,
                    "similarity_score": chunk.similarity_score,
                    "text": chunk.text,
                }
                for chunk in self.retrieved_chunks
            ],
            "answer": self.answer,
            "evaluation": self.metrics.to_dict() if self.metrics else None,
            "usage": self.usage.to_dict(),
            "cost": self.cost,
            "error": self.error,
        }


@dataclass(frozen=True)
class SourceStats:
    """How often a file was retrieved across the run, and how often at rank 1."""
    total: int = 0
    top_rank: int = 0

    @property
    def top_rank_percentage(self) -> float:
        return (self.top_rank / self.total) * 100 if self.total else 0.0


@dataclass(frozen=True)
class EvaluationReport:
    """Aggregates over the successful results of one evaluation run."""
    results: Tuple[EvaluationResult, ...]
    avg_retrieval_accuracy: float = 0.0
    avg_answer_quality: float = 0.0
    avg_keyword_coverage: float = 0.0
    avg_top_source_relevance: float = 0.0
    total_cost: float = 0.0
    total_tokens: int = 0
    best: Optional[EvaluationResult] = None
    worst: Optional[EvaluationResult] = None
    source_breakdown: Dict[str, SourceStats] = field(default_factory=dict)

    @property
    def successful(self) -> List[EvaluationResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> List[EvaluationResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def average_cost(self) -> float:
        count = len(self.successful)
        return self.total_cost / count if count else 0.0

    @property
    def average_tokens(self) -> float:
        count = len(self.successful)
        return self.total_tokens / count if count else 0.0

    def summary(self) -> Dict[str, Any]:
        return {
            "total_questions": len(self.results),
            "successful_questions": len(self.successful),
            "failed_questions": len(self.failed),
            "avg_retrieval_accuracy": self.avg_retrieval_accuracy,
            "avg_answer_quality": self.avg_answer_quality,
            "avg_keyword_coverage": self.avg_keyword_coverage,
            "avg_top_source_relevance": self.avg_top_source_relevance,
            "total_cost": self.total_cost,
            "total_tokens": self.total_tokens,
        }


def round_half_up(value: float) -> int:
    """round() that sends .5 upwards instead of to the nearest even number."""
    return int(math.floor(value + 0.5))


def score_case(
    test_case: TestCase,
    retrieved_chunks: List[ScoredChunk],
    answer: str
) -> EvaluationMetrics:
    """Compute the metrics of one answered question."""
    retrieved_sources = {chunk.filename for chunk in retrieved_chunks}
    expected_found = len(test_case.expected_sources & retrieved_sources)
    retrieval_accuracy = (expected_found / len(test_case.expected_sources)) * 100

    answer_lower = answer.lower()
    keywords_found = sum(
        1 for keyword in test_case.expected_keywords if keyword.lower() in answer_lower
    )
    keyword_coverage = (keywords_found / len(test_case.expected_keywords)) * 100

    composite = (keyword_coverage / 100) * 3 + (retrieval_accuracy / 100) * 2
    answer_quality = round_half_up(min(5.0, max(1.0, composite)))

    return EvaluationMetrics(
        retrieval_accuracy=retrieval_accuracy,
        keyword_coverage=keyword_coverage,
        answer_quality=answer_quality,
        top_source_relevance=retrieved_chunks[0].similarity_score if retrieved_chunks else 0.0,
        expected_sources_found=expected_found,
        keywords_found=keywords_found,
    )


def evaluate_case(
    test_case: TestCase,
    pipeline: RAGPipeline,
    top_k: int = EVALUATION_TOP_K
) -> EvaluationResult:
    """Retrieve, answer and score one question. Provider errors propagate."""
    chunks = pipeline.retrieve(test_case.question, top_k=top_k)
    answer_result = pipeline.answer(test_case.question, chunks)
    return EvaluationResult(
        test_case=test_case,
        retrieved_chunks=tuple(chunks),
        answer=answer_result.answer,
        metrics=score_case(test_case, chunks, answer_result.answer),
        usage=answer_result.usage,
        cost=answer_result.cost,
    )


def run_evaluation(
    test_cases: Iterable[TestCase],
    pipeline: RAGPipeline,
    top_k: int = EVALUATION_TOP_K,
    on_result: Optional[Callable[[EvaluationResult], None]] = None
) -> EvaluationReport:
    """
    Evaluate every test case and aggregate a report.

    Args:
        test_cases: Labelled questions, evaluated in order
        pipeline: A pipeline with a loaded index
        top_k: Chunks retrieved per question (retrieval accuracy is
            defined for 3; other values are for experiments)
        on_result: Called after each question (progress output)
    """
    results: List[EvaluationResult] = []

    for test_case in test_cases:
        try:
            result = evaluate_case(test_case, pipeline, top_k=top_k)
        except DocQAError as e:
            logger.error("Question %r failed: %s", test_case.question, e)
            result = EvaluationResult(test_case=test_case, error=str(e))
        except Exception as e:
            logger.error("Question %r failed unexpectedly", test_case.question, exc_info=True)
            result = EvaluationResult(test_case=test_case, error=f"{type(e).__name__}: {e}")

        results.append(result)
        if on_result is not None:
            on_result(result)

    return summarize_results(results)


def summarize_results(results: List[EvaluationResult]) -> EvaluationReport:
    """
    Build the report. Averages, best/worst and the source breakdown only
    consider successful results; ties for best/worst go to the earliest.
    """
    successful = [r for r in results if r.succeeded]
    if not successful:
        return EvaluationReport(results=tuple(results))

    count = len(successful)

    best = successful[0]
    worst = successful[0]
    for result in successful[1:]:
        if result.metrics.retrieval_accuracy > best.metrics.retrieval_accuracy:
            best = result
        if result.metrics.retrieval_accuracy < worst.metrics.retrieval_accuracy:
            worst = result

    breakdown: Dict[str, SourceStats] = {}
    for result in successful:
        for rank, chunk in enumerate(result.retrieved_chunks):
            stats = breakdown.get(chunk.filename, SourceStats())
            breakdown[chunk.filename] = SourceStats(
                total=stats.total + 1,
                top_rank=stats.top_rank + (1 if rank == 0 else 0),
            )

    return EvaluationReport(
        results=tuple(results),
        avg_retrieval_accuracy=sum(r.metrics.retrieval_accuracy for r in successful) / count,
        avg_answer_quality=sum(r.metrics.answer_quality for r in successful) / count,
        avg_keyword_coverage=sum(r.metrics.keyword_coverage for r in successful) / count,
        avg_top_source_relevance=sum(r.metrics.top_source_relevance for r in successful) / count,
        total_cost=sum(r.cost for r in successful),
        total_tokens=sum(r.usage.total_tokens for r in successful),
        best=best,
        worst=worst,
        source_breakdown=breakdown,
    )


def format_result_line(result: EvaluationResult) -> str:
    """Progress output for one evaluated question."""
    if not result.succeeded:
        return f"  ❌ Error: {result.error}"

    metrics = result.metrics
    if result.retrieved_chunks:
        top = result.retrieved_chunks[0]
        top_source = f"{top.filename} ({format_similarity_score(top.similarity_score)})"
    else:
        top_source = "none"
    return (
        f"  ✓ Retrieval Accuracy: {metrics.retrieval_accuracy:g}%\n"
        f"  ✓ Answer Quality: {metrics.answer_quality}/5\n"
        f"  ✓ Top Source: {top_source}"
    )


def render_report(report: EvaluationReport) -> str:
    """The console evaluation report."""
    lines = ["📊 EVALUATION REPORT", "=" * 60]

    if not report.successful:
        lines.append(f"No successful questions ({len(report.failed)} failed).")
        return "\n".join(lines)

    count = len(report.successful)
    lines += [
        "📈 PERFORMANCE METRICS:",
        f"  Average Retrieval Accuracy: {report.avg_retrieval_accuracy:.1f}%",
        f"  Average Answer Quality: {report.avg_answer_quality:.1f}/5",
        f"  Average Keyword Coverage: {report.avg_keyword_coverage:.1f}%",
        f"  Average Top Source Relevance: {format_similarity_score(report.avg_top_source_relevance)}",
        "",
        "💰 COST ANALYSIS:",
        f"  Total Cost: {format_cost(report.total_cost)}",
        f"  Average Cost per Question: {format_cost(report.average_cost)}",
        f"  Total Tokens Used: {report.total_tokens}",
        f"  Average Tokens per Question: {round_half_up(report.average_tokens)}",
    ]

    for title, result in (("🏆 BEST PERFORMANCE:", report.best), ("⚠️ NEEDS IMPROVEMENT:", report.worst)):
        lines += [
            "",
            title,
            f"  Question: {result.test_case.question}",
            f"  Retrieval Accuracy: {result.metrics.retrieval_accuracy:g}%",
            f"  Answer Quality: {result.metrics.answer_quality}/5",
        ]

    lines += ["", "📚 SOURCE ACCURACY BREAKDOWN:"]
    for source, stats in report.source_breakdown.items():
        lines.append(
            f"  {source}: Retrieved {stats.total} times, top rank {stats.top_rank} times "
            f"({stats.top_rank_percentage:.1f}%)"
        )

    if report.failed:
        lines += ["", f"❌ FAILED QUESTIONS: {len(report.failed)} of {count + len(report.failed)}"]
        for result in report.failed:
            lines.append(f"  {result.test_case.question}: {result.error}")

    return "\n".join(lines)


def save_report(report: EvaluationReport, file_path: str, timestamp: Optional[datetime] = None):
    """Write the summary and every per-question result as JSON."""
    timestamp = timestamp or datetime.now(timezone.utc)
    data = {
        "timestamp": timestamp.isoformat(),
        "summary": report.summary(),
        "source_breakdown": {
            source: {
                "total": stats.total,
                "top_rank": stats.top_rank,
                "top_rank_percentage": stats.top_rank_percentage,
            }
            for source, stats in report.source_breakdown.items()
        },
        "results": [result.to_dict() for result in report.results],
    }

    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    logger.info("Saved evaluation report to %s", file_path)


def load_test_cases(file_path: str) -> List[TestCase]:
    """Read labelled questions from a JSON list."""
    path = Path(file_path)
    if not path.is_file():
        raise ConfigurationError(f"Test question file not found: {file_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Test question file {file_path} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ConfigurationError(f"Test question file {file_path} must contain a list")
    return [TestCase.from_dict(item) for item in data]
