from pathlib import Path

import pytest

from docqa.interactive import SessionStats, handle_input, run_interactive
from docqa.rag_pipeline import RAGPipeline

from conftest import FakeProvider


@pytest.fixture
def rag(settings):
    pipeline = RAGPipeline(FakeProvider(answer="15 days [Source 1]."), settings=settings)
    pipeline.build_index()
    return pipeline


def test_session_stats_are_immutable():
    empty = SessionStats()
    one = empty.record(0.002)
    two = one.record(0.004)

    assert empty.queries == 0
    assert one.costs == (0.002,)
    assert two.queries == 2
    assert two.total_cost == pytest.approx(0.006)
    assert two.average_cost == pytest.approx(0.003)
    assert two.projected_cost(100) == pytest.approx(0.3)
    assert empty.average_cost == 0.0


def test_question_updates_stats(rag, settings, capsys):
    stats, keep_running = handle_input(
        "How many vacation days?", SessionStats(), rag, settings.paths.knowledge_base_dir
    )

    assert keep_running
    assert stats.queries == 1
    assert stats.total_cost == pytest.approx(0.0025)
    out = capsys.readouterr().out
    assert "1. Source: pto-policy.txt" in out
    assert "15 days [Source 1]." in out
    assert "1000 input + 500 output = 1500 total" in out
    assert "Estimated cost: $0.002500" in out


def test_failed_question_keeps_loop_running(settings, capsys):
    rag = RAGPipeline(FakeProvider(fail_complete_on="vacation"), settings=settings)
    rag.build_index()

    stats, keep_running = handle_input(
        "How many vacation days?", SessionStats(), rag, settings.paths.knowledge_base_dir
    )

    assert keep_running
    assert stats.queries == 0
    assert "Error processing your question: chat model overloaded" in capsys.readouterr().out


def test_view_sources(rag, settings, capsys):
    handle_input("view sources", SessionStats(), rag, settings.paths.knowledge_base_dir)
    out = capsys.readouterr().out

    assert "cloudsync.txt" in out
    assert "pto-policy.txt (13 words)" in out


def test_view_document_adds_extension(rag, settings, capsys):
    handle_input("view pto-policy", SessionStats(), rag, settings.paths.knowledge_base_dir)
    out = capsys.readouterr().out

    assert "Document: pto-policy.txt" in out
    assert "Paid time off is 15 days per year." in out


def test_view_unknown_document(rag, settings, capsys):
    stats, keep_running = handle_input(
        "view ../secrets", SessionStats(), rag, settings.paths.knowledge_base_dir
    )
    assert keep_running
    assert "not found" in capsys.readouterr().out


def test_stats_and_empty_input(rag, settings, capsys):
    handle_input("STATS", SessionStats(), rag, settings.paths.knowledge_base_dir)
    assert "No queries processed in this session." in capsys.readouterr().out

    handle_input("   ", SessionStats(), rag, settings.paths.knowledge_base_dir)
    assert "Please enter a question or command." in capsys.readouterr().out


def test_run_interactive_until_exit(rag, settings, capsys):
    inputs = iter(["How many vacation days?", "stats", "exit", "never read"])

    stats = run_interactive(rag, settings.paths.knowledge_base_dir, input_fn=lambda prompt: next(inputs))

    assert stats.queries == 1
    out = capsys.readouterr().out
    assert "Queries processed: 1" in out
    assert "Goodbye!" in out
    assert next(inputs) == "never read"


def test_run_interactive_stops_at_end_of_input(rag, settings):
    def closed(prompt):
        raise EOFError

    assert run_interactive(rag, settings.paths.knowledge_base_dir, input_fn=closed).queries == 0


def test_undecodable_document_keeps_loop_running(rag, settings, capsys):
    kb = settings.paths.knowledge_base_dir
    (Path(kb) / "latin1.txt").write_bytes(b"caf\xe9 au lait")

    stats, keep_running = handle_input("view sources", SessionStats(), rag, kb)
    assert keep_running
    assert "latin1.txt is not valid UTF-8" in capsys.readouterr().out

    stats, keep_running = handle_input("view latin1", SessionStats(), rag, kb)
    assert keep_running
    assert "Could not read 'latin1.txt': latin1.txt is not valid UTF-8" in capsys.readouterr().out
