"""
Generator Module

Takes a user question + retrieved chunks and produces a cited answer.
This is the "G" in RAG.

PROMPT ANATOMY:

┌─────────────────────────────────────────────────┐
│ SYSTEM MESSAGE                                  │
│ - Use only the provided context                 │
│ - Cite sources as [Source X]                    │
└─────────────────────────────────────────────────┘
                    +
┌─────────────────────────────────────────────────┐
│ USER MESSAGE                                    │
│ Context:                                        │
│ [Source 1: a.txt]                               │
│ ...chunk text...                                │
│ ---                                             │
│ [Source 2: b.txt]                               │
│ ...                                             │
│ Question: ...                                   │
└─────────────────────────────────────────────────┘

Source numbers are the 1-based ranks of the chunks, so "[Source 2]" in an
answer always refers to the second retrieved chunk.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from docqa.provider import ModelProvider, Usage
from docqa.vector_store import ScoredChunk

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Use the provided context to answer the question. "
    "Always cite your sources using the [Source X] format provided in the context. "
    "If you use information from multiple sources, mention all relevant sources."
)

CONTEXT_SEPARATOR = "\n\n---\n\n"

NO_CONTEXT_ANSWER = "I couldn't find any relevant information to answer your question."

# USD per 1K tokens
PRICING: Dict[str, Dict[str, float]] = {
    "gpt-3.5-turbo": {"input": 0.0015, "output": 0.002},
    "gpt-4o": {"input": 0.005, "output": 0.015},
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "text-embedding-3-small": {"input": 0.00002, "output": 0.0},
    "text-embedding-3-large": {"input": 0.00013, "output": 0.0},
    "text-embedding-ada-002": {"input": 0.0001, "output": 0.0},
}


def calculate_cost(usage: Usage, model: str) -> float:
    """
    Estimate the USD cost of one call from its token usage.

    Models missing from PRICING cost 0.0.
    """
    prices = PRICING.get(model)
    if prices is None:
        return 0.0

    input_cost = (usage.prompt_tokens / 1000) * prices["input"]
    output_cost = (usage.completion_tokens / 1000) * prices["output"]
    return input_cost + output_cost


def build_context(chunks: List[ScoredChunk]) -> str:
    """
    Concatenate the chunks as numbered sources, rank 1 first.

    FORMAT:
    [Source 1: file.txt]
    chunk text

    ---

    [Source 2: other.txt]
    chunk text
    """
    return CONTEXT_SEPARATOR.join(
        f"[Source {i}: {chunk.filename}]\n{chunk.text}"
        for i, chunk in enumerate(chunks, 1)
    )


def build_messages(
    question: str,
    chunks: List[ScoredChunk],
    system_prompt: str = SYSTEM_PROMPT
) -> List[Dict[str, str]]:
    """The two-message conversation sent to the chat model."""
    context = build_context(chunks)
    return [
        {"role": "system", "content": system_prompt},
        {
            "role": "user",
            "content": (
                f"Context:\n{context}\n\n"
                f"Question: {question}\n\n"
                "Please provide a comprehensive answer and cite your sources."
            ),
        },
    ]


@dataclass
class AnswerResult:
    """
    Result of answering one question.

    sources lists the cited filenames once each, in citation order.
    """
    answer: str
    usage: Usage
    cost: float
    model: str
    sources: List[str] = field(default_factory=list)
    prompt: Optional[str] = None  # For debugging


class Generator:
    """
    Compose grounded answers with the provider's chat model.

    No retries happen here: a ProviderError propagates to the caller,
    since a partial answer is worse than a reported failure.
    """

    def __init__(
        self,
        provider: ModelProvider,
        system_prompt: Optional[str] = None
    ):
        self.provider = provider
        self.system_prompt = system_prompt or SYSTEM_PROMPT

    @property
    def model(self) -> str:
        return self.provider.chat_model

    def answer(
        self,
        question: str,
        chunks: List[ScoredChunk],
        max_tokens: int = 800,
        temperature: float = 0.7,
        include_prompt_in_result: bool = False
    ) -> AnswerResult:
        """
        Generate an answer from the ranked chunks.

        Args:
            question: The user's question
            chunks: Retrieved chunks, best first
            max_tokens: Maximum tokens in the response
            temperature: 0 = deterministic, 1 = creative
            include_prompt_in_result: Keep the user message for debugging

        With no chunks the model is not called at all and a fixed
        "nothing found" answer with zero usage is returned.
        """
        if not chunks:
            return AnswerResult(
                answer=NO_CONTEXT_ANSWER,
                usage=Usage.zero(),
                cost=0.0,
                model=self.model,
            )

        messages = build_messages(question, chunks, self.system_prompt)
        completion = self.provider.complete(
            messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        cost = calculate_cost(completion.usage, completion.model)
        logger.debug("Answer used %d tokens, cost %.6f", completion.usage.total_tokens, cost)

        return AnswerResult(
            answer=completion.text,
            usage=completion.usage,
            cost=cost,
            model=completion.model,
            sources=list(dict.fromkeys(chunk.filename for chunk in chunks)),
            prompt=messages[1]["content"] if include_prompt_in_result else None,
        )
