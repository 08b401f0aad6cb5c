"""
Embeddings Module

WHAT ARE EMBEDDINGS:
Embeddings convert text into vectors (lists of numbers) that capture meaning.
Similar texts have similar vectors, so related content can be found with
vector math instead of keyword matching.

    "How do I reset my password?"  ->  [0.023, -0.041, 0.089, ..., 0.012]
    "Steps to change a password"   ->  [0.025, -0.038, 0.091, ..., 0.010]
    "What is CloudSync Pro's price" ->  [0.512, 0.103, -0.234, ..., 0.891]

The vectors themselves come from the model provider (see docqa.provider).
This module holds the similarity math used to compare them.

COSINE SIMILARITY:
Measures the angle between two vectors:
  -  1.0 = identical direction
  -  0.0 = perpendicular (unrelated)
  - -1.0 = opposite (rare in practice)
"""

from typing import List, Sequence, Tuple

import numpy as np

from docqa.errors import DataIntegrityError


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    FORMULA:
    cosine_similarity = (A · B) / (||A|| * ||B||)

    A zero-magnitude vector carries no direction, so any comparison with
    it scores 0.0.

    Raises:
        DataIntegrityError: if the vectors differ in length (embeddings
            from different models were mixed)

    EXAMPLE:
    A = [1, 0, 0], B = [1, 0, 0]  ->  1.0
    A = [1, 0, 0], B = [0, 1, 0]  ->  0.0
    """
    if len(vec1) != len(vec2):
        raise DataIntegrityError(
            f"Embedding dimensions differ: {len(vec1)} vs {len(vec2)}. "
            "Was the index built with a different embedding model? Rebuild it."
        )

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)

    magnitude_a = np.linalg.norm(a)
    magnitude_b = np.linalg.norm(b)

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return float(np.dot(a, b) / (magnitude_a * magnitude_b))


def find_most_similar(
    query_embedding: Sequence[float],
    document_embeddings: Sequence[Sequence[float]],
    top_k: int = 3
) -> List[Tuple[int, float]]:
    """
    Find the most similar documents to a query.

    Args:
        query_embedding: The embedding of the user's question
        document_embeddings: Embeddings of the indexed chunks
        top_k: Number of results to return

    Returns:
        (position, similarity) pairs, highest similarity first. Equal
        scores keep their original order.

    TIME COMPLEXITY:
    O(n * d) where n = number of chunks, d = embedding dimension.
    Fine for a small corpus; large collections need an ANN index.
    """
    similarities = [
        (i, cosine_similarity(query_embedding, doc_embedding))
        for i, doc_embedding in enumerate(document_embeddings)
    ]

    # list.sort is stable, also with reverse=True
    similarities.sort(key=lambda x: x[1], reverse=True)

    return similarities[:top_k]
