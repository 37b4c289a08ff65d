"""
Cosine similarity and distance helpers.

Provides similarity computation between embeddings using numpy. Stored
embeddings are float32; all arithmetic here is carried out in float64 so
that population-wide sums stay reproducible.

Example:
    >>> from facerank.core.scoring.similarity import similarity_matrix
    >>> sims = similarity_matrix(unit_rows)
    >>> sims[0, 1]
"""

from __future__ import annotations

from typing import List, Union

import numpy as np

# Type alias for vectors
VectorLike = Union[np.ndarray, List[float]]


def batch_cosine_similarity_normalized(
    query: VectorLike,
    candidates: np.ndarray,
) -> np.ndarray:
    """
    Batch cosine similarity for pre-normalized vectors.

    Args:
        query: L2-normalized query vector of shape (dim,).
        candidates: L2-normalized matrix of shape (n, dim).

    Returns:
        Array of similarity scores, shape (n,).
    """
    q = np.asarray(query, dtype=np.float64)
    c = np.asarray(candidates, dtype=np.float64)

    if c.size == 0:
        return np.zeros(0, dtype=np.float64)

    # For normalized vectors, just compute dot products
    return np.clip(c @ q, -1.0, 1.0)


def similarity_matrix(embeddings: np.ndarray) -> np.ndarray:
    """
    Full pairwise cosine similarity matrix for pre-normalized rows.

    Args:
        embeddings: L2-normalized matrix of shape (n, dim).

    Returns:
        Symmetric matrix of shape (n, n).
    """
    e = np.asarray(embeddings, dtype=np.float64)
    return e @ e.T


def euclidean_distance(
    vec_a: VectorLike,
    vec_b: VectorLike,
) -> float:
    """
    Compute Euclidean distance between two vectors.

    Args:
        vec_a: First vector.
        vec_b: Second vector.

    Returns:
        Euclidean distance (0 = identical, higher = more different).

    Raises:
        ValueError: If vectors have different dimensions.
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    if a.shape != b.shape:
        raise ValueError(
            f"Vector dimensions must match: {a.shape} vs {b.shape}"
        )

    return float(np.linalg.norm(a - b))
