"""
Population-relative percentile scoring.

A subject's *affinity* is its mean cosine similarity to every other
subject in the population. Its *score* is the percentile rank of that
affinity among all affinities:

    rank(v) = (#{p < v} + 0.5 * #{p == v}) / n

scaled to [0, 100] and rounded half-up to one decimal. Populations of one
or two subjects have no peer group to rank against and score 100.

Note that this rewards being typical of the population (high similarity to
everyone else); it is not an independent attractiveness measure. The
behaviour is kept exactly as specified and covered by tests.

Two strategies compute the same affinities:

- ``pairwise``: the full n x n similarity matrix, O(n^2 D). The reference.
- ``centroid``: with unit vectors, ``sum_j x.e_j = x.S`` where ``S`` is the
  sum of all embeddings, so each affinity is ``(x.S - x.x) / (n - 1)``.
  O(n D).

``auto`` uses pairwise up to ``exact_threshold`` subjects.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from facerank.utils.config import RankingConfig
from facerank.utils.logger import get_logger, log_execution_time

from .similarity import batch_cosine_similarity_normalized, similarity_matrix

logger = get_logger(__name__)

PAIRWISE = "pairwise"
CENTROID = "centroid"
AUTO = "auto"

#: Score given to every subject when there is at most one peer.
LONE_SUBJECT_SCORE = 100.0


def round_half_up(value: float, decimals: int = 1) -> float:
    """Round like ``Math.round``: halves go up, not to even."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def percentile_ranks(values: np.ndarray) -> np.ndarray:
    """
    Percentile rank in [0, 1] of every value within ``values``.

    Exact ties get half credit, so equal values always share a rank.

    Args:
        values: 1D array of affinities.

    Returns:
        Array of ranks aligned with ``values``.
    """
    v = np.asarray(values, dtype=np.float64)
    if v.size == 0:
        return np.zeros(0, dtype=np.float64)

    ordered = np.sort(v)
    below = np.searchsorted(ordered, v, side="left")
    through = np.searchsorted(ordered, v, side="right")
    return (below + 0.5 * (through - below)) / v.size


@dataclass(frozen=True)
class PopulationScores:
    """Result of one full recomputation, aligned with the input rows."""

    affinities: np.ndarray
    scores: tuple[float, ...]
    strategy: str


class SimilarityEngine:
    """
    Computes affinities and percentile scores for a whole population.

    Stateless between calls: every recomputation works on the matrix it is
    given and returns new objects, so a failed pass leaves nothing behind.
    """

    def __init__(self, config: Optional[RankingConfig] = None):
        self.config = config or RankingConfig()

    def resolve_strategy(self, population_size: int, strategy: Optional[str] = None) -> str:
        """Pick the concrete strategy for a population size."""
        chosen = (strategy or self.config.strategy).lower()
        if chosen == AUTO:
            return PAIRWISE if population_size <= self.config.exact_threshold else CENTROID
        if chosen not in (PAIRWISE, CENTROID):
            raise ValueError(f"Unknown ranking strategy: {chosen}")
        return chosen

    def affinities(self, embeddings: np.ndarray, strategy: Optional[str] = None) -> np.ndarray:
        """
        Mean cosine similarity of each row to every other row.

        Args:
            embeddings: Unit-normalized matrix of shape (n, D).
            strategy: Override of the configured strategy.

        Returns:
            Array of shape (n,), rounded to ``affinity_decimals``. Rows with
            no peers get 0.0.
        """
        e = np.asarray(embeddings, dtype=np.float64)
        n = e.shape[0]
        if n < 2:
            return np.zeros(n, dtype=np.float64)

        if self.resolve_strategy(n, strategy) == PAIRWISE:
            matrix = similarity_matrix(e)
            sums = matrix.sum(axis=1) - np.diagonal(matrix)
        else:
            total = e.sum(axis=0)
            sums = e @ total - np.einsum("ij,ij->i", e, e)

        return np.round(sums / (n - 1), self.config.affinity_decimals)

    def recompute(self, embeddings: np.ndarray, strategy: Optional[str] = None) -> PopulationScores:
        """
        Score every subject in the population.

        Args:
            embeddings: Unit-normalized matrix of shape (n, D), one row per
                current subject.
            strategy: Override of the configured strategy.

        Returns:
            PopulationScores aligned with the rows of ``embeddings``.
        """
        n = int(np.asarray(embeddings).shape[0])
        resolved = self.resolve_strategy(n, strategy)

        with log_execution_time(logger, f"{resolved} recomputation of {n} subjects"):
            affinities = self.affinities(embeddings, resolved)

            if n <= 2:
                scores = tuple(LONE_SUBJECT_SCORE for _ in range(n))
            else:
                ranks = percentile_ranks(affinities)
                scores = tuple(round_half_up(float(r) * 100.0, 1) for r in ranks)

        return PopulationScores(affinities=affinities, scores=scores, strategy=resolved)

    def similar(
        self,
        query: np.ndarray,
        embeddings: np.ndarray,
        subject_ids: Sequence[str],
        limit: int = 10,
        exclude: Optional[str] = None,
    ) -> list[tuple[str, float]]:
        """
        Rank subjects by cosine similarity to ``query``.

        Args:
            query: Unit-normalized query vector.
            embeddings: Unit-normalized matrix aligned with ``subject_ids``.
            subject_ids: Row labels.
            limit: Maximum number of results.
            exclude: Subject id to leave out (normally the query subject).

        Returns:
            ``(subject_id, similarity)`` pairs, most similar first; equal
            similarities are ordered by subject id.
        """
        if limit < 1:
            return []

        sims = batch_cosine_similarity_normalized(query, embeddings)
        pairs = [
            (subject_id, float(sim))
            for subject_id, sim in zip(subject_ids, sims)
            if subject_id != exclude
        ]
        pairs.sort(key=lambda pair: (-pair[1], pair[0]))
        return pairs[:limit]
