# Scoring Package
"""
Similarity, percentile ranking, distribution and leaderboard logic.

Provides:
- similarity_matrix: Pairwise cosine similarity of unit rows
- SimilarityEngine: Population-wide affinities and percentile scores
- DistributionTracker: Mean, std and nearest-rank percentiles
- LeaderboardService: Stable, tie-broken display ordering

Example:
    >>> from facerank.core.scoring import SimilarityEngine
    >>> engine = SimilarityEngine()
    >>> result = engine.recompute(embedding_matrix)
    >>> result.scores
"""

from .distribution import QUANTILES, DistributionTracker, nearest_rank
from .leaderboard import LeaderboardService
from .percentile import (
    CENTROID,
    PAIRWISE,
    PopulationScores,
    SimilarityEngine,
    percentile_ranks,
    round_half_up,
)
from .similarity import (
    batch_cosine_similarity_normalized,
    euclidean_distance,
    similarity_matrix,
)

__all__ = [
    # Similarity functions
    "batch_cosine_similarity_normalized",
    "similarity_matrix",
    "euclidean_distance",
    # Percentile scoring
    "SimilarityEngine",
    "PopulationScores",
    "percentile_ranks",
    "round_half_up",
    "PAIRWISE",
    "CENTROID",
    # Distribution
    "DistributionTracker",
    "QUANTILES",
    "nearest_rank",
    # Leaderboard
    "LeaderboardService",
]
