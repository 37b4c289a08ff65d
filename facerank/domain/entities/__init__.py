# Domain Entities Package
"""
Core scoring entities as pydantic models.
"""

from .results import (
    Distribution,
    LeaderboardEntry,
    PercentileBuckets,
    PopulationStats,
    ScoringResult,
    SimilarSubject,
    TopPercentileCutoffs,
)
from .subject import QualityMetrics, SubjectRecord, utc_now

__all__ = [
    "Distribution",
    "LeaderboardEntry",
    "PercentileBuckets",
    "PopulationStats",
    "QualityMetrics",
    "ScoringResult",
    "SimilarSubject",
    "SubjectRecord",
    "TopPercentileCutoffs",
    "utc_now",
]
