"""
Read-side result models returned to the calling application.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .subject import QualityMetrics


class PercentileBuckets(BaseModel):
    """Nearest-rank percentiles of the current score set."""

    p10: float = 0.0
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


class Distribution(BaseModel):
    """Population statistics over scored subjects."""

    mean: float = 0.0
    std: float = 0.0
    percentiles: PercentileBuckets = Field(default_factory=PercentileBuckets)


class ScoringResult(BaseModel):
    """Everything the application shows after scoring or looking up a subject."""

    subject_id: str
    score: float = Field(..., ge=0.0, le=100.0)
    percentile: float = Field(..., ge=0.0, le=1.0)
    tags: list[str] = Field(default_factory=list)
    rank: int = Field(..., ge=1)
    total_population: int = Field(..., ge=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    distribution: Distribution
    created_at: datetime
    quality: QualityMetrics


class LeaderboardEntry(BaseModel):
    """One leaderboard row. ``display_score`` is presentation only."""

    rank: int = Field(..., ge=1)
    subject_id: str
    score: float
    display_score: float
    tags: list[str] = Field(default_factory=list)
    created_at: datetime


class SimilarSubject(BaseModel):
    """A neighbour ranked by cosine similarity."""

    subject_id: str
    similarity: float = Field(..., ge=-1.0, le=1.0)
    score: float
    tags: list[str] = Field(default_factory=list)


class TopPercentileCutoffs(BaseModel):
    top_1_percent: float = 0.0
    top_5_percent: float = 0.0
    top_10_percent: float = 0.0


class PopulationStats(BaseModel):
    """Summary returned by ``ScoringEngine.stats``."""

    total_subjects: int = Field(..., ge=0)
    average_score: float
    distribution: Distribution
    top_percentile_cutoffs: TopPercentileCutoffs
