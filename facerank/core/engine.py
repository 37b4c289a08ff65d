"""
Application-facing scoring facade.

Wraps a ``ScoreStore`` and turns its snapshots into the result models the
calling application shows: scoring results, leaderboard rows, population
statistics and nearest neighbours.

Example:
    >>> engine = ScoringEngine()
    >>> result = engine.score("user-1", embedding, {"quality": 0.9, "frontality": 0.8,
    ...                                             "symmetry": 0.7, "resolution": 0.9})
    >>> result.score, result.rank, result.tags
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from facerank.core.scoring.percentile import round_half_up
from facerank.core.score_store import Clock, ScoreStore
from facerank.core.snapshot import PopulationSnapshot
from facerank.core.validation import VectorLike
from facerank.domain.entities.results import (
    LeaderboardEntry,
    PopulationStats,
    ScoringResult,
    SimilarSubject,
    TopPercentileCutoffs,
)
from facerank.domain.entities.subject import QualityMetrics, SubjectRecord, utc_now
from facerank.domain.interfaces.provider_interface import EmbeddingProviderInterface
from facerank.domain.interfaces.repository_interface import RepositoryInterface
from facerank.utils.config import AppConfig, get_config
from facerank.utils.exceptions import NoFaceDetectedError, SubjectNotFoundError
from facerank.utils.logger import get_logger

logger = get_logger(__name__)

LEADERBOARD_DEFAULT_LIMIT = 50
LEADERBOARD_MAX_LIMIT = 100
# Population size at which the confidence population term saturates
CONFIDENCE_POPULATION = 1000


def compute_confidence(quality: QualityMetrics, population: int) -> float:
    """
    Confidence of a score, in [0, 1].

    70% weighted capture quality, 30% population size (saturating at
    ``CONFIDENCE_POPULATION`` subjects), rounded to two decimals.
    """
    population_factor = min(1.0, population / CONFIDENCE_POPULATION)
    return round(0.7 * quality.weighted_average() + 0.3 * population_factor, 2)


class ScoringEngine:
    """Scores subjects and answers read queries over the published snapshot."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[ScoreStore] = None,
        repository: Optional[RepositoryInterface] = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            config: Application configuration (defaults when None).
            store: Existing store to wrap; built from ``config`` when None.
            repository: Backend for a newly built store.
            clock: Clock for a newly built store.
        """
        self.config = config or AppConfig()
        self.store = store or ScoreStore(self.config, repository=repository, clock=clock)

    def score(
        self,
        subject_id: str,
        embedding: VectorLike,
        quality: Union[QualityMetrics, dict],
    ) -> ScoringResult:
        """
        Validate, store and rank a subject.

        Raises:
            EmbeddingValidationError: If the embedding or quality metrics are rejected.
            DuplicateActiveError: If the subject already has an active score.
            CapacityExceededError: If the population is full.
        """
        record = self.store.insert(subject_id, embedding, quality)
        return self._result(record, self.store.snapshot)

    def score_image(self, subject_id: str, image: Any, provider: EmbeddingProviderInterface) -> ScoringResult:
        """
        Extract an embedding with ``provider`` and score it.

        Raises:
            NoFaceDetectedError: If the provider finds no usable face.
        """
        provided = provider.extract(image)
        if provided is None:
            logger.warning(f"No usable face for subject {subject_id} ({provider.model_name})")
            raise NoFaceDetectedError(subject_id=subject_id)
        return self.score(subject_id, provided.embedding, provided.quality)

    def get_score(self, subject_id: str) -> ScoringResult:
        """
        Current result of a subject.

        Raises:
            SubjectNotFoundError: If the subject has no current record.
        """
        snap = self.store.snapshot
        record = snap.get(subject_id)
        if record is None:
            raise SubjectNotFoundError(f"No score for subject {subject_id}", subject_id=subject_id)
        return self._result(record, snap)

    def leaderboard(self, limit: int = LEADERBOARD_DEFAULT_LIMIT) -> list[LeaderboardEntry]:
        """Top rows of the leaderboard; ``limit`` is clamped to [1, 100]."""
        limit = max(1, min(LEADERBOARD_MAX_LIMIT, int(limit)))
        return self.store.leaderboard.entries(self.store.snapshot.ordered, limit=limit)

    def stats(self) -> PopulationStats:
        snap = self.store.snapshot
        distribution = snap.distribution
        buckets = distribution.percentiles
        return PopulationStats(
            total_subjects=snap.count,
            average_score=round_half_up(distribution.mean, 1),
            distribution=distribution,
            top_percentile_cutoffs=TopPercentileCutoffs(
                top_1_percent=buckets.p99,
                top_5_percent=buckets.p95,
                top_10_percent=buckets.p90,
            ),
        )

    def similar(self, subject_id: str, limit: int = 10) -> list[SimilarSubject]:
        """
        Subjects whose embeddings are closest to ``subject_id``'s.

        Raises:
            SubjectNotFoundError: If the subject has no current record.
        """
        snap = self.store.snapshot
        query = snap.embedding(subject_id)
        if query is None:
            raise SubjectNotFoundError(f"No score for subject {subject_id}", subject_id=subject_id)

        pairs = self.store.similarity.similar(
            query, snap.matrix, snap.subject_ids, limit=limit, exclude=subject_id
        )
        results = []
        for other_id, similarity in pairs:
            other = snap.get(other_id)
            results.append(
                SimilarSubject(
                    subject_id=other_id,
                    similarity=round(similarity, 3),
                    score=other.score,
                    tags=list(other.tags),
                )
            )
        return results

    def _result(self, record: SubjectRecord, snap: PopulationSnapshot) -> ScoringResult:
        return ScoringResult(
            subject_id=record.subject_id,
            score=record.score,
            percentile=record.score / 100.0,
            tags=list(record.tags),
            rank=snap.rank_of(record.subject_id),
            total_population=snap.count,
            confidence=compute_confidence(record.quality, snap.count),
            distribution=snap.distribution,
            created_at=record.created_at,
            quality=record.quality,
        )


# Singleton pattern, mirroring get_config
_engine: Optional[ScoringEngine] = None


def get_scoring_engine(config_path: Optional[Path | str] = None, reload: bool = False) -> ScoringEngine:
    """
    Shared engine built from the YAML configuration.

    Args:
        config_path: Configuration file (only used on first call or reload).
        reload: Rebuild the engine and reload configuration.
    """
    global _engine

    if _engine is None or reload:
        _engine = ScoringEngine(get_config(config_path, reload=reload))

    return _engine


def reset_scoring_engine() -> None:
    """Drop the shared engine (useful for testing)."""
    global _engine
    _engine = None
