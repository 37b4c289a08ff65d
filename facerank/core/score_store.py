"""
Score store: the single writer of subject records.

Keeps one current record per subject, enforces the validity window,
recomputes every score after each write and publishes an immutable
``PopulationSnapshot`` for readers.

Write path (serialized by one lock):

1. validate the embedding (before anything is touched)
2. duplicate and capacity checks against the published snapshot
3. vibe tags for the new record
4. full recomputation into a new snapshot
5. persist changed records to the repository
6. publish the snapshot

A failure in steps 1 to 5 leaves the published snapshot untouched.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence, Union

import numpy as np

from facerank.core.scoring.distribution import DistributionTracker
from facerank.core.scoring.leaderboard import LeaderboardService
from facerank.core.scoring.percentile import SimilarityEngine
from facerank.core.snapshot import PopulationSnapshot, canonical_order
from facerank.core.validation import EmbeddingValidator, VectorLike
from facerank.core.vibes.classifier import VibeClassifier
from facerank.domain.entities.subject import QualityMetrics, SubjectRecord, utc_now
from facerank.domain.interfaces.repository_interface import RepositoryInterface
from facerank.infrastructure.database import create_repository
from facerank.utils.config import AppConfig
from facerank.utils.exceptions import (
    AppException,
    CapacityExceededError,
    DuplicateActiveError,
    PersistenceError,
    RecomputationError,
)
from facerank.utils.logger import get_logger, log_exception, log_performance

logger = get_logger(__name__)

Clock = Callable[[], datetime]


class ScoreStore:
    """
    Owns the scored population.

    Example:
        >>> store = ScoreStore(AppConfig())
        >>> record = store.insert("user-1", embedding, quality)
        >>> store.snapshot.rank_of("user-1")
        1
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        repository: Optional[RepositoryInterface] = None,
        classifier: Optional[VibeClassifier] = None,
        similarity: Optional[SimilarityEngine] = None,
        tracker: Optional[DistributionTracker] = None,
        leaderboard: Optional[LeaderboardService] = None,
        clock: Clock = utc_now,
    ):
        """
        Build the store and load the repository content.

        Args:
            config: Application configuration (defaults when None).
            repository: Backend; created from ``config.store`` when None.
            classifier: Vibe classifier; built from ``config.vibes`` when None.
            similarity: Affinity engine; built from ``config.ranking`` when None.
            tracker: Distribution tracker.
            leaderboard: Leaderboard ordering service.
            clock: Returns the current UTC time. Injectable for tests.

        Raises:
            PersistenceError: If the backend cannot be read.
            RecomputationError: If the loaded population cannot be scored.
        """
        self.config = config or AppConfig()
        self.dimension = self.config.embedding.dimension
        self.validator = EmbeddingValidator(self.dimension)
        self.repository = repository or create_repository(self.config.store)
        self.classifier = classifier or VibeClassifier(self.config.vibes, dimension=self.dimension)
        self.similarity = similarity or SimilarityEngine(self.config.ranking)
        self.tracker = tracker or DistributionTracker()
        self.leaderboard = leaderboard or LeaderboardService(self.config.ranking)
        self.clock = clock
        self.validity_window = timedelta(days=self.config.store.validity_days)
        self.max_subjects = self.config.store.max_subjects

        self._lock = threading.Lock()
        self._snapshot = PopulationSnapshot.empty(self.dimension)
        self._load()

    # ============================================
    # Read side
    # ============================================

    @property
    def snapshot(self) -> PopulationSnapshot:
        """Last committed snapshot. Never partially updated."""
        return self._snapshot

    def get(self, subject_id: str) -> Optional[SubjectRecord]:
        """Current record of a subject, expired or not."""
        return self._snapshot.get(subject_id)

    def exists(self, subject_id: str) -> bool:
        """True when the subject has an active record."""
        record = self._snapshot.get(subject_id)
        return record is not None and record.is_active(self.clock(), self.validity_window)

    def count(self) -> int:
        return self._snapshot.count

    def history(self, subject_id: str) -> list[SubjectRecord]:
        return self._snapshot.history_of(subject_id)

    def export_all(self, include_history: bool = False) -> list[SubjectRecord]:
        """
        All current records, scores included, in canonical order.

        Args:
            include_history: Also return superseded records.
        """
        snap = self._snapshot
        records = list(snap.records)
        if include_history:
            records.extend(snap.history)
        return canonical_order(records)

    # ============================================
    # Write side
    # ============================================

    def insert(
        self,
        subject_id: str,
        vector: VectorLike,
        quality: Union[QualityMetrics, dict],
    ) -> SubjectRecord:
        """
        Add a subject (or replace its expired record) and rescore everyone.

        Args:
            subject_id: Stable subject identifier.
            vector: Embedding of length D; normalized here.
            quality: Provider quality metrics.

        Returns:
            The new current record with its score populated.

        Raises:
            EmbeddingValidationError: If the vector or the quality metrics are rejected.
            DuplicateActiveError: If the subject has an active record.
            CapacityExceededError: If a new subject would exceed the cap.
            RecomputationError: If scoring the new population fails.
            PersistenceError: If the backend rejects the write.
        """
        embedding = self.validator.validate(vector)
        quality = self.validator.validate_quality(quality)

        with self._lock:
            now = self.clock()
            snap = self._snapshot
            existing = snap.get(subject_id)

            if existing is not None and existing.is_active(now, self.validity_window):
                raise DuplicateActiveError(
                    f"Subject {subject_id} already has an active score",
                    subject_id=subject_id,
                    expires_at=existing.expires_at(self.validity_window).isoformat(),
                )
            if existing is None and snap.count >= self.max_subjects:
                raise CapacityExceededError(
                    f"Population is at its limit of {self.max_subjects} subjects",
                    capacity=self.max_subjects,
                )

            record = SubjectRecord(
                subject_id=subject_id,
                embedding=embedding,
                quality=quality,
                tags=tuple(self.classifier.classify(subject_id, embedding, quality)),
                vibe_version=self.classifier.version,
                created_at=now,
            )

            current = [r for r in snap.records if r.subject_id != subject_id]
            current.append(record)
            history = list(snap.history)
            changed: list[SubjectRecord] = []
            if existing is not None:
                retired = existing.superseded(now)
                history.append(retired)
                changed.append(retired)

            new_snap = self._build(current, history, snap.version + 1)

            previous_scores = {r.record_id: r.score for r in snap.records}
            changed.extend(r for r in new_snap.records if previous_scores.get(r.record_id) != r.score)
            self._persist(changed)

            self._snapshot = new_snap

        stored = new_snap.get(subject_id)
        action = "Replaced" if existing is not None else "Inserted"
        logger.info(
            f"{action} subject {subject_id}: score={stored.score} "
            f"rank={new_snap.rank_of(subject_id)}/{new_snap.count} tags={list(stored.tags)}"
        )
        return stored

    def import_all(self, records: Iterable[SubjectRecord]) -> int:
        """
        Replace the whole population with exported records.

        Every record is checked before anything changes. Tags are recomputed
        with the current classifier and stored scores are ignored.

        Args:
            records: Output of ``export_all`` (history optional).

        Returns:
            Number of current subjects after the import.

        Raises:
            EmbeddingValidationError: If any embedding is rejected.
            DuplicateActiveError: If two current records share a subject id.
            CapacityExceededError: If there are more current records than the cap.
            RecomputationError: If scoring fails.
            PersistenceError: If the backend rejects the new content.
        """
        records = list(records)
        current: list[SubjectRecord] = []
        history: list[SubjectRecord] = []
        seen: set[str] = set()

        for record in records:
            embedding = self.validator.validate_unit(record.embedding)
            retagged = record.model_copy(
                update={
                    "embedding": embedding,
                    "tags": tuple(self.classifier.classify(record.subject_id, embedding, record.quality)),
                    "vibe_version": self.classifier.version,
                }
            )
            if retagged.is_current:
                if retagged.subject_id in seen:
                    raise DuplicateActiveError(
                        f"Import holds more than one current record for {retagged.subject_id}",
                        subject_id=retagged.subject_id,
                    )
                seen.add(retagged.subject_id)
                current.append(retagged.with_score(None))
            else:
                history.append(retagged)

        if len(current) > self.max_subjects:
            raise CapacityExceededError(
                f"Import holds {len(current)} subjects, limit is {self.max_subjects}",
                capacity=self.max_subjects,
            )

        with self._lock:
            new_snap = self._build(current, history, self._snapshot.version + 1)
            self._replace(list(new_snap.records) + list(new_snap.history))
            self._snapshot = new_snap

        logger.info(f"Imported {new_snap.count} subjects ({len(history)} historical records)")
        return new_snap.count

    # ============================================
    # Internals
    # ============================================

    def _load(self) -> None:
        start_time = time.time()
        records = self.repository.load_all()
        current: list[SubjectRecord] = []
        history: list[SubjectRecord] = []
        seen: set[str] = set()

        for record in records:
            if record.embedding.shape != (self.dimension,):
                raise PersistenceError(
                    f"Stored record {record.record_id} has dimension {record.embedding.shape[0]}, "
                    f"expected {self.dimension}",
                    backend=self.repository.name,
                )
            if record.is_current:
                if record.subject_id in seen:
                    raise PersistenceError(
                        f"Backend holds more than one current record for {record.subject_id}",
                        backend=self.repository.name,
                    )
                seen.add(record.subject_id)
                current.append(record)
            else:
                history.append(record)

        snap = self._build(current, history, 1)
        stored_scores = {r.record_id: r.score for r in current}
        stale = [r for r in snap.records if stored_scores.get(r.record_id) != r.score]
        if stale:
            self._persist(stale)
        self._snapshot = snap

        logger.info(
            f"Loaded {snap.count} subjects and {len(history)} historical records "
            f"from {self.repository.name} backend"
        )
        log_performance(logger, "store load", time.time() - start_time)

    def _build(
        self,
        current: Sequence[SubjectRecord],
        history: Sequence[SubjectRecord],
        version: int,
    ) -> PopulationSnapshot:
        try:
            rows = canonical_order(current)
            if rows:
                matrix = np.vstack([r.embedding for r in rows]).astype(np.float64)
            else:
                matrix = np.zeros((0, self.dimension), dtype=np.float64)

            result = self.similarity.recompute(matrix)
            scored = tuple(r.with_score(s) for r, s in zip(rows, result.scores))

            return PopulationSnapshot(
                version=version,
                records=scored,
                matrix=matrix,
                distribution=self.tracker.refresh(r.score for r in scored),
                ordered=self.leaderboard.order(scored),
                history=tuple(canonical_order(history)),
                strategy=result.strategy,
                built_at=self.clock(),
            )
        except AppException:
            raise
        except Exception as e:
            log_exception(logger, f"recompute population of {len(current)}", e)
            raise RecomputationError(f"Failed to recompute scores: {e}") from e

    def _persist(self, records: Sequence[SubjectRecord]) -> None:
        if not records:
            return
        try:
            self.repository.save(records)
        except PersistenceError:
            raise
        except Exception as e:
            log_exception(logger, f"save {len(records)} records", e)
            raise PersistenceError(f"Failed to save records: {e}", backend=self.repository.name) from e

    def _replace(self, records: Sequence[SubjectRecord]) -> None:
        try:
            self.repository.replace_all(records)
        except PersistenceError:
            raise
        except Exception as e:
            log_exception(logger, "replace repository content", e)
            raise PersistenceError(f"Failed to replace records: {e}", backend=self.repository.name) from e
