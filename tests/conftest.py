"""Pytest fixtures and configuration for facerank tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import numpy as np
import pytest

from facerank.core.engine import ScoringEngine, reset_scoring_engine
from facerank.core.score_store import ScoreStore
from facerank.domain.entities.subject import QualityMetrics
from facerank.infrastructure.database import ChromaRepository, MemoryRepository
from facerank.utils.config import (
    AppConfig,
    EmbeddingConfig,
    RankingConfig,
    StoreConfig,
    VibeConfig,
    reset_config,
)

DIMENSION = 512


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def unit(vector) -> np.ndarray:
    v = np.asarray(vector, dtype=np.float64)
    return v / np.linalg.norm(v)


@pytest.fixture
def test_config() -> AppConfig:
    """Provide test-specific configuration with the memory backend."""
    return AppConfig(
        embedding=EmbeddingConfig(dimension=DIMENSION),
        store=StoreConfig(backend="memory", validity_days=30, max_subjects=10000),
        ranking=RankingConfig(strategy="auto"),
        vibes=VibeConfig(seed=7),
        log_level="DEBUG",
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at a fixed instant."""
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def make_embedding(rng) -> Callable[[], np.ndarray]:
    """Factory for random unit embeddings."""
    def _make() -> np.ndarray:
        return unit(rng.standard_normal(DIMENSION))
    return _make


@pytest.fixture
def quality() -> QualityMetrics:
    return QualityMetrics(quality=0.9, frontality=0.8, symmetry=0.7, resolution=0.9)


@pytest.fixture
def store(test_config, clock) -> ScoreStore:
    """Empty store on the memory backend."""
    return ScoreStore(test_config, repository=MemoryRepository(), clock=clock)


@pytest.fixture
def engine(test_config, store) -> ScoringEngine:
    return ScoringEngine(test_config, store=store)


@pytest.fixture
def populated_engine(engine, clock, make_embedding, quality) -> ScoringEngine:
    """Engine holding 20 subjects inserted one minute apart."""
    for i in range(20):
        engine.score(f"subject-{i:02d}", make_embedding(), quality)
        clock.advance(minutes=1)
    return engine


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached configuration and engine between tests."""
    reset_config()
    reset_scoring_engine()
    yield
    reset_config()
    reset_scoring_engine()


class FlakyChromaRepository(ChromaRepository):
    """Chroma backend whose upserts start failing after ``fail_after`` batches."""

    def __init__(self, config, fail_after: Optional[int] = None):
        super().__init__(config)
        self.fail_after = fail_after

    def _upsert_batch(self, collection, batch):
        if self.fail_after is not None:
            if self.fail_after == 0:
                raise RuntimeError("disk full")
            self.fail_after -= 1
        super()._upsert_batch(collection, batch)


@pytest.fixture
def flaky_chroma():
    """Factory for a Chroma repository that fails part-way through a write."""
    return FlakyChromaRepository
