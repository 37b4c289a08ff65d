"""Unit tests for similarity helpers and percentile scoring."""

import numpy as np
import pytest

from facerank.core.scoring import (
    CENTROID,
    PAIRWISE,
    SimilarityEngine,
    batch_cosine_similarity_normalized,
    euclidean_distance,
    percentile_ranks,
    round_half_up,
    similarity_matrix,
)
from facerank.utils.config import RankingConfig


def _unit_rows(rng, n, dim=64):
    rows = rng.standard_normal((n, dim))
    return rows / np.linalg.norm(rows, axis=1, keepdims=True)


class TestSimilarityHelpers:
    """Test cosine and distance helpers."""

    def test_batch_matches_dot_products(self, rng):
        """Test batch similarity equals per-row dot products."""
        rows = _unit_rows(rng, 5)
        batch = batch_cosine_similarity_normalized(rows[0], rows)
        expected = [float(rows[0] @ row) for row in rows]
        assert np.allclose(batch, expected)

    def test_batch_clipped_to_unit_range(self):
        """Test float overshoot is clipped into [-1, 1]."""
        query = np.array([1.0 + 1e-12, 0.0])
        batch = batch_cosine_similarity_normalized(query, np.array([[1.0, 0.0], [-1.0, 0.0]]))
        assert batch.tolist() == [1.0, -1.0]

    def test_batch_empty(self):
        """Test an empty candidate matrix gives no similarities."""
        assert batch_cosine_similarity_normalized(np.ones(3), np.zeros((0, 3))).size == 0

    def test_similarity_matrix_symmetric(self, rng):
        """Test the pairwise matrix is symmetric with a unit diagonal."""
        matrix = similarity_matrix(_unit_rows(rng, 6))
        assert matrix.shape == (6, 6)
        assert np.allclose(matrix, matrix.T)
        assert np.allclose(np.diagonal(matrix), 1.0)

    def test_euclidean_distance(self):
        """Test distance on a 3-4-5 triangle."""
        assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)


class TestPercentileRanks:
    """Test the half-credit percentile rank."""

    def test_distinct_values(self):
        """Test ranks of distinct values."""
        ranks = percentile_ranks(np.array([0.1, 0.3, 0.2, 0.4]))
        assert np.allclose(ranks, [0.125, 0.625, 0.375, 0.875])

    def test_ties_share_rank(self):
        """Test equal values get half credit."""
        ranks = percentile_ranks(np.array([0.5, 0.5, 0.9]))
        assert ranks[0] == ranks[1]
        assert np.allclose(ranks, [1 / 3, 1 / 3, 5 / 6])

    def test_empty(self):
        """Test ranks of nothing."""
        assert percentile_ranks(np.array([])).size == 0

    @pytest.mark.parametrize("value,expected", [(12.25, 12.3), (50.0, 50.0), (0.05, 0.1), (99.94, 99.9)])
    def test_round_half_up(self, value, expected):
        """Test half-up rounding."""
        assert round_half_up(value, 1) == pytest.approx(expected)


class TestSimilarityEngine:
    """Test population recomputation."""

    @pytest.fixture
    def engine(self):
        return SimilarityEngine(RankingConfig())

    def test_single_subject_scores_100(self, engine, rng):
        """Test one subject scores 100."""
        result = engine.recompute(_unit_rows(rng, 1))
        assert result.scores == (100.0,)

    def test_two_subjects_score_100(self, engine, rng):
        """Test two subjects both score 100."""
        result = engine.recompute(_unit_rows(rng, 2))
        assert result.scores == (100.0, 100.0)

    def test_empty_population(self, engine):
        """Test empty population."""
        result = engine.recompute(np.zeros((0, 8)))
        assert result.scores == ()
        assert result.affinities.size == 0

    def test_scores_in_range(self, engine, rng):
        """Test scores stay within 0 to 100."""
        result = engine.recompute(_unit_rows(rng, 30))
        assert all(0.0 <= s <= 100.0 for s in result.scores)

    def test_monotonic_in_affinity(self, engine, rng):
        """Test a higher affinity never gets a lower score."""
        result = engine.recompute(_unit_rows(rng, 40))
        order = np.argsort(result.affinities)
        scores = [result.scores[i] for i in order]
        assert scores == sorted(scores)

    def test_affinity_is_mean_similarity_to_others(self, engine, rng):
        """Test affinity against a direct mean of dot products."""
        rows = _unit_rows(rng, 5)
        affinities = engine.affinities(rows, PAIRWISE)

        expected = [
            np.mean([float(rows[i] @ rows[j]) for j in range(5) if j != i])
            for i in range(5)
        ]
        assert np.allclose(affinities, expected, atol=1e-9)

    def test_typical_subject_outranks_outlier(self, engine):
        """Test the score rewards closeness to the population, not distinctiveness."""
        base = np.zeros(8)
        base[0] = 1.0
        cluster = [base + 0.05 * np.eye(8)[i] for i in range(1, 5)]
        outlier = np.zeros(8)
        outlier[7] = 1.0
        rows = np.array(cluster + [outlier])
        rows = rows / np.linalg.norm(rows, axis=1, keepdims=True)

        scores = engine.recompute(rows).scores

        assert scores[-1] == min(scores)
        assert scores[-1] < scores[0]

    def test_identical_rows_tie_exactly(self, engine, rng):
        """Test identical embeddings share a score."""
        rows = _unit_rows(rng, 4)
        rows = np.vstack([rows, rows[0]])
        result = engine.recompute(rows)
        assert result.scores[0] == result.scores[-1]

    def test_strategies_agree(self, engine, rng):
        """Test pairwise and centroid produce identical scores."""
        rows = _unit_rows(rng, 200, dim=128).astype(np.float32)

        pairwise = engine.recompute(rows, PAIRWISE)
        centroid = engine.recompute(rows, CENTROID)

        assert np.allclose(pairwise.affinities, centroid.affinities, atol=1e-9)
        assert pairwise.scores == centroid.scores

    def test_auto_strategy_threshold(self):
        """Test auto switches strategy at the threshold."""
        engine = SimilarityEngine(RankingConfig(strategy="auto", exact_threshold=10))
        assert engine.resolve_strategy(10) == PAIRWISE
        assert engine.resolve_strategy(11) == CENTROID

    def test_unknown_strategy(self, engine):
        """Test unknown strategy name."""
        with pytest.raises(ValueError, match="Unknown ranking strategy"):
            engine.resolve_strategy(5, "annoy")

    def test_similar_excludes_and_orders(self, engine):
        """Test neighbour search order and exclusion."""
        rows = np.eye(4)
        rows[1] = [0.8, 0.6, 0.0, 0.0]
        ids = ["a", "b", "c", "d"]

        pairs = engine.similar(rows[0], rows, ids, limit=2, exclude="a")

        assert pairs[0] == ("b", pytest.approx(0.8))
        assert pairs[1][0] == "c"
        assert len(pairs) == 2

    def test_similar_zero_limit(self, engine):
        """Test zero neighbours requested."""
        assert engine.similar(np.ones(2), np.ones((1, 2)), ["a"], limit=0) == []
