"""Unit tests for leaderboard ordering."""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from facerank.core.scoring import LeaderboardService
from facerank.domain.entities.subject import QualityMetrics, SubjectRecord
from facerank.utils.config import RankingConfig

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)
QUALITY = QualityMetrics(quality=0.8, frontality=0.8, symmetry=0.8, resolution=0.8)


def _record(subject_id, score, minutes, tags=()):
    return SubjectRecord(
        subject_id=subject_id,
        embedding=np.ones(4, dtype=np.float32) / 2,
        quality=QUALITY,
        score=score,
        tags=tags,
        created_at=T0 + timedelta(minutes=minutes),
    )


class TestLeaderboardOrder:
    """Test score ordering and tie-breaks."""

    @pytest.fixture
    def service(self):
        return LeaderboardService(RankingConfig(tie_epsilon=0.1, display_perturbation=0.1))

    def test_sorted_by_score_descending(self, service):
        """Test highest score comes first."""
        records = [_record("a", 20.0, 0), _record("b", 90.0, 1), _record("c", 55.0, 2)]
        assert [r.subject_id for r in service.order(records)] == ["b", "c", "a"]

    def test_exact_tie_earlier_first(self, service):
        """Test equal scores go to the earlier submission."""
        records = [_record("late", 100.0, 5), _record("early", 100.0, 1)]
        assert [r.subject_id for r in service.order(records)] == ["early", "late"]

    def test_near_tie_earlier_first(self, service):
        """Test scores closer than tie_epsilon order by arrival."""
        records = [_record("newer", 50.05, 10), _record("older", 50.0, 0)]
        assert [r.subject_id for r in service.order(records)] == ["older", "newer"]

    def test_gap_of_epsilon_is_not_a_tie(self, service):
        """Test a full epsilon gap keeps score order."""
        records = [_record("newer", 50.1, 10), _record("older", 50.0, 0)]
        assert [r.subject_id for r in service.order(records)] == ["newer", "older"]

    def test_same_timestamp_orders_by_subject_id(self, service):
        """Test subject id breaks timestamp ties."""
        records = [_record("zed", 70.0, 0), _record("amy", 70.0, 0)]
        assert [r.subject_id for r in service.order(records)] == ["amy", "zed"]

    def test_stable_across_calls(self, service):
        """Test repeated ordering is identical."""
        records = [_record(f"s{i}", float(i % 4) * 10, i) for i in range(12)]
        first = service.order(records)
        second = service.order(list(reversed(records)))
        assert [r.subject_id for r in first] == [r.subject_id for r in second]


class TestLeaderboardEntries:
    """Test leaderboard rows and display scores."""

    @pytest.fixture
    def service(self):
        return LeaderboardService(RankingConfig())

    def test_ranks_are_one_based(self, service):
        """Test ranks start at one."""
        rows = service.top([_record("a", 10.0, 0), _record("b", 20.0, 1)], k=2)
        assert [(r.rank, r.subject_id) for r in rows] == [(1, "b"), (2, "a")]

    def test_display_perturbation_for_equal_scores(self, service):
        """Test equal scores get a display offset."""
        rows = service.top([_record("a", 100.0, 0), _record("b", 100.0, 1)], k=2)

        assert rows[0].display_score == 100.0
        assert rows[1].display_score == pytest.approx(99.9)
        assert rows[1].score == 100.0

    def test_distinct_scores_not_perturbed(self, service):
        """Test distinct scores are shown as stored."""
        rows = service.top([_record("a", 80.0, 0), _record("b", 60.0, 1)], k=2)
        assert [r.display_score for r in rows] == [80.0, 60.0]

    def test_limit(self, service):
        """Test row limit."""
        records = [_record(f"s{i}", float(i), i) for i in range(10)]
        assert len(service.top(records, k=3)) == 3

    def test_tags_copied(self, service):
        """Test tags are carried into rows."""
        rows = service.top([_record("a", 80.0, 0, tags=("Gentle", "Natural"))], k=1)
        assert rows[0].tags == ["Gentle", "Natural"]
