"""
Stable leaderboard ordering.

Subjects are ordered by score, highest first. Scores closer than
``tie_epsilon`` to the leading score of their group count as tied, and ties
go to the earlier submission (then the subject id, so the order is total).
Tied neighbours get a small per-position offset in ``display_score``; the
stored score is never touched.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from facerank.domain.entities.results import LeaderboardEntry
from facerank.domain.entities.subject import SubjectRecord
from facerank.utils.config import RankingConfig

# Absorbs float noise such as 0.3 - 0.2 = 0.09999999999999998
_GAP_TOLERANCE = 1e-9


def _score(record: SubjectRecord) -> float:
    return record.score if record.score is not None else 0.0


def _arrival(record: SubjectRecord):
    return (record.created_at, record.subject_id)


class LeaderboardService:
    """Produces the deterministic display ordering of a population."""

    def __init__(self, config: Optional[RankingConfig] = None):
        config = config or RankingConfig()
        self.tie_epsilon = config.tie_epsilon
        self.display_perturbation = config.display_perturbation

    def order(self, records: Iterable[SubjectRecord]) -> tuple[SubjectRecord, ...]:
        """
        Sort records for display.

        Args:
            records: Current records in any order.

        Returns:
            Records, best first.
        """
        ranked = sorted(records, key=lambda r: (-_score(r), *_arrival(r)))

        groups: list[list[SubjectRecord]] = []
        for record in ranked:
            if groups and _score(groups[-1][0]) - _score(record) < self.tie_epsilon - _GAP_TOLERANCE:
                groups[-1].append(record)
            else:
                groups.append([record])

        return tuple(r for group in groups for r in sorted(group, key=_arrival))

    def entries(self, ordered: Sequence[SubjectRecord], limit: Optional[int] = None) -> list[LeaderboardEntry]:
        """
        Build leaderboard rows from an already ordered population.

        Args:
            ordered: Output of ``order``.
            limit: Number of rows to return (all when None).

        Returns:
            LeaderboardEntry list with 1-based ranks.
        """
        rows = ordered if limit is None else ordered[:limit]
        entries = []
        for position, record in enumerate(rows):
            display = _score(record)
            if position > 0 and record.score == rows[position - 1].score:
                display = round(display - self.display_perturbation * position, 4)
            entries.append(
                LeaderboardEntry(
                    rank=position + 1,
                    subject_id=record.subject_id,
                    score=_score(record),
                    display_score=display,
                    tags=list(record.tags),
                    created_at=record.created_at,
                )
            )
        return entries

    def top(self, records: Iterable[SubjectRecord], k: int) -> list[LeaderboardEntry]:
        """Order ``records`` and return the first ``k`` rows."""
        return self.entries(self.order(records), limit=k)
