"""
Immutable published view of the scored population.

The store builds a new ``PopulationSnapshot`` after every successful write
and publishes it with a single reference assignment. Readers hold on to the
snapshot they fetched, so a concurrent write never changes what they see
halfway through a request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import numpy as np

from facerank.domain.entities.results import Distribution
from facerank.domain.entities.subject import SubjectRecord, utc_now


def canonical_order(records: Sequence[SubjectRecord]) -> list[SubjectRecord]:
    """Sort records by ``(created_at, record_id)``, the population row order."""
    return sorted(records, key=lambda r: (r.created_at, r.record_id))


@dataclass(frozen=True)
class PopulationSnapshot:
    """
    One consistent version of the population.

    Attributes:
        version: Increases by one per published write.
        records: Current records in canonical row order, scores filled in.
        matrix: Read-only float64 embedding matrix aligned with ``records``.
        distribution: Statistics over ``records``' scores.
        ordered: ``records`` in leaderboard order.
        history: Superseded records, oldest first.
        strategy: Ranking strategy used for the scores.
        built_at: When the snapshot was built.
    """

    version: int
    records: tuple[SubjectRecord, ...]
    matrix: np.ndarray
    distribution: Distribution
    ordered: tuple[SubjectRecord, ...]
    history: tuple[SubjectRecord, ...] = ()
    strategy: str = ""
    built_at: datetime = field(default_factory=utc_now)
    rows: Mapping[str, int] = field(init=False, repr=False)
    ranks: Mapping[str, int] = field(init=False, repr=False)

    def __post_init__(self):
        self.matrix.setflags(write=False)
        object.__setattr__(
            self, "rows", MappingProxyType({r.subject_id: i for i, r in enumerate(self.records)})
        )
        object.__setattr__(
            self, "ranks", MappingProxyType({r.subject_id: i + 1 for i, r in enumerate(self.ordered)})
        )

    @classmethod
    def empty(cls, dimension: int) -> "PopulationSnapshot":
        return cls(
            version=0,
            records=(),
            matrix=np.zeros((0, dimension), dtype=np.float64),
            distribution=Distribution(),
            ordered=(),
        )

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def subject_ids(self) -> list[str]:
        return [r.subject_id for r in self.records]

    def get(self, subject_id: str) -> Optional[SubjectRecord]:
        row = self.rows.get(subject_id)
        return None if row is None else self.records[row]

    def rank_of(self, subject_id: str) -> Optional[int]:
        """1-based leaderboard position, or None for unknown subjects."""
        return self.ranks.get(subject_id)

    def embedding(self, subject_id: str) -> Optional[np.ndarray]:
        row = self.rows.get(subject_id)
        return None if row is None else self.matrix[row]

    def history_of(self, subject_id: str) -> list[SubjectRecord]:
        """Every record ever stored for a subject, oldest first."""
        past = [r for r in self.history if r.subject_id == subject_id]
        current = self.get(subject_id)
        if current is not None:
            past.append(current)
        return canonical_order(past)
