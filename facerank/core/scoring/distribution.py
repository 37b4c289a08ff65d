"""
Score distribution statistics.

Percentiles use the nearest-rank rule on the sorted score array:
``index = ceil(n * q) - 1`` clamped to ``[0, n - 1]``. For q = 0.5 this is
the lower median.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import numpy as np

from facerank.domain.entities.results import Distribution, PercentileBuckets

QUANTILES: dict[str, float] = {
    "p10": 0.10,
    "p25": 0.25,
    "p50": 0.50,
    "p75": 0.75,
    "p90": 0.90,
    "p95": 0.95,
    "p99": 0.99,
}


def nearest_rank(sorted_values: Sequence[float], q: float) -> float:
    """Nearest-rank percentile of an ascending sequence."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    # round() guards products like 0.29 * 100 = 28.999999999999996
    index = math.ceil(round(n * q, 9)) - 1
    index = min(max(index, 0), n - 1)
    return float(sorted_values[index])


class DistributionTracker:
    """Derives population statistics from the current score set."""

    def refresh(self, scores: Iterable[Optional[float]]) -> Distribution:
        """
        Compute mean, population std and percentile buckets.

        Args:
            scores: Current scores; ``None`` marks an unscored subject and is
                excluded.

        Returns:
            Distribution (all zeros when nothing is scored).
        """
        values = np.array(sorted(s for s in scores if s is not None), dtype=np.float64)
        if values.size == 0:
            return Distribution()

        buckets = {name: nearest_rank(values, q) for name, q in QUANTILES.items()}
        return Distribution(
            mean=float(values.mean()),
            std=float(values.std()),
            percentiles=PercentileBuckets(**buckets),
        )
