"""
Embedding validation and normalization.

Every vector entering the store passes through ``EmbeddingValidator``:
length must equal the configured dimension, all components must be finite,
and the result is scaled to unit L2 norm. Nothing is padded or truncated.

Example:
    >>> validator = EmbeddingValidator(dimension=512)
    >>> unit = validator.validate(raw_vector)
"""

from __future__ import annotations

from typing import Any, Sequence, Union

import numpy as np
from pydantic import ValidationError

from facerank.domain.entities.subject import QualityMetrics
from facerank.utils.exceptions import (
    DegenerateVectorError,
    EmbeddingValidationError,
    InvalidDimensionError,
    InvalidQualityError,
    NonFiniteError,
)

VectorLike = Union[np.ndarray, Sequence[float]]


class EmbeddingValidator:
    """Pure dimension/finiteness check plus L2 normalization."""

    def __init__(self, dimension: int = 512):
        if dimension < 1:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension

    def validate(self, vector: VectorLike) -> np.ndarray:
        """
        Validate and normalize an embedding.

        Args:
            vector: Raw embedding (list or numpy array).

        Returns:
            New read-only float32 array with unit L2 norm.

        Raises:
            InvalidDimensionError: If the vector is not 1D of length D.
            NonFiniteError: If any component is NaN or infinite.
            DegenerateVectorError: If the norm is zero.
        """
        try:
            arr = np.array(vector, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidDimensionError(
                f"Embedding is not a numeric vector: {e}",
                expected=self.dimension,
            ) from e

        if arr.ndim != 1 or arr.shape[0] != self.dimension:
            raise InvalidDimensionError(
                f"Embedding shape mismatch: expected ({self.dimension},), got {arr.shape}",
                expected=self.dimension,
                actual=arr.shape[0] if arr.ndim == 1 else None,
            )

        finite = np.isfinite(arr)
        if not finite.all():
            raise NonFiniteError(bad_count=int((~finite).sum()))

        # Scale by the largest component first so huge inputs cannot overflow the norm
        peak = float(np.abs(arr).max())
        if peak == 0.0:
            raise DegenerateVectorError()
        scaled = arr / peak

        normalized = (scaled / np.linalg.norm(scaled)).astype(np.float32)
        normalized.setflags(write=False)
        return normalized

    def validate_unit(self, vector: VectorLike, tolerance: float = 1e-4) -> np.ndarray:
        """
        Check an already normalized embedding without rescaling it.

        Used for records coming back from an export, so their stored bytes
        (and therefore their scores) survive a round trip unchanged.

        Returns:
            Read-only float32 copy of ``vector``.

        Raises:
            EmbeddingValidationError: On any ``validate`` failure, or when
                the L2 norm is not within ``tolerance`` of 1.
        """
        self.validate(vector)
        arr = np.array(vector, dtype=np.float32)
        norm = float(np.linalg.norm(arr.astype(np.float64)))
        if abs(norm - 1.0) > tolerance:
            raise EmbeddingValidationError(f"Embedding is not unit length (norm={norm:.6f})")
        arr.setflags(write=False)
        return arr

    def validate_quality(self, quality: Union[QualityMetrics, Any]) -> QualityMetrics:
        """
        Coerce provider quality metrics.

        Raises:
            InvalidQualityError: If a metric is missing, non-numeric or
                outside [0, 1].
        """
        if isinstance(quality, QualityMetrics):
            return quality
        try:
            return QualityMetrics.model_validate(quality)
        except ValidationError as e:
            first = e.errors()[0]
            raise InvalidQualityError(
                f"Invalid quality metrics: {first['msg']}",
                field=".".join(str(part) for part in first["loc"]),
                value=first.get("input"),
            ) from e

    def is_valid(self, vector: VectorLike) -> bool:
        """Check a vector without raising."""
        try:
            self.validate(vector)
        except EmbeddingValidationError:
            return False
        return True
