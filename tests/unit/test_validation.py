"""Unit tests for embedding validation."""

import numpy as np
import pytest

from facerank.core.validation import EmbeddingValidator
from facerank.utils.exceptions import (
    DegenerateVectorError,
    EmbeddingValidationError,
    InvalidDimensionError,
    NonFiniteError,
)


class TestEmbeddingValidator:
    """Test dimension, finiteness and normalization."""

    @pytest.fixture
    def validator(self):
        return EmbeddingValidator(dimension=8)

    def test_normalizes_to_unit_length(self, validator):
        """Test output has unit L2 norm and float32 dtype."""
        result = validator.validate([3.0, 4.0, 0, 0, 0, 0, 0, 0])

        assert result.dtype == np.float32
        assert np.isclose(np.linalg.norm(result), 1.0, atol=1e-6)
        assert np.allclose(result[:2], [0.6, 0.8])

    def test_result_is_read_only(self, validator):
        """Test output array is read-only."""
        result = validator.validate(np.ones(8))
        with pytest.raises(ValueError):
            result[0] = 2.0

    def test_does_not_mutate_input(self, validator):
        """Test input is left untouched."""
        raw = np.arange(1, 9, dtype=np.float64)
        before = raw.copy()
        validator.validate(raw)
        assert np.array_equal(raw, before)

    def test_rejects_dimension_plus_one(self, validator):
        """Test a D+1 vector is rejected with the expected context."""
        with pytest.raises(InvalidDimensionError) as exc_info:
            validator.validate(np.ones(9))

        assert exc_info.value.code == "INVALID_DIMENSION"
        assert exc_info.value.context == {"expected_dim": 8, "actual_dim": 9}

    def test_rejects_short_vector(self, validator):
        """Test short vector is rejected."""
        with pytest.raises(InvalidDimensionError):
            validator.validate(np.ones(7))

    def test_rejects_two_dimensional_input(self, validator):
        """Test matrix input is rejected."""
        with pytest.raises(InvalidDimensionError):
            validator.validate(np.ones((2, 4)))

    def test_rejects_non_numeric(self, validator):
        """Test non-numeric input is rejected."""
        with pytest.raises(InvalidDimensionError):
            validator.validate(["a"] * 8)

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_rejects_non_finite(self, validator, bad):
        """Test NaN and infinity are rejected."""
        vector = np.ones(8)
        vector[3] = bad
        with pytest.raises(NonFiniteError) as exc_info:
            validator.validate(vector)
        assert exc_info.value.context["bad_count"] == 1

    def test_rejects_zero_vector(self, validator):
        """Test zero vector is rejected."""
        with pytest.raises(DegenerateVectorError):
            validator.validate(np.zeros(8))

    def test_huge_components_do_not_overflow(self, validator):
        """Test normalization survives components near the float64 limit."""
        result = validator.validate(np.full(8, 1e308))
        assert np.allclose(result, 1 / np.sqrt(8))

    def test_is_valid(self, validator):
        """Test non-raising check."""
        assert validator.is_valid(np.ones(8))
        assert not validator.is_valid(np.ones(9))
        assert not validator.is_valid(np.zeros(8))


class TestValidateUnit:
    """Test the check applied to previously stored embeddings."""

    def test_keeps_stored_bytes(self):
        """Test unit check keeps float32 bytes."""
        validator = EmbeddingValidator(dimension=4)
        stored = validator.validate([1.0, 2.0, 3.0, 4.0])

        again = validator.validate_unit(stored)

        assert again.dtype == np.float32
        assert np.array_equal(again, stored)

    def test_rejects_non_unit_vector(self):
        """Test unit check rejects other norms."""
        validator = EmbeddingValidator(dimension=4)
        with pytest.raises(EmbeddingValidationError, match="not unit length"):
            validator.validate_unit([1.0, 1.0, 1.0, 1.0])

    def test_invalid_dimension(self):
        """Test validator needs a positive dimension."""
        with pytest.raises(ValueError):
            EmbeddingValidator(dimension=0)
