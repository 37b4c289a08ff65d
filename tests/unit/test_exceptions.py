"""Unit tests for the exception hierarchy."""

import pytest

from facerank.utils.exceptions import (
    AppException,
    CapacityExceededError,
    ConfigError,
    DegenerateVectorError,
    DuplicateActiveError,
    EmbeddingValidationError,
    FaceRankError,
    InvalidDimensionError,
    InvalidQualityError,
    NoFaceDetectedError,
    NonFiniteError,
    PersistenceError,
    ProviderError,
    RecomputationError,
    StoreError,
    SubjectNotFoundError,
    VibeTableError,
)


class TestAppException:
    """Test the base exception structure."""

    def test_default_code_from_class_name(self):
        """Test code derived from the class name."""
        class SomethingBroke(AppException):
            pass

        assert SomethingBroke("boom").code == "SOMETHING_BROKE"

    def test_str_includes_code(self):
        """Test string form shows the code."""
        assert str(AppException("boom", code="X1")) == "[X1] boom"

    def test_to_dict(self):
        """Test structured dictionary form."""
        error = DuplicateActiveError(subject_id="user-42", expires_at="2026-02-01T00:00:00+00:00")

        assert error.to_dict() == {
            "error_type": "DuplicateActiveError",
            "message": "Subject already has an active score",
            "code": "DUPLICATE_ACTIVE",
            "context": {"subject_id": "user-42", "expires_at": "2026-02-01T00:00:00+00:00"},
        }

    def test_repr(self):
        """Test debug representation."""
        assert repr(SubjectNotFoundError(subject_id="a")).startswith("SubjectNotFoundError(")

    def test_alias(self):
        """Test package-level alias."""
        assert FaceRankError is AppException


class TestHierarchy:
    """Test each error sits under the right family."""

    @pytest.mark.parametrize(
        "error,family",
        [
            (VibeTableError(), ConfigError),
            (InvalidDimensionError(expected=512, actual=513), EmbeddingValidationError),
            (NonFiniteError(bad_count=2), EmbeddingValidationError),
            (DegenerateVectorError(), EmbeddingValidationError),
            (InvalidQualityError(field="quality", value=1.5), EmbeddingValidationError),
            (DuplicateActiveError(), StoreError),
            (SubjectNotFoundError(), StoreError),
            (CapacityExceededError(capacity=10), StoreError),
            (RecomputationError(), StoreError),
            (PersistenceError(backend="chroma"), StoreError),
            (NoFaceDetectedError(), ProviderError),
        ],
    )
    def test_family(self, error, family):
        """Test error belongs to its family."""
        assert isinstance(error, family)
        assert isinstance(error, AppException)

    def test_codes(self):
        """Test explicit error codes."""
        assert InvalidDimensionError().code == "INVALID_DIMENSION"
        assert DegenerateVectorError().code == "DEGENERATE_VECTOR"
        assert SubjectNotFoundError().code == "SUBJECT_NOT_FOUND"
        assert CapacityExceededError().code == "CAPACITY_EXCEEDED"
        assert InvalidQualityError().code == "INVALID_QUALITY"

    def test_context_extras_preserved(self):
        """Test caller context merges with named fields."""
        error = PersistenceError("lost", backend="chroma", context={"batch": 3})
        assert error.context == {"batch": 3, "backend": "chroma"}
