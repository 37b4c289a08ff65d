"""
Custom exception hierarchy for facerank.

Provides a structured exception hierarchy for different error scenarios:
- AppException: Base for all application errors
- ConfigError: Configuration and vibe-table errors
- EmbeddingValidationError: Rejected embedding vectors
- StoreError: Score store and persistence errors
- ProviderError: Embedding provider errors

Each exception includes:
- Descriptive message
- Optional error code for programmatic handling
- Optional context dictionary for debugging

Callers surface ``to_dict()`` as the structured failure reason.

Example:
    >>> from facerank.utils.exceptions import DuplicateActiveError
    >>> raise DuplicateActiveError(subject_id="user-42", expires_at="2026-11-18T10:00:00+00:00")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


# ============================================
# Base Exception
# ============================================


class AppException(Exception):
    """
    Base exception for all facerank errors.

    All custom exceptions inherit from this class, allowing:
    - Catch-all handling of engine errors
    - Consistent error structure across the package
    - Error code and context support

    Attributes:
        message: Human-readable error description.
        code: Optional error code for programmatic handling.
        context: Optional dictionary with debugging context.

    Example:
        >>> try:
        ...     raise AppException("Something went wrong", code="APP_001")
        ... except AppException as e:
        ...     print(f"Error {e.code}: {e.message}")
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            code: Optional error code (e.g., "DUPLICATE_ACTIVE").
            context: Optional dict with additional debugging info.
        """
        self.message = message
        self.code = code or self._default_code()
        self.context = context or {}
        super().__init__(self.message)

    def _default_code(self) -> str:
        """Generate default error code from class name."""
        # Convert CamelCase to UPPER_SNAKE_CASE
        name = self.__class__.__name__
        code = ""
        for i, char in enumerate(name):
            if char.isupper() and i > 0:
                code += "_"
            code += char.upper()
        return code

    def __str__(self) -> str:
        """String representation with code if available."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigError(AppException):
    """
    Base exception for configuration-related errors.

    Raised when there are issues with:
    - Loading configuration files
    - Parsing YAML
    - Validating configuration values or vibe tables
    """

    pass


class ConfigFileNotFoundError(ConfigError):
    """
    Raised when a required configuration file is not found.

    Example:
        >>> raise ConfigFileNotFoundError(
        ...     "Configuration file not found",
        ...     path="/path/to/config.yaml"
        ... )
    """

    def __init__(
        self,
        message: str = "Configuration file not found",
        path: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(message, code="CONFIG_FILE_NOT_FOUND", context=context, **kwargs)


class ConfigValidationError(ConfigError):
    """
    Raised when configuration values fail validation.

    Example:
        >>> raise ConfigValidationError(
        ...     "dimension must be positive",
        ...     field="embedding.dimension",
        ...     value=-1
        ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        super().__init__(message, code="CONFIG_VALIDATION", context=context, **kwargs)


class VibeTableError(ConfigError):
    """Raised when a vibe table is inconsistent with itself or the embedding dimension."""

    def __init__(
        self,
        message: str = "Invalid vibe table",
        version: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if version:
            context["version"] = version
        super().__init__(message, code="VIBE_TABLE", context=context, **kwargs)


# ============================================
# Embedding Validation Errors
# ============================================


class EmbeddingValidationError(AppException):
    """
    Base exception for rejected embedding vectors.

    Always raised before any store mutation.
    """

    pass


class InvalidDimensionError(EmbeddingValidationError):
    """
    Raised when an embedding does not have the configured dimension.

    Example:
        >>> raise InvalidDimensionError(expected=512, actual=513)
    """

    def __init__(
        self,
        message: str = "Embedding dimension mismatch",
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if expected is not None:
            context["expected_dim"] = expected
        if actual is not None:
            context["actual_dim"] = actual
        super().__init__(message, code="INVALID_DIMENSION", context=context, **kwargs)


class NonFiniteError(EmbeddingValidationError):
    """Raised when an embedding contains NaN or infinite components."""

    def __init__(
        self,
        message: str = "Embedding contains non-finite values",
        bad_count: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if bad_count is not None:
            context["bad_count"] = bad_count
        super().__init__(message, code="NON_FINITE", context=context, **kwargs)


class DegenerateVectorError(EmbeddingValidationError):
    """Raised when an embedding has zero L2 norm and cannot be normalized."""

    def __init__(
        self,
        message: str = "Embedding has zero norm",
        **kwargs,
    ) -> None:
        super().__init__(message, code="DEGENERATE_VECTOR", **kwargs)


class InvalidQualityError(EmbeddingValidationError):
    """
    Raised when the quality metrics sent with an embedding are malformed.

    Example:
        >>> raise InvalidQualityError(field="quality", value=1.5)
    """

    def __init__(
        self,
        message: str = "Invalid quality metrics",
        field: Optional[str] = None,
        value: Any = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        super().__init__(message, code="INVALID_QUALITY", context=context, **kwargs)


# ============================================
# Store Errors
# ============================================


class StoreError(AppException):
    """
    Base exception for score store errors.

    Raised when there are issues with:
    - Subject uniqueness and capacity rules
    - Population recomputation
    - Backend persistence (memory or ChromaDB)
    """

    pass


class DuplicateActiveError(StoreError):
    """
    Raised when a subject already has a record inside its validity window.

    Example:
        >>> raise DuplicateActiveError(subject_id="user-42")
    """

    def __init__(
        self,
        message: str = "Subject already has an active score",
        subject_id: Optional[str] = None,
        expires_at: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if subject_id:
            context["subject_id"] = subject_id
        if expires_at:
            context["expires_at"] = expires_at
        super().__init__(message, code="DUPLICATE_ACTIVE", context=context, **kwargs)


class SubjectNotFoundError(StoreError):
    """
    Raised when a subject has no current record.

    Example:
        >>> raise SubjectNotFoundError(subject_id="abc-123")
    """

    def __init__(
        self,
        message: str = "Subject not found",
        subject_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if subject_id:
            context["subject_id"] = subject_id
        super().__init__(message, code="SUBJECT_NOT_FOUND", context=context, **kwargs)


class CapacityExceededError(StoreError):
    """Raised when a new subject would push the population past its cap."""

    def __init__(
        self,
        message: str = "Population capacity reached",
        capacity: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if capacity is not None:
            context["capacity"] = capacity
        super().__init__(message, code="CAPACITY_EXCEEDED", context=context, **kwargs)


class RecomputationError(StoreError):
    """Raised when population recomputation fails; the previous snapshot stays published."""

    def __init__(
        self,
        message: str = "Population recomputation failed",
        **kwargs,
    ) -> None:
        super().__init__(message, code="RECOMPUTATION_FAILED", **kwargs)


class PersistenceError(StoreError):
    """Raised when a repository backend fails to load or save records."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        backend: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if backend:
            context["backend"] = backend
        super().__init__(message, code="PERSISTENCE_ERROR", context=context, **kwargs)


# ============================================
# Provider Errors
# ============================================


class ProviderError(AppException):
    """Base exception for embedding provider errors."""

    pass


class NoFaceDetectedError(ProviderError):
    """Raised when the embedding provider finds no usable face."""

    def __init__(
        self,
        message: str = "No usable face detected",
        subject_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if subject_id:
            context["subject_id"] = subject_id
        super().__init__(message, code="NO_FACE_DETECTED", context=context, **kwargs)


# Alias for common import pattern
FaceRankError = AppException
