"""
Abstract interface for the external embedding provider.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field

from facerank.domain.entities.subject import QualityMetrics


class ProvidedEmbedding(BaseModel):
    """Provider output: a raw embedding plus quality metadata.

    Quality thresholds are enforced by the provider before this object is
    returned; the engine only re-checks dimensionality.
    """

    embedding: list[float] = Field(..., description="Raw (not necessarily normalized) embedding")
    quality: QualityMetrics


class EmbeddingProviderInterface(ABC):
    """
    Abstract base class for face embedding providers.

    Face detection, alignment and quality scoring live behind this contract.
    """

    @abstractmethod
    def extract(self, image: Any) -> Optional[ProvidedEmbedding]:
        """
        Extract a face embedding from an image.

        Args:
            image: Whatever image handle the provider accepts.

        Returns:
            ProvidedEmbedding, or None when no usable face was found.
        """
        pass

    @property
    @abstractmethod
    def embedding_dim(self) -> int:
        """Return the embedding dimension."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model name/identifier."""
        pass
