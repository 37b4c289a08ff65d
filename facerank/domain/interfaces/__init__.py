# Domain Interfaces Package
"""
Abstract base classes defining contracts for infrastructure implementations.
"""

from .provider_interface import EmbeddingProviderInterface, ProvidedEmbedding
from .repository_interface import RepositoryInterface

__all__ = ["EmbeddingProviderInterface", "ProvidedEmbedding", "RepositoryInterface"]
