# Database Infrastructure Package
"""
Repository backends for subject records.

Provides:
- MemoryRepository: Process-lifetime storage
- ChromaRepository: Durable ChromaDB storage
- create_repository: Backend selection from configuration
"""

from typing import Optional

from facerank.domain.interfaces.repository_interface import RepositoryInterface
from facerank.utils.config import StoreConfig

from .chroma_repository import ChromaRepository, metadata_to_record, record_to_metadata
from .memory_repository import MemoryRepository


def create_repository(config: Optional[StoreConfig] = None) -> RepositoryInterface:
    """Instantiate the backend named by ``config.backend``."""
    config = config or StoreConfig()
    if config.backend == "chroma":
        return ChromaRepository(config)
    return MemoryRepository()


__all__ = [
    "ChromaRepository",
    "MemoryRepository",
    "create_repository",
    "metadata_to_record",
    "record_to_metadata",
]
