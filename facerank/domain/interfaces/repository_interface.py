"""
Abstract interface for subject record repositories.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from facerank.domain.entities.subject import SubjectRecord


class RepositoryInterface(ABC):
    """
    Abstract base class for record repositories.

    Defines the storage contract shared by the ephemeral and durable
    backends. Records are keyed by ``record_id``; superseded records are
    stored alongside current ones.
    """

    #: Short backend identifier used in logs and error context.
    name: str = "abstract"

    @abstractmethod
    def load_all(self) -> list[SubjectRecord]:
        """
        Load every stored record, current and superseded.

        Returns:
            Records ordered by ``created_at``.
        """
        pass

    @abstractmethod
    def save(self, records: Sequence[SubjectRecord]) -> None:
        """
        Insert or overwrite records by ``record_id``.

        Args:
            records: Records to upsert.
        """
        pass

    @abstractmethod
    def replace_all(self, records: Sequence[SubjectRecord]) -> None:
        """
        Drop all stored records and store ``records`` instead.

        Args:
            records: The complete new content.
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored records, history included."""
        pass
