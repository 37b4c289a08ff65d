"""
In-process repository. Contents live as long as the process.
"""

from __future__ import annotations

from typing import Sequence

from facerank.domain.entities.subject import SubjectRecord
from facerank.domain.interfaces.repository_interface import RepositoryInterface
from facerank.utils.logger import get_logger

logger = get_logger(__name__)


class MemoryRepository(RepositoryInterface):
    """Dict-backed repository keyed by ``record_id``."""

    name = "memory"

    def __init__(self):
        self._records: dict[str, SubjectRecord] = {}

    def load_all(self) -> list[SubjectRecord]:
        return sorted(self._records.values(), key=lambda r: (r.created_at, r.record_id))

    def save(self, records: Sequence[SubjectRecord]) -> None:
        for record in records:
            self._records[record.record_id] = record
        logger.debug(f"Saved {len(records)} records ({len(self._records)} total)")

    def replace_all(self, records: Sequence[SubjectRecord]) -> None:
        self._records = {record.record_id: record for record in records}
        logger.info(f"Replaced repository content with {len(self._records)} records")

    def count(self) -> int:
        return len(self._records)
