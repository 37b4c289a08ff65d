"""
ChromaDB repository for durable subject records.

One collection holds every record, current and superseded, keyed by
``record_id``. Embeddings are stored as float32 vectors; everything else
goes into flat metadata.

Note:
    A ChromaDB write is not transactional across batches. The store only
    publishes a new snapshot after ``save`` returns, so a failed batch never
    becomes visible to readers, but rows from earlier batches of the same
    call may already be on disk. ``replace_all`` is staged in a separate
    collection and swapped in by renaming, so it either lands whole or
    leaves the previous content untouched.

Example:
    >>> repo = ChromaRepository(StoreConfig(backend="chroma"))
    >>> repo.save([record])
    >>> repo.load_all()
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import chromadb
import chromadb.errors
import numpy as np
from chromadb.config import Settings
from tqdm import tqdm

from facerank.domain.entities.subject import QualityMetrics, SubjectRecord
from facerank.domain.interfaces.repository_interface import RepositoryInterface
from facerank.utils.config import StoreConfig
from facerank.utils.exceptions import PersistenceError
from facerank.utils.logger import get_logger, log_exception, log_execution_time

logger = get_logger(__name__)

# Unit vectors, so cosine is the natural metric for any ad-hoc queries
DISTANCE_FUNCTION = "cosine"

IN_MEMORY = ":memory:"

# Helper collections used while swapping content in replace_all
STAGING_SUFFIX = "_staging"
RETIRED_SUFFIX = "_retired"


# ============================================
# Helper Functions
# ============================================


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def record_to_metadata(record: SubjectRecord) -> Dict[str, Any]:
    """
    Convert a record to ChromaDB metadata.

    ChromaDB rejects None, so a missing ``superseded_at`` is stored as an
    empty string and a missing score is left out.
    """
    metadata: Dict[str, Any] = {
        "subject_id": record.subject_id,
        "quality": float(record.quality.quality),
        "frontality": float(record.quality.frontality),
        "symmetry": float(record.quality.symmetry),
        "resolution": float(record.quality.resolution),
        "tags": json.dumps(list(record.tags)),
        "vibe_version": record.vibe_version,
        "created_at": record.created_at.isoformat(),
        "superseded_at": record.superseded_at.isoformat() if record.superseded_at else "",
    }
    if record.score is not None:
        metadata["score"] = float(record.score)
    return metadata


def metadata_to_record(record_id: str, metadata: Dict[str, Any], embedding: Sequence[float]) -> SubjectRecord:
    """Rebuild a record from a ChromaDB row."""
    return SubjectRecord(
        record_id=record_id,
        subject_id=metadata["subject_id"],
        embedding=np.array(embedding, dtype=np.float32),
        quality=QualityMetrics(
            quality=metadata["quality"],
            frontality=metadata["frontality"],
            symmetry=metadata["symmetry"],
            resolution=metadata["resolution"],
        ),
        score=metadata.get("score"),
        tags=tuple(json.loads(metadata.get("tags") or "[]")),
        vibe_version=metadata.get("vibe_version", ""),
        created_at=datetime.fromisoformat(metadata["created_at"]),
        superseded_at=_parse_timestamp(metadata.get("superseded_at")),
    )


class ChromaRepository(RepositoryInterface):
    """Durable repository backed by a single ChromaDB collection."""

    name = "chroma"

    def __init__(self, config: Optional[StoreConfig] = None):
        """
        Open (or create) the collection.

        Args:
            config: Store configuration. ``persist_directory == ":memory:"``
                selects an ephemeral client.

        Raises:
            PersistenceError: If the client or collection cannot be opened.
        """
        self.config = config or StoreConfig(backend="chroma")
        self.collection_name = self.config.collection_name
        settings = Settings(anonymized_telemetry=False, allow_reset=True)

        try:
            if self.config.persist_directory == IN_MEMORY:
                self.client = chromadb.EphemeralClient(settings=settings)
                logger.info("Initialized ephemeral ChromaDB client")
            else:
                persist_dir = Path(self.config.persist_directory)
                persist_dir.mkdir(parents=True, exist_ok=True)
                self.client = chromadb.PersistentClient(path=str(persist_dir), settings=settings)
                logger.info(f"Initialized ChromaDB client at {persist_dir}")

            self.collection = self._open_collection()
        except Exception as e:
            raise PersistenceError(f"Failed to open ChromaDB collection: {e}", backend=self.name) from e

        logger.info(f"Collection {self.collection_name} ready ({self.collection.count()} records)")

    def _open_collection(self):
        return self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": DISTANCE_FUNCTION},
        )

    def load_all(self) -> list[SubjectRecord]:
        try:
            data = self.collection.get(include=["embeddings", "metadatas"])
            records = [
                metadata_to_record(record_id, metadata, embedding)
                for record_id, metadata, embedding in zip(data["ids"], data["metadatas"], data["embeddings"])
            ]
        except Exception as e:
            log_exception(logger, "load records", e)
            raise PersistenceError(f"Failed to load records: {e}", backend=self.name) from e

        logger.debug(f"Loaded {len(records)} records from {self.collection_name}")
        return sorted(records, key=lambda r: (r.created_at, r.record_id))

    def save(self, records: Sequence[SubjectRecord]) -> None:
        self._upsert(self.collection, records)

    def replace_all(self, records: Sequence[SubjectRecord]) -> None:
        """
        Swap the whole collection for ``records``.

        The new content is written to a staging collection first. The live
        collection is only retired once every batch has landed, so a failed
        write leaves the previous content in place.
        """
        logger.warning(f"Replacing all records in {self.collection_name}")
        staging_name = f"{self.collection_name}{STAGING_SUFFIX}"
        retired_name = f"{self.collection_name}{RETIRED_SUFFIX}"

        try:
            self._drop(staging_name)
            self._drop(retired_name)
            staging = self.client.create_collection(
                name=staging_name,
                metadata={"hnsw:space": DISTANCE_FUNCTION},
            )
        except Exception as e:
            log_exception(logger, "create staging collection", e)
            raise PersistenceError(f"Failed to create staging collection: {e}", backend=self.name) from e

        try:
            self._upsert(staging, records)
        except PersistenceError:
            self._drop(staging_name)
            raise

        live = self.collection
        try:
            live.modify(name=retired_name)
        except Exception as e:
            self._drop(staging_name)
            log_exception(logger, "retire live collection", e)
            raise PersistenceError(f"Failed to retire collection: {e}", backend=self.name) from e

        try:
            staging.modify(name=self.collection_name)
        except Exception as e:
            live.modify(name=self.collection_name)
            self._drop(staging_name)
            log_exception(logger, "promote staging collection", e)
            raise PersistenceError(f"Failed to promote staging collection: {e}", backend=self.name) from e

        self.collection = self._open_collection()
        self._drop(retired_name)
        logger.info(f"Collection {self.collection_name} now holds {len(records)} records")

    def _upsert(self, collection, records: Sequence[SubjectRecord]) -> None:
        if not records:
            return

        batch_size = self.config.batch_size
        num_batches = (len(records) + batch_size - 1) // batch_size

        iterator = range(0, len(records), batch_size)
        if num_batches > 1:
            iterator = tqdm(iterator, total=num_batches, desc=f"Saving to {collection.name}")

        with log_execution_time(logger, f"upsert of {len(records)} records"):
            for start_idx in iterator:
                batch = records[start_idx:start_idx + batch_size]
                try:
                    self._upsert_batch(collection, batch)
                except Exception as e:
                    log_exception(logger, f"upsert batch {start_idx}-{start_idx + len(batch)}", e)
                    raise PersistenceError(f"Failed to save records: {e}", backend=self.name) from e

    def _upsert_batch(self, collection, batch: Sequence[SubjectRecord]) -> None:
        collection.upsert(
            ids=[r.record_id for r in batch],
            embeddings=[r.embedding.tolist() for r in batch],
            metadatas=[record_to_metadata(r) for r in batch],
        )

    def _drop(self, name: str) -> None:
        """Delete a helper collection if it exists."""
        try:
            self.client.delete_collection(name)
        except (ValueError, chromadb.errors.ChromaError) as e:
            logger.debug(f"No collection {name} to drop: {e}")

    def count(self) -> int:
        return self.collection.count()
