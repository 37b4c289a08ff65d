"""Pydantic data models for scored subjects.

A subject owns one *current* record at a time. Replaced records are kept with
``superseded_at`` set so that rank history stays explainable.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def utc_now() -> datetime:
    """Timezone-aware current time, the default clock of the store."""
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class QualityMetrics(BaseModel):
    """Provider-supplied quality scalars, stored verbatim."""

    model_config = ConfigDict(frozen=True)

    quality: float = Field(..., ge=0.0, le=1.0, description="Overall face quality")
    frontality: float = Field(..., ge=0.0, le=1.0, description="How frontal the pose is")
    symmetry: float = Field(..., ge=0.0, le=1.0, description="Facial symmetry")
    resolution: float = Field(..., ge=0.0, le=1.0, description="Effective resolution")

    def weighted_average(self) -> float:
        """Quality-weighted average used for confidence reporting."""
        return (
            self.quality * 0.4
            + self.frontality * 0.3
            + self.resolution * 0.2
            + self.symmetry * 0.1
        )


class SubjectRecord(BaseModel):
    """One stored scoring record for a subject."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    record_id: str = Field(default_factory=lambda: uuid4().hex, description="Unique record identifier")
    subject_id: str = Field(..., min_length=1, description="Stable subject identifier")
    embedding: np.ndarray = Field(..., description="Unit-normalized float32 embedding")
    quality: QualityMetrics
    score: Optional[float] = Field(default=None, ge=0.0, le=100.0, description="Percentile score, None until computed")
    tags: tuple[str, ...] = Field(default=(), max_length=3, description="Vibe tags computed at insert time")
    vibe_version: str = Field(default="", description="Vibe table version used for tags")
    created_at: datetime = Field(default_factory=utc_now)
    superseded_at: Optional[datetime] = Field(default=None, description="Set when a newer record replaced this one")

    @field_validator('embedding', mode='before')
    @classmethod
    def validate_embedding(cls, v) -> np.ndarray:
        """Coerce to a read-only 1D float32 array."""
        arr = np.array(v, dtype=np.float32)
        if arr.ndim != 1:
            raise ValueError(f"Embedding must be 1D, got shape {arr.shape}")
        arr.setflags(write=False)
        return arr

    @field_validator('created_at', 'superseded_at')
    @classmethod
    def validate_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store all timestamps as UTC."""
        if v is None:
            return v
        return _ensure_utc(v)

    @field_serializer('embedding')
    def serialize_embedding(self, v: np.ndarray) -> list[float]:
        return [float(x) for x in v]

    @property
    def is_current(self) -> bool:
        return self.superseded_at is None

    def expires_at(self, validity_window: timedelta) -> datetime:
        """End of the window during which this record blocks a new submission."""
        return self.created_at + validity_window

    def is_active(self, now: datetime, validity_window: timedelta) -> bool:
        """Current and still inside its validity window."""
        return self.is_current and _ensure_utc(now) < self.expires_at(validity_window)

    def with_score(self, score: Optional[float]) -> "SubjectRecord":
        return self.model_copy(update={"score": score})

    def superseded(self, when: datetime) -> "SubjectRecord":
        return self.model_copy(update={"superseded_at": _ensure_utc(when)})
