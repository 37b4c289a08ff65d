# Core Package
"""
Scoring core: validation, the score store, ranking and vibe tags.

Provides:
- EmbeddingValidator: Dimension/finiteness checks and normalization
- ScoreStore: Single writer of subject records
- ScoringEngine: Application-facing facade
- ScoringWriter: Async single-writer queue
"""

from .engine import ScoringEngine, compute_confidence, get_scoring_engine, reset_scoring_engine
from .score_store import ScoreStore
from .snapshot import PopulationSnapshot
from .validation import EmbeddingValidator
from .writer import ScoringWriter

__all__ = [
    "EmbeddingValidator",
    "PopulationSnapshot",
    "ScoreStore",
    "ScoringEngine",
    "ScoringWriter",
    "compute_confidence",
    "get_scoring_engine",
    "reset_scoring_engine",
]
