# Vibes Package
"""
Descriptive vibe tags computed from embeddings.

Provides:
- VibeClassifier: Primary, secondary and signature tag selection
- VibeModel: Versioned projection, cluster and signature tables
- validate_vibe_model: Consistency check run on load
"""

from .classifier import VibeClassifier, seeded_rng
from .tables import (
    DEFAULT_VIBE_MODEL,
    FeatureProjection,
    SignatureVibe,
    VibeModel,
    validate_vibe_model,
)

__all__ = [
    "VibeClassifier",
    "seeded_rng",
    "VibeModel",
    "FeatureProjection",
    "SignatureVibe",
    "DEFAULT_VIBE_MODEL",
    "validate_vibe_model",
]
