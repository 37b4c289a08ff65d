"""
Versioned vibe tables: feature projections, cluster centres, conflicting
pairs and signature combinations.

These are hand-specified policy, not learned parameters. Changing any value
means publishing a new ``VibeModel`` with a new ``version``; records keep the
version their tags were computed with.

Feature projections (``e`` is the unit embedding, ``q`` the quality
metrics, every feature is passed through ``tanh``):

=================  ===========================================================
intensity          sum(|e[i]| * (+1 if i even else -1), i < 100) / 100
                   + (1 - q.symmetry) * 0.3
warmth             sum(e[200:300]) / 100 + (q.quality - 0.5) * 0.4
softness           sum(e[300 + i] * sin(0.1 i), i < 100) / 100
                   + q.frontality * 0.2
style              sum(e[400 + i] * (1 if i % 3 == 0 else -0.5), i < 112) / 112
                   + (q.resolution - 0.5) * 0.3
energy             (mean|e[0:100]| + mean|e[200:300]|) / 2
                   + (q.quality + q.frontality) * 0.15
sophistication     sum(e[100 + i] * cos(0.05 i), i < 100) / 100
                   + q.symmetry * 0.4
naturalness        1 - min(1, 2 * mean|e|) + (1 - 2 |q.quality - 0.7|) * 0.3
uniqueness         min(1, 10 * var(e)) + (1 - q.symmetry) * 0.2
=================  ===========================================================
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional

import numpy as np

from facerank.domain.entities.subject import QualityMetrics
from facerank.utils.exceptions import VibeTableError


@dataclass(frozen=True)
class FeatureProjection:
    """One hand-specified vibe feature."""

    name: str
    regions: tuple[tuple[int, int], ...]
    raw: Callable[[np.ndarray], float]
    boost: Callable[[QualityMetrics], float]

    def project(self, embedding: np.ndarray, quality: QualityMetrics) -> float:
        return math.tanh(self.raw(embedding) + self.boost(quality))


@dataclass(frozen=True)
class SignatureVibe:
    """A rare multi-trait label."""

    name: str
    traits: tuple[str, ...]
    rarity: float


@dataclass(frozen=True)
class VibeModel:
    """Immutable, versioned bundle of all vibe policy tables."""

    version: str
    projections: tuple[FeatureProjection, ...]
    centers: Mapping[str, tuple[float, ...]]
    conflicts: frozenset[frozenset[str]]
    signatures: tuple[SignatureVibe, ...]
    default_rarity: float = 0.15

    @property
    def feature_names(self) -> list[str]:
        return [p.name for p in self.projections]

    @property
    def min_dimension(self) -> int:
        """Smallest embedding length every projection region fits into."""
        return max(stop for p in self.projections for _, stop in p.regions)

    def conflicting(self, a: str, b: str) -> bool:
        return frozenset((a, b)) in self.conflicts

    def signature(self, name: str) -> Optional[SignatureVibe]:
        for sig in self.signatures:
            if sig.name == name:
                return sig
        return None


# ============================================
# Projection formulas
# ============================================


def _intensity(e: np.ndarray) -> float:
    eyes = e[0:100]
    signs = np.where(np.arange(eyes.size) % 2 == 0, 1.0, -1.0)
    return float(np.sum(np.abs(eyes) * signs) / 100)


def _warmth(e: np.ndarray) -> float:
    return float(np.sum(e[200:300]) / 100)


def _softness(e: np.ndarray) -> float:
    shape = e[300:400]
    return float(np.sum(shape * np.sin(np.arange(shape.size) * 0.1)) / 100)


def _style(e: np.ndarray) -> float:
    general = e[400:512]
    pattern = np.where(np.arange(general.size) % 3 == 0, 1.0, -0.5)
    return float(np.sum(general * pattern) / 112)


def _energy(e: np.ndarray) -> float:
    eyes = np.sum(np.abs(e[0:100])) / 100
    mouth = np.sum(np.abs(e[200:300])) / 100
    return float((eyes + mouth) / 2)


def _sophistication(e: np.ndarray) -> float:
    nose = e[100:200]
    return float(np.sum(nose * np.cos(np.arange(nose.size) * 0.05)) / 100)


def _naturalness(e: np.ndarray) -> float:
    balance = float(np.mean(np.abs(e)))
    return 1.0 - min(1.0, balance * 2)


def _uniqueness(e: np.ndarray) -> float:
    return min(1.0, float(np.var(e)) * 10)


DEFAULT_PROJECTIONS = (
    FeatureProjection("intensity", ((0, 100),), _intensity, lambda q: (1 - q.symmetry) * 0.3),
    FeatureProjection("warmth", ((200, 300),), _warmth, lambda q: (q.quality - 0.5) * 0.4),
    FeatureProjection("softness", ((300, 400),), _softness, lambda q: q.frontality * 0.2),
    FeatureProjection("style", ((400, 512),), _style, lambda q: (q.resolution - 0.5) * 0.3),
    FeatureProjection(
        "energy", ((0, 100), (200, 300)), _energy, lambda q: (q.quality + q.frontality) * 0.15
    ),
    FeatureProjection("sophistication", ((100, 200),), _sophistication, lambda q: q.symmetry * 0.4),
    FeatureProjection(
        "naturalness", ((0, 512),), _naturalness, lambda q: (1 - abs(q.quality - 0.7) * 2) * 0.3
    ),
    FeatureProjection("uniqueness", ((0, 512),), _uniqueness, lambda q: (1 - q.symmetry) * 0.2),
)

DEFAULT_CENTERS = MappingProxyType({
    "mysterious": (0.3, -0.4, 0.2, -0.1, -0.2, 0.6, 0.1, 0.4),
    "confident": (0.6, 0.2, -0.3, 0.1, 0.5, 0.3, -0.1, 0.2),
    "gentle": (-0.4, 0.5, 0.6, -0.2, -0.3, 0.1, 0.4, -0.2),
    "sophisticated": (0.1, -0.2, -0.1, -0.4, 0.2, 0.7, -0.3, 0.1),
    "natural": (-0.2, 0.3, 0.4, 0.0, 0.1, -0.1, 0.8, -0.3),
    "artistic": (0.2, 0.0, 0.1, 0.5, 0.3, 0.2, 0.1, 0.7),
    "radiant": (0.4, 0.6, -0.2, 0.2, 0.7, 0.1, 0.2, 0.0),
    "serene": (-0.5, 0.1, 0.5, -0.3, -0.4, 0.2, 0.6, -0.1),
    "intense": (0.8, -0.3, -0.4, 0.1, 0.4, 0.2, -0.2, 0.3),
    "playful": (0.1, 0.4, 0.3, 0.3, 0.6, -0.2, 0.2, 0.1),
})

DEFAULT_CONFLICTS = frozenset({
    frozenset(("gentle", "intense")),
    frozenset(("mysterious", "radiant")),
    frozenset(("serene", "playful")),
    frozenset(("sophisticated", "natural")),
})

# Traits outside DEFAULT_CENTERS have no affinity and never count towards a match.
DEFAULT_SIGNATURES = (
    SignatureVibe("Mystic", ("mysterious", "sophisticated", "cool"), 0.05),
    SignatureVibe("Radiant", ("confident", "vibrant", "warm"), 0.08),
    SignatureVibe("Ethereal", ("soft", "serene", "natural"), 0.06),
    SignatureVibe("Bold", ("intense", "modern", "confident"), 0.07),
    SignatureVibe("Classic", ("elegant", "sophisticated", "timeless"), 0.09),
    SignatureVibe("Artistic", ("creative", "unique", "authentic"), 0.08),
    SignatureVibe("Luminous", ("radiant", "bright", "energetic"), 0.06),
    SignatureVibe("Refined", ("polished", "cultured", "classic"), 0.07),
    SignatureVibe("Magnetic", ("powerful", "commanding", "intense"), 0.05),
    SignatureVibe("Gentle", ("kind", "tender", "soft"), 0.10),
    SignatureVibe("Enigmatic", ("intriguing", "deep", "mysterious"), 0.06),
    SignatureVibe("Spirited", ("fun", "charming", "playful"), 0.09),
    SignatureVibe("Serene", ("peaceful", "balanced", "calm"), 0.08),
    SignatureVibe("Dynamic", ("energetic", "lively", "vibrant"), 0.07),
)

DEFAULT_VIBE_MODEL = VibeModel(
    version="1.0",
    projections=DEFAULT_PROJECTIONS,
    centers=DEFAULT_CENTERS,
    conflicts=DEFAULT_CONFLICTS,
    signatures=DEFAULT_SIGNATURES,
)


def validate_vibe_model(model: VibeModel, dimension: int) -> None:
    """
    Check a vibe model for internal consistency.

    Args:
        model: The tables to check.
        dimension: Embedding length the model will be applied to.

    Raises:
        VibeTableError: On the first inconsistency found.
    """
    if not model.version:
        raise VibeTableError("Vibe model needs a version")

    n_features = len(model.projections)
    if n_features == 0:
        raise VibeTableError("Vibe model has no projections", version=model.version)

    for projection in model.projections:
        for start, stop in projection.regions:
            if not 0 <= start < stop:
                raise VibeTableError(
                    f"Projection {projection.name} has an empty region ({start}, {stop})",
                    version=model.version,
                )
    if model.min_dimension > dimension:
        raise VibeTableError(
            f"Projections read up to index {model.min_dimension} but embeddings have {dimension} dims",
            version=model.version,
        )

    if not model.centers:
        raise VibeTableError("Vibe model has no cluster centres", version=model.version)
    for name, center in model.centers.items():
        if len(center) != n_features:
            raise VibeTableError(
                f"Centre {name} has {len(center)} coordinates, expected {n_features}",
                version=model.version,
            )

    for pair in model.conflicts:
        if len(pair) != 2 or not all(isinstance(name, str) for name in pair):
            raise VibeTableError(f"Conflict entry {sorted(pair)} is not a pair", version=model.version)

    seen = set()
    for sig in model.signatures:
        if not sig.traits or not all(isinstance(t, str) for t in sig.traits):
            raise VibeTableError(f"Signature {sig.name} has no traits", version=model.version)
        if not 0.0 < sig.rarity <= 1.0:
            raise VibeTableError(
                f"Signature {sig.name} rarity {sig.rarity} outside (0, 1]",
                version=model.version,
            )
        if sig.name in seen:
            raise VibeTableError(f"Duplicate signature {sig.name}", version=model.version)
        seen.add(sig.name)
