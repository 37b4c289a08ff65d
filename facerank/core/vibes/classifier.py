"""
Vibe tag classification.

Projects an embedding onto the hand-specified feature space of a
``VibeModel``, measures affinity to each named cluster centre and picks up
to three display tags: an optional rare signature, the primary cluster and
a compatible secondary cluster.

The signature draw is the only random step. Its generator is seeded from
``sha256(f"{seed}:{subject_id}")`` so a subject always gets the same tags
for the same embedding.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Optional

import numpy as np

from facerank.core.scoring.similarity import euclidean_distance
from facerank.domain.entities.subject import QualityMetrics
from facerank.utils.config import VibeConfig
from facerank.utils.logger import get_logger

from .tables import DEFAULT_VIBE_MODEL, VibeModel, validate_vibe_model

logger = get_logger(__name__)

RngFactory = Callable[[str], np.random.Generator]


def seeded_rng(seed: int, subject_id: str) -> np.random.Generator:
    """Deterministic generator for one subject."""
    digest = hashlib.sha256(f"{seed}:{subject_id}".encode("utf-8")).digest()
    return np.random.default_rng(int.from_bytes(digest[:8], "big"))


class VibeClassifier:
    """
    Assigns descriptive vibe tags to an embedding.

    Example:
        >>> classifier = VibeClassifier()
        >>> classifier.classify("user-1", embedding, quality)
        ['Gentle', 'Natural']
    """

    def __init__(
        self,
        config: Optional[VibeConfig] = None,
        model: VibeModel = DEFAULT_VIBE_MODEL,
        dimension: int = 512,
        rng_factory: Optional[RngFactory] = None,
    ):
        """
        Args:
            config: Selection thresholds.
            model: Versioned vibe tables.
            dimension: Embedding length the tables will be applied to.
            rng_factory: Maps a subject id to the generator used for the
                signature draw. Defaults to ``seeded_rng`` with
                ``config.seed``.

        Raises:
            VibeTableError: If ``model`` is inconsistent.
        """
        self.config = config or VibeConfig()
        validate_vibe_model(model, dimension)
        self.model = model
        self._centers = {
            name: np.asarray(center, dtype=np.float64) for name, center in model.centers.items()
        }
        self._rng_factory = rng_factory or (lambda subject_id: seeded_rng(self.config.seed, subject_id))
        logger.debug(
            f"Vibe model {model.version}: {len(model.projections)} features, "
            f"{len(model.centers)} clusters, {len(model.signatures)} signatures"
        )

    @property
    def version(self) -> str:
        return self.model.version

    def project(self, embedding: np.ndarray, quality: QualityMetrics) -> np.ndarray:
        """Feature vector of ``embedding``, one entry per projection."""
        e = np.asarray(embedding, dtype=np.float64)
        return np.array([p.project(e, quality) for p in self.model.projections], dtype=np.float64)

    def cluster_affinities(self, features: np.ndarray) -> dict[str, float]:
        """``exp(-2 * distance)`` to every cluster centre, in table order."""
        return {
            name: float(np.exp(-2.0 * euclidean_distance(features, center)))
            for name, center in self._centers.items()
        }

    def base_vibes(self, affinities: dict[str, float]) -> list[str]:
        """Primary cluster plus a compatible runner-up."""
        ranked = sorted(affinities.items(), key=lambda item: -item[1])
        vibes = [ranked[0][0]]
        if len(ranked) > 1:
            runner_up, affinity = ranked[1]
            if affinity > self.config.secondary_threshold and not self.model.conflicting(vibes[0], runner_up):
                vibes.append(runner_up)
        return vibes

    def signature(self, affinities: dict[str, float], rng: np.random.Generator) -> Optional[str]:
        """
        First signature whose traits match and whose rarity draw succeeds.

        Every signature that passes the trait test consumes one draw from
        ``rng``, in table order.
        """
        floor = self.config.signature_trait_floor
        for sig in self.model.signatures:
            matching = [affinities[t] for t in sig.traits if affinities.get(t, 0.0) > floor]
            if not matching:
                continue

            average = sum(matching) / len(matching)
            coverage = len(matching) / len(sig.traits)
            if (
                average > self.config.signature_average_threshold
                and coverage >= self.config.signature_coverage_threshold
            ):
                chance = min(1.0, sig.rarity * self.config.rarity_boost)
                if rng.random() < chance:
                    return sig.name
        return None

    def classify(self, subject_id: str, embedding: np.ndarray, quality: QualityMetrics) -> list[str]:
        """
        Compute display tags for one subject.

        Args:
            subject_id: Seeds the signature draw.
            embedding: Unit-normalized embedding.
            quality: Provider quality metrics.

        Returns:
            Between one and ``max_tags`` capitalized, distinct tags.
        """
        affinities = self.cluster_affinities(self.project(embedding, quality))
        candidates = self.base_vibes(affinities)

        signature = self.signature(affinities, self._rng_factory(subject_id))
        if signature:
            candidates.insert(0, signature)

        tags: list[str] = []
        for vibe in candidates:
            tag = vibe[:1].upper() + vibe[1:]
            if tag not in tags:
                tags.append(tag)
        return tags[: self.config.max_tags]

    def rarity(self, tag: str) -> float:
        """Rarity of a signature tag, or the default for regular tags."""
        sig = self.model.signature(tag)
        return sig.rarity if sig else self.model.default_rarity

    def signature_names(self) -> list[str]:
        return [sig.name for sig in self.model.signatures]
