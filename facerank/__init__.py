"""facerank - population-relative percentile scoring for face embeddings."""

__version__ = "0.1.0"
