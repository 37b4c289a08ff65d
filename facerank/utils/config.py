"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the facerank scoring engine.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigFileNotFoundError, ConfigValidationError

CONFIG_ENV = "FACERANK_CONFIG"


class EmbeddingConfig(BaseModel):
    """Configuration for incoming embedding vectors."""

    dimension: int = Field(default=512, ge=1, description="Required embedding length D")


class StoreConfig(BaseModel):
    """Configuration for the score store and its repository backend."""

    backend: str = Field(default="memory", description="Repository backend: memory or chroma")
    persist_directory: str = Field(default="./data/chroma", description="Directory for ChromaDB persistence")
    collection_name: str = Field(default="face_embeddings", description="ChromaDB collection name")
    batch_size: int = Field(default=100, ge=1, description="Batch size for record upserts")
    validity_days: float = Field(default=30.0, gt=0.0, description="Days before a score may be replaced")
    max_subjects: int = Field(default=10000, ge=1, description="Population cap")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend name."""
        valid_backends = ["memory", "chroma"]
        v_lower = v.lower()
        if v_lower not in valid_backends:
            raise ValueError(f"Invalid store backend. Choose from: {valid_backends}")
        return v_lower


class RankingConfig(BaseModel):
    """Configuration for affinity ranking and leaderboard display."""

    strategy: str = Field(default="auto", description="Affinity strategy: auto, pairwise or centroid")
    exact_threshold: int = Field(
        default=2000, ge=1,
        description="Largest population ranked with the full pairwise matrix when strategy is auto"
    )
    affinity_decimals: int = Field(default=10, ge=1, le=15, description="Rounding applied to affinities before ranking")
    tie_epsilon: float = Field(default=0.1, ge=0.0, description="Score gap treated as a tie on the leaderboard")
    display_perturbation: float = Field(default=0.1, ge=0.0, description="Per-position offset for tied display scores")

    @field_validator('strategy')
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        """Validate ranking strategy."""
        valid_strategies = ["auto", "pairwise", "centroid"]
        v_lower = v.lower()
        if v_lower not in valid_strategies:
            raise ValueError(f"Invalid ranking strategy. Choose from: {valid_strategies}")
        return v_lower


class VibeConfig(BaseModel):
    """Thresholds for vibe tag selection."""

    seed: int = Field(default=0, description="Seed mixed with the subject id for signature draws")
    secondary_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    signature_trait_floor: float = Field(default=0.4, ge=0.0, le=1.0)
    signature_average_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    signature_coverage_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    rarity_boost: float = Field(default=10.0, gt=0.0, description="Multiplier applied to signature rarity")
    max_tags: int = Field(default=3, ge=1, le=3)

    @model_validator(mode='after')
    def validate_floor(self) -> 'VibeConfig':
        """Ensure a matching trait can reach the average threshold."""
        if self.signature_trait_floor > self.signature_average_threshold:
            raise ValueError(
                "signature_trait_floor must not exceed signature_average_threshold"
            )
        return self


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    vibes: VibeConfig = Field(default_factory=VibeConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper

    @classmethod
    def from_yaml(cls, config_path: Path | str) -> "AppConfig":
        """Load configuration from an explicit YAML path."""
        return load_config(config_path)


# Singleton pattern for configuration
_config: Optional[AppConfig] = None


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration file. Defaults to the FACERANK_CONFIG
                    env var, then config/config.yaml relative to the project root

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist
        ConfigValidationError: If the YAML is malformed or fails validation
    """
    if config_path is None:
        env_config_path = os.environ.get(CONFIG_ENV)
        if env_config_path:
            config_path = Path(env_config_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        example_path = config_path.parent / "config.example.yaml"
        raise ConfigFileNotFoundError(
            f"Configuration file not found: {config_path}. "
            f"Copy {example_path} to {config_path} or set {CONFIG_ENV}.",
            path=str(config_path),
        )

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Malformed YAML in {config_path}: {e}", value=config_path) from e

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        first = e.errors()[0]
        raise ConfigValidationError(
            f"Invalid configuration in {config_path}: {e.error_count()} error(s)",
            field=".".join(str(part) for part in first["loc"]),
            value=first.get("input"),
        ) from e


def get_config(config_path: Optional[Path | str] = None, reload: bool = False) -> AppConfig:
    """Get configuration instance (singleton pattern).

    Args:
        config_path: Path to configuration file (only used on first call or if reload=True)
        reload: Force reload of configuration

    Returns:
        Cached or newly loaded AppConfig instance
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config


def reset_config() -> None:
    """Reset cached configuration (useful for testing)."""
    global _config
    _config = None
