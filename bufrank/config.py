"""Config loading from ~/.bufrank/config.json with env var overrides."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path.home() / ".bufrank"
CONFIG_PATH = CONFIG_DIR / "config.json"

DEFAULT_MARKERS = [
    ".git",
    "go.mod",
    "package.json",
    "Cargo.toml",
    "pyproject.toml",
    "pyproject.json",
    "Makefile",
    "README.md",
]

logger = logging.getLogger("bufrank")


class ScoringConfig(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="BUFRANK_SCORING_",
        extra="ignore",
    )
    frequency_weight: float = 0.4
    recency_weight: float = 0.6
    recency_decay: float = Field(default=1.0, ge=0.0)


class ProjectConfig(BaseModel):
    markers: list[str] = Field(default_factory=lambda: list(DEFAULT_MARKERS))
    max_histories: int = Field(default=50, ge=1)


class DisplayConfig(BaseModel):
    show_scores: bool = True
    score_format: str = "%.1f"
    shorten_paths: bool = True


class BufrankConfig(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="BUFRANK_",
        extra="ignore",
    )
    data_dir: str = Field(default_factory=lambda: str(CONFIG_DIR))
    log_level: str = "WARNING"
    # Sub-configs
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)


def validateConfig(config: BufrankConfig) -> BufrankConfig:
    """Warn when scoring weights don't sum to 1.0. Never rejects the config."""
    total = config.scoring.frequency_weight + config.scoring.recency_weight
    if abs(total - 1.0) > 0.001:
        logger.warning(
            "frequency_weight and recency_weight should add up to 1.0 (current: %.2f)", total
        )
    return config


def loadConfig() -> BufrankConfig:
    """Load config from ~/.bufrank/config.json with env var overrides."""
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        return validateConfig(BufrankConfig(**raw))
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config = BufrankConfig()
    CONFIG_PATH.write_text(config.model_dump_json(indent=2))
    return validateConfig(config)
