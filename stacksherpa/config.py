"""Configuration loading for stacksherpa.

Config sources (in priority order):
1. Explicit arguments passed to functions
2. Environment variables (STACKSHERPA_HOME, STACKSHERPA_CATALOG_PATH, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

CONFIG_DIR_NAME = ".stacksherpa"
DEFAULT_HOME = Path.home() / CONFIG_DIR_NAME
CATALOG_FILENAME = "catalog.db"
DEFAULT_DECAY_HALF_LIFE_DAYS = 180.0
DEFAULT_PATTERN_CACHE_TTL = 30.0  # seconds
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    home_dir: Path = DEFAULT_HOME  # global defaults, registry, catalog
    project_dir: Path = field(default_factory=Path.cwd)
    catalog_path: Path | None = None  # falls back to home_dir / catalog.db
    decay_half_life_days: float = DEFAULT_DECAY_HALF_LIFE_DAYS
    pattern_cache_ttl: float = DEFAULT_PATTERN_CACHE_TTL
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def load(cls) -> Config:
        home = Path(os.getenv("STACKSHERPA_HOME", str(DEFAULT_HOME))).expanduser()
        catalog = os.getenv("STACKSHERPA_CATALOG_PATH")
        return cls(
            home_dir=home,
            project_dir=Path(os.getenv("STACKSHERPA_PROJECT_DIR", str(Path.cwd()))),
            catalog_path=Path(catalog).expanduser() if catalog else None,
            decay_half_life_days=_float_env(
                "STACKSHERPA_DECAY_HALF_LIFE_DAYS", DEFAULT_DECAY_HALF_LIFE_DAYS
            ),
            pattern_cache_ttl=_float_env(
                "STACKSHERPA_PATTERN_CACHE_TTL", DEFAULT_PATTERN_CACHE_TTL
            ),
            log_level=os.getenv("STACKSHERPA_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )

    @property
    def resolved_catalog_path(self) -> Path:
        return self.catalog_path or self.home_dir / CATALOG_FILENAME

    def validate(self) -> list[str]:
        """Return a list of config issues."""
        issues = []
        if self.decay_half_life_days <= 0:
            issues.append(
                "Decay half-life must be positive (STACKSHERPA_DECAY_HALF_LIFE_DAYS)"
            )
        if self.pattern_cache_ttl < 0:
            issues.append(
                "Pattern cache TTL cannot be negative (STACKSHERPA_PATTERN_CACHE_TTL)"
            )
        if self.log_level not in LOG_LEVELS:
            issues.append(f"Unknown log level '{self.log_level}' (STACKSHERPA_LOG_LEVEL)")
        if not self.project_dir.is_dir():
            issues.append(f"Project directory not found: {self.project_dir}")
        return issues


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        # Surfaced by validate() as a non-positive value
        return -1.0
