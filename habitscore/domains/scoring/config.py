"""Weekly scoring configuration with environment overrides."""

import os
from dataclasses import dataclass


@dataclass
class ScoringConfig:
    """Tunables for the weekly scoring engine.

    Scheme weights are normalized so their shares always sum to
    ``score_ceiling``; the ceiling also bounds the persisted total.
    """

    score_ceiling: float = 100.0

    # Rules without a usable target count as needing one completion per week
    min_target: int = 1

    scoring_version: str = "weekly-linear-v1"

    def __post_init__(self) -> None:
        if self.score_ceiling <= 0:
            raise ValueError(f"score_ceiling must be positive, got {self.score_ceiling}")
        if self.min_target < 1:
            raise ValueError(f"min_target must be at least 1, got {self.min_target}")

    @classmethod
    def from_env(cls) -> "ScoringConfig":
        """Load config with environment variable overrides (SCORING_ prefix)."""
        config = cls()

        if v := os.getenv("SCORING_SCORE_CEILING"):
            config.score_ceiling = float(v)
        if v := os.getenv("SCORING_MIN_TARGET"):
            config.min_target = int(v)
        if v := os.getenv("SCORING_VERSION"):
            config.scoring_version = v

        config.__post_init__()
        return config


default_config = ScoringConfig()
