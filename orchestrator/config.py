"""
Orchestrator - Configuration.

============================================================
RESPONSIBILITY
============================================================
Top-level engine configuration assembled from the package
configs, with overrides from the environment.

Environment (a .env file is loaded first):
    POOL_RISK_OWNER                   owner address
    POOL_RISK_CACHE_DURATION_SECONDS  score memoization window
    POOL_RISK_HIGH_RISK_THRESHOLD     bps, forced-close / band
    POOL_RISK_MAX_NOTIFICATIONS       live notifications per user
    POOL_RISK_VOLATILITY_WINDOW       default price window size
    POOL_RISK_LOG_LEVEL               logging level
    POOL_RISK_LOG_FORMAT              json or text
    POOL_RISK_DATABASE_URL            audit trail database

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from core.constants import (
    BPS,
    CACHE_DURATION_SECONDS,
    HIGH_RISK_THRESHOLD,
    MAX_NOTIFICATIONS_PER_USER,
)
from risk_scoring.config import (
    AggregatorConfig,
    RiskScoringConfig,
    VolatilityConfig,
)
from system_risk_controller.config import (
    NotifierConfig,
    SystemRiskControllerConfig,
)


# ============================================================
# CONTROL BANDS
# ============================================================

@dataclass(frozen=True)
class ControlBands:
    """
    Score bands mapped to automatic control actions.

    A score at or above a band's floor selects that band's
    action; the highest matching band wins.
    """

    warning: int = 5000
    throttle: int = HIGH_RISK_THRESHOLD
    pause: int = 9000

    def to_dict(self) -> Dict[str, Any]:
        return {"warning": self.warning, "throttle": self.throttle, "pause": self.pause}


# ============================================================
# ENGINE CONFIGURATION
# ============================================================

@dataclass
class EngineConfig:
    """
    Complete engine configuration.
    """

    owner: str = "owner"
    """Owner address of a freshly created engine."""

    scoring: RiskScoringConfig = field(default_factory=RiskScoringConfig)
    controller: SystemRiskControllerConfig = field(default_factory=SystemRiskControllerConfig)
    bands: ControlBands = field(default_factory=ControlBands)

    high_risk_threshold: int = HIGH_RISK_THRESHOLD
    """Forced position close and high-risk metrics threshold."""

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    # Audit trail
    database_url: Optional[str] = None
    """Audit trail database; None disables persistence."""

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        load_dotenv()

        cache_duration = int(os.getenv("POOL_RISK_CACHE_DURATION_SECONDS", str(CACHE_DURATION_SECONDS)))
        high_risk = int(os.getenv("POOL_RISK_HIGH_RISK_THRESHOLD", str(HIGH_RISK_THRESHOLD)))
        max_notifications = int(os.getenv("POOL_RISK_MAX_NOTIFICATIONS", str(MAX_NOTIFICATIONS_PER_USER)))
        window = int(os.getenv("POOL_RISK_VOLATILITY_WINDOW", str(VolatilityConfig().default_window_size)))

        return cls(
            owner=os.getenv("POOL_RISK_OWNER", "owner"),
            scoring=RiskScoringConfig(
                volatility=VolatilityConfig(default_window_size=window),
                aggregator=AggregatorConfig(
                    cache_duration_seconds=cache_duration,
                    high_risk_threshold=high_risk,
                ),
            ),
            controller=SystemRiskControllerConfig(
                notifier=NotifierConfig(max_notifications_per_user=max_notifications),
            ),
            bands=ControlBands(throttle=high_risk),
            high_risk_threshold=high_risk,
            log_level=os.getenv("POOL_RISK_LOG_LEVEL", "INFO"),
            log_format=os.getenv("POOL_RISK_LOG_FORMAT", "text"),
            database_url=os.getenv("POOL_RISK_DATABASE_URL") or None,
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.owner:
            errors.append("owner is required")

        if not 0 < self.high_risk_threshold <= BPS:
            errors.append("high_risk_threshold must be in (0, 10000]")

        if self.scoring.aggregator.cache_duration_seconds < 0:
            errors.append("cache_duration_seconds cannot be negative")

        if self.controller.notifier.max_notifications_per_user < 1:
            errors.append("max_notifications_per_user must be at least 1")

        if not self.bands.warning <= self.bands.throttle <= self.bands.pause <= BPS:
            errors.append("control bands must be ordered warning <= throttle <= pause <= 10000")

        if self.log_format not in ("json", "text"):
            errors.append("log_format must be json or text")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "scoring": self.scoring.to_dict(),
            "controller": self.controller.to_dict(),
            "bands": self.bands.to_dict(),
            "high_risk_threshold": self.high_risk_threshold,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "database_persistence": self.database_url is not None,
        }
