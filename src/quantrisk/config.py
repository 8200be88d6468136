"""
config.py
---------
Centralised configuration for the risk engine.
All parameters are read from environment variables with sensible defaults,
so a dashboard, a batch job and the test-suite can run the same engine with
different iteration counts without code changes.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from quantrisk.exceptions import InvalidIterationsError, QuantRiskError


def _env_seed() -> Optional[int]:
    raw = os.getenv("QR_SEED", "")
    return int(raw) if raw.strip() else None


# Named iteration counts offered to callers
ITERATION_PRESETS: Dict[str, int] = {
    "fast":     10_000,
    "standard": 50_000,
    "high":     100_000,
    "maximum":  500_000,
}

CORRELATION_METHODS = ("noise", "copula")
SENSITIVITY_METHODS = ("fixed", "rank_correlation")


@dataclass
class SimulationConfig:
    """Single-scenario Monte Carlo parameters."""
    iterations:            int   = int(os.getenv("QR_ITERATIONS", "100000"))
    seed:                  Optional[int] = _env_seed()
    confidence_level:      float = float(os.getenv("QR_CONFIDENCE", "0.95"))
    include_correlation:   bool  = os.getenv("QR_INCLUDE_CORRELATION", "true").lower() == "true"

    # Convergence diagnostic
    convergence_threshold: float = 0.001    # relative change in running mean
    checkpoint_interval:   int   = 1000     # iterations between checkpoints

    # "fixed" | "rank_correlation"
    sensitivity_method:    str   = os.getenv("QR_SENSITIVITY", "fixed")


@dataclass
class PortfolioConfig:
    """Portfolio aggregation parameters."""
    correlation_method:  str   = os.getenv("QR_CORRELATION_METHOD", "noise")   # noise | copula
    default_correlation: float = 0.1      # flat off-diagonal assumption
    max_workers:         int   = int(os.getenv("QR_MAX_WORKERS", "4"))


@dataclass
class LoggingConfig:
    """None leaves the logger setup of the host process untouched."""
    level:   Optional[str] = os.getenv("QR_LOG_LEVEL") or None
    log_dir: Optional[str] = os.getenv("QR_LOG_DIR") or None


@dataclass
class EngineConfig:
    """Master configuration aggregating all sub-configs."""
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    portfolio:  PortfolioConfig  = field(default_factory=PortfolioConfig)
    logging:    LoggingConfig    = field(default_factory=LoggingConfig)

    def with_preset(self, preset: str) -> "EngineConfig":
        """Return a copy using one of ITERATION_PRESETS."""
        if preset not in ITERATION_PRESETS:
            raise QuantRiskError(
                f"Unknown iteration preset: {preset}. "
                f"Available: {list(ITERATION_PRESETS)}")
        sim = replace(self.simulation, iterations=ITERATION_PRESETS[preset])
        return replace(self, simulation=sim)

    def validate(self) -> "EngineConfig":
        """Raise a QuantRiskError for any out-of-range parameter."""
        sim, pf = self.simulation, self.portfolio
        if sim.iterations < 1:
            raise InvalidIterationsError(
                f"iterations must be >= 1, got {sim.iterations}")
        if sim.checkpoint_interval < 1:
            raise QuantRiskError("checkpoint_interval must be >= 1")
        if sim.convergence_threshold <= 0:
            raise QuantRiskError("convergence_threshold must be positive")
        if sim.confidence_level not in (0.95, 0.99):
            raise QuantRiskError(
                f"confidence_level must be 0.95 or 0.99, got {sim.confidence_level}")
        if sim.sensitivity_method not in SENSITIVITY_METHODS:
            raise QuantRiskError(
                f"Unknown sensitivity method: {sim.sensitivity_method}")
        if pf.correlation_method not in CORRELATION_METHODS:
            raise QuantRiskError(
                f"Unknown correlation method: {pf.correlation_method}")
        if not -1.0 <= pf.default_correlation <= 1.0:
            raise QuantRiskError("default_correlation must lie in [-1, 1]")
        if pf.max_workers < 1:
            raise QuantRiskError("max_workers must be >= 1")
        return self
