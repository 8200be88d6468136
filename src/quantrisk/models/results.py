"""
Simulation Result Containers
==============================

Output structures of the single-scenario simulator and the portfolio
aggregator. Every container converts to plain dictionaries with
to_dict() for callers that expect JSON-like data.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class AnnualLossExpectancy:
    mean: float
    median: float
    percentile_95: float
    percentile_99: float
    standard_deviation: float


@dataclass
class ValueAtRisk:
    var_95: float
    var_99: float
    cvar_95: float  # Conditional VaR (expected shortfall)
    cvar_99: float


@dataclass
class ImpactDistribution:
    """Per-event impact spread (not annual loss)."""
    min: float
    max: float
    percentiles: Dict[str, float]


@dataclass
class FrequencyDistribution:
    lam: float  # Poisson parameter
    confidence_bounds: Tuple[float, float]

    def to_dict(self) -> Dict[str, Any]:
        return {"lambda": self.lam,
                "confidence_bounds": list(self.confidence_bounds)}


@dataclass
class SensitivityResult:
    parameter: str
    correlation_coefficient: float
    variance_contribution: float
    rank: int


@dataclass
class ConvergenceTest:
    """
    converged / stable_at_iteration record the first checkpoint at which
    the running mean looked stable; the flag is never cleared afterwards.
    """
    converged: bool
    stable_at_iteration: int
    final_variance: float
    checkpoints: List[Tuple[int, float]] = field(default_factory=list)


@dataclass
class MonteCarloResults:
    """Container for one scenario's Monte Carlo output."""
    scenario_id: str
    simulation_runs: int
    confidence_interval: float
    annual_loss_expectancy: AnnualLossExpectancy
    value_at_risk: ValueAtRisk
    impact_distribution: ImpactDistribution
    frequency_distribution: FrequencyDistribution
    sensitivity_analysis: List[SensitivityResult]
    convergence_test: ConvergenceTest
    scenario_name: str = ""
    loss_distribution: Optional[np.ndarray] = field(default=None, repr=False)

    def to_dict(self, include_samples: bool = False) -> Dict[str, Any]:
        out = {
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "simulation_runs": self.simulation_runs,
            "confidence_interval": self.confidence_interval,
            "annual_loss_expectancy": asdict(self.annual_loss_expectancy),
            "value_at_risk": asdict(self.value_at_risk),
            "impact_distribution": asdict(self.impact_distribution),
            "frequency_distribution": self.frequency_distribution.to_dict(),
            "sensitivity_analysis": [asdict(s) for s in self.sensitivity_analysis],
            "convergence_test": {
                "converged": self.convergence_test.converged,
                "stable_at_iteration": self.convergence_test.stable_at_iteration,
                "final_variance": self.convergence_test.final_variance,
            },
        }
        if include_samples and self.loss_distribution is not None:
            out["loss_distribution"] = self.loss_distribution.tolist()
        return out


@dataclass
class RiskContribution:
    scenario_id: str
    contribution_percentage: float
    marginal_var: float          # mean contribution (simplified marginal VaR)
    incremental_var_95: float = 0.0  # portfolio VaR95 minus VaR95 without this scenario


@dataclass
class PortfolioVaR:
    var_95: float
    var_99: float


@dataclass
class FailedScenario:
    scenario_id: str
    error: str


@dataclass
class RiskPortfolioResults:
    """Container for portfolio aggregation output."""
    total_ale: AnnualLossExpectancy
    diversification_benefit: float
    correlation_matrix: List[List[float]]
    top_risk_contributors: List[RiskContribution]
    portfolio_var: PortfolioVaR
    tail_diversification_benefit: float = 0.0
    correlation_method: str = "noise"
    individual_results: List[MonteCarloResults] = field(default_factory=list, repr=False)
    failed_scenarios: List[FailedScenario] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_ale": asdict(self.total_ale),
            "diversification_benefit": self.diversification_benefit,
            "tail_diversification_benefit": self.tail_diversification_benefit,
            "correlation_matrix": [list(row) for row in self.correlation_matrix],
            "correlation_method": self.correlation_method,
            "top_risk_contributors": [asdict(c) for c in self.top_risk_contributors],
            "portfolio_var": asdict(self.portfolio_var),
            "failed_scenarios": [asdict(f) for f in self.failed_scenarios],
        }
