"""
Reporting helpers
==================
Comparative tables and headline figures over a batch of simulation
results.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Sequence

from quantrisk.models.results import MonteCarloResults, RiskPortfolioResults


@dataclass
class AssessmentSummary:
    """Headline figures across all simulated scenarios."""
    scenario_count: int
    total_ale: float          # sum of individual ALE means
    max_var_99: float
    converged_count: int
    average_confidence: float


def summarize_results(results: Sequence[MonteCarloResults]) -> AssessmentSummary:
    if not results:
        return AssessmentSummary(0, 0.0, 0.0, 0, 0.0)
    return AssessmentSummary(
        scenario_count=len(results),
        total_ale=float(sum(r.annual_loss_expectancy.mean for r in results)),
        max_var_99=float(max(r.value_at_risk.var_99 for r in results)),
        converged_count=sum(1 for r in results if r.convergence_test.converged),
        average_confidence=float(np.mean([r.confidence_interval for r in results])),
    )


def results_frame(results: Sequence[MonteCarloResults]) -> pd.DataFrame:
    """One row per scenario, sorted by descending ALE mean."""
    rows = []
    for r in results:
        ale, var = r.annual_loss_expectancy, r.value_at_risk
        rows.append({
            "Scenario": r.scenario_id,
            "Name": r.scenario_name,
            "Runs": r.simulation_runs,
            "Lambda": r.frequency_distribution.lam,
            "ALE_mean": ale.mean,
            "ALE_median": ale.median,
            "ALE_sd": ale.standard_deviation,
            "VaR_95": var.var_95,
            "VaR_99": var.var_99,
            "CVaR_95": var.cvar_95,
            "CVaR_99": var.cvar_99,
            "Converged": r.convergence_test.converged,
        })
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    return df.sort_values("ALE_mean", ascending=False).reset_index(drop=True)


def contributors_frame(portfolio: RiskPortfolioResults) -> pd.DataFrame:
    """Risk contribution table in the portfolio's ranking order."""
    return pd.DataFrame([{
        "Scenario": c.scenario_id,
        "Contribution_pct": c.contribution_percentage,
        "Marginal_VaR": c.marginal_var,
        "Incremental_VaR_95": c.incremental_var_95,
    } for c in portfolio.top_risk_contributors])
