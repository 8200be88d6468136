"""
Quantitative Cyber-Risk Engine
===============================

Converts qualitative risk scenarios into probabilistic loss estimates with
Monte Carlo simulation, VaR/CVaR analysis and portfolio aggregation.

Modules:
    models.samplers    - Triangular, Poisson and Box-Muller normal variates
    models.scenario    - Immutable scenario, impact and frequency definitions
    models.statistics  - Order statistics, VaR/CVaR, sensitivity ranking
    simulator          - Single-scenario annual-loss Monte Carlo
    portfolio          - Correlated portfolio aggregation and contributions
    templates          - Industry starter scenarios scaled by organisation size
    engine             - Facade and module-level entry points
    reporting          - Summary figures and pandas tables

Author: Jose Orlando Bobadilla Fuentes, CQF
"""

from quantrisk.config import EngineConfig, SimulationConfig, PortfolioConfig, ITERATION_PRESETS
from quantrisk.exceptions import (
    QuantRiskError, InvalidScenarioError, InvalidIterationsError,
    InvalidCorrelationMatrixError, PortfolioAnalysisError, SimulationCancelledError)
from quantrisk.models.scenario import (
    RiskScenario, ImpactCategory, FrequencyData, ExpertJudgment)
from quantrisk.models.results import MonteCarloResults, RiskPortfolioResults
from quantrisk.simulator import ScenarioSimulator, CancellationToken
from quantrisk.portfolio import PortfolioAggregator
from quantrisk.templates import ScenarioTemplateGenerator, scenario_from_qualitative_risk
from quantrisk.engine import (
    RiskQuantEngine, AssessmentReport, simulate_risk_scenario,
    analyze_risk_portfolio, generate_industry_scenarios, run_assessment)

__version__ = "1.0.0"
__author__ = "Jose Orlando Bobadilla Fuentes"

__all__ = [
    "EngineConfig", "SimulationConfig", "PortfolioConfig", "ITERATION_PRESETS",
    "QuantRiskError", "InvalidScenarioError", "InvalidIterationsError",
    "InvalidCorrelationMatrixError", "PortfolioAnalysisError",
    "SimulationCancelledError",
    "RiskScenario", "ImpactCategory", "FrequencyData", "ExpertJudgment",
    "MonteCarloResults", "RiskPortfolioResults",
    "ScenarioSimulator", "CancellationToken", "PortfolioAggregator",
    "ScenarioTemplateGenerator", "scenario_from_qualitative_risk",
    "RiskQuantEngine", "AssessmentReport",
    "simulate_risk_scenario", "analyze_risk_portfolio",
    "generate_industry_scenarios", "run_assessment",
]
