"""
Risk Quantification Engine
============================

Entry points used by the orchestration layer. The engine is an ordinary
object: construct one per use (or call the module-level functions), pass
a seed for reproducible output, and share nothing between runs.

    simulate_risk_scenario     one scenario      -> MonteCarloResults
    analyze_risk_portfolio     many scenarios    -> RiskPortfolioResults
    generate_industry_scenarios industry + size  -> [RiskScenario]
    run_assessment             scenarios + config -> AssessmentReport

Scenarios may be given as RiskScenario objects or as plain mappings.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from quantrisk.config import EngineConfig
from quantrisk.models.results import (
    FailedScenario, MonteCarloResults, RiskPortfolioResults)
from quantrisk.models.samplers import RunSeed, check_run_seed, seed_sequence
from quantrisk.models.scenario import RiskScenario, ScenarioInput, as_scenario
from quantrisk.portfolio import PortfolioAggregator
from quantrisk.reporting import AssessmentSummary, summarize_results
from quantrisk.simulator import CancellationToken, ScenarioSimulator, validate_iterations
from quantrisk.templates import ScenarioTemplateGenerator
from quantrisk.utils import configure_logging, get_logger

log = get_logger(__name__)


@dataclass
class AssessmentReport:
    results: List[MonteCarloResults]
    summary: AssessmentSummary
    portfolio: Optional[RiskPortfolioResults] = None
    failed_scenarios: List[FailedScenario] = field(default_factory=list)


class RiskQuantEngine:
    """
    Facade over simulator, aggregator and template generator.

    Usage:
        >>> engine = RiskQuantEngine(seed=42)
        >>> scenarios = engine.generate_industry_scenarios("financial", "large")
        >>> res = engine.simulate_risk_scenario(scenarios[0], iterations=50_000)
    """

    def __init__(self, config: Optional[EngineConfig] = None, seed: RunSeed = None):
        self.config = (config or EngineConfig()).validate()
        # Unset fields leave the process's logger setup untouched
        configure_logging(self.config.logging.level, self.config.logging.log_dir)
        self.seed = check_run_seed(seed if seed is not None else self.config.simulation.seed)
        self.templates = ScenarioTemplateGenerator()

    def simulate_risk_scenario(self, scenario: ScenarioInput,
                               iterations: Optional[int] = None,
                               cancel_token: Optional[CancellationToken] = None
                               ) -> MonteCarloResults:
        sim = ScenarioSimulator(self.config.simulation, seed=self.seed)
        return sim.simulate(as_scenario(scenario), iterations, cancel_token)

    def analyze_risk_portfolio(self, scenarios: Sequence[ScenarioInput],
                               correlation_matrix=None,
                               iterations: Optional[int] = None,
                               cancel_token: Optional[CancellationToken] = None
                               ) -> RiskPortfolioResults:
        agg = PortfolioAggregator(self.config, seed=self.seed)
        return agg.aggregate(scenarios, correlation_matrix, iterations, cancel_token)

    def generate_industry_scenarios(self, industry: str,
                                    organization_size: str) -> List[RiskScenario]:
        return self.templates.generate_industry_scenarios(industry, organization_size)

    def run_assessment(self, scenarios: Sequence[ScenarioInput],
                       iterations: Optional[int] = None,
                       correlation_matrix=None,
                       cancel_token: Optional[CancellationToken] = None
                       ) -> AssessmentReport:
        """
        Simulate every scenario once, then aggregate those same results
        into a portfolio when correlation modelling is enabled and there is
        more than one scenario. A scenario that fails validation, including
        a malformed mapping, is reported, not fatal.
        """
        scenarios = list(scenarios)
        n_iter = validate_iterations(
            self.config.simulation.iterations if iterations is None else iterations)
        children = seed_sequence(self.seed).spawn(len(scenarios) + 1)

        agg = PortfolioAggregator(self.config, seed=children[-1])
        aligned, failures = agg.simulate_all(
            scenarios, n_iter, children[:len(scenarios)], cancel_token)
        results = [r for r in aligned if r is not None]
        log.info("Assessment simulated %d of %d scenarios", len(results), len(scenarios))

        portfolio = None
        if self.config.simulation.include_correlation and len(scenarios) > 1:
            portfolio = agg.combine(aligned, correlation_matrix, n_iter, failures,
                                    seed=children[-1])

        return AssessmentReport(results=results, summary=summarize_results(results),
                                portfolio=portfolio, failed_scenarios=failures)


def simulate_risk_scenario(scenario: ScenarioInput, iterations: Optional[int] = None,
                           seed: RunSeed = None, config: Optional[EngineConfig] = None
                           ) -> MonteCarloResults:
    return RiskQuantEngine(config, seed).simulate_risk_scenario(scenario, iterations)


def analyze_risk_portfolio(scenarios: Sequence[ScenarioInput], correlation_matrix=None,
                           iterations: Optional[int] = None, seed: RunSeed = None,
                           config: Optional[EngineConfig] = None) -> RiskPortfolioResults:
    return RiskQuantEngine(config, seed).analyze_risk_portfolio(
        scenarios, correlation_matrix, iterations)


def generate_industry_scenarios(industry: str, organization_size: str) -> List[RiskScenario]:
    return ScenarioTemplateGenerator().generate_industry_scenarios(industry, organization_size)


def run_assessment(scenarios: Sequence[ScenarioInput], config: Optional[EngineConfig] = None,
                   seed: RunSeed = None, iterations: Optional[int] = None) -> AssessmentReport:
    return RiskQuantEngine(config, seed).run_assessment(scenarios, iterations)
