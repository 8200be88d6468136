"""
Risk Portfolio Aggregator
===========================

Combines independently simulated scenarios into a portfolio loss
distribution, measures diversification and ranks each scenario's
contribution.

Two ways of drawing joint portfolio samples are available:

    noise  : each scenario contributes max(0, ALE_mean + U(-1/2, 1/2) * ALE_sd).
             The correlation matrix is reported but not applied. This is a
             simplified proxy kept because existing dashboards display its
             figures as-is.

    copula : Gaussian copula. Z = L @ eps with L L' = R, U = Phi(Z), and
             each scenario contributes its own empirical annual-loss quantile
             at U. Preserves every scenario's marginal distribution.

Diversification benefit = (sum_i ALE_i - ALE_portfolio) / sum_i ALE_i.
Because the mean is linear, the tail analogue on VaR95 is also reported.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from concurrent.futures import ThreadPoolExecutor
from scipy.stats import norm
from typing import List, Optional, Sequence, Tuple

from quantrisk.config import EngineConfig
from quantrisk.exceptions import (
    InvalidCorrelationMatrixError, InvalidScenarioError,
    PortfolioAnalysisError, QuantRiskError, SimulationCancelledError)
from quantrisk.models.results import (
    FailedScenario, MonteCarloResults, PortfolioVaR, RiskContribution,
    RiskPortfolioResults)
from quantrisk.models.samplers import RunSeed, check_run_seed, seed_sequence
from quantrisk.models.scenario import ScenarioInput, as_scenario, scenario_id
from quantrisk.models import statistics as st
from quantrisk.simulator import (
    CancellationToken, ScenarioSimulator, validate_iterations)
from quantrisk.utils import get_logger, safe_ratio, timeit

log = get_logger(__name__)


def default_correlation_matrix(size: int, rho: float = 0.1) -> np.ndarray:
    """Unit diagonal with a flat off-diagonal correlation."""
    matrix = np.full((size, size), rho, dtype=np.float64)
    np.fill_diagonal(matrix, 1.0)
    return matrix


def validate_correlation_matrix(matrix, size: int, tol: float = 1e-8) -> np.ndarray:
    """
    Requirements:
        1. Shape (size, size) with finite entries in [-1, 1]
        2. Symmetric
        3. Unit diagonal
    """
    try:
        R = np.asarray(matrix, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidCorrelationMatrixError(f"Correlation matrix is not numeric: {exc}") from exc
    if R.shape != (size, size):
        raise InvalidCorrelationMatrixError(
            f"Correlation matrix must be {size}x{size}, got shape {R.shape}")
    if not np.all(np.isfinite(R)) or np.any(np.abs(R) > 1 + tol):
        raise InvalidCorrelationMatrixError("Correlation entries must be finite and within [-1, 1]")
    if not np.allclose(R, R.T, atol=tol):
        raise InvalidCorrelationMatrixError("Correlation matrix must be symmetric")
    if not np.allclose(np.diag(R), 1.0, atol=tol):
        raise InvalidCorrelationMatrixError("Correlation matrix must have a unit diagonal")
    return R


def correlation_factor(R: np.ndarray) -> np.ndarray:
    """
    Matrix L with L @ L.T == R.

    Cholesky when R is positive definite. A singular or indefinite R (for
    example perfectly correlated scenarios) falls back to an eigenvalue
    factor with negative eigenvalues clipped and rows rescaled to unit
    variance.
    """
    try:
        return np.linalg.cholesky(R)
    except np.linalg.LinAlgError:
        log.warning("Correlation matrix not positive definite, using eigenvalue factor")
        w, V = np.linalg.eigh(R)
        L = V * np.sqrt(np.clip(w, 0.0, None))
        row_norm = np.linalg.norm(L, axis=1, keepdims=True)
        return L / np.where(row_norm > 0, row_norm, 1.0)


class PortfolioAggregator:
    """
    Portfolio-level loss analysis over several risk scenarios.

    Each scenario is simulated on its own worker thread with an independent
    child seed spawned from one SeedSequence, so a fixed seed reproduces the
    portfolio regardless of scheduling. combine() aggregates results that
    were already simulated, without running them again.

    Usage:
        >>> agg = PortfolioAggregator(seed=7)
        >>> res = agg.aggregate(scenarios, iterations=50_000)
        >>> res.diversification_benefit, res.top_risk_contributors[0]
    """

    def __init__(self, config: Optional[EngineConfig] = None, seed: RunSeed = None):
        self.config = config or EngineConfig()
        self.seed = check_run_seed(
            seed if seed is not None else self.config.simulation.seed)

    def _iterations(self, iterations: Optional[int]) -> int:
        return validate_iterations(
            self.config.simulation.iterations if iterations is None else iterations)

    def _correlation(self, correlation_matrix, n: int) -> np.ndarray:
        if correlation_matrix is None:
            return default_correlation_matrix(n, self.config.portfolio.default_correlation)
        return validate_correlation_matrix(correlation_matrix, n)

    def _simulate_one(self, scenario: ScenarioInput, iterations: int,
                      seed: np.random.SeedSequence,
                      cancel_token: Optional[CancellationToken]) -> MonteCarloResults:
        sim = ScenarioSimulator(self.config.simulation, seed=seed)
        return sim.simulate(as_scenario(scenario), iterations, cancel_token)

    def simulate_all(self, scenarios: Sequence[ScenarioInput], iterations: int,
                     seeds: Sequence[np.random.SeedSequence],
                     cancel_token: Optional[CancellationToken] = None
                     ) -> Tuple[List[Optional[MonteCarloResults]], List[FailedScenario]]:
        """
        Simulate every scenario on the worker pool.

        Returns results aligned with `scenarios` (None where a scenario
        failed validation) and the list of failures. Cancellation is
        re-raised.
        """
        workers = max(1, min(self.config.portfolio.max_workers, len(scenarios)))
        results: List[Optional[MonteCarloResults]] = [None] * len(scenarios)
        failures: List[FailedScenario] = []

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._simulate_one, scenario, iterations, seeds[i], cancel_token)
                for i, scenario in enumerate(scenarios)
            ]
            for i, future in enumerate(futures):
                try:
                    results[i] = future.result()
                except SimulationCancelledError:
                    raise
                except QuantRiskError as exc:
                    sid = scenario_id(scenarios[i], f"#{i}")
                    log.warning("Skipping scenario %s: %s", sid, exc)
                    failures.append(FailedScenario(scenario_id=sid, error=str(exc)))
        return results, failures

    def _noise_samples(self, rng: np.random.Generator,
                       results: Sequence[MonteCarloResults],
                       iterations: int) -> np.ndarray:
        means = np.array([r.annual_loss_expectancy.mean for r in results])
        sds = np.array([r.annual_loss_expectancy.standard_deviation for r in results])
        noise = (rng.random((iterations, len(results))) - 0.5) * sds
        return np.maximum(0.0, means + noise)

    def _copula_samples(self, rng: np.random.Generator,
                        results: Sequence[MonteCarloResults],
                        R: np.ndarray, iterations: int) -> np.ndarray:
        L = correlation_factor(R)
        Z = rng.standard_normal((iterations, len(results))) @ L.T
        U = norm.cdf(Z)
        samples = np.empty((iterations, len(results)))
        for j, res in enumerate(results):
            marginal = np.sort(res.loss_distribution)
            idx = np.minimum((U[:, j] * marginal.size).astype(np.int64), marginal.size - 1)
            samples[:, j] = marginal[idx]
        return samples

    @timeit
    def aggregate(self, scenarios: Sequence[ScenarioInput],
                  correlation_matrix=None,
                  iterations: Optional[int] = None,
                  cancel_token: Optional[CancellationToken] = None
                  ) -> RiskPortfolioResults:
        """
        Simulate every scenario and aggregate the portfolio.

        Args:
            scenarios:          Scenarios (objects or mappings) to combine, at least one.
            correlation_matrix: (n, n) matrix; default flat 0.1 off-diagonal.
            iterations:         Iterations per scenario and for the portfolio draw.
            cancel_token:       Propagated to every scenario run.

        Returns:
            RiskPortfolioResults. Scenarios that fail validation are listed
            in failed_scenarios and excluded from the aggregate.
        """
        scenarios = list(scenarios)
        if not scenarios:
            raise InvalidScenarioError("Portfolio analysis requires at least one scenario")
        n_iter = self._iterations(iterations)
        n = len(scenarios)
        R = self._correlation(correlation_matrix, n)

        log.info("Analyzing risk portfolio with %d scenarios (%s correlation)",
                 n, self.config.portfolio.correlation_method)
        children = seed_sequence(self.seed).spawn(n + 1)
        results, failures = self.simulate_all(scenarios, n_iter, children[:n], cancel_token)
        return self.combine(results, R, n_iter, failures, seed=children[n])

    def combine(self, results: Sequence[Optional[MonteCarloResults]],
                correlation_matrix=None,
                iterations: Optional[int] = None,
                failures: Sequence[FailedScenario] = (),
                seed: RunSeed = None) -> RiskPortfolioResults:
        """
        Aggregate precomputed scenario results.

        `results` is aligned with the rows of `correlation_matrix`; None
        marks a scenario that failed, whose row and column are dropped.
        `seed` drives the joint portfolio draw (default: the aggregator's).
        """
        results = list(results)
        if not results:
            raise InvalidScenarioError("Portfolio analysis requires at least one scenario")
        pf_cfg = self.config.portfolio
        n_iter = self._iterations(iterations)
        n = len(results)
        R = self._correlation(correlation_matrix, n)

        keep = [i for i, r in enumerate(results) if r is not None]
        if not keep:
            raise PortfolioAnalysisError(
                f"None of the {n} scenarios could be simulated: "
                + "; ".join(f"{f.scenario_id}: {f.error}" for f in failures))
        survivors = [results[i] for i in keep]
        R = R[np.ix_(keep, keep)]

        rng = np.random.default_rng(seed_sequence(seed if seed is not None else self.seed))
        if pf_cfg.correlation_method == "copula":
            samples = self._copula_samples(rng, survivors, R, n_iter)
        else:
            samples = self._noise_samples(rng, survivors, n_iter)

        totals = samples.sum(axis=1)
        total_ale = st.describe(totals)
        pvar = st.value_at_risk(totals)

        sum_ale = sum(r.annual_loss_expectancy.mean for r in survivors)
        sum_var = sum(r.value_at_risk.var_95 for r in survivors)

        return RiskPortfolioResults(
            total_ale=total_ale,
            diversification_benefit=safe_ratio(sum_ale - total_ale.mean, sum_ale),
            tail_diversification_benefit=safe_ratio(sum_var - pvar.var_95, sum_var),
            correlation_matrix=R.tolist(),
            correlation_method=pf_cfg.correlation_method,
            top_risk_contributors=self._contributions(survivors, samples, totals, pvar.var_95),
            portfolio_var=PortfolioVaR(var_95=pvar.var_95, var_99=pvar.var_99),
            individual_results=survivors,
            failed_scenarios=list(failures),
        )

    @staticmethod
    def _contributions(results: Sequence[MonteCarloResults], samples: np.ndarray,
                       totals: np.ndarray, portfolio_var_95: float
                       ) -> List[RiskContribution]:
        """
        Share of the mean portfolio loss carried by each scenario.

        marginal_var is the mean contribution, a simplification of true
        marginal VaR. incremental_var_95 is the leave-one-out difference
        in portfolio VaR95.
        """
        total_mean = float(totals.mean())
        out = []
        for j, res in enumerate(results):
            mean_contrib = float(samples[:, j].mean())
            without_j, _ = st.tail_metrics(totals - samples[:, j], 0.95)
            out.append(RiskContribution(
                scenario_id=res.scenario_id,
                contribution_percentage=safe_ratio(mean_contrib, total_mean) * 100,
                marginal_var=mean_contrib,
                incremental_var_95=portfolio_var_95 - without_j,
            ))
        return sorted(out, key=lambda c: c.contribution_percentage, reverse=True)
