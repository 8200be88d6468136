"""
Unit Tests -- Portfolio Aggregation
====================================
Tests correlation-matrix handling, failed-constituent isolation,
diversification measures, contribution ranking and reproducibility of
the threaded aggregation.

Author: Jose Orlando Bobadilla Fuentes, CQF
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
import pytest

from quantrisk.config import EngineConfig
from quantrisk.exceptions import (
    InvalidCorrelationMatrixError, InvalidScenarioError,
    PortfolioAnalysisError, SimulationCancelledError)
from quantrisk.models.scenario import FrequencyData, ImpactCategory, RiskScenario
from quantrisk.portfolio import (
    PortfolioAggregator, correlation_factor, default_correlation_matrix,
    validate_correlation_matrix)
from quantrisk.simulator import CancellationToken

N_ITER = 20_000


def _scenario(sid, lo=10_000, hi=1_000_000, ml=200_000, incidents=5, years=5):
    return RiskScenario(
        id=sid, name=sid.title(),
        impact_categories=(ImpactCategory("financial", lo, hi, ml),),
        frequency_data=FrequencyData(incidents, years),
    )


def _aggregator(method="noise", seed=7, workers=4):
    cfg = EngineConfig()
    cfg.portfolio.correlation_method = method
    cfg.portfolio.max_workers = workers
    return PortfolioAggregator(cfg, seed=seed)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def three_scenarios():
    return [
        _scenario("ransomware", 50_000, 5_000_000, 800_000, incidents=1, years=2),
        _scenario("phishing", 5_000, 200_000, 30_000, incidents=12, years=4),
        _scenario("insider", 100_000, 2_000_000, 400_000, incidents=1, years=5),
    ]


@pytest.fixture
def empty_scenario():
    return RiskScenario("broken", "Broken", (), FrequencyData(1, 1))


# ---------------------------------------------------------------------------
# Correlation Matrix Tests
# ---------------------------------------------------------------------------
class TestCorrelationMatrix:

    def test_default_matrix(self):
        R = default_correlation_matrix(3)
        np.testing.assert_array_equal(np.diag(R), 1.0)
        assert R[0, 1] == R[2, 1] == 0.1
        np.testing.assert_array_equal(R, R.T)

    @pytest.mark.parametrize("matrix", [
        np.eye(2),                               # wrong size
        [[1.0, 0.5, 0.0], [0.2, 1.0, 0.0], [0.0, 0.0, 1.0]],   # asymmetric
        [[0.9, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],   # diagonal != 1
        [[1.0, 1.5, 0.0], [1.5, 1.0, 0.0], [0.0, 0.0, 1.0]],   # |r| > 1
    ])
    def test_invalid_matrix_rejected(self, matrix):
        with pytest.raises(InvalidCorrelationMatrixError):
            validate_correlation_matrix(matrix, 3)

    def test_factor_reproduces_matrix(self):
        R = np.array([[1.0, 0.6], [0.6, 1.0]])
        L = correlation_factor(R)
        np.testing.assert_allclose(L @ L.T, R, atol=1e-12)

    def test_singular_matrix_falls_back(self):
        """Perfect correlation is not positive definite; the factor still works."""
        L = correlation_factor(np.ones((2, 2)))
        np.testing.assert_allclose(L @ L.T, np.ones((2, 2)), atol=1e-10)

    def test_aggregate_validates_before_simulating(self, three_scenarios):
        with pytest.raises(InvalidCorrelationMatrixError):
            _aggregator().aggregate(three_scenarios, np.eye(2), iterations=N_ITER)


# ---------------------------------------------------------------------------
# Aggregation Tests
# ---------------------------------------------------------------------------
class TestAggregation:

    def test_contributions_ranked_and_complete(self, three_scenarios):
        res = _aggregator().aggregate(three_scenarios, iterations=N_ITER)
        shares = [c.contribution_percentage for c in res.top_risk_contributors]
        assert shares == sorted(shares, reverse=True)
        assert sum(shares) == pytest.approx(100.0)
        assert {c.scenario_id for c in res.top_risk_contributors} == {
            "ransomware", "phishing", "insider"}

    def test_default_matrix_echoed(self, three_scenarios):
        res = _aggregator().aggregate(three_scenarios, iterations=N_ITER)
        np.testing.assert_array_equal(res.correlation_matrix, default_correlation_matrix(3))
        assert res.correlation_method == "noise"

    def test_portfolio_var_ordering(self, three_scenarios):
        res = _aggregator("copula").aggregate(three_scenarios, iterations=N_ITER)
        assert res.portfolio_var.var_95 <= res.portfolio_var.var_99
        assert res.total_ale.percentile_95 <= res.total_ale.percentile_99

    def test_single_scenario_portfolio(self):
        res = _aggregator("copula").aggregate([_scenario("solo")], iterations=N_ITER)
        (only,) = res.top_risk_contributors
        assert only.contribution_percentage == pytest.approx(100.0)
        assert only.incremental_var_95 == pytest.approx(res.portfolio_var.var_95)

    def test_zero_loss_portfolio(self):
        """No ALE anywhere: ratios fall back to 0 instead of NaN."""
        zeros = [_scenario("z1", 0, 0, 0), _scenario("z2", 0, 0, 0)]
        res = _aggregator().aggregate(zeros, iterations=2_000)
        assert res.diversification_benefit == 0.0
        assert res.tail_diversification_benefit == 0.0
        assert all(c.contribution_percentage == 0.0 for c in res.top_risk_contributors)

    def test_empty_input_rejected(self):
        with pytest.raises(InvalidScenarioError):
            _aggregator().aggregate([], iterations=N_ITER)


class TestFailedConstituents:

    def test_failure_isolated(self, three_scenarios, empty_scenario):
        scenarios = [three_scenarios[0], empty_scenario, three_scenarios[1]]
        res = _aggregator().aggregate(scenarios, iterations=N_ITER)
        assert [f.scenario_id for f in res.failed_scenarios] == ["broken"]
        assert len(res.individual_results) == 2
        assert np.asarray(res.correlation_matrix).shape == (2, 2)
        assert sum(c.contribution_percentage for c in res.top_risk_contributors) == \
            pytest.approx(100.0)

    def test_malformed_mapping_isolated(self, three_scenarios):
        """A plain-data scenario with bad bounds is skipped like any other failure."""
        bad = {"id": "bad", "name": "Bad",
               "impact_categories": [{"category": "financial", "min_impact": 10,
                                      "max_impact": 5, "most_likely_impact": 1}]}
        res = _aggregator().aggregate([three_scenarios[0], bad], iterations=2_000)
        assert [f.scenario_id for f in res.failed_scenarios] == ["bad"]
        assert [r.scenario_id for r in res.individual_results] == ["ransomware"]

    def test_combine_reuses_results(self, three_scenarios):
        agg = _aggregator("copula")
        seeds = np.random.SeedSequence(4).spawn(3)
        results, failures = agg.simulate_all(three_scenarios, 2_000, seeds)
        res = agg.combine(results, iterations=2_000, failures=failures)
        assert all(a is b for a, b in zip(res.individual_results, results))
        assert res.failed_scenarios == []

    def test_all_failed(self, empty_scenario):
        with pytest.raises(PortfolioAnalysisError):
            _aggregator().aggregate([empty_scenario], iterations=N_ITER)

    def test_cancellation_propagates(self, three_scenarios):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(SimulationCancelledError):
            _aggregator().aggregate(three_scenarios, iterations=N_ITER, cancel_token=token)


# ---------------------------------------------------------------------------
# Diversification Tests
# ---------------------------------------------------------------------------
class TestDiversification:

    def test_independent_scenarios_diversify_tail(self):
        """Two identical, uncorrelated scenarios: VaR95 of the sum < sum of VaR95.

        The mean-based benefit stays near 0 because the mean is linear; the
        positive benefit is asserted on the tail measure (DESIGN.md, item 2).
        """
        pair = [_scenario("a"), _scenario("b")]
        res = _aggregator("copula").aggregate(pair, np.eye(2), iterations=50_000)
        assert res.tail_diversification_benefit > 0
        assert abs(res.diversification_benefit) < 0.05

    def test_perfect_correlation_no_tail_benefit(self):
        pair = [_scenario("a"), _scenario("b")]
        res = _aggregator("copula").aggregate(pair, np.ones((2, 2)), iterations=50_000)
        assert abs(res.tail_diversification_benefit) < 0.05
        assert abs(res.diversification_benefit) < 0.05

    def test_correlation_reduces_benefit(self):
        pair = [_scenario("a"), _scenario("b")]
        agg = _aggregator("copula")
        low = agg.aggregate(pair, np.eye(2), iterations=50_000)
        high = agg.aggregate(pair, [[1.0, 0.9], [0.9, 1.0]], iterations=50_000)
        assert high.tail_diversification_benefit < low.tail_diversification_benefit

    def test_noise_proxy_ignores_matrix(self):
        pair = [_scenario("a"), _scenario("b")]
        agg = _aggregator("noise")
        a = agg.aggregate(pair, np.eye(2), iterations=N_ITER)
        b = agg.aggregate(pair, np.ones((2, 2)), iterations=N_ITER)
        assert a.total_ale.mean == b.total_ale.mean


# ---------------------------------------------------------------------------
# Reproducibility Tests
# ---------------------------------------------------------------------------
class TestReproducibility:

    @pytest.mark.parametrize("method", ["noise", "copula"])
    def test_same_seed_same_portfolio(self, three_scenarios, method):
        a = _aggregator(method, seed=9).aggregate(three_scenarios, iterations=N_ITER)
        b = _aggregator(method, seed=9).aggregate(three_scenarios, iterations=N_ITER)
        assert a.to_dict() == b.to_dict()

    def test_seed_sequence_reusable(self, three_scenarios):
        """Spawning children must not advance the caller's SeedSequence."""
        agg = _aggregator(seed=np.random.SeedSequence(12))
        a = agg.aggregate(three_scenarios, iterations=2_000)
        b = agg.aggregate(three_scenarios, iterations=2_000)
        assert a.to_dict() == b.to_dict()

    def test_generator_seed_rejected(self):
        with pytest.raises(TypeError):
            _aggregator(seed=np.random.default_rng(1))

    def test_worker_count_irrelevant(self, three_scenarios):
        a = _aggregator("copula", seed=3, workers=1).aggregate(three_scenarios, iterations=N_ITER)
        b = _aggregator("copula", seed=3, workers=4).aggregate(three_scenarios, iterations=N_ITER)
        assert a.to_dict() == b.to_dict()


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
