"""
Unit Tests -- Scenario Model & Single-Scenario Simulator
=========================================================
Tests frequency resolution, scenario validation, Monte Carlo
convergence, reproducibility, tail-metric invariants, the convergence
diagnostic, cancellation and configuration.

Author: Jose Orlando Bobadilla Fuentes, CQF
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
import pytest

from quantrisk.config import EngineConfig, SimulationConfig, ITERATION_PRESETS
from quantrisk.exceptions import (
    InvalidIterationsError, InvalidScenarioError, QuantRiskError,
    SimulationCancelledError)
from quantrisk.models.scenario import (
    ExpertJudgment, FrequencyData, ImpactCategory, ImpactCategoryType,
    RiskScenario, TimeHorizon)
from quantrisk.simulator import CancellationToken, ScenarioSimulator


def _config(**kw):
    base = dict(iterations=10_000, seed=None, confidence_level=0.95,
                include_correlation=True, sensitivity_method="fixed")
    base.update(kw)
    return SimulationConfig(**base)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def unit_scenario():
    """lambda = 1 event/yr, every event costs exactly 1,000."""
    return RiskScenario(
        id="unit", name="Unit Loss",
        impact_categories=(ImpactCategory("financial", 1_000, 1_000, 1_000),),
        frequency_data=FrequencyData(historical_incidents=10, observation_period=10),
    )


@pytest.fixture
def breach_scenario():
    """Two-category scenario with a wide impact range."""
    return RiskScenario(
        id="breach", name="Data Breach",
        impact_categories=(
            ImpactCategory("regulatory", 100_000, 10_000_000, 1_500_000),
            ImpactCategory("reputation", 500_000, 5_000_000, 2_000_000,
                           time_horizon="long_term"),
        ),
        frequency_data=FrequencyData(historical_incidents=2, observation_period=5),
        confidence_level=75,
    )


@pytest.fixture
def simulator():
    return ScenarioSimulator(_config(), seed=42)


# ---------------------------------------------------------------------------
# Scenario Model Tests
# ---------------------------------------------------------------------------
class TestFrequencyResolution:

    def test_historical_rate(self):
        assert FrequencyData(2, 5).annual_rate() == pytest.approx(0.4)

    def test_expert_pert_mean(self):
        fd = FrequencyData(0, 5, expert_judgment=ExpertJudgment(0.1, 0.5, 0.2))
        assert fd.annual_rate() == pytest.approx((0.1 + 4 * 0.2 + 0.5) / 6)

    def test_historical_takes_precedence(self):
        fd = FrequencyData(3, 6, industry_benchmark=0.9,
                           expert_judgment=ExpertJudgment(1, 3, 2))
        assert fd.annual_rate() == pytest.approx(0.5)

    def test_benchmark_fallback(self):
        assert FrequencyData(0, 0, industry_benchmark=0.3).annual_rate() == 0.3

    def test_default_rate(self):
        assert FrequencyData().annual_rate() == 0.1


class TestScenarioValidation:

    def test_strings_coerced_to_enums(self, breach_scenario):
        cats = breach_scenario.impact_categories
        assert cats[0].category is ImpactCategoryType.REGULATORY
        assert cats[1].time_horizon is TimeHorizon.LONG_TERM

    @pytest.mark.parametrize("lo,hi,ml", [
        (10, 5, 7),      # max < min
        (0, 10, 20),     # mode above max
        (-1, 10, 5),     # negative loss
    ])
    def test_bad_impact_bounds(self, lo, hi, ml):
        with pytest.raises(InvalidScenarioError):
            ImpactCategory("financial", lo, hi, ml)

    def test_unknown_category(self):
        with pytest.raises(InvalidScenarioError):
            ImpactCategory("cosmic", 0, 1, 1)

    def test_confidence_out_of_range(self):
        with pytest.raises(InvalidScenarioError):
            RiskScenario("x", "x", (), FrequencyData(), confidence_level=120)

    def test_from_dict(self):
        s = RiskScenario.from_dict({
            "id": "R-1", "name": "Phishing",
            "impact_categories": [{"category": "operational", "min_impact": 1_000,
                                   "max_impact": 9_000, "most_likely_impact": 3_000}],
            "frequency_data": {"expert_judgment": {"min_frequency": 1,
                                                   "max_frequency": 4,
                                                   "most_likely_frequency": 2}},
        })
        assert s.annual_rate == pytest.approx((1 + 4 * 2 + 4) / 6)
        assert s.to_dict()["impact_categories"][0]["category"] == "operational"

    def test_from_dict_missing_id(self):
        with pytest.raises(InvalidScenarioError):
            RiskScenario.from_dict({"name": "no id"})


# ---------------------------------------------------------------------------
# Simulation Tests
# ---------------------------------------------------------------------------
class TestMonteCarloAccuracy:

    def test_unit_scenario_converges_to_expected_loss(self, unit_scenario):
        """E[N * I] = lambda * I = 1,000; error band shrinks with iterations."""
        sim = ScenarioSimulator(_config(), seed=11)
        half_widths = []
        for n in (10_000, 50_000, 500_000):
            res = sim.simulate(unit_scenario, iterations=n)
            ale = res.annual_loss_expectancy
            assert abs(ale.mean - 1_000) < 5 * ale.standard_deviation / np.sqrt(n)
            half_widths.append(1.96 * ale.standard_deviation / np.sqrt(n))
        assert half_widths == sorted(half_widths, reverse=True)

    def test_unit_scenario_impact_is_degenerate(self, unit_scenario, simulator):
        res = simulator.simulate(unit_scenario)
        assert res.impact_distribution.min == 1_000
        assert res.impact_distribution.max == 1_000
        assert set(res.impact_distribution.percentiles.values()) == {1_000.0}

    def test_frequency_echo(self, unit_scenario, simulator):
        fd = simulator.simulate(unit_scenario).frequency_distribution
        assert fd.lam == 1.0
        assert fd.confidence_bounds == pytest.approx((0.0, 2.96))

    def test_99_bounds_when_configured(self, unit_scenario):
        sim = ScenarioSimulator(_config(confidence_level=0.99), seed=1)
        fd = sim.simulate(unit_scenario).frequency_distribution
        assert fd.confidence_bounds[1] == pytest.approx(3.576)

    def test_tail_invariants(self, breach_scenario, simulator):
        res = simulator.simulate(breach_scenario)
        var, ale = res.value_at_risk, res.annual_loss_expectancy
        assert var.var_95 <= var.var_99
        assert var.cvar_95 <= var.cvar_99
        assert var.cvar_95 >= var.var_95
        assert ale.percentile_95 <= ale.percentile_99
        assert ale.median <= ale.percentile_95
        assert res.loss_distribution.min() >= 0

    def test_zero_loss_scenario(self, simulator):
        """All-zero losses must not produce NaN anywhere."""
        zero = RiskScenario("zero", "Zero", (ImpactCategory("financial", 0, 0, 0),),
                            FrequencyData(1, 1))
        res = simulator.simulate(zero)
        assert res.annual_loss_expectancy.mean == 0.0
        assert res.convergence_test.final_variance == 0.0
        assert res.convergence_test.converged
        assert res.convergence_test.stable_at_iteration == 1_000


class TestReproducibility:

    def test_same_seed_same_results(self, breach_scenario):
        a = ScenarioSimulator(_config(), seed=2024).simulate(breach_scenario)
        b = ScenarioSimulator(_config(), seed=2024).simulate(breach_scenario)
        assert a.to_dict() == b.to_dict()
        np.testing.assert_array_equal(a.loss_distribution, b.loss_distribution)

    def test_simulator_is_stateless(self, breach_scenario, simulator):
        """Repeated calls on one instance do not advance a shared stream."""
        a = simulator.simulate(breach_scenario, iterations=2_000)
        b = simulator.simulate(breach_scenario, iterations=2_000)
        np.testing.assert_array_equal(a.loss_distribution, b.loss_distribution)

    def test_generator_seed_rejected(self):
        """A shared Generator would make repeated simulate() calls differ."""
        with pytest.raises(TypeError):
            ScenarioSimulator(_config(), seed=np.random.default_rng(0))

    def test_different_seed_different_results(self, breach_scenario):
        a = ScenarioSimulator(_config(), seed=1).simulate(breach_scenario)
        b = ScenarioSimulator(_config(), seed=2).simulate(breach_scenario)
        assert not np.array_equal(a.loss_distribution, b.loss_distribution)


class TestInputValidation:

    @pytest.mark.parametrize("n", [0, -5, 2.5, True])
    def test_bad_iterations(self, unit_scenario, simulator, n):
        with pytest.raises(InvalidIterationsError):
            simulator.simulate(unit_scenario, iterations=n)

    def test_empty_impact_categories(self, simulator):
        empty = RiskScenario("empty", "Empty", (), FrequencyData(1, 1))
        with pytest.raises(InvalidScenarioError):
            simulator.simulate(empty)

    def test_errors_share_base_class(self):
        assert issubclass(InvalidIterationsError, QuantRiskError)
        assert issubclass(InvalidScenarioError, ValueError)

    def test_single_iteration(self, breach_scenario, simulator):
        res = simulator.simulate(breach_scenario, iterations=1)
        assert res.simulation_runs == 1
        assert res.annual_loss_expectancy.standard_deviation == 0.0
        assert not res.convergence_test.converged
        assert res.convergence_test.stable_at_iteration == 0


# ---------------------------------------------------------------------------
# Convergence Diagnostic Tests
# ---------------------------------------------------------------------------
class TestConvergence:

    def test_checkpoints_every_interval(self, breach_scenario, simulator):
        conv = simulator.simulate(breach_scenario, iterations=10_500).convergence_test
        assert [it for it, _ in conv.checkpoints] == list(range(1_000, 10_001, 1_000))

    def test_unit_scenario_stabilises(self, unit_scenario):
        res = ScenarioSimulator(_config(), seed=5).simulate(unit_scenario, iterations=100_000)
        conv = res.convergence_test
        assert conv.converged
        assert conv.stable_at_iteration % 1_000 == 0
        assert 1_000 <= conv.stable_at_iteration <= 100_000

    def test_stable_point_is_first_small_change(self, breach_scenario, simulator):
        conv = simulator.simulate(breach_scenario, iterations=50_000).convergence_test
        previous, first = 0.0, 0
        for it, mean in conv.checkpoints:
            if abs(mean - previous) / (previous or 1.0) < 0.001:
                first = it
                break
            previous = mean
        assert conv.stable_at_iteration == first
        assert conv.converged == (first > 0)

    def test_final_variance_is_sample_variance(self, breach_scenario, simulator):
        res = simulator.simulate(breach_scenario)
        assert res.convergence_test.final_variance == pytest.approx(
            np.var(res.loss_distribution, ddof=1))


class TestSensitivity:

    def test_fixed_by_default(self, breach_scenario, simulator):
        sens = simulator.simulate(breach_scenario).sensitivity_analysis
        assert [s.correlation_coefficient for s in sens] == [0.85, 0.76, 0.45]

    def test_rank_correlation(self, breach_scenario):
        sim = ScenarioSimulator(_config(sensitivity_method="rank_correlation"), seed=3)
        sens = sim.simulate(breach_scenario).sensitivity_analysis
        assert sorted(s.rank for s in sens) == [1, 2, 3]
        assert all(np.isfinite(s.correlation_coefficient) for s in sens)
        assert sum(s.variance_contribution for s in sens) == pytest.approx(1.0)
        # At lambda = 0.4 most years are loss-free, so the count dominates
        assert sens[0].parameter == "frequency_lambda"


class TestCancellation:

    def test_cancelled_token_aborts(self, breach_scenario, simulator):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(SimulationCancelledError):
            simulator.simulate(breach_scenario, iterations=5_000, cancel_token=token)

    def test_live_token_is_harmless(self, breach_scenario, simulator):
        token = CancellationToken()
        res = simulator.simulate(breach_scenario, cancel_token=token)
        assert not token.cancelled
        assert res.simulation_runs == 10_000


class TestResultsSerialisation:

    def test_to_dict_shape(self, breach_scenario, simulator):
        d = simulator.simulate(breach_scenario).to_dict()
        assert d["frequency_distribution"]["lambda"] == pytest.approx(0.4)
        assert d["confidence_interval"] == 75
        assert "loss_distribution" not in d

    def test_samples_on_request(self, breach_scenario, simulator):
        d = simulator.simulate(breach_scenario, iterations=100).to_dict(include_samples=True)
        assert len(d["loss_distribution"]) == 100


# ---------------------------------------------------------------------------
# Configuration Tests
# ---------------------------------------------------------------------------
class TestConfig:

    def test_presets(self):
        for name, n in ITERATION_PRESETS.items():
            assert EngineConfig().with_preset(name).simulation.iterations == n

    def test_unknown_preset(self):
        with pytest.raises(QuantRiskError):
            EngineConfig().with_preset("ludicrous")

    def test_validate_rejects_bad_values(self):
        cfg = EngineConfig()
        cfg.simulation.iterations = 0
        with pytest.raises(InvalidIterationsError):
            cfg.validate()

        cfg = EngineConfig()
        cfg.portfolio.correlation_method = "vine"
        with pytest.raises(QuantRiskError):
            cfg.validate()

        cfg = EngineConfig()
        cfg.simulation.confidence_level = 0.9
        with pytest.raises(QuantRiskError):
            cfg.validate()


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
