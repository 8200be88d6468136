"""
Sample Statistics for Simulated Loss Distributions
====================================================

Order statistics use the sort-and-index convention
    q_p = sorted[floor(p * n)]
rather than interpolated quantiles, so VaR is always an observed loss.
CVaR is the mean of the tail slice sorted[floor(p * n):], which includes
the VaR observation itself; hence CVaR_p >= VaR_p.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import math
import numpy as np
from scipy.stats import spearmanr
from typing import Dict, Iterable, List, Sequence, Tuple

from quantrisk.models.results import (
    AnnualLossExpectancy, ValueAtRisk, SensitivityResult)

IMPACT_PERCENTILES = (10, 25, 50, 75, 90, 95, 99)
Z_SCORES = {0.95: 1.96, 0.99: 2.576}

# Illustrative ranking shown by the dashboards; not derived from the samples
FIXED_SENSITIVITY = (
    ("frequency_lambda", 0.85, 0.72),
    ("impact_magnitude", 0.76, 0.58),
    ("impact_uncertainty", 0.45, 0.20),
)


def _sorted(samples) -> np.ndarray:
    arr = np.sort(np.asarray(samples, dtype=np.float64))
    if arr.size == 0:
        raise ValueError("statistics require at least one sample")
    return arr


def _rank_index(p: float, n: int) -> int:
    return min(int(math.floor(p * n)), n - 1)


def sample_variance(samples) -> float:
    """Unbiased (n-1) variance; 0 for a single observation."""
    arr = np.asarray(samples, dtype=np.float64)
    if arr.size < 2:
        return 0.0
    return float(np.var(arr, ddof=1))


def describe(samples) -> AnnualLossExpectancy:
    """Mean, median, 95th/99th order statistics and n-1 standard deviation."""
    s = _sorted(samples)
    n = s.size
    if n % 2 == 0:
        median = (s[n // 2 - 1] + s[n // 2]) / 2
    else:
        median = s[n // 2]
    return AnnualLossExpectancy(
        mean=float(s.mean()),
        median=float(median),
        percentile_95=float(s[_rank_index(0.95, n)]),
        percentile_99=float(s[_rank_index(0.99, n)]),
        standard_deviation=math.sqrt(sample_variance(s)),
    )


def tail_metrics(samples, confidence: float) -> Tuple[float, float]:
    """(VaR, CVaR) at one confidence level."""
    s = _sorted(samples)
    cut = _rank_index(confidence, s.size)
    return float(s[cut]), float(s[cut:].mean())


def value_at_risk(samples) -> ValueAtRisk:
    var_95, cvar_95 = tail_metrics(samples, 0.95)
    var_99, cvar_99 = tail_metrics(samples, 0.99)
    return ValueAtRisk(var_95=var_95, var_99=var_99,
                       cvar_95=cvar_95, cvar_99=cvar_99)


def percentiles(samples, levels: Iterable[int] = IMPACT_PERCENTILES) -> Dict[str, float]:
    """Order statistics keyed as 'p<level>'."""
    s = _sorted(samples)
    return {f"p{p}": float(s[_rank_index(p / 100, s.size)]) for p in levels}


def poisson_confidence_bounds(lam: float, confidence: float = 0.95) -> Tuple[float, float]:
    """
    Normal approximation to the Poisson rate interval:
        lambda +/- z * sqrt(lambda),  z = 1.96 (95%) or 2.576 (99%)
    Lower bound clamped at 0.
    """
    z = Z_SCORES[0.95] if confidence == 0.95 else Z_SCORES[0.99]
    half_width = z * math.sqrt(lam)
    return max(0.0, lam - half_width), lam + half_width


def fixed_sensitivity() -> List[SensitivityResult]:
    """
    Placeholder ranking of the three scenario drivers.

    Known simplification: the figures are constant. The rank-correlation
    variant below computes them from the samples with the same interface.
    """
    return [SensitivityResult(parameter=name, correlation_coefficient=rho,
                              variance_contribution=share, rank=i + 1)
            for i, (name, rho, share) in enumerate(FIXED_SENSITIVITY)]


def rank_correlation_sensitivity(annual_losses: np.ndarray,
                                 drivers: Dict[str, Sequence[float]]
                                 ) -> List[SensitivityResult]:
    """
    Spearman rank correlation of each driver sample against annual loss.

    variance_contribution = rho^2 / sum(rho^2). A constant input has no
    defined rank correlation and is reported as 0.
    """
    rhos = {}
    for name, values in drivers.items():
        x = np.asarray(values, dtype=np.float64)
        if np.ptp(x) == 0 or np.ptp(annual_losses) == 0:
            rhos[name] = 0.0
            continue
        rho = spearmanr(x, annual_losses)[0]
        rhos[name] = 0.0 if np.isnan(rho) else float(rho)

    total_sq = sum(r ** 2 for r in rhos.values())
    ranked = sorted(rhos.items(), key=lambda kv: abs(kv[1]), reverse=True)
    return [SensitivityResult(
                parameter=name, correlation_coefficient=rho,
                variance_contribution=(rho ** 2 / total_sq) if total_sq > 0 else 0.0,
                rank=i + 1)
            for i, (name, rho) in enumerate(ranked)]
