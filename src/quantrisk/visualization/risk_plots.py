"""
Publication-quality visualizations for the risk engine.

Figures generated:
    01_loss_distribution_<id>.png  - Annual-loss histogram with VaR/CVaR markers
    02_convergence_<id>.png        - Running mean at each convergence checkpoint
    03_risk_contribution.png       - Portfolio contribution ranking

Author: Jose Orlando Bobadilla Fuentes, CQF
"""
import os
import numpy as np
import matplotlib.pyplot as plt

from quantrisk.models.results import MonteCarloResults, RiskPortfolioResults

NAVY = "#1a1a2e"; TEAL = "#16697a"; CORAL = "#db6400"
GOLD = "#c5a880"; SLATE = "#4a4e69"
COLORS = [NAVY, TEAL, CORAL, GOLD, SLATE, "#2d6a4f", "#e07a5f"]

plt.rcParams.update({
    "figure.facecolor": "white", "axes.facecolor": "white",
    "axes.grid": True, "grid.alpha": 0.3, "grid.linestyle": "--",
    "savefig.facecolor": "white",
})


def _wm(fig):
    fig.text(0.99, 0.01, "J. Bobadilla | CQF", fontsize=7,
             color="gray", alpha=0.5, ha="right", va="bottom")


def _sv(fig, out_dir, name):
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, name)
    fig.savefig(path); plt.close(fig); return path


def _millions(x, _):
    return f"${x/1e6:,.1f}M"


def plot_loss_distribution(result: MonteCarloResults, out_dir: str) -> str:
    fig, ax = plt.subplots(figsize=(11, 6))
    losses = result.loss_distribution
    var = result.value_at_risk
    positive = losses[losses > 0]
    share_zero = 1 - positive.size / max(losses.size, 1)

    if positive.size:
        ax.hist(positive, bins=80, density=True, alpha=0.6, color=TEAL,
                edgecolor="white", label="Loss years")
    ax.axvline(result.annual_loss_expectancy.mean, color=NAVY, lw=2,
               label=f"ALE = ${result.annual_loss_expectancy.mean:,.0f}")
    ax.axvline(var.var_95, color=GOLD, ls="--", lw=2, label=f"VaR 95% = ${var.var_95:,.0f}")
    ax.axvline(var.var_99, color=CORAL, ls="--", lw=2, label=f"VaR 99% = ${var.var_99:,.0f}")
    ax.axvline(var.cvar_99, color=CORAL, ls=":", lw=2, label=f"CVaR 99% = ${var.cvar_99:,.0f}")
    ax.xaxis.set_major_formatter(plt.FuncFormatter(_millions))
    ax.set_xlabel("Annual Loss")
    ax.set_ylabel("Density")
    ax.set_title(f"{result.scenario_name or result.scenario_id}: Annual Loss Distribution "
                 f"({share_zero:.0%} loss-free years)")
    ax.legend()
    _wm(fig)
    return _sv(fig, out_dir, f"01_loss_distribution_{result.scenario_id}.png")


def plot_convergence(result: MonteCarloResults, out_dir: str) -> str:
    fig, ax = plt.subplots(figsize=(11, 6))
    conv = result.convergence_test
    if conv.checkpoints:
        it, mean = np.array(conv.checkpoints).T
        ax.plot(it, mean, color=TEAL, lw=1.8, label="Running mean")
    ax.axhline(result.annual_loss_expectancy.mean, color=NAVY, ls="--", lw=1.5,
               label="Final ALE")
    if conv.converged:
        ax.axvline(conv.stable_at_iteration, color=CORAL, ls=":", lw=2,
                   label=f"Stable at {conv.stable_at_iteration:,}")
    ax.yaxis.set_major_formatter(plt.FuncFormatter(_millions))
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Mean Annual Loss")
    ax.set_title(f"Monte Carlo Convergence: {result.scenario_name or result.scenario_id}")
    ax.legend()
    _wm(fig)
    return _sv(fig, out_dir, f"02_convergence_{result.scenario_id}.png")


def plot_risk_contribution(portfolio: RiskPortfolioResults, out_dir: str) -> str:
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))
    contributors = portfolio.top_risk_contributors
    names = [c.scenario_id for c in contributors]
    shares = [c.contribution_percentage for c in contributors]
    colors_list = [COLORS[i % len(COLORS)] for i in range(len(contributors))]

    ax1.barh(names, shares, color=colors_list, edgecolor="white", lw=1.5)
    ax1.invert_yaxis()
    ax1.set_xlabel("Contribution to Portfolio ALE (%)")
    ax1.set_title("Risk Contribution Ranking")

    if sum(shares) > 0:
        ax2.pie(shares, labels=names, colors=colors_list,
                autopct="%1.1f%%", startangle=140, pctdistance=0.85)
    ax2.set_title("Risk Budget Allocation")
    fig.suptitle(f"Portfolio ALE = ${portfolio.total_ale.mean:,.0f} | "
                 f"VaR 99% = ${portfolio.portfolio_var.var_99:,.0f} | "
                 f"Diversification = {portfolio.diversification_benefit:.1%}",
                 fontsize=14, fontweight="bold", y=1.02)
    fig.tight_layout()
    _wm(fig)
    return _sv(fig, out_dir, "03_risk_contribution.png")
