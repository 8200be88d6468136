"""
Quantitative Cyber-Risk Engine - Main Analysis
Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import os, sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from quantrisk.config import EngineConfig
from quantrisk.engine import RiskQuantEngine
from quantrisk.exceptions import QuantRiskError
from quantrisk.reporting import results_frame, contributors_frame
from quantrisk.templates import scenario_from_qualitative_risk
from quantrisk.utils import format_currency
from quantrisk.visualization.risk_plots import (
    plot_loss_distribution, plot_convergence, plot_risk_contribution)

FIG_DIR = os.path.join(os.path.dirname(__file__), "outputs", "figures")


def header(t):
    print(f"\n{'='*70}\n  {t}\n{'='*70}")


def main():
    header("QUANTITATIVE CYBER-RISK MONTE CARLO ENGINE")
    config = EngineConfig().with_preset("standard")
    config.portfolio.correlation_method = "copula"
    engine = RiskQuantEngine(config, seed=42)

    # --- Scenario set ---
    scenarios = []
    for industry in ["healthcare", "financial", "manufacturing"]:
        scenarios += engine.generate_industry_scenarios(industry, "large")
    scenarios.append(scenario_from_qualitative_risk(
        "R-104", "Ransomware on file servers", inherent_impact=4,
        inherent_likelihood=3, description="Encryption of shared drives"))

    print(f"\n  Scenarios:   {len(scenarios)}")
    print(f"  Iterations:  {config.simulation.iterations:,}")
    for s in scenarios:
        print(f"    {s.id:28s} lambda={s.annual_rate:.3f}/yr  "
              f"categories={len(s.impact_categories)}")

    # --- Individual + portfolio ---
    header("1. SCENARIO SIMULATION")
    try:
        report = engine.run_assessment(scenarios)
    except QuantRiskError as exc:
        print(f"\n  Assessment failed: {exc}")
        return

    df = results_frame(report.results)
    for _, row in df.iterrows():
        print(f"    {row['Scenario']:28s}: ALE={row['ALE_mean']:>14,.0f}  "
              f"VaR99={row['VaR_99']:>14,.0f}  CVaR99={row['CVaR_99']:>14,.0f}")

    s = report.summary
    print(f"\n  Total ALE:         {format_currency(s.total_ale)}")
    print(f"  Max VaR 99%:       {format_currency(s.max_var_99)}")
    print(f"  Converged:         {s.converged_count}/{s.scenario_count}")
    print(f"  Avg confidence:    {s.average_confidence:.0f}%")

    header("2. PORTFOLIO AGGREGATION")
    pf = report.portfolio
    if pf is not None:
        print(f"\n  Portfolio ALE:          ${pf.total_ale.mean:,.0f}")
        print(f"  Portfolio VaR 95%:      ${pf.portfolio_var.var_95:,.0f}")
        print(f"  Portfolio VaR 99%:      ${pf.portfolio_var.var_99:,.0f}")
        print(f"  Diversification (ALE):  {pf.diversification_benefit:.2%}")
        print(f"  Diversification (VaR):  {pf.tail_diversification_benefit:.2%}")
        print()
        for _, row in contributors_frame(pf).iterrows():
            print(f"    {row['Scenario']:28s}: {row['Contribution_pct']:6.2f}%  "
                  f"incremental VaR95={row['Incremental_VaR_95']:>14,.0f}")

    header("3. FIGURES")
    files = []
    for res in report.results:
        files.append(plot_loss_distribution(res, FIG_DIR))
        files.append(plot_convergence(res, FIG_DIR))
    if pf is not None:
        files.append(plot_risk_contribution(pf, FIG_DIR))
    print(f"  DONE: {len(files)} figures saved to outputs/figures/")

    header("ANALYSIS COMPLETE")


if __name__ == "__main__":
    main()
