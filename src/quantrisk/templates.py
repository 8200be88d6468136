"""
Industry Scenario Templates
=============================

Starter scenarios calibrated per industry, rescaled to the organisation's
size. Only monetary impact scales with size; event frequency does not.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

from enum import Enum
from typing import Dict, List

from quantrisk.models.scenario import (
    ExpertJudgment, FrequencyData, ImpactCategory, ImpactCategoryType as Cat,
    RiskScenario, TimeHorizon as H)

# Impact multipliers relative to a medium-sized organisation
SIZE_MULTIPLIERS: Dict[str, float] = {
    "startup":    0.3,
    "small":      0.5,
    "medium":     1.0,
    "large":      2.0,
    "enterprise": 3.5,
}


class Industry(str, Enum):
    HEALTHCARE = "healthcare"
    FINANCIAL = "financial"
    MANUFACTURING = "manufacturing"
    DEFAULT = "default"

    @classmethod
    def parse(cls, name: str) -> "Industry":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.DEFAULT


_PROTOTYPES: Dict[Industry, List[RiskScenario]] = {
    Industry.HEALTHCARE: [RiskScenario(
        id="healthcare_data_breach",
        name="Patient Data Breach",
        description="Unauthorized access to protected health information",
        threat_source="External Cybercriminal",
        vulnerability="Weak access controls",
        impact_categories=(
            ImpactCategory(Cat.REGULATORY, 100_000, 10_000_000, 1_500_000,
                           time_horizon=H.IMMEDIATE),
            ImpactCategory(Cat.REPUTATION, 500_000, 5_000_000, 2_000_000,
                           time_horizon=H.LONG_TERM),
        ),
        frequency_data=FrequencyData(historical_incidents=2, observation_period=5,
                                     industry_benchmark=0.3),
        confidence_level=75,
    )],
    Industry.FINANCIAL: [RiskScenario(
        id="financial_cyber_fraud",
        name="Cyber Fraud Attack",
        description="Fraudulent financial transactions due to system compromise",
        threat_source="Organized Crime",
        vulnerability="Inadequate transaction monitoring",
        impact_categories=(
            ImpactCategory(Cat.FINANCIAL, 250_000, 25_000_000, 3_000_000,
                           time_horizon=H.IMMEDIATE),
            ImpactCategory(Cat.REGULATORY, 1_000_000, 15_000_000, 5_000_000,
                           time_horizon=H.SHORT_TERM),
        ),
        frequency_data=FrequencyData(historical_incidents=1, observation_period=3,
                                     industry_benchmark=0.4),
        confidence_level=80,
    )],
    Industry.MANUFACTURING: [RiskScenario(
        id="supply_chain_disruption",
        name="Supply Chain Cyber Attack",
        description="Production disruption due to supplier system compromise",
        threat_source="Nation State",
        vulnerability="Weak supplier security",
        impact_categories=(
            ImpactCategory(Cat.OPERATIONAL, 500_000, 20_000_000, 4_000_000,
                           time_horizon=H.SHORT_TERM),
            ImpactCategory(Cat.FINANCIAL, 1_000_000, 30_000_000, 8_000_000,
                           time_horizon=H.IMMEDIATE),
        ),
        frequency_data=FrequencyData(
            historical_incidents=0, observation_period=5,
            expert_judgment=ExpertJudgment(min_frequency=0.1, max_frequency=0.5,
                                           most_likely_frequency=0.2)),
        confidence_level=65,
    )],
    Industry.DEFAULT: [RiskScenario(
        id="generic_data_breach",
        name="General Data Breach",
        description="Unauthorized access to sensitive organizational data",
        threat_source="External Attacker",
        vulnerability="System vulnerabilities",
        impact_categories=(
            ImpactCategory(Cat.FINANCIAL, 50_000, 5_000_000, 750_000,
                           time_horizon=H.IMMEDIATE),
        ),
        frequency_data=FrequencyData(historical_incidents=1, observation_period=3,
                                     industry_benchmark=0.25),
        confidence_level=70,
    )],
}


def size_multiplier(organization_size: str) -> float:
    """Impact multiplier for a size label; unknown labels map to 1.0."""
    return SIZE_MULTIPLIERS.get((organization_size or "").strip().lower(), 1.0)


def scale_scenario(scenario: RiskScenario, multiplier: float) -> RiskScenario:
    """Copy of the scenario with every impact bound multiplied."""
    return RiskScenario(
        id=scenario.id,
        name=scenario.name,
        description=scenario.description,
        threat_source=scenario.threat_source,
        vulnerability=scenario.vulnerability,
        impact_categories=tuple(c.scaled(multiplier) for c in scenario.impact_categories),
        frequency_data=scenario.frequency_data,
        confidence_level=scenario.confidence_level,
        asset_id=scenario.asset_id,
    )


class ScenarioTemplateGenerator:
    """
    Usage:
        >>> gen = ScenarioTemplateGenerator()
        >>> gen.generate_industry_scenarios("healthcare", "large")
    """

    @staticmethod
    def available_industries() -> List[str]:
        return [i.value for i in Industry]

    def generate_industry_scenarios(self, industry: str,
                                    organization_size: str) -> List[RiskScenario]:
        prototypes = _PROTOTYPES[Industry.parse(industry)]
        multiplier = size_multiplier(organization_size)
        return [scale_scenario(s, multiplier) for s in prototypes]


def scenario_from_qualitative_risk(risk_id: str, title: str, inherent_impact: float,
                                   inherent_likelihood: float,
                                   description: str = "") -> RiskScenario:
    """
    Translate a qualitative register entry (impact and likelihood scores,
    typically 1-5) into a quantitative scenario.

        impact      -> financial loss (score*50k, score*200k, score*500k)
        likelihood  -> expert frequency (score*0.1, score*0.25, score*0.5) per year
    """
    return RiskScenario(
        id=str(risk_id),
        name=title,
        description=description,
        threat_source="Multiple",
        vulnerability="Various control gaps",
        impact_categories=(ImpactCategory(
            Cat.FINANCIAL,
            min_impact=inherent_impact * 50_000,
            max_impact=inherent_impact * 500_000,
            most_likely_impact=inherent_impact * 200_000,
            time_horizon=H.IMMEDIATE),),
        frequency_data=FrequencyData(
            historical_incidents=0, observation_period=1,
            expert_judgment=ExpertJudgment(
                min_frequency=inherent_likelihood * 0.1,
                max_frequency=inherent_likelihood * 0.5,
                most_likely_frequency=inherent_likelihood * 0.25)),
        confidence_level=70,
    )
