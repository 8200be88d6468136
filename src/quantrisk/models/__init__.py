"""
Risk Models
===========
Samplers, scenario definitions, result containers and sample statistics.
"""

from quantrisk.models.samplers import DistributionSampler
from quantrisk.models.scenario import (
    RiskScenario, ImpactCategory, FrequencyData, ExpertJudgment,
    ImpactCategoryType, TimeHorizon, Currency)

__all__ = ["DistributionSampler", "RiskScenario", "ImpactCategory",
           "FrequencyData", "ExpertJudgment", "ImpactCategoryType",
           "TimeHorizon", "Currency"]
