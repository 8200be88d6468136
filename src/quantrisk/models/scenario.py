"""
Risk Scenario Model
====================

Immutable description of a loss-event class: what can go wrong, how
often it happens and what a single occurrence costs.

Frequency resolution order (events per year):
    1. historical_incidents / observation_period   (maximum likelihood)
    2. PERT mean of expert judgment: (min + 4*likely + max) / 6
    3. industry benchmark
    4. 0.1 (very low default)

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from quantrisk.exceptions import InvalidScenarioError

DEFAULT_ANNUAL_RATE = 0.1


class ImpactCategoryType(str, Enum):
    FINANCIAL = "financial"
    OPERATIONAL = "operational"
    REPUTATION = "reputation"
    REGULATORY = "regulatory"


class TimeHorizon(str, Enum):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


def _enum_value(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise InvalidScenarioError(
            f"Invalid {field_name}: {value!r}. Allowed: {allowed}") from None


@dataclass(frozen=True)
class ImpactCategory:
    """
    Three-point estimate of the cost of one event in one impact category.
    Requires 0 <= min_impact <= most_likely_impact <= max_impact.
    The currency is carried for display only; no FX conversion is applied.
    """
    category: ImpactCategoryType
    min_impact: float
    max_impact: float
    most_likely_impact: float
    currency: Currency = Currency.USD
    time_horizon: TimeHorizon = TimeHorizon.IMMEDIATE

    def __post_init__(self):
        object.__setattr__(self, "category",
                           _enum_value(ImpactCategoryType, self.category, "category"))
        object.__setattr__(self, "currency",
                           _enum_value(Currency, self.currency, "currency"))
        object.__setattr__(self, "time_horizon",
                           _enum_value(TimeHorizon, self.time_horizon, "time_horizon"))
        lo, ml, hi = self.min_impact, self.most_likely_impact, self.max_impact
        if lo < 0:
            raise InvalidScenarioError(
                f"{self.category.value}: min_impact must be non-negative, got {lo}")
        if not lo <= ml <= hi:
            raise InvalidScenarioError(
                f"{self.category.value}: expected min <= most_likely <= max, "
                f"got ({lo}, {ml}, {hi})")

    def scaled(self, multiplier: float) -> "ImpactCategory":
        """Copy with all three monetary bounds multiplied."""
        return ImpactCategory(
            category=self.category,
            min_impact=self.min_impact * multiplier,
            max_impact=self.max_impact * multiplier,
            most_likely_impact=self.most_likely_impact * multiplier,
            currency=self.currency,
            time_horizon=self.time_horizon,
        )


@dataclass(frozen=True)
class ExpertJudgment:
    """Elicited event frequency range (events per year)."""
    min_frequency: float
    max_frequency: float
    most_likely_frequency: float

    def __post_init__(self):
        lo, ml, hi = self.min_frequency, self.most_likely_frequency, self.max_frequency
        if lo < 0 or not lo <= ml <= hi:
            raise InvalidScenarioError(
                f"expert judgment must satisfy 0 <= min <= most_likely <= max, "
                f"got ({lo}, {ml}, {hi})")

    @property
    def pert_mean(self) -> float:
        return (self.min_frequency + 4 * self.most_likely_frequency
                + self.max_frequency) / 6


@dataclass(frozen=True)
class FrequencyData:
    """Evidence available for the annual event rate."""
    historical_incidents: float = 0
    observation_period: float = 0
    industry_benchmark: Optional[float] = None
    expert_judgment: Optional[ExpertJudgment] = None

    def __post_init__(self):
        if self.historical_incidents < 0 or self.observation_period < 0:
            raise InvalidScenarioError(
                "historical_incidents and observation_period must be non-negative")
        if self.industry_benchmark is not None and self.industry_benchmark < 0:
            raise InvalidScenarioError("industry_benchmark must be non-negative")

    def annual_rate(self) -> float:
        """Poisson rate lambda resolved from the best available evidence."""
        if self.historical_incidents > 0 and self.observation_period > 0:
            return self.historical_incidents / self.observation_period
        if self.expert_judgment is not None:
            return self.expert_judgment.pert_mean
        if self.industry_benchmark:
            return float(self.industry_benchmark)
        return DEFAULT_ANNUAL_RATE


@dataclass(frozen=True)
class RiskScenario:
    """
    Immutable loss-event class consumed read-only by the simulator.
    confidence_level (0-100) is a label echoed into the results.
    """
    id: str
    name: str
    impact_categories: Tuple[ImpactCategory, ...]
    frequency_data: FrequencyData
    description: str = ""
    threat_source: str = ""
    vulnerability: str = ""
    confidence_level: float = 70.0
    asset_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "impact_categories", tuple(self.impact_categories))
        if not 0 <= self.confidence_level <= 100:
            raise InvalidScenarioError(
                f"confidence_level must lie in [0, 100], got {self.confidence_level}")

    @property
    def annual_rate(self) -> float:
        return self.frequency_data.annual_rate()

    @property
    def most_likely_impact(self) -> float:
        """Sum of the most-likely impact across categories."""
        return sum(c.most_likely_impact for c in self.impact_categories)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RiskScenario":
        """Build a scenario from the plain structure used by callers."""
        try:
            freq = dict(data.get("frequency_data") or {})
            expert = freq.pop("expert_judgment", None)
            return cls(
                id=str(data["id"]),
                name=str(data["name"]),
                description=data.get("description", ""),
                threat_source=data.get("threat_source", ""),
                vulnerability=data.get("vulnerability", ""),
                asset_id=data.get("asset_id"),
                impact_categories=tuple(
                    ImpactCategory(**c) for c in data.get("impact_categories", [])),
                frequency_data=FrequencyData(
                    expert_judgment=ExpertJudgment(**expert) if expert else None,
                    **freq),
                confidence_level=data.get("confidence_level", 70.0),
            )
        except (KeyError, TypeError) as exc:
            raise InvalidScenarioError(f"Malformed scenario definition: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data representation with enum members as strings."""
        out = asdict(self)
        out["impact_categories"] = [
            {**c, "category": c["category"].value,
             "currency": c["currency"].value,
             "time_horizon": c["time_horizon"].value}
            for c in out["impact_categories"]
        ]
        return out


ScenarioInput = Union[RiskScenario, Mapping[str, Any]]


def as_scenario(scenario: ScenarioInput) -> RiskScenario:
    """Accept a RiskScenario or its plain-data form."""
    if isinstance(scenario, Mapping):
        return RiskScenario.from_dict(scenario)
    return scenario


def scenario_id(scenario: ScenarioInput, default: str = "?") -> str:
    if isinstance(scenario, Mapping):
        return str(scenario.get("id", default))
    return str(getattr(scenario, "id", default))
