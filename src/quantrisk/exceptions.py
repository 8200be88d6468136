"""
exceptions.py
-------------
Typed failures raised by the risk engine.

Invalid input is raised immediately to the caller. Numerical degeneracy
(zero-width ranges, zero-variance samples) never raises; it is handled
where it occurs with a 0 fallback.
"""


class QuantRiskError(ValueError):
    """Base class for every invalid-input failure of the engine."""


class InvalidScenarioError(QuantRiskError):
    """Scenario cannot be priced (bad impact bounds, no impact categories, ...)."""


class InvalidIterationsError(QuantRiskError):
    """Iteration count below 1."""


class InvalidCorrelationMatrixError(QuantRiskError):
    """Correlation matrix with the wrong shape or invalid entries."""


class PortfolioAnalysisError(QuantRiskError):
    """No constituent of a portfolio could be simulated."""


class SimulationCancelledError(QuantRiskError):
    """Raised at a convergence checkpoint once the run has been cancelled."""
