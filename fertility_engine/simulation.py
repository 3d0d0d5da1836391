"""What-if simulation over an already evaluated factors map.

Every function here is pure: inputs are never mutated and identical
factors always give identical results.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from fertility_engine.engines.base import BASE, TUBAL, clamp_probability, multiplier_product

OPTIMAL = 1.0


@dataclass(frozen=True)
class SimulationResult:
    """Prognosis before and after optimizing one factor."""

    factor: str
    original: float
    improved: float

    @property
    def improvement(self) -> float:
        return self.improved - self.original


def compute_prognosis(factors: Mapping[str, float]) -> float:
    """Recompute the per-cycle probability from *factors* alone.

    Uses the multiplicative model: baseline times every multiplier, zero
    under the tubal-ligation flag, clamped to [0, 100].

    Parameters
    ----------
    factors : Mapping[str, float]
        A full or partially optimized factors map. Must contain the
        baseline age probability.

    Returns
    -------
    float

    Raises
    ------
    KeyError
        If the baseline age probability is missing.
    """
    if BASE not in factors:
        msg = f"factors must contain {BASE!r}"
        raise KeyError(msg)
    if factors.get(TUBAL, 1.0) == 0.0:
        return 0.0
    return clamp_probability(factors[BASE] * multiplier_product(factors))


def simulate_factor(factors: Mapping[str, float], key: str) -> SimulationResult:
    """Prognosis if the factor *key* were optimal.

    Raises
    ------
    KeyError
        If *key* is not in *factors*.
    ValueError
        If *key* is the baseline age probability, which cannot be improved.
    """
    if key == BASE:
        msg = "the age baseline cannot be simulated"
        raise ValueError(msg)
    if key not in factors:
        msg = f"Unknown factor {key!r}"
        raise KeyError(msg)
    improved = {**factors, key: OPTIMAL}
    return SimulationResult(factor=key, original=compute_prognosis(factors), improved=compute_prognosis(improved))


def simulate_all_improvements(factors: Mapping[str, float]) -> list[SimulationResult]:
    """Simulate each impaired factor, best improvement first."""
    results = [simulate_factor(factors, key) for key, value in factors.items() if key != BASE and value < OPTIMAL]
    return sorted(results, key=lambda r: r.improvement, reverse=True)


def optimize_all(factors: Mapping[str, float]) -> float:
    """Prognosis with every multiplier and the tubal flag set to optimal."""
    return compute_prognosis({key: value if key == BASE else OPTIMAL for key, value in factors.items()})
