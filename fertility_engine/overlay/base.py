"""Weighting overlay contract and registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from fertility_engine.models import Diagnostics, Factors


@dataclass(frozen=True)
class FactorContribution:
    """One domain's share in an overlay result.

    Parameters
    ----------
    domain : str
        Clinical domain name.
    score : float
        Domain score in [0, 1], 1.0 meaning unimpaired.
    weight : float
        Normalized weight.
    impact : float
        Fractional reduction attributable to the domain, in [0, 1].
    measured : bool
        Whether any factor of the domain came from a measurement.
    """

    domain: str
    score: float
    weight: float
    impact: float
    measured: bool


@dataclass(frozen=True)
class OverlayResult:
    """Output contract of every weighting overlay.

    ``contributions`` are ranked by descending impact.
    """

    probability: float
    confidence: float
    evidence_quality: str
    contributions: tuple[FactorContribution, ...] = ()

    def top_contributors(self, limit: int = 3) -> tuple[FactorContribution, ...]:
        """Highest-impact domains that actually reduce the probability."""
        return tuple(c for c in self.contributions if c.impact > 0)[:limit]


class WeightingOverlay(ABC):
    """Secondary re-weighting of an engine's factors."""

    name: str = ""

    @abstractmethod
    def apply(self, factors: Factors, diagnostics: Diagnostics) -> OverlayResult:
        """Re-weight *factors* into an alternative probability.

        Parameters
        ----------
        factors : Factors
            Factors produced by the selected engine. Never mutated.
        diagnostics : Diagnostics
            Used to tell measured factors from neutral defaults.

        Returns
        -------
        OverlayResult
        """


class OverlayRegistry:
    """Discover and instantiate registered overlays."""

    _overlays: dict[str, type[WeightingOverlay]] = {}

    @classmethod
    def register(cls, name: str):
        """Class decorator that registers an overlay under *name*."""

        def decorator(klass: type[WeightingOverlay]) -> type[WeightingOverlay]:
            cls._overlays[name] = klass
            return klass

        return decorator

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> WeightingOverlay:
        """Instantiate a registered overlay.

        Raises
        ------
        KeyError
            If *name* is not registered.
        """
        if name not in cls._overlays:
            available = ", ".join(sorted(cls._overlays)) or "(none)"
            msg = f"Unknown overlay {name!r}. Available: {available}"
            raise KeyError(msg)
        return cls._overlays[name](**kwargs)

    @classmethod
    def available(cls) -> list[str]:
        return sorted(cls._overlays)
