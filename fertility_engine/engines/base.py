"""Abstract computation engine and registry."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fertility_engine.models import NON_MULTIPLIER_KEYS, Diagnostics, FactorKey, Factors, RawInput

logger = logging.getLogger(__name__)

BASE = FactorKey.BASE_AGE_PROBABILITY.value
TUBAL = FactorKey.TUBAL_LIGATION.value


class EngineState(Enum):
    """Terminal state of one engine run."""

    COMPUTED = "computed"
    BLOCKED = "blocked"
    FIXED = "fixed"
    ADJUSTED = "adjusted"


@dataclass(frozen=True)
class AppliedRule:
    """Trace entry for a rule that fired during a run.

    Parameters
    ----------
    name : str
        Stable rule identifier.
    description : str
        Human-readable condition.
    effect : str
        ``"block"``, ``"fixed=<p>"`` or ``"x<multiplier>"``.
    """

    name: str
    description: str
    effect: str


@dataclass(frozen=True)
class EngineResult:
    """Output of a single engine run.

    ``probability`` is always clamped to [0, 100]. ``factors`` is the map
    after any blocking stage and may differ from the input.
    """

    probability: float
    factors: Factors
    state: EngineState = EngineState.COMPUTED
    trace: tuple[AppliedRule, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.state is EngineState.BLOCKED


def multiplier_product(factors: Factors) -> float:
    """Product of every factor except the baseline and the tubal-ligation flag."""
    return math.prod(value for key, value in factors.items() if key not in NON_MULTIPLIER_KEYS)


def clamp_probability(value: float) -> float:
    """Bound *value* to [0, 100]; NaN is treated as 0."""
    if math.isnan(value):
        return 0.0
    return min(100.0, max(0.0, value))


def is_tubal_blocked(factors: Factors) -> bool:
    return factors.get(TUBAL, 1.0) == 0.0


class Engine(ABC):
    """Base class for probability computation engines.

    Attributes
    ----------
    name : str
        Registry key.
    description : str
        Human-readable summary.
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    def calculate(self, raw: RawInput, factors: Factors, diagnostics: Diagnostics) -> EngineResult:
        """Compute the per-cycle probability.

        Parameters
        ----------
        raw : RawInput
            Clinical snapshot the factors were derived from.
        factors : Factors
            Evaluated multipliers. Never mutated.
        diagnostics : Diagnostics
            Evaluator diagnostics, including which factors were measured.

        Returns
        -------
        EngineResult
        """


class EngineRegistry:
    """Discover and instantiate registered engines."""

    _engines: dict[str, type[Engine]] = {}

    @classmethod
    def register(cls, name: str):
        """Class decorator that registers an engine under *name*."""

        def decorator(klass: type[Engine]) -> type[Engine]:
            cls._engines[name] = klass
            return klass

        return decorator

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> Engine:
        """Instantiate a registered engine.

        Raises
        ------
        KeyError
            If *name* is not registered.
        """
        if name not in cls._engines:
            available = ", ".join(sorted(cls._engines)) or "(none)"
            msg = f"Unknown engine {name!r}. Available: {available}"
            raise KeyError(msg)
        return cls._engines[name](**kwargs)

    @classmethod
    def available(cls) -> list[str]:
        return sorted(cls._engines)
