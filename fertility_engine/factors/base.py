"""Partial factor updates, evaluator registry and the evaluation fold."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import reduce
from types import MappingProxyType
from typing import Any

from fertility_engine.models import Diagnostics, Factors, RawInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FactorUpdate:
    """Immutable partial output of one evaluator.

    Parameters
    ----------
    factors : Mapping[str, float]
        Multipliers contributed by the evaluator.
    comments : Mapping[str, str]
        Diagnostic text per factor key.
    missing : tuple[str, ...]
        Raw fields the evaluator found absent.
    measured : frozenset[str]
        Factor keys backed by an actual measurement.
    """

    factors: Mapping[str, float] = field(default_factory=dict)
    comments: Mapping[str, str] = field(default_factory=dict)
    missing: tuple[str, ...] = ()
    measured: frozenset[str] = frozenset()

    @classmethod
    def value(cls, key: str, multiplier: float, comment: str) -> FactorUpdate:
        """Update for a factor computed from a present clinical value."""
        return cls(factors={key: multiplier}, comments={key: comment}, measured=frozenset({key}))

    @classmethod
    def neutral(cls, key: str, comment: str, *missing: str) -> FactorUpdate:
        """Neutral (1.0) update for a factor whose inputs are absent."""
        return cls(factors={key: 1.0}, comments={key: comment}, missing=tuple(missing))

    def merge(self, other: FactorUpdate) -> FactorUpdate:
        """Combine two updates; keys in *other* win on conflict."""
        return FactorUpdate(
            factors={**self.factors, **other.factors},
            comments={**self.comments, **other.comments},
            missing=self.missing + other.missing,
            measured=self.measured | other.measured,
        )


Evaluator = Callable[[RawInput], FactorUpdate]


class FactorEvaluatorRegistry:
    """Discover registered factor evaluators.

    Evaluators run in registration order, which fixes the order of
    ``Diagnostics.missing_data``.
    """

    _evaluators: dict[str, Evaluator] = {}

    @classmethod
    def register(cls, name: str):
        """Function decorator that registers an evaluator under *name*."""

        def decorator(fn: Evaluator) -> Evaluator:
            cls._evaluators[name] = fn
            return fn

        return decorator

    @classmethod
    def get(cls, name: str) -> Evaluator:
        """Return the evaluator registered under *name*.

        Raises
        ------
        KeyError
            If *name* is not registered.
        """
        if name not in cls._evaluators:
            available = ", ".join(sorted(cls._evaluators)) or "(none)"
            msg = f"Unknown evaluator {name!r}. Available: {available}"
            raise KeyError(msg)
        return cls._evaluators[name]

    @classmethod
    def available(cls) -> list[str]:
        return list(cls._evaluators)


def fold_updates(updates: Iterable[FactorUpdate]) -> FactorUpdate:
    """Reduce partial updates into one, left to right."""
    return reduce(FactorUpdate.merge, updates, FactorUpdate())


def evaluate_factors(
    raw: RawInput,
    evaluators: Iterable[Evaluator] | None = None,
) -> tuple[Factors, Diagnostics]:
    """Run every evaluator against *raw* and assemble factors and diagnostics.

    Parameters
    ----------
    raw : RawInput
        Clinical snapshot.
    evaluators : Iterable[Callable] | None
        Evaluators to apply. Defaults to all registered evaluators.

    Returns
    -------
    tuple[Factors, Diagnostics]
        Read-only factors map and the matching diagnostics.
    """
    if evaluators is None:
        evaluators = list(FactorEvaluatorRegistry._evaluators.values())
    combined = fold_updates(fn(raw) for fn in evaluators)
    if combined.missing:
        logger.debug("Missing inputs: %s", ", ".join(combined.missing))
    return freeze(combined.factors), Diagnostics(
        comments=MappingProxyType(dict(combined.comments)),
        missing_data=combined.missing,
        measured=combined.measured,
    )


def freeze(factors: Mapping[str, Any]) -> Factors:
    """Return a read-only copy of *factors*."""
    return MappingProxyType({getattr(k, "value", k): float(v) for k, v in factors.items()})
