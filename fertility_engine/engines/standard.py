"""Straight multiplicative engine."""

from __future__ import annotations

import logging

from fertility_engine.engines.base import (
    BASE,
    AppliedRule,
    Engine,
    EngineRegistry,
    EngineResult,
    EngineState,
    clamp_probability,
    is_tubal_blocked,
    multiplier_product,
)
from fertility_engine.models import Diagnostics, Factors, RawInput

logger = logging.getLogger(__name__)


@EngineRegistry.register("standard")
class StandardEngine(Engine):
    """Baseline probability times the product of all multipliers.

    The only branch is the tubal-ligation gate, which forces zero.
    """

    name = "standard"
    description = "Multiplicative model over independent factors."

    def calculate(self, raw: RawInput, factors: Factors, diagnostics: Diagnostics) -> EngineResult:
        probability = factors[BASE] * multiplier_product(factors)
        if is_tubal_blocked(factors):
            logger.debug("Tubal ligation gate: forcing probability to 0")
            return EngineResult(
                probability=0.0,
                factors=factors,
                state=EngineState.BLOCKED,
                trace=(AppliedRule("tubal_ligation_block", "Bilateral tubal ligation", "block"),),
            )
        return EngineResult(probability=clamp_probability(probability), factors=factors)
