"""Nonlinear interaction engine.

Pipeline, in order:

1. initial product of multipliers (as in the standard engine);
2. blocking gate: tubal ligation zeroes every factor and returns 0;
3. fixed-probability overrides, first match wins;
4. adjustment cascade, unfavorable pass then favorable pass;
5. clamp to [0, 100].

Blocked and fixed runs skip the cascade.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType

from fertility_engine.engines.base import (
    BASE,
    TUBAL,
    AppliedRule,
    Engine,
    EngineRegistry,
    EngineResult,
    EngineState,
    clamp_probability,
    is_tubal_blocked,
    multiplier_product,
)
from fertility_engine.models import (
    AdenomyosisType,
    Diagnostics,
    FactorKey,
    Factors,
    HsgResult,
    MyomaType,
    RawInput,
)

logger = logging.getLogger(__name__)

CYCLE = FactorKey.CYCLE.value
MALE = FactorKey.MALE.value


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule condition may look at."""

    raw: RawInput
    factors: Factors
    diagnostics: Diagnostics

    def below(self, field_name: str, threshold: float) -> bool:
        """``raw.<field_name> < threshold``, false when the value is absent."""
        value = _raw_value(self.raw, field_name)
        return value is not None and value < threshold

    def at_least(self, field_name: str, threshold: float) -> bool:
        value = _raw_value(self.raw, field_name)
        return value is not None and value >= threshold

    def above(self, field_name: str, threshold: float) -> bool:
        value = _raw_value(self.raw, field_name)
        return value is not None and value > threshold

    def male_impaired(self) -> bool:
        """Semen factor below 1.0 from a complete, measured analysis."""
        return self.diagnostics.is_measured(MALE) and self.factors.get(MALE, 1.0) < 1.0

    def semen_normal(self) -> bool:
        return self.at_least("sperm_concentration", 16) and self.at_least("sperm_normal_morphology", 4)

    def semen_motile(self) -> bool:
        return self.at_least("sperm_concentration", 16) and self.at_least("sperm_progressive_motility", 30)


def _raw_value(raw: RawInput, field_name: str) -> float | None:
    if field_name == "bmi":
        return raw.effective_bmi
    if field_name == "homa_ir":
        return raw.effective_homa
    return getattr(raw, field_name)


Condition = Callable[[RuleContext], bool]


@dataclass(frozen=True)
class FixedOverride:
    """Rule that replaces the probability with an explicit percentage."""

    name: str
    description: str
    condition: Condition
    probability: float


@dataclass(frozen=True)
class Adjustment:
    """Rule that multiplies the running probability.

    ``multiplier`` below 1 models an unfavorable combination, above 1 a
    favorable one.
    """

    name: str
    domain: str
    description: str
    condition: Condition
    multiplier: float


FIXED_OVERRIDES: tuple[FixedOverride, ...] = (
    FixedOverride(
        "age_amh_cycle_collapse",
        "Age >= 40, AMH < 0.3 and anovulatory cycle",
        lambda c: (
            c.raw.age >= 40
            and c.below("amh", 0.3)
            and (c.above("cycle_length", 45) or c.factors.get(CYCLE, 1.0) < 1.0)
        ),
        1.0,
    ),
    FixedOverride(
        "severe_endometriosis_male_factor",
        "Endometriosis grade >= 3 with impaired semen",
        lambda c: c.raw.endometriosis_grade >= 3 and c.male_impaired(),
        2.0,
    ),
    FixedOverride(
        "tubal_ligation_advanced_age",
        "Tubal ligation after age 37",
        lambda c: c.factors.get(TUBAL, 1.0) == 0.0 and c.raw.age > 37,
        0.0,
    ),
    FixedOverride(
        "severe_endometriosis_age_amh",
        "Endometriosis grade >= 3, age > 39 and AMH < 1.0",
        lambda c: c.raw.endometriosis_grade >= 3 and c.raw.age > 39 and c.below("amh", 1.0),
        3.0,
    ),
)

UNFAVORABLE_ADJUSTMENTS: tuple[Adjustment, ...] = (
    Adjustment(
        "age_low_reserve",
        "age_reserve",
        "Age >= 38 with AMH < 0.8",
        lambda c: c.raw.age >= 38 and c.below("amh", 0.8),
        0.40,
    ),
    Adjustment(
        "low_reserve_poor_morphology",
        "age_reserve",
        "AMH < 1.0 with sperm morphology < 2%",
        lambda c: c.below("amh", 1.0) and c.below("sperm_normal_morphology", 2),
        0.50,
    ),
    Adjustment(
        "pcos_insulin_resistance",
        "metabolic",
        "PCOS with HOMA-IR >= 3.5",
        lambda c: c.raw.has_pcos and c.at_least("homa_ir", 3.5),
        0.70,
    ),
    Adjustment(
        "pcos_obesity",
        "metabolic",
        "PCOS with BMI >= 35",
        lambda c: c.raw.has_pcos and c.at_least("bmi", 35),
        0.60,
    ),
    Adjustment(
        "pcos_anovulation_hyperprolactinemia",
        "metabolic",
        "PCOS with cycle > 60 days and prolactin > 50",
        lambda c: c.raw.has_pcos and c.above("cycle_length", 60) and c.above("prolactin", 50),
        0.55,
    ),
    Adjustment(
        "unilateral_tube_male_factor",
        "anatomical",
        "Unilateral tubal obstruction with impaired semen",
        lambda c: c.raw.hsg_result is HsgResult.UNILATERAL and c.male_impaired(),
        0.50,
    ),
    Adjustment(
        "submucosal_myoma_endometriosis",
        "anatomical",
        "Submucosal myoma with mild endometriosis",
        lambda c: c.raw.myoma_type is MyomaType.SUBMUCOSAL and 1 <= c.raw.endometriosis_grade <= 2,
        0.65,
    ),
    Adjustment(
        "diffuse_adenomyosis_age",
        "anatomical",
        "Diffuse adenomyosis at age >= 38",
        lambda c: c.raw.adenomyosis_type is AdenomyosisType.DIFFUSE and c.raw.age >= 38,
        0.50,
    ),
    Adjustment(
        "prolonged_infertility_surgeries",
        "history",
        "Infertility >= 5 years with >= 2 pelvic surgeries",
        lambda c: c.at_least("infertility_duration_years", 5) and c.at_least("pelvic_surgeries", 2),
        0.60,
    ),
    Adjustment(
        "hypothyroid_autoimmune",
        "endocrine",
        "TSH > 4.0 with positive TPO antibodies",
        lambda c: c.above("tsh", 4.0) and c.raw.tpo_ab_positive,
        0.70,
    ),
)

FAVORABLE_ADJUSTMENTS: tuple[Adjustment, ...] = (
    Adjustment(
        "young_pcos_high_reserve",
        "age_reserve",
        "Age < 32, AMH > 4.5 and PCOS with normal semen",
        lambda c: c.raw.age < 32 and c.above("amh", 4.5) and c.raw.has_pcos and c.semen_normal(),
        1.15,
    ),
    Adjustment(
        "mild_endometriosis_good_reserve",
        "anatomical",
        "Mild endometriosis, AMH >= 1.5 and age < 35",
        lambda c: 1 <= c.raw.endometriosis_grade <= 2 and c.at_least("amh", 1.5) and c.raw.age < 35,
        1.10,
    ),
    Adjustment(
        "unilateral_tube_young_normal_semen",
        "anatomical",
        "Unilateral obstruction, age < 35 and motile semen",
        lambda c: c.raw.hsg_result is HsgResult.UNILATERAL and c.raw.age < 35 and c.semen_motile(),
        1.05,
    ),
    Adjustment(
        "young_lean_pcos_optimal_thyroid",
        "metabolic",
        "Age < 30, AMH > 5, PCOS, HOMA-IR < 2 and optimal TSH",
        lambda c: (
            c.raw.age < 30
            and c.above("amh", 5)
            and c.raw.has_pcos
            and c.below("homa_ir", 2)
            and c.at_least("tsh", 0.5)
            and not c.above("tsh", 2.5)
        ),
        1.20,
    ),
)


@EngineRegistry.register("interaction")
class InteractionEngine(Engine):
    """Multiplicative model refined by ordered clinical interaction rules.

    Parameters
    ----------
    overrides : tuple[FixedOverride, ...] | None
        Fixed-probability rules in priority order.
    unfavorable, favorable : tuple[Adjustment, ...] | None
        Cascade passes, applied cumulatively in order.
    """

    name = "interaction"
    description = "Nonlinear model with blocking, fixed overrides and adjustment cascades."

    def __init__(
        self,
        overrides: tuple[FixedOverride, ...] | None = None,
        unfavorable: tuple[Adjustment, ...] | None = None,
        favorable: tuple[Adjustment, ...] | None = None,
    ) -> None:
        self.overrides = FIXED_OVERRIDES if overrides is None else overrides
        self.unfavorable = UNFAVORABLE_ADJUSTMENTS if unfavorable is None else unfavorable
        self.favorable = FAVORABLE_ADJUSTMENTS if favorable is None else favorable

    def calculate(self, raw: RawInput, factors: Factors, diagnostics: Diagnostics) -> EngineResult:
        probability = factors[BASE] * multiplier_product(factors)

        if is_tubal_blocked(factors):
            logger.debug("Blocking gate: tubal ligation")
            return EngineResult(
                probability=0.0,
                factors=MappingProxyType({key: 0.0 for key in factors}),
                state=EngineState.BLOCKED,
                trace=(AppliedRule("tubal_ligation_block", "Bilateral tubal ligation", "block"),),
            )

        context = RuleContext(raw=raw, factors=factors, diagnostics=diagnostics)

        for override in self.overrides:
            if override.condition(context):
                logger.debug("Fixed override %s -> %.1f%%", override.name, override.probability)
                return EngineResult(
                    probability=clamp_probability(override.probability),
                    factors=factors,
                    state=EngineState.FIXED,
                    trace=(AppliedRule(override.name, override.description, f"fixed={override.probability}"),),
                )

        applied: list[AppliedRule] = []
        for adjustment in self.unfavorable + self.favorable:
            if adjustment.condition(context):
                probability *= adjustment.multiplier
                applied.append(AppliedRule(adjustment.name, adjustment.description, f"x{adjustment.multiplier}"))

        if applied:
            logger.debug("Applied %d interaction adjustments: %s", len(applied), ", ".join(r.name for r in applied))
        return EngineResult(
            probability=clamp_probability(probability),
            factors=factors,
            state=EngineState.ADJUSTED,
            trace=tuple(applied),
        )
