"""Tests for the standard and interaction engines."""

import random

import pytest

from fertility_engine.engines import EngineRegistry, EngineState, clamp_probability, multiplier_product
from fertility_engine.engines.interaction import (
    FAVORABLE_ADJUSTMENTS,
    FIXED_OVERRIDES,
    UNFAVORABLE_ADJUSTMENTS,
    Adjustment,
    InteractionEngine,
    RuleContext,
)
from fertility_engine.engines.standard import StandardEngine
from fertility_engine.factors import evaluate_factors
from fertility_engine.models import Diagnostics, FactorKey, RawInput

BASE = FactorKey.BASE_AGE_PROBABILITY.value
TUBAL = FactorKey.TUBAL_LIGATION.value


def _unit_factors(base=20.0, tubal=1.0, **overrides):
    factors = {key.value: 1.0 for key in FactorKey}
    factors[BASE] = base
    factors[TUBAL] = tubal
    factors.update(overrides)
    return factors


def _run(engine, raw):
    factors, diagnostics = evaluate_factors(raw)
    return engine.calculate(raw, factors, diagnostics)


# -- helpers ------------------------------------------------------------------


def test_multiplier_product_excludes_base_and_tubal():
    assert multiplier_product(_unit_factors(base=50.0, tubal=0.0, amh=0.5, bmi=0.5)) == pytest.approx(0.25)


@pytest.mark.parametrize(("value", "expected"), [(-5.0, 0.0), (150.0, 100.0), (42.0, 42.0), (float("nan"), 0.0)])
def test_clamp_probability(value, expected):
    assert clamp_probability(value) == expected


def test_registry_has_builtin_engines():
    assert EngineRegistry.available() == ["interaction", "standard"]
    assert isinstance(EngineRegistry.create("standard"), StandardEngine)


def test_registry_unknown_engine():
    with pytest.raises(KeyError, match="Unknown engine"):
        EngineRegistry.create("quantum")


# -- standard engine ----------------------------------------------------------


def test_standard_all_unit_factors(healthy_raw):
    result = StandardEngine().calculate(healthy_raw, _unit_factors(base=20.0), Diagnostics())
    assert result.probability == 20.0
    assert result.state is EngineState.COMPUTED


def test_standard_multiplies_factors(healthy_raw):
    result = StandardEngine().calculate(healthy_raw, _unit_factors(base=20.0, amh=0.6, bmi=0.9), Diagnostics())
    assert result.probability == pytest.approx(10.8)


def test_standard_tubal_gate(healthy_raw):
    result = StandardEngine().calculate(healthy_raw, _unit_factors(base=22.5, tubal=0.0), Diagnostics())
    assert result.probability == 0.0
    assert result.blocked
    assert result.trace[0].name == "tubal_ligation_block"


def test_standard_does_not_mutate_factors(healthy_raw):
    factors = _unit_factors(amh=0.6)
    snapshot = dict(factors)
    StandardEngine().calculate(healthy_raw, factors, Diagnostics())
    assert factors == snapshot


def test_standard_from_raw(make_raw):
    result = _run(StandardEngine(), make_raw(age=36, amh=1.5, bmi=27.0))
    assert result.probability == pytest.approx(12.5 * 0.85 * 0.9)


# -- interaction engine: gate and overrides -----------------------------------


def test_interaction_blocking_zeroes_all_factors(make_raw):
    result = _run(InteractionEngine(), make_raw(has_tubal_ligation=True))
    assert result.probability == 0.0
    assert result.state is EngineState.BLOCKED
    assert all(value == 0.0 for value in result.factors.values())


def test_override_age_amh_cycle():
    raw = RawInput(age=41, amh=0.2, cycle_length=50)
    result = _run(InteractionEngine(), raw)
    assert result.probability == 1.0
    assert result.state is EngineState.FIXED
    assert [rule.name for rule in result.trace] == ["age_amh_cycle_collapse"]


def test_override_age_amh_irregular_cycle_factor():
    raw = RawInput(age=40, amh=0.1, cycle_length=22)
    assert _run(InteractionEngine(), raw).probability == 1.0


def test_override_endometriosis_male_factor():
    raw = RawInput(
        age=30,
        amh=6.0,
        endometriosis_grade=3,
        sperm_concentration=40.0,
        sperm_progressive_motility=25.0,
        sperm_normal_morphology=6.0,
    )
    factors, diagnostics = evaluate_factors(raw)
    assert factors[FactorKey.MALE.value] == 0.8
    result = InteractionEngine().calculate(raw, factors, diagnostics)
    assert result.probability == 2.0
    assert result.trace[0].name == "severe_endometriosis_male_factor"


def test_override_endometriosis_requires_measured_male_factor():
    raw = RawInput(age=30, endometriosis_grade=3)
    result = _run(InteractionEngine(), raw)
    assert result.state is EngineState.ADJUSTED
    assert result.probability == pytest.approx(17.5 * 0.6)


def test_override_tubal_advanced_age_condition():
    raw = RawInput(age=39, has_tubal_ligation=True)
    factors, diagnostics = evaluate_factors(raw)
    context = RuleContext(raw=raw, factors=factors, diagnostics=diagnostics)
    override = FIXED_OVERRIDES[2]
    assert override.name == "tubal_ligation_advanced_age"
    assert override.condition(context)
    assert override.probability == 0.0
    assert InteractionEngine().calculate(raw, factors, diagnostics).probability == 0.0


def test_override_endometriosis_age_amh():
    raw = RawInput(age=41, amh=0.8, cycle_length=28, endometriosis_grade=4)
    result = _run(InteractionEngine(), raw)
    assert result.probability == 3.0
    assert result.trace[0].name == "severe_endometriosis_age_amh"


def test_overrides_first_match_wins():
    # Matches both the first and fourth override.
    raw = RawInput(age=41, amh=0.2, cycle_length=50, endometriosis_grade=3)
    assert _run(InteractionEngine(), raw).probability == 1.0


def test_override_bypasses_cascade():
    # age >= 38 with AMH < 0.8 would otherwise multiply by 0.40.
    raw = RawInput(age=41, amh=0.2, cycle_length=50)
    result = _run(InteractionEngine(), raw)
    assert len(result.trace) == 1
    assert result.probability == 1.0


# -- interaction engine: cascade ----------------------------------------------


def test_cascade_age_low_reserve():
    result = _run(InteractionEngine(), RawInput(age=39, amh=0.7))
    assert result.state is EngineState.ADJUSTED
    assert result.probability == pytest.approx(7.5 * 0.6 * 0.40)
    assert [rule.name for rule in result.trace] == ["age_low_reserve"]


def test_cascade_applies_cumulatively():
    raw = RawInput(age=30, has_pcos=True, homa_ir=4.0, bmi=36.0)
    factors, diagnostics = evaluate_factors(raw)
    expected = 17.5 * multiplier_product(factors) * 0.70 * 0.60
    result = InteractionEngine().calculate(raw, factors, diagnostics)
    assert result.probability == pytest.approx(expected)
    assert {r.name for r in result.trace} == {"pcos_insulin_resistance", "pcos_obesity"}


def test_cascade_hypothyroid_autoimmune():
    raw = RawInput(age=30, tsh=5.0, tpo_ab_positive=True)
    result = _run(InteractionEngine(), raw)
    assert result.probability == pytest.approx(17.5 * 0.7 * 0.70)


def test_cascade_history():
    raw = RawInput(age=30, infertility_duration_years=6, pelvic_surgeries=2)
    result = _run(InteractionEngine(), raw)
    assert result.probability == pytest.approx(17.5 * 0.75 * 0.75 * 0.60)


def test_favorable_mild_endometriosis():
    result = _run(InteractionEngine(), RawInput(age=33, endometriosis_grade=1, amh=2.0))
    assert result.probability == pytest.approx(17.5 * 0.85 * 1.10)
    assert result.trace[-1].name == "mild_endometriosis_good_reserve"


def test_unfavorable_applied_before_favorable():
    names = [a.name for a in UNFAVORABLE_ADJUSTMENTS + FAVORABLE_ADJUSTMENTS]
    assert names.index("hypothyroid_autoimmune") < names.index("young_pcos_high_reserve")
    assert all(a.multiplier < 1 for a in UNFAVORABLE_ADJUSTMENTS)
    assert all(a.multiplier > 1 for a in FAVORABLE_ADJUSTMENTS)


def test_interaction_clamps_to_100():
    raw = RawInput(
        age=28,
        has_pcos=True,
        amh=6.0,
        homa_ir=1.5,
        tsh=1.0,
        sperm_concentration=50.0,
        sperm_progressive_motility=45.0,
        sperm_normal_morphology=6.0,
    )
    _, diagnostics = evaluate_factors(raw)
    result = InteractionEngine().calculate(raw, _unit_factors(base=100.0), diagnostics)
    assert result.probability == 100.0
    assert len(result.trace) == 2


def test_custom_rules_are_injectable():
    always = Adjustment("always", "test", "Always applies", lambda c: True, 0.5)
    engine = InteractionEngine(overrides=(), unfavorable=(always,), favorable=())
    result = _run(engine, RawInput(age=28))
    assert result.probability == pytest.approx(11.25)


def test_healthy_input_matches_standard(healthy_raw):
    assert _run(InteractionEngine(), healthy_raw).probability == _run(StandardEngine(), healthy_raw).probability


# -- properties ----------------------------------------------------------------


@pytest.mark.parametrize("engine", [StandardEngine(), InteractionEngine()])
def test_output_bounded_for_random_factors(engine):
    rng = random.Random(1234)
    raws = [
        RawInput(age=25),
        RawInput(age=45, amh=0.1, cycle_length=60, has_pcos=True, homa_ir=5.0, bmi=38.0, prolactin=80),
        RawInput(age=30, has_pcos=True, amh=8.0, homa_ir=1.0, tsh=1.0, endometriosis_grade=1),
    ]
    for _ in range(200):
        raw = rng.choice(raws)
        factors = {key.value: rng.random() for key in FactorKey}
        factors[BASE] = rng.uniform(0, 100)
        factors[TUBAL] = rng.choice([0.0, 1.0])
        _, diagnostics = evaluate_factors(raw)
        result = engine.calculate(raw, factors, diagnostics)
        assert 0.0 <= result.probability <= 100.0


@pytest.mark.parametrize("engine", [StandardEngine(), InteractionEngine()])
def test_tubal_ligation_always_zero(engine, make_raw):
    for overrides in ({}, {"age": 25, "amh": 6.0}, {"endometriosis_grade": 4, "age": 42}):
        result = _run(engine, make_raw(has_tubal_ligation=True, **overrides))
        assert result.probability == 0.0
