"""Tests for what-if simulation."""

import pytest

from fertility_engine.factors import evaluate_factors
from fertility_engine.models import FactorKey
from fertility_engine.simulation import (
    compute_prognosis,
    optimize_all,
    simulate_all_improvements,
    simulate_factor,
)

BASE = FactorKey.BASE_AGE_PROBABILITY.value


@pytest.fixture()
def impaired_factors():
    return {
        BASE: 20.0,
        FactorKey.TUBAL_LIGATION.value: 1.0,
        FactorKey.AMH.value: 0.6,
        FactorKey.BMI.value: 0.9,
        FactorKey.MALE.value: 0.5,
        FactorKey.TSH.value: 1.0,
    }


def test_compute_prognosis(impaired_factors):
    assert compute_prognosis(impaired_factors) == pytest.approx(20.0 * 0.6 * 0.9 * 0.5)


def test_compute_prognosis_requires_baseline():
    with pytest.raises(KeyError, match="base_age_probability"):
        compute_prognosis({FactorKey.AMH.value: 0.5})


def test_compute_prognosis_tubal_ligation(impaired_factors):
    assert compute_prognosis({**impaired_factors, FactorKey.TUBAL_LIGATION.value: 0.0}) == 0.0


def test_compute_prognosis_clamped():
    assert compute_prognosis({BASE: 90.0, FactorKey.AMH.value: 1.5}) == 100.0


def test_compute_prognosis_matches_engine_on_evaluated_factors(healthy_raw):
    factors, _ = evaluate_factors(healthy_raw)
    assert compute_prognosis(factors) == 22.5


def test_simulate_factor(impaired_factors):
    result = simulate_factor(impaired_factors, FactorKey.MALE.value)
    assert result.factor == "male"
    assert result.original == pytest.approx(5.4)
    assert result.improved == pytest.approx(10.8)
    assert result.improvement == pytest.approx(5.4)


def test_simulate_factor_does_not_mutate(impaired_factors):
    snapshot = dict(impaired_factors)
    simulate_factor(impaired_factors, FactorKey.AMH.value)
    assert impaired_factors == snapshot


def test_simulate_factor_is_deterministic(impaired_factors):
    first = simulate_factor(impaired_factors, FactorKey.BMI.value)
    assert simulate_factor(impaired_factors, FactorKey.BMI.value) == first


def test_simulate_already_optimal_factor(impaired_factors):
    assert simulate_factor(impaired_factors, FactorKey.TSH.value).improvement == 0.0


def test_simulate_baseline_rejected(impaired_factors):
    with pytest.raises(ValueError, match="cannot be simulated"):
        simulate_factor(impaired_factors, BASE)


def test_simulate_unknown_factor(impaired_factors):
    with pytest.raises(KeyError, match="Unknown factor"):
        simulate_factor(impaired_factors, "luck")


def test_simulate_all_sorted_best_first(impaired_factors):
    results = simulate_all_improvements(impaired_factors)
    assert [r.factor for r in results] == ["male", "amh", "bmi"]
    improvements = [r.improvement for r in results]
    assert improvements == sorted(improvements, reverse=True)


def test_simulate_all_healthy_is_empty(healthy_raw):
    factors, _ = evaluate_factors(healthy_raw)
    assert simulate_all_improvements(factors) == []


def test_simulate_tubal_flag(impaired_factors):
    blocked = {**impaired_factors, FactorKey.TUBAL_LIGATION.value: 0.0}
    result = simulate_factor(blocked, FactorKey.AMH.value)
    assert result.original == result.improved == 0.0
    assert simulate_factor(blocked, FactorKey.TUBAL_LIGATION.value).improved == pytest.approx(5.4)


def test_optimize_all(impaired_factors):
    assert optimize_all(impaired_factors) == 20.0
    assert optimize_all({**impaired_factors, FactorKey.TUBAL_LIGATION.value: 0.0}) == 20.0
