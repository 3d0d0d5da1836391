"""Tests for raw input and shared models."""

import pytest

from fertility_engine.complexity import anatomical_severity
from fertility_engine.models import (
    AdenomyosisType,
    Diagnostics,
    EngineMode,
    HsgResult,
    MyomaType,
    PolypType,
    RawInput,
)
from fertility_engine.orchestrator import EngineOrchestrator, OrchestrationSuccess


def test_raw_input_defaults():
    raw = RawInput(age=30)
    assert raw.myoma_type is MyomaType.NONE
    assert raw.adenomyosis_type is AdenomyosisType.NONE
    assert raw.polyp_type is PolypType.NONE
    assert raw.hsg_result is None
    assert raw.endometriosis_grade == 0


def test_raw_input_is_frozen():
    raw = RawInput(age=30)
    with pytest.raises(AttributeError):
        raw.age = 31


def test_enum_fields_coerced_from_strings():
    raw = RawInput(age=30, myoma_type="Submucosal", hsg_result="unilateral")
    assert raw.myoma_type is MyomaType.SUBMUCOSAL
    assert raw.hsg_result is HsgResult.UNILATERAL


@pytest.mark.parametrize("name", ["myoma_type", "adenomyosis_type", "polyp_type"])
def test_uterine_finding_none_means_absent(name):
    raw = RawInput(age=30, **{name: None})
    assert getattr(raw, name).value == "none"


def test_hsg_result_none_stays_none():
    assert RawInput(age=30, hsg_result=None).hsg_result is None


@pytest.mark.parametrize("name", ["myoma_type", "adenomyosis_type", "polyp_type"])
def test_uterine_finding_none_runs_through_engine(name):
    raw = RawInput(age=30, **{name: None})
    assert anatomical_severity(raw) == 0.0
    outcome = EngineOrchestrator().run(raw)
    assert isinstance(outcome, OrchestrationSuccess)
    assert outcome.state.report.numeric_prognosis == 17.5


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("unilateral-obstruction", HsgResult.UNILATERAL),
        ("Bilateral-Obstruction", HsgResult.BILATERAL),
        ("bilateral_obstruction", HsgResult.BILATERAL),
        ("inconclusive", HsgResult.UNKNOWN),
    ],
)
def test_hsg_result_alternative_spellings(value, expected):
    assert RawInput(age=30, hsg_result=value).hsg_result is expected


def test_hsg_result_alias_from_dict():
    raw = RawInput.from_dict({"age": 30, "hsgResult": "unilateral-obstruction"})
    assert raw.hsg_result is HsgResult.UNILATERAL


def test_invalid_enum_value_raises():
    with pytest.raises(ValueError, match="Invalid polyp_type"):
        RawInput(age=30, polyp_type="huge")


@pytest.mark.parametrize("age", [0, -3])
def test_non_positive_age_raises(age):
    with pytest.raises(ValueError, match="age must be a positive number"):
        RawInput(age=age)


def test_endometriosis_grade_bounds():
    with pytest.raises(ValueError, match="endometriosis_grade"):
        RawInput(age=30, endometriosis_grade=5)


def test_negative_measurement_raises():
    with pytest.raises(ValueError, match="amh must be >= 0"):
        RawInput(age=30, amh=-1.0)


def test_from_dict_accepts_camel_case():
    raw = RawInput.from_dict(
        {
            "age": 33,
            "cycleDuration": 30,
            "hasPcos": True,
            "hsgResult": "bilateral",
            "hasOtb": False,
            "spermConcentration": 20,
            "pelvicSurgeriesNumber": 2,
            "somethingElse": "ignored",
        }
    )
    assert raw.cycle_length == 30
    assert raw.has_pcos is True
    assert raw.hsg_result is HsgResult.BILATERAL
    assert raw.sperm_concentration == 20
    assert raw.pelvic_surgeries == 2


def test_from_dict_pelvic_surgery_flag_false_means_zero():
    raw = RawInput.from_dict({"age": 30, "hasPelvicSurgery": False})
    assert raw.pelvic_surgeries == 0


def test_from_dict_requires_age():
    with pytest.raises(ValueError, match="age is required"):
        RawInput.from_dict({"bmi": 22})


def test_effective_bmi_from_height_and_weight():
    raw = RawInput(age=30, height_cm=160, weight_kg=64)
    assert raw.effective_bmi == pytest.approx(25.0)


def test_explicit_bmi_wins():
    raw = RawInput(age=30, bmi=21.0, height_cm=160, weight_kg=90)
    assert raw.effective_bmi == 21.0


def test_effective_homa_from_insulin_and_glucose():
    raw = RawInput(age=30, insulin=10.0, glucose=81.0)
    assert raw.effective_homa == pytest.approx(2.0)


def test_effective_homa_absent():
    assert RawInput(age=30, insulin=10.0).effective_homa is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("auto", EngineMode.AUTO),
        ("force-advanced", EngineMode.FORCE_ADVANCED),
        ("FORCE_ADVANCED", EngineMode.FORCE_ADVANCED),
        (EngineMode.WEIGHTED, EngineMode.WEIGHTED),
    ],
)
def test_engine_mode_parse(value, expected):
    assert EngineMode.parse(value) is expected


def test_engine_mode_parse_unknown():
    with pytest.raises(ValueError, match="Unknown engine mode"):
        EngineMode.parse("turbo")


def test_diagnostics_helpers():
    diagnostics = Diagnostics(comments={"amh": "Low"}, measured=frozenset({"amh"}))
    assert diagnostics.comment("amh") == "Low"
    assert diagnostics.comment("tsh") == ""
    assert diagnostics.is_measured("amh")
    assert not diagnostics.is_measured("tsh")
