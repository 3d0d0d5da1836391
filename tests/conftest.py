"""Shared fixtures for engine tests."""

import pytest

from fertility_engine.models import HsgResult, RawInput


@pytest.fixture()
def healthy_fields():
    """Complete snapshot with every factor at its optimum."""
    return {
        "age": 28,
        "bmi": 22.0,
        "cycle_length": 28,
        "amh": 3.0,
        "prolactin": 10.0,
        "tsh": 1.5,
        "homa_ir": 1.2,
        "hsg_result": HsgResult.NORMAL,
        "sperm_concentration": 50.0,
        "sperm_progressive_motility": 45.0,
        "sperm_normal_morphology": 6.0,
        "infertility_duration_years": 1,
        "pelvic_surgeries": 0,
    }


@pytest.fixture()
def healthy_raw(healthy_fields):
    return RawInput(**healthy_fields)


@pytest.fixture()
def make_raw(healthy_fields):
    """Factory: healthy snapshot with selected fields overridden."""

    def _make(**overrides):
        return RawInput(**{**healthy_fields, **overrides})

    return _make


@pytest.fixture()
def complex_raw():
    """Snapshot whose complexity score exceeds 0.7."""
    return RawInput(
        age=40,
        amh=0.5,
        tsh=5.0,
        prolactin=30.0,
        has_pcos=True,
        endometriosis_grade=3,
        myoma_type="subserosal",
        adenomyosis_type="focal",
        sperm_concentration=10.0,
        sperm_progressive_motility=20.0,
        sperm_normal_morphology=1.0,
    )
