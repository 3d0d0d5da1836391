"""Tests for the top-level entry points."""

import json

import pytest
import yaml

import fertility_engine
from fertility_engine.api import evaluate, load_raw_input
from fertility_engine.config import EngineConfig, OrchestratorConfig
from fertility_engine.models import RawInput, ReportCategory

SNAPSHOT = {
    "age": 33,
    "bmi": 23.0,
    "cycleDuration": 29,
    "amh": 2.5,
    "hasPelvicSurgery": False,
}


def test_load_raw_input_passthrough(healthy_raw):
    assert load_raw_input(healthy_raw) is healthy_raw


def test_load_raw_input_from_mapping():
    raw = load_raw_input(SNAPSHOT)
    assert raw.cycle_length == 29
    assert raw.pelvic_surgeries == 0


def test_load_raw_input_from_json(tmp_path):
    path = tmp_path / "patient.json"
    path.write_text(json.dumps(SNAPSHOT))
    assert load_raw_input(path) == RawInput.from_dict(SNAPSHOT)


@pytest.mark.parametrize("suffix", [".yaml", ".yml"])
def test_load_raw_input_from_yaml(tmp_path, suffix):
    path = tmp_path / f"patient{suffix}"
    path.write_text(yaml.safe_dump(SNAPSHOT))
    assert load_raw_input(str(path)).amh == 2.5


def test_load_raw_input_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Input file not found"):
        load_raw_input(tmp_path / "nobody.json")


def test_load_raw_input_unsupported_suffix(tmp_path):
    path = tmp_path / "patient.txt"
    path.write_text("age: 30")
    with pytest.raises(ValueError, match="Unsupported input format"):
        load_raw_input(path)


def test_load_raw_input_requires_mapping(tmp_path):
    path = tmp_path / "patient.json"
    path.write_text("[1, 2, 3]")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_raw_input(path)


def test_load_raw_input_requires_age():
    with pytest.raises(ValueError, match="age is required"):
        load_raw_input({"bmi": 22.0})


def test_evaluate_end_to_end():
    outcome = evaluate(SNAPSHOT)
    assert outcome.ok
    assert outcome.metrics.engine_used == "standard"
    assert outcome.state.report.numeric_prognosis == 17.5
    assert outcome.state.report.category is ReportCategory.GOOD


def test_evaluate_with_mode_and_config(healthy_raw):
    config = EngineConfig(orchestrator=OrchestratorConfig(default_mode="standard"))
    assert evaluate(healthy_raw, config=config).metrics.engine_used == "standard"
    assert evaluate(healthy_raw, mode="advanced", config=config).metrics.engine_used == "advanced"


def test_evaluate_with_config_dict(healthy_raw):
    outcome = evaluate(healthy_raw, config={"orchestrator": {"default_mode": "force-advanced"}})
    assert outcome.metrics.engine_used == "advanced"


def test_package_exports():
    assert fertility_engine.evaluate is evaluate
    assert "EngineOrchestrator" in fertility_engine.__all__
