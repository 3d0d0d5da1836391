"""Unified configuration for engine selection and the weighting overlay."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from fertility_engine.models import EngineMode

DEFAULT_WEIGHTS: dict[str, float] = {
    "age": 0.20,
    "hormonal": 0.25,
    "anatomical": 0.25,
    "male": 0.15,
    "interactions": 0.15,
}

_TRUE = frozenset({"1", "true", "yes", "on"})


@dataclass
class ComplexityConfig:
    """Complexity scoring thresholds.

    Parameters
    ----------
    advanced_threshold : float
        Weighted score at or above which the advanced engine is required.
    interaction_threshold : float
        Interaction sub-score above which the advanced engine is required.
    weights : dict[str, float]
        Dimension weights; must cover all five dimensions and sum to 1.
    """

    advanced_threshold: float = 0.4
    interaction_threshold: float = 0.3
    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))

    def __post_init__(self) -> None:
        for name in ("advanced_threshold", "interaction_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                msg = f"{name} must be in [0, 1], got {value}"
                raise ValueError(msg)
        missing = set(DEFAULT_WEIGHTS) - set(self.weights)
        if missing:
            msg = f"weights missing dimensions: {', '.join(sorted(missing))}"
            raise ValueError(msg)
        if abs(sum(self.weights.values()) - 1.0) > 1e-6:
            msg = f"weights must sum to 1, got {sum(self.weights.values()):.4f}"
            raise ValueError(msg)


@dataclass
class OrchestratorConfig:
    """Engine selection settings.

    Parameters
    ----------
    default_mode : str
        Mode used when a caller does not request one.
    low_threshold : float
        Complexity score below which the standard engine is chosen outright.
    overlay_threshold : float
        Complexity score above which automatic mode layers the overlay.
    enable_overlay : bool
        Master switch for the weighting overlay.
    overlay : str
        Name of a registered overlay.
    """

    default_mode: str = EngineMode.AUTO.value
    low_threshold: float = 0.3
    overlay_threshold: float = 0.7
    enable_overlay: bool = True
    overlay: str = "evidence"

    def __post_init__(self) -> None:
        self.default_mode = EngineMode.parse(self.default_mode).value
        for name in ("low_threshold", "overlay_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                msg = f"{name} must be in [0, 1], got {value}"
                raise ValueError(msg)
        if not self.overlay:
            msg = "overlay must be a non-empty string"
            raise ValueError(msg)


@dataclass
class EngineConfig:
    """Top-level engine configuration."""

    complexity: ComplexityConfig = field(default_factory=ComplexityConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)


def load_config(source: str | Path | dict[str, Any] | None = None) -> EngineConfig:
    """Load an EngineConfig from a YAML file, dict, or environment variables.

    Environment variables ``FERTILITY_ENGINE_MODE``,
    ``FERTILITY_ENGINE_OVERLAY``, ``FERTILITY_ENGINE_OVERLAY_THRESHOLD`` and
    ``FERTILITY_ENGINE_ENABLE_OVERLAY`` take precedence over *source*.

    Parameters
    ----------
    source : str | Path | dict | None
        A path to a YAML file, a raw dict, or ``None`` to use only
        environment variable overrides on defaults.

    Returns
    -------
    EngineConfig
    """
    raw: dict[str, Any] = {}

    if isinstance(source, dict):
        raw = source
    elif source is not None:
        path = Path(source)
        if path.is_file():
            raw = load_yaml(path)

    complexity_raw = raw.get("complexity", {})
    complexity = ComplexityConfig(
        advanced_threshold=float(complexity_raw.get("advanced_threshold", 0.4)),
        interaction_threshold=float(complexity_raw.get("interaction_threshold", 0.3)),
        weights={**DEFAULT_WEIGHTS, **complexity_raw.get("weights", {})},
    )

    orch_raw = raw.get("orchestrator", {})
    enable_env = os.environ.get("FERTILITY_ENGINE_ENABLE_OVERLAY")
    orchestrator = OrchestratorConfig(
        default_mode=os.environ.get("FERTILITY_ENGINE_MODE", orch_raw.get("default_mode", EngineMode.AUTO.value)),
        low_threshold=float(orch_raw.get("low_threshold", 0.3)),
        overlay_threshold=float(
            os.environ.get("FERTILITY_ENGINE_OVERLAY_THRESHOLD", orch_raw.get("overlay_threshold", 0.7))
        ),
        enable_overlay=(
            enable_env.strip().lower() in _TRUE
            if enable_env is not None
            else bool(orch_raw.get("enable_overlay", True))
        ),
        overlay=os.environ.get("FERTILITY_ENGINE_OVERLAY", orch_raw.get("overlay", "evidence")),
    )

    return EngineConfig(complexity=complexity, orchestrator=orchestrator)


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping; an empty file yields an empty dict."""
    with open(path, encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}
