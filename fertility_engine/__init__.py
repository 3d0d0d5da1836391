"""Fertility probability decision engine."""

from fertility_engine.api import evaluate, load_raw_input
from fertility_engine.complexity import ComplexityAnalyzer, ComplexityAssessment
from fertility_engine.config import EngineConfig, load_config
from fertility_engine.errors import DualEngineFailure, EngineExecutionError, FertilityEngineError
from fertility_engine.factors import evaluate_factors
from fertility_engine.models import (
    AdenomyosisType,
    ClinicalFinding,
    Diagnostics,
    EngineMode,
    EvaluationState,
    FactorKey,
    HsgResult,
    MyomaType,
    PolypType,
    RawInput,
    Report,
    ReportCategory,
)
from fertility_engine.orchestrator import (
    EngineMetrics,
    EngineOrchestrator,
    OrchestrationFailure,
    OrchestrationOptions,
    OrchestrationSuccess,
)
from fertility_engine.simulation import compute_prognosis, simulate_all_improvements, simulate_factor

__all__ = [
    "AdenomyosisType",
    "ClinicalFinding",
    "ComplexityAnalyzer",
    "ComplexityAssessment",
    "Diagnostics",
    "DualEngineFailure",
    "EngineConfig",
    "EngineExecutionError",
    "EngineMetrics",
    "EngineMode",
    "EngineOrchestrator",
    "EvaluationState",
    "FactorKey",
    "FertilityEngineError",
    "HsgResult",
    "MyomaType",
    "OrchestrationFailure",
    "OrchestrationOptions",
    "OrchestrationSuccess",
    "PolypType",
    "RawInput",
    "Report",
    "ReportCategory",
    "compute_prognosis",
    "evaluate",
    "evaluate_factors",
    "load_config",
    "load_raw_input",
    "simulate_all_improvements",
    "simulate_factor",
]
