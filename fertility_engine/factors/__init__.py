"""Factor evaluators and the evaluation fold."""

from fertility_engine.factors.base import (
    FactorEvaluatorRegistry,
    FactorUpdate,
    evaluate_factors,
    fold_updates,
    freeze,
)

__all__ = ["FactorEvaluatorRegistry", "FactorUpdate", "evaluate_factors", "fold_updates", "freeze"]

# Auto-register built-in evaluators on import.


def _auto_register() -> None:
    """Import built-in evaluators, triggering their registration decorators."""
    import importlib

    importlib.import_module("fertility_engine.factors.evaluators")


_auto_register()
