"""Computation engines and registry."""

from fertility_engine.engines.base import (
    AppliedRule,
    Engine,
    EngineRegistry,
    EngineResult,
    EngineState,
    clamp_probability,
    multiplier_product,
)

__all__ = [
    "AppliedRule",
    "Engine",
    "EngineRegistry",
    "EngineResult",
    "EngineState",
    "clamp_probability",
    "multiplier_product",
]

# Auto-register built-in engines on import.


def _auto_register() -> None:
    """Import built-in engines, triggering their registration decorators."""
    import importlib

    for mod in ("standard", "interaction"):
        importlib.import_module(f"fertility_engine.engines.{mod}")


_auto_register()
