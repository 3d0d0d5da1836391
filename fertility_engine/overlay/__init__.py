"""Pluggable weighting overlays."""

from fertility_engine.overlay.base import FactorContribution, OverlayRegistry, OverlayResult, WeightingOverlay

__all__ = ["FactorContribution", "OverlayRegistry", "OverlayResult", "WeightingOverlay"]


def _auto_register() -> None:
    """Import built-in overlays, triggering their registration decorators."""
    import importlib

    importlib.import_module("fertility_engine.overlay.evidence")


_auto_register()
