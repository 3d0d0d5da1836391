"""Exception hierarchy for the fertility engine."""

from __future__ import annotations


class FertilityEngineError(Exception):
    """Base class for all engine errors."""


class EngineExecutionError(FertilityEngineError):
    """A single computation engine failed while producing a probability.

    Parameters
    ----------
    engine : str
        Name of the engine that failed.
    cause : BaseException
        The underlying exception.
    """

    def __init__(self, engine: str, cause: BaseException) -> None:
        self.engine = engine
        self.cause = cause
        super().__init__(f"{engine} engine failed: {cause}")


class DualEngineFailure(FertilityEngineError):
    """Both the selected engine and its fallback failed.

    The message carries both underlying error messages so the failing
    paths can be told apart without inspecting ``primary`` / ``fallback``.

    Parameters
    ----------
    primary : EngineExecutionError
        Failure of the originally selected engine.
    fallback : EngineExecutionError
        Failure of the alternate engine.
    """

    def __init__(self, primary: EngineExecutionError, fallback: EngineExecutionError) -> None:
        self.primary = primary
        self.fallback = fallback
        super().__init__(f"Both engines failed. Primary: {primary}. Fallback: {fallback}")
