"""Engine selection, fallback supervision and overlay layering."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass

from fertility_engine.complexity import ComplexityAnalyzer, ComplexityAssessment
from fertility_engine.config import EngineConfig
from fertility_engine.engines import AppliedRule, Engine, EngineRegistry, EngineResult
from fertility_engine.errors import DualEngineFailure, EngineExecutionError
from fertility_engine.factors import evaluate_factors
from fertility_engine.models import Diagnostics, EngineMode, EvaluationState, Factors, RawInput
from fertility_engine.overlay import OverlayRegistry, OverlayResult, WeightingOverlay
from fertility_engine.report import ReportGenerator

logger = logging.getLogger(__name__)

STANDARD = "standard"
ADVANCED = "advanced"


@dataclass(frozen=True)
class OrchestrationOptions:
    """Per-call switches.

    Parameters
    ----------
    debug : bool
        Attach the engine rule trace to the metrics and log it.
    enable_overlay : bool
        Allow the weighting overlay when the mode calls for it.
    """

    debug: bool = False
    enable_overlay: bool = True


@dataclass(frozen=True)
class EngineMetrics:
    """Transient record of one orchestration call.

    Parameters
    ----------
    engine_used : str
        ``"standard"`` or ``"advanced"``; the engine that produced the result.
    complexity_score : float | None
        Weighted complexity score, ``None`` in forced modes.
    reasoning : str
        Decision reasoning, including any fallback note.
    execution_time_ms : float
        Wall-clock duration of the call.
    fallback_used : bool
        Whether the alternate engine produced the result.
    overlay_applied : bool
        Whether the weighting overlay replaced the headline.
    trace : tuple[AppliedRule, ...]
        Rules fired by the engine; populated only in debug mode.
    """

    engine_used: str
    complexity_score: float | None
    reasoning: str
    execution_time_ms: float
    fallback_used: bool = False
    overlay_applied: bool = False
    trace: tuple[AppliedRule, ...] = ()


@dataclass(frozen=True)
class OrchestrationSuccess:
    """Evaluation produced, possibly through the fallback engine."""

    state: EvaluationState
    metrics: EngineMetrics
    overlay: OverlayResult | None = None

    ok = True


@dataclass(frozen=True)
class OrchestrationFailure:
    """Both engines failed; no report could be produced."""

    primary: EngineExecutionError
    fallback: EngineExecutionError
    reasoning: str
    execution_time_ms: float

    ok = False

    @property
    def message(self) -> str:
        return str(self.to_error())

    def to_error(self) -> DualEngineFailure:
        return DualEngineFailure(self.primary, self.fallback)


OrchestrationResult = OrchestrationSuccess | OrchestrationFailure


@dataclass(frozen=True)
class EngineDecision:
    """Which engine to run and whether to layer the overlay."""

    engine: str
    reasoning: str
    assessment: ComplexityAssessment | None = None
    use_overlay: bool = False


class EngineOrchestrator:
    """Choose, run and supervise the probability engines.

    Parameters
    ----------
    config : EngineConfig | None
        Thresholds and overlay settings.
    engines : Mapping[str, Engine] | None
        Engines keyed ``"standard"`` and ``"advanced"``. Defaults to the
        registered ``standard`` and ``interaction`` engines.
    overlay : WeightingOverlay | None
        Weighting overlay; created from the configured name by default.
    analyzer : ComplexityAnalyzer | None
    report_generator : ReportGenerator | None
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        engines: Mapping[str, Engine] | None = None,
        overlay: WeightingOverlay | None = None,
        analyzer: ComplexityAnalyzer | None = None,
        report_generator: ReportGenerator | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        if engines is None:
            engines = {STANDARD: EngineRegistry.create("standard"), ADVANCED: EngineRegistry.create("interaction")}
        missing = {STANDARD, ADVANCED} - set(engines)
        if missing:
            msg = f"engines must provide {', '.join(sorted(missing))}"
            raise ValueError(msg)
        self.engines = dict(engines)
        self._overlay = overlay
        self.analyzer = analyzer or ComplexityAnalyzer(self.config.complexity)
        self.report_generator = report_generator or ReportGenerator()

    @property
    def overlay(self) -> WeightingOverlay:
        if self._overlay is None:
            self._overlay = OverlayRegistry.create(self.config.orchestrator.overlay)
        return self._overlay

    def decide(self, raw: RawInput, mode: EngineMode | str, options: OrchestrationOptions) -> EngineDecision:
        """Select the engine for *raw* under *mode*.

        Forced modes never consult the complexity analyzer. Weighted mode
        selects its engine like automatic mode and always asks for the
        overlay.
        """
        mode = EngineMode.parse(mode)
        settings = self.config.orchestrator
        overlay_allowed = options.enable_overlay and settings.enable_overlay

        if mode is EngineMode.STANDARD:
            return EngineDecision(STANDARD, "Forced standard mode")
        if mode in (EngineMode.ADVANCED, EngineMode.FORCE_ADVANCED):
            return EngineDecision(ADVANCED, "Forced advanced mode")

        assessment = self.analyzer.analyze(raw)
        if assessment.requires_advanced_engine:
            engine, why = ADVANCED, "Advanced engine required"
        elif assessment.score < settings.low_threshold:
            engine, why = STANDARD, "Low complexity"
        else:
            engine, why = STANDARD, "Intermediate complexity, standard engine for performance preference"
        reasoning = f"{why} ({assessment.reasoning})"

        if mode is EngineMode.WEIGHTED:
            use_overlay = overlay_allowed
        else:
            use_overlay = overlay_allowed and assessment.score > settings.overlay_threshold
        return EngineDecision(engine, reasoning, assessment, use_overlay)

    def run(
        self,
        raw: RawInput,
        mode: EngineMode | str | None = None,
        options: OrchestrationOptions | None = None,
    ) -> OrchestrationResult:
        """Evaluate *raw*, falling back to the other engine once on failure.

        Parameters
        ----------
        raw : RawInput
            Clinical snapshot.
        mode : EngineMode | str | None
            Selection mode; the configured default when ``None``.
        options : OrchestrationOptions | None

        Returns
        -------
        OrchestrationSuccess | OrchestrationFailure
            Failure is returned only when both engines raised.
        """
        started = time.perf_counter()
        options = options or OrchestrationOptions()
        decision = self.decide(raw, mode or self.config.orchestrator.default_mode, options)
        logger.info("Engine decision: %s (%s)", decision.engine, decision.reasoning)

        factors, diagnostics = evaluate_factors(raw)
        reasoning = decision.reasoning
        engine_used = decision.engine
        fallback_used = False

        try:
            result = self._execute(decision.engine, raw, factors, diagnostics)
        except EngineExecutionError as primary_error:
            alternate = ADVANCED if decision.engine == STANDARD else STANDARD
            logger.warning("%s; falling back to %s engine", primary_error, alternate)
            try:
                result = self._execute(alternate, raw, factors, diagnostics)
            except EngineExecutionError as fallback_error:
                logger.error("Both engines failed: %s / %s", primary_error, fallback_error)
                return OrchestrationFailure(
                    primary=primary_error,
                    fallback=fallback_error,
                    reasoning=reasoning,
                    execution_time_ms=_elapsed_ms(started),
                )
            reasoning += f" | Fallback to {alternate} due to {decision.engine} error: {primary_error.cause}"
            engine_used = alternate
            fallback_used = True

        report = self.report_generator.generate(raw, factors, diagnostics, result.probability)

        overlay_result = None
        if decision.use_overlay:
            if result.blocked:
                reasoning += " | Overlay skipped: tubal ligation block"
            else:
                overlay_result = self.overlay.apply(result.factors, diagnostics)
                report = self.report_generator.apply_overlay(report, raw, overlay_result)
                reasoning += f" | Overlay {self.overlay.name} applied ({overlay_result.evidence_quality} evidence)"

        if options.debug:
            for rule in result.trace:
                logger.debug("Rule %s: %s (%s)", rule.name, rule.description, rule.effect)

        metrics = EngineMetrics(
            engine_used=engine_used,
            complexity_score=decision.assessment.score if decision.assessment else None,
            reasoning=reasoning,
            execution_time_ms=_elapsed_ms(started),
            fallback_used=fallback_used,
            overlay_applied=overlay_result is not None,
            trace=result.trace if options.debug else (),
        )
        state = EvaluationState(raw=raw, factors=result.factors, diagnostics=diagnostics, report=report)
        return OrchestrationSuccess(state=state, metrics=metrics, overlay=overlay_result)

    def evaluate(
        self,
        raw: RawInput,
        mode: EngineMode | str | None = None,
        options: OrchestrationOptions | None = None,
    ) -> OrchestrationSuccess:
        """Like :meth:`run`, but raise on dual-engine failure.

        Raises
        ------
        DualEngineFailure
            If both engines failed.
        """
        outcome = self.run(raw, mode, options)
        if isinstance(outcome, OrchestrationFailure):
            raise outcome.to_error()
        return outcome

    def _execute(self, name: str, raw: RawInput, factors: Factors, diagnostics: Diagnostics) -> EngineResult:
        engine = self.engines[name]
        try:
            return engine.calculate(raw, factors, diagnostics)
        except Exception as exc:
            raise EngineExecutionError(name, exc) from exc


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
