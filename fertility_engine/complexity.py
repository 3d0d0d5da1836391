"""Heuristic complexity scoring of a raw clinical snapshot.

Scores are computed from :class:`RawInput` directly, never from factors, so
that engine selection does not depend on either engine's evaluator output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fertility_engine.config import ComplexityConfig
from fertility_engine.models import AdenomyosisType, HsgResult, MyomaType, RawInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplexityAssessment:
    """Result of :meth:`ComplexityAnalyzer.analyze`.

    Parameters
    ----------
    age, hormonal, anatomical, male, interactions : float
        Dimension sub-scores in [0, 1].
    score : float
        Weighted sum of the sub-scores.
    requires_advanced_engine : bool
        Whether the nonlinear engine is recommended.
    reasoning : str
        Triggered conditions joined with ``" | "``.
    """

    age: float
    hormonal: float
    anatomical: float
    male: float
    interactions: float
    score: float
    requires_advanced_engine: bool
    reasoning: str


def _lt(value: float | None, threshold: float) -> bool:
    return value is not None and value < threshold


def _ge(value: float | None, threshold: float) -> bool:
    return value is not None and value >= threshold


def _gt(value: float | None, threshold: float) -> bool:
    return value is not None and value > threshold


def age_severity(raw: RawInput) -> float:
    if raw.age >= 38:
        return 0.8
    if raw.age >= 35:
        return 0.4
    return 0.1


def hormonal_severity(raw: RawInput) -> float:
    score = 0.0
    if _lt(raw.amh, 1.0):
        score += 0.3
    if _gt(raw.tsh, 4.0) or _lt(raw.tsh, 0.5):
        score += 0.2
    if _gt(raw.prolactin, 25):
        score += 0.2
    if raw.has_pcos:
        score += 0.4
    return min(score, 1.0)


def anatomical_severity(raw: RawInput) -> float:
    score = 0.0
    if raw.endometriosis_grade >= 3:
        score += 0.5
    if raw.myoma_type is not MyomaType.NONE:
        score += 0.3
    if raw.adenomyosis_type is not AdenomyosisType.NONE:
        score += 0.4
    if raw.hsg_result is not None and raw.hsg_result not in (HsgResult.NORMAL, HsgResult.UNKNOWN):
        score += 0.3
    if raw.has_tubal_ligation:
        score += 0.8
    return min(score, 1.0)


def male_severity(raw: RawInput) -> float:
    score = 0.0
    if _lt(raw.sperm_concentration, 16):
        score += 0.3
    if _lt(raw.sperm_progressive_motility, 30):
        score += 0.3
    if _lt(raw.sperm_normal_morphology, 2):
        score += 0.4
    return min(score, 1.0)


def interaction_severity(raw: RawInput) -> float:
    """Cross-dimension combinations known to interact nonlinearly."""
    score = 0.0
    if raw.age >= 38 and _lt(raw.amh, 0.8):
        score += 0.6
    if raw.endometriosis_grade >= 3 and (
        _lt(raw.sperm_concentration, 16) or _lt(raw.sperm_progressive_motility, 30)
    ):
        score += 0.7
    if raw.has_pcos and _ge(raw.effective_bmi, 30):
        score += 0.4
    return min(score, 1.0)


class ComplexityAnalyzer:
    """Score clinical complexity and recommend an engine.

    Parameters
    ----------
    config : ComplexityConfig | None
        Thresholds and dimension weights. Defaults apply when ``None``.
    """

    def __init__(self, config: ComplexityConfig | None = None) -> None:
        self.config = config or ComplexityConfig()

    def analyze(self, raw: RawInput) -> ComplexityAssessment:
        """Compute the weighted complexity score for *raw*.

        Parameters
        ----------
        raw : RawInput
            Clinical snapshot.

        Returns
        -------
        ComplexityAssessment
        """
        subscores = {
            "age": age_severity(raw),
            "hormonal": hormonal_severity(raw),
            "anatomical": anatomical_severity(raw),
            "male": male_severity(raw),
            "interactions": interaction_severity(raw),
        }
        weights = self.config.weights
        score = sum(subscores[name] * weights[name] for name in subscores)

        severe_endometriosis = raw.endometriosis_grade >= 3
        high_interactions = subscores["interactions"] > self.config.interaction_threshold
        requires_advanced = (
            score >= self.config.advanced_threshold
            or high_interactions
            or raw.has_tubal_ligation
            or severe_endometriosis
        )

        parts = [f"Score: {score:.2f}"]
        if high_interactions:
            parts.append("High interactions detected")
        if raw.has_tubal_ligation:
            parts.append("Tubal ligation present")
        if severe_endometriosis:
            parts.append("Severe endometriosis")
        if subscores["hormonal"] > 0.5:
            parts.append("Complex hormonal profile")
        reasoning = " | ".join(parts)

        logger.debug("Complexity %s (advanced=%s)", reasoning, requires_advanced)
        return ComplexityAssessment(
            score=score,
            requires_advanced_engine=requires_advanced,
            reasoning=reasoning,
            **subscores,
        )
