"""Evidence-weighted log-linear overlay."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fertility_engine.config import load_yaml
from fertility_engine.engines.base import BASE, clamp_probability, is_tubal_blocked
from fertility_engine.models import Diagnostics, Factors
from fertility_engine.overlay.base import FactorContribution, OverlayRegistry, OverlayResult, WeightingOverlay

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS_PATH = Path(__file__).parent / "evidence_weights.yaml"


@dataclass(frozen=True)
class DomainSpec:
    name: str
    factors: tuple[str, ...]
    weight: float
    confidence: float


@OverlayRegistry.register("evidence")
class EvidenceWeightedOverlay(WeightingOverlay):
    """Combine domain scores as a weighted geometric mean.

    ``probability = base * exp(sum(w_i * ln(s_i)))`` where ``s_i`` is the
    product of a domain's factors and weights are normalized to sum to 1.
    Any zero domain score gives zero. Confidence is the weighted mean of
    per-domain evidence confidence, discounted for unmeasured domains.

    Parameters
    ----------
    weights_path : str | Path | None
        YAML file with ``domains``, ``unmeasured_penalty``,
        ``evidence_levels`` and ``fallback_level``.
    """

    name = "evidence"

    def __init__(self, weights_path: str | Path | None = None) -> None:
        data = load_yaml(Path(weights_path) if weights_path else DEFAULT_WEIGHTS_PATH)
        domains_raw: dict[str, Any] = data.get("domains", {})
        if not domains_raw:
            msg = "Overlay weights define no domains"
            raise ValueError(msg)
        total = sum(float(d["weight"]) for d in domains_raw.values())
        if total <= 0:
            msg = "Overlay domain weights must sum to a positive value"
            raise ValueError(msg)
        self.domains = tuple(
            DomainSpec(
                name=name,
                factors=tuple(d["factors"]),
                weight=float(d["weight"]) / total,
                confidence=float(d["confidence"]),
            )
            for name, d in domains_raw.items()
        )
        self.unmeasured_penalty = float(data.get("unmeasured_penalty", 0.5))
        self.evidence_levels = tuple(
            (float(threshold), str(label))
            for threshold, label in sorted(data.get("evidence_levels", []), key=lambda x: -float(x[0]))
        )
        self.fallback_level = str(data.get("fallback_level", "Very Low"))

    def apply(self, factors: Factors, diagnostics: Diagnostics) -> OverlayResult:
        contributions: list[FactorContribution] = []
        log_sum = 0.0
        zeroed = is_tubal_blocked(factors)
        weighted_confidence = 0.0

        for domain in self.domains:
            score = math.prod(factors.get(key, 1.0) for key in domain.factors)
            measured = any(diagnostics.is_measured(key) for key in domain.factors)
            if score <= 0.0:
                zeroed = True
                impact = 1.0
            else:
                log_sum += domain.weight * math.log(score)
                impact = 1.0 - score**domain.weight
            confidence = domain.confidence if measured else domain.confidence * self.unmeasured_penalty
            weighted_confidence += domain.weight * confidence
            contributions.append(FactorContribution(domain.name, score, domain.weight, impact, measured))

        probability = 0.0 if zeroed else clamp_probability(factors.get(BASE, 0.0) * math.exp(log_sum))
        contributions.sort(key=lambda c: c.impact, reverse=True)
        evidence = self.evidence_label(weighted_confidence)
        logger.debug("Evidence overlay: %.2f%% (confidence %.2f, %s)", probability, weighted_confidence, evidence)
        return OverlayResult(
            probability=probability,
            confidence=weighted_confidence,
            evidence_quality=evidence,
            contributions=tuple(contributions),
        )

    def evidence_label(self, confidence: float) -> str:
        for threshold, label in self.evidence_levels:
            if confidence >= threshold:
                return label
        return self.fallback_level
