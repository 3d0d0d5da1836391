"""Turn a numeric prognosis, factors and diagnostics into a report."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from fertility_engine.engines.base import clamp_probability
from fertility_engine.models import (
    ClinicalFinding,
    Diagnostics,
    FactorKey,
    Factors,
    RawInput,
    Report,
    ReportCategory,
)
from fertility_engine.overlay.base import OverlayResult
from fertility_engine.report.content import ContentLibrary, PhraseBook, default_library, default_phrases

logger = logging.getLogger(__name__)

GOOD_THRESHOLD = 15.0
MODERATE_THRESHOLD = 5.0
BENCHMARK_MARGIN = 2.0

# (exclusive upper age bound, baseline %); older ages use BENCHMARK_FLOOR.
AGE_BENCHMARKS: tuple[tuple[int, float], ...] = (
    (30, 22.5),
    (35, 17.5),
    (38, 12.5),
    (41, 7.5),
)
BENCHMARK_FLOOR = 3.0

OVERLAY_FINDING_KEY = "overlay_evidence"


@dataclass(frozen=True)
class FindingContext:
    """Inputs a content resolver may inspect."""

    raw: RawInput
    factors: Factors
    diagnostics: Diagnostics

    def factor(self, key: str) -> float:
        return self.factors.get(key, 1.0)

    def comment(self, key: str) -> str:
        return self.diagnostics.comment(key)


@dataclass(frozen=True)
class ContentKey:
    """Rule content that is always the same key."""

    key: str

    def resolve(self, context: FindingContext) -> str | None:
        return self.key


@dataclass(frozen=True)
class ContentResolver:
    """Rule content chosen at report time from the finding context.

    The resolver may return ``None`` to skip the finding.
    """

    resolver: Callable[[FindingContext], str | None]

    def resolve(self, context: FindingContext) -> str | None:
        return self.resolver(context)


ContentRule = ContentKey | ContentResolver


@dataclass(frozen=True)
class FindingRule:
    """A factor whose impairment produces a finding."""

    factor: str
    content: ContentRule
    title: str


def _bmi_key(c: FindingContext) -> str:
    return "bmi_low" if "underweight" in c.comment(FactorKey.BMI.value).lower() else "bmi_high"


def _homa_key(c: FindingContext) -> str:
    return "homa_mild" if c.factor(FactorKey.HOMA.value) >= 0.85 else "homa_significant"


def _amh_key(c: FindingContext) -> str:
    comment = c.comment(FactorKey.AMH.value).lower()
    if comment.startswith("slightly"):
        return "amh_slightly_reduced"
    if comment.startswith("very low"):
        return "amh_very_low"
    return "amh_low"


def _cycle_key(c: FindingContext) -> str:
    return "cycle_mildly_irregular" if c.factor(FactorKey.CYCLE.value) >= 0.85 else "cycle_markedly_irregular"


def _tsh_key(c: FindingContext) -> str | None:
    tsh = c.raw.tsh
    if tsh is None:
        return None
    if tsh > 4.0:
        return "tsh_hypothyroid"
    if tsh < 0.5:
        return "tsh_suppressed"
    return "tsh_upper_limit"


def _prolactin_key(c: FindingContext) -> str:
    return "prolactin_significant" if (c.raw.prolactin or 0) > 50 else "prolactin_mild"


def _pcos_key(c: FindingContext) -> str:
    comment = c.comment(FactorKey.PCOS.value).lower()
    if comment.startswith("severe"):
        return "pcos_severe"
    if comment.startswith("moderate"):
        return "pcos_moderate"
    return "pcos_mild"


def _endometriosis_key(c: FindingContext) -> str:
    grade = c.raw.endometriosis_grade
    if grade <= 2:
        return "endometriosis_mild"
    return "endometriosis_moderate" if grade == 3 else "endometriosis_severe"


def _typed_key(prefix: str, field_name: str) -> Callable[[FindingContext], str | None]:
    def resolve(c: FindingContext) -> str | None:
        value = getattr(c.raw, field_name)
        return None if value is None else f"{prefix}_{value.value}"

    return resolve


def _surgery_key(c: FindingContext) -> str:
    return "pelvic_surgery_one" if c.raw.pelvic_surgeries == 1 else "pelvic_surgery_multiple"


def _infertility_key(c: FindingContext) -> str:
    years = c.raw.infertility_duration_years or 0
    return "infertility_moderate" if years < 5 else "infertility_prolonged"


def _male_key(c: FindingContext) -> str | None:
    raw = c.raw
    if raw.sperm_concentration is None:
        return None
    if raw.sperm_concentration == 0:
        return "male_azoospermia"
    if raw.sperm_concentration < 16:
        return "male_oligozoospermia"
    if raw.sperm_progressive_motility is not None and raw.sperm_progressive_motility < 30:
        return "male_asthenozoospermia"
    return "male_teratozoospermia"


FINDING_RULES: tuple[FindingRule, ...] = (
    FindingRule(FactorKey.TUBAL_LIGATION.value, ContentKey("tubal_ligation"), "Tubal ligation"),
    FindingRule(FactorKey.BMI.value, ContentResolver(_bmi_key), "Body-mass index"),
    FindingRule(FactorKey.HOMA.value, ContentResolver(_homa_key), "Insulin resistance"),
    FindingRule(FactorKey.AMH.value, ContentResolver(_amh_key), "Ovarian reserve"),
    FindingRule(FactorKey.CYCLE.value, ContentResolver(_cycle_key), "Menstrual cycle"),
    FindingRule(FactorKey.TSH.value, ContentResolver(_tsh_key), "Thyroid function"),
    FindingRule(FactorKey.PROLACTIN.value, ContentResolver(_prolactin_key), "Prolactin"),
    FindingRule(FactorKey.PCOS.value, ContentResolver(_pcos_key), "Polycystic ovary syndrome"),
    FindingRule(FactorKey.ENDOMETRIOSIS.value, ContentResolver(_endometriosis_key), "Endometriosis"),
    FindingRule(FactorKey.MYOMA.value, ContentResolver(_typed_key("myoma", "myoma_type")), "Uterine myoma"),
    FindingRule(FactorKey.POLYP.value, ContentResolver(_typed_key("polyp", "polyp_type")), "Endometrial polyp"),
    FindingRule(
        FactorKey.ADENOMYOSIS.value, ContentResolver(_typed_key("adenomyosis", "adenomyosis_type")), "Adenomyosis"
    ),
    FindingRule(FactorKey.HSG.value, ContentResolver(_typed_key("hsg", "hsg_result")), "Tubal patency (HSG)"),
    FindingRule(FactorKey.PELVIC_SURGERY.value, ContentResolver(_surgery_key), "Prior pelvic surgery"),
    FindingRule(FactorKey.INFERTILITY_DURATION.value, ContentResolver(_infertility_key), "Infertility duration"),
    FindingRule(FactorKey.MALE.value, ContentResolver(_male_key), "Male factor"),
)


def categorize(probability: float) -> ReportCategory:
    """Map a per-cycle probability (percent) to its report category."""
    if probability >= GOOD_THRESHOLD:
        return ReportCategory.GOOD
    if probability >= MODERATE_THRESHOLD:
        return ReportCategory.MODERATE
    return ReportCategory.LOW


def benchmark_for_age(age: float) -> float:
    """Average per-cycle probability for the age bracket of *age*."""
    for upper, value in AGE_BENCHMARKS:
        if age < upper:
            return value
    return BENCHMARK_FLOOR


def cumulative_probability(probability: float, cycles: int = 12) -> float:
    """Chance (percent) of at least one conception over *cycles* cycles."""
    p = clamp_probability(probability) / 100
    return (1 - (1 - p) ** cycles) * 100


class ReportGenerator:
    """Build categorized, explainable reports.

    Parameters
    ----------
    library : ContentLibrary | None
        Clinical content; the packaged library by default.
    phrases : PhraseBook | None
        Phrase templates; the packaged templates by default.
    rules : tuple[FindingRule, ...] | None
        Ordered finding rules.
    """

    def __init__(
        self,
        library: ContentLibrary | None = None,
        phrases: PhraseBook | None = None,
        rules: tuple[FindingRule, ...] | None = None,
    ) -> None:
        self.library = library or default_library()
        self.phrases = phrases or default_phrases()
        self.rules = FINDING_RULES if rules is None else rules

    def generate(self, raw: RawInput, factors: Factors, diagnostics: Diagnostics, probability: float) -> Report:
        """Assemble a report for *probability*.

        Parameters
        ----------
        raw : RawInput
            Clinical snapshot, used for the age benchmark and resolvers.
        factors : Factors
            Evaluated factors; a finding is emitted for each factor below 1.0.
        diagnostics : Diagnostics
            Evaluator diagnostics.
        probability : float
            Per-cycle probability from the selected engine.

        Returns
        -------
        Report
        """
        value = clamp_probability(probability)
        blocked = factors.get(FactorKey.TUBAL_LIGATION.value, 1.0) == 0.0
        category, emoji, phrase = self._headline(value, blocked)
        return Report(
            numeric_prognosis=value,
            category=category,
            emoji=emoji,
            phrase=phrase,
            benchmark_phrase=self.benchmark_phrase(raw.age, value, blocked),
            clinical_insights=self.findings(raw, factors, diagnostics),
        )

    def findings(self, raw: RawInput, factors: Factors, diagnostics: Diagnostics) -> tuple[ClinicalFinding, ...]:
        context = FindingContext(raw=raw, factors=factors, diagnostics=diagnostics)
        found: list[ClinicalFinding] = []
        for rule in self.rules:
            if context.factor(rule.factor) >= 1.0:
                continue
            key = rule.content.resolve(context)
            if key is None:
                continue
            entry = self.library.get(key)
            found.append(
                ClinicalFinding(
                    key=key,
                    title=rule.title,
                    explanation=entry.explanation,
                    recommendations=entry.recommendations,
                    sources=entry.sources,
                )
            )
        return tuple(found)

    def benchmark_phrase(self, age: int, probability: float, blocked: bool = False) -> str:
        if blocked:
            return self.phrases.render("benchmark.not_applicable")
        benchmark = benchmark_for_age(age)
        difference = probability - benchmark
        if difference > BENCHMARK_MARGIN:
            template = "benchmark.above"
        elif difference < -BENCHMARK_MARGIN:
            template = "benchmark.below"
        else:
            template = "benchmark.similar"
        return self.phrases.render(template, probability=f"{probability:.1f}", benchmark=f"{benchmark:.1f}")

    def apply_overlay(self, report: Report, raw: RawInput, overlay: OverlayResult) -> Report:
        """Replace the headline with the overlay result and append its finding."""
        value = clamp_probability(overlay.probability)
        category, emoji, phrase = self._headline(value, blocked=False)
        contributors = [f"{c.domain.replace('_', ' ')} ({c.impact * 100:.0f}%)" for c in overlay.top_contributors()]
        finding = ClinicalFinding(
            key=OVERLAY_FINDING_KEY,
            title=self.phrases.render("overlay.title"),
            explanation=self.phrases.render(
                "overlay.explanation",
                probability=f"{value:.1f}",
                confidence=f"{overlay.confidence * 100:.0f}",
                evidence_quality=overlay.evidence_quality,
                contributors=contributors,
            ),
        )
        return replace(
            report,
            numeric_prognosis=value,
            category=category,
            emoji=emoji,
            phrase=phrase,
            benchmark_phrase=self.benchmark_phrase(raw.age, value),
            clinical_insights=report.clinical_insights + (finding,),
        )

    def _headline(self, probability: float, blocked: bool) -> tuple[ReportCategory, str, str]:
        if blocked:
            return (
                ReportCategory.LOW,
                self.phrases.render("tubal_ligation.emoji"),
                self.phrases.render("tubal_ligation.phrase"),
            )
        category = categorize(probability)
        base = f"category.{category.value}"
        phrase = self.phrases.render(
            f"{base}.phrase",
            probability=f"{probability:.1f}",
            cumulative=f"{cumulative_probability(probability):.0f}",
        )
        return category, self.phrases.render(f"{base}.emoji"), phrase
