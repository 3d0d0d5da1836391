"""Data models shared across the fertility engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Any


class MyomaType(Enum):
    """Uterine myoma classification."""

    NONE = "none"
    SUBMUCOSAL = "submucosal"
    INTRAMURAL_LARGE = "intramural_large"
    SUBSEROSAL = "subserosal"


class AdenomyosisType(Enum):
    """Adenomyosis extent."""

    NONE = "none"
    FOCAL = "focal"
    DIFFUSE = "diffuse"


class PolypType(Enum):
    """Endometrial polyp classification."""

    NONE = "none"
    SMALL = "small"
    LARGE = "large"
    OSTIUM = "ostium"


class HsgResult(Enum):
    """Tubal patency test (hysterosalpingography) outcome."""

    NORMAL = "normal"
    UNILATERAL = "unilateral"
    BILATERAL = "bilateral"
    MALFORMATION = "malformation"
    UNKNOWN = "unknown"


class FactorKey(str, Enum):
    """Clinical dimensions carried in a factors map."""

    BASE_AGE_PROBABILITY = "base_age_probability"
    BMI = "bmi"
    CYCLE = "cycle"
    PCOS = "pcos"
    ENDOMETRIOSIS = "endometriosis"
    MYOMA = "myoma"
    ADENOMYOSIS = "adenomyosis"
    POLYP = "polyp"
    HSG = "hsg"
    TUBAL_LIGATION = "tubal_ligation"
    AMH = "amh"
    PROLACTIN = "prolactin"
    TSH = "tsh"
    HOMA = "homa"
    MALE = "male"
    INFERTILITY_DURATION = "infertility_duration"
    PELVIC_SURGERY = "pelvic_surgery"


# Factors that never take part in the multiplicative product.
NON_MULTIPLIER_KEYS = frozenset({FactorKey.BASE_AGE_PROBABILITY.value, FactorKey.TUBAL_LIGATION.value})

Factors = Mapping[str, float]


class EngineMode(Enum):
    """Engine selection modes understood by the orchestrator."""

    AUTO = "auto"
    STANDARD = "standard"
    ADVANCED = "advanced"
    FORCE_ADVANCED = "force_advanced"
    WEIGHTED = "weighted"

    @classmethod
    def parse(cls, value: EngineMode | str) -> EngineMode:
        """Coerce a mode name (``force-advanced`` and ``force_advanced`` alike).

        Raises
        ------
        ValueError
            If *value* names no known mode.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            known = ", ".join(m.value for m in cls)
            msg = f"Unknown engine mode {value!r}. Expected one of: {known}"
            raise ValueError(msg) from None


class ReportCategory(Enum):
    """Ordered prognosis categories, best first."""

    GOOD = "good"
    MODERATE = "moderate"
    LOW = "low"


# camelCase spellings accepted by RawInput.from_dict.
_FIELD_ALIASES: dict[str, str] = {
    "heightCm": "height_cm",
    "height": "height_cm",
    "weightKg": "weight_kg",
    "weight": "weight_kg",
    "cycleDuration": "cycle_length",
    "cycleLength": "cycle_length",
    "hasPcos": "has_pcos",
    "endometriosisGrade": "endometriosis_grade",
    "myomaType": "myoma_type",
    "adenomyosisType": "adenomyosis_type",
    "polypType": "polyp_type",
    "hsgResult": "hsg_result",
    "hasOtb": "has_tubal_ligation",
    "hasTubalLigation": "has_tubal_ligation",
    "tpoAbPositive": "tpo_ab_positive",
    "homaIr": "homa_ir",
    "spermConcentration": "sperm_concentration",
    "spermProgressiveMotility": "sperm_progressive_motility",
    "spermNormalMorphology": "sperm_normal_morphology",
    "infertilityDuration": "infertility_duration_years",
    "infertilityDurationYears": "infertility_duration_years",
    "hasPelvicSurgery": "has_pelvic_surgery",
    "pelvicSurgeriesNumber": "pelvic_surgeries",
    "pelvicSurgeries": "pelvic_surgeries",
}

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "myoma_type": MyomaType,
    "adenomyosis_type": AdenomyosisType,
    "polyp_type": PolypType,
    "hsg_result": HsgResult,
}

# Alternative spellings of categorical values, per field.
_VALUE_ALIASES: dict[str, dict[str, str]] = {
    "hsg_result": {
        "unilateral-obstruction": "unilateral",
        "unilateral_obstruction": "unilateral",
        "bilateral-obstruction": "bilateral",
        "bilateral_obstruction": "bilateral",
        "inconclusive": "unknown",
    },
}


@dataclass(frozen=True)
class RawInput:
    """Immutable clinical snapshot submitted to the engine.

    Every numeric field except ``age`` may be ``None``; absent values are
    handled by the factor evaluators with a neutral multiplier.

    Parameters
    ----------
    age : int
        Age of the patient in years.
    height_cm, weight_kg : float | None
        Used to derive the body-mass index when ``bmi`` is not given.
    bmi : float | None
        Body-mass index in kg/m².
    cycle_length : float | None
        Menstrual cycle length in days.
    has_pcos : bool
        Polycystic ovary syndrome diagnosis.
    endometriosis_grade : int
        ASRM grade, 0 (absent) to 4.
    myoma_type, adenomyosis_type, polyp_type : Enum
        Uterine findings, ``NONE`` when absent.
    hsg_result : HsgResult | None
        Tubal patency result, ``None`` when not performed.
    has_tubal_ligation : bool
        Prior bilateral tubal ligation.
    amh : float | None
        Anti-Müllerian hormone in ng/mL.
    prolactin : float | None
        Serum prolactin in ng/mL.
    tsh : float | None
        Thyroid-stimulating hormone in mIU/L.
    tpo_ab_positive : bool
        Thyroid peroxidase antibodies detected.
    homa_ir : float | None
        HOMA-IR index; derived from ``insulin`` and ``glucose`` when absent.
    insulin, glucose : float | None
        Fasting insulin (µU/mL) and glucose (mg/dL).
    sperm_concentration : float | None
        Million per mL.
    sperm_progressive_motility, sperm_normal_morphology : float | None
        Percentages.
    infertility_duration_years : float | None
        Time trying to conceive.
    pelvic_surgeries : int | None
        Number of prior pelvic surgeries.
    """

    age: int
    height_cm: float | None = None
    weight_kg: float | None = None
    bmi: float | None = None
    cycle_length: float | None = None
    has_pcos: bool = False
    endometriosis_grade: int = 0
    myoma_type: MyomaType = MyomaType.NONE
    adenomyosis_type: AdenomyosisType = AdenomyosisType.NONE
    polyp_type: PolypType = PolypType.NONE
    hsg_result: HsgResult | None = None
    has_tubal_ligation: bool = False
    amh: float | None = None
    prolactin: float | None = None
    tsh: float | None = None
    tpo_ab_positive: bool = False
    homa_ir: float | None = None
    insulin: float | None = None
    glucose: float | None = None
    sperm_concentration: float | None = None
    sperm_progressive_motility: float | None = None
    sperm_normal_morphology: float | None = None
    infertility_duration_years: float | None = None
    pelvic_surgeries: int | None = None

    def __post_init__(self) -> None:
        if self.age is None or self.age <= 0:
            msg = f"age must be a positive number, got {self.age!r}"
            raise ValueError(msg)
        if not 0 <= self.endometriosis_grade <= 4:
            msg = f"endometriosis_grade must be between 0 and 4, got {self.endometriosis_grade}"
            raise ValueError(msg)
        for name, enum_type in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if isinstance(value, enum_type):
                continue
            if value is None:
                # Only the HSG result distinguishes "not done" from a finding.
                if name != "hsg_result":
                    object.__setattr__(self, name, enum_type("none"))
                continue
            normalized = str(value).strip().lower()
            normalized = _VALUE_ALIASES.get(name, {}).get(normalized, normalized)
            try:
                object.__setattr__(self, name, enum_type(normalized))
            except ValueError:
                known = ", ".join(m.value for m in enum_type)
                msg = f"Invalid {name} {value!r}. Expected one of: {known}"
                raise ValueError(msg) from None
        for name in ("bmi", "cycle_length", "amh", "prolactin", "tsh", "homa_ir", "pelvic_surgeries"):
            value = getattr(self, name)
            if value is not None and value < 0:
                msg = f"{name} must be >= 0, got {value}"
                raise ValueError(msg)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RawInput:
        """Build a RawInput from a mapping with snake_case or camelCase keys.

        Unknown keys are ignored. ``hasPelvicSurgery: false`` maps to zero
        surgeries when no count is given.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        surgery_flag = None
        for key, value in data.items():
            name = _FIELD_ALIASES.get(key, key)
            if name == "has_pelvic_surgery":
                surgery_flag = value
            elif name in known and value is not None:
                kwargs[name] = value
        if surgery_flag is False and "pelvic_surgeries" not in kwargs:
            kwargs["pelvic_surgeries"] = 0
        if "age" not in kwargs:
            msg = "age is required"
            raise ValueError(msg)
        return cls(**kwargs)

    @property
    def effective_bmi(self) -> float | None:
        """BMI as given, or derived from height and weight."""
        if self.bmi is not None:
            return self.bmi
        if self.height_cm and self.weight_kg:
            meters = self.height_cm / 100
            return self.weight_kg / (meters * meters)
        return None

    @property
    def effective_homa(self) -> float | None:
        """HOMA-IR as given, or ``insulin * glucose / 405``."""
        if self.homa_ir is not None:
            return self.homa_ir
        if self.insulin is not None and self.glucose is not None:
            return self.insulin * self.glucose / 405
        return None


@dataclass(frozen=True)
class Diagnostics:
    """Textual interpretation of each factor.

    Diagnostics never feed back into the numeric result.

    Parameters
    ----------
    comments : Mapping[str, str]
        Interpretation per factor key.
    missing_data : tuple[str, ...]
        Raw fields that were absent, in evaluation order.
    measured : frozenset[str]
        Factor keys computed from an actual clinical value rather than a
        neutral default.
    """

    comments: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    missing_data: tuple[str, ...] = ()
    measured: frozenset[str] = frozenset()

    def comment(self, key: str) -> str:
        return self.comments.get(key, "")

    def is_measured(self, key: str) -> bool:
        return key in self.measured


@dataclass(frozen=True)
class ClinicalFinding:
    """One explained clinical finding in a report."""

    key: str
    title: str
    explanation: str
    recommendations: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class Report:
    """Presentation-ready prognosis.

    Parameters
    ----------
    numeric_prognosis : float
        Per-cycle probability in percent, clamped to [0, 100].
    category : ReportCategory
        Threshold category of ``numeric_prognosis``.
    emoji : str
        Traffic-light marker for the category.
    phrase : str
        Short narrative of the result.
    benchmark_phrase : str
        Comparison against the age-bracket baseline.
    clinical_insights : tuple[ClinicalFinding, ...]
        Ordered findings for impaired factors.
    """

    numeric_prognosis: float
    category: ReportCategory
    emoji: str
    phrase: str
    benchmark_phrase: str
    clinical_insights: tuple[ClinicalFinding, ...] = ()


@dataclass(frozen=True)
class EvaluationState:
    """Aggregate result of one evaluation call."""

    raw: RawInput
    factors: Factors
    diagnostics: Diagnostics
    report: Report
