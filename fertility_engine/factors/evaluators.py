"""Built-in factor evaluators, one per clinical dimension.

Each evaluator is a pure function of :class:`RawInput` returning a
:class:`FactorUpdate`. Absent inputs produce the neutral multiplier 1.0 and
are listed in ``missing``; no evaluator raises on missing data.
"""

from __future__ import annotations

from fertility_engine.factors.base import FactorEvaluatorRegistry, FactorUpdate
from fertility_engine.models import AdenomyosisType, FactorKey, HsgResult, MyomaType, PolypType, RawInput

BASE = FactorKey.BASE_AGE_PROBABILITY.value
BMI = FactorKey.BMI.value
CYCLE = FactorKey.CYCLE.value
PCOS = FactorKey.PCOS.value
ENDOMETRIOSIS = FactorKey.ENDOMETRIOSIS.value
MYOMA = FactorKey.MYOMA.value
ADENOMYOSIS = FactorKey.ADENOMYOSIS.value
POLYP = FactorKey.POLYP.value
HSG = FactorKey.HSG.value
TUBAL = FactorKey.TUBAL_LIGATION.value
AMH = FactorKey.AMH.value
PROLACTIN = FactorKey.PROLACTIN.value
TSH = FactorKey.TSH.value
HOMA = FactorKey.HOMA.value
MALE = FactorKey.MALE.value
INFERTILITY = FactorKey.INFERTILITY_DURATION.value
SURGERY = FactorKey.PELVIC_SURGERY.value

# (exclusive upper age bound, baseline monthly probability %, comment)
AGE_BASELINE: tuple[tuple[int, float, str], ...] = (
    (30, 22.5, "Optimal reproductive age"),
    (35, 17.5, "Slight age-related decline in fertility"),
    (38, 12.5, "Moderate age-related decline in fertility"),
    (41, 7.5, "Marked age-related decline in fertility"),
    (43, 3.5, "Severe age-related decline in fertility"),
)
AGE_FLOOR = (1.0, "Very severe age-related decline in fertility")

MYOMA_FACTORS: dict[MyomaType, tuple[float, str]] = {
    MyomaType.NONE: (1.0, "No relevant myomas"),
    MyomaType.SUBMUCOSAL: (0.65, "Submucosal myoma distorting the cavity"),
    MyomaType.INTRAMURAL_LARGE: (0.75, "Large intramural myoma"),
    MyomaType.SUBSEROSAL: (0.95, "Subserosal myoma"),
}

ADENOMYOSIS_FACTORS: dict[AdenomyosisType, tuple[float, str]] = {
    AdenomyosisType.NONE: (1.0, "No adenomyosis"),
    AdenomyosisType.FOCAL: (0.80, "Focal adenomyosis"),
    AdenomyosisType.DIFFUSE: (0.60, "Diffuse adenomyosis"),
}

POLYP_FACTORS: dict[PolypType, tuple[float, str]] = {
    PolypType.NONE: (1.0, "No endometrial polyps"),
    PolypType.SMALL: (0.95, "Single small polyp (< 1 cm)"),
    PolypType.LARGE: (0.85, "Large or multiple polyps"),
    PolypType.OSTIUM: (0.80, "Polyp over the tubal ostium"),
}

HSG_FACTORS: dict[HsgResult, tuple[float, str]] = {
    HsgResult.NORMAL: (1.0, "Both tubes patent"),
    HsgResult.UNILATERAL: (0.80, "Unilateral tubal obstruction"),
    HsgResult.BILATERAL: (0.0, "Bilateral tubal obstruction"),
    HsgResult.MALFORMATION: (0.70, "Relevant uterine malformation"),
}

NORMAL_CONCENTRATION = 16.0
NORMAL_MOTILITY = 30.0
NORMAL_MORPHOLOGY = 4.0


@FactorEvaluatorRegistry.register("age")
def evaluate_age(raw: RawInput) -> FactorUpdate:
    """Baseline monthly probability (percent) from the age bracket."""
    for upper, probability, comment in AGE_BASELINE:
        if raw.age < upper:
            return FactorUpdate.value(BASE, probability, comment)
    return FactorUpdate.value(BASE, *AGE_FLOOR)


@FactorEvaluatorRegistry.register("bmi")
def evaluate_bmi(raw: RawInput) -> FactorUpdate:
    bmi = raw.effective_bmi
    if bmi is None:
        return FactorUpdate.neutral(BMI, "BMI not provided", "bmi")
    if bmi < 18.5:
        return FactorUpdate.value(BMI, 0.85, "Underweight")
    if bmi <= 24.9:
        return FactorUpdate.value(BMI, 1.0, "Normal weight")
    if bmi <= 29.9:
        return FactorUpdate.value(BMI, 0.9, "Overweight")
    if bmi <= 34.9:
        return FactorUpdate.value(BMI, 0.75, "Obesity class I")
    if bmi <= 39.9:
        return FactorUpdate.value(BMI, 0.6, "Obesity class II")
    return FactorUpdate.value(BMI, 0.4, "Obesity class III")


@FactorEvaluatorRegistry.register("cycle")
def evaluate_cycle(raw: RawInput) -> FactorUpdate:
    length = raw.cycle_length
    if length is None:
        return FactorUpdate.neutral(CYCLE, "Cycle length not provided", "cycle_length")
    if 24 <= length <= 35:
        return FactorUpdate.value(CYCLE, 1.0, "Regular cycle")
    if 21 <= length < 24 or 35 < length <= 45:
        return FactorUpdate.value(CYCLE, 0.85, "Mildly irregular cycle")
    return FactorUpdate.value(CYCLE, 0.6, "Markedly irregular cycle")


@FactorEvaluatorRegistry.register("pcos")
def evaluate_pcos(raw: RawInput) -> FactorUpdate:
    """Grade PCOS severity from metabolic markers and AMH.

    Anovulatory features are approximated by BMI >= 30 or HOMA-IR >= 3.5;
    AMH above 6 ng/mL marks a high follicle count phenotype.
    """
    if not raw.has_pcos:
        return FactorUpdate.value(PCOS, 1.0, "No PCOS")
    bmi = raw.effective_bmi
    homa = raw.effective_homa
    anovulatory = (bmi is not None and bmi >= 30) or (homa is not None and homa >= 3.5)
    high_amh = raw.amh is not None and raw.amh > 6
    if anovulatory and high_amh:
        return FactorUpdate.value(PCOS, 0.6, "Severe PCOS")
    if anovulatory or high_amh:
        return FactorUpdate.value(PCOS, 0.75, "Moderate PCOS")
    return FactorUpdate.value(PCOS, 0.9, "Mild PCOS")


@FactorEvaluatorRegistry.register("endometriosis")
def evaluate_endometriosis(raw: RawInput) -> FactorUpdate:
    grade = raw.endometriosis_grade
    if grade == 0:
        return FactorUpdate.value(ENDOMETRIOSIS, 1.0, "No endometriosis")
    if grade <= 2:
        return FactorUpdate.value(ENDOMETRIOSIS, 0.85, f"Mild endometriosis (grade {grade})")
    label = "Moderate" if grade == 3 else "Severe"
    return FactorUpdate.value(ENDOMETRIOSIS, 0.6, f"{label} endometriosis (grade {grade})")


@FactorEvaluatorRegistry.register("myoma")
def evaluate_myoma(raw: RawInput) -> FactorUpdate:
    return FactorUpdate.value(MYOMA, *MYOMA_FACTORS[raw.myoma_type])


@FactorEvaluatorRegistry.register("adenomyosis")
def evaluate_adenomyosis(raw: RawInput) -> FactorUpdate:
    return FactorUpdate.value(ADENOMYOSIS, *ADENOMYOSIS_FACTORS[raw.adenomyosis_type])


@FactorEvaluatorRegistry.register("polyp")
def evaluate_polyp(raw: RawInput) -> FactorUpdate:
    return FactorUpdate.value(POLYP, *POLYP_FACTORS[raw.polyp_type])


@FactorEvaluatorRegistry.register("hsg")
def evaluate_hsg(raw: RawInput) -> FactorUpdate:
    """Tubal patency; an unknown or absent result is neutral and reported missing."""
    if raw.hsg_result is None or raw.hsg_result is HsgResult.UNKNOWN:
        return FactorUpdate.neutral(HSG, "Tubal patency not assessed", "hsg_result")
    return FactorUpdate.value(HSG, *HSG_FACTORS[raw.hsg_result])


@FactorEvaluatorRegistry.register("tubal_ligation")
def evaluate_tubal_ligation(raw: RawInput) -> FactorUpdate:
    if raw.has_tubal_ligation:
        return FactorUpdate.value(TUBAL, 0.0, "Bilateral tubal ligation")
    return FactorUpdate.value(TUBAL, 1.0, "No tubal ligation")


@FactorEvaluatorRegistry.register("amh")
def evaluate_amh(raw: RawInput) -> FactorUpdate:
    amh = raw.amh
    if amh is None:
        return FactorUpdate.neutral(AMH, "AMH not provided", "amh")
    if amh > 4.0:
        return FactorUpdate.value(AMH, 1.0, "High ovarian reserve")
    if amh >= 2.0:
        return FactorUpdate.value(AMH, 1.0, "Normal ovarian reserve")
    if amh >= 1.0:
        return FactorUpdate.value(AMH, 0.85, "Slightly reduced ovarian reserve")
    if amh >= 0.5:
        return FactorUpdate.value(AMH, 0.6, "Low ovarian reserve")
    return FactorUpdate.value(AMH, 0.3, "Very low ovarian reserve")


@FactorEvaluatorRegistry.register("prolactin")
def evaluate_prolactin(raw: RawInput) -> FactorUpdate:
    prl = raw.prolactin
    if prl is None:
        return FactorUpdate.neutral(PROLACTIN, "Prolactin not provided", "prolactin")
    if prl < 25:
        return FactorUpdate.value(PROLACTIN, 1.0, "Normal prolactin")
    if prl <= 50:
        return FactorUpdate.value(PROLACTIN, 0.85, "Mild hyperprolactinemia")
    return FactorUpdate.value(PROLACTIN, 0.6, "Significant hyperprolactinemia")


@FactorEvaluatorRegistry.register("tsh")
def evaluate_tsh(raw: RawInput) -> FactorUpdate:
    tsh = raw.tsh
    if tsh is None:
        return FactorUpdate.neutral(TSH, "TSH not provided", "tsh")
    if 0.5 <= tsh <= 2.5:
        return FactorUpdate.value(TSH, 1.0, "Optimal TSH")
    if 2.5 < tsh <= 4.0:
        return FactorUpdate.value(TSH, 0.85, "TSH at the upper limit")
    if tsh > 4.0:
        return FactorUpdate.value(TSH, 0.7, "Hypothyroidism")
    return FactorUpdate.value(TSH, 0.7, "Suppressed TSH")


@FactorEvaluatorRegistry.register("homa")
def evaluate_homa(raw: RawInput) -> FactorUpdate:
    homa = raw.effective_homa
    if homa is None:
        return FactorUpdate.neutral(HOMA, "HOMA-IR not provided", "homa_ir")
    if homa < 2.0:
        return FactorUpdate.value(HOMA, 1.0, "Normal insulin sensitivity")
    if homa < 3.5:
        return FactorUpdate.value(HOMA, 0.85, "Mild insulin resistance")
    return FactorUpdate.value(HOMA, 0.7, "Significant insulin resistance")


@FactorEvaluatorRegistry.register("male")
def evaluate_male(raw: RawInput) -> FactorUpdate:
    """Semen analysis; the worst impaired parameter sets the multiplier.

    All three parameters are required. Any absent parameter makes the whole
    analysis neutral and each absent one is reported missing.
    """
    values = {
        "sperm_concentration": raw.sperm_concentration,
        "sperm_progressive_motility": raw.sperm_progressive_motility,
        "sperm_normal_morphology": raw.sperm_normal_morphology,
    }
    absent = [name for name, value in values.items() if value is None]
    if absent:
        return FactorUpdate.neutral(MALE, "Incomplete semen analysis", *absent)

    if raw.sperm_concentration == 0:
        return FactorUpdate.value(MALE, 0.0, "Azoospermia")

    issues: list[tuple[float, str]] = []
    if raw.sperm_concentration < NORMAL_CONCENTRATION:
        issues.append((0.75, "Oligozoospermia"))
    if raw.sperm_progressive_motility < NORMAL_MOTILITY:
        issues.append((0.80, "Asthenozoospermia"))
    if raw.sperm_normal_morphology < NORMAL_MORPHOLOGY:
        issues.append((0.85, "Teratozoospermia"))
    if not issues:
        return FactorUpdate.value(MALE, 1.0, "Normozoospermia")
    return FactorUpdate.value(MALE, min(f for f, _ in issues), ", ".join(label for _, label in issues))


@FactorEvaluatorRegistry.register("infertility_duration")
def evaluate_infertility_duration(raw: RawInput) -> FactorUpdate:
    years = raw.infertility_duration_years
    if years is None:
        return FactorUpdate.neutral(INFERTILITY, "Infertility duration not provided", "infertility_duration_years")
    if years < 2:
        return FactorUpdate.value(INFERTILITY, 1.0, "Less than 2 years trying")
    if years < 5:
        return FactorUpdate.value(INFERTILITY, 0.9, "2 to 4 years trying")
    return FactorUpdate.value(INFERTILITY, 0.75, "5 or more years trying")


@FactorEvaluatorRegistry.register("pelvic_surgery")
def evaluate_pelvic_surgery(raw: RawInput) -> FactorUpdate:
    count = raw.pelvic_surgeries
    if count is None:
        return FactorUpdate.neutral(SURGERY, "Pelvic surgery history not provided", "pelvic_surgeries")
    if count == 0:
        return FactorUpdate.value(SURGERY, 1.0, "No prior pelvic surgery")
    if count == 1:
        return FactorUpdate.value(SURGERY, 0.9, "One prior pelvic surgery")
    return FactorUpdate.value(SURGERY, 0.75, "Multiple prior pelvic surgeries")
