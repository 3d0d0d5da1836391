"""Best-effort field validation against clinical reference ranges.

This is user feedback only. Nothing here feeds into factors or the engines.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ReferenceRange:
    """Plausible and normal bounds for one numeric field.

    Values outside ``[minimum, maximum]`` are rejected as implausible;
    values outside the normal range only raise a warning.
    """

    minimum: float
    maximum: float
    normal_low: float | None
    normal_high: float | None
    unit: str
    label: str


REFERENCE_RANGES: dict[str, ReferenceRange] = {
    "age": ReferenceRange(18, 55, 18, 34, "years", "Age"),
    "bmi": ReferenceRange(12, 60, 18.5, 24.9, "kg/m²", "BMI"),
    "cycle_length": ReferenceRange(15, 120, 21, 35, "days", "Cycle length"),
    "amh": ReferenceRange(0, 25, 1.0, 4.0, "ng/mL", "AMH"),
    "prolactin": ReferenceRange(0, 300, None, 25, "ng/mL", "Prolactin"),
    "tsh": ReferenceRange(0, 20, 0.5, 2.5, "mIU/L", "TSH"),
    "homa_ir": ReferenceRange(0, 20, None, 2.5, "", "HOMA-IR"),
    "sperm_concentration": ReferenceRange(0, 500, 16, None, "million/mL", "Sperm concentration"),
    "sperm_progressive_motility": ReferenceRange(0, 100, 30, None, "%", "Progressive motility"),
    "sperm_normal_morphology": ReferenceRange(0, 100, 4, None, "%", "Normal morphology"),
    "infertility_duration_years": ReferenceRange(0, 30, None, 1, "years", "Infertility duration"),
    "pelvic_surgeries": ReferenceRange(0, 10, None, 0, "", "Pelvic surgeries"),
}

# Age-specific AMH percentiles (p5, p50, p95), interpolated between ages.
AMH_PERCENTILES: dict[int, tuple[float, float, float]] = {
    25: (0.9, 4.2, 12.2),
    30: (0.6, 3.2, 9.5),
    35: (0.4, 2.2, 7.0),
    38: (0.2, 1.6, 5.5),
    40: (0.1, 1.2, 4.5),
    42: (0.0, 0.8, 3.5),
    45: (0.0, 0.2, 2.0),
}


@dataclass(frozen=True)
class FieldIssue:
    field: str
    severity: Severity
    message: str


@dataclass(frozen=True)
class ValidationReport:
    """Issues found for one input snapshot."""

    issues: tuple[FieldIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not any(issue.severity is Severity.ERROR for issue in self.issues)

    def for_field(self, name: str) -> tuple[FieldIssue, ...]:
        return tuple(issue for issue in self.issues if issue.field == name)


def amh_percentiles_for_age(age: float) -> tuple[float, float, float]:
    """Linearly interpolated (p5, p50, p95) AMH for *age*, clamped to 25-45."""
    ages = sorted(AMH_PERCENTILES)
    age = min(max(age, ages[0]), ages[-1])
    for lower, upper in zip(ages, ages[1:]):
        if lower <= age <= upper:
            weight = (age - lower) / (upper - lower)
            lo, hi = AMH_PERCENTILES[lower], AMH_PERCENTILES[upper]
            return tuple(a + (b - a) * weight for a, b in zip(lo, hi))  # type: ignore[return-value]
    return AMH_PERCENTILES[ages[-1]]


def validate_field(name: str, value: Any) -> list[FieldIssue]:
    """Check a single field against its reference range."""
    reference = REFERENCE_RANGES.get(name)
    if reference is None or value is None:
        return []
    try:
        number = float(value)
    except (TypeError, ValueError):
        return [FieldIssue(name, Severity.ERROR, f"{reference.label} must be a number")]

    unit = f" {reference.unit}" if reference.unit else ""
    if not reference.minimum <= number <= reference.maximum:
        return [
            FieldIssue(
                name,
                Severity.ERROR,
                f"{reference.label} {number:g}{unit} is outside the plausible range "
                f"{reference.minimum:g}-{reference.maximum:g}{unit}",
            )
        ]
    if reference.normal_low is not None and number < reference.normal_low:
        return [FieldIssue(name, Severity.WARNING, f"{reference.label} {number:g}{unit} is below the normal range")]
    if reference.normal_high is not None and number > reference.normal_high:
        return [FieldIssue(name, Severity.WARNING, f"{reference.label} {number:g}{unit} is above the normal range")]
    return []


def validate_input(data: Mapping[str, Any]) -> ValidationReport:
    """Validate every known field of *data* (snake_case keys).

    Adds an informational note when AMH falls outside the 5th-95th
    percentile for the given age.
    """
    issues: list[FieldIssue] = []
    for name, value in data.items():
        issues.extend(validate_field(name, value))

    age, amh = data.get("age"), data.get("amh")
    if isinstance(age, (int, float)) and isinstance(amh, (int, float)):
        p5, p50, p95 = amh_percentiles_for_age(age)
        if amh < p5:
            issues.append(FieldIssue("amh", Severity.INFO, f"AMH is below the 5th percentile for age {age:g}"))
        elif amh > p95:
            issues.append(FieldIssue("amh", Severity.INFO, f"AMH is above the 95th percentile for age {age:g}"))
    return ValidationReport(issues=tuple(issues))


@dataclass
class CachedValidator:
    """Validator that memoizes reports for a limited time.

    Parameters
    ----------
    ttl_seconds : float
        Lifetime of a cached report.
    clock : Callable[[], float]
        Monotonic time source, injectable for tests.
    """

    ttl_seconds: float = 300.0
    clock: Callable[[], float] = time.monotonic
    _cache: dict[tuple, tuple[float, ValidationReport]] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            msg = f"ttl_seconds must be > 0, got {self.ttl_seconds}"
            raise ValueError(msg)

    def validate(self, data: Mapping[str, Any]) -> ValidationReport:
        key = tuple(sorted((k, repr(v)) for k, v in data.items()))
        now = self.clock()
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None and now - cached[0] < self.ttl_seconds:
                return cached[1]
        report = validate_input(data)
        with self._lock:
            self._evict_expired(now)
            self._cache[key] = (now, report)
        logger.debug("Validated %d fields, %d issues", len(data), len(report.issues))
        return report

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock.
        expired = [key for key, (stored, _) in self._cache.items() if now - stored >= self.ttl_seconds]
        for key in expired:
            del self._cache[key]
