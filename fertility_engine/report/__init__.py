"""Report synthesis: categories, benchmarks and clinical findings."""

from fertility_engine.report.content import ContentEntry, ContentLibrary, PhraseBook
from fertility_engine.report.generator import (
    ContentKey,
    ContentResolver,
    FindingRule,
    ReportGenerator,
    benchmark_for_age,
    categorize,
    cumulative_probability,
)

__all__ = [
    "ContentEntry",
    "ContentKey",
    "ContentLibrary",
    "ContentResolver",
    "FindingRule",
    "PhraseBook",
    "ReportGenerator",
    "benchmark_for_age",
    "categorize",
    "cumulative_probability",
]
