"""Severity and category vocabulary plus the severity aggregation helpers."""

from collections.abc import Iterable
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Finding severity levels, most important first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """0 for critical up to 4 for info."""
        return SEVERITY_ORDER.index(self)


SEVERITY_ORDER = [
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
]


class Category(str, Enum):
    """Finding categories the analyzer may report."""

    SECURITY = "security"
    PERFORMANCE = "performance"
    READABILITY = "readability"
    BUG = "bug"
    TEST = "test"
    STYLE = "style"


def empty_counts() -> dict[str, int]:
    """Return an all-zero count for every severity."""
    return {severity.value: 0 for severity in SEVERITY_ORDER}


def count_by_severity(findings: Iterable[Any]) -> dict[str, int]:
    """Partition findings by severity and count each bucket.

    Pure function of the input: the result does not depend on ordering and
    the bucket totals always add up to the number of findings.

    Raises:
        ValueError: if a finding carries an unknown severity
    """
    counts = empty_counts()
    for finding in findings:
        counts[Severity(finding.severity).value] += 1
    return counts


def sort_by_severity(findings: Iterable[Any]) -> list[Any]:
    """Stable sort, critical first."""
    return sorted(findings, key=lambda f: Severity(f.severity).rank)


def meets_threshold(severity: str | Severity, minimum: str | Severity) -> bool:
    """True when severity is at least as important as minimum."""
    return Severity(severity).rank <= Severity(minimum).rank
