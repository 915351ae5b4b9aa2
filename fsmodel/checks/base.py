"""
Base Check Class and Check Registry
All validation checks inherit from BaseCheck.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ..models import CheckCategory, PeriodResult, Severity, ValidationIssue
from ..numeric import get_tolerance
from ..settings import ValidationThresholds


class BaseCheck(ABC):
    """Abstract base class for all validation checks."""

    # "period" checks look at one period (plus its predecessor);
    # "series" checks look at the whole ordered sequence.
    scope = "period"

    def __init__(self, thresholds: Optional[ValidationThresholds] = None):
        self.thresholds = thresholds or ValidationThresholds()

    @property
    @abstractmethod
    def check_id(self) -> str:
        """Unique identifier for this check (e.g., 'CNS-001')."""
        ...

    @property
    @abstractmethod
    def check_name(self) -> str:
        """Human-readable check name."""
        ...

    @property
    @abstractmethod
    def category(self) -> CheckCategory:
        """Check category."""
        ...

    def run(self, results: Sequence[PeriodResult]) -> List[ValidationIssue]:
        """Execute the check over an ordered list of period results."""
        issues = []
        previous = None
        for result in results:
            issues.extend(self.check_period(result, previous))
            previous = result
        return issues

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        return []

    def _tolerance(self, amount: float, absolute_minimum: Optional[float] = None) -> float:
        minimum = self.thresholds.equation_absolute_minimum if absolute_minimum is None else absolute_minimum
        return get_tolerance(amount, minimum, self.thresholds.tolerance_percent)

    def _is_close(self, expected: float, actual: float, absolute_minimum: Optional[float] = None) -> bool:
        """Equal within the magnitude-scaled tolerance of the larger amount."""
        base = max(abs(expected), abs(actual))
        return abs(actual - expected) <= self._tolerance(base, absolute_minimum)

    def _make_issue(
        self,
        result: Optional[PeriodResult],
        type: str,
        category: str,
        message: str,
        severity: Severity,
        field: str,
        suggestion: Optional[str] = None,
        value: Optional[float] = None,
        fields: Sequence[str] = (),
        affected_periods: Sequence[str] = (),
    ) -> ValidationIssue:
        """Helper to construct a ValidationIssue."""
        return ValidationIssue(
            type=type,
            category=category,
            message=message,
            severity=severity,
            field=field,
            period_label=result.label if result is not None else None,
            period_index=result.period_index if result is not None else None,
            suggestion=suggestion,
            check_id=self.check_id,
            value=value,
            fields=tuple(fields),
            affected_periods=tuple(affected_periods),
        )


class CheckRegistry:
    """Registry of all available checks."""

    def __init__(self):
        self._checks: Dict[str, BaseCheck] = {}

    def register(self, check: BaseCheck):
        self._checks[check.check_id] = check

    def get_all(self) -> List[BaseCheck]:
        return list(self._checks.values())

    def get_by_scope(self, scope: str) -> List[BaseCheck]:
        return [c for c in self._checks.values() if c.scope == scope]

    def get_by_category(self, category: CheckCategory) -> List[BaseCheck]:
        return [c for c in self._checks.values() if c.category == category]

    def get_by_id(self, check_id: str) -> Optional[BaseCheck]:
        return self._checks.get(check_id)
