"""
Financial Model Validation Engine
Runs all registered checks over a sequence of PeriodResults and produces
either an aggregate report (every finding, bucketed by severity) or a
report focused on the latest period.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .checks import ALL_CHECKS
from .checks.base import BaseCheck, CheckRegistry
from .models import CheckCategory, PeriodResult, Severity, ValidationIssue
from .settings import EngineConfig

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Core validation engine.
    Instantiates all checks and runs them read-only against period results.
    Findings are returned as data; checks never raise into the caller.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        enabled_categories: Optional[List[CheckCategory]] = None,
        disabled_check_ids: Optional[List[str]] = None,
    ):
        self.config = config or EngineConfig()
        self.enabled_categories = enabled_categories
        self.disabled_check_ids = set(disabled_check_ids or [])

        self.registry = CheckRegistry()
        self._register_all_checks()

    def _register_all_checks(self):
        """Instantiate and register all check classes."""
        for check_cls in ALL_CHECKS:
            check = check_cls(thresholds=self.config.validation)
            if check.check_id not in self.disabled_check_ids:
                if self.enabled_categories is None or check.category in self.enabled_categories:
                    self.registry.register(check)

    def _run_checks(
        self,
        checks: List[BaseCheck],
        results: Sequence[PeriodResult],
    ) -> Tuple[List[ValidationIssue], List[Dict[str, Any]]]:
        issues: List[ValidationIssue] = []
        check_metadata: List[Dict[str, Any]] = []

        for check in checks:
            try:
                found = check.run(results)
                issues.extend(found)
                check_metadata.append({
                    "check_id": check.check_id,
                    "check_name": check.check_name,
                    "category": check.category.value,
                    "status": "completed",
                    "result_count": len(found),
                })
            except Exception as e:
                logger.exception("Check %s failed", check.check_id)
                check_metadata.append({
                    "check_id": check.check_id,
                    "check_name": check.check_name,
                    "category": check.category.value,
                    "status": "error",
                    "error": str(e),
                })
        return issues, check_metadata

    def validate_all(self, results: Sequence[PeriodResult]) -> "AggregateValidationReport":
        """Run every per-period check over every period."""
        results = list(results or [])
        issues, metadata = self._run_checks(self.registry.get_by_scope("period"), results)
        return AggregateValidationReport(issues=issues, check_metadata=metadata, period_count=len(results))

    def validate_latest(self, results: Sequence[PeriodResult]) -> "FocusedValidationReport":
        """
        Focus on the final period: its critical issues individually, warnings
        recurring across periods consolidated, plus trend detectors.
        """
        results = list(results or [])
        if not results:
            return FocusedValidationReport(latest_period=None, latest_label=None)

        period_issues, metadata = self._run_checks(self.registry.get_by_scope("period"), results)
        trend_issues, trend_metadata = self._run_checks(self.registry.get_by_scope("series"), results)
        latest = results[-1]

        def of_latest(severity: Severity) -> List[ValidationIssue]:
            return [i for i in period_issues if i.severity == severity and i.period_index == latest.period_index]

        return FocusedValidationReport(
            latest_period=len(results),
            latest_label=latest.label,
            critical=of_latest(Severity.CRITICAL),
            warnings=consolidate_warnings(period_issues, latest.period_index, latest.label),
            infos=of_latest(Severity.INFO),
            successes=of_latest(Severity.SUCCESS),
            trends=trend_issues,
            check_metadata=metadata + trend_metadata,
            period_count=len(results),
        )


def consolidate_warnings(
    issues: Sequence[ValidationIssue],
    latest_index: int,
    latest_label: Optional[str] = None,
) -> List[ValidationIssue]:
    """
    Merge warnings of the same type raised in two or more periods into one
    entry listing the affected periods. One-off warnings are kept only for
    the latest period. Periods are told apart by index, so repeated labels
    still count separately.
    """
    by_type: Dict[str, List[ValidationIssue]] = {}
    for issue in issues:
        if issue.severity == Severity.WARNING:
            by_type.setdefault(issue.type, []).append(issue)

    consolidated = []
    for issue_type, group in by_type.items():
        seen: Dict[Optional[int], Optional[str]] = {}
        for issue in group:
            seen.setdefault(issue.period_index, issue.period_label)
        if len(seen) >= 2:
            representative = group[-1]
            labels = [str(label) for label in seen.values()]
            consolidated.append(replace(
                representative,
                message=f"Recurring in {len(labels)} periods ({', '.join(labels)}): {representative.message}",
                period_label=latest_label if latest_label is not None else representative.period_label,
                period_index=latest_index,
                affected_periods=tuple(labels),
            ))
        elif latest_index in seen:
            consolidated.extend(group)
    return consolidated


def _health(critical: int, warnings: int) -> str:
    if critical > 0:
        return "CRITICAL"
    if warnings > 0:
        return "WARNINGS"
    return "CLEAN"


class AggregateValidationReport:
    """Every finding across every period, bucketed by severity."""

    def __init__(
        self,
        issues: List[ValidationIssue],
        check_metadata: Optional[List[Dict[str, Any]]] = None,
        period_count: int = 0,
    ):
        self.issues = issues
        self.check_metadata = check_metadata or []
        self.period_count = period_count
        self.timestamp = datetime.now().isoformat()

    def _of(self, severity: Severity) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == severity]

    @property
    def errors(self) -> List[ValidationIssue]:
        return self._of(Severity.CRITICAL)

    @property
    def warnings(self) -> List[ValidationIssue]:
        return self._of(Severity.WARNING)

    @property
    def infos(self) -> List[ValidationIssue]:
        return self._of(Severity.INFO)

    @property
    def successes(self) -> List[ValidationIssue]:
        return self._of(Severity.SUCCESS)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def overall_health(self) -> str:
        return _health(len(self.errors), len(self.warnings))

    def issues_for_period(self, label: str) -> List[ValidationIssue]:
        return [i for i in self.issues if i.period_label == label]

    def by_type(self) -> Dict[str, List[ValidationIssue]]:
        grouped: Dict[str, List[ValidationIssue]] = {}
        for i in self.issues:
            grouped.setdefault(i.type, []).append(i)
        return grouped

    def summary(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "overall_health": self.overall_health,
            "is_valid": self.is_valid,
            "periods_analyzed": self.period_count,
            "total_issues": len(self.issues),
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "infos": len(self.infos),
            "successes": len(self.successes),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": "all",
            "summary": self.summary(),
            "check_metadata": self.check_metadata,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "infos": [i.to_dict() for i in self.infos],
            "successes": [i.to_dict() for i in self.successes],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)


class FocusedValidationReport:
    """Findings relevant to the latest period plus cross-period trends."""

    def __init__(
        self,
        latest_period: Optional[int],
        latest_label: Optional[str],
        critical: Optional[List[ValidationIssue]] = None,
        warnings: Optional[List[ValidationIssue]] = None,
        infos: Optional[List[ValidationIssue]] = None,
        successes: Optional[List[ValidationIssue]] = None,
        trends: Optional[List[ValidationIssue]] = None,
        check_metadata: Optional[List[Dict[str, Any]]] = None,
        period_count: int = 0,
    ):
        self.latest_period = latest_period
        self.latest_label = latest_label
        self.critical = critical or []
        self.warnings = warnings or []
        self.infos = infos or []
        self.successes = successes or []
        self.trends = trends or []
        self.check_metadata = check_metadata or []
        self.period_count = period_count
        self.timestamp = datetime.now().isoformat()

    @property
    def is_valid(self) -> bool:
        return not self.critical

    @property
    def overall_health(self) -> str:
        return _health(len(self.critical), len(self.warnings) + len(self.trends))

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "overall_health": self.overall_health,
            "is_valid": self.is_valid,
            "latest_period": self.latest_period,
            "latest_label": self.latest_label,
            "periods_analyzed": self.period_count,
            "critical": len(self.critical),
            "warnings": len(self.warnings),
            "infos": len(self.infos),
            "successes": len(self.successes),
            "trends": len(self.trends),
        }

    def all_issues(self) -> List[ValidationIssue]:
        return self.critical + self.warnings + self.trends + self.infos + self.successes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": "latest",
            "summary": self.summary,
            "check_metadata": self.check_metadata,
            "critical": [i.to_dict() for i in self.critical],
            "warnings": [i.to_dict() for i in self.warnings],
            "trends": [i.to_dict() for i in self.trends],
            "infos": [i.to_dict() for i in self.infos],
            "successes": [i.to_dict() for i in self.successes],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)


def validate_all(results: Sequence[PeriodResult], config: Optional[EngineConfig] = None) -> AggregateValidationReport:
    return ValidationEngine(config).validate_all(results)


def validate_latest(results: Sequence[PeriodResult], config: Optional[EngineConfig] = None) -> FocusedValidationReport:
    return ValidationEngine(config).validate_latest(results)
