"""
Trend Checks
Patterns visible only across the ordered sequence of periods.
"""

from typing import List, Sequence

from .base import BaseCheck
from ..models import CheckCategory, PeriodResult, Severity, ValidationIssue


class NegativeFreeCashFlowPattern(BaseCheck):
    """Free cash flow negative in most periods."""

    check_id = "TRD-001"
    check_name = "Negative Free Cash Flow Pattern"
    category = CheckCategory.TREND
    scope = "series"

    def run(self, results: Sequence[PeriodResult]) -> List[ValidationIssue]:
        if len(results) < 2:
            return []
        negative = [r.label for r in results if r.cash_flow.free_cash_flow < 0]
        share = len(negative) / len(results)
        if share < self.thresholds.negative_fcf_share:
            return []
        return [self._make_issue(
            results[-1], "CASH_FLOW_TREND", "Trend",
            f"Free cash flow is negative in {len(negative)} of {len(results)} periods.",
            Severity.WARNING, "free_cash_flow",
            suggestion="Review capex and working-capital needs; growth is consuming cash.",
            value=round(share * 100, 2),
            affected_periods=negative,
        )]


class BalanceDriftWorsening(BaseCheck):
    """Balance difference growing in each of the last three periods."""

    check_id = "TRD-002"
    check_name = "Balance Drift Worsening"
    category = CheckCategory.TREND
    scope = "series"

    window = 3

    def run(self, results: Sequence[PeriodResult]) -> List[ValidationIssue]:
        if len(results) < self.window:
            return []
        recent = results[-self.window:]
        gaps = [abs(r.balance_sheet.balance_check) for r in recent]
        worsening = all(later > earlier for earlier, later in zip(gaps, gaps[1:]))
        if not worsening or gaps[-1] <= self.thresholds.balance_drift_floor:
            return []
        return [self._make_issue(
            recent[-1], "BALANCE_DRIFT_WORSENING", "Trend",
            "Balance sheet difference grew in each of the last "
            f"{self.window} periods: " + " → ".join(f"{g:,.2f}" for g in gaps) + ".",
            Severity.WARNING, "balance_check",
            suggestion="Look for a recurring override or adjustment that is not carried consistently.",
            value=gaps[-1],
            affected_periods=[r.label for r in recent],
        )]


TREND_CHECKS = [NegativeFreeCashFlowPattern, BalanceDriftWorsening]
