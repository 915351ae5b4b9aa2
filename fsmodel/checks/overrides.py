"""
Override Checks
Overrides pin P&L lines to user values. When several are supplied together
they must still agree arithmetically, and too many of them make the model
hard to audit.
"""

from typing import List, Optional

from .base import BaseCheck
from ..models import CheckCategory, OverrideField, PeriodResult, Severity, ValidationIssue

F = OverrideField

# result, operands (sign, field)
OVERRIDE_RELATIONS = [
    (F.GROSS_PROFIT, [(1, F.REVENUE), (-1, F.COGS)]),
    (F.EBITDA, [(1, F.GROSS_PROFIT), (-1, F.OPERATING_EXPENSES)]),
    (F.EBIT, [(1, F.EBITDA), (-1, F.DEPRECIATION)]),
    (F.EBT, [(1, F.EBIT), (1, F.NET_FINANCIAL_RESULT)]),
    (F.NET_INCOME, [(1, F.EBT), (-1, F.TAXES)]),
]


class OverrideConsistency(BaseCheck):
    """Overrides supplied together must satisfy the P&L identities."""

    check_id = "OVR-001"
    check_name = "Override Consistency"
    category = CheckCategory.OVERRIDE

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        overrides = result.period_input.overrides
        if len(overrides) < 2:
            return []

        ist = result.income_statement
        issues = []
        for target, operands in OVERRIDE_RELATIONS:
            if target not in overrides or not any(f in overrides for _, f in operands):
                continue
            # operands that were not overridden come from the derived statement
            expected = sum(sign * overrides.get(f, getattr(ist, f.value)) for sign, f in operands)
            actual = overrides[target]
            if self._is_close(expected, actual):
                continue
            involved = [target.value] + [f.value for _, f in operands if f in overrides]
            formula = " ".join(("+ " if sign > 0 else "- ") + f.value for sign, f in operands).lstrip("+ ")
            issues.append(self._make_issue(
                result, "OVERRIDE_INCONSISTENT", "Override Consistency",
                f"Override {target.value}={actual:,.2f} disagrees with {formula} = {expected:,.2f}.",
                Severity.CRITICAL, target.value,
                suggestion=f"Adjust override_{target.value} or remove one of: {', '.join(involved[1:])}.",
                value=round(actual - expected, 2),
                fields=involved,
            ))
        return issues


class ExcessiveOverrides(BaseCheck):
    """Many simultaneous overrides."""

    check_id = "OVR-002"
    check_name = "Excessive Overrides"
    category = CheckCategory.OVERRIDE

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        count = result.period_input.override_count
        if count <= self.thresholds.max_overrides:
            return []
        return [self._make_issue(
            result, "EXCESSIVE_OVERRIDES", "Override Usage",
            f"{count} fields are overridden in this period.",
            Severity.WARNING, "overrides",
            suggestion="Prefer adjusting drivers over pinning results.",
            value=float(count),
            fields=sorted(f.value for f in result.period_input.overrides),
        )]


OVERRIDE_CHECKS = [OverrideConsistency, ExcessiveOverrides]
