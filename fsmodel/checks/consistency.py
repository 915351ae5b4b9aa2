"""
Internal Consistency Checks
Re-derives statement subtotals and compares them to stored values.
A mismatch here means either an override broke an identity or the
calculation itself is wrong.
"""

from typing import List, Optional

from .base import BaseCheck
from ..models import CheckCategory, PeriodResult, Severity, ValidationIssue


class BalanceEquationSelfConsistency(BaseCheck):
    """Stored balance check must equal assets - (liabilities + equity) recomputed now."""

    check_id = "CNS-001"
    check_name = "Balance Equation Self-Consistency"
    category = CheckCategory.CONSISTENCY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        bs = result.balance_sheet
        recomputed = bs.total_assets - (bs.total_liabilities + bs.equity)
        gap = abs(bs.balance_check - recomputed)
        if gap <= self.thresholds.self_consistency_tolerance:
            return []
        return [self._make_issue(
            result, "BALANCE_CALCULATION_BUG", "Calculation Inconsistency",
            f"Stored balance difference {bs.balance_check:,.2f} does not match recomputed "
            f"assets - (liabilities + equity) = {recomputed:,.2f}. This indicates an internal calculation bug.",
            Severity.CRITICAL, "balance_check",
            suggestion="Recalculate the period; if it persists, report the inputs that produced it.",
            value=round(gap, 2),
            fields=("balance_check", "total_assets", "total_liabilities", "equity"),
        )]


# metric, label, components, recompute
PL_EQUATIONS = [
    ("gross_profit", "Gross profit", ("revenue", "cogs"),
     lambda i: i.revenue - i.cogs),
    ("ebitda", "EBITDA", ("gross_profit", "operating_expenses"),
     lambda i: i.gross_profit - i.operating_expenses),
    ("ebit", "EBIT", ("ebitda", "depreciation"),
     lambda i: i.ebitda - i.depreciation),
    ("ebt", "EBT", ("ebit", "net_financial_result"),
     lambda i: i.ebit + i.net_financial_result),
    ("net_income", "Net income", ("ebt", "taxes"),
     lambda i: i.ebt - i.taxes),
]


class IncomeStatementEquations(BaseCheck):
    """Each P&L subtotal must equal the algebraic sum of its components."""

    check_id = "CNS-002"
    check_name = "P&L Equations"
    category = CheckCategory.CONSISTENCY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        ist = result.income_statement
        issues = []
        for metric, label, components, recompute in PL_EQUATIONS:
            expected = recompute(ist)
            actual = getattr(ist, metric)
            if self._is_close(expected, actual):
                continue
            issues.append(self._make_issue(
                result, f"{metric.upper()}_EQUATION_MISMATCH", "P&L Equation",
                f"{label} {actual:,.2f} does not equal {' / '.join(components)} "
                f"result {expected:,.2f} (difference {actual - expected:,.2f}).",
                Severity.CRITICAL, metric,
                suggestion="Check overrides on this line and its components.",
                value=round(actual - expected, 2),
                fields=(metric,) + components,
            ))
        return issues


class BalanceSheetComponents(BaseCheck):
    """Current assets/liabilities must not exceed their totals."""

    check_id = "CNS-003"
    check_name = "Balance Sheet Components"
    category = CheckCategory.CONSISTENCY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        bs = result.balance_sheet
        issues = []
        if bs.current_assets > bs.total_assets + self._tolerance(bs.total_assets):
            issues.append(self._make_issue(
                result, "CURRENT_ASSETS_EXCEED_TOTAL", "Balance Sheet Structure",
                f"Current assets {bs.current_assets:,.2f} exceed total assets {bs.total_assets:,.2f}.",
                Severity.CRITICAL, "current_assets",
                value=round(bs.current_assets - bs.total_assets, 2),
                fields=("current_assets", "total_assets"),
            ))
        if bs.current_liabilities > bs.total_liabilities + self._tolerance(bs.total_liabilities):
            issues.append(self._make_issue(
                result, "CURRENT_LIABILITIES_EXCEED_TOTAL", "Balance Sheet Structure",
                f"Current liabilities {bs.current_liabilities:,.2f} exceed total liabilities "
                f"{bs.total_liabilities:,.2f}.",
                Severity.CRITICAL, "current_liabilities",
                value=round(bs.current_liabilities - bs.total_liabilities, 2),
                fields=("current_liabilities", "total_liabilities"),
            ))
        return issues


class CashFlowReconciliation(BaseCheck):
    """Net cash flow = operating + investing + financing; closing-cash overrides reconcile."""

    check_id = "CNS-004"
    check_name = "Cash Flow Reconciliation"
    category = CheckCategory.CONSISTENCY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        cf = result.cash_flow
        issues = []

        expected_net = cf.operating_cash_flow + cf.investing_cash_flow + cf.financing_cash_flow
        if not self._is_close(expected_net, cf.net_cash_flow):
            issues.append(self._make_issue(
                result, "NET_CASH_FLOW_MISMATCH", "Cash Flow Reconciliation",
                f"Net cash flow {cf.net_cash_flow:,.2f} differs from operating + investing + "
                f"financing = {expected_net:,.2f}.",
                Severity.CRITICAL, "net_cash_flow",
                value=round(cf.net_cash_flow - expected_net, 2),
                fields=("net_cash_flow", "operating_cash_flow", "investing_cash_flow", "financing_cash_flow"),
            ))

        diff = cf.cash_reconciliation_difference
        if diff:
            material = abs(diff) > self._tolerance(cf.calculated_closing_cash)
            issues.append(self._make_issue(
                result, "CASH_OVERRIDE_RECONCILIATION", "Cash Flow Reconciliation",
                f"Closing cash override {cf.closing_cash:,.2f} differs from calculated closing cash "
                f"{cf.calculated_closing_cash:,.2f} by {diff:,.2f}.",
                Severity.WARNING if material else Severity.INFO, "closing_cash",
                suggestion="Document the cash movement not explained by the cash flow drivers.",
                value=diff,
                fields=("closing_cash", "calculated_closing_cash"),
            ))
        return issues


class WorkingCapitalConsistency(BaseCheck):
    """Working capital and cash conversion cycle must match their components."""

    check_id = "CNS-005"
    check_name = "Working Capital Consistency"
    category = CheckCategory.CONSISTENCY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        wc = result.working_capital
        issues = []
        expected_value = wc.accounts_receivable_value + wc.inventory_value - wc.accounts_payable_value
        if not self._is_close(expected_value, wc.working_capital_value):
            issues.append(self._make_issue(
                result, "WORKING_CAPITAL_MISMATCH", "Working Capital",
                f"Working capital {wc.working_capital_value:,.2f} differs from AR + inventory - AP "
                f"= {expected_value:,.2f}.",
                Severity.CRITICAL, "working_capital_value",
                value=round(wc.working_capital_value - expected_value, 2),
                fields=("working_capital_value", "accounts_receivable_value",
                        "inventory_value", "accounts_payable_value"),
            ))
        expected_cycle = wc.dso + wc.dio - wc.dpo
        if abs(expected_cycle - wc.cash_conversion_cycle) > 0.01:
            issues.append(self._make_issue(
                result, "CASH_CYCLE_MISMATCH", "Working Capital",
                f"Cash conversion cycle {wc.cash_conversion_cycle:.2f} differs from DSO + DIO - DPO "
                f"= {expected_cycle:.2f}.",
                Severity.CRITICAL, "cash_conversion_cycle",
                value=round(wc.cash_conversion_cycle - expected_cycle, 2),
                fields=("cash_conversion_cycle", "dso", "dio", "dpo"),
            ))
        return issues


class EquityBridge(BaseCheck):
    """Equity should roll forward: prior equity + retained profit + new capital."""

    check_id = "CNS-006"
    check_name = "Equity Bridge"
    category = CheckCategory.CONSISTENCY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        if previous is None:
            return []
        cf = result.cash_flow
        retained = result.income_statement.net_income - cf.dividends
        expected = previous.balance_sheet.equity + retained + cf.equity_change
        actual = result.balance_sheet.equity
        if abs(actual - expected) <= self._tolerance(actual):
            return []
        return [self._make_issue(
            result, "EQUITY_BRIDGE_WARN", "Equity Bridge",
            f"Equity {actual:,.2f} differs from {previous.label} equity {previous.balance_sheet.equity:,.2f} "
            f"+ retained profit {retained:,.2f} + capital {cf.equity_change:,.2f} = {expected:,.2f}.",
            Severity.WARNING, "equity",
            suggestion="Equity is re-estimated each period; supply total assets or an equity-consistent "
                       "asset turnover if the roll-forward should hold.",
            value=round(actual - expected, 2),
            fields=("equity", "net_income", "dividends", "equity_change"),
        )]


CONSISTENCY_CHECKS = [
    BalanceEquationSelfConsistency,
    IncomeStatementEquations,
    BalanceSheetComponents,
    CashFlowReconciliation,
    WorkingCapitalConsistency,
    EquityBridge,
]
