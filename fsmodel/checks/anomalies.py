"""
Anomaly Checks
Business-risk patterns: balance sheet materiality, inventory extremes,
insolvency and liquidity risk, cash cycle, supplier terms, margin swings,
tax burden and operating cash divergence.
"""

from typing import List, Optional

from .base import BaseCheck
from ..models import CheckCategory, PeriodResult, Severity, ValidationIssue
from ..numeric import safe_divide


class BalanceSheetMateriality(BaseCheck):
    """Balance difference beyond max(2% assets, 100) is critical; beyond max(1%, 1) a warning."""

    check_id = "ANM-001"
    check_name = "Balance Sheet Materiality"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        t = self.thresholds
        bs = result.balance_sheet
        diff = abs(bs.balance_check)
        assets = abs(bs.total_assets)
        critical_limit = max(assets * t.balance_critical_percent, t.balance_critical_minimum)
        warning_limit = max(assets * t.balance_warning_percent, t.balance_warning_minimum)

        if diff > critical_limit:
            severity = Severity.CRITICAL
        elif diff > warning_limit:
            severity = Severity.WARNING
        else:
            return []

        pct = safe_divide(diff, assets) * 100
        return [self._make_issue(
            result, "BALANCE_SHEET_INCONSISTENT", "Balance Sheet",
            f"Assets and liabilities + equity differ by {bs.balance_check:,.2f} ({pct:.2f}% of total assets).",
            severity, "balance_check",
            suggestion="Review overrides and manual adjustments affecting assets, liabilities or equity.",
            value=bs.balance_check,
            fields=("total_assets", "total_liabilities", "equity"),
        )]


class InventoryLevels(BaseCheck):
    """Inventory days extremes and inventory size relative to revenue."""

    check_id = "ANM-002"
    check_name = "Inventory Levels"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        t = self.thresholds
        wc = result.working_capital
        ist = result.income_statement
        if ist.revenue <= 0:
            return []

        issues = []
        if wc.dio > t.inventory_days_critical:
            issues.append(self._make_issue(
                result, "INVENTORY_DAYS_EXTREME", "Inventory Days",
                f"Inventory covers {wc.dio:.0f} days of cost of goods, more than {t.inventory_days_critical:.0f}.",
                Severity.CRITICAL, "inventory_days",
                suggestion="Check the inventory value or days input; this level suggests obsolete stock.",
                value=wc.dio,
            ))
        elif wc.dio < t.inventory_days_low and wc.inventory_value > 0 and ist.cogs > 0:
            issues.append(self._make_issue(
                result, "INVENTORY_DAYS_LOW", "Inventory Days",
                f"Inventory covers only {wc.dio:.2f} days of cost of goods.",
                Severity.WARNING, "inventory_days",
                suggestion="Confirm the inventory value; stock-outs are likely at this level.",
                value=wc.dio,
            ))

        share = safe_divide(wc.inventory_value, ist.revenue)
        if share > t.inventory_revenue_ratio:
            issues.append(self._make_issue(
                result, "INVENTORY_REVENUE_HIGH", "Inventory Level vs Revenue",
                f"Inventory {wc.inventory_value:,.2f} is {share * 100:.1f}% of period revenue.",
                Severity.WARNING, "inventory_value",
                suggestion="Compare against sector norms and the period length in use.",
                value=wc.inventory_value,
                fields=("inventory_value", "revenue"),
            ))
        return issues


class InsolvencyRisk(BaseCheck):
    """Negative closing cash together with negative EBIT."""

    check_id = "ANM-003"
    check_name = "Insolvency Risk"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        closing = result.cash_flow.closing_cash
        ebit = result.income_statement.ebit
        if closing < 0 and ebit < 0:
            return [self._make_issue(
                result, "INSOLVENCY_RISK", "Solvency",
                f"Closing cash {closing:,.2f} and EBIT {ebit:,.2f} are both negative.",
                Severity.CRITICAL, "closing_cash",
                suggestion="Plan financing or cost reductions before this period.",
                value=closing,
                fields=("closing_cash", "ebit"),
            )]
        return []


class LiquidityCrisis(BaseCheck):
    """Cash burn far larger than the cash available at period end."""

    check_id = "ANM-004"
    check_name = "Liquidity Crisis"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        cf = result.cash_flow
        if cf.free_cash_flow >= 0:
            return []
        available = max(cf.closing_cash, 0.0)
        burn = abs(cf.free_cash_flow)
        if burn <= available * self.thresholds.liquidity_crisis_multiple:
            return []
        return [self._make_issue(
            result, "LIQUIDITY_CRISIS", "Liquidity",
            f"Free cash flow of {cf.free_cash_flow:,.2f} against closing cash of {cf.closing_cash:,.2f}.",
            Severity.CRITICAL, "free_cash_flow",
            suggestion="Secure short-term financing or reduce working-capital and capex needs.",
            value=cf.free_cash_flow,
            fields=("free_cash_flow", "closing_cash"),
        )]


class WorkingCapitalCycle(BaseCheck):
    """Negative cash conversion cycle is a strength; a very long one is worth optimizing."""

    check_id = "ANM-005"
    check_name = "Cash Conversion Cycle"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        ccc = result.working_capital.cash_conversion_cycle
        if ccc < 0:
            return [self._make_issue(
                result, "NEGATIVE_CASH_CYCLE", "Working Capital",
                f"Cash conversion cycle of {ccc:.0f} days: suppliers finance operations.",
                Severity.SUCCESS, "cash_conversion_cycle",
                value=ccc,
            )]
        if ccc > self.thresholds.long_cash_cycle_days:
            return [self._make_issue(
                result, "LONG_CASH_CYCLE", "Working Capital",
                f"Cash conversion cycle of {ccc:.0f} days ties up cash in operations.",
                Severity.INFO, "cash_conversion_cycle",
                suggestion="Shorten collection terms, reduce inventory or negotiate longer supplier terms.",
                value=ccc,
            )]
        return []


class SupplierTerms(BaseCheck):
    """Very long payable days may signal payment difficulties."""

    check_id = "ANM-006"
    check_name = "Supplier Payment Terms"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        dpo = result.working_capital.dpo
        if dpo <= self.thresholds.high_payable_days:
            return []
        return [self._make_issue(
            result, "PAYABLE_DAYS_HIGH", "Working Capital",
            f"Payables outstanding for {dpo:.0f} days.",
            Severity.WARNING, "accounts_payable_days",
            suggestion="Confirm supplier terms; this may indicate overdue payables.",
            value=dpo,
        )]


class MarginVolatility(BaseCheck):
    """Large margin swings versus the prior period."""

    check_id = "ANM-007"
    check_name = "Margin Volatility"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        if previous is None:
            return []
        t = self.thresholds
        issues = []
        gross_delta = result.income_statement.gross_margin_percent - previous.income_statement.gross_margin_percent
        if abs(gross_delta) > t.gross_margin_swing_pp:
            issues.append(self._make_issue(
                result, "GROSS_MARGIN_VOLATILE", "Margin Volatility",
                f"Gross margin moved {gross_delta:+.2f} pp versus {previous.label}.",
                Severity.WARNING, "gross_margin_percent",
                suggestion="Check pricing and cost-of-goods inputs for this period.",
                value=round(gross_delta, 2),
            ))
        net_delta = result.income_statement.net_margin - previous.income_statement.net_margin
        if abs(net_delta) > t.net_margin_swing_pp:
            issues.append(self._make_issue(
                result, "NET_MARGIN_VOLATILE", "Margin Volatility",
                f"Net margin moved {net_delta:+.2f} pp versus {previous.label}.",
                Severity.INFO, "net_margin",
                value=round(net_delta, 2),
            ))
        return issues


class TaxBurden(BaseCheck):
    """Effective tax above the progressive scheme's possible maximum."""

    check_id = "ANM-008"
    check_name = "Tax Burden"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        ist = result.income_statement
        if ist.ebt <= 0 or ist.effective_tax_rate <= self.thresholds.max_effective_tax_rate:
            return []
        return [self._make_issue(
            result, "TAX_BURDEN_HIGH", "Tax",
            f"Taxes are {ist.effective_tax_rate:.2f}% of EBT.",
            Severity.WARNING, "taxes",
            suggestion="Review the taxes override.",
            value=ist.effective_tax_rate,
            fields=("taxes", "ebt"),
        )]


class OperatingCashDivergence(BaseCheck):
    """Operating cash flow far from net income + D&A, usually a working capital swing."""

    check_id = "ANM-009"
    check_name = "Operating Cash Divergence"
    category = CheckCategory.ANOMALY

    def check_period(self, result: PeriodResult, previous: Optional[PeriodResult]) -> List[ValidationIssue]:
        ist = result.income_statement
        if ist.net_income == 0:
            return []
        ocf = result.cash_flow.operating_cash_flow
        accrual = ist.net_income + ist.depreciation
        gap = ocf - accrual
        if abs(gap) <= abs(ist.net_income) * self.thresholds.ocf_divergence_ratio:
            return []
        return [self._make_issue(
            result, "FCO_VS_NETPROFIT_DIVERGENCE", "Cash Flow",
            f"Operating cash flow {ocf:,.2f} diverges from net income + D&A {accrual:,.2f} "
            f"by {gap:,.2f}.",
            Severity.WARNING, "operating_cash_flow",
            suggestion="Large working capital movements usually explain this; review receivable, "
                       "inventory and payable inputs.",
            value=round(gap, 2),
            fields=("operating_cash_flow", "net_income", "depreciation"),
        )]


ANOMALY_CHECKS = [
    BalanceSheetMateriality,
    InventoryLevels,
    InsolvencyRisk,
    LiquidityCrisis,
    WorkingCapitalCycle,
    SupplierTerms,
    MarginVolatility,
    TaxBurden,
    OperatingCashDivergence,
]
