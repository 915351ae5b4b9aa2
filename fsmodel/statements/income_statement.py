"""
Income Statement Deriver
Builds the P&L from revenue plus explicit COGS or a gross-margin percentage,
applies the progressive IRPJ + CSLL profit tax and records every derivation
on an AuditTrail.
"""

from typing import List, Optional, Tuple

from ..models import (
    AuditTrail, IncomeStatement, InputCheck, OverrideField, PeriodInput, TaxBreakdown,
)
from ..numeric import round2, safe_divide
from ..settings import EngineConfig, TaxConfig


def calculate_brazilian_tax(ebt: float, months: int = 12, config: Optional[TaxConfig] = None) -> TaxBreakdown:
    """
    Progressive profit tax.

    CSLL applies to all positive EBT. IRPJ is 15% up to the prorated
    threshold (monthly threshold x months) plus a 10% surtax on the excess.
    Losses produce zero tax.
    """
    config = config or TaxConfig()
    months = max(int(months or 0), 1)
    threshold = round2(config.surtax_monthly_threshold * months)

    if ebt is None or ebt <= 0:
        return TaxBreakdown(threshold=threshold, months=months)

    irpj_base = round2(min(ebt, threshold) * config.irpj_rate)
    irpj_surtax = round2(max(ebt - threshold, 0.0) * config.irpj_surtax_rate)
    irpj = round2(irpj_base + irpj_surtax)
    csll = round2(ebt * config.csll_rate)
    total = round2(irpj + csll)

    return TaxBreakdown(
        irpj=irpj,
        irpj_base=irpj_base,
        irpj_surtax=irpj_surtax,
        csll=csll,
        total=total,
        effective_rate=round2(safe_divide(total, ebt) * 100),
        threshold=threshold,
        months=months,
    )


def check_period_input(period: PeriodInput) -> Tuple[List[str], List[str]]:
    """Range checks on raw drivers. Returns (errors, warnings)."""
    errors, warnings = [], []
    if period.revenue < 0:
        errors.append(f"Revenue cannot be negative (got {period.revenue:,.2f})")
    revenue_override = period.override(OverrideField.REVENUE)
    if revenue_override is not None and revenue_override < 0:
        errors.append(f"Revenue override cannot be negative (got {revenue_override:,.2f})")
    gm = period.gross_margin_percent
    if gm is not None and not 0 <= gm <= 100:
        errors.append(f"Gross margin must be between 0-100% (got {gm})")
    if period.cogs is not None and period.cogs < 0:
        warnings.append(f"COGS is negative ({period.cogs:,.2f})")
    if period.cogs is not None and period.revenue > 0 and period.cogs > period.revenue:
        warnings.append("COGS exceeds revenue; gross profit will be negative")
    if period.operating_expenses < 0:
        warnings.append(f"Operating expenses are negative ({period.operating_expenses:,.2f})")
    return errors, warnings


def derive_income_statement(
    period: PeriodInput,
    months: int = 12,
    config: Optional[EngineConfig] = None,
) -> IncomeStatement:
    """
    Derive one period's P&L.

    COGS priority: override > explicit COGS > revenue x (1 - margin/100)
    > default margin. Any other P&L line may be pinned by an override, in
    which case downstream lines are computed from the pinned value.
    """
    config = config or EngineConfig()
    assumptions = config.income_statement
    errors, warnings = check_period_input(period)
    trail = AuditTrail(
        original_values=period.to_dict(),
        overrides={k.value: v for k, v in period.overrides.items()},
        validation=InputCheck(errors=errors, warnings=warnings),
    )

    def resolve(metric: OverrideField, step: str, formula: str, inputs: dict, computed: float) -> float:
        pinned = period.override(metric)
        if pinned is not None:
            return trail.record(step, metric.value, "override", inputs, round2(pinned), overridden=True)
        return trail.record(step, metric.value, formula, inputs, round2(computed))

    revenue = resolve(OverrideField.REVENUE, "Revenue", "revenue", {"revenue": period.revenue}, period.revenue)

    if period.cogs is not None:
        cogs_formula, cogs_value = "cogs", period.cogs
        cogs_inputs = {"cogs": period.cogs}
    else:
        margin = period.gross_margin_percent
        if margin is None:
            margin = assumptions.default_gross_margin_percent
        cogs_formula = "revenue * (1 - gross_margin_percent / 100)"
        cogs_value = revenue * (1 - margin / 100)
        cogs_inputs = {"revenue": revenue, "gross_margin_percent": margin}
    cogs = resolve(OverrideField.COGS, "Cost of Goods Sold", cogs_formula, cogs_inputs, cogs_value)

    gross_profit = resolve(OverrideField.GROSS_PROFIT, "Gross Profit", "revenue - cogs",
                           {"revenue": revenue, "cogs": cogs}, revenue - cogs)
    opex = resolve(OverrideField.OPERATING_EXPENSES, "Operating Expenses", "operating_expenses",
                   {"operating_expenses": period.operating_expenses}, period.operating_expenses)
    ebitda = resolve(OverrideField.EBITDA, "EBITDA", "gross_profit - operating_expenses",
                     {"gross_profit": gross_profit, "operating_expenses": opex}, gross_profit - opex)

    if period.depreciation is not None:
        dep_formula, dep_value = "depreciation", period.depreciation
    else:
        dep_formula = f"revenue * {assumptions.default_depreciation_rate}"
        dep_value = revenue * assumptions.default_depreciation_rate
    depreciation = resolve(OverrideField.DEPRECIATION, "Depreciation", dep_formula,
                           {"revenue": revenue}, dep_value)

    ebit = resolve(OverrideField.EBIT, "EBIT", "ebitda - depreciation",
                   {"ebitda": ebitda, "depreciation": depreciation}, ebitda - depreciation)

    financial_revenue = round2(period.financial_revenue)
    financial_expenses = round2(period.financial_expenses)
    net_financial = resolve(OverrideField.NET_FINANCIAL_RESULT, "Net Financial Result",
                            "financial_revenue - financial_expenses",
                            {"financial_revenue": financial_revenue, "financial_expenses": financial_expenses},
                            financial_revenue - financial_expenses)
    ebt = resolve(OverrideField.EBT, "EBT", "ebit + net_financial_result",
                  {"ebit": ebit, "net_financial_result": net_financial}, ebit + net_financial)

    tax = calculate_brazilian_tax(ebt, months, config.tax)
    taxes = resolve(OverrideField.TAXES, "Taxes", "irpj + csll (progressive)",
                    {"ebt": ebt, "irpj": tax.irpj, "csll": tax.csll, "threshold": tax.threshold},
                    tax.total)
    net_income = resolve(OverrideField.NET_INCOME, "Net Income", "ebt - taxes",
                         {"ebt": ebt, "taxes": taxes}, ebt - taxes)

    return IncomeStatement(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        gross_margin_percent=round2(safe_divide(gross_profit, revenue) * 100),
        operating_expenses=opex,
        ebitda=ebitda,
        ebitda_margin=round2(safe_divide(ebitda, revenue) * 100),
        depreciation=depreciation,
        ebit=ebit,
        ebit_margin=round2(safe_divide(ebit, revenue) * 100),
        financial_revenue=financial_revenue,
        financial_expenses=financial_expenses,
        net_financial_result=net_financial,
        ebt=ebt,
        taxes=taxes,
        tax_breakdown=tax,
        effective_tax_rate=round2(safe_divide(taxes, ebt) * 100) if ebt > 0 else 0.0,
        net_income=net_income,
        net_margin=round2(safe_divide(net_income, revenue) * 100),
        audit_trail=trail,
    )
