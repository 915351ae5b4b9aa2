"""
Working Capital Deriver
Receivables, inventory and payables as (days, value) pairs.
Whichever side is supplied determines the other:
    value = base / days_in_period * days
    days  = value / base * days_in_period
Base is revenue for receivables and COGS for inventory and payables.
"""

from typing import Optional, Tuple

from ..models import IncomeStatement, OverrideField, PeriodInput, WorkingCapitalMetrics
from ..numeric import round2, safe_divide
from ..settings import EngineConfig


def days_to_value(base: float, days: float, days_in_period: int) -> float:
    return round2(safe_divide(base, days_in_period) * days)


def value_to_days(value: float, base: float, days_in_period: int) -> float:
    return round2(safe_divide(value, base) * days_in_period)


def _resolve_component(
    override: Optional[float],
    value: Optional[float],
    days: Optional[float],
    default_days: float,
    base: float,
    days_in_period: int,
) -> Tuple[float, float, str]:
    """Return (days, value, source) with priority override > value > days > default."""
    if override is not None:
        return value_to_days(override, base, days_in_period), round2(override), "override"
    if value is not None:
        return value_to_days(value, base, days_in_period), round2(value), "value"
    if days is not None:
        return round2(days), days_to_value(base, days, days_in_period), "days"
    return round2(default_days), days_to_value(base, default_days, days_in_period), "default"


def derive_working_capital(
    period: PeriodInput,
    income_statement: Optional[IncomeStatement] = None,
    days_in_period: int = 365,
    config: Optional[EngineConfig] = None,
) -> WorkingCapitalMetrics:
    """
    Derive DSO/DIO/DPO, component values and the cash conversion cycle.
    Without an income statement, revenue and COGS are taken as zero.
    """
    defaults = (config or EngineConfig()).working_capital
    revenue = income_statement.revenue if income_statement else 0.0
    cogs = income_statement.cogs if income_statement else 0.0
    days_in_period = days_in_period or 365

    dso, receivables, ar_source = _resolve_component(
        period.override(OverrideField.ACCOUNTS_RECEIVABLE_VALUE),
        period.accounts_receivable_value, period.accounts_receivable_days,
        defaults.default_receivable_days, revenue, days_in_period,
    )
    dio, inventory, inv_source = _resolve_component(
        period.override(OverrideField.INVENTORY_VALUE),
        period.inventory_value, period.inventory_days,
        defaults.default_inventory_days, cogs, days_in_period,
    )
    dpo, payables, ap_source = _resolve_component(
        period.override(OverrideField.ACCOUNTS_PAYABLE_VALUE),
        period.accounts_payable_value, period.accounts_payable_days,
        defaults.default_payable_days, cogs, days_in_period,
    )

    working_capital = round2(receivables + inventory - payables)

    return WorkingCapitalMetrics(
        dso=dso,
        dio=dio,
        dpo=dpo,
        accounts_receivable_value=receivables,
        inventory_value=inventory,
        accounts_payable_value=payables,
        cash_conversion_cycle=round2(dso + dio - dpo),
        working_capital_value=working_capital,
        working_capital_percent=round2(safe_divide(working_capital, revenue) * 100),
        days_in_period=days_in_period,
        sources={
            "accounts_receivable": ar_source,
            "inventory": inv_source,
            "accounts_payable": ap_source,
        },
    )
