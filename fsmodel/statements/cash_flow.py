"""
Cash Flow Deriver
Operating, investing and financing cash flow for one period.

The working-capital change has two regimes: the first period books the whole
AR + inventory - AP balance as a one-time investment; later periods use the
change of each component versus the prior period.
"""

from typing import Optional, Union, TYPE_CHECKING

from ..exceptions import CalculationContractError
from ..models import (
    CashFlowStatement, IncomeStatement, OverrideField, PeriodInput, WorkingCapitalMetrics,
)
from ..numeric import round2, safe_divide
from ..settings import EngineConfig

if TYPE_CHECKING:
    from ..models import PeriodResult


def working_capital_change(
    current: WorkingCapitalMetrics,
    previous: Optional[WorkingCapitalMetrics] = None,
) -> float:
    """Cash impact of working capital (negative when capital is tied up)."""
    if previous is None:
        return round2(-(current.accounts_receivable_value
                        + current.inventory_value
                        - current.accounts_payable_value))
    delta_ar = current.accounts_receivable_value - previous.accounts_receivable_value
    delta_inv = current.inventory_value - previous.inventory_value
    delta_ap = current.accounts_payable_value - previous.accounts_payable_value
    return round2(-(delta_ar + delta_inv - delta_ap))


def derive_cash_flow(
    period: PeriodInput,
    income_statement: IncomeStatement,
    working_capital: WorkingCapitalMetrics,
    previous: Optional[Union["PeriodResult", WorkingCapitalMetrics]] = None,
    config: Optional[EngineConfig] = None,
) -> CashFlowStatement:
    """
    Derive the cash flow statement.

    Args:
        period: Raw drivers (capex, debt/equity changes, dividends, overrides)
        income_statement: This period's P&L (required)
        working_capital: This period's working capital (required)
        previous: Prior PeriodResult (or just its working capital), None for the first period
    """
    if income_statement is None:
        raise CalculationContractError("Cash flow requires a computed income statement")
    if working_capital is None:
        raise CalculationContractError("Cash flow requires computed working capital metrics")

    assumptions = (config or EngineConfig()).cash_flow
    net_income = income_statement.net_income
    depreciation = income_statement.depreciation

    # a bare WorkingCapitalMetrics is accepted for standalone use
    if isinstance(previous, WorkingCapitalMetrics):
        previous_wc, previous_closing = previous, None
    elif previous is not None:
        previous_wc, previous_closing = previous.working_capital, previous.cash_flow.closing_cash
    else:
        previous_wc, previous_closing = None, None

    wc_change = working_capital_change(working_capital, previous_wc)
    operating = round2(net_income + depreciation + wc_change)

    capex = period.override(OverrideField.CAPEX)
    if capex is None:
        capex = period.capex
    if capex is None:
        capex = income_statement.revenue * assumptions.default_capex_rate
    capex = round2(capex)
    investing = round2(-capex)
    free_cash_flow = round2(operating + investing)

    debt_change = round2(period.debt_change or 0.0)
    equity_change = round2(period.equity_change or 0.0)
    dividends = round2(period.dividends or 0.0)
    financing = round2(debt_change + equity_change - dividends)

    net_cash_flow = round2(operating + investing + financing)

    if previous_closing is not None:
        opening_cash = previous_closing
    else:
        opening_cash = round2(period.opening_cash or 0.0)
    calculated_closing = round2(opening_cash + net_cash_flow)
    closing_override = period.override(OverrideField.CLOSING_CASH)
    closing_cash = round2(closing_override) if closing_override is not None else calculated_closing

    return CashFlowStatement(
        net_income=net_income,
        depreciation=depreciation,
        working_capital_change=wc_change,
        operating_cash_flow=operating,
        capex=capex,
        investing_cash_flow=investing,
        free_cash_flow=free_cash_flow,
        debt_change=debt_change,
        equity_change=equity_change,
        dividends=dividends,
        financing_cash_flow=financing,
        net_cash_flow=net_cash_flow,
        # sign-sensitive: negative NI flips the ratio
        cash_conversion_rate=round2(safe_divide(operating, net_income) * 100),
        opening_cash=opening_cash,
        calculated_closing_cash=calculated_closing,
        closing_cash=closing_cash,
        cash_reconciliation_difference=round2(closing_cash - calculated_closing),
        is_first_period=previous_wc is None,
    )
