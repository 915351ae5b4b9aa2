from __future__ import annotations

import pytest

from fsmodel.models import (
    BalanceSheet, CashFlowStatement, FinancialRatios, IncomeStatement, PeriodInput,
    PeriodResult, WorkingCapitalMetrics,
)


def make_result(
    label: str = "Period 1",
    index: int = 0,
    period_input: PeriodInput | None = None,
    income: IncomeStatement | None = None,
    working_capital: WorkingCapitalMetrics | None = None,
    cash_flow: CashFlowStatement | None = None,
    balance_sheet: BalanceSheet | None = None,
) -> PeriodResult:
    """Hand-built PeriodResult for exercising checks in isolation."""
    return PeriodResult(
        period_index=index,
        label=label,
        days_in_period=30,
        months_in_period=1,
        period_input=period_input or PeriodInput(revenue=1_000_000),
        income_statement=income or IncomeStatement(
            revenue=1_000_000, cogs=600_000, gross_profit=400_000, gross_margin_percent=40.0,
            operating_expenses=200_000, ebitda=200_000, depreciation=20_000, ebit=180_000,
            ebt=180_000, taxes=50_000, net_income=130_000, net_margin=13.0,
        ),
        working_capital=working_capital or WorkingCapitalMetrics(
            dso=45, dio=30, dpo=60,
            accounts_receivable_value=1_500_000, inventory_value=600_000, accounts_payable_value=1_200_000,
            cash_conversion_cycle=15, working_capital_value=900_000, days_in_period=30,
        ),
        cash_flow=cash_flow or CashFlowStatement(
            net_income=130_000, depreciation=20_000, operating_cash_flow=150_000,
            investing_cash_flow=-100_000, free_cash_flow=50_000,
            net_cash_flow=50_000, closing_cash=50_000, calculated_closing_cash=50_000,
        ),
        balance_sheet=balance_sheet or BalanceSheet(
            current_assets=600_000, total_assets=1_000_000, current_liabilities=150_000,
            total_liabilities=400_000, equity=600_000, total_liabilities_and_equity=1_000_000,
            balance_check=0.0,
        ),
        ratios=FinancialRatios(),
    )


@pytest.fixture
def two_month_inputs():
    return [
        {"revenue": 800_000, "grossMarginPercentage": 40, "operatingExpenses": 180_000},
        {"revenue": 1_000_000, "grossMarginPercentage": 42, "operatingExpenses": 200_000},
    ]
