from __future__ import annotations

import pytest

from fsmodel.exceptions import CalculationContractError
from fsmodel.models import IncomeStatement, OverrideField, PeriodInput, WorkingCapitalMetrics
from fsmodel.statements.cash_flow import derive_cash_flow, working_capital_change

from conftest import make_result


def wc(ar, inv, ap) -> WorkingCapitalMetrics:
    return WorkingCapitalMetrics(accounts_receivable_value=ar, inventory_value=inv, accounts_payable_value=ap)


def income(net_income=100_000.0, depreciation=20_000.0, revenue=1_000_000.0) -> IncomeStatement:
    return IncomeStatement(revenue=revenue, net_income=net_income, depreciation=depreciation)


def test_first_period_books_full_working_capital():
    cf = derive_cash_flow(PeriodInput(), income(), wc(150_000, 100_000, 80_000))
    assert cf.working_capital_change == -170_000
    assert cf.operating_cash_flow == 100_000 + 20_000 - 170_000
    assert cf.is_first_period


def test_later_period_uses_component_deltas():
    change = working_capital_change(wc(170_000, 90_000, 100_000), wc(150_000, 100_000, 80_000))
    # AR +20k, inventory -10k, AP +20k
    assert change == -(20_000 - 10_000 - 20_000)


def test_previous_period_result_threads_cash_and_working_capital():
    previous = make_result(working_capital=wc(150_000, 100_000, 80_000))
    previous.cash_flow.closing_cash = 40_000
    cf = derive_cash_flow(PeriodInput(capex=0), income(), wc(150_000, 100_000, 80_000), previous)
    assert cf.working_capital_change == 0
    assert cf.opening_cash == 40_000
    assert cf.closing_cash == 40_000 + cf.net_cash_flow
    assert not cf.is_first_period


def test_capex_defaults_to_five_percent_of_revenue():
    cf = derive_cash_flow(PeriodInput(), income(), wc(0, 0, 0))
    assert cf.capex == 50_000
    assert cf.investing_cash_flow == -50_000
    assert cf.free_cash_flow == cf.operating_cash_flow - 50_000


def test_financing_and_net_cash_flow():
    period = PeriodInput(capex=10_000, debt_change=50_000, equity_change=25_000, dividends=15_000,
                         opening_cash=5_000)
    cf = derive_cash_flow(period, income(), wc(0, 0, 0))
    assert cf.financing_cash_flow == 60_000
    assert cf.net_cash_flow == 120_000 - 10_000 + 60_000
    assert cf.closing_cash == 5_000 + cf.net_cash_flow


def test_cash_conversion_rate_is_sign_sensitive():
    negative_ocf = derive_cash_flow(PeriodInput(capex=0), income(100_000, 0), wc(150_000, 0, 0))
    assert negative_ocf.operating_cash_flow == -50_000
    assert negative_ocf.cash_conversion_rate == -50

    loss = derive_cash_flow(PeriodInput(capex=0), income(-50_000, 0), wc(150_000, 0, 0))
    assert loss.operating_cash_flow == -200_000
    assert loss.cash_conversion_rate == 400


def test_cash_conversion_rate_zero_without_income():
    cf = derive_cash_flow(PeriodInput(), income(0, 0), wc(0, 0, 0))
    assert cf.cash_conversion_rate == 0


def test_closing_cash_override_is_reconciled():
    period = PeriodInput(capex=0, overrides={OverrideField.CLOSING_CASH: 500_000})
    cf = derive_cash_flow(period, income(), wc(0, 0, 0))
    assert cf.closing_cash == 500_000
    assert cf.calculated_closing_cash == 120_000
    assert cf.cash_reconciliation_difference == 380_000


def test_missing_income_statement_is_a_contract_error():
    with pytest.raises(CalculationContractError):
        derive_cash_flow(PeriodInput(), None, wc(0, 0, 0))
