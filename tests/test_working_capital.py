from __future__ import annotations

from fsmodel.models import IncomeStatement, OverrideField, PeriodInput
from fsmodel.settings import EngineConfig, WorkingCapitalAssumptions
from fsmodel.statements.working_capital import derive_working_capital


def income(revenue=1_000_000.0, cogs=600_000.0) -> IncomeStatement:
    return IncomeStatement(revenue=revenue, cogs=cogs)


def test_days_to_value_round_trip():
    wc = derive_working_capital(PeriodInput(accounts_receivable_days=60), income(), days_in_period=365)
    assert wc.accounts_receivable_value == 164_383.56

    back = derive_working_capital(
        PeriodInput(accounts_receivable_value=wc.accounts_receivable_value), income(), days_in_period=365,
    )
    assert back.dso == 60


def test_value_wins_over_days():
    wc = derive_working_capital(
        PeriodInput(accounts_receivable_days=10, accounts_receivable_value=123_287.67),
        income(), days_in_period=365,
    )
    assert wc.dso == 45
    assert wc.sources["accounts_receivable"] == "value"


def test_inventory_and_payables_use_cogs_base():
    wc = derive_working_capital(
        PeriodInput(inventory_value=120_000, accounts_payable_days=30),
        income(cogs=720_000), days_in_period=365,
    )
    assert wc.dio == 60.83
    assert wc.accounts_payable_value == 59_178.08


def test_defaults_when_nothing_supplied():
    wc = derive_working_capital(PeriodInput(), income(), days_in_period=30)
    assert (wc.dso, wc.dio, wc.dpo) == (45, 30, 60)
    assert wc.accounts_receivable_value == 1_500_000
    assert wc.inventory_value == 600_000
    assert wc.accounts_payable_value == 1_200_000
    assert set(wc.sources.values()) == {"default"}


def test_defaults_are_configurable():
    config = EngineConfig(working_capital=WorkingCapitalAssumptions(default_receivable_days=30))
    wc = derive_working_capital(PeriodInput(), income(), days_in_period=30, config=config)
    assert wc.dso == 30


def test_cash_conversion_cycle_may_be_negative():
    wc = derive_working_capital(
        PeriodInput(accounts_receivable_days=10, inventory_days=5, accounts_payable_days=60),
        income(), days_in_period=365,
    )
    assert wc.cash_conversion_cycle == -45


def test_working_capital_value_and_percent():
    wc = derive_working_capital(
        PeriodInput(accounts_receivable_value=150_000, inventory_value=100_000, accounts_payable_value=80_000),
        income(), days_in_period=365,
    )
    assert wc.working_capital_value == 170_000
    assert wc.working_capital_percent == 17.0


def test_zero_revenue_keeps_days():
    wc = derive_working_capital(PeriodInput(accounts_receivable_days=45), income(revenue=0, cogs=0))
    assert wc.accounts_receivable_value == 0
    assert wc.dso == 45
    assert wc.working_capital_percent == 0


def test_override_value_beats_explicit_value():
    period = PeriodInput(inventory_value=100_000, overrides={OverrideField.INVENTORY_VALUE: 50_000})
    wc = derive_working_capital(period, income(), days_in_period=365)
    assert wc.inventory_value == 50_000
    assert wc.sources["inventory"] == "override"


def test_missing_income_statement_treated_as_zero_base():
    wc = derive_working_capital(PeriodInput(accounts_receivable_value=10_000))
    assert wc.dso == 0
    assert wc.accounts_receivable_value == 10_000
