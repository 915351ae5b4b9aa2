from __future__ import annotations

import pytest

from fsmodel.models import OverrideField, PeriodInput
from fsmodel.settings import EngineConfig, IncomeStatementAssumptions
from fsmodel.statements.income_statement import calculate_brazilian_tax, derive_income_statement


def test_tax_below_surtax_threshold():
    tax = calculate_brazilian_tax(240_000, months=12)
    assert tax.irpj == 36_000
    assert tax.irpj_surtax == 0
    assert tax.csll == pytest.approx(21_600)


def test_tax_with_surtax():
    tax = calculate_brazilian_tax(500_000, months=12)
    assert tax.irpj_base == 36_000
    assert tax.irpj_surtax == 26_000
    assert tax.irpj == 62_000
    assert tax.csll == 45_000
    assert tax.total == 107_000
    assert tax.effective_rate == 21.4


def test_tax_threshold_is_prorated_by_months():
    monthly = calculate_brazilian_tax(50_000, months=1)
    # 20k at 15%, 30k at 10% surtax
    assert monthly.threshold == 20_000
    assert monthly.irpj == 3_000 + 3_000


def test_no_tax_on_losses_or_zero():
    assert calculate_brazilian_tax(-10_000).total == 0
    assert calculate_brazilian_tax(0).total == 0


def test_tax_never_exceeds_34_percent():
    for ebt in (1, 10_000, 240_001, 5_000_000, 1e9):
        assert calculate_brazilian_tax(ebt, months=1).total <= ebt * 0.34 + 0.01


def test_cogs_from_margin_and_net_income():
    ist = derive_income_statement(PeriodInput(revenue=1_000_000, gross_margin_percent=40,
                                              operating_expenses=250_000))
    assert ist.cogs == 600_000
    assert ist.gross_profit == 400_000
    assert ist.gross_margin_percent == 40.0
    assert ist.depreciation == 20_000
    assert ist.ebitda == 150_000
    assert ist.ebit == 130_000
    assert ist.ebt == 130_000
    assert ist.taxes == 31_200
    assert ist.tax_breakdown.irpj == 19_500
    assert ist.tax_breakdown.csll == 11_700
    assert ist.net_income == 98_800


def test_explicit_cogs_beats_margin():
    ist = derive_income_statement(PeriodInput(revenue=500_000, cogs=200_000, gross_margin_percent=10))
    assert ist.cogs == 200_000
    assert ist.gross_margin_percent == 60.0


def test_default_margin_applies_without_cogs_or_margin():
    ist = derive_income_statement(PeriodInput(revenue=100_000))
    assert ist.cogs == 60_000


def test_default_margin_is_configurable():
    config = EngineConfig(income_statement=IncomeStatementAssumptions(default_gross_margin_percent=25))
    ist = derive_income_statement(PeriodInput(revenue=100_000), config=config)
    assert ist.cogs == 75_000


def test_zero_revenue_keeps_margin_defined():
    ist = derive_income_statement(PeriodInput(revenue=0, gross_margin_percent=45, operating_expenses=50_000))
    assert ist.cogs == 0
    assert ist.gross_margin_percent == 0
    assert ist.net_income == -50_000
    assert ist.taxes == 0


def test_financial_result_flows_into_ebt():
    ist = derive_income_statement(PeriodInput(
        revenue=1_000_000, cogs=600_000, operating_expenses=200_000,
        depreciation=10_000, financial_revenue=5_000, financial_expenses=25_000,
    ))
    assert ist.net_financial_result == -20_000
    assert ist.ebt == 170_000


def test_override_cogs_takes_priority():
    period = PeriodInput(revenue=1_000_000, cogs=500_000, overrides={OverrideField.COGS: 700_000})
    ist = derive_income_statement(period)
    assert ist.cogs == 700_000
    assert ist.gross_profit == 300_000


def test_override_ebitda_drives_downstream_lines():
    period = PeriodInput(revenue=1_000_000, gross_margin_percent=40, operating_expenses=100_000,
                         depreciation=0, overrides={OverrideField.EBITDA: 50_000})
    ist = derive_income_statement(period)
    assert ist.ebitda == 50_000
    assert ist.ebit == 50_000
    assert ist.audit_trail.find("ebitda").overridden


def test_audit_trail_records_steps_and_inputs():
    period = PeriodInput(revenue=1_000_000, gross_margin_percent=40, operating_expenses=100_000,
                         overrides={OverrideField.DEPRECIATION: 5_000})
    trail = derive_income_statement(period).audit_trail

    ebitda = trail.find("ebitda")
    assert ebitda.formula == "gross_profit - operating_expenses"
    assert ebitda.inputs == {"gross_profit": 400_000, "operating_expenses": 100_000}
    assert ebitda.value == 300_000
    assert trail.find("ebit") is not None
    assert trail.find("taxes") is not None
    assert trail.original_values["revenue"] == 1_000_000
    assert trail.overrides == {"depreciation": 5_000}
    assert trail.timestamp


def test_out_of_range_margin_is_recorded_not_raised():
    ist = derive_income_statement(PeriodInput(revenue=100_000, gross_margin_percent=150))
    assert not ist.audit_trail.validation.is_valid
    assert any("Gross margin must be between 0-100%" in e for e in ist.audit_trail.validation.errors)
