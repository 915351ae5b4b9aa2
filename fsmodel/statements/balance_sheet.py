"""
Balance Sheet Estimator
Heuristic reconstruction of a balanced balance sheet from revenue and working
capital. Total assets come from an asset-turnover assumption unless they are
known; long-term debt and equity split the residual to hit a target
debt/equity ratio, so assets = liabilities + equity by construction.
"""

from typing import Optional

from ..models import BalanceSheet, WorkingCapitalMetrics
from ..numeric import round2, safe_divide
from ..settings import BalanceSheetAssumptions


def estimate_balance_sheet(
    revenue: float,
    working_capital: Optional[WorkingCapitalMetrics] = None,
    assumptions: Optional[BalanceSheetAssumptions] = None,
    total_assets: Optional[float] = None,
    asset_turnover: Optional[float] = None,
) -> BalanceSheet:
    """
    Estimate the balance sheet for one period.

    Args:
        revenue: Period revenue
        working_capital: Receivables/inventory/payables; estimated from the
            current-asset allocation when missing
        assumptions: Allocation shares and rates
        total_assets: Independently known total assets (skips the turnover estimate)
        asset_turnover: Custom turnover, overriding the configured one
    """
    a = assumptions or BalanceSheetAssumptions()
    turnover = asset_turnover if asset_turnover and asset_turnover > 0 else a.asset_turnover

    if total_assets is not None and total_assets > 0:
        estimate = round2(total_assets)
    else:
        estimate = round2(safe_divide(revenue, turnover))

    current_target = estimate * a.current_asset_share

    if working_capital is not None:
        receivables = working_capital.accounts_receivable_value
        inventory = working_capital.inventory_value
        payables = working_capital.accounts_payable_value
    else:
        receivables = round2(current_target * a.receivable_share_of_current_assets)
        inventory = round2(current_target * a.inventory_share_of_current_assets)
        payables = round2(current_target * a.payable_share_of_current_assets)

    # cash absorbs the remainder of the current-asset allocation
    cash = round2(max(0.0, current_target - receivables - inventory))
    current_assets = round2(cash + receivables + inventory)
    non_current_assets = round2(estimate * a.non_current_asset_share)
    assets = round2(current_assets + non_current_assets)

    short_term_debt = round2(revenue * a.short_term_debt_rate)
    accrued = round2(revenue * a.accrued_expense_rate)
    current_liabilities = round2(payables + short_term_debt + accrued)

    residual = assets - current_liabilities
    if residual > 0:
        long_term_debt = round2(residual * a.target_debt_to_equity / (1 + a.target_debt_to_equity))
    else:
        long_term_debt = 0.0
    equity = round2(assets - current_liabilities - long_term_debt)

    total_liabilities = round2(current_liabilities + long_term_debt)
    total_le = round2(total_liabilities + equity)

    return BalanceSheet(
        cash=cash,
        accounts_receivable=receivables,
        inventory=inventory,
        current_assets=current_assets,
        non_current_assets=non_current_assets,
        total_assets=assets,
        accounts_payable=payables,
        short_term_debt=short_term_debt,
        accrued_expenses=accrued,
        current_liabilities=current_liabilities,
        long_term_debt=long_term_debt,
        non_current_liabilities=long_term_debt,
        total_liabilities=total_liabilities,
        equity=equity,
        total_liabilities_and_equity=total_le,
        balance_check=round2(assets - total_le),
        total_assets_estimate=estimate,
        asset_turnover_used=turnover,
        current_ratio=round2(safe_divide(current_assets, current_liabilities)),
    )
