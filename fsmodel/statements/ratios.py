"""
Ratio Calculator
Liquidity, leverage, profitability and efficiency ratios. Every division
goes through safe_divide, so zero denominators give 0.
"""

from ..models import BalanceSheet, CashFlowStatement, FinancialRatios, IncomeStatement
from ..numeric import round2, safe_divide


def calculate_ratios(
    income_statement: IncomeStatement,
    balance_sheet: BalanceSheet,
    cash_flow: CashFlowStatement,
) -> FinancialRatios:
    """Pure function of the three statements."""
    bs = balance_sheet
    total_liabilities = bs.total_liabilities or (bs.current_liabilities + bs.non_current_liabilities)

    return FinancialRatios(
        current_ratio=round2(safe_divide(bs.current_assets, bs.current_liabilities)),
        quick_ratio=round2(safe_divide(bs.current_assets - bs.inventory, bs.current_liabilities)),
        # operating cash flow coverage of current liabilities
        cash_ratio=round2(safe_divide(cash_flow.operating_cash_flow, bs.current_liabilities)),
        debt_to_equity=round2(safe_divide(total_liabilities, bs.equity)),
        debt_ratio=round2(safe_divide(total_liabilities, bs.total_assets)),
        equity_ratio=round2(safe_divide(bs.equity, bs.total_assets)),
        roe=round2(safe_divide(income_statement.net_income, bs.equity) * 100),
        roa=round2(safe_divide(income_statement.net_income, bs.total_assets) * 100),
        roic=round2(safe_divide(income_statement.ebit, bs.total_assets) * 100),
        asset_turnover=round2(safe_divide(income_statement.revenue, bs.total_assets)),
    )
