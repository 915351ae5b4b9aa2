from .income_statement import derive_income_statement, calculate_brazilian_tax, check_period_input
from .working_capital import derive_working_capital
from .cash_flow import derive_cash_flow, working_capital_change
from .balance_sheet import estimate_balance_sheet
from .ratios import calculate_ratios
