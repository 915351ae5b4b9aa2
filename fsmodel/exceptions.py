"""
Exception hierarchy for the financial model engine.

    FinancialModelError (base, carries a machine-readable code)
    +-- InputValidationError      invalid period inputs, raised once per batch
    +-- CalculationContractError  a deriver called without its upstream statement
    +-- ConfigError               unreadable or invalid assumptions file
    +-- AnalysisInputError        invalid arguments to an investment analysis
"""

from typing import List, Optional


class FinancialModelError(Exception):
    """Base class for all engine errors."""

    code: str = "FINANCIAL_MODEL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InputValidationError(FinancialModelError, ValueError):
    """One or more period inputs are invalid. Lists every offending period."""

    code = "INVALID_INPUT"

    def __init__(self, errors: List[str], periods: Optional[List[str]] = None):
        self.errors = list(errors)
        self.periods = list(periods or [])
        header = "Invalid period inputs"
        if self.periods:
            header += f" ({', '.join(self.periods)})"
        super().__init__(header + ":\n" + "\n".join(f"  - {e}" for e in self.errors))


class CalculationContractError(FinancialModelError):
    """A calculation step was invoked without a required upstream result."""

    code = "CALCULATION_CONTRACT"


class ConfigError(FinancialModelError):
    """Assumptions configuration could not be loaded."""

    code = "INVALID_CONFIG"


class AnalysisInputError(FinancialModelError, ValueError):
    """Invalid arguments to an investment analysis. Lists every problem."""

    code = "INVALID_ANALYSIS_INPUT"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid analysis inputs:\n" + "\n".join(f"  - {e}" for e in self.errors))
