from .models import (
    PeriodInput, OverrideField, PeriodResult, IncomeStatement, WorkingCapitalMetrics,
    CashFlowStatement, BalanceSheet, FinancialRatios, Trends, AuditTrail, CalculationStep,
    TaxBreakdown, ValidationIssue, Severity, CheckCategory,
)
from .numeric import safe_divide, round2, get_tolerance
from .settings import EngineConfig, load_engine_config, validate_engine_config, resolve_period_length
from .exceptions import (
    FinancialModelError, InputValidationError, CalculationContractError, ConfigError, AnalysisInputError,
)
from .pipeline import process_periods, calculate_trends
from .engine import (
    ValidationEngine, AggregateValidationReport, FocusedValidationReport, validate_all, validate_latest,
)
from .runner import run_model, submit_run, ModelRun
from .parsers import build_period_input, load_periods
from .field_mapper import FieldMapper, load_mapping_config
from .analysis import (
    calculate_npv, calculate_irr, calculate_payback_period, calculate_break_even,
    project_cash_flows, sensitivity_analysis, simulate_npv,
)
