"""
Financial Model Data Models
Period inputs, derived statements and validation issues.
All monetary values are plain floats rounded to cents; percentages are
rounded to 2 decimals.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any, Mapping, Tuple


# ============================================================================
# Inputs
# ============================================================================

class OverrideField(Enum):
    """Metrics that may be pinned to a user-supplied value."""
    REVENUE = "revenue"
    COGS = "cogs"
    GROSS_PROFIT = "gross_profit"
    OPERATING_EXPENSES = "operating_expenses"
    EBITDA = "ebitda"
    DEPRECIATION = "depreciation"
    EBIT = "ebit"
    NET_FINANCIAL_RESULT = "net_financial_result"
    EBT = "ebt"
    TAXES = "taxes"
    NET_INCOME = "net_income"
    ACCOUNTS_RECEIVABLE_VALUE = "accounts_receivable_value"
    INVENTORY_VALUE = "inventory_value"
    ACCOUNTS_PAYABLE_VALUE = "accounts_payable_value"
    CAPEX = "capex"
    CLOSING_CASH = "closing_cash"


@dataclass(frozen=True)
class PeriodInput:
    """Raw business drivers for one period. Optional drivers are None when not supplied."""
    revenue: float = 0.0
    cogs: Optional[float] = None
    gross_margin_percent: Optional[float] = None
    operating_expenses: float = 0.0
    depreciation: Optional[float] = None
    financial_revenue: float = 0.0
    financial_expenses: float = 0.0
    # Working capital: value wins over days
    accounts_receivable_days: Optional[float] = None
    inventory_days: Optional[float] = None
    accounts_payable_days: Optional[float] = None
    accounts_receivable_value: Optional[float] = None
    inventory_value: Optional[float] = None
    accounts_payable_value: Optional[float] = None
    # Cash flow drivers
    capex: Optional[float] = None
    debt_change: float = 0.0
    equity_change: float = 0.0
    dividends: float = 0.0
    opening_cash: Optional[float] = None
    # Balance sheet hints
    total_assets: Optional[float] = None
    asset_turnover: Optional[float] = None
    label: Optional[str] = None
    overrides: Mapping[OverrideField, float] = field(default_factory=dict)

    def override(self, name: OverrideField) -> Optional[float]:
        return self.overrides.get(name)

    @property
    def override_count(self) -> int:
        return len(self.overrides)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], mapper=None) -> "PeriodInput":
        """Build from a loosely-keyed dict (camelCase, snake_case or aliases)."""
        from .parsers import build_period_input
        return build_period_input(data, mapper=mapper)

    def to_dict(self) -> Dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if k != 'overrides'}
        d['overrides'] = {k.value: v for k, v in self.overrides.items()}
        return d


# ============================================================================
# Audit trail
# ============================================================================

@dataclass(frozen=True)
class CalculationStep:
    """One named derivation, e.g. EBITDA = gross_profit - operating_expenses."""
    step: str
    metric: str
    formula: str
    inputs: Dict[str, float]
    value: float
    overridden: bool = False


@dataclass
class InputCheck:
    """Out-of-range input findings recorded on the trail rather than raised."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class AuditTrail:
    """Timestamped record of how a statement was derived."""
    original_values: Dict[str, Any] = field(default_factory=dict)
    overrides: Dict[str, float] = field(default_factory=dict)
    steps: List[CalculationStep] = field(default_factory=list)
    validation: InputCheck = field(default_factory=InputCheck)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def record(self, step: str, metric: str, formula: str,
               inputs: Dict[str, float], value: float, overridden: bool = False) -> float:
        self.steps.append(CalculationStep(step, metric, formula, dict(inputs), value, overridden))
        return value

    def find(self, metric: str) -> Optional[CalculationStep]:
        """Return the step that produced metric, if any."""
        return next((s for s in self.steps if s.metric == metric), None)


# ============================================================================
# Statements
# ============================================================================

@dataclass(frozen=True)
class TaxBreakdown:
    irpj: float = 0.0
    irpj_base: float = 0.0
    irpj_surtax: float = 0.0
    csll: float = 0.0
    total: float = 0.0
    effective_rate: float = 0.0
    threshold: float = 0.0
    months: int = 12


@dataclass
class IncomeStatement:
    """Single-period P&L."""
    revenue: float = 0.0
    cogs: float = 0.0
    gross_profit: float = 0.0
    gross_margin_percent: float = 0.0
    operating_expenses: float = 0.0
    ebitda: float = 0.0
    ebitda_margin: float = 0.0
    depreciation: float = 0.0
    ebit: float = 0.0
    ebit_margin: float = 0.0
    financial_revenue: float = 0.0
    financial_expenses: float = 0.0
    net_financial_result: float = 0.0
    ebt: float = 0.0
    taxes: float = 0.0
    tax_breakdown: TaxBreakdown = field(default_factory=TaxBreakdown)
    effective_tax_rate: float = 0.0
    net_income: float = 0.0
    net_margin: float = 0.0
    audit_trail: AuditTrail = field(default_factory=AuditTrail, compare=False, repr=False)


@dataclass
class WorkingCapitalMetrics:
    dso: float = 0.0
    dio: float = 0.0
    dpo: float = 0.0
    accounts_receivable_value: float = 0.0
    inventory_value: float = 0.0
    accounts_payable_value: float = 0.0
    cash_conversion_cycle: float = 0.0
    working_capital_value: float = 0.0
    working_capital_percent: float = 0.0
    days_in_period: int = 365
    # component -> "override" | "value" | "days" | "default"
    sources: Dict[str, str] = field(default_factory=dict)


@dataclass
class CashFlowStatement:
    net_income: float = 0.0
    depreciation: float = 0.0
    working_capital_change: float = 0.0
    operating_cash_flow: float = 0.0
    capex: float = 0.0
    investing_cash_flow: float = 0.0
    free_cash_flow: float = 0.0
    debt_change: float = 0.0
    equity_change: float = 0.0
    dividends: float = 0.0
    financing_cash_flow: float = 0.0
    net_cash_flow: float = 0.0
    cash_conversion_rate: float = 0.0
    opening_cash: float = 0.0
    calculated_closing_cash: float = 0.0
    closing_cash: float = 0.0
    cash_reconciliation_difference: float = 0.0
    is_first_period: bool = True


@dataclass
class BalanceSheet:
    """Estimated balance sheet; a modeled approximation, not ledger data."""
    cash: float = 0.0
    accounts_receivable: float = 0.0
    inventory: float = 0.0
    current_assets: float = 0.0
    non_current_assets: float = 0.0
    total_assets: float = 0.0
    accounts_payable: float = 0.0
    short_term_debt: float = 0.0
    accrued_expenses: float = 0.0
    current_liabilities: float = 0.0
    long_term_debt: float = 0.0
    non_current_liabilities: float = 0.0
    total_liabilities: float = 0.0
    equity: float = 0.0
    total_liabilities_and_equity: float = 0.0
    balance_check: float = 0.0
    total_assets_estimate: float = 0.0
    asset_turnover_used: float = 0.0
    current_ratio: float = 0.0


@dataclass
class FinancialRatios:
    current_ratio: float = 0.0
    quick_ratio: float = 0.0
    cash_ratio: float = 0.0
    debt_to_equity: float = 0.0
    debt_ratio: float = 0.0
    equity_ratio: float = 0.0
    roe: float = 0.0
    roa: float = 0.0
    roic: float = 0.0
    asset_turnover: float = 0.0


@dataclass
class Trends:
    """Deltas versus the immediately preceding period."""
    revenue_growth: float = 0.0
    margin_improvement: float = 0.0
    profit_growth: float = 0.0
    net_margin_change: float = 0.0


@dataclass
class PeriodResult:
    """Everything derived for one period."""
    period_index: int
    label: str
    days_in_period: int
    months_in_period: int
    period_input: PeriodInput
    income_statement: IncomeStatement
    working_capital: WorkingCapitalMetrics
    cash_flow: CashFlowStatement
    balance_sheet: BalanceSheet
    ratios: FinancialRatios
    trends: Optional[Trends] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d['period_input'] = self.period_input.to_dict()
        d['income_statement'].pop('audit_trail', None)
        d['income_statement']['calculation_steps'] = [
            asdict(s) for s in self.income_statement.audit_trail.steps
        ]
        return d


# ============================================================================
# Validation
# ============================================================================

class Severity(Enum):
    """Validation issue severity levels."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class CheckCategory(Enum):
    """Categories of validation checks."""
    CONSISTENCY = "consistency"
    ANOMALY = "anomaly"
    OVERRIDE = "override"
    TREND = "trend"


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding. Produced once, never mutated."""
    type: str
    category: str
    message: str
    severity: Severity
    field: str
    period_label: Optional[str] = None
    period_index: Optional[int] = None
    suggestion: Optional[str] = None
    check_id: Optional[str] = None
    value: Optional[float] = None
    fields: Tuple[str, ...] = ()
    affected_periods: Tuple[str, ...] = ()

    @property
    def is_consolidated(self) -> bool:
        return bool(self.affected_periods)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "category": self.category,
            "message": self.message,
            "severity": self.severity.value,
            "field": self.field,
            "period_label": self.period_label,
            "period_index": self.period_index,
            "suggestion": self.suggestion,
            "check_id": self.check_id,
            "value": self.value,
            "fields": list(self.fields),
            "affected_periods": list(self.affected_periods),
        }
