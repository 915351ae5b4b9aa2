"""
Engine Configuration
Tax rules, default drivers, balance-sheet heuristics and validation thresholds,
grouped into one immutable EngineConfig that is passed into every run.
Defaults live in config/default_assumptions.yaml.
"""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigError


DEFAULT_ASSUMPTIONS_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), 'config', 'default_assumptions.yaml'
)


# ============================================================================
# Sections
# ============================================================================

@dataclass(frozen=True)
class TaxConfig:
    """Progressive IRPJ + CSLL profit tax."""
    csll_rate: float = 0.09
    irpj_rate: float = 0.15
    irpj_surtax_rate: float = 0.10
    surtax_monthly_threshold: float = 20000.0


@dataclass(frozen=True)
class IncomeStatementAssumptions:
    default_gross_margin_percent: float = 40.0
    default_depreciation_rate: float = 0.02


@dataclass(frozen=True)
class WorkingCapitalAssumptions:
    default_receivable_days: float = 45.0
    default_inventory_days: float = 30.0
    default_payable_days: float = 60.0


@dataclass(frozen=True)
class CashFlowAssumptions:
    default_capex_rate: float = 0.05


@dataclass(frozen=True)
class BalanceSheetAssumptions:
    """Heuristic allocation shares for the estimated balance sheet."""
    asset_turnover: float = 2.5
    current_asset_share: float = 0.60
    non_current_asset_share: float = 0.40
    short_term_debt_rate: float = 0.05
    accrued_expense_rate: float = 0.02
    target_debt_to_equity: float = 0.5
    receivable_share_of_current_assets: float = 0.40
    inventory_share_of_current_assets: float = 0.20
    payable_share_of_current_assets: float = 0.25


@dataclass(frozen=True)
class ValidationThresholds:
    tolerance_percent: float = 0.005
    equation_absolute_minimum: float = 1.0
    self_consistency_tolerance: float = 1.0
    balance_critical_percent: float = 0.02
    balance_critical_minimum: float = 100.0
    balance_warning_percent: float = 0.01
    balance_warning_minimum: float = 1.0
    inventory_days_critical: float = 365.0
    inventory_days_low: float = 1.0
    inventory_revenue_ratio: float = 0.75
    negative_fcf_share: float = 0.60
    long_cash_cycle_days: float = 120.0
    high_payable_days: float = 180.0
    max_overrides: int = 7
    balance_drift_floor: float = 100.0
    gross_margin_swing_pp: float = 15.0
    net_margin_swing_pp: float = 10.0
    liquidity_crisis_multiple: float = 2.0
    max_effective_tax_rate: float = 45.0
    ocf_divergence_ratio: float = 0.20


@dataclass(frozen=True)
class EngineConfig:
    """Complete, immutable set of assumptions for one run."""
    tax: TaxConfig = field(default_factory=TaxConfig)
    income_statement: IncomeStatementAssumptions = field(default_factory=IncomeStatementAssumptions)
    working_capital: WorkingCapitalAssumptions = field(default_factory=WorkingCapitalAssumptions)
    cash_flow: CashFlowAssumptions = field(default_factory=CashFlowAssumptions)
    balance_sheet: BalanceSheetAssumptions = field(default_factory=BalanceSheetAssumptions)
    validation: ValidationThresholds = field(default_factory=ValidationThresholds)


SECTION_TYPES = {f.name: f.default_factory for f in fields(EngineConfig)}

# Shares that must stay within [0, 1]
SHARE_KEYS = {
    'balance_sheet': {
        'current_asset_share', 'non_current_asset_share',
        'receivable_share_of_current_assets', 'inventory_share_of_current_assets',
        'payable_share_of_current_assets',
    },
    'validation': {'negative_fcf_share'},
}


# ============================================================================
# Period types
# ============================================================================

@dataclass(frozen=True)
class PeriodLength:
    days: int
    months: int


PERIOD_TYPES: Dict[str, PeriodLength] = {
    'MONTHLY': PeriodLength(days=30, months=1),
    'QUARTERLY': PeriodLength(days=90, months=3),
    'YEARLY': PeriodLength(days=365, months=12),
}

DEFAULT_PERIOD_LENGTH = PERIOD_TYPES['MONTHLY']


def resolve_period_length(period_type: Optional[str]) -> PeriodLength:
    """MONTHLY→30, QUARTERLY→90, YEARLY→365; anything else is treated as monthly."""
    if not period_type:
        return DEFAULT_PERIOD_LENGTH
    return PERIOD_TYPES.get(str(period_type).strip().upper(), DEFAULT_PERIOD_LENGTH)


# ============================================================================
# YAML loading
# ============================================================================

def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config {path} must be a mapping of sections")
    return raw


def _check_sections(raw: Dict[str, Any]) -> List[str]:
    """Return a list of problems found in a raw assumptions mapping."""
    issues = []
    for section, values in raw.items():
        if section not in SECTION_TYPES:
            issues.append(f"ERROR: unknown section '{section}'")
            continue
        if not isinstance(values, dict):
            issues.append(f"ERROR: section '{section}' must be a mapping")
            continue
        known = {f.name for f in fields(SECTION_TYPES[section]())}
        for key, value in values.items():
            if key not in known:
                issues.append(f"ERROR: unknown key '{section}.{key}'")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                issues.append(f"ERROR: '{section}.{key}' must be numeric (got {value!r})")
                continue
            if key in SHARE_KEYS.get(section, set()) and not 0 <= value <= 1:
                issues.append(f"ERROR: '{section}.{key}' must be between 0 and 1 (got {value})")
            elif value < 0:
                issues.append(f"ERROR: '{section}.{key}' must not be negative (got {value})")
    return issues


def config_from_dict(raw: Dict[str, Any], base: Optional[EngineConfig] = None) -> EngineConfig:
    """
    Overlay a raw {section: {key: value}} mapping on top of base (or the
    built-in defaults). Raises ConfigError on unknown or invalid keys.
    """
    issues = _check_sections(raw)
    if issues:
        raise ConfigError("; ".join(issues))

    config = base or EngineConfig()
    sections = {}
    for section, values in raw.items():
        current = getattr(config, section)
        typed = {}
        for f in fields(current):
            if f.name in values:
                typed[f.name] = int(values[f.name]) if f.type in (int, 'int') else float(values[f.name])
        sections[section] = replace(current, **typed)
    return replace(config, **sections)


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load assumptions from YAML.
    The packaged defaults are always loaded first; a custom file only needs
    the keys it changes.
    """
    config = config_from_dict(_read_yaml(DEFAULT_ASSUMPTIONS_PATH))
    if config_path is None:
        return config
    return config_from_dict(_read_yaml(config_path), base=config)


def validate_engine_config(config_path: str) -> List[str]:
    """
    Validate an assumptions file for common issues.
    Returns list of warning/error messages.
    """
    try:
        raw = _read_yaml(config_path)
    except ConfigError as e:
        return [f"ERROR: {e}"]

    issues = _check_sections(raw)
    bs = raw.get('balance_sheet') or {}
    if isinstance(bs, dict) and not issues:
        current = bs.get('current_asset_share', BalanceSheetAssumptions.current_asset_share)
        non_current = bs.get('non_current_asset_share', BalanceSheetAssumptions.non_current_asset_share)
        if abs(current + non_current - 1.0) > 1e-9:
            issues.append(
                f"WARNING: balance_sheet asset shares sum to {current + non_current:.2f}, "
                f"estimated total assets will not match revenue / asset_turnover"
            )
    if not issues:
        issues.append("OK: Config is valid")
    return issues
