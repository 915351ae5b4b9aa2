"""
Period Orchestrator
Validates a batch of period inputs, then derives every statement period by
period, threading the prior PeriodResult into the next cash flow, and
computes period-over-period trends.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from .exceptions import InputValidationError
from .field_mapper import FieldMapper
from .models import PeriodInput, PeriodResult, Trends
from .numeric import round2, safe_divide
from .parsers import build_period_input
from .settings import EngineConfig, resolve_period_length
from .statements import (
    calculate_ratios, check_period_input, derive_cash_flow, derive_income_statement,
    derive_working_capital, estimate_balance_sheet,
)

logger = logging.getLogger(__name__)

PeriodLike = Union[PeriodInput, Mapping[str, Any]]


def _label(period: PeriodInput, index: int) -> str:
    return period.label or f"Period {index + 1}"


def validate_period_inputs(
    periods: Sequence[PeriodLike],
    mapper: Optional[FieldMapper] = None,
) -> List[PeriodInput]:
    """
    Convert and range-check the whole batch.
    Raises a single InputValidationError listing every offending period.
    """
    if mapper is None:
        mapper = FieldMapper()
    converted: List[PeriodInput] = []
    errors: List[str] = []
    bad_periods: List[str] = []

    for i, raw in enumerate(periods):
        label = f"Period {i + 1}"
        try:
            period = build_period_input(raw, mapper=mapper)
        except InputValidationError as e:
            errors.extend(f"{label}: {msg}" for msg in e.errors)
            bad_periods.append(label)
            continue

        label = _label(period, i)
        period_errors, _ = check_period_input(period)
        if period_errors:
            errors.extend(f"{label}: {msg}" for msg in period_errors)
            bad_periods.append(label)
        converted.append(period)

    if errors:
        raise InputValidationError(errors, bad_periods)
    return converted


def calculate_trends(current: PeriodResult, previous: Optional[PeriodResult]) -> Optional[Trends]:
    """Deltas versus the prior period; None for the first period."""
    if previous is None:
        return None
    cur, prev = current.income_statement, previous.income_statement
    return Trends(
        revenue_growth=round2(safe_divide(cur.revenue - prev.revenue, prev.revenue) * 100),
        margin_improvement=round2(cur.gross_margin_percent - prev.gross_margin_percent),
        # absolute base keeps growth defined through sign changes
        profit_growth=round2(safe_divide(cur.net_income - prev.net_income, abs(prev.net_income)) * 100),
        net_margin_change=round2(cur.net_margin - prev.net_margin),
    )


def process_period(
    period: PeriodInput,
    index: int,
    previous: Optional[PeriodResult],
    period_type: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> PeriodResult:
    """Derive all statements for one period."""
    config = config or EngineConfig()
    length = resolve_period_length(period_type)

    income = derive_income_statement(period, months=length.months, config=config)
    working_capital = derive_working_capital(period, income, length.days, config)
    cash_flow = derive_cash_flow(period, income, working_capital, previous, config)
    balance_sheet = estimate_balance_sheet(
        income.revenue,
        working_capital,
        config.balance_sheet,
        total_assets=period.total_assets,
        asset_turnover=period.asset_turnover,
    )
    ratios = calculate_ratios(income, balance_sheet, cash_flow)

    result = PeriodResult(
        period_index=index,
        label=_label(period, index),
        days_in_period=length.days,
        months_in_period=length.months,
        period_input=period,
        income_statement=income,
        working_capital=working_capital,
        cash_flow=cash_flow,
        balance_sheet=balance_sheet,
        ratios=ratios,
    )
    result.trends = calculate_trends(result, previous)
    return result


def process_periods(
    periods: Sequence[PeriodLike],
    period_type: Optional[str] = "MONTHLY",
    config: Optional[EngineConfig] = None,
    mapper: Optional[FieldMapper] = None,
) -> List[PeriodResult]:
    """
    Run the full calculation pipeline over an ordered list of periods.

    Args:
        periods: PeriodInput objects or loosely-keyed mappings
        period_type: MONTHLY, QUARTERLY, YEARLY (anything else is monthly)
        config: Assumptions; defaults to the built-in EngineConfig

    Raises:
        InputValidationError: before any computation, if any period is invalid
    """
    if not periods:
        logger.warning("No periods supplied; nothing to calculate")
        return []

    config = config or EngineConfig()
    inputs = validate_period_inputs(periods, mapper=mapper)
    length = resolve_period_length(period_type)
    logger.debug("Processing %d %s periods (%d days each)", len(inputs), period_type, length.days)

    results: List[PeriodResult] = []
    previous: Optional[PeriodResult] = None
    for i, period in enumerate(inputs):
        previous = process_period(period, i, previous, period_type, config)
        logger.debug("%s: revenue=%.2f net_income=%.2f", previous.label,
                     previous.income_statement.revenue, previous.income_statement.net_income)
        results.append(previous)
    return results
