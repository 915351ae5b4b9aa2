"""
Investment Analysis
Discounted cash flow tools that sit beside the statement model: NPV, IRR,
payback, break-even, cash flow projection, one-at-a-time sensitivity and
a Monte Carlo NPV simulation.

Every figure passes through safe_divide/round2, so degenerate inputs give
0.0 or None rather than NaN, infinity or an exception. Arguments that make
the question meaningless raise AnalysisInputError listing every problem.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .exceptions import AnalysisInputError
from .numeric import round2, safe_divide

logger = logging.getLogger(__name__)

IRR_GUESS = 0.1
IRR_MAX_ITERATIONS = 100
IRR_TOLERANCE = 1e-5
IRR_RATE_BOUNDS = (-0.99, 10.0)

SIMULATION_VARIABLES = ("discount_rate", "initial_investment")
DISTRIBUTIONS = ("uniform", "normal")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_cash_flows(cash_flows: Sequence[float], minimum: int = 1) -> List[str]:
    if cash_flows is None or len(cash_flows) < minimum:
        return [f"At least {minimum} cash flow(s) required"]
    if not all(_is_number(cf) for cf in cash_flows):
        return ["Cash flows must be finite numbers"]
    return []


def _discount_factor(rate: float, periods: int) -> float:
    """(1 + rate) ** periods, or inf once that overflows."""
    try:
        return (1 + rate) ** periods
    except OverflowError:
        return math.inf


# ============================================================================
# Discounted cash flow
# ============================================================================

@dataclass
class NPVResult:
    npv: float
    profitability_index: float
    present_values: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class IRRResult:
    """IRR as a percentage; irr is None when Newton iteration fails."""
    irr: Optional[float]
    is_valid: bool
    iterations: int
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PaybackResult:
    payback_period: Optional[float]
    is_within_project_life: bool
    cumulative_cash_flows: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_npv(
    cash_flows: Sequence[float],
    discount_rate: float,
    initial_investment: float = 0.0,
) -> NPVResult:
    """
    Net present value of flows received at the end of periods 1..n,
    less an investment made at period 0.

    Args:
        cash_flows: One flow per period
        discount_rate: Per-period rate as a decimal (0.1 = 10%)
        initial_investment: Outlay at period 0, as a positive amount

    Raises:
        AnalysisInputError: no cash flows, or a rate at or below -100%
    """
    errors = _check_cash_flows(cash_flows)
    if not _is_number(discount_rate) or discount_rate <= -1:
        errors.append("Discount rate must be greater than -100%")
    if not _is_number(initial_investment):
        errors.append("Initial investment must be a finite number")
    if errors:
        raise AnalysisInputError(errors)

    present_values = [safe_divide(cf, _discount_factor(discount_rate, t + 1)) for t, cf in enumerate(cash_flows)]
    total = sum(present_values)
    index = safe_divide(total, initial_investment) if initial_investment > 0 else 0.0
    return NPVResult(
        npv=round2(total - initial_investment),
        profitability_index=round2(index),
        present_values=[round2(pv) for pv in present_values],
    )


def calculate_irr(
    cash_flows: Sequence[float],
    guess: float = IRR_GUESS,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: float = IRR_TOLERANCE,
) -> IRRResult:
    """
    Internal rate of return by Newton-Raphson.

    cash_flows[0] is the period-0 flow, normally the negative investment.
    The rate is clamped to IRR_RATE_BOUNDS after every step. Flows without
    a sign change, a flat derivative or no convergence within max_iterations
    give an invalid result instead of raising.
    """
    errors = _check_cash_flows(cash_flows, minimum=2)
    if errors:
        raise AnalysisInputError(errors)
    if not (any(cf < 0 for cf in cash_flows) and any(cf > 0 for cf in cash_flows)):
        return IRRResult(irr=None, is_valid=False, iterations=0,
                         error="Cash flows must change sign for an IRR to exist")

    low, high = IRR_RATE_BOUNDS
    rate = min(max(guess, low), high)
    for iteration in range(max_iterations):
        npv = 0.0
        slope = 0.0
        for t, cf in enumerate(cash_flows):
            factor = _discount_factor(rate, t)
            npv += safe_divide(cf, factor)
            slope -= safe_divide(t * cf, factor * (1 + rate))

        if abs(npv) < tolerance:
            return IRRResult(irr=round2(rate * 100), is_valid=True, iterations=iteration)

        step = safe_divide(npv, slope)
        if step == 0:
            break
        rate = min(max(rate - step, low), high)

    logger.debug("IRR did not converge for %d cash flows (last rate %.6f)", len(cash_flows), rate)
    return IRRResult(irr=None, is_valid=False, iterations=max_iterations,
                     error="IRR calculation did not converge")


def calculate_payback_period(cash_flows: Sequence[float], initial_investment: float) -> PaybackResult:
    """
    Periods until cumulative flows recover the investment, interpolated
    within the recovering period. None if the project never pays back.
    """
    errors = _check_cash_flows(cash_flows)
    if not _is_number(initial_investment) or initial_investment <= 0:
        errors.append("Initial investment must be positive")
    if errors:
        raise AnalysisInputError(errors)

    cumulative = -initial_investment
    payback: Optional[float] = None
    running: List[float] = []
    for i, cf in enumerate(cash_flows):
        previous = cumulative
        cumulative += cf
        running.append(round2(cumulative))
        if payback is None and cumulative >= 0:
            payback = round2(i + safe_divide(-previous, cf))

    return PaybackResult(
        payback_period=payback,
        is_within_project_life=payback is not None,
        cumulative_cash_flows=running,
    )


# ============================================================================
# Break-even
# ============================================================================

@dataclass
class BreakEvenResult:
    contribution_margin: float
    contribution_margin_ratio: float
    break_even_units: Optional[float]
    break_even_revenue: Optional[float]
    error: Optional[str] = None

    def margin_of_safety(self, revenue: float) -> float:
        """Percent of revenue above break-even revenue."""
        if self.break_even_revenue is None:
            return 0.0
        return round2(safe_divide(revenue - self.break_even_revenue, revenue) * 100)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_break_even(
    fixed_costs: float,
    variable_cost_per_unit: float,
    price_per_unit: float,
) -> BreakEvenResult:
    """Units and revenue at which contribution margin covers fixed costs."""
    errors = []
    if not _is_number(fixed_costs) or fixed_costs < 0:
        errors.append("Fixed costs cannot be negative")
    if not _is_number(variable_cost_per_unit) or variable_cost_per_unit < 0:
        errors.append("Variable cost per unit cannot be negative")
    if not _is_number(price_per_unit) or price_per_unit <= 0:
        errors.append("Price per unit must be positive")
    if errors:
        raise AnalysisInputError(errors)

    margin = price_per_unit - variable_cost_per_unit
    ratio = round2(safe_divide(margin, price_per_unit) * 100)
    if margin <= 0:
        return BreakEvenResult(
            contribution_margin=round2(margin),
            contribution_margin_ratio=ratio,
            break_even_units=None,
            break_even_revenue=None,
            error="Negative or zero contribution margin: price does not cover variable cost",
        )

    units = safe_divide(fixed_costs, margin)
    return BreakEvenResult(
        contribution_margin=round2(margin),
        contribution_margin_ratio=ratio,
        break_even_units=round2(units),
        break_even_revenue=round2(units * price_per_unit),
    )


# ============================================================================
# Projection and sensitivity
# ============================================================================

@dataclass
class CashFlowProjection:
    cash_flows: List[float]
    present_values: List[float]
    total_present_value: float
    # Gordon growth value of the flows after the horizon; None unless rate > growth
    terminal_value: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SensitivityPoint:
    value: float
    result: float
    percentage_change: float
    impact: float


def project_cash_flows(
    base_cash_flow: float,
    growth_rate: float,
    periods: int,
    discount_rate: float = 0.0,
) -> CashFlowProjection:
    """Grow a base flow for `periods` periods; period 0 is the base itself."""
    errors = []
    if not _is_number(base_cash_flow):
        errors.append("Base cash flow must be a finite number")
    if not isinstance(periods, int) or isinstance(periods, bool) or periods < 1:
        errors.append("Periods must be a positive integer")
    if not _is_number(growth_rate) or growth_rate <= -1:
        errors.append("Growth rate must be greater than -100%")
    if not _is_number(discount_rate) or discount_rate <= -1:
        errors.append("Discount rate must be greater than -100%")
    if errors:
        raise AnalysisInputError(errors)

    flows = [base_cash_flow * _discount_factor(growth_rate, i) for i in range(periods)]
    present_values = [safe_divide(cf, _discount_factor(discount_rate, i)) for i, cf in enumerate(flows)]
    terminal = None
    if discount_rate > growth_rate:
        terminal = round2(safe_divide(flows[-1] * (1 + growth_rate), discount_rate - growth_rate))

    return CashFlowProjection(
        cash_flows=[round2(cf) for cf in flows],
        present_values=[round2(pv) for pv in present_values],
        total_present_value=round2(sum(present_values)),
        terminal_value=terminal,
    )


def sensitivity_analysis(
    calculation: Callable[[Dict[str, Any]], float],
    base_case: Mapping[str, Any],
    variables: Mapping[str, Sequence[float]],
) -> Dict[str, List[SensitivityPoint]]:
    """
    Re-run `calculation` moving one input at a time over its range.

    percentage_change is the input's move versus the base case and impact
    the result's move versus the base result, both in percent. Errors from
    the calculation propagate.
    """
    unknown = [name for name in variables if name not in base_case]
    if unknown:
        raise AnalysisInputError([f"Sensitivity variable '{name}' is not in the base case" for name in unknown])

    base_result = calculation(dict(base_case))
    report: Dict[str, List[SensitivityPoint]] = {}
    for name, values in variables.items():
        base_value = base_case[name]
        points = []
        for value in values:
            result = calculation({**base_case, name: value})
            points.append(SensitivityPoint(
                value=value,
                result=result,
                percentage_change=round2(safe_divide(value - base_value, base_value) * 100),
                impact=round2(safe_divide(result - base_result, base_result) * 100),
            ))
        report[name] = points
    return report


# ============================================================================
# Monte Carlo
# ============================================================================

@dataclass
class SimulationSummary:
    """Distribution of simulated NPVs; probability_of_success is the percent above zero."""
    iterations: int
    successful_iterations: int
    mean: float
    median: float
    std: float
    min: float
    max: float
    confidence_level: float
    confidence_interval: Tuple[float, float]
    percentiles: Dict[str, float]
    probability_of_success: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['confidence_interval'] = list(self.confidence_interval)
        return d


def _check_simulation_variables(variables: Mapping[str, Mapping[str, Any]]) -> List[str]:
    errors = []
    for name, spec in variables.items():
        if name not in SIMULATION_VARIABLES:
            errors.append(f"Unknown simulation variable '{name}' (expected one of {', '.join(SIMULATION_VARIABLES)})")
            continue
        low, high = spec.get('min'), spec.get('max')
        if not (_is_number(low) and _is_number(high)) or low > high:
            errors.append(f"'{name}' needs numeric min <= max")
        if spec.get('distribution', 'uniform') not in DISTRIBUTIONS:
            errors.append(f"'{name}' distribution must be one of {', '.join(DISTRIBUTIONS)}")
    return errors


def simulate_npv(
    cash_flows: Sequence[float],
    discount_rate: float,
    initial_investment: float,
    variables: Mapping[str, Mapping[str, Any]],
    iterations: int = 1000,
    confidence_level: float = 0.95,
    seed: Optional[int] = None,
) -> SimulationSummary:
    """
    Monte Carlo NPV: sample the uncertain inputs, value every scenario.

    Each variable is {"min", "max", "distribution"}. Uniform draws span
    [min, max]; normal draws centre on the midpoint with sigma (max - min) / 6.
    Scenarios whose rate falls to -100% or below are dropped, which shows
    as successful_iterations < iterations.
    """
    errors = _check_cash_flows(cash_flows)
    if not _is_number(discount_rate) or not _is_number(initial_investment):
        errors.append("Discount rate and initial investment must be finite numbers")
    if not isinstance(iterations, int) or iterations < 1:
        errors.append("Iterations must be a positive integer")
    if not 0 < confidence_level < 1:
        errors.append("Confidence level must be between 0 and 1")
    errors.extend(_check_simulation_variables(variables))
    if errors:
        raise AnalysisInputError(errors)

    rng = np.random.default_rng(seed)
    samples = {
        'discount_rate': np.full(iterations, float(discount_rate)),
        'initial_investment': np.full(iterations, float(initial_investment)),
    }
    for name, spec in variables.items():
        low, high = float(spec['min']), float(spec['max'])
        if spec.get('distribution', 'uniform') == 'normal':
            samples[name] = rng.normal((low + high) / 2, (high - low) / 6, iterations)
        else:
            samples[name] = rng.uniform(low, high, iterations)

    rates = samples['discount_rate']
    usable = rates > -1
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(1, len(flows) + 1)
    with np.errstate(over='ignore', divide='ignore', invalid='ignore'):
        discount = (1 + rates[usable][:, None]) ** periods
        npvs = (flows / discount).sum(axis=1) - samples['initial_investment'][usable]
    npvs = np.sort(npvs[np.isfinite(npvs)])

    n = len(npvs)
    if n == 0:
        raise AnalysisInputError(["No simulated scenario produced a finite NPV"])
    logger.debug("Simulated %d of %d NPV scenarios", n, iterations)

    def at(share: float) -> float:
        return round2(npvs[min(int(math.floor(share * n)), n - 1)])

    lower, upper = (1 - confidence_level) / 2, (1 + confidence_level) / 2
    return SimulationSummary(
        iterations=iterations,
        successful_iterations=n,
        mean=round2(npvs.mean()),
        median=round2(np.median(npvs)),
        std=round2(npvs.std()),
        min=round2(npvs[0]),
        max=round2(npvs[-1]),
        confidence_level=confidence_level,
        confidence_interval=(at(lower), at(upper)),
        percentiles={'p5': at(0.05), 'p25': at(0.25), 'p75': at(0.75), 'p95': at(0.95)},
        probability_of_success=round2(float((npvs > 0).mean()) * 100),
    )
