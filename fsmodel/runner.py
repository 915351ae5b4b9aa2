"""
Model runs
One run = the calculation pipeline followed by the validation engine.
Runs share no state, so several may execute on separate threads; submit_run
moves a whole run off the caller's thread.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .engine import AggregateValidationReport, FocusedValidationReport, ValidationEngine
from .models import PeriodResult
from .pipeline import PeriodLike, process_periods
from .settings import EngineConfig

logger = logging.getLogger(__name__)

RUN_MODES = ('all', 'latest')


@dataclass
class ModelRun:
    results: List[PeriodResult]
    report: Union[AggregateValidationReport, FocusedValidationReport]
    period_type: Optional[str] = None
    mode: str = 'latest'


def run_model(
    periods: Sequence[PeriodLike],
    period_type: Optional[str] = "MONTHLY",
    config: Optional[EngineConfig] = None,
    mode: str = 'latest',
) -> ModelRun:
    """Calculate every period, then validate. Raises InputValidationError on bad input."""
    if mode not in RUN_MODES:
        raise ValueError(f"Unknown validation mode '{mode}' (expected one of {', '.join(RUN_MODES)})")
    config = config or EngineConfig()
    results = process_periods(periods, period_type, config)
    engine = ValidationEngine(config)
    report = engine.validate_all(results) if mode == 'all' else engine.validate_latest(results)
    logger.info("Run finished: %d periods, health %s", len(results), report.overall_health)
    return ModelRun(results=results, report=report, period_type=period_type, mode=mode)


def submit_run(
    periods: Sequence[PeriodLike],
    period_type: Optional[str] = "MONTHLY",
    config: Optional[EngineConfig] = None,
    mode: str = 'latest',
    executor: Optional[ThreadPoolExecutor] = None,
) -> "Future[ModelRun]":
    """
    Run in the background and return a Future.

    Inside the worker the run is strictly sequential. Errors surface from
    Future.result(). Without an executor a single-worker one is created and
    shut down after the run.
    """
    # snapshot the batch so later caller mutations cannot leak into the run
    periods = list(periods)
    if executor is not None:
        return executor.submit(run_model, periods, period_type, config, mode)

    own_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fsmodel-run")
    future = own_executor.submit(run_model, periods, period_type, config, mode)
    future.add_done_callback(lambda _: own_executor.shutdown(wait=False))
    return future
