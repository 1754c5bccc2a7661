"""
Reduce a cycle's query results into one per-window total.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import METRIC_KEY
from .models import NEGATIVE, POSITIVE, ZERO_TOTAL, AggregationSummary, QueryResult, TimeWindow

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def _raw_values(data: Any, metric_key: str) -> Optional[pd.Series]:
    if not isinstance(data, dict):
        return None

    samples = data.get(metric_key)
    if not isinstance(samples, list) or not samples:
        return None

    return pd.Series(
        [s.get("value") if isinstance(s, dict) else None for s in samples],
        dtype=object,
    )


def _numeric(raw: pd.Series) -> pd.Series:
    scalar = raw.map(lambda v: isinstance(v, (str, int, float)) and not isinstance(v, bool))
    values = pd.to_numeric(raw.where(scalar), errors="coerce").astype(float)
    return values[np.isfinite(values)]


def parse_samples(data: Any, metric_key: str = METRIC_KEY) -> pd.Series:
    """
    Extract the numeric sample values for one metric from a response body.

    Missing, non-numeric and non-finite values are dropped, never read as 0.
    """
    raw = _raw_values(data, metric_key)
    if raw is None:
        return pd.Series(dtype=float)
    return _numeric(raw)


def sample_decimals(data: Any, metric_key: str = METRIC_KEY) -> List[Decimal]:
    """
    Usable sample values as Decimals built from the values as sent.

    pandas decides which samples are usable; the Decimal comes from the
    original text so long values keep every digit.
    """
    raw = _raw_values(data, metric_key)
    if raw is None:
        return []

    decimals = []
    for idx, number in _numeric(raw).items():
        value = raw[idx]
        try:
            decimals.append(Decimal(value.strip() if isinstance(value, str) else str(value)))
        except InvalidOperation:
            decimals.append(Decimal(str(number)))
    return decimals


def aggregate_results(results: Sequence[QueryResult], metric_key: str = METRIC_KEY) -> AggregationSummary:
    """
    Sum every numeric sample across the successful results.

    With no usable samples the total is 0.00 and the sign is negative.
    """
    summary = AggregationSummary(total_calls=len(results))
    running = Decimal(0)

    for i, result in enumerate(results, 1):
        if not result.success:
            summary.failed_calls += 1
            summary.failures.append(f"{result.descriptor.date}: {result.error}")
            logger.warning(f"Result {i} failed: {result.error}")
            continue

        summary.successful_calls += 1
        values = sample_decimals(result.data, metric_key)
        if not values:
            logger.warning(f"Result {i} has no valid {metric_key} data")
            continue

        running += sum(values, Decimal(0))
        summary.sample_count += len(values)

    if summary.sample_count:
        summary.has_data = True
        summary.total = running.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        summary.sign = POSITIVE if running >= 0 else NEGATIVE
    else:
        summary.total = ZERO_TOTAL
        summary.sign = NEGATIVE

    logger.info(
        f"Aggregated {summary.sample_count} samples from "
        f"{summary.successful_calls}/{summary.total_calls} calls: total={summary.total}"
    )
    return summary


def apply_summary(window: TimeWindow, summary: AggregationSummary) -> None:
    """Write a cycle's total and sign onto its window."""
    window.total = summary.total
    window.sign = summary.sign
    if not summary.has_data:
        logger.warning(f"No valid data found for window {window.window_id}, setting to 0.00")


def failure_message(summary: AggregationSummary) -> str:
    """User-facing warning for a partially failed cycle, or '' if none failed."""
    if not summary.failed_calls:
        return ""
    return (
        f"Warning: {summary.failed_calls} out of {summary.total_calls} API calls failed. "
        f"Results may be incomplete."
    )
