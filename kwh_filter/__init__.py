"""
Per-window kWh totals from device telemetry.

Usage:
    # Run every window for the last three days
    python -m kwh_filter.cli --device DEVICE_ID --token TOKEN

    # Dashboard
    python -m kwh_filter.app

    # Programmatic usage
    from kwh_filter import WindowCoordinator, Credentials
    coordinator = WindowCoordinator(Credentials("device-id", "token"))
    window = coordinator.run_cycle("section-1")
"""
from .aggregator import aggregate_results, apply_summary, failure_message
from .coordinator import WindowCoordinator
from .errors import KwhFilterError, TransportError, UnexpectedError, ValidationError
from .executor import execute_sequentially, make_fetcher
from .models import (
    AggregationSummary,
    Credentials,
    DateRange,
    QueryDescriptor,
    QueryResult,
    TimeWindow,
)
from .ranges import default_date_range, expand, generate_date_ranges, validate_inputs

__all__ = [
    "WindowCoordinator",
    "Credentials",
    "DateRange",
    "TimeWindow",
    "QueryDescriptor",
    "QueryResult",
    "AggregationSummary",
    "KwhFilterError",
    "ValidationError",
    "TransportError",
    "UnexpectedError",
    "default_date_range",
    "validate_inputs",
    "generate_date_ranges",
    "expand",
    "execute_sequentially",
    "make_fetcher",
    "aggregate_results",
    "apply_summary",
    "failure_message",
]
