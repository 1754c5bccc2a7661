"""
Per-window cycle orchestration.

A WindowCoordinator owns every window's state. Cycles run on worker threads
and only report back through a message queue; the coordinator applies those
messages in drain(). Callers may share one coordinator across threads (the
dashboard does), so the re-run guard and every state mutation happen under
one lock.

Cycle states: idle -> validating -> fetching -> aggregating -> idle.
"""
import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .aggregator import aggregate_results, apply_summary, failure_message
from .api import describe_request
from .config import PACING_DELAY_SECONDS, load_window_table
from .errors import UnexpectedError, ValidationError
from .executor import FetchFn, execute_sequentially, make_fetcher
from .models import (
    AGGREGATING,
    FETCHING,
    IDLE,
    VALIDATING,
    AggregationSummary,
    Credentials,
    DateRange,
    QueryResult,
    TimeWindow,
)
from .notifier import LoggingNotifier, Notifier
from .ranges import default_date_range, generate_date_ranges, validate_inputs

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Error fetching data. Please try again."

# Message kinds
PHASE = "phase"
FINISHED = "finished"


@dataclass
class CycleMessage:
    window_id: str
    kind: str
    state: Optional[str] = None
    summary: Optional[AggregationSummary] = None
    error: Optional[Exception] = None
    requests: List[Dict[str, Any]] = field(default_factory=list)


class WindowCoordinator:
    """
    Runs fetch-and-aggregate cycles for a set of time windows.

    Usage:
        coordinator = WindowCoordinator(Credentials("dev-1", "token"))
        window = coordinator.run_cycle("section-1")
        print(window.display_total, window.sign)
    """

    def __init__(
        self,
        credentials: Credentials,
        windows: Optional[List[TimeWindow]] = None,
        date_range: Optional[DateRange] = None,
        notifier: Optional[Notifier] = None,
        fetch: Optional[FetchFn] = None,
        delay: float = PACING_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        max_workers: Optional[int] = None,
        progress: bool = False,
    ):
        if not credentials.device_id or not credentials.token:
            raise ValidationError("A device id and token are required")

        if windows is None:
            windows = [TimeWindow.from_config(entry) for entry in load_window_table()]

        self.credentials = credentials
        self.date_range = date_range or default_date_range()
        self.notifier = notifier or LoggingNotifier()
        self.delay = delay
        self.progress = progress
        self._sleep = sleep
        self._fetch = fetch
        self._windows: Dict[str, TimeWindow] = {w.window_id: w for w in windows}
        self._futures: Dict[str, Future] = {}
        self._request_log: Dict[str, List[Dict[str, Any]]] = {}
        self._messages: "queue.Queue[CycleMessage]" = queue.Queue()
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or max(len(self._windows), 1),
            thread_name_prefix="kwh-cycle",
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    @property
    def windows(self) -> List[TimeWindow]:
        """Windows in display order."""
        return list(self._windows.values())

    def get_window(self, window_id: str) -> TimeWindow:
        try:
            return self._windows[window_id]
        except KeyError:
            raise KeyError(f"Unknown window: {window_id}") from None

    def set_date_range(self, from_date: Optional[str], to_date: Optional[str]) -> None:
        with self._lock:
            self.date_range = DateRange(from_date=from_date, to_date=to_date)

    def set_window_times(self, window_id: str, from_time: Optional[str], to_time: Optional[str]) -> None:
        window = self.get_window(window_id)
        with self._lock:
            window.from_time = from_time
            window.to_time = to_time

    def is_any_loading(self) -> bool:
        return any(w.busy for w in self._windows.values())

    def request_log(self, window_id: str) -> List[Dict[str, Any]]:
        """Calls made by the window's last finished cycle, in order."""
        self.get_window(window_id)
        with self._lock:
            return [dict(entry) for entry in self._request_log.get(window_id, [])]

    def submit(self, window_id: str) -> Optional[Future]:
        """
        Start a cycle for one window.

        Returns the worker future, or None when the run was refused because
        the input is invalid or the window already has a cycle in flight.
        """
        window = self.get_window(window_id)

        with self._lock:
            self.drain()

            if window.busy:
                logger.warning(f"Window {window_id} is already loading, run rejected")
                self.notifier.notify(f"{window.label} ({window.from_time}-{window.to_time}) is still loading")
                return None

            window.state = VALIDATING
            try:
                validate_inputs(self.date_range, window.from_time, window.to_time)
            except ValidationError as e:
                window.state = IDLE
                logger.info(f"Window {window_id}: {e}")
                self.notifier.notify(str(e))
                return None

            date_range = DateRange(self.date_range.from_date, self.date_range.to_date)
            from_time, to_time = window.from_time, window.to_time
            window.busy = True
            window.state = FETCHING
            self._render()

            logger.info(
                f"Window {window_id}: {date_range.from_date} to {date_range.to_date}, "
                f"{from_time}-{to_time}"
            )
            future = self._executor.submit(self._cycle, window_id, date_range, from_time, to_time)
            self._futures[window_id] = future
            return future

    def drain(self) -> int:
        """Apply every pending cycle message. Returns how many were applied."""
        applied = 0
        with self._lock:
            while True:
                try:
                    message = self._messages.get_nowait()
                except queue.Empty:
                    return applied
                self._apply(message)
                applied += 1

    def wait(self, window_id: Optional[str] = None, timeout: Optional[float] = None) -> None:
        """Block until the given (or every) in-flight cycle is done, then drain."""
        with self._lock:
            if window_id is not None:
                futures = [self._futures[window_id]] if window_id in self._futures else []
            else:
                futures = list(self._futures.values())
        wait_futures(futures, timeout=timeout)
        self.drain()

    def run_cycle(self, window_id: str) -> TimeWindow:
        """Run one window's cycle to completion and return the window."""
        future = self.submit(window_id)
        if future is not None:
            self.wait(window_id)
        return self.get_window(window_id)

    def run_all(self) -> List[TimeWindow]:
        """Start every window at once and wait for all of them."""
        for window_id in list(self._windows):
            self.submit(window_id)
        self.wait()
        return self.windows

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        self.drain()

    def _ledger(self, results: List[QueryResult]) -> List[Dict[str, Any]]:
        ledger = []
        for result in results:
            entry = describe_request(self.credentials, result.descriptor)
            entry["success"] = result.success
            entry["error"] = None if result.success else str(result.error)
            ledger.append(entry)
        return ledger

    def _cycle(self, window_id: str, date_range: DateRange, from_time: str, to_time: str) -> None:
        """Worker side of a cycle. Never touches window state."""
        ledger = []
        try:
            fetch = self._fetch or make_fetcher(self.credentials)
            descriptors = generate_date_ranges(date_range, from_time, to_time)
            results = execute_sequentially(
                descriptors,
                fetch,
                delay=self.delay,
                sleep=self._sleep,
                progress=self.progress,
                desc=window_id,
            )
            ledger = self._ledger(results)
            self._messages.put(CycleMessage(window_id, PHASE, state=AGGREGATING))
            summary = aggregate_results(results)
            self._messages.put(CycleMessage(window_id, FINISHED, summary=summary, requests=ledger))
        except Exception as e:
            logger.exception(f"Window {window_id}: cycle failed")
            error = UnexpectedError(str(e), cause=e)
            self._messages.put(CycleMessage(window_id, FINISHED, error=error, requests=ledger))

    def _apply(self, message: CycleMessage) -> None:
        window = self._windows[message.window_id]

        if message.kind == PHASE:
            window.state = message.state
            self._render()
            return

        try:
            self._request_log[message.window_id] = message.requests
            if message.error is not None:
                self.notifier.notify(GENERIC_ERROR)
            else:
                apply_summary(window, message.summary)
                warning = failure_message(message.summary)
                if warning:
                    self.notifier.notify(warning)
        except Exception:
            logger.exception(f"Window {window.window_id}: could not apply cycle result")
            self.notifier.notify(GENERIC_ERROR)
        finally:
            window.busy = False
            window.state = IDLE
            self._futures.pop(message.window_id, None)
            self._render()

        logger.info(f"Window {window.window_id}: total={window.display_total} sign={window.sign}")

    def _render(self) -> None:
        self.notifier.render(self.windows)
