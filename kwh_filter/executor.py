"""
Sequential query execution with pacing and per-call failure isolation.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
from tqdm import tqdm

from .api import create_session, fetch_day
from .config import PACING_DELAY_SECONDS
from .models import Credentials, QueryDescriptor, QueryResult

logger = logging.getLogger(__name__)

FetchFn = Callable[[QueryDescriptor], Dict[str, Any]]


def make_fetcher(credentials: Credentials, session: Optional[requests.Session] = None) -> FetchFn:
    """Bind a session and credentials into a one-argument fetch function."""
    session = session or create_session()

    def fetch(descriptor: QueryDescriptor) -> Dict[str, Any]:
        return fetch_day(session, credentials, descriptor)

    return fetch


def execute_sequentially(
    descriptors: Sequence[QueryDescriptor],
    fetch: FetchFn,
    delay: float = PACING_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    progress: bool = False,
    desc: str = "Fetching",
) -> List[QueryResult]:
    """
    Run one call per descriptor, strictly in order.

    Sleeps `delay` seconds between every adjacent pair of calls, never after
    the last. A failing call is recorded as a failed QueryResult and the loop
    moves on. The returned list matches the input in length and order.
    """
    results = []
    total = len(descriptors)

    logger.info(f"Starting {total} sequential calls")

    pbar = tqdm(
        enumerate(descriptors, 1),
        total=total,
        desc=desc,
        unit="day",
        ncols=80,
        disable=not progress,
    )

    for i, descriptor in pbar:
        try:
            data = fetch(descriptor)
            results.append(QueryResult(descriptor=descriptor, data=data))
            logger.debug(f"Call {i}/{total} for {descriptor.date} completed")
        except Exception as e:
            logger.error(f"Call {i}/{total} failed for {descriptor.date}: {e}")
            results.append(QueryResult(descriptor=descriptor, error=e))
            pbar.set_postfix(status="failed")

        if i < total:
            sleep(delay)

    failed = sum(1 for r in results if not r.success)
    logger.info(f"All {total} calls completed ({failed} failed)")
    return results
