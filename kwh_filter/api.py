"""
API communication with the telemetry service.
"""
import logging
from typing import Any, Dict

import requests
from requests.adapters import HTTPAdapter

from .config import (
    AGGREGATION,
    API_BASE_TEMPLATE,
    BUCKET_INTERVAL_MS,
    METRIC_KEY,
    REQUEST_TIMEOUT,
)
from .errors import TransportError
from .models import Credentials, QueryDescriptor, format_instant

logger = logging.getLogger(__name__)


def create_session() -> requests.Session:
    """Create a requests session. Failed calls are not retried."""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def build_base_url(device_id: str, template: str = API_BASE_TEMPLATE) -> str:
    return template.replace("{deviceId}", device_id)


def build_url(base_url: str, start_ts: int, end_ts: int, interval_ms: int = BUCKET_INTERVAL_MS) -> str:
    """Build API URL for one timeseries read."""
    return (
        f"{base_url}?keys={METRIC_KEY}&startTs={start_ts}&endTs={end_ts}&"
        f"agg={AGGREGATION}&interval={interval_ms}"
    )


def build_headers(token: str) -> Dict[str, str]:
    return {
        "X-Authorization": "Bearer " + token,
        "Content-Type": "application/json",
    }


def describe_request(credentials: Credentials, descriptor: QueryDescriptor) -> Dict[str, Any]:
    """Ledger entry for one day's call, without the token."""
    return {
        "url": build_url(build_base_url(credentials.device_id), descriptor.start_ts, descriptor.end_ts),
        "date": descriptor.date.isoformat(),
        "fromTime": descriptor.from_time,
        "toTime": descriptor.to_time,
        "startTs": descriptor.start_ts,
        "endTs": descriptor.end_ts,
        "start": format_instant(descriptor.start),
        "end": format_instant(descriptor.end),
    }


def fetch_day(
    session: requests.Session,
    credentials: Credentials,
    descriptor: QueryDescriptor,
    timeout: float = REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    """
    Fetch one day's samples for the descriptor's time-of-day span.

    Returns the decoded body, a mapping of metric key to a list of
    {ts, value} samples. An empty body gives an empty mapping.

    Raises TransportError on network errors, non-success status codes and
    bodies that are not a JSON object.
    """
    request_info = describe_request(credentials, descriptor)
    url = request_info["url"]
    logger.debug(f"GET {descriptor.date} {request_info['start']} -> {request_info['end']}")

    try:
        response = session.get(url, headers=build_headers(credentials.token), timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise TransportError(f"HTTP {status} for {descriptor.date}", status_code=status) from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Request error for {descriptor.date}: {e}") from e

    if not response.content:
        return {}

    try:
        body = response.json()
    except ValueError as e:
        raise TransportError(f"Malformed response body for {descriptor.date}") from e

    if body is None:
        return {}
    if not isinstance(body, dict):
        raise TransportError(f"Unexpected response type {type(body).__name__} for {descriptor.date}")

    return body
