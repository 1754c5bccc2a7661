"""
Configuration for the kWh window filter.
"""
import json
import os
from pathlib import Path
from typing import Dict, List, Optional

# API
API_BASE_TEMPLATE = os.environ.get(
    "KWH_FILTER_API_TEMPLATE",
    "https://meterdashboard.kimbal.io/api/plugins/telemetry/DEVICE/{deviceId}/values/timeseries",
)
METRIC_KEY = "netkvah"
AGGREGATION = "SUM"
BUCKET_INTERVAL_MS = int(os.environ.get("KWH_FILTER_BUCKET_INTERVAL_MS", 2 * 60 * 60 * 1000))

# No timeout unless configured
_timeout = os.environ.get("KWH_FILTER_REQUEST_TIMEOUT")
REQUEST_TIMEOUT = float(_timeout) if _timeout else None  # seconds

# Pacing between consecutive calls of one cycle
PACING_DELAY_SECONDS = float(os.environ.get("KWH_FILTER_PACING_DELAY", 0.5))

# Date range defaults
DEFAULT_LOOKBACK_DAYS = 3
DEFAULT_FROM_TIME = "00:00"
DEFAULT_TO_TIME = "23:59"

# Used by the route form that carries only a token
DEFAULT_DEVICE_ID = os.environ.get("KWH_FILTER_DEVICE_ID")

# Dashboard sessions kept alive at once; the least recently used is shut down
MAX_DASHBOARD_SESSIONS = int(os.environ.get("KWH_FILTER_MAX_SESSIONS", 32))

WINDOWS_FILE = os.environ.get("KWH_FILTER_WINDOWS_FILE")

DEFAULT_WINDOWS = [
    {"id": "section-1", "label": "SELECT TIME", "fromTime": "00:00", "toTime": "02:00"},
    {"id": "section-2", "label": "SELECT TIME", "fromTime": "02:45", "toTime": "08:30"},
    {"id": "section-3", "label": "SELECT TIME", "fromTime": "08:30", "toTime": "12:00"},
    {"id": "section-4", "label": "SELECT TIME", "fromTime": "12:00", "toTime": "16:30"},
    {"id": "section-5", "label": "SELECT TIME", "fromTime": "16:30", "toTime": "19:00"},
    {"id": "section-6", "label": "SELECT TIME", "fromTime": "19:00", "toTime": "22:30"},
    {"id": "section-7", "label": "SELECT TIME", "fromTime": "22:30", "toTime": "23:59"},
]

_REQUIRED_KEYS = ("id", "fromTime", "toTime")


def load_window_table(path: Optional[str] = None) -> List[Dict[str, str]]:
    """
    Load the time-window table.

    The file is a JSON list of {id, label, fromTime, toTime} objects. Falls
    back to DEFAULT_WINDOWS when no path is given or configured.

    Raises ValueError if the table is malformed.
    """
    path = path or WINDOWS_FILE
    if not path:
        return [dict(w) for w in DEFAULT_WINDOWS]

    with open(Path(path), encoding="utf-8") as f:
        table = json.load(f)

    if not isinstance(table, list) or not table:
        raise ValueError(f"Window table {path} must be a non-empty list")

    windows = []
    seen = set()
    for i, entry in enumerate(table):
        if not isinstance(entry, dict):
            raise ValueError(f"Window table {path}: entry {i} is not an object")
        missing = [k for k in _REQUIRED_KEYS if k not in entry]
        if missing:
            raise ValueError(f"Window table {path}: entry {i} missing {', '.join(missing)}")
        window_id = str(entry["id"])
        if window_id in seen:
            raise ValueError(f"Window table {path}: duplicate id {window_id}")
        seen.add(window_id)
        windows.append({
            "id": window_id,
            "label": str(entry.get("label", "SELECT TIME")),
            "fromTime": str(entry["fromTime"]),
            "toTime": str(entry["toTime"]),
        })

    return windows
