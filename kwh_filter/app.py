"""
kWh window dashboard - Flask web application.

Routes:
    /<device_id>/<token>                      dashboard for one device
    /<token>                                  dashboard for KWH_FILTER_DEVICE_ID
    POST .../windows/<window_id>              run one window's cycle
"""
import logging
import threading
from collections import OrderedDict
from typing import Optional, Tuple

from flask import Flask, abort, jsonify, render_template_string, request

from . import config
from .config import load_window_table
from .coordinator import WindowCoordinator
from .logging_setup import setup_logging
from .models import Credentials, TimeWindow
from .notifier import CollectingNotifier
from .ranges import default_date_range

logger = logging.getLogger(__name__)

app = Flask(__name__)

_coordinators: "OrderedDict[Tuple[str, str], WindowCoordinator]" = OrderedDict()
_coordinators_lock = threading.Lock()


MAIN_PAGE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>kWh by Time Window</title>
    <style>
        body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #f5f7fa; color: #333; }
        .container { max-width: 900px; margin: 0 auto; padding: 20px; }
        .controls, .section { background: white; padding: 16px; border-radius: 10px;
                              box-shadow: 0 2px 10px rgba(0,0,0,0.1); margin-bottom: 12px; }
        .section { display: flex; gap: 12px; align-items: center; }
        .total { font-size: 1.4em; font-weight: 600; min-width: 120px; text-align: right; }
        .positive { color: #27ae60; }
        .negative { color: #c0392b; }
    </style>
</head>
<body>
<div class="container">
    <h1>kWh by Time Window</h1>
    <div class="controls">
        <label>From <input type="date" id="fromDate" value="{{ date_range.from_date }}"></label>
        <label>To <input type="date" id="toDate" value="{{ date_range.to_date }}"></label>
    </div>
    {% for w in windows %}
    <div class="section" id="{{ w.window_id }}">
        <span>{{ w.label }}</span>
        <input type="time" class="fromTime" value="{{ w.from_time }}">
        <input type="time" class="toTime" value="{{ w.to_time }}">
        <button onclick="applyFilter('{{ w.window_id }}')">Apply</button>
        <span class="total {{ 'positive' if w.is_positive else 'negative' }}">{{ w.display_total }}</span>
    </div>
    {% endfor %}
</div>
<script>
async function applyFilter(id) {
    const section = document.getElementById(id);
    const button = section.querySelector('button');
    button.disabled = true;
    try {
        const response = await fetch(window.location.pathname.replace(/\\/$/, '') + '/windows/' + id, {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify({
                fromDate: document.getElementById('fromDate').value,
                toDate: document.getElementById('toDate').value,
                fromTime: section.querySelector('.fromTime').value,
                toTime: section.querySelector('.toTime').value
            })
        });
        const data = await response.json();
        const total = section.querySelector('.total');
        total.textContent = data.window.total;
        total.className = 'total ' + (data.window.isPositive ? 'positive' : 'negative');
        data.messages.forEach(m => alert(m));
    } catch (e) {
        alert('Error fetching data. Please try again.');
    } finally {
        button.disabled = false;
    }
}
</script>
</body>
</html>
"""

NOT_FOUND_TEMPLATE = "<h1>Page not found</h1><p>Open /&lt;deviceId&gt;/&lt;token&gt; to use the dashboard.</p>"


def make_coordinator(credentials: Credentials) -> WindowCoordinator:
    return WindowCoordinator(credentials, notifier=CollectingNotifier())


def _session_key(device_id: Optional[str], token: str) -> Tuple[str, str]:
    device_id = device_id or config.DEFAULT_DEVICE_ID
    if not device_id or not token:
        abort(404)
    return device_id, token


def get_coordinator(device_id: Optional[str], token: str, create: bool = True) -> Optional[WindowCoordinator]:
    """
    Coordinator for a device/token pair.

    Sessions are created only when `create` is set (a cycle is requested).
    At most MAX_DASHBOARD_SESSIONS are kept; the least recently used one is
    evicted and shut down.
    """
    key = _session_key(device_id, token)
    evicted = []
    with _coordinators_lock:
        coordinator = _coordinators.get(key)
        if coordinator is not None:
            _coordinators.move_to_end(key)
            return coordinator
        if not create:
            return None

        logger.info(f"New dashboard session for device {key[0]}")
        coordinator = make_coordinator(Credentials(*key))
        _coordinators[key] = coordinator
        while len(_coordinators) > config.MAX_DASHBOARD_SESSIONS:
            (old_device, _), old = _coordinators.popitem(last=False)
            logger.info(f"Evicting dashboard session for device {old_device}")
            evicted.append(old)

    for old in evicted:
        old.shutdown(wait=False)
    return coordinator


def _window_view(device_id: Optional[str], token: str):
    """Windows and date range to show, without starting a session."""
    coordinator = get_coordinator(device_id, token, create=False)
    if coordinator is None:
        windows = [TimeWindow.from_config(entry) for entry in load_window_table()]
        return windows, default_date_range()
    coordinator.drain()
    return coordinator.windows, coordinator.date_range


def _render_dashboard(device_id: Optional[str], token: str):
    windows, date_range = _window_view(device_id, token)
    return render_template_string(MAIN_PAGE_TEMPLATE, windows=windows, date_range=date_range)


def _run_window(device_id: Optional[str], token: str, window_id: str):
    _session_key(device_id, token)
    if window_id not in {entry["id"] for entry in load_window_table()}:
        abort(404)
    coordinator = get_coordinator(device_id, token)

    payload = request.get_json(silent=True) or {}
    if "fromDate" in payload or "toDate" in payload:
        coordinator.set_date_range(
            payload.get("fromDate", coordinator.date_range.from_date),
            payload.get("toDate", coordinator.date_range.to_date),
        )
    if "fromTime" in payload or "toTime" in payload:
        window = coordinator.get_window(window_id)
        coordinator.set_window_times(
            window_id,
            payload.get("fromTime", window.from_time),
            payload.get("toTime", window.to_time),
        )

    window = coordinator.run_cycle(window_id)
    return jsonify({
        "window": window.to_dict(),
        "dateRange": {
            "fromDate": coordinator.date_range.from_date,
            "toDate": coordinator.date_range.to_date,
        },
        "loading": coordinator.is_any_loading(),
        "messages": coordinator.notifier.pop_messages(),
        "requests": coordinator.request_log(window_id),
    })


@app.route("/<device_id>/<token>")
def dashboard(device_id, token):
    """Dashboard for a device named in the URL."""
    return _render_dashboard(device_id, token)


@app.route("/<token>")
def dashboard_default_device(token):
    """Dashboard for the configured default device."""
    return _render_dashboard(None, token)


@app.route("/<device_id>/<token>/windows/<window_id>", methods=["POST"])
def run_window(device_id, token, window_id):
    return _run_window(device_id, token, window_id)


@app.route("/<token>/windows/<window_id>", methods=["POST"])
def run_window_default_device(token, window_id):
    return _run_window(None, token, window_id)


@app.route("/<device_id>/<token>/windows")
def list_windows(device_id, token):
    windows, _ = _window_view(device_id, token)
    return jsonify([w.to_dict() for w in windows])



@app.errorhandler(404)
def not_found(e):
    return render_template_string(NOT_FOUND_TEMPLATE), 404


if __name__ == "__main__":
    setup_logging(logging.INFO)
    print("\n" + "=" * 50)
    print("kWh Window Dashboard")
    print("=" * 50)
    print("Open http://localhost:5000/<deviceId>/<token> in your browser")
    print("Press Ctrl+C to stop")
    print("=" * 50 + "\n")

    app.run(debug=True, port=5000)
