"""
Tests for the command-line entry point.
"""
import json

import kwh_filter.cli as cli
import kwh_filter.coordinator as coordinator_module


def _fake_fetcher(calls):
    def make_fetcher(credentials, session=None):
        def fetch(descriptor):
            calls.append((credentials.device_id, descriptor))
            return {"netkvah": [{"ts": 0, "value": "1"}]}
        return fetch
    return make_fetcher


def test_parser_defaults():
    args = cli.build_parser().parse_args(["--token", "tok", "--device", "dev"])
    assert args.window is None
    assert args.delay == 0.5
    assert args.progress is False


def test_runs_selected_windows(monkeypatch):
    calls = []
    monkeypatch.setattr(coordinator_module, "make_fetcher", _fake_fetcher(calls))

    code = cli.main([
        "--device", "dev-9",
        "--token", "tok",
        "--from-date", "2025-09-20",
        "--to-date", "2025-09-21",
        "--window", "section-1",
        "--window", "section-3",
        "--delay", "0",
    ])

    assert code == 0
    assert len(calls) == 4
    assert {c[0] for c in calls} == {"dev-9"}
    assert {(d.from_time, d.to_time) for _, d in calls} == {("00:00", "02:00"), ("08:30", "12:00")}


def test_missing_device(monkeypatch):
    monkeypatch.setattr(cli, "DEFAULT_DEVICE_ID", None)
    assert cli.main(["--token", "tok"]) == 1


def test_unknown_window(monkeypatch):
    calls = []
    monkeypatch.setattr(coordinator_module, "make_fetcher", _fake_fetcher(calls))
    assert cli.main(["--device", "d", "--token", "t", "--window", "nope"]) == 1
    assert calls == []


def test_windows_file(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(coordinator_module, "make_fetcher", _fake_fetcher(calls))
    path = tmp_path / "windows.json"
    path.write_text(json.dumps([{"id": "w", "fromTime": "01:00", "toTime": "05:00"}]))

    code = cli.main([
        "--device", "d", "--token", "t",
        "--windows-file", str(path),
        "--from-date", "2025-09-20", "--to-date", "2025-09-20",
        "--delay", "0",
    ])

    assert code == 0
    assert [(d.from_time, d.to_time) for _, d in calls] == [("01:00", "05:00")]


def test_bad_windows_file(tmp_path):
    path = tmp_path / "windows.json"
    path.write_text("[]")
    assert cli.main(["--device", "d", "--token", "t", "--windows-file", str(path)]) == 1


def test_reversed_dates_fail_without_fetching(monkeypatch):
    calls = []
    monkeypatch.setattr(coordinator_module, "make_fetcher", _fake_fetcher(calls))

    code = cli.main([
        "--device", "d", "--token", "t",
        "--from-date", "2025-09-22", "--to-date", "2025-09-20",
    ])

    assert code == 1
    assert calls == []


def test_same_day_reversed_window_fails(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(coordinator_module, "make_fetcher", _fake_fetcher(calls))
    path = tmp_path / "windows.json"
    path.write_text(json.dumps([
        {"id": "ok", "fromTime": "01:00", "toTime": "05:00"},
        {"id": "bad", "fromTime": "09:00", "toTime": "08:00"},
    ]))

    code = cli.main([
        "--device", "d", "--token", "t",
        "--windows-file", str(path),
        "--from-date", "2025-09-20", "--to-date", "2025-09-20",
    ])

    assert code == 1
    assert calls == []
