"""
Unit tests for executor.py: call ordering, pacing and failure isolation.
"""
from datetime import date, timedelta

import pytest

from kwh_filter.errors import TransportError
from kwh_filter.executor import execute_sequentially, make_fetcher
from kwh_filter.models import Credentials, QueryDescriptor


def _descriptors(n, start=date(2025, 9, 20)):
    return [
        QueryDescriptor(date=start + timedelta(days=i), from_time="00:00", to_time="02:00")
        for i in range(n)
    ]


class Recorder:
    """Fetch + sleep stand-ins writing to one shared event log."""

    def __init__(self, fail_on=()):
        self.events = []
        self.fail_on = set(fail_on)

    def fetch(self, descriptor):
        index = len([e for e in self.events if e[0] == "call"])
        self.events.append(("call", descriptor.date))
        if index in self.fail_on:
            raise TransportError(f"boom {index}")
        return {"netkvah": [{"ts": 0, "value": str(index)}]}

    def sleep(self, seconds):
        self.events.append(("sleep", seconds))


class TestExecuteSequentially:

    def test_calls_in_order_with_pacing_between(self):
        rec = Recorder()
        descriptors = _descriptors(3)

        results = execute_sequentially(descriptors, rec.fetch, delay=0.5, sleep=rec.sleep)

        assert rec.events == [
            ("call", descriptors[0].date),
            ("sleep", 0.5),
            ("call", descriptors[1].date),
            ("sleep", 0.5),
            ("call", descriptors[2].date),
        ]
        assert [r.descriptor for r in results] == descriptors
        assert all(r.success for r in results)

    def test_single_call_no_sleep(self):
        rec = Recorder()
        execute_sequentially(_descriptors(1), rec.fetch, sleep=rec.sleep)
        assert [e[0] for e in rec.events] == ["call"]

    def test_empty_input(self):
        rec = Recorder()
        assert execute_sequentially([], rec.fetch, sleep=rec.sleep) == []
        assert rec.events == []

    @pytest.mark.parametrize("fail_on", [{0}, {1}, {4}, {0, 2, 4}, {0, 1, 2, 3, 4}])
    def test_failure_does_not_stop_sequence(self, fail_on):
        rec = Recorder(fail_on=fail_on)
        descriptors = _descriptors(5)

        results = execute_sequentially(descriptors, rec.fetch, delay=0.1, sleep=rec.sleep)

        assert len(results) == 5
        assert [e[0] for e in rec.events].count("call") == 5
        assert [e[0] for e in rec.events].count("sleep") == 4
        for i, result in enumerate(results):
            assert result.descriptor == descriptors[i]
            assert result.success == (i not in fail_on)
            if i in fail_on:
                assert isinstance(result.error, TransportError)
                assert result.data is None

    def test_unexpected_exception_is_isolated(self):
        def fetch(descriptor):
            raise KeyError("weird")

        results = execute_sequentially(_descriptors(2), fetch, sleep=lambda s: None)
        assert [r.success for r in results] == [False, False]


class TestMakeFetcher:

    def test_binds_session_and_credentials(self):
        class FakeResponse:
            content = b'{"netkvah": []}'

            def raise_for_status(self):
                pass

            def json(self):
                return {"netkvah": []}

        class FakeSession:
            def __init__(self):
                self.calls = []

            def get(self, url, headers=None, timeout=None):
                self.calls.append((url, headers))
                return FakeResponse()

        session = FakeSession()
        fetch = make_fetcher(Credentials("dev-1", "tok"), session=session)

        assert fetch(_descriptors(1)[0]) == {"netkvah": []}
        assert "/DEVICE/dev-1/" in session.calls[0][0]
        assert session.calls[0][1]["X-Authorization"] == "Bearer tok"
