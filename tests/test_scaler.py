"""Unit tests for the scaling entry point."""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from conftest import FakeDockerAPI, swarm_service
from scaler import scale_service
from service_query import (
    ConflictError,
    NotFoundError,
    OperationWindow,
    ScaleBounds,
    ServiceQuery,
)
from swarm_query import SwarmServiceQuery


@pytest.mark.parametrize("replicas", [0, 1, 50])
def test_empty_name_is_a_noop(replicas):
    query = MagicMock(spec=ServiceQuery)

    window = scale_service("", replicas, query)

    assert window == OperationWindow()
    assert (window.start_ns, window.end_ns) == (0, 0)
    query.set_replicas.assert_not_called()
    query.get_replicas.assert_not_called()


def test_result_is_passed_through():
    query = MagicMock(spec=ServiceQuery)
    expected = OperationWindow()
    query.set_replicas.return_value = expected

    assert scale_service("figlet", 4, query) is expected
    query.set_replicas.assert_called_once_with("figlet", 4)


def test_bounds_are_not_enforced(clock):
    api = FakeDockerAPI(swarm_service("figlet", labels={"com.openfaas.scale.max": "2"}))

    scale_service("figlet", 9, SwarmServiceQuery(api, clock=clock))

    assert api.services["figlet"]["Spec"]["Mode"]["Replicated"]["Replicas"] == 9


def test_inspect_failure_has_zero_window(clock):
    api = FakeDockerAPI()

    with pytest.raises(NotFoundError) as excinfo:
        scale_service("figlet", 2, SwarmServiceQuery(api, clock=clock))

    assert excinfo.value.window.start is None
    assert excinfo.value.window.end is None


def test_conflict_is_not_retried():
    query = MagicMock(spec=ServiceQuery)
    query.set_replicas.side_effect = ConflictError("stale")

    with pytest.raises(ConflictError):
        scale_service("figlet", 2, query)

    assert query.set_replicas.call_count == 1


class RendezvousQuery(ServiceQuery):
    """Blocks every set_replicas call until `parties` calls are in flight."""

    def __init__(self, parties: int):
        self.barrier = threading.Barrier(parties, timeout=5)
        self.lock = threading.Lock()
        self.events: list[str] = []

    def record(self, event: str) -> None:
        with self.lock:
            self.events.append(event)

    def get_replicas(self, service_name: str) -> ScaleBounds:
        return ScaleBounds(current=0, min=1, max=20)

    def set_replicas(self, service_name: str, count: int) -> OperationWindow:
        self.record(f"enter:{service_name}")
        self.barrier.wait()
        self.record(f"exit:{service_name}")
        return OperationWindow()


def test_concurrent_scales_of_distinct_services_interleave():
    query = RendezvousQuery(parties=2)
    errors = []

    def run(name):
        try:
            scale_service(name, 3, query)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=run, args=(name,)) for name in ("figlet", "echo")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert sorted(query.events[:2]) == ["enter:echo", "enter:figlet"]
    assert sorted(query.events[2:]) == ["exit:echo", "exit:figlet"]


def test_window_is_reported_in_unix_nanoseconds():
    start = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    window = OperationWindow(start, start + timedelta(milliseconds=5))

    assert window.start_ns == 1714564800123456000
    assert window.end_ns == 1714564800128456000
