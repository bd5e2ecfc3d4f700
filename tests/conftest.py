import copy
import os
from datetime import datetime, timedelta, timezone

import pytest
import requests
from docker.errors import APIError, NotFound
from kubernetes import client
from kubernetes.client.exceptions import ApiException

# Keep test runs from writing the adapter log file
os.environ.setdefault("ADAPTER_LOG_FILE", "")


class TickClock:
    """Clock that advances one millisecond on every read."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.reads: list[datetime] = []

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(milliseconds=1)
        self.reads.append(self.now)
        return self.now


def api_error(status_code: int, explanation: str) -> APIError:
    response = requests.Response()
    response.status_code = status_code
    return APIError(explanation, response=response, explanation=explanation)


def swarm_service(name, replicas=1, labels=None, version=10):
    return {
        "ID": f"id-{name}",
        "Version": {"Index": version},
        "Spec": {
            "Name": name,
            "Labels": dict(labels or {}),
            "TaskTemplate": {"ContainerSpec": {"Image": f"functions/{name}:latest"}},
            "Mode": {"Replicated": {"Replicas": replicas}},
            "UpdateConfig": {"Parallelism": 1, "FailureAction": "pause"},
            "EndpointSpec": {"Mode": "vip"},
        },
    }


class FakeDockerAPI:
    """In-memory stand-in for docker.APIClient service calls.

    Updates are checked against the stored Version.Index like the daemon does.
    `inspect_error` / `update_error` force a failure on the matching call.
    """

    def __init__(self, *services, clock=None):
        self.services = {s["Spec"]["Name"]: copy.deepcopy(s) for s in services}
        self.clock = clock
        self.calls = []
        self.inspected_at = []
        self.inspect_error = None
        self.update_error = None

    def inspect_service(self, service, insert_defaults=None):
        self.calls.append(("inspect", service, insert_defaults))
        if self.inspect_error is not None:
            raise self.inspect_error
        if service not in self.services:
            raise NotFound(f"service {service} not found")
        if self.clock is not None:
            self.inspected_at.append(self.clock())
        return copy.deepcopy(self.services[service])

    def update_service(self, service, version, **kwargs):
        self.calls.append(("update", service, version, kwargs))
        if self.update_error is not None:
            raise self.update_error
        stored = next((s for s in self.services.values() if s["ID"] == service), None)
        if stored is None:
            raise NotFound(f"service {service} not found")
        if version != stored["Version"]["Index"]:
            raise api_error(500, "rpc error: code = Unknown desc = update out of sequence")
        stored["Spec"]["Mode"] = copy.deepcopy(kwargs["mode"])
        stored["Version"]["Index"] += 1
        return {"Warnings": None}


def deployment(name, replicas=1, annotations=None, resource_version="100", namespace="default"):
    return client.V1Deployment(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            annotations=annotations,
            resource_version=resource_version,
        ),
        spec=client.V1DeploymentSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={"app": name}),
            template=client.V1PodTemplateSpec(),
        ),
    )


class FakeAppsV1Api:
    """In-memory stand-in for AppsV1Api deployment and scale calls."""

    def __init__(self, *deployments, clock=None):
        self.deployments = {(d.metadata.namespace, d.metadata.name): d for d in deployments}
        self.clock = clock
        self.calls = []
        self.read_error = None
        self.scale_error = None

    def read_namespaced_deployment(self, name, namespace):
        self.calls.append(("read", namespace, name))
        if self.read_error is not None:
            raise self.read_error
        found = self.deployments.get((namespace, name))
        if found is None:
            raise ApiException(status=404, reason="Not Found")
        return found

    def replace_namespaced_deployment_scale(self, name, namespace, body):
        self.calls.append(("scale", namespace, name, body))
        if self.scale_error is not None:
            raise self.scale_error
        stored = self.deployments.get((namespace, name))
        if stored is None:
            raise ApiException(status=404, reason="Not Found")
        if body.metadata.resource_version != stored.metadata.resource_version:
            raise ApiException(status=409, reason="Conflict")
        stored.spec.replicas = body.spec.replicas
        stored.metadata.resource_version = str(int(stored.metadata.resource_version) + 1)
        return body


@pytest.fixture
def clock():
    return TickClock()


@pytest.fixture(autouse=True)
def no_config_file(monkeypatch, tmp_path):
    monkeypatch.setenv("REPLICA_UPDATER_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("BACKEND", raising=False)
    monkeypatch.delenv("NAMESPACE", raising=False)
