"""ServiceQuery for Docker Swarm services.

A Swarm service is {ID, Version, Spec}. Updates must present the
Version.Index that was read, otherwise the daemon rejects them as out of
sequence.
"""

from datetime import datetime
from typing import Any, Callable

from docker.errors import APIError, NotFound
from requests.exceptions import RequestException

from adapter_logger import AdapterLogger
from scale_bounds import BoundsResolver
from service_query import (
    ConflictError,
    NotFoundError,
    OperationWindow,
    ScaleBounds,
    ServiceQuery,
    ServiceQueryError,
    ServiceSnapshot,
    utcnow,
)


logger = AdapterLogger("swarm_query").logger


def is_conflict(e: APIError) -> bool:
    if e.status_code == 409:
        return True
    return "update out of sequence" in str(e.explanation or "")


def translate_error(
    e: Exception, action: str, service_name: str, window: OperationWindow | None = None
) -> ServiceQueryError:
    """Map a docker client failure onto the ServiceQuery error taxonomy."""
    if isinstance(e, NotFound):
        return NotFoundError(f"No such service: {service_name}", window)
    if isinstance(e, APIError):
        if is_conflict(e):
            return ConflictError(
                f"Service {service_name} was updated concurrently: {e.explanation}", window
            )
        return ServiceQueryError(f"Failed to {action} service {service_name}: {e.explanation}", window)
    return ServiceQueryError(f"Failed to {action} service {service_name}: {e}", window)


def replicated_count(spec: dict[str, Any]) -> int:
    replicated = (spec.get("Mode") or {}).get("Replicated")
    if replicated is None:
        raise ServiceQueryError(f"Service {spec.get('Name')} is not in replicated mode")
    return int(replicated.get("Replicas") or 0)


class SwarmServiceQuery(ServiceQuery):
    """Replica query backed by a low-level docker APIClient."""

    def __init__(
        self,
        client,
        resolver: BoundsResolver | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.client = client
        self.resolver = resolver or BoundsResolver()
        self.clock = clock or utcnow

    def inspect(self, service_name: str) -> ServiceSnapshot:
        # Defaults are inserted so Mode.Replicated is filled in on the spec
        try:
            service = self.client.inspect_service(service_name, insert_defaults=True)
        except (APIError, RequestException) as e:
            raise translate_error(e, "inspect", service_name) from e

        return ServiceSnapshot(
            identity=service["ID"],
            version=service["Version"]["Index"],
            spec=service["Spec"],
        )

    def get_replicas(self, service_name: str) -> ScaleBounds:
        snapshot = self.inspect(service_name)

        current = replicated_count(dict(snapshot.spec))
        min_replicas, max_replicas = self.resolver.resolve(snapshot.spec.get("Labels"))

        return ScaleBounds(current=current, min=min_replicas, max=max_replicas)

    def update(self, identity: str, version: Any, spec: dict[str, Any]) -> None:
        self.client.update_service(
            identity,
            version,
            task_template=spec.get("TaskTemplate"),
            name=spec.get("Name"),
            labels=spec.get("Labels"),
            mode=spec.get("Mode"),
            update_config=spec.get("UpdateConfig"),
            rollback_config=spec.get("RollbackConfig"),
            endpoint_spec=spec.get("EndpointSpec"),
            networks=spec.get("Networks"),
        )

    def set_replicas(self, service_name: str, count: int) -> OperationWindow:
        snapshot = self.inspect(service_name)

        spec = snapshot.copy_spec()
        replicated_count(spec)
        spec["Mode"]["Replicated"]["Replicas"] = count
        target = snapshot.with_spec(spec)

        start = self.clock()
        try:
            self.update(target.identity, target.version, spec)
        except (APIError, RequestException) as e:
            window = OperationWindow(start, self.clock())
            raise translate_error(e, "update", service_name, window) from e
        end = self.clock()

        logger.debug(f"Updated {service_name} ({target.identity}) at version {target.version}")
        return OperationWindow(start, end)
