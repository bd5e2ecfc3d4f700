"""ServiceQuery for Kubernetes Deployments.

Scaling goes through the Deployment scale subresource with the
resourceVersion that was read, so a concurrent writer gets a 409.
"""

from datetime import datetime
from typing import Callable

from kubernetes import client
from kubernetes.client.exceptions import ApiException

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


logger = AdapterLogger("kube_query").logger


def translate_error(
    e: ApiException, action: str, name: str, window: OperationWindow | None = None
) -> ServiceQueryError:
    if e.status == 404:
        return NotFoundError(f"Deployment {name} not found", window)
    if e.status == 409:
        return ConflictError(f"Deployment {name} was updated concurrently: {e.reason}", window)
    return ServiceQueryError(f"Failed to {action} Deployment {name}: {e.status} {e.reason}", window)


class KubernetesServiceQuery(ServiceQuery):
    """Replica query backed by an AppsV1Api client."""

    def __init__(
        self,
        apps: client.AppsV1Api,
        namespace: str = "default",
        resolver: BoundsResolver | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.apps = apps
        self.namespace = namespace
        self.resolver = resolver or BoundsResolver()
        self.clock = clock or utcnow

    def inspect(self, name: str) -> ServiceSnapshot:
        try:
            deployment = self.apps.read_namespaced_deployment(name=name, namespace=self.namespace)
        except ApiException as e:
            raise translate_error(e, "read", f"{self.namespace}/{name}") from e

        meta = deployment.metadata
        return ServiceSnapshot(
            identity=meta.name,
            version=meta.resource_version,
            spec={
                "replicas": deployment.spec.replicas or 0,
                "annotations": dict(meta.annotations or {}),
            },
        )

    def get_replicas(self, service_name: str) -> ScaleBounds:
        snapshot = self.inspect(service_name)
        min_replicas, max_replicas = self.resolver.resolve(snapshot.spec["annotations"])
        return ScaleBounds(
            current=snapshot.spec["replicas"], min=min_replicas, max=max_replicas
        )

    def set_replicas(self, service_name: str, count: int) -> OperationWindow:
        snapshot = self.inspect(service_name)

        body = client.V1Scale(
            api_version="autoscaling/v1",
            kind="Scale",
            metadata=client.V1ObjectMeta(
                name=snapshot.identity,
                namespace=self.namespace,
                resource_version=snapshot.version,
            ),
            spec=client.V1ScaleSpec(replicas=count),
        )

        start = self.clock()
        try:
            self.apps.replace_namespaced_deployment_scale(
                name=snapshot.identity, namespace=self.namespace, body=body
            )
        except ApiException as e:
            window = OperationWindow(start, self.clock())
            raise translate_error(e, "scale", f"{self.namespace}/{service_name}", window) from e
        end = self.clock()

        logger.debug(
            f"Scaled Deployment {self.namespace}/{service_name} at resourceVersion {snapshot.version}"
        )
        return OperationWindow(start, end)
