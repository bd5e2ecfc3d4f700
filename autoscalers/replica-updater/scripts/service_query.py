"""Orchestrator-agnostic replica query interface.

A ServiceQuery reads the current/min/max replica counts of a named service
and writes a new desired count. Backends translate their own failures into
the exceptions defined here so callers never depend on a client library.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_unix_nanos(ts: datetime | None) -> int:
    """Nanoseconds since the Unix epoch, 0 for an unset timestamp."""
    if ts is None:
        return 0
    return (ts - EPOCH) // timedelta(microseconds=1) * 1000


@dataclass(frozen=True)
class OperationWindow:
    """Wall-clock bounds of one mutating orchestrator call.

    Both ends stay None when the call was never attempted.
    """

    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_zero(self) -> bool:
        return self.start is None and self.end is None

    @property
    def start_ns(self) -> int:
        return to_unix_nanos(self.start)

    @property
    def end_ns(self) -> int:
        return to_unix_nanos(self.end)


@dataclass(frozen=True)
class ScaleBounds:
    current: int
    min: int
    max: int


@dataclass(frozen=True)
class ServiceSnapshot:
    """Result of one inspect call: identity, version token and spec.

    The spec is never mutated; `with_spec` returns a new snapshot that keeps
    the version that was read, which is what the write call must present.
    """

    identity: str
    version: Any
    spec: Mapping[str, Any] = field(default_factory=dict)

    def copy_spec(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.spec))

    def with_spec(self, spec: Mapping[str, Any]) -> "ServiceSnapshot":
        return ServiceSnapshot(identity=self.identity, version=self.version, spec=spec)


class ServiceQueryError(Exception):
    """Orchestrator call failed.

    `window` holds the timing of the mutating call when one was attempted.
    """

    def __init__(self, message: str, window: OperationWindow | None = None):
        super().__init__(message)
        self.window = window if window is not None else OperationWindow()


class NotFoundError(ServiceQueryError):
    """The named service does not exist."""


class ConflictError(ServiceQueryError):
    """The update was rejected because the version that was read is stale."""


class ServiceQuery(ABC):
    """Replica read/write capability of one orchestrator backend."""

    @abstractmethod
    def get_replicas(self, service_name: str) -> ScaleBounds:
        """Return current replicas with min/max resolved from annotations.

        Raises:
            NotFoundError: the service does not exist
            ServiceQueryError: any other orchestrator failure
        """

    @abstractmethod
    def set_replicas(self, service_name: str, count: int) -> OperationWindow:
        """Write a new desired replica count.

        Performs exactly one inspect and at most one update call. The
        returned window brackets the update call.

        Raises:
            NotFoundError: the service does not exist at lookup time
            ConflictError: the update presented a stale version
            ServiceQueryError: any other orchestrator failure
        """
