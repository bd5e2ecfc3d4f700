"""Min/max replica bounds read from service annotations.

Bounds are advisory. Malformed annotation values keep the default for that
bound and are logged, they never fail a scale or inspect call.
"""

import re
from dataclasses import dataclass
from typing import Mapping

from adapter_logger import AdapterLogger


DEFAULT_MIN_REPLICAS = 1
DEFAULT_MAX_REPLICAS = 20

MIN_SCALE_LABEL = "com.openfaas.scale.min"
MAX_SCALE_LABEL = "com.openfaas.scale.max"

_DECIMAL = re.compile(r"[0-9]+")

logger = AdapterLogger("scale_bounds").logger


def parse_replica_count(value: str | None) -> int | None:
    """Parse a decimal replica count, or None if absent or malformed."""
    if not value:
        return None
    if not _DECIMAL.fullmatch(value):
        logger.warning(f"Bad replica count: {value}, should be uint")
        return None
    return int(value)


@dataclass(frozen=True)
class BoundsResolver:
    default_min: int = DEFAULT_MIN_REPLICAS
    default_max: int = DEFAULT_MAX_REPLICAS

    def resolve(self, labels: Mapping[str, str] | None) -> tuple[int, int]:
        """Return (min, max) for the given annotations.

        Each bound is read from its own key. min > max is not rejected.
        """
        labels = labels or {}

        min_replicas = parse_replica_count(labels.get(MIN_SCALE_LABEL))
        max_replicas = parse_replica_count(labels.get(MAX_SCALE_LABEL))

        return (
            self.default_min if min_replicas is None else min_replicas,
            self.default_max if max_replicas is None else max_replicas,
        )
