"""Common runtime for scripts reading a spec from stdin and acting on a service.

This module centralizes:
- JSON parsing from stdin
- Logging setup
- ServiceQuery bootstrap from the configured backend
- Standardized JSON output

Child scripts call `build_context` and write their result with `write_result`.
"""

import json
import sys
from dataclasses import dataclass
from logging import Logger
from typing import Any

from adapter_logger import AdapterLogger
from scaler_config import ScalerConfig, build_service_query, load_config
from service_query import ServiceQuery


@dataclass
class AdaptContext:
    """Execution context passed to scripts."""

    spec: dict[str, Any]
    logger: Logger
    config: ScalerConfig
    query: ServiceQuery
    res_name: str
    res_ns: str | None


def write_result(result: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(result))


def build_context(
    spec_raw: str,
    logger_name: str,
    query: ServiceQuery | None = None,
    cfg: ScalerConfig | None = None,
) -> AdaptContext | None:
    """Create and validate the execution context or return None on any guard failure."""
    logger = AdapterLogger(logger_name).logger
    try:
        spec = json.loads(spec_raw)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON on stdin: {e}")
        return None
    if not isinstance(spec, dict):
        logger.error("Spec must be a JSON object")
        return None

    resource = spec.get("resource")
    meta = resource.get("metadata") if isinstance(resource, dict) else None
    if not isinstance(meta, dict):
        meta = {}
    res_name = meta.get("name")
    if not res_name:
        logger.error("Spec must include resource.metadata.name")
        return None

    if cfg is None:
        cfg = load_config()
    res_ns = meta.get("namespace")
    if res_ns:
        cfg.namespace = res_ns

    if query is None:
        try:
            query = build_service_query(cfg)
        except Exception as e:
            logger.error(f"Failed to connect to {cfg.backend} backend: {e}")
            return None

    return AdaptContext(
        spec=spec,
        logger=logger,
        config=cfg,
        query=query,
        res_name=res_name,
        res_ns=res_ns,
    )


__all__ = [
    "AdaptContext",
    "build_context",
    "write_result",
]
