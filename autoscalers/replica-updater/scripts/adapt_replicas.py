"""Replica scaling script.

Reads desired replica count from spec.evaluation.parameters.replicas (int),
scales the named service, and outputs
{"replicas": <int>, "postSendTime": <ns>, "postResponseTime": <ns>}.
"""

import sys

from adapt_base import build_context, write_result
from scaler import scale_service
from service_query import ServiceQuery, ServiceQueryError


def main(spec_raw: str, query: ServiceQuery | None = None) -> None:
    ctx = build_context(spec_raw, logger_name="adapt_repl", query=query)
    if ctx is None:
        return

    ctx.logger.info("Starting adapt_replicas script")

    evaluation = ctx.spec.get("evaluation")
    params = evaluation.get("parameters") if isinstance(evaluation, dict) else None
    if not isinstance(params, dict):
        params = {}
    replicas = params.get("replicas")

    if not isinstance(replicas, int) or isinstance(replicas, bool) or replicas < 0:
        ctx.logger.error("Parameters must include non-negative integer 'replicas'")
        return None

    ctx.logger.info(f"Scaling {ctx.res_name} to {replicas} replicas")
    try:
        window = scale_service(ctx.res_name, replicas, ctx.query)
    except ServiceQueryError as e:
        ctx.logger.error(f"Failed to scale {ctx.res_name}: {e}")
        write_result({"result": "error"})
        return

    write_result({
        "replicas": replicas,
        "postSendTime": window.start_ns,
        "postResponseTime": window.end_ns,
    })


if __name__ == "__main__":
    main(sys.stdin.read())
