import sys

from adapt_base import build_context, write_result
from service_query import ServiceQuery, ServiceQueryError


def main(spec_raw: str, query: ServiceQuery | None = None):
    ctx = build_context(spec_raw, logger_name="metric", query=query)
    if ctx is None:
        return

    ctx.logger.info("Starting metric script")
    try:
        bounds = ctx.query.get_replicas(ctx.res_name)
    except ServiceQueryError as e:
        ctx.logger.error(f"Failed to read replicas of {ctx.res_name}: {e}")
        write_result({"result": "error"})
        return

    write_result(
        {
            "current_replicas": bounds.current,
            "minReplicas": bounds.min,
            "maxReplicas": bounds.max,
        }
    )


if __name__ == "__main__":
    main(sys.stdin.read())
