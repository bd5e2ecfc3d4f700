"""
HTTP gateway for the replica updater.

Endpoints:
    POST /system/scale-function/{name} - Scale a service to the requested replicas
    GET  /system/function/{name}       - Current/min/max replicas of a service
    GET  /healthz                      - Liveness check

Handlers are plain functions so FastAPI runs them in its thread pool and
scale calls for different services do not wait on each other.
"""

import sys

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from adapter_logger import AdapterLogger
from scaler import scale_service
from scaler_config import build_service_query, load_config
from service_query import NotFoundError, OperationWindow, ServiceQuery, ServiceQueryError


SEND_TIME_HEADER = "X-Scale-Post-Send-Time"
RESPONSE_TIME_HEADER = "X-Scale-Post-Response-Time"
PARSE_ERROR = "Cannot parse request. Please pass valid JSON."

logger = AdapterLogger("gateway").logger

router = APIRouter()


class ScaleServiceRequest(BaseModel):
    """Request to scale a service"""

    model_config = ConfigDict(populate_by_name=True)

    service_name: str = Field(default="", alias="serviceName")
    replicas: int = Field(default=0, ge=0, strict=True)


def get_service_query(request: Request) -> ServiceQuery:
    return request.app.state.service_query


async def scale_request_body(request: Request) -> ScaleServiceRequest | None:
    """Decode the scale request, None when the payload is malformed.

    An empty body is accepted and scales to zero replicas.
    """
    raw = await request.body()
    if not raw:
        return ScaleServiceRequest()
    try:
        return ScaleServiceRequest.model_validate_json(raw)
    except ValidationError as e:
        logger.info(f"{PARSE_ERROR} {e}")
        return None


def timing_headers(window: OperationWindow) -> dict[str, str]:
    return {
        SEND_TIME_HEADER: str(window.start_ns),
        RESPONSE_TIME_HEADER: str(window.end_ns),
    }


@router.post("/system/scale-function/{name}")
def scale_function(
    name: str,
    req: ScaleServiceRequest | None = Depends(scale_request_body),
    query: ServiceQuery = Depends(get_service_query),
) -> Response:
    logger.info(f"ReplicaUpdater - updating function: {name}")

    if req is None:
        return PlainTextResponse(PARSE_ERROR, status_code=400)

    logger.info(f"Scaling {name} to {req.replicas} replicas")

    error: ServiceQueryError | None = None
    try:
        window = scale_service(name, req.replicas, query)
    except ServiceQueryError as e:
        error = e
        window = e.window

    headers = timing_headers(window)
    logger.info(f"Adding Headers in response: {window.start_ns} {window.end_ns}")

    if error is not None:
        logger.error(str(error))
        return PlainTextResponse(str(error), status_code=500, headers=headers)

    return Response(status_code=202, headers=headers)


@router.get("/system/function/{name}")
def function_replicas(name: str, query: ServiceQuery = Depends(get_service_query)) -> Response:
    try:
        bounds = query.get_replicas(name)
    except NotFoundError as e:
        return PlainTextResponse(str(e), status_code=404)
    except ServiceQueryError as e:
        logger.error(str(e))
        return PlainTextResponse(str(e), status_code=500)

    return JSONResponse(
        {
            "name": name,
            "replicas": bounds.current,
            "minReplicas": bounds.min,
            "maxReplicas": bounds.max,
        }
    )


@router.get("/healthz")
def health_check(request: Request) -> dict[str, str]:
    return {"status": "healthy", "backend": request.app.state.backend}


def create_app(query: ServiceQuery, backend: str = "swarm") -> FastAPI:
    app = FastAPI(title="replica-updater")
    app.state.service_query = query
    app.state.backend = backend
    app.include_router(router)
    return app


def main() -> None:
    cfg = load_config()
    logger.info(f"Starting replica updater with {cfg.backend} backend on {cfg.host}:{cfg.port}")
    try:
        query = build_service_query(cfg)
    except Exception as e:
        logger.error(f"Failed to connect to {cfg.backend} backend: {e}")
        sys.exit(1)

    uvicorn.run(create_app(query, cfg.backend), host=cfg.host, port=cfg.port, log_config=None)


if __name__ == "__main__":
    main()
