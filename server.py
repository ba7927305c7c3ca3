import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

import httpx
from docker.errors import APIError, DockerException
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from container_operations import get_docker_client
from create_container_interceptor import CreateContainerInterceptor
from models import ProxiedRequest
from settings import ProxySettings
from utils import (
    CREATE_INTERCEPTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    ProxyException,
    get_metrics,
    log_request,
    logger,
)

settings = ProxySettings.from_env()

_upstream: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Shutting down weave proxy")
    if _upstream is not None:
        await _upstream.aclose()


app = FastAPI(
    title="Weave Proxy",
    description="Docker API proxy attaching new containers to the weave network",
    version="1.0.0",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    lifespan=lifespan,
)

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
}


def get_upstream() -> httpx.AsyncClient:
    """HTTP client for the Docker daemon, over TCP if configured, else the unix socket"""
    global _upstream
    if _upstream is None:
        if settings.docker_upstream_url:
            base_url, transport = settings.docker_upstream_url, None
        else:
            base_url = "http://docker"
            transport = httpx.AsyncHTTPTransport(uds=settings.docker_socket)
        _upstream = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=httpx.Timeout(settings.docker_proxy_timeout),
        )
    return _upstream


@lru_cache(maxsize=None)
def get_interceptor() -> CreateContainerInterceptor:
    base_url = settings.docker_upstream_url or f"unix://{settings.docker_socket}"
    return CreateContainerInterceptor(get_docker_client(base_url), settings)


async def to_proxied(request: Request) -> ProxiedRequest:
    return ProxiedRequest(
        method=request.method,
        path=request.url.path,
        # first value wins for repeated parameters
        query={k: request.query_params.getlist(k)[0] for k in request.query_params},
        query_string=request.url.query,
        headers={k.lower(): v for k, v in request.headers.items()},
        body=await request.body(),
    )


async def forward(proxied: ProxiedRequest) -> Response:
    """Send the request to the Docker daemon and stream its response back"""
    upstream = get_upstream()
    url = proxied.path
    if proxied.query_string:
        url = f"{url}?{proxied.query_string}"
    headers = {
        k: v for k, v in proxied.headers.items() if k not in HOP_BY_HOP_HEADERS
    }

    try:
        upstream_request = upstream.build_request(
            proxied.method, url, headers=headers, content=proxied.body
        )
        upstream_response = await upstream.send(upstream_request, stream=True)
    except httpx.HTTPError as e:
        logger.error("Docker daemon unreachable", error=str(e), path=proxied.path)
        return JSONResponse(
            status_code=502,
            content={"message": f"Cannot connect to the Docker daemon: {e}"},
        )

    response_headers = {
        k: v
        for k, v in upstream_response.headers.items()
        if k.lower() not in HOP_BY_HOP_HEADERS
    }
    return StreamingResponse(
        upstream_response.aiter_raw(),
        status_code=upstream_response.status_code,
        headers=response_headers,
        background=BackgroundTask(upstream_response.aclose),
    )


# Request/Response middleware for logging and metrics
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    response_time = time.time() - start_time
    log_request(request, response_time, response.status_code)

    REQUEST_COUNT.labels(
        method=request.method, endpoint=request.url.path, status=response.status_code
    ).inc()
    REQUEST_LATENCY.observe(response_time)

    return response


@app.exception_handler(ProxyException)
async def proxy_exception_handler(request: Request, exc: ProxyException):
    logger.error(
        "Proxy exception",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
    )
    # Docker's error shape, so clients report the message as-is
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(DockerException)
async def docker_exception_handler(request: Request, exc: DockerException):
    status_code = 500
    message = str(exc)
    if isinstance(exc, APIError):
        status_code = exc.status_code or 500
        message = exc.explanation or message
    logger.error("Docker engine error", error=message, status_code=status_code)
    return JSONResponse(status_code=status_code, content={"message": message})


@app.get("/healthz")
async def health_endpoint():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics_endpoint():
    """Prometheus metrics endpoint"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


@app.post("/containers/create")
@app.post("/{version}/containers/create")
async def create_container(request: Request):
    """Rewrite the create body for weave, then pass it on to Docker"""
    proxied = await to_proxied(request)
    interceptor = get_interceptor()

    try:
        proxied = await run_in_threadpool(interceptor.intercept_request, proxied)
    except Exception as e:
        CREATE_INTERCEPTS.labels(outcome="error").inc()
        logger.warning("Create container rejected", error=str(e))
        raise

    response = await forward(proxied)
    interceptor.intercept_response(response)
    return response


@app.api_route(
    "/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "HEAD", "PATCH"]
)
async def passthrough(request: Request, path: str):
    return await forward(await to_proxied(request))

