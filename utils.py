import logging
import os
import sys

import structlog
from fastapi import Request
from prometheus_client import Counter, Histogram, generate_latest

logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram("http_request_duration_seconds", "HTTP request latency")
CREATE_INTERCEPTS = Counter(
    "create_container_intercepts_total",
    "Intercepted create-container requests",
    ["outcome"],
)


def log_request(request: Request, response_time: float, status_code: int):
    """Log request details with structured logging"""
    logger.info(
        "HTTP request",
        method=request.method,
        url=str(request.url),
        status_code=status_code,
        response_time=response_time,
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_metrics():
    """Get Prometheus metrics"""
    return generate_latest()


# Error handling utilities
class ProxyException(Exception):
    """Base exception for the proxy"""

    def __init__(self, message: str, error_code: str = None, status_code: int = 500):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(self.message)


class DecodeError(ProxyException):
    """Malformed create-container request body"""

    def __init__(self, message: str):
        super().__init__(message, "DECODE_ERROR", 400)


class NoSuchImage(ProxyException):
    """Image lookup failed because the image does not exist.

    Docker clients parse the image name out of this message to decide
    whether to pull, so the text must carry it.
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No such image: {name}", "NO_SUCH_IMAGE", 404)


class NoCommandSpecified(ProxyException):
    """Neither the request nor the image defines an entrypoint or command"""

    def __init__(self, message: str = "No command specified"):
        super().__init__(message, "NO_COMMAND", 400)


class NetworkNotRequested(Exception):
    """The container does not take part in the weave network.

    Raised by address resolvers; the interceptor treats it as a signal to
    forward the request unmodified, never as a failure.
    """

    pass
