"""
Proxy Settings Module

Operator-facing configuration for the proxy, read from the environment
(and an optional .env file) once at startup.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_WEAVEWAIT_VOLUME = "/var/lib/weave/weavewait"
DEFAULT_DOCKER_BRIDGE_IP = "172.17.0.1"
DEFAULT_DOCKER_SOCKET = "/var/run/docker.sock"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if not value:
        return default
    return float(value)


class ProxySettings(BaseModel):
    without_dns: bool = False
    with_dns: bool = False  # use weavedns even when it is not running
    no_default_ipalloc: bool = False
    weavewait_volume: str = DEFAULT_WEAVEWAIT_VOLUME
    docker_bridge_ip: str = DEFAULT_DOCKER_BRIDGE_IP
    docker_socket: str = DEFAULT_DOCKER_SOCKET
    docker_upstream_url: Optional[str] = None  # e.g. "http://127.0.0.1:2375"
    dns_http_timeout: Optional[float] = 5.0
    docker_proxy_timeout: Optional[float] = None

    @classmethod
    def from_env(cls) -> "ProxySettings":
        """Build settings from WITHOUT_DNS, WITH_DNS, WEAVEWAIT_VOLUME, ... variables"""
        return cls(
            without_dns=_env_flag("WITHOUT_DNS"),
            with_dns=_env_flag("WITH_DNS"),
            no_default_ipalloc=_env_flag("NO_DEFAULT_IPALLOC"),
            weavewait_volume=os.getenv("WEAVEWAIT_VOLUME", DEFAULT_WEAVEWAIT_VOLUME),
            docker_bridge_ip=os.getenv("DOCKER_BRIDGE_IP", DEFAULT_DOCKER_BRIDGE_IP),
            docker_socket=os.getenv("DOCKER_SOCKET", DEFAULT_DOCKER_SOCKET),
            docker_upstream_url=os.getenv("DOCKER_UPSTREAM_URL") or None,
            dns_http_timeout=_env_float("DNS_HTTP_TIMEOUT", 5.0),
            docker_proxy_timeout=_env_float("DOCKER_PROXY_TIMEOUT", None),
        )
