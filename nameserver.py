"""
Nameserver Module

Best-effort lookup of the domain served by the weavedns container.
"""

from typing import Optional, Tuple

import docker
import httpx

from container_operations import get_container_ip
from utils import logger

DEFAULT_LOCAL_DOMAIN = "weave.local."
DEFAULT_HTTP_PORT = 6785
DNS_CONTAINER_NAME = "weavedns"


def get_dns_domain(
    client: docker.DockerClient, timeout: Optional[float] = 5.0
) -> Tuple[str, bool]:
    """Return (domain, running) for weavedns.

    Any failure yields (DEFAULT_LOCAL_DOMAIN, False); this never raises.
    """
    ip = get_container_ip(client, DNS_CONTAINER_NAME)
    if not ip:
        return DEFAULT_LOCAL_DOMAIN, False

    url = f"http://{ip}:{DEFAULT_HTTP_PORT}/domain"
    try:
        resp = httpx.get(url, timeout=timeout)
        if resp.status_code != httpx.codes.OK:
            logger.debug("weavedns domain lookup failed", url=url, status=resp.status_code)
            return DEFAULT_LOCAL_DOMAIN, False
        return resp.text, True
    except Exception as e:
        logger.debug("weavedns domain lookup failed", url=url, error=str(e))
        return DEFAULT_LOCAL_DOMAIN, False
