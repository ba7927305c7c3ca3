"""
Weave CIDR Module

Decides whether a new container joins the weave network, and with which
addresses, from its WEAVE_CIDR environment entry and network mode.
"""

from typing import Callable, List, Optional

from models import ContainerConfig, HostConfig
from utils import NetworkNotRequested

WEAVE_CIDR_VAR = "WEAVE_CIDR"

CIDRResolver = Callable[[ContainerConfig, Optional[HostConfig]], List[str]]


def _weave_cidr_env(config: Optional[ContainerConfig]) -> Optional[str]:
    if config is None or not config.env:
        return None
    prefix = WEAVE_CIDR_VAR + "="
    for entry in config.env:
        if entry.startswith(prefix):
            return entry[len(prefix):]
    return None


def weave_cidrs_from_config(
    config: Optional[ContainerConfig],
    host_config: Optional[HostConfig],
    no_default_ipalloc: bool = False,
) -> List[str]:
    """Addresses requested for the container.

    An empty list means "allocate from the default range". Raises
    NetworkNotRequested when the container should be left alone.
    """
    if host_config is not None and host_config.network_mode:
        mode = host_config.network_mode
        if mode in ("host", "none") or mode.startswith("container:"):
            raise NetworkNotRequested(f"network mode {mode!r}")

    cidr = _weave_cidr_env(config)
    if cidr is None:
        if no_default_ipalloc:
            raise NetworkNotRequested(f"no {WEAVE_CIDR_VAR} in environment")
        return []
    if cidr.strip() == "none":
        raise NetworkNotRequested(f"{WEAVE_CIDR_VAR}=none")
    return cidr.split()


def make_resolver(no_default_ipalloc: bool = False) -> CIDRResolver:
    def resolve(config, host_config):
        return weave_cidrs_from_config(config, host_config, no_default_ipalloc)

    return resolve
