"""
Create Container Interceptor Module

Rewrites `POST /containers/create` bodies so that containers joining the
weave network start behind weavewait: the weavewait volume is mounted,
the entrypoint is wrapped, and hostname/DNS settings point at weavedns.
"""

from typing import List, Optional

import docker

from container_operations import inspect_image
from models import ContainerConfig, ContainerCreateSpec, HostConfig, ProxiedRequest
from nameserver import get_dns_domain
from settings import ProxySettings
from utils import CREATE_INTERCEPTS, NetworkNotRequested, NoCommandSpecified, logger
from weave_cidrs import CIDRResolver, make_resolver

MAX_DOCKER_HOSTNAME = 64
WEAVEWAIT_MOUNT = "/w"
WEAVEWAIT_ENTRYPOINT = ["/w/w"]


def add_weavewait_volume(binds: Optional[List[str]], volume: str) -> List[str]:
    """Binds with any existing /w mount replaced by a read-only weavewait mount"""
    kept = []
    for bind in binds or []:
        parts = bind.split(":")
        if len(parts) >= 2 and parts[1] == WEAVEWAIT_MOUNT:
            continue
        kept.append(bind)
    kept.append(f"{volume}:{WEAVEWAIT_MOUNT}:ro")
    return kept


class CreateContainerInterceptor:
    def __init__(
        self,
        client: docker.DockerClient,
        settings: ProxySettings,
        resolver: Optional[CIDRResolver] = None,
    ):
        self.client = client
        self.settings = settings
        self.resolver = resolver or make_resolver(settings.no_default_ipalloc)

    def intercept_request(self, request: ProxiedRequest) -> ProxiedRequest:
        spec = ContainerCreateSpec.decode(request.body)

        try:
            cidrs = self.resolver(spec.config, spec.host_config)
        except NetworkNotRequested as e:
            logger.info("Ignoring container", reason=str(e))
            CREATE_INTERCEPTS.labels(outcome="ignored").inc()
        else:
            logger.info("Creating container with WEAVE_CIDR", weave_cidr=" ".join(cidrs))
            if spec.host_config is None:
                spec.host_config = HostConfig()
            spec.host_config.binds = add_weavewait_volume(
                spec.host_config.binds, self.settings.weavewait_volume
            )
            self.set_weavewait_entrypoint(spec.config)
            self.set_weave_dns(spec, request)
            CREATE_INTERCEPTS.labels(outcome="attached").inc()

        request.replace_body(spec.encode())
        return request

    def intercept_response(self, response):
        return None

    def set_weavewait_entrypoint(self, config: ContainerConfig):
        if not config.entrypoint:
            image = inspect_image(self.client, config.image or "")

            if not config.cmd and image.cmd is not None:
                config.cmd = image.cmd

            if config.entrypoint is None and image.entrypoint is not None:
                config.entrypoint = image.entrypoint

        if not config.entrypoint and not config.cmd:
            raise NoCommandSpecified()

        # Only the first element is compared, so "/w/w" plus arguments counts as wrapped
        if not config.entrypoint or config.entrypoint[0] != WEAVEWAIT_ENTRYPOINT[0]:
            config.entrypoint = WEAVEWAIT_ENTRYPOINT + (config.entrypoint or [])

    def set_weave_dns(self, spec: ContainerCreateSpec, request: ProxiedRequest):
        if self.settings.without_dns:
            return

        dns_domain, dns_running = get_dns_domain(
            self.client, self.settings.dns_http_timeout
        )
        if not (dns_running or self.settings.with_dns):
            return

        config, host_config = spec.config, spec.host_config
        host_config.dns = (host_config.dns or []) + [self.settings.docker_bridge_ip]

        name = request.query.get("name", "")
        if not config.hostname and name:
            # a trailing period is unusual on the end of a host name
            trimmed_domain = dns_domain[:-1] if dns_domain.endswith(".") else dns_domain
            if len(name) + 1 + len(trimmed_domain) > MAX_DOCKER_HOSTNAME:
                logger.warning("Container name too long to be used as hostname", name=name)
            else:
                config.hostname = name
                config.domainname = trimmed_domain

        if not host_config.dns_search:
            if not config.hostname:
                host_config.dns_search = [dns_domain]
            else:
                host_config.dns_search = ["."]
