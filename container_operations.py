"""
Container Operations Module

Docker Engine queries the interceptor needs: image inspection and the
bridge address of a running container. Errors other than "image not
found" are left to propagate to the caller.
"""

from typing import Optional

import docker
import requests
from docker.errors import DockerException, ImageNotFound

from models import ImageMetadata
from utils import NoSuchImage, logger


def get_docker_client(base_url: str) -> docker.DockerClient:
    """Docker client for the daemon behind the proxy"""
    return docker.DockerClient(base_url=base_url)


def inspect_image(client: docker.DockerClient, ref: str) -> ImageMetadata:
    """Default command and entrypoint of an image"""
    if not ref:
        raise NoSuchImage(ref)
    try:
        image = client.images.get(ref)
    except ImageNotFound:
        raise NoSuchImage(ref)
    return ImageMetadata.from_inspect(image.attrs)


def get_container_ip(client: docker.DockerClient, name: str) -> Optional[str]:
    """IP address of a container on the default bridge, or None if unavailable"""
    try:
        container = client.containers.get(name)
    except (DockerException, requests.exceptions.RequestException) as e:
        logger.debug("Could not inspect container", container=name, error=str(e))
        return None

    network_settings = container.attrs.get("NetworkSettings") or {}
    return network_settings.get("IPAddress") or None
