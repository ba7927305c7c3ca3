import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from utils import DecodeError


class ContainerConfig(BaseModel):
    """Top-level fields of a Docker create-container body.

    Only the fields the interceptor reads or writes are modelled; every
    other key is kept as an extra and written back unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    image: Optional[str] = Field(None, alias="Image")
    hostname: Optional[str] = Field(None, alias="Hostname")
    domainname: Optional[str] = Field(None, alias="Domainname")
    # None (absent or null) and [] mean different things to the engine
    entrypoint: Optional[List[str]] = Field(None, alias="Entrypoint")
    cmd: Optional[List[str]] = Field(None, alias="Cmd")
    env: Optional[List[str]] = Field(None, alias="Env")


class HostConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    binds: Optional[List[str]] = Field(None, alias="Binds")
    dns: Optional[List[str]] = Field(None, alias="Dns")
    dns_search: Optional[List[str]] = Field(None, alias="DnsSearch")
    network_mode: Optional[str] = Field(None, alias="NetworkMode")


class ContainerCreateSpec(BaseModel):
    """Decoded create-container request body.

    On the wire the container config is flattened into the top-level
    object next to ``HostConfig`` and ``MacAddress``; here it is held as
    the named ``config`` field. Field presence survives a decode/encode
    round trip: anything not explicitly assigned stays absent.
    """

    model_config = ConfigDict(populate_by_name=True)

    config: ContainerConfig = Field(default_factory=ContainerConfig)
    host_config: Optional[HostConfig] = Field(None, alias="HostConfig")
    mac_address: Optional[str] = Field(None, alias="MacAddress")

    @classmethod
    def decode(cls, raw: bytes) -> "ContainerCreateSpec":
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise DecodeError(f"Invalid container create body: {e}")

        if not isinstance(data, dict):
            raise DecodeError("Invalid container create body: expected a JSON object")

        own = {key: data.pop(key) for key in ("HostConfig", "MacAddress") if key in data}
        # wire keys only; a field-name spelling such as "cmd" stays an extra
        try:
            if isinstance(own.get("HostConfig"), dict):
                own["HostConfig"] = HostConfig.model_validate(
                    own["HostConfig"], by_alias=True, by_name=False
                )
            config = ContainerConfig.model_validate(data, by_alias=True, by_name=False)
            return cls(config=config, **own)
        except ValidationError as e:
            raise DecodeError(f"Invalid container create body: {e}")

    def to_wire(self) -> Dict[str, Any]:
        body = self.config.model_dump(mode="json", by_alias=True, exclude_unset=True)
        body.update(
            self.model_dump(
                mode="json", by_alias=True, exclude_unset=True, exclude={"config"}
            )
        )
        return body

    def encode(self) -> bytes:
        return json.dumps(self.to_wire()).encode("utf-8")


class ImageMetadata(BaseModel):
    cmd: Optional[List[str]] = None
    entrypoint: Optional[List[str]] = None

    @classmethod
    def from_inspect(cls, attrs: Dict[str, Any]) -> "ImageMetadata":
        """Build from the ``attrs`` of a docker-py Image (``docker image inspect``)"""
        config = attrs.get("Config") or {}
        return cls(cmd=config.get("Cmd"), entrypoint=config.get("Entrypoint"))


class ProxiedRequest(BaseModel):
    """A client request on its way to the Docker daemon. Header names are lower case."""

    method: str
    path: str
    query: Dict[str, str] = {}
    query_string: str = ""
    headers: Dict[str, str] = {}
    body: bytes = b""

    def replace_body(self, body: bytes):
        """Swap the payload and keep the declared length consistent with it"""
        self.body = body
        self.headers.pop("transfer-encoding", None)
        self.headers["content-length"] = str(len(body))
