import json

import pytest

from models import ContainerCreateSpec, ImageMetadata, ProxiedRequest
from utils import DecodeError


class TestContainerCreateSpec:
    """Decoding and re-encoding of create-container bodies"""

    def test_round_trip_preserves_unknown_fields(self):
        body = {
            "Image": "nginx:latest",
            "Cmd": ["nginx", "-g", "daemon off;"],
            "Labels": {"com.example.team": "web"},
            "ExposedPorts": {"80/tcp": {}},
            "AttachStdout": True,
            "HostConfig": {"Memory": 536870912, "PortBindings": {"80/tcp": [{"HostPort": "8080"}]}},
            "NetworkingConfig": {"EndpointsConfig": {}},
            "MacAddress": "02:42:ac:11:00:02",
        }

        spec = ContainerCreateSpec.decode(json.dumps(body).encode())

        assert json.loads(spec.encode()) == body

    def test_absent_fields_stay_absent(self):
        spec = ContainerCreateSpec.decode(b'{"Image": "busybox"}')

        assert json.loads(spec.encode()) == {"Image": "busybox"}

    def test_empty_and_null_entrypoint_are_distinct(self):
        empty = ContainerCreateSpec.decode(b'{"Image": "busybox", "Entrypoint": []}')
        null = ContainerCreateSpec.decode(b'{"Image": "busybox", "Entrypoint": null}')
        absent = ContainerCreateSpec.decode(b'{"Image": "busybox"}')

        assert empty.config.entrypoint == []
        assert null.config.entrypoint is None
        assert absent.config.entrypoint is None
        assert json.loads(empty.encode())["Entrypoint"] == []
        assert json.loads(null.encode())["Entrypoint"] is None
        assert "Entrypoint" not in json.loads(absent.encode())

    def test_config_fields_are_nested(self):
        spec = ContainerCreateSpec.decode(
            b'{"Image": "busybox", "Hostname": "box", "HostConfig": {"Binds": ["/a:/b"]}}'
        )

        assert spec.config.image == "busybox"
        assert spec.config.hostname == "box"
        assert spec.host_config.binds == ["/a:/b"]
        assert spec.mac_address is None

    def test_assigned_fields_are_encoded(self):
        spec = ContainerCreateSpec.decode(b'{"Image": "busybox"}')
        spec.config.cmd = ["true"]

        assert json.loads(spec.encode()) == {"Image": "busybox", "Cmd": ["true"]}

    def test_field_name_spellings_are_kept_verbatim(self):
        body = {
            "Image": "busybox",
            "cmd": ["x"],
            "HostConfig": {"binds": ["/a:/b"], "Dns": ["8.8.8.8"]},
        }

        spec = ContainerCreateSpec.decode(json.dumps(body).encode())

        assert spec.config.cmd is None
        assert spec.host_config.binds is None
        assert spec.host_config.dns == ["8.8.8.8"]
        assert json.loads(spec.encode()) == body

    def test_malformed_json(self):
        with pytest.raises(DecodeError):
            ContainerCreateSpec.decode(b'{"Image": ')

    def test_body_must_be_an_object(self):
        with pytest.raises(DecodeError):
            ContainerCreateSpec.decode(b'["busybox"]')

    def test_wrong_field_type(self):
        with pytest.raises(DecodeError) as exc_info:
            ContainerCreateSpec.decode(b'{"Image": "busybox", "Entrypoint": 5}')
        assert exc_info.value.status_code == 400


class TestImageMetadata:
    def test_from_inspect(self):
        attrs = {"Id": "sha256:abc", "Config": {"Cmd": ["sh"], "Entrypoint": None}}

        image = ImageMetadata.from_inspect(attrs)

        assert image.cmd == ["sh"]
        assert image.entrypoint is None

    def test_missing_config(self):
        image = ImageMetadata.from_inspect({"Id": "sha256:abc"})

        assert image.cmd is None
        assert image.entrypoint is None


class TestProxiedRequest:
    def test_replace_body_updates_length(self):
        request = ProxiedRequest(
            method="POST",
            path="/containers/create",
            headers={"content-length": "2", "transfer-encoding": "chunked"},
            body=b"{}",
        )

        request.replace_body(b'{"Image": "busybox"}')

        assert request.body == b'{"Image": "busybox"}'
        assert request.headers["content-length"] == str(len(request.body))
        assert "transfer-encoding" not in request.headers
