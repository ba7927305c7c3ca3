import pytest

from models import ContainerConfig, HostConfig
from utils import NetworkNotRequested
from weave_cidrs import make_resolver, weave_cidrs_from_config


class TestWeaveCIDRs:
    """Test cases for deciding network participation"""

    def test_default_network(self):
        config = ContainerConfig(image="busybox", env=["PATH=/bin"])
        assert weave_cidrs_from_config(config, None) == []

    def test_explicit_cidrs(self):
        config = ContainerConfig(env=["WEAVE_CIDR=10.2.1.1/24 net:10.2.2.0/24"])
        assert weave_cidrs_from_config(config, HostConfig()) == [
            "10.2.1.1/24",
            "net:10.2.2.0/24",
        ]

    def test_empty_cidr_means_default(self):
        config = ContainerConfig(env=["WEAVE_CIDR="])
        assert weave_cidrs_from_config(config, None) == []

    def test_opt_out(self):
        config = ContainerConfig(env=["WEAVE_CIDR=none"])
        with pytest.raises(NetworkNotRequested):
            weave_cidrs_from_config(config, None)

    @pytest.mark.parametrize("mode", ["host", "none", "container:abc123"])
    def test_network_modes_without_weave(self, mode):
        config = ContainerConfig(env=["WEAVE_CIDR=10.2.1.1/24"])
        with pytest.raises(NetworkNotRequested):
            weave_cidrs_from_config(config, HostConfig(network_mode=mode))

    def test_bridge_mode_is_allowed(self):
        assert weave_cidrs_from_config(None, HostConfig(network_mode="bridge")) == []

    def test_no_default_ipalloc(self):
        resolve = make_resolver(no_default_ipalloc=True)
        with pytest.raises(NetworkNotRequested):
            resolve(ContainerConfig(image="busybox"), None)
        assert resolve(ContainerConfig(env=["WEAVE_CIDR=10.2.1.1/24"]), None) == [
            "10.2.1.1/24"
        ]
