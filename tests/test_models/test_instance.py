"""Tests for instance specification models."""

import pytest
from pydantic import ValidationError

from flotilla.models.instance import InstanceSpec


class TestInstanceSpec:
    """Test InstanceSpec model."""

    def test_valid_instance(self):
        """Test a well-formed instance."""
        spec = InstanceSpec(
            name="pihole1",
            ip="192.168.8.53/23",
            gateway="192.168.8.1",
            dns=["8.8.8.8", "8.8.4.4"],
        )

        assert spec.name == "pihole1"
        assert spec.dns_csv == "8.8.8.8,8.8.4.4"
        assert spec.cloud_init_filename == "pihole1-cloud-init.yaml"

    def test_dns_order_preserved(self):
        """Nameservers are neither reordered nor deduplicated."""
        spec = InstanceSpec(
            name="a", ip="10.0.0.2/24", gateway="10.0.0.1",
            dns=["9.9.9.9", "1.1.1.1", "9.9.9.9"],
        )

        assert spec.dns_csv == "9.9.9.9,1.1.1.1,9.9.9.9"

    @pytest.mark.parametrize("name", ["", "pi hole", "pihole\t1"])
    def test_invalid_name(self, name):
        """Test names with whitespace are rejected."""
        with pytest.raises(ValidationError):
            InstanceSpec(name=name, ip="10.0.0.2/24", gateway="10.0.0.1", dns=["1.1.1.1"])

    @pytest.mark.parametrize("ip", ["10.0.0.2", "10.0.0.300/24", "not-an-ip/24"])
    def test_invalid_ip(self, ip):
        """Test static IPs must parse as CIDR."""
        with pytest.raises(ValidationError):
            InstanceSpec(name="a", ip=ip, gateway="10.0.0.1", dns=["1.1.1.1"])

    def test_invalid_gateway(self):
        """Test gateway must be an address."""
        with pytest.raises(ValidationError):
            InstanceSpec(name="a", ip="10.0.0.2/24", gateway="router", dns=["1.1.1.1"])

    def test_empty_dns_rejected(self):
        """Test at least one nameserver is required."""
        with pytest.raises(ValidationError):
            InstanceSpec(name="a", ip="10.0.0.2/24", gateway="10.0.0.1", dns=[])

    def test_immutable(self):
        """Test specs cannot be mutated after construction."""
        spec = InstanceSpec(name="a", ip="10.0.0.2/24", gateway="10.0.0.1", dns=["1.1.1.1"])

        with pytest.raises(ValidationError):
            spec.name = "b"
