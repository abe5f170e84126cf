"""Tests for classic disks, NICs, reserved IPs and security groups."""
from unittest.mock import MagicMock

from classic_resources import (
    DISK_TYPE_DATA,
    DISK_TYPE_SYS,
    EIP_MODE_ELASTIC,
    EIP_MODE_PUBLIC,
    ClassicEip,
    ClassicInstanceDisk,
    ClassicInstanceNic,
    ClassicSecurityGroup,
    SubResource,
)
from conftest import INSTANCE_ID, NSG_ID


class TestClassicInstanceDisk:

    def test_system_disk(self):
        disk = ClassicInstanceDisk.from_dict(MagicMock(), {"properties": {
            "diskName": "web01-os",
            "operatingSystem": "Linux",
            "diskSize": 30,
            "caching": "ReadWrite",
            "vhdUri": "https://store01.blob.core.windows.net/vhds/WEB01-os.vhd",
            "sourceImageName": "Ubuntu-16_04-LTS",
        }})
        assert disk.get_disk_type() == DISK_TYPE_SYS
        assert disk.get_disk_size_mb() == 30 * 1024
        assert disk.get_cache_mode() == "ReadWrite"
        assert disk.get_template_id() == "Ubuntu-16_04-LTS"
        assert disk.get_id() == "https://store01.blob.core.windows.net/vhds/WEB01-os.vhd"
        assert disk.get_global_id() == disk.get_id().lower()
        assert disk.get_status() == "ready"

    def test_data_disk_without_properties_wrapper(self):
        disk = ClassicInstanceDisk.from_dict(MagicMock(), {"diskName": "data-1", "lun": 2, "diskSize": 128})
        assert disk.get_disk_type() == DISK_TYPE_DATA
        assert disk.get_lun() == 2
        assert disk.get_id() == "data-1"


class TestClassicInstanceNic:

    def test_mac_derived_from_ip(self):
        nic = ClassicInstanceNic(MagicMock(), id="/vnet/Web", ip="10.0.0.4")
        assert nic.get_mac() == "00:16:0a:00:00:04"
        assert nic.get_network_id() == "/vnet/web"
        assert nic.get_driver() == "virtio"
        assert nic.in_classic_network()

    def test_mac_for_invalid_ip(self):
        nic = ClassicInstanceNic(MagicMock(), id="/vnet/web", ip="not-an-ip")
        assert nic.get_mac() == ""


class TestClassicEip:

    def _eip(self, attached_to=None):
        data = {
            "id": "/subscriptions/x/providers/Microsoft.ClassicNetwork/reservedIps/rip1",
            "name": "rip1",
            "location": "East US",
            "properties": {"ipAddress": "40.1.1.1", "status": "Created"},
        }
        if attached_to is not None:
            data["properties"]["attachedTo"] = {"id": attached_to}
        return ClassicEip.from_dict(MagicMock(), data)

    def test_parses_reserved_ip(self):
        eip = self._eip()
        assert eip.get_ip_addr() == "40.1.1.1"
        assert eip.properties.status == "Created"
        assert eip.get_associate_id() == ""
        assert eip.get_associate_type() == "server"

    def test_attached_elsewhere(self):
        assert self._eip(attached_to="/other/vm").is_attached_elsewhere(INSTANCE_ID)
        assert not self._eip(attached_to=INSTANCE_ID).is_attached_elsewhere(INSTANCE_ID)
        assert not self._eip().is_attached_elsewhere(INSTANCE_ID)

    def test_attachment_comparison_ignores_case(self):
        assert not self._eip(attached_to=INSTANCE_ID.lower()).is_attached_elsewhere(INSTANCE_ID)
        assert not self._eip(attached_to=INSTANCE_ID.upper()).is_attached_elsewhere(INSTANCE_ID)

    def test_modes(self):
        reserved = self._eip()
        reserved.instance_id = INSTANCE_ID
        assert reserved.get_mode() == EIP_MODE_ELASTIC

        public = ClassicEip(MagicMock(), id=INSTANCE_ID, name="52.0.0.1", instance_id=INSTANCE_ID)
        assert public.get_mode() == EIP_MODE_PUBLIC


class TestSubResources:

    def test_sub_resource_from_empty(self):
        assert SubResource.from_dict(None) is None
        assert SubResource.from_dict({}) is None

    def test_sub_resource_to_dict_skips_empty(self):
        assert SubResource(id=NSG_ID, name="nsg01").to_dict() == {"id": NSG_ID, "name": "nsg01"}

    def test_security_group(self):
        secgroup = ClassicSecurityGroup.from_dict({
            "id": NSG_ID, "name": "nsg01", "location": "East US", "tags": {"env": "prod"},
        })
        assert secgroup.name == "nsg01"
        assert secgroup.tags == {"env": "prod"}
