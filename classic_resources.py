"""
Sibling classic resources exposed through a classic VM: NICs, reserved IPs,
disks and network security groups.
"""
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
import ipaddress

from cloudprovider import CloudDisk, CloudEip, CloudNic, VMStatus


EIP_MODE_ELASTIC = "elastic_ip"
EIP_MODE_PUBLIC = "public_ip"
DISK_TYPE_SYS = "sys"
DISK_TYPE_DATA = "data"


@dataclass
class SubResource:
    """Reference to another Azure resource."""
    id: str = ""
    name: str = ""
    type: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["SubResource"]:
        if not data:
            return None
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            type=data.get("type") or "",
        )

    def to_dict(self) -> Dict[str, str]:
        result = {}
        if self.id:
            result["id"] = self.id
        if self.name:
            result["name"] = self.name
        if self.type:
            result["type"] = self.type
        return result


@dataclass
class ClassicDisk:
    """A disk entry of a classic storage profile or disk listing."""
    lun: int = 0
    disk_name: str = ""
    caching: str = ""
    operating_system: str = ""
    io_type: str = ""
    created_time: str = ""
    source_image_name: str = ""
    vhd_uri: str = ""
    disk_size: int = 0
    storage_account: Optional[SubResource] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicDisk":
        data = data or {}
        return cls(
            lun=int(data.get("lun") or 0),
            disk_name=data.get("diskName") or "",
            caching=data.get("caching") or "",
            operating_system=data.get("operatingSystem") or "",
            io_type=data.get("ioType") or "",
            created_time=data.get("createdTime") or "",
            source_image_name=data.get("sourceImageName") or "",
            vhd_uri=data.get("vhdUri") or "",
            disk_size=int(data.get("diskSize") or 0),
            storage_account=SubResource.from_dict(data.get("storageAccount")),
        )


class ClassicInstanceDisk(CloudDisk):
    """Disk view returned by the ``<instanceId>/disks`` listing."""

    def __init__(self, region, disk: ClassicDisk):
        self.region = region
        self.disk = disk

    @classmethod
    def from_dict(cls, region, data: Dict[str, Any]) -> "ClassicInstanceDisk":
        # Listings may nest the disk under "properties"
        return cls(region, ClassicDisk.from_dict(data.get("properties") or data))

    def get_id(self) -> str:
        return self.disk.vhd_uri or self.disk.disk_name

    def get_name(self) -> str:
        return self.disk.disk_name

    def get_global_id(self) -> str:
        return self.get_id().lower()

    def get_status(self) -> str:
        return VMStatus.READY.value

    def get_disk_size_mb(self) -> int:
        return self.disk.disk_size * 1024

    def get_disk_type(self) -> str:
        if self.disk.operating_system:
            return DISK_TYPE_SYS
        return DISK_TYPE_DATA

    def get_cache_mode(self) -> str:
        return self.disk.caching

    def get_template_id(self) -> str:
        return self.disk.source_image_name

    def get_lun(self) -> int:
        return self.disk.lun


class ClassicInstanceNic(CloudNic):
    """The single network attachment resolved for a classic VM."""

    def __init__(self, instance, id: str, ip: str):
        self.instance = instance
        self.id = id
        self.ip = ip

    def get_id(self) -> str:
        return self.id

    def get_ip(self) -> str:
        return self.ip

    def get_mac(self) -> str:
        # Classic VMs do not report a MAC, derive a stable one from the IPv4 address
        try:
            octets = ipaddress.IPv4Address(self.ip).packed
        except ValueError:
            return ""
        return "00:16:" + ":".join(f"{b:02x}" for b in octets)

    def get_driver(self) -> str:
        return "virtio"

    def in_classic_network(self) -> bool:
        return True

    def get_network_id(self) -> str:
        return self.id.lower()


@dataclass
class ClassicEipProperties:
    ip_address: str = ""
    status: str = ""
    attached_to: Optional[SubResource] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicEipProperties":
        data = data or {}
        return cls(
            ip_address=data.get("ipAddress") or "",
            status=data.get("status") or "",
            attached_to=SubResource.from_dict(data.get("attachedTo")),
        )


class ClassicEip(CloudEip):
    """Reserved IP, or a public address synthesized from the instance view."""

    def __init__(
        self,
        region,
        id: str,
        name: str,
        properties: Optional[ClassicEipProperties] = None,
        location: str = "",
        instance_id: str = "",
    ):
        self.region = region
        self.id = id
        self.name = name
        self.location = location
        self.properties = properties or ClassicEipProperties()
        self.instance_id = instance_id

    @classmethod
    def from_dict(cls, region, data: Dict[str, Any]) -> "ClassicEip":
        return cls(
            region,
            id=data.get("id") or "",
            name=data.get("name") or "",
            location=data.get("location") or "",
            properties=ClassicEipProperties.from_dict(data.get("properties")),
        )

    def is_attached_elsewhere(self, instance_id: str) -> bool:
        """True when the reservation is bound to a different instance.

        Resource ids are compared case-insensitively.
        """
        attached = self.properties.attached_to
        return attached is not None and bool(attached.id) and attached.id.lower() != instance_id.lower()

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return self.name

    def get_global_id(self) -> str:
        return self.id.lower()

    def get_status(self) -> str:
        return VMStatus.READY.value

    def get_ip_addr(self) -> str:
        return self.properties.ip_address

    def get_associate_type(self) -> str:
        return "server"

    def get_associate_id(self) -> str:
        return self.instance_id

    def get_mode(self) -> str:
        if self.instance_id and self.instance_id == self.id:
            return EIP_MODE_PUBLIC
        return EIP_MODE_ELASTIC


@dataclass
class ClassicSecurityGroup:
    """Classic network security group, as needed for assignment."""
    id: str
    name: str
    location: str = ""
    tags: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassicSecurityGroup":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            location=data.get("location") or "",
            tags=dict(data.get("tags") or {}),
        )
