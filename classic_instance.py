"""
Azure Classic (Service Management) virtual machine adapter.

Maps ``Microsoft.ClassicCompute/virtualMachines`` resources onto the
vendor-neutral ``CloudInstance`` contract. Records are parsed from the JSON
returned by the classic compute API; lifecycle operations issue one remote
action through the region client and then converge with ``wait_status``.
"""
from typing import Optional, Dict, List, Any, Tuple
from dataclasses import dataclass, field
import logging

from cloudprovider import (
    BIOS,
    BILLING_TYPE_POSTPAID,
    HYPERVISOR_AZURE,
    OS_ARCH_X86_64,
    BillingCycle,
    CloudInstance,
    InstanceUpdateOptions,
    ManagedVMChangeConfig,
    ManagedVMRebuildRootConfig,
    NotImplementedYetError,
    NotSupportedError,
    RemoteFailureError,
    ServerStopOptions,
    ServerVncInput,
    VMStatus,
    wait_status,
)
from classic_resources import (
    ClassicDisk,
    ClassicEip,
    ClassicEipProperties,
    ClassicInstanceDisk,
    ClassicInstanceNic,
    SubResource,
)
from config import CLASSIC_VM_SIZES

logger = logging.getLogger(__name__)


CLASSIC_STATUS_MAP = {
    "StoppedDeallocated": VMStatus.READY,
    "ReadyRole": VMStatus.RUNNING,
    "Stopped": VMStatus.READY,
    "RoleStateUnknown": VMStatus.UNKNOWN,
}


def normalize_classic_status(raw_status: str, instance_name: str = "") -> VMStatus:
    """Translate a classic role status into a normalized VM status."""
    status = CLASSIC_STATUS_MAP.get(raw_status)
    if status is None:
        logger.error(f"Unknown classic instance {instance_name} status {raw_status}")
        return VMStatus.UNKNOWN
    return status


def normalize_os_type(operating_system: str) -> str:
    if operating_system and operating_system.lower().startswith("win"):
        return "Windows"
    return "Linux"


def get_resource_group(resource_id: str) -> str:
    """Extract the lower-cased resource group name from a resource id."""
    parts = [p for p in resource_id.lower().strip("/").split("/") if p]
    for idx, part in enumerate(parts):
        if part == "resourcegroups" and idx + 1 < len(parts):
            return parts[idx + 1]
    return ""


@dataclass
class GuestAgentStatus:
    protocol_version: str = ""
    timestamp: str = ""
    guest_agent_version: str = ""
    status: str = ""
    message: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GuestAgentStatus":
        data = data or {}
        formatted = data.get("formattedMessage") or {}
        return cls(
            protocol_version=data.get("protocolVersion") or "",
            timestamp=data.get("timestamp") or "",
            guest_agent_version=data.get("guestAgentVersion") or "",
            status=data.get("status") or "",
            message=formatted.get("message") or "",
        )


@dataclass
class ClassicInstanceView:
    """Live status snapshot of a classic VM."""
    status: str = ""
    power_state: str = ""
    public_ip_addresses: List[str] = field(default_factory=list)
    fully_qualified_domain_name: str = ""
    update_domain: int = 0
    fault_domain: int = 0
    status_message: str = ""
    private_ip_address: str = ""
    instance_ip_addresses: List[str] = field(default_factory=list)
    computer_name: str = ""
    guest_agent_status: GuestAgentStatus = field(default_factory=GuestAgentStatus)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ClassicInstanceView"]:
        if data is None:
            return None
        return cls(
            status=data.get("status") or "",
            power_state=data.get("powerState") or "",
            public_ip_addresses=list(data.get("publicIpAddresses") or []),
            fully_qualified_domain_name=data.get("fullyQualifiedDomainName") or "",
            update_domain=int(data.get("updateDomain") or 0),
            fault_domain=int(data.get("faultDomain") or 0),
            status_message=data.get("statusMessage") or "",
            private_ip_address=data.get("privateIpAddress") or "",
            instance_ip_addresses=list(data.get("instanceIpAddresses") or []),
            computer_name=data.get("computerName") or "",
            guest_agent_status=GuestAgentStatus.from_dict(data.get("guestAgentStatus")),
        )


@dataclass
class ClassicStorageProfile:
    operating_system_disk: ClassicDisk = field(default_factory=ClassicDisk)
    data_disks: List[ClassicDisk] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicStorageProfile":
        data = data or {}
        return cls(
            operating_system_disk=ClassicDisk.from_dict(data.get("operatingSystemDisk")),
            data_disks=[ClassicDisk.from_dict(d) for d in data.get("dataDisks") or []],
        )


@dataclass
class ClassicHardwareProfile:
    platform_guest_agent: bool = False
    size: str = ""
    deployment_name: str = ""
    deployment_id: str = ""
    deployment_label: str = ""
    deployment_locked: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicHardwareProfile":
        data = data or {}
        return cls(
            platform_guest_agent=bool(data.get("platformGuestAgent")),
            size=data.get("size") or "",
            deployment_name=data.get("deploymentName") or "",
            deployment_id=data.get("deploymentId") or "",
            deployment_label=data.get("deploymentLabel") or "",
            deployment_locked=bool(data.get("deploymentLocked")),
        )


@dataclass
class InputEndpoint:
    endpoint_name: str = ""
    private_port: int = 0
    public_port: int = 0
    protocol: str = ""
    enable_direct_server_return: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputEndpoint":
        return cls(
            endpoint_name=data.get("endpointName") or "",
            private_port=int(data.get("privatePort") or 0),
            public_port=int(data.get("publicPort") or 0),
            protocol=data.get("protocol") or "",
            enable_direct_server_return=bool(data.get("enableDirectServerReturn")),
        )


@dataclass
class InstanceIp:
    idle_timeout_in_minutes: int = 0
    id: str = ""
    name: str = ""
    type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstanceIp":
        return cls(
            idle_timeout_in_minutes=int(data.get("idleTimeoutInMinutes") or 0),
            id=data.get("id") or "",
            name=data.get("name") or "",
            type=data.get("type") or "",
        )


@dataclass
class ClassicVirtualNetwork:
    static_ip_address: str = ""
    subnet_names: List[str] = field(default_factory=list)
    id: str = ""
    name: str = ""
    type: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicVirtualNetwork":
        data = data or {}
        return cls(
            static_ip_address=data.get("staticIpAddress") or "",
            subnet_names=list(data.get("subnetNames") or []),
            id=data.get("id") or "",
            name=data.get("name") or "",
            type=data.get("type") or "",
        )


@dataclass
class ClassicNetworkProfile:
    input_endpoints: List[InputEndpoint] = field(default_factory=list)
    instance_ips: List[InstanceIp] = field(default_factory=list)
    reserved_ips: List[SubResource] = field(default_factory=list)
    virtual_network: ClassicVirtualNetwork = field(default_factory=ClassicVirtualNetwork)
    network_security_group: Optional[SubResource] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicNetworkProfile":
        data = data or {}
        reserved = [SubResource.from_dict(r) for r in data.get("reservedIps") or []]
        return cls(
            input_endpoints=[InputEndpoint.from_dict(e) for e in data.get("inputEndpoints") or []],
            instance_ips=[InstanceIp.from_dict(i) for i in data.get("instanceIps") or []],
            reserved_ips=[r for r in reserved if r is not None],
            virtual_network=ClassicVirtualNetwork.from_dict(data.get("virtualNetwork")),
            network_security_group=SubResource.from_dict(data.get("networkSecurityGroup")),
        )


@dataclass
class ClassicVirtualMachineProperties:
    domain_name: Optional[SubResource] = None
    instance_view: Optional[ClassicInstanceView] = None
    network_profile: ClassicNetworkProfile = field(default_factory=ClassicNetworkProfile)
    hardware_profile: ClassicHardwareProfile = field(default_factory=ClassicHardwareProfile)
    storage_profile: ClassicStorageProfile = field(default_factory=ClassicStorageProfile)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassicVirtualMachineProperties":
        data = data or {}
        return cls(
            domain_name=SubResource.from_dict(data.get("domainName")),
            instance_view=ClassicInstanceView.from_dict(data.get("instanceView")),
            network_profile=ClassicNetworkProfile.from_dict(data.get("networkProfile")),
            hardware_profile=ClassicHardwareProfile.from_dict(data.get("hardwareProfile")),
            storage_profile=ClassicStorageProfile.from_dict(data.get("storageProfile")),
        )


def resolve_network_identity(
    instance_id: str,
    network_profile: ClassicNetworkProfile,
    instance_view: Optional[ClassicInstanceView],
) -> Optional[Tuple[str, str]]:
    """Resolve the ``(subnet_reference_id, ip_address)`` of a classic VM.

    Static virtual-network configuration wins. The live private IP only fills
    whichever half is still missing, in which case the subnet reference is
    synthesized as ``<instance_id>/<private_ip>``. Returns ``None`` unless
    both halves are known.
    """
    vnet = network_profile.virtual_network
    network_id, ip = "", ""
    if vnet.subnet_names:
        network_id = f"{vnet.id}/{vnet.subnet_names[0]}"
    if vnet.static_ip_address:
        ip = vnet.static_ip_address
    if (not network_id or not ip) and instance_view is not None and instance_view.private_ip_address:
        if not network_id:
            network_id = f"{instance_id}/{instance_view.private_ip_address}"
        if not ip:
            ip = instance_view.private_ip_address
    if network_id and ip:
        return network_id, ip
    return None


class ClassicInstance(CloudInstance):
    """A classic VM record bound to the region client that fetched it.

    Records are mutated in place by ``refresh`` and are meant to be owned by
    a single call chain.
    """

    def __init__(
        self,
        region,
        id: str,
        name: str = "",
        type: str = "",
        location: str = "",
        properties: Optional[ClassicVirtualMachineProperties] = None,
        tags: Optional[Dict[str, str]] = None,
    ):
        self.region = region
        self.id = id
        self.name = name
        self.type = type
        self.location = location
        self.properties = properties or ClassicVirtualMachineProperties()
        self.tags = tags or {}
        self._refreshed = False

    @classmethod
    def from_dict(cls, region, data: Dict[str, Any]) -> "ClassicInstance":
        return cls(
            region,
            id=data.get("id") or "",
            name=data.get("name") or "",
            type=data.get("type") or "",
            location=data.get("location") or "",
            properties=ClassicVirtualMachineProperties.from_dict(data.get("properties")),
            tags=dict(data.get("tags") or {}),
        )

    def __repr__(self) -> str:
        return f"ClassicInstance(name={self.name!r}, id={self.id!r})"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return self.name

    def get_hostname(self) -> str:
        return self.name

    def get_global_id(self) -> str:
        return self.id.lower()

    def get_project_id(self) -> str:
        return get_resource_group(self.id)

    def get_tags(self) -> Dict[str, str]:
        return dict(self.tags)

    def get_sys_tags(self) -> Dict[str, str]:
        return {
            "price_key": f"{self.properties.hardware_profile.size}::{self.region.name}",
            "zone_ext_id": self.region.get_global_id(),
        }

    def get_hypervisor(self) -> str:
        return HYPERVISOR_AZURE

    def get_instance_type(self) -> str:
        return self.properties.hardware_profile.size

    def get_security_group_ids(self) -> List[str]:
        nsg = self.properties.network_profile.network_security_group
        if nsg is not None:
            return [nsg.id]
        return []

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Replace this record's contents with a fresh point fetch."""
        instance = self.region.get_classic_instance(self.id)
        self.id = instance.id or self.id
        self.name = instance.name
        self.type = instance.type
        self.location = instance.location
        self.tags = instance.tags
        self.properties = instance.properties
        self._refreshed = True

    def get_status(self) -> VMStatus:
        """Normalized status of the last snapshot.

        A record that has never been refreshed and carries no instance view is
        refreshed once; after any refresh the snapshot is used as is.
        """
        if self.properties.instance_view is None and not self._refreshed:
            try:
                self.refresh()
            except RemoteFailureError as e:
                logger.error(f"failed to get status for classic instance {self.name}: {e}")
                return VMStatus.UNKNOWN
        if self.properties.instance_view is None:
            logger.debug(f"classic instance {self.name} has no instance view")
            return VMStatus.UNKNOWN
        return normalize_classic_status(self.properties.instance_view.status, self.name)

    # ------------------------------------------------------------------
    # Hardware and OS
    # ------------------------------------------------------------------

    def get_vcpu_count(self) -> int:
        size = CLASSIC_VM_SIZES.get(self.properties.hardware_profile.size)
        if size is None:
            logger.error(f"failed to find classic VMSize for {self.properties.hardware_profile.size}")
            return 0
        return size.number_of_cores

    def get_vmem_size_mb(self) -> int:
        size = CLASSIC_VM_SIZES.get(self.properties.hardware_profile.size)
        if size is None:
            logger.error(f"failed to find classic VMSize for {self.properties.hardware_profile.size}")
            return 0
        return size.memory_in_mb

    def get_os_type(self) -> str:
        return normalize_os_type(self.properties.storage_profile.operating_system_disk.operating_system)

    def get_full_os_name(self) -> str:
        return self.properties.storage_profile.operating_system_disk.source_image_name

    def get_bios(self) -> str:
        return BIOS

    def get_os_arch(self) -> str:
        return OS_ARCH_X86_64

    def get_os_version(self) -> str:
        return ""

    def get_os_dist(self) -> str:
        return ""

    def get_os_lang(self) -> str:
        return ""

    def get_machine(self) -> str:
        return "pc"

    def get_boot_order(self) -> str:
        return "dcn"

    def get_vga(self) -> str:
        return "std"

    def get_vdi(self) -> str:
        return "vnc"

    def get_billing_type(self) -> str:
        return BILLING_TYPE_POSTPAID

    # ------------------------------------------------------------------
    # Attached resources
    # ------------------------------------------------------------------

    def get_idisks(self) -> List[ClassicInstanceDisk]:
        try:
            return self.region.get_classic_instance_disks(self.id)
        except RemoteFailureError as e:
            raise RemoteFailureError("get_classic_instance_disks", e) from e

    def get_inics(self) -> List[ClassicInstanceNic]:
        instance = self.region.get_classic_instance(self.id)
        identity = resolve_network_identity(
            self.id,
            instance.properties.network_profile,
            instance.properties.instance_view,
        )
        if identity is None:
            return []
        network_id, ip = identity
        return [ClassicInstanceNic(self, id=network_id, ip=ip)]

    def get_ieip(self) -> Optional[ClassicEip]:
        """Return the reserved IP bound to this VM, else its live public IP."""
        for reserved_ip in self.properties.network_profile.reserved_ips:
            try:
                eip = self.region.get_classic_eip(reserved_ip.id)
            except RemoteFailureError as e:
                logger.error(f"failed find eip {reserved_ip.name} for classic instance {self.name}: {e}")
                continue
            if eip.is_attached_elsewhere(self.id):
                # usually this instance was deallocated and the reservation moved on
                logger.info(
                    f"reserved ip {reserved_ip.name} of classic instance {self.name} "
                    f"is attached to {eip.properties.attached_to.id}, skipping"
                )
                continue
            eip.instance_id = self.id
            return eip

        instance_view = self.properties.instance_view
        if instance_view is not None and instance_view.public_ip_addresses:
            public_ip = instance_view.public_ip_addresses[0]
            return ClassicEip(
                self.region,
                id=self.id,
                name=public_ip,
                instance_id=self.id,
                properties=ClassicEipProperties(ip_address=public_ip),
            )
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_vm(self) -> None:
        self.region.start_vm(self.id)
        wait_status(self, VMStatus.RUNNING, self.region.poll_interval, self.region.wait_timeout)

    def stop_vm(self, opts: Optional[ServerStopOptions] = None) -> None:
        opts = opts or ServerStopOptions()
        self.region.stop_classic_vm(self.id, opts.is_force)
        wait_status(self, VMStatus.READY, self.region.poll_interval, self.region.wait_timeout)

    def attach_disk(self, disk_id: str) -> None:
        status = self.get_status()
        self.region.attach_disk(self.id, disk_id)
        wait_status(self, status, self.region.poll_interval, self.region.wait_timeout)

    def detach_disk(self, disk_id: str) -> None:
        status = self.get_status()
        self.region.detach_disk(self.id, disk_id)
        wait_status(self, status, self.region.poll_interval, self.region.wait_timeout)

    def delete_vm(self) -> None:
        self.region.delete_vm(self.id)
        # The security group and cloud service name are left behind by the VM delete
        nsg = self.properties.network_profile.network_security_group
        if nsg is not None:
            self._delete_quietly(nsg.id)
        if self.properties.domain_name is not None:
            self._delete_quietly(self.properties.domain_name.id)

    def _delete_quietly(self, resource_id: str) -> None:
        try:
            self.region.delete(resource_id)
        except RemoteFailureError as e:
            logger.warning(f"failed to delete {resource_id} after classic instance {self.name}: {e}")

    def assign_security_group(self, secgroup_id: str) -> None:
        nsg = self.properties.network_profile.network_security_group
        if nsg is not None:
            if nsg.id == secgroup_id:
                return
            self._delete_quietly(f"{self.id}/associatedNetworkSecurityGroups/{nsg.name}")

        secgroup = self.region.get_classic_security_group_details(secgroup_id)
        payload = {
            "id": f"{self.id}/associatedNetworkSecurityGroups/{secgroup.name}",
            "name": secgroup.name,
            "properties": {
                "networkSecurityGroup": {
                    "id": secgroup.id,
                    "name": secgroup.name,
                },
            },
        }
        self.region.update(payload)

    # ------------------------------------------------------------------
    # Operations classic VMs do not offer
    # ------------------------------------------------------------------

    def set_security_groups(self, secgroup_ids: List[str]) -> None:
        raise NotSupportedError("set_security_groups")

    def update_vm(self, input: InstanceUpdateOptions) -> None:
        raise NotSupportedError("update_vm")

    def get_vnc_info(self, input: Optional[ServerVncInput] = None) -> Dict[str, Any]:
        raise NotSupportedError("get_vnc_info")

    def update_user_data(self, user_data: str) -> None:
        raise NotSupportedError("update_user_data")

    def renew(self, billing_cycle: BillingCycle) -> None:
        raise NotSupportedError("renew")

    def change_config(self, config: ManagedVMChangeConfig) -> None:
        raise NotImplementedYetError("change_config")

    def deploy_vm(
        self,
        name: str,
        username: str,
        password: str,
        public_key: str,
        delete_keypair: bool = False,
        description: str = "",
    ) -> None:
        raise NotImplementedYetError("deploy_vm")

    def rebuild_root(self, desc: ManagedVMRebuildRootConfig) -> str:
        raise NotImplementedYetError("rebuild_root")
