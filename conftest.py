"""Shared fixtures for the classic VM adapter tests."""
import copy
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

import cloudprovider
from classic_instance import ClassicInstance


SUBSCRIPTION = "00000000-0000-0000-0000-000000000000"
INSTANCE_ID = (
    f"/subscriptions/{SUBSCRIPTION}/resourceGroups/Classic-RG"
    "/providers/Microsoft.ClassicCompute/virtualMachines/web01"
)
VNET_ID = (
    f"/subscriptions/{SUBSCRIPTION}/resourceGroups/Classic-RG"
    "/providers/Microsoft.ClassicNetwork/virtualNetworks/vnet01"
)
NSG_ID = (
    f"/subscriptions/{SUBSCRIPTION}/resourceGroups/Classic-RG"
    "/providers/Microsoft.ClassicNetwork/networkSecurityGroups/nsg01"
)
DOMAIN_ID = (
    f"/subscriptions/{SUBSCRIPTION}/resourceGroups/Classic-RG"
    "/providers/Microsoft.ClassicCompute/domainNames/web01"
)


def make_instance_data(
    status: Optional[str] = "ReadyRole",
    size: str = "Small",
    subnet_names: Optional[List[str]] = None,
    static_ip: str = "",
    private_ip: str = "",
    public_ips: Optional[List[str]] = None,
    reserved_ips: Optional[List[Dict[str, str]]] = None,
    nsg: Optional[Dict[str, str]] = None,
    domain_name: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Build a classic VM payload as returned by the classic compute API.

    ``status=None`` omits the instance view entirely.
    """
    network_profile: Dict[str, Any] = {
        "virtualNetwork": {
            "id": VNET_ID,
            "name": "vnet01",
            "type": "Microsoft.ClassicNetwork/virtualNetworks",
            "subnetNames": subnet_names or [],
        },
        "inputEndpoints": [
            {"endpointName": "SSH", "privatePort": 22, "publicPort": 22, "protocol": "tcp"},
        ],
    }
    if static_ip:
        network_profile["virtualNetwork"]["staticIpAddress"] = static_ip
    if reserved_ips is not None:
        network_profile["reservedIps"] = reserved_ips
    if nsg is not None:
        network_profile["networkSecurityGroup"] = nsg

    properties: Dict[str, Any] = {
        "networkProfile": network_profile,
        "hardwareProfile": {
            "platformGuestAgent": True,
            "size": size,
            "deploymentName": "web01",
            "deploymentId": "5a1b2c3d",
            "deploymentLabel": "web01",
            "deploymentLocked": False,
        },
        "storageProfile": {
            "operatingSystemDisk": {
                "diskName": "web01-os",
                "caching": "ReadWrite",
                "operatingSystem": "Linux",
                "ioType": "Standard",
                "sourceImageName": "Ubuntu-16_04-LTS",
                "vhdUri": "https://store01.blob.core.windows.net/vhds/web01-os.vhd",
            },
            "dataDisks": [],
        },
    }
    if domain_name is not None:
        properties["domainName"] = domain_name
    if status is not None:
        properties["instanceView"] = {
            "status": status,
            "powerState": "Started" if status == "ReadyRole" else "Stopped",
            "privateIpAddress": private_ip,
            "publicIpAddresses": public_ips or [],
            "computerName": "web01",
        }

    return {
        "id": INSTANCE_ID,
        "name": "web01",
        "type": "Microsoft.ClassicCompute/virtualMachines",
        "location": "East US",
        "properties": properties,
    }


class FakeClock:
    """Stands in for the ``time`` module inside ``cloudprovider``."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(cloudprovider, "time", clock)
    return clock


@pytest.fixture
def region():
    """A region double with the attributes the instance record reads."""
    fake = MagicMock()
    fake.name = "East US"
    fake.poll_interval = 10.0
    fake.wait_timeout = 300.0
    fake.get_global_id.return_value = "azure/eastus"
    return fake


def queue_fetches(region, *payloads: Dict[str, Any]) -> None:
    """Make successive ``get_classic_instance`` calls return ``payloads`` in order.

    The last payload repeats once the queue is exhausted.
    """
    pending = [copy.deepcopy(p) for p in payloads]

    def fetch(instance_id):
        data = pending.pop(0) if len(pending) > 1 else copy.deepcopy(pending[0])
        return ClassicInstance.from_dict(region, data)

    region.get_classic_instance.side_effect = fetch
