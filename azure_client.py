"""
Azure client module for classic compute resources.
Handles authentication and the REST verbs used against the classic
(Service Management) resource providers exposed through Azure Resource Manager.
"""
from typing import Optional, Dict, List, Any
import functools
import logging
import time

import httpx
from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential, DefaultAzureCredential

from classic_instance import ClassicInstance
from classic_resources import ClassicDisk, ClassicEip, ClassicInstanceDisk, ClassicSecurityGroup
from cloudprovider import RemoteFailureError
from config import DEFAULT_POLL_INTERVAL, DEFAULT_WAIT_TIMEOUT, Settings, get_api_version

logger = logging.getLogger(__name__)

CLASSIC_VM_RESOURCE_TYPE = "Microsoft.ClassicCompute/virtualMachines"
ARM_SCOPE = "https://management.azure.com/.default"


def retry_on_transient(max_retries: int = 3, base_delay: float = 1.0):
    """Retry decorator with exponential backoff for transient HTTP errors."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except httpx.TimeoutException as e:
                    last_exception = e
                except httpx.HTTPStatusError as e:
                    if e.response.status_code in (429, 500, 502, 503, 504):
                        last_exception = e
                    else:
                        raise
                except httpx.ConnectError as e:
                    last_exception = e

                if attempt < max_retries:
                    delay = base_delay * (2 ** attempt)
                    logger.debug(f"Retry {attempt + 1}/{max_retries} after {delay}s: {last_exception}")
                    time.sleep(delay)

            raise last_exception
        return wrapper
    return decorator


def normalize_location(location: str) -> str:
    """'East US' and 'eastus' name the same region."""
    return (location or "").replace(" ", "").lower()


class ClassicRegion:
    """Thin REST client for classic resources in one subscription and region."""

    def __init__(
        self,
        subscription_id: str,
        name: str,
        credential: Optional[Any] = None,
        base_url: str = "https://management.azure.com",
        http_timeout: float = 30.0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the classic region client.

        Args:
            subscription_id: Azure subscription ID
            name: Region display name or ARM name (e.g. "East US", "eastus")
            credential: Azure credential exposing ``get_token``
            base_url: Resource Manager endpoint
            http_timeout: Per-request timeout in seconds
            poll_interval: Seconds between status polls of lifecycle operations
            wait_timeout: Deadline in seconds for lifecycle operations
            client: Preconfigured httpx client (mainly for tests)
        """
        self.subscription_id = subscription_id
        self.name = name
        self.credential = credential or DefaultAzureCredential()
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.wait_timeout = wait_timeout
        self.client = client or httpx.Client(timeout=http_timeout)

    @classmethod
    def from_settings(cls, settings: Settings, subscription_id: Optional[str] = None,
                      region: Optional[str] = None) -> "ClassicRegion":
        """Build a region client from application settings."""
        sub_id = subscription_id or settings.azure_subscription_id
        if not sub_id:
            raise ValueError("Azure subscription ID is required")

        if settings.azure_client_id and settings.azure_client_secret and settings.azure_tenant_id:
            credential = ClientSecretCredential(
                tenant_id=settings.azure_tenant_id,
                client_id=settings.azure_client_id,
                client_secret=settings.azure_client_secret,
            )
        else:
            credential = DefaultAzureCredential()

        return cls(
            subscription_id=sub_id,
            name=region or settings.azure_region,
            credential=credential,
            base_url=settings.azure_api_base,
            http_timeout=settings.http_timeout,
            poll_interval=settings.classic_poll_interval,
            wait_timeout=settings.classic_wait_timeout,
        )

    def get_id(self) -> str:
        return normalize_location(self.name)

    def get_global_id(self) -> str:
        return f"azure/{normalize_location(self.name)}"

    # ------------------------------------------------------------------
    # REST verbs
    # ------------------------------------------------------------------

    def _get_access_token(self) -> str:
        """Get Azure access token for ARM API."""
        token = self.credential.get_token(ARM_SCOPE)
        return token.token

    def _url(self, resource: str) -> str:
        if resource.startswith("http://") or resource.startswith("https://"):
            return resource
        return f"{self.base_url}/{resource.lstrip('/')}"

    @retry_on_transient(max_retries=3, base_delay=1.0)
    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]] = None,
              body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._get_access_token()}",
            "Accept": "application/json",
        }
        response = self.client.request(method, url, params=params, json=body, headers=headers)
        response.raise_for_status()
        return response

    def _request(
        self,
        operation: str,
        method: str,
        resource: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        query = {"api-version": get_api_version(resource)}
        if params:
            query.update(params)
        url = self._url(resource)
        logger.debug(f"{method} {url} params={query}")
        try:
            response = self._send(method, url, params=query, body=body)
        except (httpx.HTTPError, AzureError) as e:
            raise RemoteFailureError(operation, e) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteFailureError(operation, e) from e

    def get(self, resource_id: str, params: Optional[Dict[str, Any]] = None,
            operation: str = "get") -> Dict[str, Any]:
        return self._request(operation, "GET", resource_id, params=params)

    def list(self, resource_type: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """List resources of a type in the subscription that live in this region."""
        path = f"/subscriptions/{self.subscription_id}/providers/{resource_type}"
        items: List[Dict[str, Any]] = []
        payload = self._request("list", "GET", path, params=params)
        while True:
            items.extend(payload.get("value") or [])
            next_link = payload.get("nextLink")
            if not next_link:
                break
            try:
                payload = self._send("GET", next_link).json()
            except (httpx.HTTPError, AzureError, ValueError) as e:
                raise RemoteFailureError("list", e) from e

        location = normalize_location(self.name)
        return [item for item in items if normalize_location(item.get("location", "")) == location]

    def update(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resource_id = payload.get("id")
        if not resource_id:
            raise ValueError("update payload requires an id")
        return self._request("update", "PUT", resource_id, body=payload)

    def delete(self, resource_id: str) -> None:
        self._request("delete", "DELETE", resource_id)

    def perform(self, resource_id: str, action: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request(action, "POST", f"{resource_id}/{action}", body=body)

    # ------------------------------------------------------------------
    # Classic compute
    # ------------------------------------------------------------------

    def get_classic_instances(self) -> List[ClassicInstance]:
        return [ClassicInstance.from_dict(self, item) for item in self.list(CLASSIC_VM_RESOURCE_TYPE)]

    def get_classic_instance(self, instance_id: str) -> ClassicInstance:
        data = self.get(instance_id, params={"$expand": "instanceView"}, operation="get_classic_instance")
        return ClassicInstance.from_dict(self, data)

    def get_classic_instance_disks(self, instance_id: str) -> List[ClassicInstanceDisk]:
        data = self.get(f"{instance_id}/disks", operation="list")
        return [ClassicInstanceDisk.from_dict(self, item) for item in data.get("value") or []]

    def start_vm(self, instance_id: str) -> None:
        self.perform(instance_id, "start")

    def stop_classic_vm(self, instance_id: str, is_force: bool = False) -> None:
        # Classic shutdown has no force flag
        self.perform(instance_id, "shutdown")

    def delete_vm(self, instance_id: str) -> None:
        self.delete(instance_id)

    def attach_disk(self, instance_id: str, disk_id: str) -> None:
        """Attach an existing classic disk as the next free data disk LUN."""
        instance = self.get(instance_id, operation="get_classic_instance")
        disk = ClassicDisk.from_dict(self.get(disk_id, operation="get_classic_disk").get("properties"))
        disk_name = disk.disk_name or disk_id.rstrip("/").split("/")[-1]

        storage = instance.setdefault("properties", {}).setdefault("storageProfile", {})
        data_disks = storage.get("dataDisks") or []
        used_luns = {int(d.get("lun") or 0) for d in data_disks}
        lun = 0
        while lun in used_luns:
            lun += 1

        entry = {"lun": lun, "diskName": disk_name}
        if disk.vhd_uri:
            entry["vhdUri"] = disk.vhd_uri
        if disk.caching:
            entry["caching"] = disk.caching
        data_disks.append(entry)
        storage["dataDisks"] = data_disks
        instance["properties"].pop("instanceView", None)
        self.update(instance)

    def detach_disk(self, instance_id: str, disk_id: str) -> None:
        """Remove a data disk, matched by name or VHD URI, from the VM."""
        instance = self.get(instance_id, operation="get_classic_instance")
        storage = instance.setdefault("properties", {}).setdefault("storageProfile", {})
        data_disks = storage.get("dataDisks") or []
        disk_name = disk_id.rstrip("/").split("/")[-1].lower()

        remaining = [
            d for d in data_disks
            if (d.get("diskName") or "").lower() != disk_name
            and (d.get("vhdUri") or "").lower() != disk_id.lower()
        ]
        if len(remaining) == len(data_disks):
            logger.info(f"disk {disk_id} is not attached to {instance_id}")
            return
        storage["dataDisks"] = remaining
        instance["properties"].pop("instanceView", None)
        self.update(instance)

    def get_classic_eip(self, eip_id: str) -> ClassicEip:
        return ClassicEip.from_dict(self, self.get(eip_id, operation="get_classic_eip"))

    def get_classic_security_group_details(self, secgroup_id: str) -> ClassicSecurityGroup:
        return ClassicSecurityGroup.from_dict(
            self.get(secgroup_id, operation="get_classic_security_group_details")
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Support context manager protocol."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Close the HTTP client on context exit."""
        self.close()
        return False
