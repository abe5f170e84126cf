"""
Vendor-neutral cloud compute contract.

Defines the normalized VM states, the error kinds every provider adapter
raises, the wait-for-status primitive shared by lifecycle operations, and the
capability interfaces (instance, disk, NIC, elastic IP) that concrete
resources implement.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
import logging
import time

logger = logging.getLogger(__name__)


class VMStatus(str, Enum):
    """Normalized VM states understood by the multi-cloud layer."""
    READY = "ready"
    RUNNING = "running"
    UNKNOWN = "unknown"


HYPERVISOR_AZURE = "azure"
BILLING_TYPE_POSTPAID = "postpaid"
OS_ARCH_X86_64 = "x86_64"
BIOS = "BIOS"


class CloudProviderError(Exception):
    """Base class for adapter errors."""


class NotSupportedError(CloudProviderError):
    """The operation has no meaning for this resource class."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        super().__init__(f"{operation}: operation not supported" if operation else "operation not supported")


class NotImplementedYetError(CloudProviderError):
    """The operation is possible for this resource class but not built."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        super().__init__(f"{operation}: operation not implemented" if operation else "operation not implemented")


class StatusTimeoutError(CloudProviderError):
    """A wait-for-status loop did not converge before its deadline.

    The triggering action may or may not have succeeded remotely; callers
    must re-query to learn the true state.
    """

    def __init__(self, expected: str, last_status: Optional[str], timeout: float):
        self.expected = expected
        self.last_status = last_status
        self.timeout = timeout
        super().__init__(
            f"timeout after {timeout}s waiting for status {expected} (last seen: {last_status})"
        )


class RemoteFailureError(CloudProviderError):
    """A transport or API error, tagged with the operation that issued it."""

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation}: {cause}")

    @property
    def status_code(self) -> Optional[int]:
        response = getattr(self.cause, "response", None)
        return getattr(response, "status_code", None)


def wait_status(resource, expected, interval: float, timeout: float) -> None:
    """Poll ``resource`` until its normalized status equals ``expected``.

    Each round refreshes the resource from the remote API and compares
    ``get_status()`` with ``expected``. Returns as soon as they match, sleeps
    ``interval`` seconds otherwise.

    Raises:
        ValueError: if ``interval`` is not positive or ``timeout < interval``.
        RemoteFailureError: if a refresh fails.
        StatusTimeoutError: if ``timeout`` seconds elapse without a match.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    if timeout < interval:
        raise ValueError("timeout must be greater than or equal to interval")

    start = time.monotonic()
    last_status = None
    while time.monotonic() - start < timeout:
        resource.refresh()
        last_status = resource.get_status()
        if last_status == expected:
            return
        logger.debug(f"Waiting for {resource.get_name()} status {expected}, current {last_status}")
        time.sleep(interval)

    raise StatusTimeoutError(getattr(expected, "value", expected), last_status, timeout)


@dataclass
class ServerStopOptions:
    """Options accepted by ``stop_vm``."""
    is_force: bool = False
    stop_charging: bool = False


@dataclass
class InstanceUpdateOptions:
    name: str = ""
    description: str = ""
    hostname: str = ""


@dataclass
class ManagedVMChangeConfig:
    cpu: int = 0
    memory_mb: int = 0
    instance_type: str = ""


@dataclass
class ManagedVMRebuildRootConfig:
    image_id: str = ""
    password: str = ""
    public_key: str = ""
    sys_size_gb: int = 0


@dataclass
class ServerVncInput:
    type: str = "vnc"


@dataclass
class BillingCycle:
    count: int = 0
    unit: str = "month"


class CloudResource(ABC):
    """Identity shared by every cloud resource."""

    @abstractmethod
    def get_id(self) -> str:
        """Provider resource id."""

    @abstractmethod
    def get_name(self) -> str:
        """Display name."""

    @abstractmethod
    def get_global_id(self) -> str:
        """Stable id used to match the resource across syncs."""

    @abstractmethod
    def get_status(self) -> str:
        """Normalized status."""


class CloudDisk(CloudResource):

    @abstractmethod
    def get_disk_size_mb(self) -> int:
        ...

    @abstractmethod
    def get_disk_type(self) -> str:
        ...


class CloudNic(ABC):

    @abstractmethod
    def get_id(self) -> str:
        ...

    @abstractmethod
    def get_ip(self) -> str:
        ...

    @abstractmethod
    def get_mac(self) -> str:
        ...

    @abstractmethod
    def get_network_id(self) -> str:
        ...


class CloudEip(CloudResource):

    @abstractmethod
    def get_ip_addr(self) -> str:
        ...

    @abstractmethod
    def get_associate_id(self) -> str:
        ...

    @abstractmethod
    def get_mode(self) -> str:
        ...


class CloudInstance(CloudResource):
    """Contract a provider VM exposes to the multi-cloud layer."""

    @abstractmethod
    def refresh(self) -> None:
        """Replace the cached state with a fresh remote fetch."""

    @abstractmethod
    def get_hostname(self) -> str:
        ...

    @abstractmethod
    def get_instance_type(self) -> str:
        ...

    @abstractmethod
    def get_vcpu_count(self) -> int:
        ...

    @abstractmethod
    def get_vmem_size_mb(self) -> int:
        ...

    @abstractmethod
    def get_idisks(self) -> List[CloudDisk]:
        ...

    @abstractmethod
    def get_inics(self) -> List[CloudNic]:
        ...

    @abstractmethod
    def get_ieip(self) -> Optional[CloudEip]:
        ...

    @abstractmethod
    def start_vm(self) -> None:
        ...

    @abstractmethod
    def stop_vm(self, opts: ServerStopOptions) -> None:
        ...

    @abstractmethod
    def delete_vm(self) -> None:
        ...

    @abstractmethod
    def attach_disk(self, disk_id: str) -> None:
        ...

    @abstractmethod
    def detach_disk(self, disk_id: str) -> None:
        ...

    def get_sys_tags(self) -> Dict[str, str]:
        return {}

    def get_tags(self) -> Dict[str, str]:
        return {}

    def get_created_at(self) -> Optional[datetime]:
        return None

    def get_expired_at(self) -> Optional[datetime]:
        return None

    def get_error(self) -> Optional[Exception]:
        return None
