"""
Configuration and settings for the Azure Classic VM adapter.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Azure Authentication
    azure_subscription_id: Optional[str] = Field(default=None, alias="AZURE_SUBSCRIPTION_ID")
    azure_tenant_id: Optional[str] = Field(default=None, alias="AZURE_TENANT_ID")
    azure_client_id: Optional[str] = Field(default=None, alias="AZURE_CLIENT_ID")
    azure_client_secret: Optional[str] = Field(default=None, alias="AZURE_CLIENT_SECRET")

    # Management endpoint
    azure_region: str = Field(default="East US", alias="AZURE_REGION")
    azure_api_base: str = Field(default="https://management.azure.com", alias="AZURE_API_BASE")
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")

    # Lifecycle polling (seconds)
    classic_poll_interval: float = Field(default=10.0, alias="CLASSIC_POLL_INTERVAL")
    classic_wait_timeout: float = Field(default=300.0, alias="CLASSIC_WAIT_TIMEOUT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_WAIT_TIMEOUT = 300.0

# api-version per classic resource provider namespace
CLASSIC_API_VERSIONS = MappingProxyType({
    "microsoft.classiccompute": "2016-04-01",
    "microsoft.classicnetwork": "2016-04-01",
    "microsoft.classicstorage": "2016-04-01",
})
DEFAULT_CLASSIC_API_VERSION = "2016-04-01"


@dataclass(frozen=True)
class ClassicVMSize:
    """Cores and memory of a classic VM size."""
    number_of_cores: int
    memory_in_mb: int


CLASSIC_VM_SIZES = MappingProxyType({
    # Legacy named sizes
    "ExtraSmall": ClassicVMSize(1, 768),
    "Small": ClassicVMSize(1, 1792),
    "Medium": ClassicVMSize(2, 3584),
    "Large": ClassicVMSize(4, 7168),
    "ExtraLarge": ClassicVMSize(8, 14336),

    # A-series
    "A5": ClassicVMSize(2, 14336),
    "A6": ClassicVMSize(4, 28672),
    "A7": ClassicVMSize(8, 57344),
    "A8": ClassicVMSize(8, 57344),
    "A9": ClassicVMSize(16, 114688),
    "A10": ClassicVMSize(8, 57344),
    "A11": ClassicVMSize(16, 114688),
    "Basic_A0": ClassicVMSize(1, 768),
    "Basic_A1": ClassicVMSize(1, 1792),
    "Basic_A2": ClassicVMSize(2, 3584),
    "Basic_A3": ClassicVMSize(4, 7168),
    "Basic_A4": ClassicVMSize(8, 14336),
    "Standard_A1_v2": ClassicVMSize(1, 2048),
    "Standard_A2_v2": ClassicVMSize(2, 4096),
    "Standard_A4_v2": ClassicVMSize(4, 8192),
    "Standard_A8_v2": ClassicVMSize(8, 16384),
    "Standard_A2m_v2": ClassicVMSize(2, 16384),
    "Standard_A4m_v2": ClassicVMSize(4, 32768),
    "Standard_A8m_v2": ClassicVMSize(8, 65536),

    # D-series
    "Standard_D1": ClassicVMSize(1, 3584),
    "Standard_D2": ClassicVMSize(2, 7168),
    "Standard_D3": ClassicVMSize(4, 14336),
    "Standard_D4": ClassicVMSize(8, 28672),
    "Standard_D11": ClassicVMSize(2, 14336),
    "Standard_D12": ClassicVMSize(4, 28672),
    "Standard_D13": ClassicVMSize(8, 57344),
    "Standard_D14": ClassicVMSize(16, 114688),
    "Standard_D1_v2": ClassicVMSize(1, 3584),
    "Standard_D2_v2": ClassicVMSize(2, 7168),
    "Standard_D3_v2": ClassicVMSize(4, 14336),
    "Standard_D4_v2": ClassicVMSize(8, 28672),
    "Standard_D5_v2": ClassicVMSize(16, 57344),
    "Standard_D11_v2": ClassicVMSize(2, 14336),
    "Standard_D12_v2": ClassicVMSize(4, 28672),
    "Standard_D13_v2": ClassicVMSize(8, 57344),
    "Standard_D14_v2": ClassicVMSize(16, 114688),
    "Standard_D15_v2": ClassicVMSize(20, 143360),

    # DS-series (premium storage)
    "Standard_DS1": ClassicVMSize(1, 3584),
    "Standard_DS2": ClassicVMSize(2, 7168),
    "Standard_DS3": ClassicVMSize(4, 14336),
    "Standard_DS4": ClassicVMSize(8, 28672),
    "Standard_DS11": ClassicVMSize(2, 14336),
    "Standard_DS12": ClassicVMSize(4, 28672),
    "Standard_DS13": ClassicVMSize(8, 57344),
    "Standard_DS14": ClassicVMSize(16, 114688),
    "Standard_DS1_v2": ClassicVMSize(1, 3584),
    "Standard_DS2_v2": ClassicVMSize(2, 7168),
    "Standard_DS3_v2": ClassicVMSize(4, 14336),
    "Standard_DS4_v2": ClassicVMSize(8, 28672),
    "Standard_DS5_v2": ClassicVMSize(16, 57344),

    # G-series
    "Standard_G1": ClassicVMSize(2, 28672),
    "Standard_G2": ClassicVMSize(4, 57344),
    "Standard_G3": ClassicVMSize(8, 114688),
    "Standard_G4": ClassicVMSize(16, 229376),
    "Standard_G5": ClassicVMSize(32, 458752),
    "Standard_GS1": ClassicVMSize(2, 28672),
    "Standard_GS2": ClassicVMSize(4, 57344),
    "Standard_GS3": ClassicVMSize(8, 114688),
    "Standard_GS4": ClassicVMSize(16, 229376),
    "Standard_GS5": ClassicVMSize(32, 458752),
})


def get_api_version(resource_id: str) -> str:
    """Pick the api-version for a resource id or resource type."""
    parts = [p for p in resource_id.strip("/").lower().split("/") if p]
    for idx, part in enumerate(parts):
        if part == "providers" and idx + 1 < len(parts):
            return CLASSIC_API_VERSIONS.get(parts[idx + 1], DEFAULT_CLASSIC_API_VERSION)
    # Bare resource types, e.g. "Microsoft.ClassicCompute/virtualMachines"
    if parts:
        return CLASSIC_API_VERSIONS.get(parts[0], DEFAULT_CLASSIC_API_VERSION)
    return DEFAULT_CLASSIC_API_VERSION
