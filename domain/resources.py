# domain/resources.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class ResourceRef:
    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


@dataclass(frozen=True)
class BmcDetails:
    address: str
    user: str = ""
    password: str = ""
    boot_mac_address: str = ""
    disable_certificate_verification: bool = False


@dataclass(frozen=True)
class HostSpec:
    name: str
    namespace: str
    bmc: BmcDetails
    credentials_name: str
    online: bool = True
    boot_mode: str = "legacy"
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(kind="baremetalhosts", namespace=self.namespace, name=self.name)


@dataclass(frozen=True)
class ProvisioningPatch:
    image_url: str
    image_checksum: str
    image_checksum_type: str = "sha256"
    image_format: Optional[str] = None
    user_data_secret: Optional[str] = None
