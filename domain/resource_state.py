# domain/resource_state.py
from __future__ import annotations

from enum import Enum


class ProvisioningState(str, Enum):
    """Provisioning state of a bare metal host as reported in its status."""

    NONE = ""
    UNMANAGED = "unmanaged"
    REGISTERING = "registering"
    INSPECTING = "inspecting"
    PREPARING = "preparing"
    AVAILABLE = "available"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"
    EXTERNALLY_PROVISIONED = "externally provisioned"
    DEPROVISIONING = "deprovisioning"
    POWERING_OFF_BEFORE_DELETE = "powering off before delete"
    DELETING = "deleting"
    ERROR = "error"

    @classmethod
    def parse(cls, value: str) -> "ProvisioningState":
        return cls((value or "").strip().lower())
