# application/ports/cluster.py
"""
Collaborators that act on the target cluster. Implementations live outside
the orchestration core; steps only see these contracts.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict

from domain.resource_state import ProvisioningState
from domain.resources import HostSpec, ProvisioningPatch, ResourceRef


class ManifestApplierPort(ABC):
    @abstractmethod
    def apply(self, manifest_ref: str) -> None:
        """Re-applying the same manifest must be safe."""
        ...

    @abstractmethod
    def remove(self, manifest_ref: str) -> None:
        ...


class DeploymentObserverPort(ABC):
    @abstractmethod
    def observed_generation(self, name: str, namespace: str) -> int:
        ...

    @abstractmethod
    def rolled_out(self, name: str, namespace: str, min_generation: int) -> bool:
        ...

    @abstractmethod
    def ready(self, name: str, namespace: str) -> bool:
        ...


class ResourceFetcherPort(ABC):
    @abstractmethod
    def fetch(self, ref: ResourceRef) -> ProvisioningState:
        """
        Raise ResourceNotFoundError while the resource does not exist,
        TerminalError for malformed or unauthorized access.
        """
        ...


class ClusterResourcesPort(ABC):
    @abstractmethod
    def create_namespace(self, name: str, ignore_already_exists: bool = False) -> None:
        ...

    @abstractmethod
    def delete_namespace(self, name: str) -> None:
        ...

    @abstractmethod
    def namespace_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def create_secret(self, namespace: str, name: str, data: Dict[str, str]) -> None:
        ...

    @abstractmethod
    def create_host(self, host: HostSpec) -> None:
        ...

    @abstractmethod
    def patch_host_for_provisioning(self, ref: ResourceRef, patch: ProvisioningPatch) -> None:
        ...


class CertManagerPort(ABC):
    @abstractmethod
    def install(self, version: str) -> None:
        ...

    @abstractmethod
    def check_webhook(self) -> None:
        """Raise while the webhook does not accept requests yet."""
        ...

    @abstractmethod
    def check_api(self) -> None:
        """Raise if the cert-manager API resources are not served."""
        ...
