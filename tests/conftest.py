# tests/conftest.py
"""
Shared fakes: a manual clock, an in-memory logger and a scripted cluster.
"""
from __future__ import annotations

from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

import pytest

from application.ports.clock import ClockPort
from application.ports.cluster import (
    CertManagerPort,
    ClusterResourcesPort,
    DeploymentObserverPort,
    ManifestApplierPort,
    ResourceFetcherPort,
)
from application.ports.logger import LoggerPort
from application.services.execution_deps import ExecutionDeps
from domain.cancellation import CancelToken
from domain.exceptions import FlowCancelledError, ResourceNotFoundError, TransientError
from domain.resource_state import ProvisioningState
from domain.resources import HostSpec, ProvisioningPatch, ResourceRef


class FakeClock(ClockPort):
    """Time only moves when something sleeps."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float, cancel: Optional[CancelToken] = None) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if cancel is not None and cancel.is_cancelled:
            raise FlowCancelledError(cancel.reason or "cancelled")


class RecordingLogger(LoggerPort):
    def __init__(self, records: Optional[List[Tuple[str, str, Dict[str, Any]]]] = None, bound=None):
        self.records = records if records is not None else []
        self.bound = dict(bound or {})

    def bind(self, **fields: Any) -> "RecordingLogger":
        merged = dict(self.bound)
        merged.update(fields)
        return RecordingLogger(self.records, merged)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("error", event, fields)

    def _emit(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        payload = dict(self.bound)
        payload.update(fields)
        self.records.append((level, event, payload))

    def events(self) -> List[str]:
        return [event for _, event, _ in self.records]

    def find(self, event: str) -> List[Dict[str, Any]]:
        return [fields for _, e, fields in self.records if e == event]


class FakeCluster(
    ManifestApplierPort,
    DeploymentObserverPort,
    ResourceFetcherPort,
    ClusterResourcesPort,
    CertManagerPort,
):
    """
    Scripted stand-in for the upgrade cluster.

    - ``apply_failures[ref]`` transient failures before an apply succeeds
    - a created host walks through ``registration_states``; after the
      provisioning patch it walks through ``provisioning_states``
    - applying ``upgrade_manifest`` bumps the deployment generation
    - ``patch_failures`` transient failures before the patch is accepted
    - ``webhook_failures`` failed cert-manager webhook checks after install
    """

    def __init__(
        self,
        upgrade_manifest: str = "",
        upgraded_deployment: str = "baremetal-operator-controller-manager",
        registration_states: Optional[List[ProvisioningState]] = None,
        provisioning_states: Optional[List[ProvisioningState]] = None,
        patch_failures: int = 0,
        webhook_failures: int = 0,
    ):
        self.calls: List[Tuple[str, Any]] = []
        self.apply_failures: Dict[str, int] = {}
        self.namespaces = set()
        self.secrets: Dict[Tuple[str, str], Dict[str, str]] = {}
        self.hosts: Dict[ResourceRef, HostSpec] = {}
        self.generations: Dict[str, int] = {}
        self.upgrade_manifest = upgrade_manifest
        self.upgraded_deployment = upgraded_deployment
        self.registration_states = registration_states or [
            ProvisioningState.REGISTERING,
            ProvisioningState.AVAILABLE,
        ]
        self.provisioning_states = provisioning_states or [
            ProvisioningState.PROVISIONING,
            ProvisioningState.PROVISIONED,
        ]
        self.patch_failures = patch_failures
        self.webhook_failures = webhook_failures
        self._host_script: Dict[ResourceRef, List[ProvisioningState]] = {}
        self._lock = Lock()

    # ManifestApplierPort
    def apply(self, manifest_ref: str) -> None:
        self.calls.append(("apply", manifest_ref))
        remaining = self.apply_failures.get(manifest_ref, 0)
        if remaining > 0:
            self.apply_failures[manifest_ref] = remaining - 1
            raise TransientError(f"apply {manifest_ref}: connection reset")
        if manifest_ref == self.upgrade_manifest:
            self.generations[self.upgraded_deployment] = self.generations.get(self.upgraded_deployment, 1) + 1
        self.namespaces.add("baremetal-operator-system")

    def remove(self, manifest_ref: str) -> None:
        self.calls.append(("remove", manifest_ref))
        self.namespaces.discard("baremetal-operator-system")

    # DeploymentObserverPort
    def observed_generation(self, name: str, namespace: str) -> int:
        return self.generations.setdefault(name, 1)

    def rolled_out(self, name: str, namespace: str, min_generation: int) -> bool:
        self.calls.append(("rolled_out", (name, min_generation)))
        return self.generations.get(name, 1) >= min_generation

    def ready(self, name: str, namespace: str) -> bool:
        self.calls.append(("ready", (name, namespace)))
        return True

    # ResourceFetcherPort
    def fetch(self, ref: ResourceRef) -> ProvisioningState:
        self.calls.append(("fetch", str(ref)))
        with self._lock:
            if ref not in self.hosts:
                raise ResourceNotFoundError(f"{ref} not found")
            script = self._host_script[ref]
            if len(script) > 1:
                return script.pop(0)
            return script[0]

    # ClusterResourcesPort
    def create_namespace(self, name: str, ignore_already_exists: bool = False) -> None:
        self.calls.append(("create_namespace", name))
        if name in self.namespaces and not ignore_already_exists:
            raise ValueError(f"namespace {name} already exists")
        self.namespaces.add(name)

    def delete_namespace(self, name: str) -> None:
        self.calls.append(("delete_namespace", name))
        self.namespaces.discard(name)
        for ref in [r for r in self.hosts if r.namespace == name]:
            del self.hosts[ref]

    def namespace_exists(self, name: str) -> bool:
        return name in self.namespaces

    def create_secret(self, namespace: str, name: str, data: Dict[str, str]) -> None:
        self.calls.append(("create_secret", (namespace, name)))
        self.secrets[(namespace, name)] = dict(data)

    def create_host(self, host: HostSpec) -> None:
        self.calls.append(("create_host", str(host.ref)))
        with self._lock:
            self.hosts[host.ref] = host
            self._host_script[host.ref] = list(self.registration_states)

    def patch_host_for_provisioning(self, ref: ResourceRef, patch: ProvisioningPatch) -> None:
        self.calls.append(("patch_host", str(ref)))
        if self.patch_failures > 0:
            self.patch_failures -= 1
            raise TransientError("webhook not ready")
        with self._lock:
            self._host_script[ref] = list(self.provisioning_states)

    # CertManagerPort
    def install(self, version: str) -> None:
        self.calls.append(("install_cert_manager", version))

    def check_webhook(self) -> None:
        self.calls.append(("check_webhook", None))
        if self.webhook_failures > 0:
            self.webhook_failures -= 1
            raise ConnectionError("webhook: connection refused")

    def check_api(self) -> None:
        self.calls.append(("check_api", None))

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def deps(clock: FakeClock, logger: RecordingLogger) -> ExecutionDeps:
    return ExecutionDeps(logger=logger, clock=clock)


@pytest.fixture
def make_cluster():
    return FakeCluster
