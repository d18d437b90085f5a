# application/services/upgrade_flow.py
"""
The BMO / Ironic upgrade procedure expressed as a flow:

  - optionally install cert-manager and the Ironic standalone operator
  - install the old Ironic and/or BMO
  - create a namespace, BMC credentials and a host with inspection disabled
  - wait for the host to become available (it is not provisioned further)
  - upgrade BMO or Ironic and wait for the rollout
  - patch the host for provisioning and wait until it is provisioned

If the upgraded controller provisions the host, it recognized the host
created by the old version and the upgrade worked.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional, Protocol

from application.executor.condition_poller import ConditionPoller
from application.ports.cluster import (
    CertManagerPort,
    ClusterResourcesPort,
    DeploymentObserverPort,
    ManifestApplierPort,
    ResourceFetcherPort,
)
from domain.flow import FlowContext, FlowSpec
from domain.policies import PollSpec, RetryPolicy
from domain.resource_state import ProvisioningState
from domain.resources import BmcDetails, HostSpec, ProvisioningPatch
from domain.steps import ActionStep, ConditionStep, EventuallyStep, ResourceStateStep, Step
from domain.upgrade import BMO, IRONIC, UpgradeInput

BMO_IRONIC_NAMESPACE = "baremetal-operator-system"
DEPLOYMENT_NAMES = {
    BMO: "baremetal-operator-controller-manager",
    IRONIC: "ironic-service",
}
SPEC_NAME = "upgrade"
SECRET_NAME = "bmc-credentials"
HOST_NAME = "upgrade"

IRSO_DEPLOYMENT = "ironic-standalone-operator-controller-manager"
IRSO_NAMESPACE = "ironic-standalone-operator-system"

INSPECT_ANNOTATION = "inspect.metal3.io"
HARDWARE_DETAILS_ANNOTATION = "inspect.metal3.io/hardwaredetails"

# Hardware details in the release-0.4 format, which later releases still accept.
HARDWARE_DETAILS = json.dumps(
    {
        "cpu": {"arch": "x86_64", "count": 2, "flags": [], "model": "QEMU Virtual CPU"},
        "firmware": {"bios": {"date": "04/01/2014", "vendor": "SeaBIOS", "version": "1.15.0-1"}},
        "hostname": "bmo-e2e-1",
        "nics": [
            {
                "ip": "192.168.223.122",
                "mac": "00:60:2f:31:81:02",
                "model": "0x1af4 0x0001",
                "name": "enp1s0",
                "pxe": True,
            }
        ],
        "ramMebibytes": 4096,
        "storage": [
            {
                "name": "/dev/disk/by-path/pci-0000:04:00.0",
                "rotational": True,
                "sizeBytes": 21474836480,
                "type": "HDD",
                "vendor": "0x1af4",
            }
        ],
        "systemVendor": {"manufacturer": "QEMU", "productName": "Standard PC (Q35 + ICH9, 2009)"},
    }
)


class UpgradeSettings(Protocol):
    def get_intervals(self, scope: str, key: str) -> PollSpec:
        ...

    def get_bool_variable(self, name: str, default: bool = False) -> bool:
        ...

    def get_variable(self, name: str, default: Optional[str] = None) -> str:
        ...


@dataclass(frozen=True)
class UpgradeCollaborators:
    manifests: ManifestApplierPort
    deployments: DeploymentObserverPort
    fetcher: ResourceFetcherPort
    resources: ClusterResourcesPort
    # only needed with UPGRADE_DEPLOY_CERT_MANAGER
    cert_manager: Optional[CertManagerPort] = None


class UpgradeFlowBuilder:
    def __init__(
        self,
        collaborators: UpgradeCollaborators,
        settings: UpgradeSettings,
        poller: ConditionPoller,
        bmc: BmcDetails,
        provisioning: ProvisioningPatch,
    ):
        self._c = collaborators
        self._settings = settings
        self._poller = poller
        self._bmc = bmc
        self._provisioning = provisioning

    def build(self, upgrade: UpgradeInput) -> FlowSpec:
        if upgrade.upgrade_entity_name not in DEPLOYMENT_NAMES:
            raise ValueError(f"unknown upgrade entity: {upgrade.upgrade_entity_name}")

        entity = upgrade.upgrade_entity_name
        deployment = DEPLOYMENT_NAMES[entity]
        namespace = f"upgrade-{entity}"
        host = self._host_spec(namespace)

        steps: List[Step] = self._prerequisite_steps()
        if upgrade.deploy_ironic:
            steps.extend(self._install_ironic_steps(upgrade.init_ironic_kustomization))
        if upgrade.deploy_bmo:
            steps.append(self._install_bmo_step(upgrade.init_bmo_kustomization))

        steps.extend(
            [
                ActionStep(
                    id="create-namespace",
                    name=f"Creating namespace {namespace}",
                    action=lambda ctx: self._c.resources.create_namespace(namespace, ignore_already_exists=True),
                    cleanup=self._delete_namespace(namespace),
                    cleanup_name=f"delete-namespace-{namespace}",
                ),
                ActionStep(
                    id="create-bmc-secret",
                    name="Creating a secret with BMH credentials",
                    action=lambda ctx: self._c.resources.create_secret(
                        namespace,
                        SECRET_NAME,
                        {"username": self._bmc.user, "password": self._bmc.password},
                    ),
                ),
                ActionStep(
                    id="create-host",
                    name="Creating a BMH with inspection disabled and hardware details added",
                    action=lambda ctx: self._c.resources.create_host(host),
                ),
                ResourceStateStep(
                    id="wait-host-available",
                    name="Waiting for the BMH to become available",
                    fetch=lambda ctx: self._c.fetcher.fetch(host.ref),
                    target=ProvisioningState.AVAILABLE,
                    poll=self._settings.get_intervals(SPEC_NAME, "wait-available"),
                ),
                ActionStep(
                    id="record-deployment-generation",
                    name=f"Reading current generation of {deployment}",
                    action=lambda ctx: self._c.deployments.observed_generation(deployment, BMO_IRONIC_NAMESPACE),
                    save_as="deployment_generation",
                ),
                ActionStep(
                    id=f"upgrade-{entity}",
                    name=f"Upgrading {entity} deployment",
                    action=lambda ctx: self._c.manifests.apply(upgrade.upgrade_entity_kustomization),
                    retry=RetryPolicy(max_attempts=2),
                ),
                ConditionStep(
                    id=f"wait-{entity}-rollout",
                    name=f"Waiting for {entity} update to rollout",
                    probe=lambda ctx: self._c.deployments.rolled_out(
                        deployment,
                        BMO_IRONIC_NAMESPACE,
                        ctx.state["deployment_generation"] + 1,
                    ),
                    poll=self._settings.get_intervals(IRONIC, "wait-deployment"),
                ),
            ]
        )

        if entity == IRONIC:
            steps.append(self._wait_ironic_ready_step("wait-ironic-ready-after-upgrade"))

        steps.extend(
            [
                # the webhook can lag behind the deployment becoming ready
                EventuallyStep(
                    id="patch-host-for-provisioning",
                    name="Patching the BMH to test provisioning",
                    operation=lambda ctx: self._c.resources.patch_host_for_provisioning(host.ref, self._provisioning),
                    poll=self._settings.get_intervals("default", "wait-deployment"),
                ),
                ResourceStateStep(
                    id="wait-host-provisioned",
                    name="Waiting for the BMH to become provisioned",
                    fetch=lambda ctx: self._c.fetcher.fetch(host.ref),
                    target=ProvisioningState.PROVISIONED,
                    poll=self._settings.get_intervals(SPEC_NAME, "wait-provisioned"),
                ),
            ]
        )

        return FlowSpec(
            name=upgrade.test_case_name,
            steps=steps,
            description=f"Should upgrade {entity} from {upgrade.upgrade_from_kustomization} to latest version",
        )

    def _host_spec(self, namespace: str) -> HostSpec:
        return HostSpec(
            name=HOST_NAME,
            namespace=namespace,
            bmc=self._bmc,
            credentials_name=SECRET_NAME,
            online=True,
            boot_mode="legacy",
            annotations={
                INSPECT_ANNOTATION: "disabled",
                HARDWARE_DETAILS_ANNOTATION: HARDWARE_DETAILS,
            },
        )

    def _prerequisite_steps(self) -> List[Step]:
        steps: List[Step] = []
        if self._settings.get_bool_variable("UPGRADE_DEPLOY_CERT_MANAGER"):
            steps.extend(self._cert_manager_steps())
        if self._settings.get_bool_variable("UPGRADE_DEPLOY_IRSO"):
            kustomization = self._settings.get_variable("IRSO_KUSTOMIZATION")
            steps.append(
                ActionStep(
                    id="install-irso",
                    name=f"Installing the Ironic standalone operator from {kustomization}",
                    action=self._apply_and_wait(
                        kustomization,
                        IRSO_DEPLOYMENT,
                        IRSO_NAMESPACE,
                        self._settings.get_intervals("default", "wait-deployment"),
                    ),
                )
            )
        return steps

    def _cert_manager_steps(self) -> List[Step]:
        cert_manager = self._c.cert_manager
        if cert_manager is None:
            raise ValueError("UPGRADE_DEPLOY_CERT_MANAGER is set but no cert-manager collaborator was given")
        version = self._settings.get_variable("CERT_MANAGER_VERSION")
        return [
            ActionStep(
                id="install-cert-manager",
                name=f"Installing cert-manager {version} on the upgrade cluster",
                action=lambda ctx: cert_manager.install(version),
            ),
            EventuallyStep(
                id="wait-cert-manager-webhook",
                name="Waiting for cert-manager webhook",
                operation=lambda ctx: cert_manager.check_webhook(),
                poll=self._settings.get_intervals("default", "wait-available"),
            ),
            ActionStep(
                id="check-cert-manager-api",
                name="Checking the cert-manager API",
                action=lambda ctx: cert_manager.check_api(),
            ),
        ]

    def _install_ironic_steps(self, kustomization: str) -> List[Step]:
        return [
            ActionStep(
                id="install-ironic",
                name=f"Installing Ironic from kustomization {kustomization} on the upgrade cluster",
                action=lambda ctx: self._c.manifests.apply(kustomization),
            ),
            self._wait_ironic_ready_step("wait-ironic-ready"),
        ]

    def _wait_ironic_ready_step(self, step_id: str) -> ConditionStep:
        return ConditionStep(
            id=step_id,
            name="Waiting for Ironic to be ready",
            probe=lambda ctx: self._c.deployments.ready(DEPLOYMENT_NAMES[IRONIC], BMO_IRONIC_NAMESPACE),
            poll=self._settings.get_intervals(IRONIC, "wait-deployment"),
        )

    def _apply_and_wait(self, kustomization: str, deployment: str, namespace: str, wait: PollSpec):
        def install(ctx: FlowContext) -> None:
            self._c.manifests.apply(kustomization)
            self._poller.poll(
                lambda: self._c.deployments.ready(deployment, namespace),
                wait,
                cancel=ctx.cancel,
                description=f"deployment {deployment} ready",
            )

        return install

    def _install_bmo_step(self, kustomization: str) -> ActionStep:
        install = self._apply_and_wait(
            kustomization,
            DEPLOYMENT_NAMES[BMO],
            BMO_IRONIC_NAMESPACE,
            self._settings.get_intervals("default", "wait-deployment"),
        )

        # On a reused cluster the operator has to be removed again; a throwaway
        # cluster is disposed of as a whole by whoever created it.
        cleanup = None
        if self._settings.get_bool_variable("UPGRADE_USE_EXISTING_CLUSTER"):
            cleanup = self._remove_operator_system(
                self._settings.get_variable("BMO_KUSTOMIZATION", kustomization)
            )

        return ActionStep(
            id="install-bmo",
            name=f"Installing BMO from {kustomization} on the upgrade cluster",
            action=install,
            retry=RetryPolicy(max_attempts=2),
            cleanup=cleanup,
            cleanup_name="remove-baremetal-operator-system",
        )

    def _delete_namespace(self, name: str):
        wait_deleted = self._settings.get_intervals("default", "wait-namespace-deleted")

        def cleanup(ctx: FlowContext) -> None:
            self._c.resources.delete_namespace(name)
            self._poller.poll(
                lambda: not self._c.resources.namespace_exists(name),
                wait_deleted,
                cancel=ctx.cancel,
                description=f"namespace {name} deleted",
            )

        return cleanup

    def _remove_operator_system(self, kustomization: str):
        wait_deleted = self._settings.get_intervals("default", "wait-namespace-deleted")

        def cleanup(ctx: FlowContext) -> None:
            # also removes Ironic when it lives in the same namespace
            self._c.manifests.remove(kustomization)
            self._poller.poll(
                lambda: not self._c.resources.namespace_exists(BMO_IRONIC_NAMESPACE),
                wait_deleted,
                cancel=ctx.cancel,
                description=f"namespace {BMO_IRONIC_NAMESPACE} deleted",
            )

        return cleanup


def build_upgrade_flows(collaborators: UpgradeCollaborators, config, poller: ConditionPoller) -> List[FlowSpec]:
    """One flow per entry of ``config.upgrade_specs``."""
    builder = UpgradeFlowBuilder(
        collaborators,
        config,
        poller,
        bmc=config.bmc.to_details(),
        provisioning=config.provisioning.to_patch(),
    )
    return [builder.build(spec.to_input()) for spec in config.upgrade_specs]
