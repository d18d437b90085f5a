# tests/application/services/test_upgrade_flow.py
import pytest
from application.executor.condition_poller import ConditionPoller
from application.services.flow_runner import FlowRunner
from application.services.upgrade_flow import (
    BMO_IRONIC_NAMESPACE,
    IRSO_DEPLOYMENT,
    IRSO_NAMESPACE,
    HARDWARE_DETAILS_ANNOTATION,
    INSPECT_ANNOTATION,
    SECRET_NAME,
    UpgradeCollaborators,
    UpgradeFlowBuilder,
    build_upgrade_flows,
)
from domain.flow import FlowContext, StepStatus
from domain.resource_state import ProvisioningState
from domain.upgrade import UpgradeInput
from infrastructure.config.yaml_loader import YamlFlowConfigLoader


CONFIG = {
    "variables": {"UPGRADE_USE_EXISTING_CLUSTER": False},
    "intervals": {
        "default/wait-available": ["10m", "10s"],
        "default/wait-deployment": ["5m", "5s"],
        "default/wait-namespace-deleted": ["2m", "2s"],
        "ironic/wait-deployment": ["10m", "10s"],
        "upgrade/wait-available": ["20m", "5s"],
        "upgrade/wait-provisioned": ["30m", "10s"],
    },
    "bmc": {
        "address": "redfish-virtualmedia+http://192.168.222.1:8000/redfish/v1/Systems/bmo-e2e-1",
        "user": "admin",
        "password": "password",
        "boot_mac_address": "00:60:2f:31:81:01",
    },
    "provisioning": {
        "image_url": "http://192.168.222.1/cirros.img",
        "image_checksum": "http://192.168.222.1/cirros.img.sha256sum",
    },
}

BMO_UPGRADE = UpgradeInput(
    upgrade_entity_name="bmo",
    upgrade_entity_kustomization="config/overlays/e2e",
    init_bmo_kustomization="data/bmo-deployment/overlays/release-0.8",
    init_ironic_kustomization="data/ironic-standalone-operator/ironic/overlays/release-26.0",
)

IRONIC_UPGRADE = UpgradeInput(
    upgrade_entity_name="ironic",
    upgrade_entity_kustomization="data/ironic-standalone-operator/ironic/overlays/e2e",
    init_bmo_kustomization="config/overlays/e2e",
    init_ironic_kustomization="data/ironic-standalone-operator/ironic/overlays/release-26.0",
)


def make_builder(cluster, clock, logger, variables=None):
    data = dict(CONFIG)
    data["variables"] = dict(CONFIG["variables"], **(variables or {}))
    config = YamlFlowConfigLoader(environ={}).load_from_dict(data)
    collaborators = UpgradeCollaborators(
        manifests=cluster,
        deployments=cluster,
        fetcher=cluster,
        resources=cluster,
        cert_manager=cluster,
    )
    return UpgradeFlowBuilder(
        collaborators,
        config,
        ConditionPoller(clock, logger),
        bmc=config.bmc.to_details(),
        provisioning=config.provisioning.to_patch(),
    )


class TestUpgradeFlowBuilder:
    def test_bmo_upgrade_step_order(self, make_cluster, clock, logger):
        flow = make_builder(make_cluster(), clock, logger).build(BMO_UPGRADE)

        assert flow.name == "bmo-upgrade-from-release-0-8"
        assert [s.id for s in flow.steps] == [
            "install-ironic",
            "wait-ironic-ready",
            "install-bmo",
            "create-namespace",
            "create-bmc-secret",
            "create-host",
            "wait-host-available",
            "record-deployment-generation",
            "upgrade-bmo",
            "wait-bmo-rollout",
            "patch-host-for-provisioning",
            "wait-host-provisioned",
        ]

    def test_ironic_upgrade_waits_for_ironic_after_rollout(self, make_cluster, clock, logger):
        flow = make_builder(make_cluster(), clock, logger).build(IRONIC_UPGRADE)
        ids = [s.id for s in flow.steps]

        assert flow.name == "ironic-upgrade-from-release-26-0"
        assert ids.index("wait-ironic-ready-after-upgrade") == ids.index("wait-ironic-rollout") + 1

    def test_install_steps_follow_deploy_flags(self, make_cluster, clock, logger):
        upgrade = UpgradeInput(
            upgrade_entity_name="bmo",
            upgrade_entity_kustomization="config/overlays/e2e",
            init_bmo_kustomization="release-0.8",
            deploy_ironic=False,
            deploy_bmo=False,
        )

        flow = make_builder(make_cluster(), clock, logger).build(upgrade)

        assert flow.steps[0].id == "create-namespace"

    def test_prerequisites_are_off_by_default(self, make_cluster, clock, logger):
        flow = make_builder(make_cluster(), clock, logger).build(BMO_UPGRADE)

        assert flow.steps[0].id == "install-ironic"

    def test_prerequisite_steps_come_first(self, make_cluster, clock, logger):
        variables = {
            "UPGRADE_DEPLOY_CERT_MANAGER": "true",
            "CERT_MANAGER_VERSION": "v1.16.1",
            "UPGRADE_DEPLOY_IRSO": "true",
            "IRSO_KUSTOMIZATION": "data/ironic-standalone-operator/operator/overlays/e2e",
        }

        flow = make_builder(make_cluster(), clock, logger, variables=variables).build(BMO_UPGRADE)
        by_id = {s.id: s for s in flow.steps}

        assert [s.id for s in flow.steps[:5]] == [
            "install-cert-manager",
            "wait-cert-manager-webhook",
            "check-cert-manager-api",
            "install-irso",
            "install-ironic",
        ]
        assert by_id["wait-cert-manager-webhook"].poll.timeout_sec == 600
        assert by_id["wait-cert-manager-webhook"].poll.interval_sec == 10

    def test_cert_manager_needs_a_collaborator(self, make_cluster, clock, logger):
        cluster = make_cluster()
        config = YamlFlowConfigLoader(environ={}).load_from_dict(
            dict(CONFIG, variables={"UPGRADE_DEPLOY_CERT_MANAGER": "true", "CERT_MANAGER_VERSION": "v1.16.1"})
        )
        collaborators = UpgradeCollaborators(manifests=cluster, deployments=cluster, fetcher=cluster, resources=cluster)
        builder = UpgradeFlowBuilder(
            collaborators,
            config,
            ConditionPoller(clock, logger),
            bmc=config.bmc.to_details(),
            provisioning=config.provisioning.to_patch(),
        )

        with pytest.raises(ValueError, match="cert-manager"):
            builder.build(BMO_UPGRADE)

    def test_unknown_entity_is_rejected(self, make_cluster, clock, logger):
        upgrade = UpgradeInput(upgrade_entity_name="dnsmasq", upgrade_entity_kustomization="x")

        with pytest.raises(ValueError, match="unknown upgrade entity"):
            make_builder(make_cluster(), clock, logger).build(upgrade)

    def test_poll_intervals_come_from_config(self, make_cluster, clock, logger):
        flow = make_builder(make_cluster(), clock, logger).build(BMO_UPGRADE)
        by_id = {s.id: s for s in flow.steps}

        assert by_id["wait-host-available"].poll.timeout_sec == 1200
        assert by_id["wait-host-available"].poll.interval_sec == 5
        assert by_id["wait-host-provisioned"].poll.timeout_sec == 1800
        assert by_id["wait-bmo-rollout"].poll.interval_sec == 10
        assert by_id["patch-host-for-provisioning"].poll.interval_sec == 5


class TestUpgradeFlowRun:
    def test_bmo_upgrade_succeeds(self, make_cluster, deps, clock, logger):
        cluster = make_cluster(upgrade_manifest=BMO_UPGRADE.upgrade_entity_kustomization, patch_failures=1)
        cluster.apply_failures[BMO_UPGRADE.upgrade_entity_kustomization] = 1
        flow = make_builder(cluster, clock, logger).build(BMO_UPGRADE)

        result = FlowRunner(deps).run(flow)

        assert result.ok is True, result.error
        assert result.step("upgrade-bmo").attempts == 2
        assert result.step("patch-host-for-provisioning").polls == 2
        assert result.step("wait-host-available").polls == 2
        assert result.step("wait-host-provisioned").polls == 2
        assert cluster.generations["baremetal-operator-controller-manager"] == 2

        # deleting the namespace during cleanup took the host with it
        assert cluster.hosts == {}
        assert ("create_secret", ("upgrade-bmo", SECRET_NAME)) in cluster.calls
        assert cluster.call_names()[-1] == "delete_namespace"
        assert "upgrade-bmo" not in cluster.namespaces
        # the operator stays on a throwaway cluster
        assert "remove" not in cluster.call_names()
        assert BMO_IRONIC_NAMESPACE in cluster.namespaces

    def test_host_is_created_with_inspection_disabled(self, make_cluster, deps, clock, logger):
        cluster = make_cluster(upgrade_manifest=BMO_UPGRADE.upgrade_entity_kustomization)
        flow = make_builder(cluster, clock, logger).build(BMO_UPGRADE)
        create_host = next(s for s in flow.steps if s.id == "create-host")

        create_host.action(FlowContext())
        host = next(iter(cluster.hosts.values()))

        assert host.namespace == "upgrade-bmo"
        assert host.annotations[INSPECT_ANNOTATION] == "disabled"
        assert '"ramMebibytes": 4096' in host.annotations[HARDWARE_DETAILS_ANNOTATION]
        assert host.credentials_name == SECRET_NAME
        assert host.bmc.user == "admin"

    def test_existing_cluster_removes_operator_on_cleanup(self, make_cluster, deps, clock, logger):
        cluster = make_cluster(upgrade_manifest=BMO_UPGRADE.upgrade_entity_kustomization)
        flow = make_builder(
            cluster,
            clock,
            logger,
            variables={"UPGRADE_USE_EXISTING_CLUSTER": "true", "BMO_KUSTOMIZATION": "config/default"},
        ).build(BMO_UPGRADE)

        result = FlowRunner(deps).run(flow)

        assert result.ok is True, result.error
        assert cluster.calls[-1] == ("remove", "config/default")
        assert BMO_IRONIC_NAMESPACE not in cluster.namespaces
        cleanup_order = [f["cleanup"] for f in logger.find("cleanup.start")]
        assert cleanup_order == ["delete-namespace-upgrade-bmo", "remove-baremetal-operator-system"]

    def test_prerequisites_are_installed_before_the_upgrade(self, make_cluster, deps, clock, logger):
        cluster = make_cluster(upgrade_manifest=BMO_UPGRADE.upgrade_entity_kustomization, webhook_failures=2)
        irso = "data/ironic-standalone-operator/operator/overlays/e2e"
        variables = {
            "UPGRADE_DEPLOY_CERT_MANAGER": "true",
            "CERT_MANAGER_VERSION": "v1.16.1",
            "UPGRADE_DEPLOY_IRSO": "true",
            "IRSO_KUSTOMIZATION": irso,
        }
        flow = make_builder(cluster, clock, logger, variables=variables).build(BMO_UPGRADE)

        result = FlowRunner(deps).run(flow)

        assert result.ok is True, result.error
        assert result.step("wait-cert-manager-webhook").polls == 3
        assert cluster.calls[0] == ("install_cert_manager", "v1.16.1")
        assert cluster.call_names()[:6] == [
            "install_cert_manager",
            "check_webhook",
            "check_webhook",
            "check_webhook",
            "check_api",
            "apply",
        ]
        assert cluster.calls[5] == ("apply", irso)
        assert cluster.calls[6] == ("ready", (IRSO_DEPLOYMENT, IRSO_NAMESPACE))

    def test_ironic_upgrade_succeeds(self, make_cluster, deps, clock, logger):
        cluster = make_cluster(
            upgrade_manifest=IRONIC_UPGRADE.upgrade_entity_kustomization,
            upgraded_deployment="ironic-service",
        )
        flow = make_builder(cluster, clock, logger).build(IRONIC_UPGRADE)

        result = FlowRunner(deps).run(flow)

        assert result.ok is True, result.error
        assert result.step("wait-ironic-ready-after-upgrade").status == StepStatus.SUCCEEDED
        assert cluster.generations["ironic-service"] == 2

    def test_host_stuck_registering_times_out_and_cleans_up(self, make_cluster, deps, clock, logger):
        cluster = make_cluster(registration_states=[ProvisioningState.REGISTERING])
        flow = make_builder(cluster, clock, logger).build(BMO_UPGRADE)

        result = FlowRunner(deps).run(flow)

        assert result.timed_out is True
        assert result.failed_step_id == "wait-host-available"
        assert result.step("upgrade-bmo").status == StepStatus.SKIPPED
        assert "upgrade-bmo" not in cluster.namespaces
        assert result.cleanup_failures == []


def test_build_upgrade_flows_from_config(make_cluster, clock, logger):
    data = dict(CONFIG)
    data["upgrade_specs"] = [
        {
            "upgrade_entity_name": "bmo",
            "upgrade_entity_kustomization": "config/overlays/e2e",
            "init_bmo_kustomization": "data/bmo-deployment/overlays/release-0.8",
        },
        {
            "upgrade_entity_name": "ironic",
            "upgrade_entity_kustomization": "data/ironic/overlays/e2e",
            "init_ironic_kustomization": "data/ironic/overlays/release-26.0",
        },
    ]
    config = YamlFlowConfigLoader(environ={}).load_from_dict(data)
    cluster = make_cluster()
    collaborators = UpgradeCollaborators(manifests=cluster, deployments=cluster, fetcher=cluster, resources=cluster)

    flows = build_upgrade_flows(collaborators, config, ConditionPoller(clock, logger))

    assert [f.name for f in flows] == ["bmo-upgrade-from-release-0-8", "ironic-upgrade-from-release-26-0"]
