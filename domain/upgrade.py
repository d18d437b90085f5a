# domain/upgrade.py
from __future__ import annotations

import os
from dataclasses import dataclass

BMO = "bmo"
IRONIC = "ironic"


@dataclass(frozen=True)
class UpgradeInput:
    upgrade_entity_name: str  # "bmo" | "ironic"
    upgrade_entity_kustomization: str
    init_bmo_kustomization: str = ""
    init_ironic_kustomization: str = ""
    deploy_bmo: bool = True
    deploy_ironic: bool = True

    @property
    def upgrade_from_kustomization(self) -> str:
        if self.upgrade_entity_name == BMO:
            return self.init_bmo_kustomization
        return self.init_ironic_kustomization

    @property
    def test_case_name(self) -> str:
        from_name = os.path.basename(self.upgrade_from_kustomization.rstrip("/")).replace(".", "-")
        return f"{self.upgrade_entity_name}-upgrade-from-{from_name}"
