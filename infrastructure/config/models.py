# infrastructure/config/models.py
"""
Schema of the flow configuration file.
"""
from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from domain.policies import PollSpec
from domain.resources import BmcDetails, ProvisioningPatch
from domain.upgrade import UpgradeInput


def _variable_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class BmcConfig(BaseModel):
    address: str = Field(description="BMC address, e.g. redfish-virtualmedia+http://...")
    user: str = Field(default="", description="BMC user")
    password: str = Field(default="", description="BMC password")
    boot_mac_address: str = Field(default="", description="Boot MAC of the host")
    disable_certificate_verification: bool = Field(default=False)

    def to_details(self) -> BmcDetails:
        return BmcDetails(
            address=self.address,
            user=self.user,
            password=self.password,
            boot_mac_address=self.boot_mac_address,
            disable_certificate_verification=self.disable_certificate_verification,
        )


class ProvisioningConfig(BaseModel):
    image_url: str = Field(description="Image written to the host during provisioning")
    image_checksum: str = Field(description="Image checksum or checksum URL")
    image_checksum_type: str = Field(default="sha256")
    image_format: Optional[str] = Field(default=None)

    def to_patch(self) -> ProvisioningPatch:
        return ProvisioningPatch(
            image_url=self.image_url,
            image_checksum=self.image_checksum,
            image_checksum_type=self.image_checksum_type,
            image_format=self.image_format,
        )


class UpgradeSpecConfig(BaseModel):
    """One upgrade scenario, e.g. BMO release-0.5 -> main."""
    deploy_ironic: bool = Field(default=True)
    deploy_bmo: bool = Field(default=True)
    init_ironic_kustomization: str = Field(default="")
    init_bmo_kustomization: str = Field(default="")
    upgrade_entity_name: Literal["bmo", "ironic"] = Field(description="What gets upgraded")
    upgrade_entity_kustomization: str = Field(description="Manifest of the version upgraded to")

    def to_input(self) -> UpgradeInput:
        return UpgradeInput(
            upgrade_entity_name=self.upgrade_entity_name,
            upgrade_entity_kustomization=self.upgrade_entity_kustomization,
            init_bmo_kustomization=self.init_bmo_kustomization,
            init_ironic_kustomization=self.init_ironic_kustomization,
            deploy_bmo=self.deploy_bmo,
            deploy_ironic=self.deploy_ironic,
        )


class FlowConfigModel(BaseModel):
    variables: Dict[str, str] = Field(default_factory=dict)
    # "<scope>/<key>": [timeout, interval]
    intervals: Dict[str, List[Union[str, float]]] = Field(default_factory=dict)
    bmc: Optional[BmcConfig] = Field(default=None)
    provisioning: Optional[ProvisioningConfig] = Field(default=None)
    upgrade_specs: List[UpgradeSpecConfig] = Field(default_factory=list)

    @field_validator("variables", mode="before")
    @classmethod
    def _stringify_variables(cls, value):
        if isinstance(value, dict):
            return {str(k): _variable_str(v) for k, v in value.items()}
        return value

    @field_validator("intervals")
    @classmethod
    def _check_intervals(cls, value: Dict[str, List[Union[str, float]]]) -> Dict[str, List[Union[str, float]]]:
        for key, pair in value.items():
            if "/" not in key:
                raise ValueError(f"interval key must be '<scope>/<name>': {key}")
            # raises ValidationError (a ValueError) on bad durations
            PollSpec.from_intervals(pair)
        return value
