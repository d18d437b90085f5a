# infrastructure/config/flow_config.py
from __future__ import annotations

import os
from typing import Dict, List, Mapping, Optional

from domain.policies import PollSpec
from infrastructure.config.models import (
    BmcConfig,
    FlowConfigModel,
    ProvisioningConfig,
    UpgradeSpecConfig,
)


class ConfigLoadError(Exception):
    pass


_TRUE_VALUES = {"1", "true", "yes", "on"}


class FlowConfig:
    """
    Read-only view over a loaded configuration file.

    Variables resolve from the process environment first, then from the
    dotenv values passed in, then from the file itself.
    """

    def __init__(
        self,
        model: FlowConfigModel,
        env_values: Optional[Mapping[str, Optional[str]]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._model = model
        self._env_values = dict(env_values or {})
        self._environ = environ if environ is not None else os.environ

    @property
    def upgrade_specs(self) -> List[UpgradeSpecConfig]:
        return list(self._model.upgrade_specs)

    @property
    def bmc(self) -> BmcConfig:
        if self._model.bmc is None:
            raise ConfigLoadError("bmc section is missing")
        return self._model.bmc

    @property
    def provisioning(self) -> ProvisioningConfig:
        if self._model.provisioning is None:
            raise ConfigLoadError("provisioning section is missing")
        return self._model.provisioning

    def get_intervals(self, scope: str, key: str) -> PollSpec:
        """``scope/key`` with fallback to ``default/key``."""
        for candidate in (f"{scope}/{key}", f"default/{key}"):
            pair = self._model.intervals.get(candidate)
            if pair is not None:
                return PollSpec.from_intervals(pair)
        raise ConfigLoadError(f"intervals not found: {scope}/{key} (no default/{key} either)")

    def has_variable(self, name: str) -> bool:
        return self._lookup(name) is not None

    def get_variable(self, name: str, default: Optional[str] = None) -> str:
        value = self._lookup(name)
        if value is None:
            if default is not None:
                return default
            raise ConfigLoadError(f"variable not found: {name}")
        return value

    def get_bool_variable(self, name: str, default: bool = False) -> bool:
        value = self._lookup(name)
        if value is None:
            return default
        return value.strip().lower() in _TRUE_VALUES

    def variables(self) -> Dict[str, str]:
        merged = dict(self._model.variables)
        for key in merged:
            merged[key] = self._lookup(key) or merged[key]
        return merged

    def _lookup(self, name: str) -> Optional[str]:
        if name in self._environ:
            return self._environ[name]
        env_value = self._env_values.get(name)
        if env_value is not None:
            return env_value
        return self._model.variables.get(name)
