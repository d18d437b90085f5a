# infrastructure/config/yaml_loader.py
"""
Builds a FlowConfig from a YAML file (plus an optional .env file).
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError as PydanticValidationError

from infrastructure.config.flow_config import ConfigLoadError, FlowConfig
from infrastructure.config.models import FlowConfigModel


class YamlFlowConfigLoader:
    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ

    def load_from_file(
        self,
        path: Union[str, Path],
        env_file: Optional[Union[str, Path]] = None,
    ) -> FlowConfig:
        p = Path(path)
        if not p.exists():
            raise ConfigLoadError(f"Config file not found: {path}")

        with p.open("r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigLoadError(f"Config file is not valid YAML: {path}: {e}") from e

        if data is None:
            raise ConfigLoadError(f"Config file is empty: {path}")

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Config file is invalid: {path}")

        env_values: Dict[str, Optional[str]] = {}
        if env_file is not None:
            env_path = Path(env_file)
            if env_path.exists():
                env_values = dotenv_values(env_path)

        return self.load_from_dict(data, env_values=env_values)

    def load_from_dict(
        self,
        data: Dict[str, Any],
        env_values: Optional[Mapping[str, Optional[str]]] = None,
    ) -> FlowConfig:
        try:
            model = FlowConfigModel.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigLoadError(f"Config is invalid: {e}") from e
        return FlowConfig(model, env_values=env_values, environ=self._environ)
