# src/taskalloc/dataloader/config_loader.py
from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from taskalloc.errors import ConfigError
from taskalloc.rules.priorities import PRESETS
from taskalloc.schemas.models import EngineConfig


class ConfigLoader:
    """
    @brief
    Loader responsible for reading and validating engine configuration.

    @details
    Reads YAML from disk, validates it against the Pydantic `EngineConfig`
    schema and checks cross-field constraints the schema cannot express
    (the default prioritization preset must be a known preset name). Every
    failure mode is raised as a structured `ConfigError`.
    """

    def load(self, path: Path | None = None) -> EngineConfig:
        """
        @brief
        Load configuration from YAML, or defaults when no path is given.

        @params
            path : Path | None
                Filesystem path to configuration file (.yaml or .yml).

        @returns
            Validated EngineConfig instance.

        @raises
            ConfigError
                Raised if file is missing, malformed, or fails schema validation.
        """
        if path is None:
            return EngineConfig()

        data = self._read_yaml(Path(path))
        cfg = self._validate(data)
        self._check_preset(cfg)
        return cfg

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """
        @brief
        Read a YAML file into a plain mapping.

        @raises
            ConfigError
                On missing file, wrong extension, I/O error, syntax error,
                empty file, or non-mapping root.
        """
        source = "ConfigLoader._read_yaml"

        if not path.exists():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source=source,
                suggested_action="Ensure config.yaml exists and the path is correct.",
            )
        if path.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError(
                message=f"Invalid configuration file extension: {path.suffix}",
                source=source,
                suggested_action="Use .yaml or .yml extension for configuration files.",
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source=source,
                suggested_action="Fix YAML syntax/indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source=source,
                suggested_action="Check file permissions and path accessibility.",
            ) from e

        if data is None:
            raise ConfigError(
                message="Configuration file is empty.",
                source=source,
                suggested_action="Populate config.yaml or omit --config to use defaults.",
            )
        if not isinstance(data, Mapping):
            raise ConfigError(
                message="Configuration root must be a mapping (key: value pairs).",
                source=source,
                suggested_action="Ensure top-level YAML structure uses key: value mappings.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any]) -> EngineConfig:
        try:
            return EngineConfig(**data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration structure: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names, types, and bounds in config.yaml. "
                    "Remove unknown keys (extra fields are forbidden)."
                ),
            ) from e

    def _check_preset(self, cfg: EngineConfig) -> None:
        if cfg.default_preset not in PRESETS:
            raise ConfigError(
                message=f"Unknown default_preset: {cfg.default_preset!r}",
                source="ConfigLoader._check_preset",
                suggested_action=f"Use one of: {', '.join(PRESETS)}",
            )


__all__ = ["ConfigLoader"]
