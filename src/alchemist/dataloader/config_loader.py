# src/alchemist/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import ConfigError
from alchemist.schemas.models import AlchemistConfig

logger = logging.getLogger(__name__)

# Top-level keys the command line may override
OVERRIDABLE_KEYS = ("clients_path", "workers_path", "tasks_path", "rules_path", "output_dir")


class ConfigLoader:
    """
    @brief
    Reads config.yaml and produces the pipeline configuration.

    @details
    The YAML document is merged with command-line overrides before schema
    validation, so input paths given on the command line are checked by the
    same rules as paths from the file (supported formats, known keys).
    Schema errors are reported per location, e.g. `validation.priority_max`.
    """

    def load(self, path: Path, overrides: Mapping[str, Any] | None = None) -> AlchemistConfig:
        """
        @brief
        Load, merge and validate the configuration.

        @params
            path : Path
                config.yaml (.yaml or .yml). An empty file yields the defaults.
            overrides : Mapping | None
                Values for OVERRIDABLE_KEYS; None values are ignored.

        @returns
            Validated AlchemistConfig instance with defaults applied.

        @raises
            ConfigError
                Raised if the file is missing or malformed, an override key is
                unknown, or the merged mapping fails schema validation.
        """
        data = self._read_yaml(path)
        data = self._apply_overrides(data, overrides or {})
        cfg = self._validate(data)
        logger.debug(
            "Config %s: priorities %d..%d, formats=%s",
            path,
            cfg.validation.priority_min,
            cfg.validation.priority_max,
            cfg.export.formats,
        )
        return cfg

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        if not isinstance(path, Path):
            raise ConfigError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Pass a pathlib.Path object pointing to config.yaml.",
            )

        if path.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError(
                message=f"Invalid configuration file extension: {path.suffix}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use .yaml or .yml extension for configuration files.",
            )

        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure config.yaml exists and the path is correct.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions and path accessibility.",
            ) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax/indentation.",
            ) from e

        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ConfigError(
                message="Configuration root must be a mapping (key: value pairs).",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure top-level YAML structure uses key: value mappings.",
            )
        return dict(data)

    def _apply_overrides(
        self, data: dict[str, Any], overrides: Mapping[str, Any]
    ) -> dict[str, Any]:
        unknown = sorted(set(overrides) - set(OVERRIDABLE_KEYS))
        if unknown:
            raise ConfigError(
                message=f"Unknown override key(s): {', '.join(unknown)}",
                source="ConfigLoader._apply_overrides",
                suggested_action=f"Override only: {', '.join(OVERRIDABLE_KEYS)}.",
            )

        merged = dict(data)
        for key, value in overrides.items():
            if value is not None:
                merged[key] = str(value)
        return merged

    def _validate(self, data: dict[str, Any]) -> AlchemistConfig:
        try:
            return AlchemistConfig(**data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(map(str, err['loc'])) or '(root)'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(
                message=f"Invalid configuration: {problems}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names, types and bounds in config.yaml or the "
                    "command-line paths. Unknown keys are rejected."
                ),
            ) from e


__all__ = ["ConfigLoader", "OVERRIDABLE_KEYS"]
