# src/alchemist/dataloader/rules_loader.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import DataError
from alchemist.schemas.rules import RULE_LIST_ADAPTER, BusinessRule

logger = logging.getLogger(__name__)


def parse_rules(data: Any) -> list[BusinessRule]:
    """
    @brief
    Validate a decoded rules document into typed rule variants.

    @details
    Accepts either a bare list of rule mappings or a mapping with a `rules`
    key (the layout written by the rules export). Each item is resolved by
    its `type` tag.

    @raises
        DataError
            If the structure is not a list or any rule fails schema validation.
    """
    if isinstance(data, Mapping):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise DataError(
            message=f"Rules document must be a list, got {type(data).__name__}",
            source="rules_loader.parse_rules",
            suggested_action="Provide a list of rules or a mapping with a 'rules' list.",
        )
    try:
        return RULE_LIST_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise DataError(
            message=f"Invalid business rule definition: {e}",
            source="rules_loader.parse_rules",
            suggested_action="Check rule 'type' tags and required fields.",
        ) from e


def load_rules(path: Path) -> list[BusinessRule]:
    """Read rules from a .json, .yaml or .yml file."""
    if not path.exists():
        raise DataError(
            message=f"Rules file not found: {path}",
            source="rules_loader.load_rules",
            suggested_action="Verify the rules path or omit it.",
        )

    suffix = path.suffix.lower()
    try:
        with path.open("r", encoding="utf-8") as f:
            if suffix == ".json":
                data = json.load(f)
            elif suffix in {".yaml", ".yml"}:
                data = yaml.safe_load(f)
            else:
                raise DataError(
                    message=f"Unsupported rules file format: {suffix or '(none)'}",
                    source="rules_loader.load_rules",
                    suggested_action="Use .json, .yaml or .yml for rules.",
                )
    except (ValueError, yaml.YAMLError) as e:
        raise DataError(
            message=f"Rules file parsing failed: {e}",
            source="rules_loader.load_rules",
            suggested_action="Fix JSON/YAML syntax in the rules file.",
        ) from e
    except OSError as e:
        raise DataError(
            message=f"Unable to read rules file: {e}",
            source="rules_loader.load_rules",
            suggested_action="Check file permissions and path accessibility.",
        ) from e

    rules = parse_rules(data if data is not None else [])
    logger.info("Loaded %d business rule(s) from %s", len(rules), path)
    return rules


__all__ = ["load_rules", "parse_rules"]
