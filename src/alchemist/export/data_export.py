# src/alchemist/export/data_export.py
from __future__ import annotations

import csv
import json
import logging
import os
import tempfile
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from alchemist.errors import DataError, ExportError
from alchemist.schemas.models import Client, EntityType, Task, Worker
from alchemist.schemas.rules import BusinessRule, PrioritizationWeights

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

_MODELS: dict[str, type[BaseModel]] = {"client": Client, "worker": Worker, "task": Task}


def _columns(entity_type: str) -> list[str]:
    """camelCase column names in model declaration order."""
    return [to_camel(name) for name in _MODELS[entity_type].model_fields]


def _cell(value: Any) -> str:
    """
    @brief
    Serialize one field value into a CSV cell.

    @details
    Lists and dicts are written as JSON so they survive a round trip through
    the entity loader. None becomes an empty cell.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(list(value) if isinstance(value, tuple) else value, ensure_ascii=False)
    return str(value)


def entity_rows(entity_type: str, records: Sequence[Any]) -> list[dict[str, str]]:
    """
    @brief
    Flatten typed records into export rows keyed by camelCase column.

    @details
    Records created without validation may hold raw values of unexpected
    types; they are exported as-is (stringified) rather than rejected.

    @raises
        DataError
            If entity_type is unknown or records is not a list/tuple.
    """
    if entity_type not in _MODELS:
        raise DataError(
            f"Unknown entity type: {entity_type!r}",
            source="export.entity_rows",
            suggested_action="Use one of: client, worker, task.",
        )
    if not isinstance(records, (list, tuple)):
        raise DataError(
            f"records must be a list, got {type(records).__name__}",
            source="export.entity_rows",
            suggested_action="Pass the typed records as a list.",
        )

    fields = list(_MODELS[entity_type].model_fields)
    return [
        {to_camel(name): _cell(getattr(record, name, None)) for name in fields}
        for record in records
    ]


def write_entities_csv(entity_type: EntityType, records: Sequence[Any], out_dir: Path) -> Path:
    """
    @brief
    Exports one cleaned entity collection to cleaned_<entity>s.csv.

    @details
    UTF-8, comma delimited, header row with camelCase names. Written
    atomically through a temporary file in the target directory.

    @returns
        Path to the written CSV file.
    """
    # (1) Flatten records
    rows = entity_rows(entity_type, records)
    out_path = Path(out_dir) / f"cleaned_{entity_type}s.csv"

    # (2) Atomic write via temporary file replacement
    def _write(tmp: str) -> None:
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=_columns(entity_type))
            writer.writeheader()
            writer.writerows(rows)

    _atomic_write(out_path, _write)
    logger.info("Exported %d %s record(s) to %s", len(rows), entity_type, out_path)
    return out_path


def write_entities_xlsx(entity_type: EntityType, records: Sequence[Any], out_dir: Path) -> Path:
    """Same as write_entities_csv but as an Excel workbook (sheet 'Data')."""
    rows = entity_rows(entity_type, records)
    out_path = Path(out_dir) / f"cleaned_{entity_type}s.xlsx"
    df = pd.DataFrame(rows, columns=_columns(entity_type))

    _atomic_write(
        out_path,
        lambda tmp: df.to_excel(tmp, sheet_name="Data", index=False, engine="openpyxl"),
    )
    logger.info("Exported %d %s record(s) to %s", len(rows), entity_type, out_path)
    return out_path


def write_rules_json(rules: Sequence[BusinessRule], out_dir: Path) -> Path:
    """
    @brief
    Exports business rules to rules.json.

    @details
    Layout: {"version": "1.0", "timestamp": <ISO UTC>, "rules": [...]}, each
    rule dumped with camelCase keys. The file can be read back with
    dataloader.load_rules().
    """
    payload = {
        "version": EXPORT_VERSION,
        "timestamp": _utc_now_iso(),
        "rules": [r.model_dump(mode="json", by_alias=True) for r in rules],
    }
    return _write_json(Path(out_dir) / "rules.json", payload)


def write_prioritization_json(weights: PrioritizationWeights, out_dir: Path) -> Path:
    """Exports prioritization weights (raw and normalized) to prioritization.json."""
    payload = {
        "version": EXPORT_VERSION,
        "timestamp": _utc_now_iso(),
        "weights": weights.model_dump(by_alias=True),
        "normalized": weights.normalized(),
    }
    return _write_json(Path(out_dir) / "prioritization.json", payload)


def export_all(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    out_dir: Path,
    *,
    rules: Sequence[BusinessRule] | None = None,
    weights: PrioritizationWeights | None = None,
    formats: Sequence[str] = ("csv",),
) -> list[Path]:
    """
    @brief
    Writes every export artifact of a snapshot.

    @params
        formats : Sequence[str]
            Subset of {"csv", "xlsx"} for the entity files.
        rules, weights :
            Written only when given.

    @returns
        Paths of all written files, entity files first.
    """
    written: list[Path] = []
    collections: tuple[tuple[EntityType, Sequence[Any]], ...] = (
        ("client", clients),
        ("worker", workers),
        ("task", tasks),
    )
    for entity_type, records in collections:
        if "csv" in formats:
            written.append(write_entities_csv(entity_type, list(records), out_dir))
        if "xlsx" in formats:
            written.append(write_entities_xlsx(entity_type, list(records), out_dir))
    if rules is not None:
        written.append(write_rules_json(rules, out_dir))
    if weights is not None:
        written.append(write_prioritization_json(weights, out_dir))
    return written


# ----------------- internal -----------------


def _write_json(path: Path, payload: dict[str, Any]) -> Path:
    text = json.dumps(payload, ensure_ascii=False, indent=2)

    def _write(tmp: str) -> None:
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(text)

    _atomic_write(path, _write)
    logger.info("Exported %s", path)
    return path


def _atomic_write(path: Path, write) -> None:
    """
    @brief
    Runs `write(tmp_path)` then swaps the temporary file into place.

    @raises
        ExportError
            On any write or rename failure; the temporary file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.stem + ".", suffix=path.suffix, dir=str(path.parent))
    os.close(fd)
    try:
        write(tmp_name)
        os.replace(tmp_name, path)
    except (OSError, ValueError) as e:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise ExportError(
            f"Failed to write {path.name}: {e}",
            source="export._atomic_write",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


__all__ = [
    "EXPORT_VERSION",
    "entity_rows",
    "export_all",
    "write_entities_csv",
    "write_entities_xlsx",
    "write_prioritization_json",
    "write_rules_json",
]
