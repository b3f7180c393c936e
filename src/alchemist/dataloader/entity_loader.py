# src/alchemist/dataloader/entity_loader.py
from __future__ import annotations

import csv
import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from alchemist.dataloader.types import LoadResult
from alchemist.errors import DataError
from alchemist.schemas.models import ENTITY_FILE_SUFFIXES, Client, LoaderConfig, Task, Worker

logger = logging.getLogger(__name__)

_MODELS = {"client": Client, "worker": Worker, "task": Task}

# Header aliases, compared after lowercasing and dropping non-alphanumerics,
# so "Client ID", "client_id" and "ClientID" all match "clientid".
HEADER_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "client": {
        "id": ("id", "clientid"),
        "name": ("name", "clientname"),
        "priority": ("priority", "prioritylevel"),
        "requested_task_ids": ("requestedtaskids", "requestedtasks"),
        "group_tag": ("grouptag", "group"),
        "attributes_json": ("attributesjson", "attributes"),
        "email": ("email", "clientemail"),
        "phone": ("phone", "clientphone"),
        "address": ("address", "clientaddress"),
    },
    "worker": {
        "id": ("id", "workerid"),
        "name": ("name", "workername"),
        "skills": ("skills", "workerskills"),
        "available_slots": ("availableslots", "slots"),
        "max_load_per_phase": ("maxloadperphase", "maxload"),
        "worker_group": ("workergroup", "group"),
        "qualification_level": ("qualificationlevel",),
        "email": ("email", "workeremail"),
        "attributes_json": ("attributesjson", "attributes"),
        "preferred_phases": ("preferredphases",),
    },
    "task": {
        "id": ("id", "taskid"),
        "name": ("name", "taskname"),
        "category": ("category",),
        "duration": ("duration",),
        "required_skills": ("requiredskills",),
        "preferred_phases": ("preferredphases",),
        "max_concurrent": ("maxconcurrent",),
        "dependencies": ("dependencies", "dependson"),
        "client_id": ("clientid",),
        "priority": ("priority", "prioritylevel"),
        "estimated_hours": ("estimatedhours",),
        "attributes_json": ("attributesjson", "attributes"),
    },
}

_INT_FIELDS = {"priority", "max_load_per_phase", "qualification_level", "duration", "max_concurrent"}
_FLOAT_FIELDS = {"estimated_hours"}
_STR_LIST_FIELDS = {"requested_task_ids", "skills", "required_skills", "dependencies"}
_PHASE_LIST_FIELDS = {"available_slots", "preferred_phases"}

_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


def normalize_header(name: str) -> str:
    return re.sub(r"[^0-9a-z]", "", str(name).lower())


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_int(value: Any) -> Any:
    """Integer value of a cell, or the raw cell when it is not integral."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return value
    return int(number) if number.is_integer() else value


def parse_float(value: Any) -> Any:
    try:
        return float(str(value).strip())
    except ValueError:
        return value


def parse_str_list(value: Any) -> Any:
    """JSON array or comma-separated cell -> list of stripped strings."""
    if isinstance(value, list):
        return [str(v).strip() for v in value]
    text = str(value).strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            return text
        return [str(v).strip() for v in parsed] if isinstance(parsed, list) else text
    return [part.strip() for part in text.split(",") if part.strip()]


def expand_phases(value: Any) -> Any:
    """
    Phase cell -> list of phase numbers.

    Accepts a JSON array ("[1, 2]"), a comma list ("1,2,4") and ranges
    ("1-3" -> [1, 2, 3]), also mixed ("1-2,5"). Tokens that are not phase
    numbers are kept as-is so validators can report them.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [parse_int(value)]
    if isinstance(value, list):
        return [parse_int(v) for v in value]

    text = str(value).strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            return text
        if not isinstance(parsed, list):
            return text
        tokens: list[Any] = []
        for item in parsed:
            tokens.extend(expand_phases(item) if isinstance(item, str) else [parse_int(item)])
        return tokens

    phases: list[Any] = []
    for part in (p.strip() for p in text.split(",")):
        if not part:
            continue
        m = _RANGE.match(part)
        if m:
            lo, hi = int(m.group(1)), int(m.group(2))
            phases.extend(range(lo, hi + 1) if lo <= hi else [part])
        else:
            phases.append(parse_int(part))
    return phases


def coerce_value(field: str, value: Any) -> Any:
    if field in _INT_FIELDS:
        return parse_int(value)
    if field in _FLOAT_FIELDS:
        return parse_float(value)
    if field in _STR_LIST_FIELDS:
        return parse_str_list(value)
    if field in _PHASE_LIST_FIELDS:
        return expand_phases(value)
    return str(value).strip()


class EntityLoader:
    """
    CSV / Excel -> LoadResult[Client | Worker | Task].

    Rules:
      - Formats: UTF-8 CSV (configurable delimiter), .xlsx/.xls (first sheet)
      - Header aliases are matched case- and punctuation-insensitively
      - Cells are coerced per field: integers, lists (JSON or comma
        separated), phase lists with range syntax "1-3"
      - Row-level coercion failures do not stop the load:
          * the row is kept as an unvalidated record with raw values
          * an issue is recorded (kind="coercion")
      - Missing columns are NOT fatal; they are reported by the validators

    Fatal errors (raise DataError immediately):
      - missing / unreadable file, unsupported extension
      - file larger than loader.max_file_size_mb
      - CSV without header row
    """

    SUPPORTED_SUFFIXES = ENTITY_FILE_SUFFIXES

    def __init__(self, cfg: LoaderConfig | None = None) -> None:
        self.cfg = cfg or LoaderConfig()

    def load(self, entity_type: str, path: Path) -> LoadResult:
        self._check_entity_type(entity_type)
        rows = self._read_rows(path)
        result = self.from_rows(entity_type, rows)
        self._report_summary(path, result)
        return result

    def from_rows(self, entity_type: str, rows: Iterable[Mapping[str, Any]]) -> LoadResult:
        """Map already-decoded rows (header -> cell) into typed records."""
        self._check_entity_type(entity_type)
        model = _MODELS[entity_type]
        aliases = HEADER_ALIASES[entity_type]

        records: list[Any] = []
        issues: list[dict[str, Any]] = []
        coerced = 0
        total = 0

        for idx, row in enumerate(rows, start=2):  # header = line 1
            total += 1
            values = self._map_row(row, aliases)
            try:
                records.append(model.model_validate(values))
                coerced += 1
            except PydanticValidationError as e:
                records.append(model.model_construct(**values))
                issues.append(
                    {
                        "kind": "coercion",
                        "line_no": idx,
                        "entity_id": values.get("id"),
                        "message": "; ".join(
                            f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()
                        ),
                    }
                )

        return LoadResult(
            entity_type=entity_type,
            success=not issues,
            records=records,
            issues=issues,
            total_rows=total,
            coerced_rows=coerced,
        )

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _check_entity_type(self, entity_type: str) -> None:
        if entity_type not in _MODELS:
            raise DataError(
                message=f"Unknown entity type: {entity_type!r}",
                source="EntityLoader",
                suggested_action="Use one of: client, worker, task.",
            )

    def _read_rows(self, path: Path) -> list[dict[str, Any]]:
        if not isinstance(path, Path):
            raise DataError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="EntityLoader._read_rows",
                suggested_action="Pass a pathlib.Path pointing to the data file.",
            )
        if not path.exists():
            raise DataError(
                message=f"Input file not found: {path}",
                source="EntityLoader._read_rows",
                suggested_action="Verify file path and ensure the file is present.",
            )

        suffix = path.suffix.lower()
        if suffix not in self.SUPPORTED_SUFFIXES:
            raise DataError(
                message=f"Unsupported file format: {suffix or '(none)'}",
                source="EntityLoader._read_rows",
                suggested_action="Upload CSV or Excel files (.csv, .xlsx, .xls).",
            )

        size_mb = path.stat().st_size / (1024 * 1024)
        if size_mb > self.cfg.max_file_size_mb:
            raise DataError(
                message=f"File too large: {size_mb:.1f} MB > {self.cfg.max_file_size_mb} MB",
                source="EntityLoader._read_rows",
                suggested_action="Split the file or raise loader.max_file_size_mb.",
            )

        if suffix == ".csv":
            return self._read_csv(path)
        return self._read_excel(path)

    def _read_csv(self, path: Path) -> list[dict[str, Any]]:
        try:
            with path.open("r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f, delimiter=self.cfg.delimiter)
                if reader.fieldnames is None:
                    raise DataError(
                        message="CSV has no header row.",
                        source="EntityLoader._read_csv",
                        suggested_action="Ensure the first line contains column names.",
                    )
                return [dict(r) for r in reader if any(not _is_empty(v) for v in r.values())]
        except OSError as e:
            raise DataError(
                message=f"Unable to read CSV: {e}",
                source="EntityLoader._read_csv",
                suggested_action="Check file permissions and that the file is not locked.",
            ) from e

    def _read_excel(self, path: Path) -> list[dict[str, Any]]:
        try:
            df = pd.read_excel(path, sheet_name=0, dtype=object)
        except (OSError, ValueError) as e:
            raise DataError(
                message=f"Excel parsing error: {e}",
                source="EntityLoader._read_excel",
                suggested_action="Check that the workbook is not corrupted and has a header row.",
            ) from e
        df = df.dropna(how="all")
        return df.to_dict(orient="records")

    def _map_row(self, row: Mapping[str, Any], aliases: dict[str, tuple[str, ...]]) -> dict[str, Any]:
        by_header = {normalize_header(k): v for k, v in row.items() if k is not None}
        values: dict[str, Any] = {}
        for field, names in aliases.items():
            for name in names:
                if name in by_header and not _is_empty(by_header[name]):
                    values[field] = coerce_value(field, by_header[name])
                    break
        return values

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        if result.success:
            logger.info(
                "EntityLoader OK: %d %s record(s) from %s",
                result.total_rows,
                result.entity_type,
                path,
            )
        else:
            logger.warning(
                "EntityLoader: %d of %d %s row(s) failed coercion in %s (kept for validation)",
                len(result.issues),
                result.total_rows,
                result.entity_type,
                path,
            )


__all__ = ["EntityLoader", "HEADER_ALIASES", "expand_phases", "normalize_header"]
