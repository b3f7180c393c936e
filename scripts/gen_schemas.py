# scripts/gen_schemas.py
"""
Generate JSON Schemas for Data Alchemist models.

This script exports JSON Schema files for:
    - Client, Worker, Task
    - ValidationFinding
    - AlchemistConfig
    - business rules (tagged union)

Output directory: schemas/
"""

import json
from pathlib import Path

from alchemist.schemas.models import AlchemistConfig, Client, Task, ValidationFinding, Worker
from alchemist.schemas.rules import RULE_LIST_ADAPTER


def _write_schema(schema: dict, name: str, out_dir: Path) -> Path:
    # (1) Ensure output directory exists
    out_dir.mkdir(parents=True, exist_ok=True)

    # (2) Serialize JSON Schema with indentation and final newline
    schema_path = (out_dir / f"{name}.schema.json").resolve()
    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    # (3) Print confirmation with relative path
    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"✅  Generated {rel}")
    return schema_path


def export_schema(model_cls, name: str, out_dir: Path) -> Path:
    """
    @brief
    Exports the JSON schema of a given Pydantic model.

    @details
    Schemas use the camelCase aliases, the names found in uploaded files
    and in exported data.

    @returns
        Path of the written "<name>.schema.json" file.
    """
    return _write_schema(model_cls.model_json_schema(by_alias=True), name, out_dir)


def main() -> None:
    out_dir = Path("schemas").resolve()

    export_schema(Client, "client", out_dir)
    export_schema(Worker, "worker", out_dir)
    export_schema(Task, "task", out_dir)
    export_schema(ValidationFinding, "finding", out_dir)
    export_schema(AlchemistConfig, "config", out_dir)
    _write_schema(RULE_LIST_ADAPTER.json_schema(by_alias=True), "rules", out_dir)


if __name__ == "__main__":
    main()
