from alchemist.export.data_export import (
    export_all,
    write_entities_csv,
    write_entities_xlsx,
    write_prioritization_json,
    write_rules_json,
)

__all__ = [
    "export_all",
    "write_entities_csv",
    "write_entities_xlsx",
    "write_prioritization_json",
    "write_rules_json",
]
