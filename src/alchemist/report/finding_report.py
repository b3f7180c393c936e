# src/alchemist/report/finding_report.py
from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alchemist.errors import ValidationError
from alchemist.schemas.models import EntityType, Severity, ValidationFinding

logger = logging.getLogger(__name__)

SEVERITIES: tuple[Severity, ...] = ("error", "warning", "info")


class FindingReport:
    """
    @brief
    Ordered list of findings as consumed by display and export layers.

    @details
    Wraps the output of a validation pass and provides what consumers need:
    counts per severity for summary badges, filtering by entity or field to
    highlight cells, dismissal of individual findings, and merging the result
    of an incremental re-validation of one record.

    Dismissal and merging only change this list; the validated data is never
    touched.
    """

    def __init__(self, findings: Iterable[ValidationFinding] | None = None) -> None:
        self.findings: list[ValidationFinding] = list(findings or [])

    def __len__(self) -> int:
        return len(self.findings)

    def __iter__(self):
        return iter(self.findings)

    # ---------- Queries ----------
    def counts(self) -> dict[str, int]:
        """Number of findings per severity (all severities present, zero when absent)."""
        tally = Counter(f.severity for f in self.findings)
        return {sev: tally.get(sev, 0) for sev in SEVERITIES}

    @property
    def has_errors(self) -> bool:
        return any(f.severity == "error" for f in self.findings)

    def is_clean(self, fail_on_warnings: bool = False) -> bool:
        """True when nothing blocks downstream use (errors, and warnings if requested)."""
        blocking = {"error", "warning"} if fail_on_warnings else {"error"}
        return not any(f.severity in blocking for f in self.findings)

    def filter(
        self,
        *,
        entity_type: EntityType | None = None,
        entity_id: str | None = None,
        field: str | None = None,
        severity: Severity | None = None,
    ) -> list[ValidationFinding]:
        return [
            f
            for f in self.findings
            if (entity_type is None or f.entity_type == entity_type)
            and (entity_id is None or f.entity_id == entity_id)
            and (field is None or f.field == field)
            and (severity is None or f.severity == severity)
        ]

    def keys(self) -> list[tuple[str, str, str, str, str]]:
        return [f.key() for f in self.findings]

    # ---------- Display-state mutations ----------
    def dismiss(self, finding_id: str) -> bool:
        """
        @brief
        Remove one finding from the displayed list.

        @returns
            True if a finding with that id was present.
        """
        before = len(self.findings)
        self.findings = [f for f in self.findings if f.id != finding_id]
        return len(self.findings) != before

    def replace_for_record(
        self,
        entity_type: EntityType,
        entity_id: str,
        findings: Iterable[ValidationFinding],
        *,
        field: str | None = None,
    ) -> None:
        """
        @brief
        Merge findings of a re-validated record into the report.

        @details
        Previous findings of the record (optionally only of one field) are
        dropped, then the new findings are appended. Findings of all other
        records are kept unchanged and in order.
        """
        self.findings = [
            f
            for f in self.findings
            if not (
                f.entity_type == entity_type
                and f.entity_id == entity_id
                and (field is None or f.field == field)
            )
        ]
        self.findings.extend(findings)

    # ---------- Serialization ----------
    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "valid": not self.has_errors,
            "counts": self.counts(),
            "findings": [f.model_dump(mode="json", by_alias=True) for f in self.findings],
        }

    def save(
        self,
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            out_dir: Target directory (defaults to 'data/output').
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = out_dir or Path("data/output")
        target_dir.mkdir(parents=True, exist_ok=True)
        final_path = target_dir / filename

        tmp_path = final_path.with_suffix(".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            tmp_path.replace(final_path)
        except OSError as e:
            raise ValidationError(
                f"Failed to write validation report: {e}",
                source="FindingReport.save",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Validation report saved: %s", final_path)
        return final_path


__all__ = ["FindingReport", "SEVERITIES"]
