# src/alchemist/metrics/logger.py
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from alchemist.errors import DataError


def write_metrics(metrics: dict[str, Any], out_dir: Path) -> Path:
    """
    @brief
    Writes metrics.json atomically in UTF-8 encoding.

    @details
    Validates that the input is a serializable dictionary, dumps it with
    sorted keys and indentation, and atomically replaces the target file.
    Repeated runs overwrite the same file cleanly.

    @params
        metrics : dict[str, Any]
            Output of collect_metrics().
        out_dir : Path
            Directory where metrics.json will be created.

    @returns
        Path to the created metrics.json file.

    @raises
        DataError
            If input is not a dict or JSON serialization fails.
    """
    if not isinstance(metrics, dict):
        raise DataError("metrics must be a dict", source="metrics.write_metrics")

    # (1) Validate JSON serializability
    try:
        payload = json.dumps(metrics, ensure_ascii=False, sort_keys=True, indent=2)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"metrics not JSON-serializable: {e}",
            source="metrics.write_metrics",
            suggested_action="Ensure metrics values are primitives (str/float/int/bool).",
        ) from e

    # (2) Atomically write validated payload
    target = Path(out_dir) / "metrics.json"
    _atomic_write_text(target, payload)
    return target


def _atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    @brief
    Atomic text file write using a temporary file swap.

    @raises
        DataError
            On write or rename failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=str(path.parent))
    try:
        with open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise DataError(
            f"atomic write failed for {path}: {e}",
            source="metrics._atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


__all__ = ["write_metrics"]
