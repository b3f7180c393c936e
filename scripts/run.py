# scripts/run.py
from __future__ import annotations

import argparse
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.entity_loader import EntityLoader
from alchemist.dataloader.rules_loader import load_rules
from alchemist.errors import AlchemistError, DataError
from alchemist.export.data_export import export_all
from alchemist.metrics.logger import write_metrics
from alchemist.metrics.metrics import collect_metrics
from alchemist.schemas.models import AlchemistConfig
from alchemist.validator import validate_snapshot


def _setup_logging() -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    Sets the default logging level to INFO and defines a simple console format.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    @brief
    Parses command-line arguments for the validation pipeline.

    @details
    Input paths given on the command line override those of config.yaml.
    """
    parser = argparse.ArgumentParser(
        prog="alchemist-run",
        description="Run the Data Alchemist pipeline: load → validate → report → metrics → export",
    )

    # (1) Config path argument
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )

    # (2) Input file arguments
    parser.add_argument("--clients", type=str, default=None, help="Clients CSV/XLSX")
    parser.add_argument("--workers", type=str, default=None, help="Workers CSV/XLSX")
    parser.add_argument("--tasks", type=str, default=None, help="Tasks CSV/XLSX")
    parser.add_argument("--rules", type=str, default=None, help="Business rules JSON/YAML")

    # (3) Output directory argument
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )

    return parser.parse_args(argv)


def _require_path(value: str | None, name: str) -> Path:
    if not value:
        raise DataError(
            message=f"No {name} file given",
            source="scripts.run",
            suggested_action=f"Pass --{name} or set {name}_path in config.yaml.",
        )
    return Path(value)


def run_pipeline(
    cfg: AlchemistConfig,
    clients_path: Path,
    workers_path: Path,
    tasks_path: Path,
    output_dir: Path,
    rules_path: Path | None = None,
) -> dict[str, Any]:
    """
    @brief
    Executes the full validation pipeline.

    @details
    Performs sequential steps:
    (1) Load clients, workers, tasks (and rules when given).
    (2) Validate the snapshot and write validation_report.json.
    (3) Collect metrics and export cleaned data.
    Raises AlchemistError on controlled failures (unreadable files, bad rules).

    @returns
        Dictionary with the validity flag, finding counts and artifact paths.
    """
    # (1) Start timer
    t0 = time.perf_counter()
    write = cfg.io_policy.write_artifacts

    # (2) Load input data
    loader = EntityLoader(cfg.loader)
    clients = loader.load("client", clients_path).records
    workers = loader.load("worker", workers_path).records
    tasks = loader.load("task", tasks_path).records
    rules = load_rules(rules_path) if rules_path else []

    # (3) Validate snapshot and persist report
    logging.info("Validating snapshot…")
    report = validate_snapshot(
        clients,
        workers,
        tasks,
        cfg.validation,
        rules=rules,
        write_report=write and cfg.validation.write_report,
        out_dir=output_dir,
    )
    counts = report.counts()
    logging.info(
        "Findings: %d error(s), %d warning(s), %d info",
        counts["error"],
        counts["warning"],
        counts["info"],
    )

    # (4) Metrics and export
    artifacts: dict[str, Any] = {"validation_report": None, "metrics": None, "exports": []}
    if write:
        if cfg.validation.write_report:
            artifacts["validation_report"] = output_dir / "validation_report.json"

        logging.info("Collecting metrics…")
        artifacts["metrics"] = write_metrics(
            collect_metrics(report, clients, workers, tasks), out_dir=output_dir
        )

        logging.info("Exporting cleaned data…")
        artifacts["exports"] = export_all(
            clients,
            workers,
            tasks,
            output_dir,
            rules=rules if cfg.export.export_rules else None,
            weights=cfg.prioritization if cfg.export.export_prioritization else None,
            formats=cfg.export.formats,
        )
    else:
        logging.info("io_policy.write_artifacts=False: no files written")

    # (5) Final summary
    logging.info("Pipeline finished in %.2f s", time.perf_counter() - t0)

    return {
        "valid": report.is_clean(cfg.validation.fail_on_warnings),
        "counts": counts,
        "artifacts": artifacts,
    }


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point for the Data Alchemist pipeline.

    @details
    Returns numeric exit codes suitable for shell integration:
      0 – success (no blocking findings)
      1 – controlled failure (data/config errors or blocking findings)
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    try:
        config_path = Path(args.config)
        logging.info("Loading config: %s", config_path)
        cfg = ConfigLoader().load(
            config_path,
            overrides={
                "clients_path": args.clients,
                "workers_path": args.workers,
                "tasks_path": args.tasks,
                "rules_path": args.rules,
                "output_dir": args.output,
            },
        )

        output_dir = Path(cfg.output_dir or "data/output")
        result = run_pipeline(
            cfg,
            clients_path=_require_path(cfg.clients_path, "clients"),
            workers_path=_require_path(cfg.workers_path, "workers"),
            tasks_path=_require_path(cfg.tasks_path, "tasks"),
            output_dir=output_dir,
            rules_path=Path(cfg.rules_path) if cfg.rules_path else None,
        )
        logging.info("Artifacts in %s", output_dir.as_posix())
        return 0 if result["valid"] else 1

    except AlchemistError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
