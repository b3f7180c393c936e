from __future__ import annotations

import csv
import json
import random
import sys
from pathlib import Path

"""
Synthetic snapshot generator (single run -> clients.csv, workers.csv, tasks.csv).

Design:
- Parameters are hard-coded as constants below (no CLI args).
- Tasks get a random subset of skills, a duration and preferred phases;
  dependencies only point to earlier tasks, so the graph is acyclic.
- Workers are drawn so that every skill is held by at least one worker.
- Clients request random tasks and carry a small AttributesJSON payload.
- With INJECT_ERRORS=True a handful of known defects is added (duplicate id,
  out-of-range priority, unknown task reference, self-dependency, broken JSON)
  to exercise the validators.

Edit the constants in the "CONFIG" section to produce different datasets.
"""

# =========================
# CONFIG: EDIT THESE
# =========================
CLIENTS: int = 20
WORKERS: int = 12
TASKS: int = 30
PHASES: int = 6
OUTPUT_DIR: str = "data/synthetic"

SKILLS: tuple[str, ...] = ("python", "sql", "ml", "etl", "reporting", "devops", "ui", "qa")
CATEGORIES: tuple[str, ...] = ("ETL", "Analytics", "ML", "Frontend", "Infra")
GROUPS: tuple[str, ...] = ("GroupA", "GroupB", "GroupC")

INJECT_ERRORS: bool = False

# Deterministic generation
RANDOM_SEED: int = 42
# =========================


def _phases(k: int) -> list[int]:
    return sorted(random.sample(range(1, PHASES + 1), k))


def _make_tasks() -> list[dict[str, str]]:
    rows = []
    for i in range(1, TASKS + 1):
        earlier = [f"T{j}" for j in range(1, i)]
        deps = random.sample(earlier, min(len(earlier), random.randint(0, 2)))
        duration = random.randint(1, 3)
        rows.append(
            {
                "TaskID": f"T{i}",
                "TaskName": f"Task {i}",
                "Category": random.choice(CATEGORIES),
                "Duration": str(duration),
                "RequiredSkills": ",".join(random.sample(SKILLS, random.randint(1, 2))),
                "PreferredPhases": json.dumps(_phases(random.randint(1, 3))),
                "MaxConcurrent": str(random.randint(1, 3)),
                "Dependencies": ",".join(deps),
            }
        )
    return rows


def _make_workers() -> list[dict[str, str]]:
    rows = []
    for i in range(1, WORKERS + 1):
        # Round-robin guarantees every skill is covered at least once
        skills = {SKILLS[(i - 1) % len(SKILLS)], *random.sample(SKILLS, random.randint(1, 3))}
        lo = random.randint(1, PHASES - 1)
        hi = random.randint(lo + 1, PHASES)
        rows.append(
            {
                "WorkerID": f"W{i}",
                "WorkerName": f"Worker {i}",
                "Skills": ",".join(sorted(skills)),
                "AvailableSlots": f"{lo}-{hi}",
                "MaxLoadPerPhase": str(random.randint(1, 4)),
                "WorkerGroup": random.choice(GROUPS),
                "QualificationLevel": str(random.randint(1, 5)),
            }
        )
    return rows


def _make_clients() -> list[dict[str, str]]:
    rows = []
    for i in range(1, CLIENTS + 1):
        requested = random.sample(range(1, TASKS + 1), random.randint(1, 4))
        rows.append(
            {
                "ClientID": f"C{i}",
                "ClientName": f"Client {i}",
                "PriorityLevel": str(random.randint(1, 5)),
                "RequestedTaskIDs": ",".join(f"T{t}" for t in sorted(requested)),
                "GroupTag": random.choice(GROUPS),
                "AttributesJSON": json.dumps({"budget": random.randint(1, 100) * 1000}),
            }
        )
    return rows


def _inject_errors(clients: list[dict], workers: list[dict], tasks: list[dict]) -> None:
    clients[1]["ClientID"] = clients[0]["ClientID"]
    clients[2]["PriorityLevel"] = "7"
    clients[3]["RequestedTaskIDs"] += ",T999"
    clients[4]["AttributesJSON"] = "{not json"
    tasks[5]["Dependencies"] = tasks[5]["TaskID"]
    workers[0]["AvailableSlots"] = "[]"


def _write_csv(path: Path, rows: list[dict[str, str]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)


def _validate_config_or_die() -> None:
    problems: list[str] = []
    if min(CLIENTS, WORKERS, TASKS) < 5:
        problems.append("CLIENTS, WORKERS and TASKS must be >= 5")
    if PHASES < 2:
        problems.append("PHASES must be >= 2")
    if problems:
        msg = "Invalid generator configuration:\n- " + "\n- ".join(problems)
        print(msg, file=sys.stderr)
        sys.exit(2)


def main() -> int:
    _validate_config_or_die()
    random.seed(RANDOM_SEED)

    tasks = _make_tasks()
    workers = _make_workers()
    clients = _make_clients()
    if INJECT_ERRORS:
        _inject_errors(clients, workers, tasks)

    out = Path(OUTPUT_DIR)
    _write_csv(out / "clients.csv", clients)
    _write_csv(out / "workers.csv", workers)
    _write_csv(out / "tasks.csv", tasks)

    print(
        f"[GEN] clients={len(clients)}, workers={len(workers)}, tasks={len(tasks)}, "
        f"phases={PHASES}, errors={'on' if INJECT_ERRORS else 'off'}"
    )
    print(f"[GEN] wrote: {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
