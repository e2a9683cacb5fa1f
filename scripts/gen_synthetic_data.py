# scripts/gen_synthetic_data.py
from __future__ import annotations

import csv
import random
from pathlib import Path

"""
Synthetic clients / workers / tasks generator (single run → three CSV files).

Design:
- Parameters are hard-coded as constants below (no CLI args).
- Tasks draw 1..3 required skills from SKILLS; workers draw 2..4 skills, so
  coverage is usually but not always complete.
- Clients request 1..8 existing tasks; a few high-priority clients exceed the
  advisory threshold on purpose.
- With INJECT_DEFECTS, a handful of rows carry the defects the validator
  reports (duplicate ids, out-of-range priority, bad JSON, non-numeric slots,
  malformed phase ranges, unknown task references).

Output columns use the canonical headers (ClientID, PriorityLevel, ...).
"""

# =========================
# CONFIG — EDIT THESE
# =========================
N_CLIENTS: int = 20
N_WORKERS: int = 12
N_TASKS: int = 30
N_PHASES: int = 6
OUTPUT_DIR: str = "data/input"
INJECT_DEFECTS: bool = True

SKILLS: tuple[str, ...] = (
    "python",
    "sql",
    "etl",
    "ml",
    "frontend",
    "devops",
    "qa",
    "design",
)

# Deterministic generation
RANDOM_SEED: int = 42
# =========================


def _write(path: Path, header: list[str], rows: list[list[str]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)


def _tasks(rng: random.Random) -> list[list[str]]:
    rows = []
    for i in range(1, N_TASKS + 1):
        start = rng.randint(1, N_PHASES - 1)
        end = rng.randint(start, N_PHASES)
        phases = f"{start}-{end}" if rng.random() < 0.5 else f"[{start},{end}]"
        co_run = rng.sample(range(1, N_TASKS + 1), k=rng.randint(0, 2))
        rows.append(
            [
                f"T{i}",
                ",".join(rng.sample(SKILLS, k=rng.randint(1, 3))),
                phases,
                str(rng.randint(1, 4)),
                ",".join(f"T{j}" for j in co_run if j != i),
            ]
        )
    return rows


def _workers(rng: random.Random) -> list[list[str]]:
    rows = []
    for i in range(1, N_WORKERS + 1):
        slots = sorted(rng.sample(range(1, N_PHASES + 1), k=rng.randint(2, N_PHASES)))
        rows.append(
            [
                f"W{i}",
                f"G{rng.randint(1, 3)}",
                ",".join(rng.sample(SKILLS, k=rng.randint(2, 4))),
                "[" + ",".join(str(s) for s in slots) + "]",
                str(rng.randint(1, 3)),
                str(rng.randint(1, 3)),
            ]
        )
    return rows


def _clients(rng: random.Random) -> list[list[str]]:
    rows = []
    for i in range(1, N_CLIENTS + 1):
        requested = rng.sample(range(1, N_TASKS + 1), k=rng.randint(1, 8))
        rows.append(
            [
                f"C{i}",
                f"Group{rng.choice('ABC')}",
                str(rng.randint(1, 5)),
                ",".join(f"T{j}" for j in requested),
                '{"location": "%s", "budget": %d}'
                % (rng.choice(["north", "south"]), rng.randint(1, 9) * 1000),
            ]
        )
    return rows


def _inject_defects(
    clients: list[list[str]], workers: list[list[str]], tasks: list[list[str]]
) -> None:
    clients.append(list(clients[0]))  # duplicate ClientID
    clients[1][2] = "7"  # PriorityLevel out of range
    clients[2][4] = "{not json"  # AttributesJSON unparsable
    clients[3][3] += ",T999"  # unknown TaskID
    workers[0][3] = "[1,x2,3]"  # non-numeric slot
    tasks[0][2] = "1to3"  # malformed phase range
    tasks[1][1] += ",quantum"  # skill no worker has


def main() -> None:
    rng = random.Random(RANDOM_SEED)
    tasks = _tasks(rng)
    workers = _workers(rng)
    clients = _clients(rng)
    if INJECT_DEFECTS:
        _inject_defects(clients, workers, tasks)

    out = Path(OUTPUT_DIR)
    _write(
        out / "clients.csv",
        ["ClientID", "ClientGroup", "PriorityLevel", "RequestedTaskIDs", "AttributesJSON"],
        clients,
    )
    _write(
        out / "workers.csv",
        ["WorkerID", "WorkerGroup", "Skills", "AvailableSlots", "MaxLoadPerPhase", "MaxConcurrent"],
        workers,
    )
    _write(
        out / "tasks.csv",
        ["TaskID", "RequiredSkills", "PreferredPhases", "Duration", "CoRunTaskIDs"],
        tasks,
    )
    print(f"Wrote {len(clients)} clients, {len(workers)} workers, {len(tasks)} tasks to {out}")


if __name__ == "__main__":
    main()
