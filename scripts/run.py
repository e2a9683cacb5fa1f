# scripts/run.py
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from taskalloc.dataloader.config_loader import ConfigLoader
from taskalloc.dataloader.entities_loader import EntitiesLoader
from taskalloc.engine import EngineSession
from taskalloc.errors import DataError, EngineError
from taskalloc.export.entity_export import (
    write_entities_csv,
    write_priorities_json,
    write_rules_json,
)
from taskalloc.schemas.models import ENTITY_TYPES
from taskalloc.validator.validator import Validator


def _setup_logging() -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    Sets the default logging level to INFO and defines a simple console format.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="taskalloc-run",
        description="Load clients/workers/tasks, validate them and export cleaned data",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: built-in defaults)",
    )
    for entity_type in ENTITY_TYPES:
        parser.add_argument(
            f"--{entity_type}",
            type=str,
            default=f"data/input/{entity_type}.csv",
            help=f"Path to {entity_type} CSV/XLSX (default: data/input/{entity_type}.csv)",
        )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )
    return parser.parse_args()


def run_pipeline(
    config_path: Path | None, inputs: dict[str, Path], output_dir: Path | None
) -> dict[str, Any]:
    """
    @brief
    Executes load → validate → report → export.

    @details
    (1) Load configuration and open a session (file-backed if data_dir is set).
    (2) Load each entity file; row-level load issues stop the run with a
        load_errors.json report.
    (3) Import collections (each import re-validates), then write the
        validation report and cleaned exports.

    @returns
        Dictionary with validity flag, error / suggestion counts and artifact paths.

    @raises
        EngineError
            On configuration, data or persistence issues.
    """
    t0 = time.perf_counter()
    cfg = ConfigLoader().load(config_path)
    out_dir = output_dir or Path(cfg.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    session = EngineSession.from_config(cfg)
    session.rules.load_from_persistence()
    session.priorities.load_from_persistence()
    loader = EntitiesLoader(strict_numeric=cfg.strict_numeric)

    load_errors: dict[str, list[dict[str, Any]]] = {}
    for entity_type in ENTITY_TYPES:
        logging.info("Loading %s: %s", entity_type, inputs[entity_type])
        result = loader.load(inputs[entity_type], entity_type)
        if not result.success:
            load_errors[entity_type] = result.errors
            continue
        session.import_entities(entity_type, result.entities)

    if load_errors:
        load_errors_path = out_dir / "load_errors.json"
        load_errors_path.write_text(
            json.dumps(load_errors, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        raise DataError(
            message=f"Entity load failed, see {load_errors_path.as_posix()}",
            source="scripts.run",
            suggested_action="Fix the reported rows and rerun.",
        )

    validator = Validator(session.store.snapshot(), cfg)
    validator.run_all_checks()
    report = validator.build_report()
    report_path = (
        validator.save_report(report, out_dir=out_dir) if cfg.validation.write_report else None
    )

    artifacts: dict[str, Path | None] = {"validation_report": report_path}
    for entity_type in ENTITY_TYPES:
        artifacts[f"{entity_type}_csv"] = write_entities_csv(
            session.store.get_all(entity_type), out_dir / f"{entity_type}_cleaned.csv"
        )
    artifacts["rules"] = write_rules_json(session.rules.list_rules(), out_dir / "rules.json")
    artifacts["priorities"] = write_priorities_json(
        session.priorities.get(), out_dir / "priorities.json"
    )

    logging.info("Pipeline finished in %.2f s", time.perf_counter() - t0)
    return {
        "valid": report["valid"],
        "num_errors": len(report["errors"]),
        "num_suggestions": len(report["suggestions"]),
        "artifacts": artifacts,
    }


def main() -> int:
    """
    @brief
    CLI entry point.

    @details
    Returns numeric exit codes suitable for shell integration:
      0 – data is valid
      1 – validation errors or controlled failure (data/config/persistence)
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args()

    config_path = Path(args.config) if args.config else None
    inputs = {t: Path(getattr(args, t)) for t in ENTITY_TYPES}
    output_dir = Path(args.output) if args.output else None

    try:
        result = run_pipeline(config_path, inputs, output_dir)
        logging.info(
            "valid=%s errors=%d suggestions=%d",
            result["valid"],
            result["num_errors"],
            result["num_suggestions"],
        )
        return 0 if result["valid"] else 1

    except EngineError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
