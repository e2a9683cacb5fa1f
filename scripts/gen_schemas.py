# scripts/gen_schemas.py
"""
Generate JSON Schemas for taskalloc data models.

This script exports JSON Schema files for:
    - Client, Worker, Task
    - Rule, PriorityWeights
    - EngineConfig

Output directory: schemas/
"""

import json
from pathlib import Path

from taskalloc.schemas.models import Client, EngineConfig, PriorityWeights, Rule, Task, Worker


def export_schema(model_cls, name: str, out_dir: Path) -> Path:
    """
    @brief
    Exports the JSON schema of a given Pydantic model.

    @details
    Schemas are generated in serialization mode so that they describe the
    canonical (alias) field names used in stored documents and exports.

    @returns
        Path of the written "<name>.schema.json" file.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    schema_path = (out_dir / f"{name}.schema.json").resolve()
    schema = model_cls.model_json_schema(by_alias=True, mode="serialization")

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return schema_path


def main() -> None:
    out_dir = Path("schemas").resolve()
    models = {
        "client": Client,
        "worker": Worker,
        "task": Task,
        "rule": Rule,
        "priorities": PriorityWeights,
        "config": EngineConfig,
    }
    for name, model_cls in models.items():
        path = export_schema(model_cls, name, out_dir)
        try:
            rel = path.relative_to(Path.cwd())
        except ValueError:
            rel = path
        print(f"Generated {rel}")


if __name__ == "__main__":
    main()
