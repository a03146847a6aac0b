"""Export JSON Schema contracts for the model-produced payloads.

Usage:
  python scripts/export_schemas.py [--output-dir schemas]
"""

from __future__ import annotations

import argparse
import json
import sys
from importlib import import_module
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

SCHEMA_FILES = {
    "QuestionBatch": "question_batch.v1.json",
    "GapAnalysis": "gap_analysis.v1.json",
    "ChatResponse": "chat_response.v1.json",
    "ContextPack": "context_pack.v1.json",
}


def write_schema(model: type, output_path: Path) -> None:
    """Write one model schema to disk with stable formatting."""
    schema = model.model_json_schema()
    output_path.write_text(json.dumps(schema, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")


def export_all(output_dir: Path) -> list[Path]:
    models_module = import_module("context_pack.models")
    output_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for model_name, filename in SCHEMA_FILES.items():
        path = output_dir / filename
        write_schema(getattr(models_module, model_name), path)
        written.append(path)
    return written


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Export LLM output contracts as JSON Schema.")
    parser.add_argument("--output-dir", type=Path, default=REPO_ROOT / "schemas")
    args = parser.parse_args(argv)

    for path in export_all(args.output_dir):
        print(f"Exported {path}")


if __name__ == "__main__":
    main()
