#!/usr/bin/env python3
"""
Sandbox entrypoint for cargo-dokita.
Reads analysis parameters from stdin JSON, analyzes the project, outputs JSON to stdout.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from cargo_dokita.errors import DokitaError
from cargo_dokita.pipeline import run_analysis
from cargo_dokita.reporting import format_human

logging.basicConfig(level=logging.INFO, stream=sys.stderr)
logger = logging.getLogger(__name__)

VALID_FORMATS = {"json", "human"}


def main() -> None:
    try:
        input_data = json.load(sys.stdin)
    except json.JSONDecodeError as e:
        print(json.dumps({"error": f"Invalid JSON input: {e}"}))
        sys.exit(1)

    # Support "path" or "directory" for the project location
    project_path = input_data.get("path") or input_data.get("directory")
    if not project_path:
        print(
            json.dumps(
                {
                    "error": "Missing required input. Provide 'path' (local Cargo project directory)",
                    "examples": {"local": {"path": "."}},
                }
            )
        )
        sys.exit(1)

    output_format = input_data.get("format", "json")
    if output_format not in VALID_FORMATS:
        print(
            json.dumps(
                {
                    "error": f"Invalid format '{output_format}'",
                    "valid_formats": sorted(VALID_FORMATS),
                }
            )
        )
        sys.exit(1)

    try:
        report = asyncio.run(run_analysis(project_path))
    except DokitaError as e:
        print(json.dumps({"error": str(e)}))
        sys.exit(1)

    result = report.model_dump(mode="json")
    result["exit_code"] = report.exit_code
    if output_format == "human":
        result["text"] = format_human(report)
    print(json.dumps(result))


if __name__ == "__main__":
    main()
