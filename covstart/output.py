"""JSON serialisation of resolved startup configurations."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from covstart import __version__
from covstart.config import ResolvedStartupConfig


def to_dict(result: ResolvedStartupConfig) -> dict:
    """Convert a result into JSON-ready data with deterministic ordering."""
    return {
        "version": "1.0",
        "metadata": {
            "covstart_version": __version__,
            "resolved_at": datetime.now(timezone.utc).isoformat(),
        },
        "project_name": result.project_name,
        "project_path": result.project_path,
        "solution_configuration_name": result.solution_configuration_name,
        "working_dir": result.working_dir,
        "command": result.command,
        "arguments": result.arguments,
        "environment_variables": [[k, v] for k, v in result.environment_variables],
        "cpp_projects": [
            {
                "module_path": p.module_path,
                "path": p.path,
                "source_paths": sorted(p.source_paths),
            }
            for p in result.cpp_projects
        ],
        "is_optimized_build_enabled": result.is_optimized_build_enabled,
    }


def write_output(result: ResolvedStartupConfig, output_path: str) -> None:
    """Write the result as indented JSON, creating parent directories."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(to_dict(result), indent=2))
