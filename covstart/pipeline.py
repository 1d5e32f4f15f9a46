"""Startup configuration resolution: flatten, select, match, assemble."""

from __future__ import annotations

import logging
import time
from collections.abc import Collection, Sequence

from covstart.config import (
    BuildContext,
    CppProject,
    ResolvedStartupConfig,
    SelectionKind,
)
from covstart.model import ConfigurationEntry, FlatProject, ProjectNode
from covstart.phases.environment import parse_environment_block
from covstart.phases.flatten import flatten_projects
from covstart.phases.folders import compute_common_folders
from covstart.phases.matching import match_configuration
from covstart.phases.selection import select_startup_project

logger = logging.getLogger(__name__)

ENVIRONMENT_MACRO = "$(LocalDebuggerEnvironment)"

_PHASE_LABELS = {
    "flatten": "Collecting native projects",
    "select": "Selecting startup project",
    "match": "Matching active configuration",
    "evaluate": "Evaluating debug settings",
    "dependencies": "Computing source folders",
}


def _collect_cpp_projects(
    projects: Sequence[FlatProject], contexts: Sequence[BuildContext]
) -> list[CppProject]:
    cpp_projects = []
    for processed, project in enumerate(projects, start=1):
        configuration = match_configuration(contexts, project)
        if configuration is not None:
            cpp_projects.append(CppProject(
                module_path=configuration.primary_output,
                path=project.unique_name,
                source_paths=compute_common_folders(project.files),
            ))
        else:
            logger.debug(f"{project.unique_name} does not build under the active configuration")
        logger.debug(f"Processed project {processed} of {len(projects)}")
    return cpp_projects


def _build_settings(
    project: FlatProject,
    configuration: ConfigurationEntry,
    solution_configuration_name: str,
) -> ResolvedStartupConfig:
    debug_settings = configuration.debug_settings
    return ResolvedStartupConfig(
        project_name=project.unique_name,
        project_path=project.path,
        working_dir=configuration.evaluate(debug_settings.working_directory),
        command=configuration.evaluate(debug_settings.command),
        arguments=configuration.evaluate(debug_settings.command_arguments),
        environment_variables=parse_environment_block(
            configuration.evaluate(ENVIRONMENT_MACRO)
        ),
        solution_configuration_name=solution_configuration_name,
    )


def resolve_startup_config(
    roots: Sequence[ProjectNode],
    solution_configuration_name: str,
    contexts: Sequence[BuildContext],
    kind: SelectionKind,
    declared_startup_names: Collection[str] | None = None,
    selected_projects: Sequence[str] | None = None,
    progress_callback=None,
) -> ResolvedStartupConfig:
    """Resolve the launch settings and dependent projects of the startup project.

    Args:
        roots: Top-level nodes of the solution.
        solution_configuration_name: Display label of the active solution
            configuration, e.g. ``Debug|x64``.
        contexts: Build contexts of the active solution configuration.
        kind: Which selection policy picks the startup project.
        declared_startup_names: Startup project names declared by the solution.
        selected_projects: Explicitly selected project names.
        progress_callback: Optional callable(phase_name, label) invoked
            when each phase starts.

    Returns an empty ``ResolvedStartupConfig`` when no project can be
    resolved or the startup project does not build under the active
    configuration.
    """
    timings: dict[str, float] = {}

    def start(name: str) -> float:
        if progress_callback:
            progress_callback(name, _PHASE_LABELS.get(name, name))
        return time.monotonic()

    started = start("flatten")
    projects = flatten_projects(roots)
    timings["flatten"] = time.monotonic() - started
    logger.debug(f"Found {len(projects)} native projects")

    started = start("select")
    project = select_startup_project(
        kind, projects, declared_startup_names, selected_projects
    )
    timings["select"] = time.monotonic() - started
    if project is None:
        logger.info(f"No startup project found using {kind.value} selection")
        return ResolvedStartupConfig()

    started = start("match")
    configuration = match_configuration(contexts, project)
    timings["match"] = time.monotonic() - started
    if configuration is None:
        logger.info(
            f"{project.unique_name} does not build under {solution_configuration_name}"
        )
        return ResolvedStartupConfig()

    started = start("evaluate")
    settings = _build_settings(project, configuration, solution_configuration_name)
    timings["evaluate"] = time.monotonic() - started

    started = start("dependencies")
    settings.cpp_projects = _collect_cpp_projects(projects, contexts)
    timings["dependencies"] = time.monotonic() - started

    for name, seconds in timings.items():
        logger.debug(f"Phase {name}: {seconds * 1000:.1f}ms")
    return settings
