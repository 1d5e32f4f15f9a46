"""Flatten the solution hierarchy into native leaf projects."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from covstart.errors import MalformedProjectError
from covstart.model import (
    FlatProject,
    NativeProjectNode,
    ProjectNode,
    SolutionFolderNode,
)

logger = logging.getLogger(__name__)


def _inspect_native(node: NativeProjectNode) -> FlatProject | None:
    """Read a native node into a FlatProject, or None if it cannot be read."""
    project = node.project
    try:
        return FlatProject(
            unique_name=project.unique_name,
            path=project.path,
            files=list(project.files),
            configurations=list(project.configurations),
        )
    except MalformedProjectError as e:
        logger.warning(f"Skipping project {node.name}: {e.reason}")
        return None


def _flatten_node(
    node: ProjectNode, active_folders: set[int], projects: list[FlatProject]
) -> None:
    if isinstance(node, SolutionFolderNode):
        if id(node) in active_folders:
            logger.warning(f"Solution folder {node.name} contains itself, not expanding it again")
            return
        active_folders.add(id(node))
        for child in node.children:
            _flatten_node(child, active_folders, projects)
        active_folders.discard(id(node))
    elif isinstance(node, NativeProjectNode):
        flat = _inspect_native(node)
        if flat is not None:
            projects.append(flat)
    else:
        logger.debug(f"Not a native project: {node.name}")


def flatten_projects(roots: Sequence[ProjectNode]) -> list[FlatProject]:
    """Return the native leaf projects of ``roots`` in depth-first order."""
    projects: list[FlatProject] = []
    for node in roots:
        _flatten_node(node, set(), projects)
    return projects
