"""Startup project selection."""

from __future__ import annotations

from collections.abc import Collection, Sequence

from covstart.config import SelectionKind
from covstart.model import FlatProject


def select_startup_project(
    kind: SelectionKind,
    candidates: Sequence[FlatProject],
    declared_startup_names: Collection[str] | None = None,
    selected_projects: Sequence[str] | None = None,
) -> FlatProject | None:
    """Pick the project to analyse.

    STARTUP_PROJECTS takes the first candidate named in
    ``declared_startup_names``. SELECTED_PROJECT needs exactly one entry in
    ``selected_projects`` and takes the candidate with that name.
    """
    if kind == SelectionKind.STARTUP_PROJECTS:
        if declared_startup_names is None:
            return None
        startup_names = set(declared_startup_names)
        return next((p for p in candidates if p.unique_name in startup_names), None)

    if kind == SelectionKind.SELECTED_PROJECT:
        if selected_projects is None or len(selected_projects) != 1:
            return None
        project_name = selected_projects[0]
        return next((p for p in candidates if p.unique_name == project_name), None)

    return None
