"""Core data types and configuration for startup-project resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ProjectKind(str, Enum):
    SOLUTION_FOLDER = "SolutionFolder"
    NATIVE = "VCProject"
    OTHER = "Other"


class SelectionKind(str, Enum):
    STARTUP_PROJECTS = "startup"
    SELECTED_PROJECT = "selected"


@dataclass
class BuildContext:
    """One row of the active solution configuration's build map."""
    project_name: str
    configuration_name: str
    platform_name: str
    should_build: bool = True


@dataclass
class DebugSettings:
    """Unevaluated debugger settings of one configuration."""
    working_directory: str = ""
    command: str = ""
    command_arguments: str = ""


@dataclass
class CppProject:
    """A native project that builds under the active configuration."""
    module_path: str
    path: str
    source_paths: set[str] = field(default_factory=set)


@dataclass
class ResolvedStartupConfig:
    project_name: str = ""
    project_path: str = ""
    working_dir: str = ""
    command: str = ""
    arguments: str = ""
    environment_variables: list[tuple[str, str]] = field(default_factory=list)
    solution_configuration_name: str = ""
    cpp_projects: list[CppProject] = field(default_factory=list)
    is_optimized_build_enabled: bool = False

    @property
    def is_empty(self) -> bool:
        """True when no startup project could be resolved."""
        return not self.project_name and not self.cpp_projects


@dataclass
class ResolveOptions:
    solution_path: str = ""
    configuration: str | None = None
    kind: SelectionKind = SelectionKind.STARTUP_PROJECTS
    startup_names: list[str] = field(default_factory=list)
    selected_names: list[str] = field(default_factory=list)
    output_path: str | None = None
    verbose: bool = False
    quiet: bool = False
