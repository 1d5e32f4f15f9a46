"""Project model backed by a Visual Studio solution on disk."""

from __future__ import annotations

import logging
import os

import networkx as nx

from covstart.config import BuildContext, DebugSettings
from covstart.model import (
    ConfigurationEntry,
    NativeProjectNode,
    OtherProjectNode,
    ProjectNode,
    SolutionFolderNode,
)
from covstart.msbuild.macros import MacroEvaluator, apply_property_layer, default_properties
from covstart.msbuild.project import VcxProjectInfo, parse_vcxproj
from covstart.msbuild.solution import (
    NATIVE_PROJECT_EXTENSIONS,
    SolutionFile,
    SolutionProject,
    parse_solution,
)

logger = logging.getLogger(__name__)


class VcxConfiguration:
    """One (configuration, platform) of a .vcxproj with its evaluated properties."""

    def __init__(self, configuration_name: str, platform_name: str, evaluator: MacroEvaluator) -> None:
        self.configuration_name = configuration_name
        self.platform_name = platform_name
        self.evaluator = evaluator

    @property
    def primary_output(self) -> str:
        return self.evaluator.evaluate("$(TargetPath)")

    @property
    def debug_settings(self) -> DebugSettings:
        return DebugSettings(
            working_directory=self.evaluator.lookup("LocalDebuggerWorkingDirectory") or "",
            command=self.evaluator.lookup("LocalDebuggerCommand") or "",
            command_arguments=self.evaluator.lookup("LocalDebuggerCommandArguments") or "",
        )

    def evaluate(self, text: str) -> str:
        return self.evaluator.evaluate(text)

    def __repr__(self) -> str:
        return f"VcxConfiguration({self.configuration_name}|{self.platform_name})"


class VcxProject:
    """A .vcxproj referenced by a solution, read on first access."""

    def __init__(self, unique_name: str, path: str, solution_path: str) -> None:
        self.unique_name = unique_name
        self.path = path
        self.solution_path = solution_path
        self._info: VcxProjectInfo | None = None

    @property
    def info(self) -> VcxProjectInfo:
        if self._info is None:
            self._info = parse_vcxproj(self.path)
        return self._info

    @property
    def files(self) -> list[str]:
        return self.info.files

    @property
    def configurations(self) -> list[ConfigurationEntry]:
        info = self.info
        configurations = []
        for configuration, platform in info.configurations:
            configuration_type = info.properties_for(configuration, platform).get(
                "ConfigurationType", "Application"
            )
            properties = default_properties(
                self.path, self.solution_path, configuration, platform, configuration_type
            )
            properties["ProjectName"] = info.project_name
            for layer in info.property_layers(configuration, platform):
                apply_property_layer(properties, layer)
            configurations.append(
                VcxConfiguration(configuration, platform, MacroEvaluator(properties))
            )
        return configurations


class SolutionHost:
    """Builds the resolver inputs from a parsed .sln file."""

    def __init__(self, solution: SolutionFile) -> None:
        self.solution = solution
        self.solution_dir = os.path.dirname(os.path.abspath(solution.path))
        self._by_guid = {p.project_guid: p for p in solution.projects}

    @classmethod
    def load(cls, sln_path: str) -> SolutionHost:
        return cls(parse_solution(sln_path))

    @property
    def solution_configurations(self) -> list[str]:
        return list(self.solution.solution_configurations)

    @property
    def active_configuration(self) -> str:
        """The first solution configuration, as Visual Studio opens it."""
        configurations = self.solution.solution_configurations
        return configurations[0] if configurations else ""

    @staticmethod
    def is_native(project: SolutionProject) -> bool:
        return project.path.lower().endswith(NATIVE_PROJECT_EXTENSIONS)

    def _nesting_graph(self) -> nx.DiGraph:
        """parent -> child edges from the NestedProjects section."""
        graph = nx.DiGraph()
        graph.add_nodes_from(p.project_guid for p in self.solution.projects)

        for child, parent in self.solution.nested_projects:
            if child not in self._by_guid or parent not in self._by_guid:
                logger.warning(f"Nesting {child} -> {parent} references an unknown project")
                continue
            if graph.in_degree(child) > 0:
                logger.warning(f"Project {child} is nested more than once, keeping first parent")
                continue
            if child == parent or nx.has_path(graph, child, parent):
                logger.warning(f"Nesting {child} under {parent} would create a cycle, ignoring it")
                continue
            graph.add_edge(parent, child)
        return graph

    def _make_node(self, guid: str, graph: nx.DiGraph, order: dict[str, int]) -> ProjectNode:
        project = self._by_guid[guid]
        if project.is_solution_folder:
            children = sorted(graph.successors(guid), key=order.__getitem__)
            return SolutionFolderNode(
                name=project.name,
                children=[self._make_node(c, graph, order) for c in children],
            )
        if self.is_native(project):
            return NativeProjectNode(
                name=project.name,
                project=VcxProject(
                    unique_name=project.path,
                    path=os.path.normpath(os.path.join(self.solution_dir, project.path)),
                    solution_path=os.path.abspath(self.solution.path),
                ),
            )
        return OtherProjectNode(name=project.name, type_guid=project.type_guid)

    def project_tree(self) -> list[ProjectNode]:
        """Root nodes of the solution in file order."""
        graph = self._nesting_graph()
        order = {p.project_guid: i for i, p in enumerate(self.solution.projects)}
        roots = [p.project_guid for p in self.solution.projects if graph.in_degree(p.project_guid) == 0]
        return [self._make_node(guid, graph, order) for guid in roots]

    def build_contexts(self, solution_configuration: str) -> list[BuildContext]:
        """Build map rows of ``solution_configuration``; empty when it is unknown."""
        contexts = []
        for row in self.solution.project_configurations:
            if row.solution_configuration != solution_configuration:
                continue
            project = self._by_guid.get(row.project_guid)
            if project is None or project.is_solution_folder:
                continue
            contexts.append(BuildContext(
                project_name=project.path,
                configuration_name=row.configuration_name,
                platform_name=row.platform_name,
                should_build=row.should_build,
            ))
        return contexts

    def default_startup_names(self) -> set[str] | None:
        """The first native project, Visual Studio's pick without a user options file."""
        for project in self.solution.projects:
            if not project.is_solution_folder and self.is_native(project):
                return {project.path}
        return None
