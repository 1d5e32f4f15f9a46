"""Project model consumed by the resolver.

A host (the msbuild loader, an IDE bridge, a test fake) hands the resolver a
sequence of ``ProjectNode`` values. Native projects are reached through the
``NativeProject`` protocol and only inspected when the tree is flattened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable

from covstart.config import DebugSettings, ProjectKind


@runtime_checkable
class ConfigurationEntry(Protocol):
    """A project-local (configuration, platform) record."""

    configuration_name: str
    platform_name: str

    @property
    def primary_output(self) -> str:
        """Return the path of the module this configuration builds."""
        ...

    def evaluate(self, text: str) -> str:
        """Expand the macros in ``text`` for this configuration."""
        ...

    @property
    def debug_settings(self) -> DebugSettings:
        """Return the raw (unevaluated) debugger settings."""
        ...


@runtime_checkable
class NativeProject(Protocol):
    """Read access to a native project.

    Accessing any attribute may raise ``MalformedProjectError`` when the
    underlying project cannot be read.
    """

    @property
    def unique_name(self) -> str:
        ...

    @property
    def path(self) -> str:
        ...

    @property
    def files(self) -> list[str]:
        """Absolute paths of the project's source files."""
        ...

    @property
    def configurations(self) -> list[ConfigurationEntry]:
        ...


@dataclass
class SolutionFolderNode:
    name: str
    children: list[ProjectNode] = field(default_factory=list)
    kind: ProjectKind = field(default=ProjectKind.SOLUTION_FOLDER, init=False)


@dataclass
class NativeProjectNode:
    name: str
    project: NativeProject
    kind: ProjectKind = field(default=ProjectKind.NATIVE, init=False)


@dataclass
class OtherProjectNode:
    """A project the resolver cannot instrument (C#, shared items, ...)."""
    name: str
    type_guid: str = ""
    kind: ProjectKind = field(default=ProjectKind.OTHER, init=False)


ProjectNode = Union[SolutionFolderNode, NativeProjectNode, OtherProjectNode]


@dataclass
class FlatProject:
    """A leaf native project extracted from the tree."""
    unique_name: str
    path: str
    files: list[str] = field(default_factory=list)
    configurations: list[ConfigurationEntry] = field(default_factory=list)
