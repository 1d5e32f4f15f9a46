"""Parse .sln files (custom text format, not XML)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from covstart.errors import SolutionLoadError


@dataclass
class SolutionProject:
    """A project entry from a .sln file."""
    type_guid: str
    name: str
    path: str
    project_guid: str

    @property
    def is_solution_folder(self) -> bool:
        return self.type_guid == SOLUTION_FOLDER_GUID


@dataclass
class ProjectConfigurationRow:
    """What a project builds for one solution configuration."""
    project_guid: str
    solution_configuration: str
    configuration_name: str
    platform_name: str
    should_build: bool = False


@dataclass
class SolutionFile:
    path: str
    projects: list[SolutionProject] = field(default_factory=list)
    solution_configurations: list[str] = field(default_factory=list)
    project_configurations: list[ProjectConfigurationRow] = field(default_factory=list)
    nested_projects: list[tuple[str, str]] = field(default_factory=list)  # (child, parent)


# Project("{TYPE-GUID}") = "Name", "Path\To\Project.vcxproj", "{PROJECT-GUID}"
_PROJECT_RE = re.compile(
    r'^Project\(\"\{([^}]+)\}\"\)\s*=\s*\"([^\"]+)\"\s*,\s*\"([^\"]+)\"\s*,\s*\"\{([^}]+)\}\"',
    re.MULTILINE,
)

_SECTION_RE = re.compile(
    r"GlobalSection\((\w+)\)\s*=\s*\w+(.*?)EndGlobalSection",
    re.DOTALL,
)

# {GUID}.Debug|x64.ActiveCfg = Debug|x64
_PROJECT_CONFIG_RE = re.compile(
    r"^\s*\{([^}]+)\}\.(.+?)\.(ActiveCfg|Build\.0)\s*=\s*(.+?)\s*$",
    re.MULTILINE,
)

# {CHILD-GUID} = {PARENT-GUID}
_NESTED_RE = re.compile(
    r"^\s*\{([^}]+)\}\s*=\s*\{([^}]+)\}\s*$",
    re.MULTILINE,
)

# Project type GUID of solution folders
SOLUTION_FOLDER_GUID = "2150E333-8FDC-42A3-9474-1A3956D46DE8"

NATIVE_PROJECT_EXTENSIONS = (".vcxproj",)


def _split_config_platform(label: str) -> tuple[str, str]:
    configuration, _, platform = label.partition("|")
    return configuration.strip(), platform.strip()


def _parse_solution_configurations(body: str) -> list[str]:
    labels = []
    for line in body.splitlines():
        label, sep, _ = line.partition("=")
        label = label.strip()
        if sep and label and label not in labels:
            labels.append(label)
    return labels


def _parse_project_configurations(body: str) -> list[ProjectConfigurationRow]:
    rows: dict[tuple[str, str], ProjectConfigurationRow] = {}
    for match in _PROJECT_CONFIG_RE.finditer(body):
        project_guid = match.group(1).upper()
        solution_configuration = match.group(2).strip()
        configuration, platform = _split_config_platform(match.group(4))

        key = (project_guid, solution_configuration)
        row = rows.get(key)
        if row is None:
            row = ProjectConfigurationRow(
                project_guid=project_guid,
                solution_configuration=solution_configuration,
                configuration_name=configuration,
                platform_name=platform,
            )
            rows[key] = row

        if match.group(3) == "ActiveCfg":
            row.configuration_name = configuration
            row.platform_name = platform
        else:
            row.should_build = True
    return list(rows.values())


def parse_solution_text(content: str, sln_path: str = "") -> SolutionFile:
    """Parse the text of a .sln file."""
    solution = SolutionFile(path=sln_path)

    for match in _PROJECT_RE.finditer(content):
        solution.projects.append(SolutionProject(
            type_guid=match.group(1).upper(),
            name=match.group(2),
            # Normalise path separators
            path=match.group(3).replace("\\", "/"),
            project_guid=match.group(4).upper(),
        ))

    for match in _SECTION_RE.finditer(content):
        section, body = match.group(1), match.group(2)
        if section == "SolutionConfigurationPlatforms":
            solution.solution_configurations = _parse_solution_configurations(body)
        elif section == "ProjectConfigurationPlatforms":
            solution.project_configurations = _parse_project_configurations(body)
        elif section == "NestedProjects":
            solution.nested_projects = [
                (m.group(1).upper(), m.group(2).upper()) for m in _NESTED_RE.finditer(body)
            ]

    return solution


def parse_solution(sln_path: str) -> SolutionFile:
    """Parse a .sln file.

    Raises SolutionLoadError when the file cannot be read.
    """
    try:
        with open(sln_path, "r", encoding="utf-8-sig") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SolutionLoadError(sln_path, str(e)) from e

    return parse_solution_text(content, sln_path)
