"""MSBuild-style $(Property) expansion."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping

logger = logging.getLogger(__name__)

_MACRO_RE = re.compile(r"\$\(([A-Za-z_][\w.-]*)\)")
_MAX_DEPTH = 32

_TARGET_EXTENSIONS = {
    "application": ".exe",
    "dynamiclibrary": ".dll",
    "staticlibrary": ".lib",
    "utility": "",
    "makefile": "",
}


def default_properties(
    project_path: str,
    solution_path: str,
    configuration: str,
    platform: str,
    configuration_type: str = "Application",
) -> dict[str, str]:
    """Properties Visual Studio defines before reading the project."""
    project_dir = os.path.dirname(os.path.abspath(project_path))
    solution_dir = os.path.dirname(os.path.abspath(solution_path))
    if platform.lower() == "win32":
        out_dir = "$(SolutionDir)$(Configuration)\\"
    else:
        out_dir = "$(SolutionDir)$(Platform)\\$(Configuration)\\"

    return {
        "Configuration": configuration,
        "Platform": platform,
        "ProjectDir": project_dir + os.sep,
        "ProjectPath": os.path.abspath(project_path),
        "ProjectFileName": os.path.basename(project_path),
        "ProjectName": os.path.splitext(os.path.basename(project_path))[0],
        "SolutionDir": solution_dir + os.sep,
        "SolutionPath": os.path.abspath(solution_path),
        "SolutionName": os.path.splitext(os.path.basename(solution_path))[0],
        "OutDir": out_dir,
        "TargetName": "$(ProjectName)",
        "TargetExt": _TARGET_EXTENSIONS.get(configuration_type.lower(), ".exe"),
        "TargetPath": "$(OutDir)$(TargetName)$(TargetExt)",
        "LocalDebuggerCommand": "$(TargetPath)",
        "LocalDebuggerWorkingDirectory": "$(ProjectDir)",
        "LocalDebuggerCommandArguments": "",
        "LocalDebuggerEnvironment": "",
    }


def _environ_lookup(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is not None:
        return value
    for key, env_value in environ.items():
        if key.lower() == name.lower():
            return env_value
    return None


def apply_property_layer(
    properties: dict[str, str],
    layer: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
) -> None:
    """Set the properties of ``layer`` over ``properties`` in place.

    A value that refers to its own name, such as a
    ``LocalDebuggerEnvironment`` that appends ``$(LocalDebuggerEnvironment)``,
    takes in the value set by the layers below it, or by the process
    environment when no layer sets it.
    """
    environ = os.environ if environ is None else environ
    for name, value in layer.items():
        existing = next((key for key in properties if key.lower() == name.lower()), None)
        if existing is not None:
            previous = properties.pop(existing)
        else:
            previous = _environ_lookup(environ, name) or ""
        self_ref = re.compile(r"\$\(" + re.escape(name) + r"\)", re.IGNORECASE)
        properties[name] = self_ref.sub(lambda _: previous, value)


class MacroEvaluator:
    """Expands $(Name) references against a property table.

    Names are case-insensitive. Unknown names fall back to the process
    environment and otherwise expand to the empty string, as in MSBuild.
    Expansion stops at _MAX_DEPTH nested references.
    """

    def __init__(
        self, properties: Mapping[str, str], environ: Mapping[str, str] | None = None
    ) -> None:
        self.properties = {name.lower(): value for name, value in properties.items()}
        self.environ = os.environ if environ is None else environ

    def lookup(self, name: str) -> str | None:
        value = self.properties.get(name.lower())
        if value is not None:
            return value
        return _environ_lookup(self.environ, name)

    def evaluate(self, text: str) -> str:
        return self._expand(text or "", frozenset())

    def _expand(self, text: str, expanding: frozenset[str]) -> str:
        def replace(match: re.Match) -> str:
            name = match.group(1)
            key = name.lower()
            if key in expanding:
                logger.warning(f"Recursive property reference $({name})")
                return ""
            if len(expanding) >= _MAX_DEPTH:
                logger.warning(
                    f"Property $({name}) nested deeper than {_MAX_DEPTH} levels, not expanded"
                )
                return ""
            value = self.lookup(name)
            if value is None:
                return ""
            return self._expand(value, expanding | {key})

        return _MACRO_RE.sub(replace, text)
