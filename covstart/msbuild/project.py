"""Parse .vcxproj files (XML with MSBuild schema) and their .vcxproj.user companions."""

from __future__ import annotations

import logging
import ntpath
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from covstart.errors import MalformedProjectError

logger = logging.getLogger(__name__)

ConfigKey = tuple[str, str]  # (configuration, platform)

_CONDITION_RE = re.compile(
    r"'\$\(Configuration\)\|\$\(Platform\)'\s*==\s*'([^'|]*)\|([^']*)'",
    re.IGNORECASE,
)

_SOURCE_ITEMS = ("ClCompile", "ClInclude")


@dataclass
class VcxProjectInfo:
    """Parsed information from a .vcxproj file."""
    path: str
    project_name: str = ""
    configurations: list[ConfigKey] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    global_properties: dict[str, str] = field(default_factory=dict)
    configuration_properties: dict[ConfigKey, dict[str, str]] = field(default_factory=dict)
    user_global_properties: dict[str, str] = field(default_factory=dict)
    user_properties: dict[ConfigKey, dict[str, str]] = field(default_factory=dict)

    def property_layers(self, configuration: str, platform: str) -> list[dict[str, str]]:
        """Project then user properties for one configuration, in evaluation order."""
        key = (configuration, platform)
        return [
            self.global_properties,
            self.configuration_properties.get(key, {}),
            self.user_global_properties,
            self.user_properties.get(key, {}),
        ]

    def properties_for(self, configuration: str, platform: str) -> dict[str, str]:
        """Merged project then user properties for one configuration."""
        merged: dict[str, str] = {}
        for layer in self.property_layers(configuration, platform):
            merged.update(layer)
        return merged


def _namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag.split("}")[0] + "}"
    return ""


def _local_name(tag: str) -> str:
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def _condition_key(condition: str) -> ConfigKey | None:
    match = _CONDITION_RE.search(condition)
    if match is None:
        return None
    return match.group(1), match.group(2)


def _resolve_item_path(project_dir: str, include: str) -> str:
    if ntpath.splitdrive(include)[0]:
        return ntpath.normpath(include)
    relative = include.replace("\\", "/")
    return os.path.normpath(os.path.join(project_dir, relative))


def _read_property_groups(
    root: ET.Element, ns: str
) -> tuple[dict[str, str], dict[ConfigKey, dict[str, str]]]:
    """Collect unconditioned and per-configuration properties.

    Groups or properties with any other kind of condition are ignored.
    """
    global_properties: dict[str, str] = {}
    by_configuration: dict[ConfigKey, dict[str, str]] = {}

    for pg in root.iter(f"{ns}PropertyGroup"):
        group_condition = pg.get("Condition", "")
        group_key = _condition_key(group_condition) if group_condition else None
        if group_condition and group_key is None:
            continue

        for prop in pg:
            if not isinstance(prop.tag, str):
                continue
            key = group_key
            prop_condition = prop.get("Condition", "")
            if prop_condition:
                prop_key = _condition_key(prop_condition)
                if prop_key is None or (group_key is not None and prop_key != group_key):
                    continue
                key = prop_key

            value = (prop.text or "").strip()
            name = _local_name(prop.tag)
            if key is None:
                global_properties[name] = value
            else:
                by_configuration.setdefault(key, {})[name] = value

    return global_properties, by_configuration


def _parse_user_file(
    user_path: str,
) -> tuple[dict[str, str], dict[ConfigKey, dict[str, str]]]:
    try:
        root = ET.parse(user_path).getroot()
    except (ET.ParseError, OSError) as e:
        logger.warning(f"Ignoring unreadable user file {user_path}: {e}")
        return {}, {}

    return _read_property_groups(root, _namespace(root))


def parse_vcxproj(project_path: str) -> VcxProjectInfo:
    """Parse a .vcxproj file and its optional .vcxproj.user file.

    Raises MalformedProjectError when the project file is missing or not
    valid XML.
    """
    info = VcxProjectInfo(path=project_path)

    try:
        tree = ET.parse(project_path)
        root = tree.getroot()
    except (ET.ParseError, OSError) as e:
        raise MalformedProjectError(project_path, str(e)) from e

    ns = _namespace(root)
    project_dir = os.path.dirname(os.path.abspath(project_path))

    for item in root.iter(f"{ns}ProjectConfiguration"):
        configuration = item.findtext(f"{ns}Configuration", "").strip()
        platform = item.findtext(f"{ns}Platform", "").strip()
        if not configuration or not platform:
            configuration, platform = (item.get("Include", "").split("|") + [""])[:2]
        key = (configuration, platform)
        if configuration and key not in info.configurations:
            info.configurations.append(key)

    seen: set[str] = set()
    for item_name in _SOURCE_ITEMS:
        for item in root.iter(f"{ns}{item_name}"):
            include = item.get("Include", "")
            if not include:
                continue
            full_path = _resolve_item_path(project_dir, include)
            if full_path not in seen:
                seen.add(full_path)
                info.files.append(full_path)

    info.global_properties, info.configuration_properties = _read_property_groups(root, ns)

    user_path = project_path + ".user"
    if os.path.isfile(user_path):
        info.user_global_properties, info.user_properties = _parse_user_file(user_path)

    # Defaults: if no ProjectName, derive from file name
    info.project_name = (
        info.global_properties.get("ProjectName")
        or os.path.splitext(os.path.basename(project_path))[0]
    )

    return info
