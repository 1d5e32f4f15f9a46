"""Join build contexts with project configuration entries."""

from __future__ import annotations

from collections.abc import Iterable

from covstart.config import BuildContext
from covstart.model import ConfigurationEntry, FlatProject


def find_build_context(
    contexts: Iterable[BuildContext], unique_name: str
) -> BuildContext | None:
    """Return the first context built for ``unique_name``."""
    for context in contexts:
        if context.project_name == unique_name:
            return context
    return None


def find_configuration(
    configurations: Iterable[ConfigurationEntry], configuration_name: str, platform_name: str
) -> ConfigurationEntry | None:
    for configuration in configurations:
        if (
            configuration.configuration_name == configuration_name
            and configuration.platform_name == platform_name
        ):
            return configuration
    return None


def match_configuration(
    contexts: Iterable[BuildContext], project: FlatProject
) -> ConfigurationEntry | None:
    """Find the configuration ``project`` builds with under the active solution configuration.

    Returns None when the project has no context, is excluded from the build,
    or has no entry for the context's configuration/platform pair.
    """
    context = find_build_context(contexts, project.unique_name)
    if context is None:
        return None
    if not context.should_build:
        return None

    return find_configuration(
        project.configurations, context.configuration_name, context.platform_name
    )
