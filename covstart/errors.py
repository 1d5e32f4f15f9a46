"""Exception types raised across component boundaries."""

from __future__ import annotations


class CovstartError(Exception):
    """Base class for covstart errors."""


class SolutionLoadError(CovstartError):
    """A solution file could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot load solution {path}: {reason}")
        self.path = path
        self.reason = reason


class MalformedProjectError(CovstartError):
    """A node that claims to be a native project could not be inspected."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Malformed native project {name}: {reason}")
        self.name = name
        self.reason = reason
