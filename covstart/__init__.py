"""covstart - Resolve the startup project of a native solution for coverage runs."""

from covstart.config import ResolvedStartupConfig, SelectionKind
from covstart.pipeline import resolve_startup_config

__version__ = "0.1.0"
__all__ = ["resolve_startup_config", "ResolvedStartupConfig", "SelectionKind"]
