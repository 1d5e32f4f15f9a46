"""Common source folder computation."""

from __future__ import annotations

import ntpath
import posixpath
from collections.abc import Iterable


def _path_module(path: str):
    """Pick Windows or POSIX path semantics from the path's own separators."""
    if "\\" in path or ntpath.splitdrive(path)[0]:
        return ntpath
    return posixpath


def _is_under(folder: str, parent: str, pathmod) -> bool:
    if folder == parent:
        return True
    prefix = parent if parent.endswith(pathmod.sep) else parent + pathmod.sep
    return folder.startswith(prefix)


def _sort_key(folder: str, pathmod) -> str:
    return pathmod.normcase(folder).replace("\\", "/").rstrip("/") + "/"


def compute_common_folders(paths: Iterable[str]) -> set[str]:
    """Return the smallest set of directories covering every file in ``paths``.

    Each file contributes its directory; a directory lying under another
    contributed directory is absorbed by it. No returned folder is an ancestor
    of another.
    """
    folders: dict[str, object] = {}
    for path in paths:
        pathmod = _path_module(path)
        folder = pathmod.dirname(pathmod.normpath(path))
        folders[folder] = pathmod

    common: set[str] = set()
    current: str | None = None
    # Sorting on the comparison key puts every folder right after its ancestors.
    for folder in sorted(folders, key=lambda f: _sort_key(f, folders[f])):
        pathmod = folders[folder]
        if current is not None and _is_under(
            pathmod.normcase(folder), pathmod.normcase(current), pathmod
        ):
            continue
        current = folder
        common.add(folder)
    return common