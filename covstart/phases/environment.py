"""Debugger environment block parsing."""

from __future__ import annotations


def parse_environment_block(text: str | None) -> list[tuple[str, str]]:
    """Split a ``KEY=VALUE`` block into ordered pairs.

    Lines without ``=`` and lines ending with ``=`` (empty value) are dropped.
    Duplicate keys are kept in order of appearance.
    """
    if not text:
        return []

    variables = []
    for line in text.split("\n"):
        equal_index = line.find("=")
        if equal_index == -1 or equal_index == len(line) - 1:
            continue
        variables.append((line[:equal_index], line[equal_index + 1:]))
    return variables
