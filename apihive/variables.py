"""Variable Resolver - Expands {{name}} placeholders.

Resolution never fails: a name missing from the variable map is replaced by
the empty string so that a template is always dispatchable, even against an
incomplete environment. Replacement is single-pass; substituted values are not
scanned again.
"""

from __future__ import annotations

import re
from typing import Iterable

from apihive.models import EnvironmentVariable

# {{ name }}: name is ASCII letters, digits, "_", "." or "-"; any Unicode whitespace may pad it
VARIABLE_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_.-]+)\s*\}\}")


def resolve(text: str, variables: dict[str, str]) -> str:
    """Replace every placeholder in text with its value from variables."""

    def replacer(match: re.Match) -> str:
        return variables.get(match.group(1), "")

    return VARIABLE_PATTERN.sub(replacer, text)


def find_variables(text: str) -> list[str]:
    """Placeholder names referenced by text, in order of first appearance."""
    seen: list[str] = []
    for match in VARIABLE_PATTERN.finditer(text):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def build_variable_map(variables: Iterable[EnvironmentVariable]) -> dict[str, str]:
    """Fold an environment's variables into a name -> current value map.

    Disabled variables and variables with a blank key are skipped. Keys are
    trimmed; when two variables share a trimmed key the later one wins.
    """
    result: dict[str, str] = {}
    for variable in variables:
        if not variable.enabled:
            continue
        key = variable.key.strip()
        if not key:
            continue
        result[key] = variable.current_value
    return result
