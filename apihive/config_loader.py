"""Config Loader - Loads workspace files for the command-line host.

A workspace is a YAML file holding transport settings, environments and
request drafts. String values may reference process environment variables
as ${ENV_VAR}; these are substituted before validation so that secrets do
not need to live in the file. {{variables}} are left alone for the engine.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from apihive.models import Environment, RequestDraft, Workspace


class ConfigError(Exception):
    """Raised when configuration loading fails."""


_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def load_workspace(workspace_path: Path) -> Workspace:
    """Load a workspace from YAML with ${ENV_VAR} substitution."""
    if not workspace_path.exists():
        raise ConfigError(f"Workspace file not found: {workspace_path}")

    try:
        with open(workspace_path, "r", encoding="utf-8") as f:
            raw_workspace = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in workspace file: {e}") from e

    if raw_workspace is None:
        raw_workspace = {}
    if not isinstance(raw_workspace, dict):
        raise ConfigError("Workspace file must be a YAML mapping")

    raw_workspace = _substitute_env_vars(raw_workspace)

    try:
        return Workspace.model_validate(raw_workspace)
    except ValidationError as e:
        raise ConfigError(f"Invalid workspace structure in {workspace_path}: {e}") from e


def get_environment(workspace: Workspace, name: str) -> Environment:
    """Look up an environment by name (or id)."""
    for environment in workspace.environments:
        if environment.name == name or environment.id == name:
            return environment
    available = ", ".join(e.name for e in workspace.environments) or "(none)"
    raise ConfigError(f"Environment '{name}' not found in workspace. Available: {available}")


def get_request(workspace: Workspace, name: str) -> RequestDraft:
    """Look up a request draft by name (or id)."""
    for draft in workspace.requests:
        if draft.name == name or draft.id == name:
            return draft
    available = ", ".join(r.name for r in workspace.requests) or "(none)"
    raise ConfigError(f"Request '{name}' not found in workspace. Available: {available}")


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return _ENV_VAR_PATTERN.sub(replacer, s)
