# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Evaluator settings loading and merging.

Settings control how the evaluator retrieves real dependency outputs. They
are layered, with later layers winning:

    1. **Built-in defaults** (DEFAULT_SETTINGS below)
    2. **Settings file** (.tgconfig.yaml)
       - The nearest one found walking upward from the document's directory
       - Optional; defaults apply when none is found
    3. **Overrides** (CLI flags)
       - Keys set to None are ignored

Merge Behavior:
    - **Dicts**: Recursively merged (keys from overlay override base)
    - **Lists**: Completely replaced
    - **Scalars**: Overwritten

Example .tgconfig.yaml:
    ```yaml
    output_source: http
    state_url: "https://state.example.com/{name}.tfstate"
    output_timeout: 30
    ```

Error Handling:
    ConfigError is raised for YAML parse errors, empty files, a top level
    that is not a mapping, unknown keys and values of the wrong type.

"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from tgconfig.exceptions import ConfigError
from tgconfig.logging import get_global_logger

SETTINGS_FILENAME = ".tgconfig.yaml"

DEFAULT_SETTINGS: dict[str, Any] = {
    "output_source": "mock",
    "terraform_command": None,
    "terraform_binary": "terraform",
    "output_timeout": 300,
    "state_url": None,
    "state_token_env": "TGCONFIG_STATE_TOKEN",
}

# Expected type per key; None is accepted for keys whose default is None
_SETTING_TYPES: dict[str, tuple[type, ...]] = {
    "output_source": (str,),
    "terraform_command": (str,),
    "terraform_binary": (str,),
    "output_timeout": (int, float),
    "state_url": (str,),
    "state_token_env": (str,),
}


@dataclass(frozen=True)
class EvaluatorSettings:
    """Effective evaluator settings.

    Attributes:
        output_source: Name of the registered output source to use.
        terraform_command: Command being run, checked against each
            dependency's mock_outputs_allowed_terraform_commands.
        terraform_binary: Executable used by the terraform output source.
        output_timeout: Seconds before a real output retrieval is abandoned.
        state_url: URL template for the http output source. Supports
            {name} and {config_path} placeholders.
        state_token_env: Environment variable holding a bearer token for
            the http output source.
        settings_path: The settings file that was loaded, if any.
    """

    output_source: str = "mock"
    terraform_command: str | None = None
    terraform_binary: str = "terraform"
    output_timeout: float = 300
    state_url: str | None = None
    state_token_env: str = "TGCONFIG_STATE_TOKEN"
    settings_path: Path | None = None


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> Any:
    """Loads a YAML file and returns the parsed Python object.

    Raises:
        ConfigError: When the file cannot be read, is not valid YAML, or is
            empty.
    """
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as err:
        raise ConfigError(f"cannot read settings file: {p}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    return data


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep-merges two dicts with "overlay wins" semantics.

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            # Replace lists and scalars entirely
            result[k] = v
    return result


# -------------------------------
# Settings discovery
# -------------------------------


def _find_settings_file(start_dir: Path) -> Path | None:
    """Walks upward from start_dir looking for a .tgconfig.yaml file."""
    for parent in [start_dir] + list(start_dir.parents):
        candidate = parent / SETTINGS_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _check_settings(data: dict[str, Any], source: str) -> None:
    for key, value in data.items():
        if key not in _SETTING_TYPES:
            known = ", ".join(sorted(_SETTING_TYPES))
            raise ConfigError(f"{source}: unknown setting {key!r}. Known: {known}")
        if value is None and DEFAULT_SETTINGS[key] is None:
            continue
        expected = _SETTING_TYPES[key]
        if isinstance(value, bool) or not isinstance(value, expected):
            names = " or ".join(t.__name__ for t in expected)
            raise ConfigError(
                f"{source}: setting {key!r} must be {names}, got {type(value).__name__}"
            )
    timeout = data.get("output_timeout")
    if timeout is not None and timeout <= 0:
        raise ConfigError(f"{source}: setting 'output_timeout' must be positive")


# -------------------------------
# Public API
# -------------------------------


def load_settings(
    start_dir: Path, overrides: dict[str, Any] | None = None
) -> EvaluatorSettings:
    """Loads and merges the effective evaluator settings.

    Args:
        start_dir: Directory to start the upward search for .tgconfig.yaml
            (normally the directory of the document being evaluated).
        overrides: Settings taking precedence over the file. Entries whose
            value is None are ignored.

    Returns:
        The merged settings.

    Raises:
        ConfigError: On YAML parse errors, empty files, invalid structure,
            unknown keys or wrongly typed values.

    """
    logger = get_global_logger()

    merged = dict(DEFAULT_SETTINGS)
    settings_path = _find_settings_file(start_dir.resolve())

    if settings_path is not None:
        logger.verbose("SETTINGS", f"Loading: {settings_path}")
        data = _load_yaml_file(settings_path)
        if not isinstance(data, dict):
            raise ConfigError(
                f"top-level YAML must be a mapping (dict): {settings_path}"
            )
        _check_settings(data, str(settings_path))
        merged = _deep_merge_dicts(merged, data)
    else:
        logger.debug("SETTINGS", f"No {SETTINGS_FILENAME} found; using defaults")

    if overrides:
        explicit = {k: v for k, v in overrides.items() if v is not None}
        _check_settings(explicit, "overrides")
        if explicit:
            logger.verbose("SETTINGS", f"Applying overrides: {', '.join(explicit)}")
        merged = _deep_merge_dicts(merged, explicit)

    logger.debug("SETTINGS", f"Effective settings: {merged}")
    return EvaluatorSettings(settings_path=settings_path, **merged)
