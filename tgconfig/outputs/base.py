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

"""Output source protocol, wire shape and registry.

An output source retrieves the real outputs of a dependency. The result
uses the wire shape of ``terraform output -json``: an object keyed by
output name, each entry carrying the value and its type.

    {
      "endpoint": {"sensitive": false, "type": "string", "value": "10.0.0.5"},
      "ports": {"sensitive": false, "type": ["list", "number"], "value": [80]}
    }

Mock outputs are encoded into the same shape and decoded through the same
path as real ones, so both produce identical dynamic values.

Design:
    - Sources are Protocol classes (structural subtyping, not inheritance)
    - Registration happens at module import time (sources self-register)
    - get_source() instantiates a fresh source per evaluation

Example:
    Implementing a custom source:
        ```python
        from tgconfig.outputs.base import register_source

        class StaticSource:
            def __init__(self, settings, base_dir):
                self.base_dir = base_dir

            def get_outputs(self, dependency):
                return None

        register_source("static", StaticSource)
        ```
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from tgconfig.exceptions import ConfigError, ConversionError
from tgconfig.values import Record, make_record, value_from_json

if TYPE_CHECKING:
    from tgconfig.decode import Dependency
    from tgconfig.settings import EvaluatorSettings

# -------------------------------
# Wire shape
# -------------------------------


class OutputValue(BaseModel):
    """One entry of an output set."""

    model_config = ConfigDict(frozen=True)

    sensitive: bool = False
    type: Any = "dynamic"
    value: Any = None


def parse_outputs_json(data: str | bytes | Mapping[str, Any]) -> dict[str, OutputValue]:
    """Parse an output set in the ``terraform output -json`` shape.

    Args:
        data: JSON text, or an already-decoded mapping.

    Returns:
        Output values keyed by output name.

    Raises:
        ConversionError: If the data is not valid JSON or not an object of
            output entries.

    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as err:
            raise ConversionError(f"outputs are not valid JSON: {err}") from err
    if not isinstance(data, Mapping):
        raise ConversionError(
            f"outputs must be a JSON object, got {type(data).__name__}"
        )
    try:
        return {name: OutputValue.model_validate(entry) for name, entry in data.items()}
    except ValidationError as err:
        raise ConversionError(f"malformed output entry: {err}") from err


def outputs_to_record(outputs: Mapping[str, OutputValue]) -> Record:
    """Decode an output set into a record of dynamic values."""
    return make_record(
        {name: value_from_json(entry.value, entry.type) for name, entry in outputs.items()}
    )


# -------------------------------
# Source protocol
# -------------------------------


class OutputSource(Protocol):
    """Protocol for dependency output sources.

    Sources are constructed with the evaluator settings and the directory
    of the document being evaluated (relative config paths are resolved
    against it).
    """

    def __init__(self, settings: EvaluatorSettings, base_dir: Path) -> None: ...

    def get_outputs(self, dependency: Dependency) -> dict[str, OutputValue] | None:
        """Retrieve the real outputs of a dependency.

        Returns:
            The outputs, or None if the dependency has no outputs available
            (not applied yet, empty state, ...). An empty dict is treated
            the same as None.

        Raises:
            DependencyOutputUnavailableError: If retrieval failed in a way
                that should abort evaluation.

        """
        ...


# -------------------------------
# Source registry
# -------------------------------

_SOURCE_REGISTRY: dict[str, type[OutputSource]] = {}


def register_source(name: str, source_class: type[OutputSource]) -> None:
    """Register an output source by name.

    Registering the same name twice overwrites the previous registration
    (allows monkey-patching for tests).
    """
    _SOURCE_REGISTRY[name] = source_class


def available_sources() -> list[str]:
    """Return the names of all registered sources."""
    return sorted(_SOURCE_REGISTRY)


def get_source(name: str, settings: EvaluatorSettings, base_dir: Path) -> OutputSource:
    """Get a new output source instance by name.

    Raises:
        ConfigError: If the source name is not registered. The message
            lists the available sources.

    """
    if name not in _SOURCE_REGISTRY:
        available = ", ".join(available_sources())
        raise ConfigError(
            f"Unknown output source: {name!r}. Available: {available or '(none)'}"
        )
    return _SOURCE_REGISTRY[name](settings, base_dir)
