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

"""Evaluation context for configuration expressions.

The context is the variable scope expressions are evaluated against. It is
built once per decode pass and never modified afterwards. Today it holds at
most one variable, ``dependency``, which maps each dependency name to an
object with the dependency's ``outputs``. New variables (path helpers and
the like) belong here rather than in the resolver or decoder.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from tgconfig.values import Record

DEPENDENCY_VARIABLE = "dependency"


@dataclass(frozen=True)
class EvalContext:
    """Read-only variable scope.

    Attributes:
        variables: Mapping of top-level variable name to dynamic value.
    """

    variables: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    def lookup(self, name: str) -> Any:
        """Return a variable's value; raises KeyError if it is not defined."""
        return self.variables[name]


def build_context(dependency_value: Record | None = None) -> EvalContext:
    """Build the evaluation context for a decode pass.

    Args:
        dependency_value: Encoded dependency outputs from the resolver, or
            None when there are no dependencies (yet).

    Returns:
        A context exposing ``dependency`` if a value was given, otherwise
        an empty context.

    """
    variables: dict[str, Any] = {}
    if dependency_value is not None:
        variables[DEPENDENCY_VARIABLE] = dependency_value
    return EvalContext(variables)
