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

"""Dependency output resolution (the first evaluation pass).

Expressions in the main document may reference ``dependency.<name>.outputs``,
so the outputs of every dependency have to be known before the document
itself is decoded. This module decodes only the dependency blocks, renders
their outputs, and encodes the result as one value for the evaluation
context:

    dependency = {
      db  = { outputs = { endpoint = "10.0.0.5", port = 5432 } }
      vpc = {}                      # no mock_outputs: no outputs attribute
    }

Rendering rules for a dependency with mock_outputs:

1. Unless skip_outputs is set, real outputs are requested from the output
   source. If there are any, they are used; with
   mock_outputs_merge_with_state the mocks are merged underneath them.
2. Otherwise the mock outputs are used, provided the current terraform
   command (if known) is listed in mock_outputs_allowed_terraform_commands
   (if set).

Mock outputs are encoded into the output wire shape and decoded back, so
they take exactly the same path as real outputs. A dependency without
mock_outputs gets no rendered outputs and the source is never consulted.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from tgconfig.context import EvalContext
from tgconfig.decode import Dependency, decode_dependencies
from tgconfig.document import RawDocument
from tgconfig.exceptions import DependencyOutputUnavailableError
from tgconfig.logging import get_global_logger
from tgconfig.outputs.base import OutputSource, OutputValue, outputs_to_record
from tgconfig.values import (
    Record,
    make_record,
    type_descriptor,
    value_to_generic_map,
)


def encode_mock_outputs(mock_outputs: Record) -> dict[str, OutputValue]:
    """Encode mock outputs into the output wire shape."""
    generic = value_to_generic_map(mock_outputs)
    return {
        key: OutputValue(sensitive=False, type=type_descriptor(value), value=generic[key])
        for key, value in mock_outputs.items()
    }


def merge_records(base: Record, overlay: Record) -> Record:
    """Deep-merge two records; values from overlay win.

    Nested records are merged recursively. Any other value in overlay
    replaces the value in base.
    """
    merged: dict[str, Any] = dict(base.items())
    for key, value in overlay.items():
        existing = merged.get(key)
        if isinstance(existing, Record) and isinstance(value, Record):
            merged[key] = merge_records(existing, value)
        else:
            merged[key] = value
    return make_record(merged)


def render_outputs(
    dependency: Dependency,
    source: OutputSource | None = None,
    terraform_command: str | None = None,
) -> Dependency:
    """Compute the rendered outputs of one dependency.

    Args:
        dependency: The decoded dependency.
        source: Where real outputs come from. None behaves like a source
            that never has outputs.
        terraform_command: The command being run, checked against
            mock_outputs_allowed_terraform_commands when falling back to
            mock outputs. None skips the check.

    Returns:
        A copy of the dependency with rendered_outputs set, or the
        dependency itself if it has no mock_outputs.

    Raises:
        DependencyOutputUnavailableError: If real outputs are not available
            and mock outputs are not allowed for terraform_command, or the
            source failed.
        ConversionError: If outputs cannot be converted.

    """
    logger = get_global_logger()

    if dependency.mock_outputs is None:
        logger.debug("DEPENDENCY", f"{dependency.name}: no mock_outputs; not rendered")
        return dependency

    real: dict[str, OutputValue] | None = None
    if dependency.skip_outputs:
        logger.verbose("DEPENDENCY", f"{dependency.name}: skip_outputs set")
    elif source is not None:
        real = source.get_outputs(dependency) or None

    if real is not None:
        rendered = outputs_to_record(real)
        if dependency.mock_outputs_merge_with_state:
            logger.verbose(
                "DEPENDENCY", f"{dependency.name}: merging mock outputs with state"
            )
            mocks = outputs_to_record(encode_mock_outputs(dependency.mock_outputs))
            rendered = merge_records(mocks, rendered)
        logger.verbose("DEPENDENCY", f"{dependency.name}: using real outputs")
        return dependency.model_copy(update={"rendered_outputs": rendered})

    allowed = dependency.mock_outputs_allowed_terraform_commands
    if (
        allowed is not None
        and terraform_command is not None
        and terraform_command not in allowed
    ):
        raise DependencyOutputUnavailableError(
            f"dependency {dependency.name!r} ({dependency.config_path}) has no outputs "
            f"and mock outputs are not allowed for command {terraform_command!r} "
            f"(allowed: {', '.join(allowed) or 'none'})"
        )

    logger.verbose("DEPENDENCY", f"{dependency.name}: using mock outputs")
    rendered = outputs_to_record(encode_mock_outputs(dependency.mock_outputs))
    return dependency.model_copy(update={"rendered_outputs": rendered})


def dependency_blocks_to_value(dependencies: Sequence[Dependency]) -> Record:
    """Encode rendered dependencies as one record keyed by dependency name.

    Each entry is a record with a single ``outputs`` field, or an empty
    record if the dependency has no rendered outputs.
    """
    return make_record(
        {
            dependency.name: make_record(
                {"outputs": dependency.rendered_outputs}
                if dependency.rendered_outputs is not None
                else {}
            )
            for dependency in dependencies
        }
    )


def resolve_dependencies(
    document: RawDocument,
    context: EvalContext,
    source: OutputSource | None = None,
    terraform_command: str | None = None,
) -> tuple[Record, list[Dependency]]:
    """Run the dependency pass over a document.

    Args:
        document: The normalized document.
        context: Context for dependency attribute expressions.
        source: Output source for real outputs.
        terraform_command: Command checked against allowed mock commands.

    Returns:
        A tuple (value, dependencies) where value is the encoded record for
        the ``dependency`` variable and dependencies are the rendered
        dependency blocks in document order.

    Raises:
        DecodeError: If the dependency blocks cannot be decoded.
        ConversionError: If outputs cannot be converted.
        DependencyOutputUnavailableError: If outputs are required but
            unavailable.

    """
    logger = get_global_logger()
    dependencies = [
        render_outputs(dependency, source, terraform_command)
        for dependency in decode_dependencies(document, context)
    ]
    rendered = sum(1 for d in dependencies if d.rendered_outputs is not None)
    logger.verbose(
        "DEPENDENCY",
        f"Resolved {len(dependencies)} dependency block(s), {rendered} with outputs",
    )
    return dependency_blocks_to_value(dependencies), dependencies
