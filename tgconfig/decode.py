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

"""Structural decoding of configuration documents.

Decoding maps the parser's body onto fixed targets and evaluates every
attribute expression against an EvalContext. Two entry points exist:

- decode_dependencies: the first pass. Only ``dependency`` blocks are
  looked at; expressions anywhere else are never evaluated, so they may
  reference outputs that do not exist yet.
- decode_full: the second pass over the whole document.

Recognized top-level content:

    terraform { source = "..." }           at most one, no labels
    terraform_binary = "..."               string
    inputs = { ... }                       any value
    dependency "<name>" { ... }            one label, names unique
    include "<name>" { ... }               one label, body kept undecoded

Everything else is an error, as is any unknown attribute inside a known
block. Decode targets are frozen pydantic models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, SerializeAsAny, ValidationError

from tgconfig.context import EvalContext
from tgconfig.document import RawDocument
from tgconfig.exceptions import DecodeError
from tgconfig.expressions import evaluate_value
from tgconfig.logging import get_global_logger
from tgconfig.normalize import iter_top_level_blocks
from tgconfig.values import Record

TERRAFORM_BLOCK = "terraform"
DEPENDENCY_BLOCK = "dependency"
INCLUDE_BLOCK = "include"

_BLOCK_TYPES = {TERRAFORM_BLOCK, DEPENDENCY_BLOCK, INCLUDE_BLOCK}
_TOP_LEVEL_ATTRIBUTES = {"terraform_binary", "inputs"}
_TERRAFORM_ATTRIBUTES = {"source"}
_DEPENDENCY_ATTRIBUTES = {
    "config_path",
    "skip_outputs",
    "mock_outputs",
    "mock_outputs_allowed_terraform_commands",
    "mock_outputs_merge_with_state",
}


# -------------------------------
# Decode targets
# -------------------------------


class TerraformConfig(BaseModel):
    """The ``terraform`` block."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str | None = None


class Dependency(BaseModel):
    """A ``dependency "<name>"`` block.

    Attributes:
        name: Block label, unique within a document.
        config_path: Path of the configuration this one depends on.
        skip_outputs: Never consult real outputs when true.
        mock_outputs: Outputs to use when real outputs are not available.
        mock_outputs_allowed_terraform_commands: Commands for which falling
            back to mock outputs is permitted. None permits all.
        mock_outputs_merge_with_state: Merge mock outputs underneath real
            outputs instead of using real outputs alone.
        rendered_outputs: The outputs exposed to expressions. Computed by
            the dependency resolver; cannot be set in a document.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    config_path: str
    skip_outputs: bool | None = None
    mock_outputs: SerializeAsAny[Record] | None = None
    mock_outputs_allowed_terraform_commands: list[str] | None = None
    mock_outputs_merge_with_state: bool | None = None
    rendered_outputs: SerializeAsAny[Record] | None = None


class IncludeBlock(BaseModel):
    """An ``include "<name>"`` block; the body is carried undecoded."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    body: dict[str, Any] = {}


class ConfigFile(BaseModel):
    """The decode target for a whole document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    terraform: TerraformConfig | None = None
    terraform_binary: str | None = None
    inputs: Any = None
    dependencies: list[Dependency] = []
    includes: list[IncludeBlock] = []


# -------------------------------
# Helpers
# -------------------------------


def _validate(model: type[BaseModel], data: dict[str, Any], where: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as err:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in err.errors()
        )
        raise DecodeError(f"{where}: Incorrect attribute value type; {details}") from err


def _block_types(document: RawDocument) -> dict[str, list[bool]]:
    """Map each top-level block type to the labeled flag of each occurrence."""
    found: dict[str, list[bool]] = {}
    for header in iter_top_level_blocks(document.content.decode("utf-8")):
        found.setdefault(header.block_type, []).append(header.labeled)
    return found


def _blocks(body: dict[str, Any], block_type: str, filename: str) -> list[Any]:
    raw = body.get(block_type, [])
    if not isinstance(raw, list):
        raise DecodeError(
            f"{filename}: Unsupported argument; An argument named {block_type!r} is "
            f"not expected here. Did you mean to define a block of type {block_type!r}?"
        )
    return raw


def _require_labels(
    headers: dict[str, list[bool]], block_type: str, filename: str
) -> None:
    if not all(headers.get(block_type, [])):
        raise DecodeError(
            f"{filename}: Missing name for {block_type}; All {block_type} blocks "
            f"must have 1 labels (name)."
        )


def _labeled_block(block: Any, block_type: str, filename: str) -> tuple[str, dict[str, Any]]:
    if (
        not isinstance(block, dict)
        or len(block) != 1
        or not isinstance(next(iter(block.values())), dict)
    ):
        raise DecodeError(
            f"{filename}: Missing name for {block_type}; All {block_type} blocks "
            f"must have 1 labels (name)."
        )
    label, body = next(iter(block.items()))
    return str(label), body


def _decode_attributes(
    body: dict[str, Any],
    allowed: set[str],
    context: EvalContext,
    where: str,
) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, raw in body.items():
        if key not in allowed:
            raise DecodeError(
                f"{where}: Unsupported argument; An argument named {key!r} is not "
                f"expected here."
            )
        values[key] = evaluate_value(raw, context, f"{where}.{key}")
    return values


def _decode_dependency(
    block: Any, context: EvalContext, filename: str
) -> Dependency:
    name, body = _labeled_block(block, DEPENDENCY_BLOCK, filename)
    where = f"{filename}: dependency.{name}"
    values = _decode_attributes(body, _DEPENDENCY_ATTRIBUTES, context, where)
    if "config_path" not in values:
        raise DecodeError(
            f"{where}: Missing required argument; The argument 'config_path' is "
            f"required, but no definition was found."
        )
    return _validate(Dependency, {"name": name, **values}, where)


def _decode_dependency_list(
    document: RawDocument, context: EvalContext
) -> list[Dependency]:
    filename = document.filename
    dependencies: list[Dependency] = []
    seen: set[str] = set()
    for block in _blocks(document.body, DEPENDENCY_BLOCK, filename):
        dependency = _decode_dependency(block, context, filename)
        if dependency.name in seen:
            raise DecodeError(
                f"{filename}: Duplicate dependency block; A dependency block named "
                f"{dependency.name!r} was already declared."
            )
        seen.add(dependency.name)
        dependencies.append(dependency)
    return dependencies


# -------------------------------
# Public API
# -------------------------------


def decode_dependencies(document: RawDocument, context: EvalContext) -> list[Dependency]:
    """Decode only the dependency blocks of a document.

    Every other top-level entry is ignored and its expressions are not
    evaluated.

    Args:
        document: The (normalized) parsed document.
        context: Variables available to dependency attribute expressions.

    Returns:
        The dependencies in document order, without rendered outputs.

    Raises:
        DecodeError: On malformed dependency blocks, unknown attributes,
            duplicate names, or expressions that fail to evaluate.

    """
    _require_labels(_block_types(document), DEPENDENCY_BLOCK, document.filename)
    dependencies = _decode_dependency_list(document, context)
    get_global_logger().debug(
        "DECODE",
        f"Decoded {len(dependencies)} dependency block(s): "
        f"{[dependency.name for dependency in dependencies]}",
    )
    return dependencies


def decode_full(document: RawDocument, context: EvalContext) -> ConfigFile | None:
    """Decode a whole document against a context.

    Args:
        document: The (normalized) parsed document.
        context: Variables available to all expressions.

    Returns:
        The decoded configuration, or None if the document has no
        top-level content at all.

    Raises:
        DecodeError: On unknown arguments or block types, malformed blocks,
            expressions that fail to evaluate, and values of the wrong
            type.

    """
    logger = get_global_logger()
    filename = document.filename
    body = document.body

    if not body:
        logger.verbose("DECODE", f"{filename} has no top-level content")
        return None

    headers = _block_types(document)
    for key in body:
        if key in _BLOCK_TYPES or key in _TOP_LEVEL_ATTRIBUTES:
            continue
        if key in headers:
            raise DecodeError(
                f"{filename}: Unsupported block type; Blocks of type {key!r} are "
                f"not expected here."
            )
        raise DecodeError(
            f"{filename}: Unsupported argument; An argument named {key!r} is not "
            f"expected here."
        )
    for attribute in _TOP_LEVEL_ATTRIBUTES:
        if attribute in headers:
            raise DecodeError(
                f"{filename}: Unsupported block type; Blocks of type {attribute!r} "
                f"are not expected here. Did you mean to define an argument?"
            )

    terraform: TerraformConfig | None = None
    terraform_blocks = _blocks(body, TERRAFORM_BLOCK, filename)
    if len(terraform_blocks) > 1:
        raise DecodeError(
            f"{filename}: Duplicate terraform block; Only one terraform block is "
            f"allowed."
        )
    if terraform_blocks:
        block = terraform_blocks[0]
        if not isinstance(block, dict):
            raise DecodeError(f"{filename}: Invalid terraform block")
        where = f"{filename}: terraform"
        values = _decode_attributes(block, _TERRAFORM_ATTRIBUTES, context, where)
        terraform = _validate(TerraformConfig, values, where)

    _require_labels(headers, DEPENDENCY_BLOCK, filename)
    dependencies = _decode_dependency_list(document, context)

    _require_labels(headers, INCLUDE_BLOCK, filename)
    includes: list[IncludeBlock] = []
    for block in _blocks(body, INCLUDE_BLOCK, filename):
        name, include_body = _labeled_block(block, INCLUDE_BLOCK, filename)
        if any(include.name == name for include in includes):
            raise DecodeError(
                f"{filename}: Duplicate include block; An include block named "
                f"{name!r} was already declared."
            )
        includes.append(IncludeBlock(name=name, body=include_body))

    top_level = {
        key: evaluate_value(body[key], context, f"{filename}: {key}")
        for key in _TOP_LEVEL_ATTRIBUTES
        if key in body
    }

    config_file = _validate(
        ConfigFile,
        {
            "terraform": terraform,
            "dependencies": dependencies,
            "includes": includes,
            **top_level,
        },
        filename,
    )
    logger.verbose(
        "DECODE",
        f"Decoded {filename}: {len(dependencies)} dependency block(s), "
        f"{len(includes)} include block(s)",
    )
    return config_file
