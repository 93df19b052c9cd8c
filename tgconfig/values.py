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

"""Dynamic values and their bridge to plain Python data.

Expressions in a configuration document evaluate to dynamic values:

- None, bool, int/float (number), str
- list (ordered list / tuple), frozenset (set)
- dict[str, V] (map with a single element type)
- Record (object whose fields each carry their own type)

Records are the only aggregate that allows a different type per field,
which is what dependency output sets need: one dependency can expose a
string, a number, and a nested object side by side. A Record is a frozen
pydantic model whose type is synthesized from the data itself with
pydantic.create_model, so every field's declared type matches its runtime
value. Keys are kept as field aliases, which lets any string be a key.

This module is the only place where dynamic values cross into untyped
Python containers, and the only place JSON is used as an interchange
format.

Functions
---------
synthetic_record_type : function
    Derive a Record type from the runtime types of a mapping.
make_record : function
    Build a Record instance from a mapping.
value_to_generic_map : function
    Convert a Record (or mapping) to a plain dict via a JSON round-trip.
type_descriptor : function
    Describe a value's type in the self-describing type JSON encoding.
value_from_json : function
    Decode a JSON value of a given type descriptor into a dynamic value.

Examples
--------
    >>> rec = make_record({"a": 1, "b": "x"})
    >>> rec["b"]
    'x'
    >>> value_to_generic_map(rec)
    {'a': 1, 'b': 'x'}
    >>> type_descriptor(rec)
    ['object', {'a': 'number', 'b': 'string'}]
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model
import pydantic_core

from tgconfig.exceptions import ConversionError

__all__ = [
    "Record",
    "synthetic_record_type",
    "make_record",
    "value_to_generic_map",
    "type_descriptor",
    "value_from_json",
]


def _attribute_names(record_type: type[BaseModel]) -> dict[str, str]:
    return {info.alias: name for name, info in record_type.model_fields.items()}


class Record(BaseModel):
    """Base class of all synthesized record types.

    Fields are stored under generated attribute names and addressed by
    their original keys, so records behave like read-only mappings:
    ``record["name"]``, ``"name" in record``, ``record.keys()``.
    """

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        extra="forbid",
        serialize_by_alias=True,
    )

    def keys(self) -> list[str]:
        return list(_attribute_names(type(self)))

    def items(self) -> list[tuple[str, Any]]:
        return [
            (key, getattr(self, name))
            for key, name in _attribute_names(type(self)).items()
        ]

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def __getitem__(self, key: str) -> Any:
        try:
            name = _attribute_names(type(self))[key]
        except KeyError:
            raise KeyError(key) from None
        return getattr(self, name)

    def __contains__(self, key: object) -> bool:
        return key in _attribute_names(type(self))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record):
            return dict(self.items()) == dict(other.items())
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self.keys()))

    def __repr__(self) -> str:
        return f"Record({dict(self.items())!r})"


# -------------------------------
# Record synthesis
# -------------------------------


def _field_annotation(value: Any) -> Any:
    """Return the declared type matching a value's runtime type."""
    if value is None:
        return None
    if isinstance(value, Record):
        return type(value)
    if isinstance(value, (bool, int, float, str, list, frozenset, dict)):
        return type(value)
    return Any


def _prepare(value: Any) -> Any:
    # Tuples are ordered lists in the value model
    if isinstance(value, tuple):
        return list(value)
    return value


def synthetic_record_type(
    values: Mapping[str, Any], name: str = "Record"
) -> type[Record]:
    """Derive a record type whose field types match each entry's runtime type.

    A map requires every element to share one type, so heterogeneous data
    (e.g. one dependency exposing a string output and another exposing a
    nested object) can only be represented as a record. The record type is
    computed from the data rather than from a schema.

    Args:
        values: Mapping of field key to dynamic value.
        name: Class name for the generated type (shows up in reprs and
            validation errors).

    Returns:
        A new Record subclass with one field per key.

    """
    fields: dict[str, Any] = {}
    for index, (key, value) in enumerate(values.items()):
        fields[f"field_{index}"] = (
            _field_annotation(_prepare(value)),
            Field(alias=str(key)),
        )
    return create_model(name, __base__=Record, **fields)


def make_record(values: Mapping[str, Any], name: str = "Record") -> Record:
    """Build a Record holding the given values.

    Raises:
        ConversionError: If the values cannot be stored in the synthesized
            type (should not happen for well-formed input).

    """
    prepared = {str(key): _prepare(value) for key, value in values.items()}
    record_type = synthetic_record_type(prepared, name)
    try:
        return record_type.model_validate(prepared)
    except ValidationError as err:
        raise ConversionError(f"cannot build record from values: {err}") from err


# -------------------------------
# Generic conversion
# -------------------------------


def _describe(value: Any) -> str:
    if isinstance(value, Record):
        return "object"
    return type(value).__name__


def value_to_generic_map(value: Any) -> dict[str, Any]:
    """Convert a Record (or string-keyed mapping) to a plain dict.

    The value is serialized to JSON and parsed back, which turns every
    nested Record into a dict, sets into lists, and leaves scalars exact
    (integers keep full precision, floats round-trip, strings and booleans
    are preserved).

    Args:
        value: The dynamic value to convert.

    Returns:
        A new dict with only JSON types inside.

    Raises:
        ConversionError: If the value is not an object, or contains
            something that cannot be represented as JSON.

    """
    if not isinstance(value, (Record, Mapping)):
        raise ConversionError(f"expected an object value, got {_describe(value)}")
    try:
        encoded = pydantic_core.to_json(value, by_alias=True)
    except pydantic_core.PydanticSerializationError as err:
        raise ConversionError(f"value is not representable as JSON: {err}") from err
    return json.loads(encoded)


# -------------------------------
# Type descriptors
# -------------------------------


def type_descriptor(value: Any) -> Any:
    """Describe the type of a dynamic value as type JSON.

    Primitive types are strings ("string", "number", "bool"); collection
    and structural types are two-element lists such as ["list", "string"]
    or ["object", {"a": "number"}]. A null value has type "dynamic".

    Raises:
        ConversionError: For sets with mixed element types and values
            that are not dynamic values at all.

    """
    if value is None:
        return "dynamic"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Record):
        return ["object", {key: type_descriptor(item) for key, item in value.items()}]
    if isinstance(value, Mapping):
        element_types = [type_descriptor(item) for item in value.values()]
        if not element_types:
            return ["map", "dynamic"]
        if all(t == element_types[0] for t in element_types):
            return ["map", element_types[0]]
        return [
            "object",
            {str(key): t for key, t in zip(value.keys(), element_types)},
        ]
    if isinstance(value, (list, tuple)):
        return ["tuple", [type_descriptor(item) for item in value]]
    if isinstance(value, (set, frozenset)):
        element_types = [type_descriptor(item) for item in value]
        if not element_types:
            return ["set", "dynamic"]
        if any(t != element_types[0] for t in element_types):
            raise ConversionError("set elements must all have the same type")
        return ["set", element_types[0]]
    raise ConversionError(f"unsupported value of type {type(value).__name__}")


def _from_untyped_json(raw: Any) -> Any:
    if isinstance(raw, dict):
        return make_record({key: _from_untyped_json(item) for key, item in raw.items()})
    if isinstance(raw, list):
        return [_from_untyped_json(item) for item in raw]
    return raw


def _mismatch(expected: Any, raw: Any) -> ConversionError:
    return ConversionError(
        f"value {raw!r} does not match type {json.dumps(expected)}"
    )


def _number_from_json(raw: Any) -> int | float:
    if isinstance(raw, bool):
        raise _mismatch("number", raw)
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        # Numbers may be encoded as strings to preserve precision
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            return float(raw)
        except ValueError:
            pass
    raise _mismatch("number", raw)


def value_from_json(raw: Any, type_desc: Any) -> Any:
    """Decode a JSON value according to a type descriptor.

    Objects become Records, maps become dicts, lists and tuples become
    lists and sets become frozensets. JSON null is accepted for any type.

    Args:
        raw: The value as produced by json.loads.
        type_desc: Type JSON as produced by type_descriptor().

    Returns:
        The dynamic value.

    Raises:
        ConversionError: If the value does not match the type, or the type
            descriptor is malformed.

    """
    if raw is None:
        return None
    if type_desc == "dynamic":
        return _from_untyped_json(raw)
    if type_desc == "string":
        if not isinstance(raw, str):
            raise _mismatch(type_desc, raw)
        return raw
    if type_desc == "number":
        return _number_from_json(raw)
    if type_desc == "bool":
        if not isinstance(raw, bool):
            raise _mismatch(type_desc, raw)
        return raw

    if not isinstance(type_desc, list) or len(type_desc) != 2:
        raise ConversionError(f"malformed type descriptor: {type_desc!r}")
    kind, argument = type_desc

    if kind in ("list", "set"):
        if not isinstance(raw, list):
            raise _mismatch(type_desc, raw)
        items = [value_from_json(item, argument) for item in raw]
        if kind == "list":
            return items
        try:
            return frozenset(items)
        except TypeError as err:
            raise ConversionError(f"set elements must be hashable: {err}") from err
    if kind == "map":
        if not isinstance(raw, dict):
            raise _mismatch(type_desc, raw)
        return {key: value_from_json(item, argument) for key, item in raw.items()}
    if kind == "object":
        if not isinstance(raw, dict) or not isinstance(argument, dict):
            raise _mismatch(type_desc, raw)
        missing = sorted(set(argument) - set(raw))
        unexpected = sorted(set(raw) - set(argument))
        if missing or unexpected:
            raise ConversionError(
                f"object does not match its type: missing {missing}, unexpected {unexpected}"
            )
        return make_record(
            {key: value_from_json(item, argument[key]) for key, item in raw.items()}
        )
    if kind == "tuple":
        if not isinstance(raw, list) or not isinstance(argument, list):
            raise _mismatch(type_desc, raw)
        if len(raw) != len(argument):
            raise _mismatch(type_desc, raw)
        return [value_from_json(item, t) for item, t in zip(raw, argument)]
    raise ConversionError(f"malformed type descriptor: {type_desc!r}")
