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

r"""Evaluation of attribute values against an evaluation context.

The HCL parser returns literal values as Python objects and leaves every
expression as a "${...}" string. This module resolves those strings:

- A string that is exactly one "${expr}" evaluates to the value of expr,
  keeping its type (a number stays a number, an object stays a Record).
- Any other string is a template; each interpolation is evaluated and
  converted to a string. "$${" is an escaped literal "${". Backslash
  escapes (\n, \t, \", \\, \uNNNN, \UNNNNNNNN) in literal text are
  decoded; heredoc bodies arrive with their backslashes already doubled
  (see tgconfig.document), so they come out verbatim.
- Dicts (object constructors) become Records, lists stay lists.

Supported expression syntax:

- literals: numbers, quoted strings, true, false, null
- variables and traversals: dependency.db.outputs.endpoint, a["key"],
  a[0], a.0
- unary minus and logical not
- parentheses, tuple constructors [a, b] and object constructors
  {key = value}

Operators, conditionals, splats, for expressions and function calls are
rejected with DecodeError. Nothing in the context exposes functions.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal
import re
import string
from typing import Any

from tgconfig.context import EvalContext
from tgconfig.exceptions import DecodeError
from tgconfig.values import Record, make_record

_TOKEN = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_-]*)
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<op>==|!=|<=|>=|&&|\|\||=>|\.\.\.|[-+*/%<>!?:=.,\[\](){}])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str


def _tokenize(source: str, where: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(source):
        match = _TOKEN.match(source, pos)
        if match is None:
            raise DecodeError(
                f"{where}: Invalid expression; unexpected character {source[pos]!r}"
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append(_Token(kind, match.group()))
        pos = match.end()
    return tokens


def _read_escape(text: str, pos: int, where: str) -> tuple[str, int]:
    """Decode the escape sequence at text[pos] (a backslash).

    Returns the decoded character and the offset just past the sequence.
    """
    selector = text[pos + 1 : pos + 2]
    if selector in _ESCAPES:
        return _ESCAPES[selector], pos + 2
    if selector in ("u", "U"):
        width = 4 if selector == "u" else 8
        digits = text[pos + 2 : pos + 2 + width]
        if len(digits) == width and all(c in string.hexdigits for c in digits):
            return chr(int(digits, 16)), pos + 2 + width
        raise DecodeError(
            f"{where}: Invalid escape sequence; \\{selector} must be followed by "
            f"{width} hexadecimal digits"
        )
    raise DecodeError(
        f"{where}: Invalid escape sequence; The symbol {selector!r} is not a valid "
        f"escape sequence selector."
    )


def _unescape(body: str, where: str) -> str:
    chars: list[str] = []
    i = 0
    while i < len(body):
        if body[i] == "\\":
            char, i = _read_escape(body, i, where)
            chars.append(char)
        else:
            chars.append(body[i])
            i += 1
    return "".join(chars)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Record):
        return "object"
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, (list, tuple)):
        return "tuple"
    if isinstance(value, (set, frozenset)):
        return "set"
    return type(value).__name__


# -------------------------------
# Expressions
# -------------------------------


class _ExpressionEvaluator:
    """Recursive-descent evaluator for one expression."""

    def __init__(self, source: str, context: EvalContext, where: str) -> None:
        self._source = source
        self._context = context
        self._where = where
        self._tokens = _tokenize(source, where)
        self._pos = 0

    def _error(self, summary: str) -> DecodeError:
        return DecodeError(f"{self._where}: {summary} (in expression {self._source!r})")

    def _peek(self) -> _Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise self._error("Invalid expression; expression ends unexpectedly")
        self._pos += 1
        return token

    def _accept(self, text: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text == text:
            self._pos += 1
            return True
        return False

    def _expect(self, text: str) -> None:
        if not self._accept(text):
            token = self._peek()
            found = "end of expression" if token is None else repr(token.text)
            raise self._error(f"Invalid expression; expected {text!r}, found {found}")

    def evaluate(self) -> Any:
        value = self._unary()
        token = self._peek()
        if token is not None:
            raise self._error(
                f"Unsupported expression; operator or token {token.text!r} is not supported"
            )
        return value

    def _unary(self) -> Any:
        if self._accept("-"):
            operand = self._unary()
            if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                raise self._error(
                    f"Invalid operand; unary minus requires a number, got {_type_name(operand)}"
                )
            return -operand
        if self._accept("!"):
            operand = self._unary()
            if not isinstance(operand, bool):
                raise self._error(
                    f"Invalid operand; logical not requires a bool, got {_type_name(operand)}"
                )
            return not operand
        return self._postfix()

    def _postfix(self) -> Any:
        value = self._primary()
        while True:
            if self._accept("."):
                token = self._next()
                if token.kind == "ident":
                    value = self._get_attr(value, token.text)
                elif token.kind == "number" and token.text.isdigit():
                    value = self._index(value, int(token.text))
                elif token.text == "*":
                    raise self._error("Unsupported expression; splat expressions are not supported")
                else:
                    raise self._error(f"Invalid attribute name {token.text!r}")
            elif self._accept("["):
                token = self._peek()
                if token is not None and token.text == "*":
                    raise self._error("Unsupported expression; splat expressions are not supported")
                key = self._unary()
                self._expect("]")
                value = self._index(value, key)
            else:
                return value

    def _primary(self) -> Any:
        token = self._next()
        if token.kind == "number":
            if re.fullmatch(r"\d+", token.text):
                return int(token.text)
            return float(token.text)
        if token.kind == "string":
            return evaluate_template(token.text[1:-1], self._context, self._where)
        if token.kind == "ident":
            return self._identifier(token.text)
        if token.kind == "op":
            if token.text == "(":
                value = self._unary()
                self._expect(")")
                return value
            if token.text == "[":
                return self._tuple()
            if token.text == "{":
                return self._object()
        raise self._error(f"Invalid expression; unexpected {token.text!r}")

    def _identifier(self, name: str) -> Any:
        if name == "true":
            return True
        if name == "false":
            return False
        if name == "null":
            return None
        if name == "for":
            raise self._error("Unsupported expression; for expressions are not supported")
        token = self._peek()
        if token is not None and token.kind == "op" and token.text == "(":
            raise self._error(
                f"Call to unknown function; There is no function named {name!r}."
            )
        try:
            return self._context.lookup(name)
        except KeyError:
            raise self._error(
                f"Unknown variable; There is no variable named {name!r}."
            ) from None

    def _tuple(self) -> list[Any]:
        items: list[Any] = []
        while not self._accept("]"):
            items.append(self._unary())
            if not self._accept(","):
                self._expect("]")
                break
        return items

    def _object(self) -> Record:
        values: dict[str, Any] = {}
        while not self._accept("}"):
            token = self._next()
            if token.kind == "ident":
                key = token.text
            elif token.kind == "string":
                key = _unescape(token.text[1:-1], self._where)
            elif token.kind == "op" and token.text == "(":
                key = self._unary()
                self._expect(")")
                if not isinstance(key, str):
                    raise self._error(
                        f"Incorrect key type; object keys must be strings, got {_type_name(key)}"
                    )
            else:
                raise self._error(f"Invalid object key {token.text!r}")
            if not (self._accept("=") or self._accept(":")):
                raise self._error("Invalid object element; expected '=' or ':'")
            values[key] = self._unary()
            self._accept(",")
        return make_record(values)

    def _get_attr(self, value: Any, name: str) -> Any:
        if value is None:
            raise self._error(
                f"Attempt to get attribute from null value; cannot access attribute {name!r}"
            )
        if isinstance(value, (Record, Mapping)):
            if name not in value:
                raise self._error(
                    f"Unsupported attribute; This object does not have an attribute named {name!r}."
                )
            return value[name]
        raise self._error(
            f"Unsupported attribute; Can't access attributes on a primitive-typed "
            f"value ({_type_name(value)})."
        )

    def _index(self, value: Any, key: Any) -> Any:
        if value is None:
            raise self._error("Attempt to index null value")
        if isinstance(value, (Record, Mapping)):
            if not isinstance(key, str):
                raise self._error(
                    f"Invalid index; object keys must be strings, got {_type_name(key)}"
                )
            return self._get_attr(value, key)
        if isinstance(value, (list, tuple)):
            if isinstance(key, str) and key.isdigit():
                key = int(key)
            if isinstance(key, bool) or not isinstance(key, int):
                raise self._error(
                    f"Invalid index; list index must be a number, got {_type_name(key)}"
                )
            if not 0 <= key < len(value):
                raise self._error(
                    f"Invalid index; The given key does not identify an element in this "
                    f"collection value (index {key}, length {len(value)})."
                )
            return value[key]
        if isinstance(value, (set, frozenset)):
            raise self._error(
                "Invalid index; Elements of a set are identified only by their value "
                "and don't have any separate index or key to select with."
            )
        raise self._error(
            f"Invalid index; This value does not have any indices ({_type_name(value)})."
        )


# -------------------------------
# Templates
# -------------------------------


def _find_interpolation_end(template: str, start: int, where: str) -> int:
    """Return the offset of the closing brace of an interpolation body."""
    depth = 1
    i = start
    n = len(template)
    while i < n:
        char = template[i]
        if char == '"':
            i += 1
            while i < n and template[i] != '"':
                i += 2 if template[i] == "\\" else 1
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    raise DecodeError(f"{where}: Invalid template; unclosed interpolation in {template!r}")


def _split_template(template: str, where: str) -> Iterator[tuple[str, str]]:
    """Yield ("literal", text) and ("expr", source) parts of a template.

    Escape sequences in literal text are decoded.
    """
    literal: list[str] = []
    i = 0
    n = len(template)
    while i < n:
        if template.startswith("$${", i):
            literal.append("${")
            i += 3
        elif template.startswith("%%{", i):
            literal.append("%{")
            i += 3
        elif template.startswith("${", i):
            end = _find_interpolation_end(template, i + 2, where)
            if literal:
                yield "literal", "".join(literal)
                literal = []
            source = template[i + 2 : end].strip()
            # Strip markers: ${~ expr ~}
            source = source.removeprefix("~").removesuffix("~").strip()
            yield "expr", source
            i = end + 1
        elif template.startswith("%{", i):
            raise DecodeError(
                f"{where}: Unsupported template; template directives are not supported"
            )
        elif template[i] == "\\" and i + 1 < n:
            char, i = _read_escape(template, i, where)
            literal.append(char)
        else:
            literal.append(template[i])
            i += 1
    if literal:
        yield "literal", "".join(literal)


def _to_template_string(value: Any, where: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        # Plain decimal notation, never exponent form
        return format(Decimal(repr(value)), "f")
    if value is None:
        raise DecodeError(
            f"{where}: Invalid template interpolation value; The expression result is null."
        )
    raise DecodeError(
        f"{where}: Invalid template interpolation value; Cannot include the given "
        f"value in a string template: string required, got {_type_name(value)}."
    )


def evaluate_template(template: str, context: EvalContext, where: str = "") -> Any:
    """Evaluate a string that may contain ${...} interpolations.

    Args:
        template: The string as produced by the HCL parser.
        context: Variables available to the expressions.
        where: Location prefix for error messages (e.g. "inputs.vpc_id").

    Returns:
        The value of the sole interpolation if the template consists of
        exactly one, otherwise the rendered string.

    Raises:
        DecodeError: On syntax errors, unsupported syntax, unknown
            variables or attributes, and values that cannot be rendered.

    """
    parts = list(_split_template(template, where))
    if len(parts) == 1 and parts[0][0] == "expr":
        return _ExpressionEvaluator(parts[0][1], context, where).evaluate()

    rendered: list[str] = []
    for kind, text in parts:
        if kind == "literal":
            rendered.append(text)
        else:
            value = _ExpressionEvaluator(text, context, where).evaluate()
            rendered.append(_to_template_string(value, where))
    return "".join(rendered)


def evaluate_value(raw: Any, context: EvalContext, where: str = "") -> Any:
    """Evaluate a parsed attribute value into a dynamic value.

    Strings are evaluated as templates, dicts (object constructors) become
    Records and lists are evaluated element by element. Other values
    (numbers, booleans, None) are returned unchanged.
    """
    if isinstance(raw, str):
        return evaluate_template(raw, context, where)
    if isinstance(raw, dict):
        return make_record(
            {
                key: evaluate_value(item, context, f"{where}.{key}" if where else key)
                for key, item in raw.items()
            }
        )
    if isinstance(raw, list):
        return [
            evaluate_value(item, context, f"{where}[{index}]")
            for index, item in enumerate(raw)
        ]
    return raw
