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

"""Parsing of configuration documents.

Parsing is delegated to python-hcl2, which turns HCL text into nested
Python containers: attributes become dict entries, every block type becomes
a list of bodies (labels nest as single-key dicts), and expressions are left
as "${...}" strings for later evaluation.

The original byte buffer is kept next to the parsed body because the
include normalizer rewrites bytes, not the decoded structure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from hcl2.parser import hcl2 as hcl2_parser
from hcl2.transformer import DictTransformer
from lark.exceptions import LarkError, VisitError

from tgconfig.exceptions import HCLSyntaxError
from tgconfig.logging import get_global_logger

# Default logical filename for diagnostics; reused across re-parses
FILENAME = "terragrunt.hcl"


@dataclass(frozen=True)
class RawDocument:
    """A parsed but not yet decoded configuration document.

    Attributes:
        filename: Logical filename used in error messages.
        content: The original bytes the document was parsed from.
        body: Top-level body as produced by the HCL parser.
    """

    filename: str
    content: bytes
    body: dict[str, Any]


def _double_literal_backslashes(body: str) -> str:
    """Escape the backslashes of a heredoc body outside its interpolations."""
    out: list[str] = []
    depth = 0
    i = 0
    n = len(body)
    while i < n:
        char = body[i]
        if depth == 0:
            if body.startswith(("$${", "%%{"), i):
                out.append(body[i : i + 3])
                i += 3
                continue
            if body.startswith(("${", "%{"), i):
                out.append(body[i : i + 2])
                depth = 1
                i += 2
                continue
            out.append("\\\\" if char == "\\" else char)
        elif char == '"':
            # Quoted strings inside an interpolation keep their escapes
            end = i + 1
            while end < n and body[end] != '"':
                end += 2 if body[end] == "\\" else 1
            out.append(body[i : end + 1])
            i = end
        else:
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            out.append(char)
        i += 1
    return "".join(out)


class _DocumentTransformer(DictTransformer):
    """DictTransformer that keeps heredoc text verbatim.

    The parser hands quoted strings over with their escape sequences still
    encoded, and heredocs (where backslashes are literal) in the same
    quoted form. Doubling heredoc backslashes lets the evaluator decode
    every string the same way.
    """

    def heredoc_template(self, args: list[Any]) -> str:
        return self._escaped(super().heredoc_template(args))

    def heredoc_template_trim(self, args: list[Any]) -> str:
        return self._escaped(super().heredoc_template_trim(args))

    @staticmethod
    def _escaped(quoted: str) -> str:
        return f'"{_double_literal_backslashes(quoted[1:-1])}"'


def _describe_parse_error(err: LarkError) -> str:
    if isinstance(err, VisitError):
        # Raised from the parser's transformer, e.g. duplicate attributes
        return str(err.orig_exc)
    return str(err).strip()


def parse(content: bytes, filename: str = FILENAME) -> RawDocument:
    """Parse HCL bytes into a RawDocument.

    Args:
        content: Raw configuration bytes (UTF-8).
        filename: Logical filename used only for diagnostics.

    Returns:
        The parsed document.

    Raises:
        HCLSyntaxError: If the bytes are not UTF-8 or not valid HCL.

    """
    logger = get_global_logger()

    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as err:
        raise HCLSyntaxError(f"{filename}: document is not valid UTF-8: {err}") from err

    # The grammar expects every statement to be newline-terminated
    try:
        body = _DocumentTransformer().transform(hcl2_parser.parse(text + "\n"))
    except LarkError as err:
        raise HCLSyntaxError(f"{filename}: {_describe_parse_error(err)}") from err

    logger.debug("PARSE", f"{filename}: top-level keys {sorted(body)}")
    return RawDocument(filename=filename, content=content, body=body)


def reparse(document: RawDocument, content: bytes) -> RawDocument:
    """Parse rewritten bytes under the filename of an existing document."""
    get_global_logger().verbose("PARSE", f"Re-parsing {document.filename}")
    return parse(content, document.filename)
