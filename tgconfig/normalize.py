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

"""Normalization of bare include blocks.

Structural decoding expects a fixed number of labels per block type, and
the parser output cannot tell ``include { path = "x" }`` apart from an
``include "path" { ... }`` block. Before decoding, a bare include block is
therefore rewritten to carry a single empty-string label:

    include {            ->    include "" {
      path = "../root"           path = "../root"
    }                          }

Only one bare include block is supported per document, since every bare
include would receive the same label.

The rewrite works on the original bytes. The scanner walks the text once,
skipping strings (including template interpolations), heredocs and
comments, and reports the header of every top-level block. A rewritten
document must be parsed again before decoding.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import re

from tgconfig.document import RawDocument
from tgconfig.exceptions import MultipleBareIncludesError
from tgconfig.logging import get_global_logger

INCLUDE_BLOCK = "include"
BARE_INCLUDE_LABEL = ""

_HEREDOC = re.compile(r"<<-?([A-Za-z_][A-Za-z0-9_-]*)[ \t]*\r?\n")


@dataclass(frozen=True)
class BlockHeader:
    """Location of a top-level block's type keyword.

    Attributes:
        block_type: The block type (e.g. "include").
        end: Offset just past the block type keyword.
        labeled: True if at least one label follows the keyword.
        line: 1-based line number of the keyword.
    """

    block_type: str
    end: int
    labeled: bool
    line: int


# -------------------------------
# Lexical helpers
# -------------------------------


def _is_identifier_start(char: str) -> bool:
    return char.isalpha() or char == "_"


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char in "_-"


def _skip_line_comment(text: str, i: int) -> int:
    end = text.find("\n", i)
    return len(text) if end == -1 else end


def _skip_block_comment(text: str, i: int) -> int:
    end = text.find("*/", i + 2)
    return len(text) if end == -1 else end + 2


def _skip_template_sequence(text: str, i: int) -> int:
    """Skip a ${...} or %{...} sequence whose body starts at i."""
    depth = 1
    n = len(text)
    while i < n:
        char = text[i]
        if char == '"':
            i = _skip_quoted(text, i)
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return n


def _skip_quoted(text: str, i: int) -> int:
    """Skip a quoted string starting at the opening quote at i."""
    i += 1
    n = len(text)
    while i < n:
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == '"':
            return i + 1
        if char == "\n":
            # Unterminated; the parser has already rejected the document
            return i
        if text.startswith("$${", i) or text.startswith("%%{", i):
            i += 3
            continue
        if text.startswith("${", i) or text.startswith("%{", i):
            i = _skip_template_sequence(text, i + 2)
            continue
        i += 1
    return n


def _skip_heredoc(text: str, match: re.Match[str]) -> int:
    marker = match.group(1)
    i = match.end()
    n = len(text)
    while i < n:
        end = text.find("\n", i)
        line_end = n if end == -1 else end
        if text[i:line_end].strip() == marker:
            return line_end
        i = line_end + 1
    return n


# -------------------------------
# Block scanning
# -------------------------------


def iter_top_level_blocks(text: str) -> Iterator[BlockHeader]:
    """Yield the header of each top-level block in document order.

    Attributes (``name = value``) are not reported. A block counts as
    labeled when its keyword is followed by a quoted string or identifier
    label rather than by the opening brace.
    """
    i = 0
    n = len(text)
    depth = 0
    line = 1
    at_statement_start = True

    while i < n:
        char = text[i]

        if char == "\n":
            line += 1
            if depth == 0:
                at_statement_start = True
            i += 1
            continue
        if char in " \t\r":
            i += 1
            continue
        if char == "#" or text.startswith("//", i):
            i = _skip_line_comment(text, i)
            continue
        if text.startswith("/*", i):
            end = _skip_block_comment(text, i)
            line += text.count("\n", i, end)
            i = end
            continue
        if char == '"':
            end = _skip_quoted(text, i)
            line += text.count("\n", i, end)
            i = end
            at_statement_start = False
            continue
        if text.startswith("<<", i):
            match = _HEREDOC.match(text, i)
            if match:
                end = _skip_heredoc(text, match)
                line += text.count("\n", i, end)
                i = end
                at_statement_start = False
                continue
        if char in "{[(":
            depth += 1
            at_statement_start = False
            i += 1
            continue
        if char in "}])":
            depth = max(depth - 1, 0)
            i += 1
            continue

        if depth == 0 and at_statement_start and _is_identifier_start(char):
            end = i + 1
            while end < n and _is_identifier_char(text[end]):
                end += 1
            following = end
            while following < n and text[following] in " \t":
                following += 1
            if following < n:
                next_char = text[following]
                if next_char == "{":
                    yield BlockHeader(text[i:end], end, False, line)
                elif next_char == '"' or _is_identifier_start(next_char):
                    yield BlockHeader(text[i:end], end, True, line)
            at_statement_start = False
            i = end
            continue

        at_statement_start = False
        i += 1


def normalize(document: RawDocument) -> tuple[bytes, bool]:
    """Label a bare include block with the empty string.

    Args:
        document: The parsed document; its original bytes are rewritten.

    Returns:
        A tuple (content, changed). When changed is True the content
        differs from document.content and must be re-parsed.

    Raises:
        MultipleBareIncludesError: If more than one include block has no
            label, wherever they appear in the document.

    """
    logger = get_global_logger()

    if INCLUDE_BLOCK not in document.body:
        return document.content, False

    text = document.content.decode("utf-8")
    bare = [
        header
        for header in iter_top_level_blocks(text)
        if header.block_type == INCLUDE_BLOCK and not header.labeled
    ]

    if len(bare) > 1:
        lines = ", ".join(str(header.line) for header in bare)
        raise MultipleBareIncludesError(
            f"{document.filename}: multiple bare include blocks (include blocks "
            f"without label) is not supported (lines {lines})"
        )
    if not bare:
        return document.content, False

    header = bare[0]
    logger.verbose(
        "NORMALIZE",
        f"Labeling bare include block on line {header.line} with {BARE_INCLUDE_LABEL!r}",
    )
    updated = f'{text[: header.end]} "{BARE_INCLUDE_LABEL}"{text[header.end :]}'
    return updated.encode("utf-8"), True
