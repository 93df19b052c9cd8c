"""
Tests for tgconfig.document module.

Tests document parsing including:
- Parser output shape for attributes and blocks
- Filename handling for diagnostics
- Syntax errors
"""

from __future__ import annotations

import pytest

from tgconfig.document import FILENAME, parse, reparse
from tgconfig.exceptions import HCLSyntaxError, TGConfigError


class TestParse:
    """Tests for parse()."""

    def test_attributes_and_blocks(self, hcl):
        """Test that attributes map to values and blocks to lists of bodies."""
        content = hcl(
            """
            terraform_binary = "tofu"

            terraform {
              source = "../modules/app"
            }

            dependency "db" {
              config_path = "../db"
            }
            """
        )

        document = parse(content)

        assert document.body["terraform_binary"] == "tofu"
        assert document.body["terraform"] == [{"source": "../modules/app"}]
        assert document.body["dependency"] == [{"db": {"config_path": "../db"}}]

    def test_keeps_original_bytes(self, hcl):
        """Test that the document keeps the exact bytes it was parsed from."""
        content = hcl('inputs = {}')

        document = parse(content, "app.hcl")

        assert document.content == content
        assert document.filename == "app.hcl"

    def test_default_filename(self, hcl):
        """Test the default logical filename."""
        assert parse(hcl('inputs = {}')).filename == FILENAME

    def test_missing_trailing_newline(self):
        """Test that a final statement without newline still parses."""
        document = parse(b'terraform_binary = "tofu"')

        assert document.body == {"terraform_binary": "tofu"}

    def test_empty_document(self):
        """Test that an empty document parses to an empty body."""
        assert parse(b"").body == {}

    def test_comment_only_document(self, hcl):
        """Test that comments alone produce an empty body."""
        assert parse(hcl("# nothing here\n")).body == {}

    def test_expressions_are_left_unevaluated(self, hcl):
        """Test that references are kept as interpolation strings."""
        document = parse(hcl("inputs = { a = dependency.db.outputs.a }"))

        assert document.body["inputs"] == {"a": "${dependency.db.outputs.a}"}


class TestParseErrors:
    """Tests for syntax error reporting."""

    def test_syntax_error_names_file(self, hcl):
        """Test that syntax errors raise HCLSyntaxError with the filename."""
        with pytest.raises(HCLSyntaxError, match="broken.hcl"):
            parse(hcl('inputs = {\n  a = "unterminated\n'), "broken.hcl")

    def test_unclosed_block(self, hcl):
        """Test that an unclosed block is a syntax error."""
        with pytest.raises(HCLSyntaxError):
            parse(hcl('terraform {\n  source = "x"\n'))

    def test_invalid_utf8(self):
        """Test that undecodable bytes raise HCLSyntaxError."""
        with pytest.raises(HCLSyntaxError, match="UTF-8"):
            parse(b'inputs = {a = "\xff\xfe"}\n')

    def test_syntax_error_is_tgconfig_error(self, hcl):
        """Test that HCLSyntaxError can be caught as TGConfigError."""
        with pytest.raises(TGConfigError):
            parse(hcl("= = ="))


class TestReparse:
    """Tests for reparse()."""

    def test_keeps_filename(self, hcl):
        """Test that re-parsing keeps the original logical filename."""
        document = parse(hcl("inputs = {}"), "live/app.hcl")

        updated = reparse(document, hcl('terraform_binary = "tofu"'))

        assert updated.filename == "live/app.hcl"
        assert updated.body == {"terraform_binary": "tofu"}

    def test_errors_name_original_file(self, hcl):
        """Test that errors after re-parsing name the original file."""
        document = parse(hcl("inputs = {}"), "live/app.hcl")

        with pytest.raises(HCLSyntaxError, match="live/app.hcl"):
            reparse(document, hcl("inputs = {"))
