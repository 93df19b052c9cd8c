"""
Tests for tgconfig.decode module.

Tests structural decoding including:
- The dependency-only first pass
- Full document decoding
- Rejection of unknown or malformed content
"""

from __future__ import annotations

import pytest

from tgconfig.context import EvalContext, build_context
from tgconfig.decode import ConfigFile, Dependency, decode_dependencies, decode_full
from tgconfig.document import parse
from tgconfig.exceptions import DecodeError
from tgconfig.normalize import normalize
from tgconfig.values import Record, make_record


def _normalized(content: bytes):
    document = parse(content)
    normalized, changed = normalize(document)
    return parse(normalized) if changed else document


class TestDecodeDependencies:
    """Tests for the dependency-only pass."""

    def test_decodes_all_attributes(self, hcl):
        """Test that every dependency attribute is decoded."""
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path  = "../db"
                  skip_outputs = false
                  mock_outputs = {
                    endpoint = "10.0.0.5"
                  }
                  mock_outputs_allowed_terraform_commands = ["plan", "validate"]
                  mock_outputs_merge_with_state           = true
                }
                """
            )
        )

        [dependency] = decode_dependencies(document, EvalContext())

        assert isinstance(dependency, Dependency)
        assert dependency.name == "db"
        assert dependency.config_path == "../db"
        assert dependency.skip_outputs is False
        assert isinstance(dependency.mock_outputs, Record)
        assert dependency.mock_outputs == {"endpoint": "10.0.0.5"}
        assert dependency.mock_outputs_allowed_terraform_commands == ["plan", "validate"]
        assert dependency.mock_outputs_merge_with_state is True
        assert dependency.rendered_outputs is None

    def test_optional_attributes_default_to_none(self, hcl):
        """Test that only config_path is required."""
        document = parse(hcl('dependency "vpc" {\n  config_path = "../vpc"\n}'))

        [dependency] = decode_dependencies(document, EvalContext())

        assert dependency.skip_outputs is None
        assert dependency.mock_outputs is None
        assert dependency.mock_outputs_allowed_terraform_commands is None
        assert dependency.mock_outputs_merge_with_state is None

    def test_document_order(self, hcl):
        """Test that dependencies keep their document order."""
        document = parse(
            hcl(
                """
                dependency "b" {
                  config_path = "../b"
                }
                dependency "a" {
                  config_path = "../a"
                }
                """
            )
        )

        names = [d.name for d in decode_dependencies(document, EvalContext())]

        assert names == ["b", "a"]

    def test_other_content_is_not_evaluated(self, hcl):
        """Test that expressions outside dependency blocks are ignored."""
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path = "../db"
                }
                inputs = {
                  endpoint = dependency.db.outputs.endpoint
                }
                locals {
                  anything = goes.here
                }
                """
            )
        )

        assert len(decode_dependencies(document, EvalContext())) == 1

    def test_no_dependencies(self, hcl):
        """Test that a document without dependencies yields an empty list."""
        assert decode_dependencies(parse(hcl("inputs = {}")), EvalContext()) == []

    def test_missing_config_path(self, hcl):
        """Test that config_path is required."""
        document = parse(hcl('dependency "db" {\n  skip_outputs = true\n}'))

        with pytest.raises(DecodeError, match="config_path"):
            decode_dependencies(document, EvalContext())

    def test_unknown_attribute(self, hcl):
        """Test that unknown dependency attributes are rejected."""
        document = parse(
            hcl('dependency "db" {\n  config_path = "../db"\n  bogus = 1\n}')
        )

        with pytest.raises(DecodeError, match="Unsupported argument"):
            decode_dependencies(document, EvalContext())

    def test_rendered_outputs_cannot_be_set(self, hcl):
        """Test that rendered_outputs is not accepted from documents."""
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path      = "../db"
                  rendered_outputs = { a = 1 }
                }
                """
            )
        )

        with pytest.raises(DecodeError, match="rendered_outputs"):
            decode_dependencies(document, EvalContext())

    def test_missing_label(self, hcl):
        """Test that a dependency block needs a name."""
        document = parse(hcl('dependency {\n  config_path = "../db"\n}'))

        with pytest.raises(DecodeError, match="Missing name for dependency"):
            decode_dependencies(document, EvalContext())

    def test_duplicate_names(self, hcl):
        """Test that dependency names must be unique."""
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path = "../db1"
                }
                dependency "db" {
                  config_path = "../db2"
                }
                """
            )
        )

        with pytest.raises(DecodeError, match="Duplicate dependency"):
            decode_dependencies(document, EvalContext())

    def test_wrong_attribute_type(self, hcl):
        """Test that values of the wrong type raise DecodeError."""
        document = parse(
            hcl('dependency "db" {\n  config_path = "../db"\n  mock_outputs = "x"\n}')
        )

        with pytest.raises(DecodeError, match="mock_outputs"):
            decode_dependencies(document, EvalContext())

    def test_references_between_dependencies_fail(self, hcl):
        """Test that dependency blocks cannot read other dependencies' outputs."""
        document = parse(
            hcl(
                """
                dependency "a" {
                  config_path = "../a"
                }
                dependency "b" {
                  config_path = dependency.a.outputs.path
                }
                """
            )
        )

        with pytest.raises(DecodeError, match="Unknown variable"):
            decode_dependencies(document, EvalContext())


class TestDecodeFull:
    """Tests for full document decoding."""

    def test_full_document(self, hcl):
        """Test decoding every supported top-level element."""
        document = _normalized(
            hcl(
                """
                include {
                  path = "../root.hcl"
                }

                terraform {
                  source = "../modules/app"
                }

                terraform_binary = "tofu"

                dependency "db" {
                  config_path = "../db"
                }

                inputs = {
                  name = "app"
                }
                """
            )
        )

        config_file = decode_full(document, EvalContext())

        assert isinstance(config_file, ConfigFile)
        assert config_file.terraform.source == "../modules/app"
        assert config_file.terraform_binary == "tofu"
        assert config_file.inputs == {"name": "app"}
        assert [d.name for d in config_file.dependencies] == ["db"]
        assert [(i.name, i.body) for i in config_file.includes] == [
            ("", {"path": "../root.hcl"})
        ]

    def test_empty_document_returns_none(self):
        """Test that a document with no content decodes to None."""
        assert decode_full(parse(b""), EvalContext()) is None

    def test_empty_inputs_is_a_configuration(self, hcl):
        """Test that empty inputs still count as configuration."""
        config_file = decode_full(parse(hcl("inputs = {}")), EvalContext())

        assert config_file is not None
        assert config_file.inputs == {}

    def test_terraform_block_without_source(self, hcl):
        """Test that source is optional."""
        config_file = decode_full(parse(hcl("terraform {\n}")), EvalContext())

        assert config_file.terraform is not None
        assert config_file.terraform.source is None

    def test_inputs_reference_context(self, hcl):
        """Test that inputs are evaluated against the context."""
        context = build_context(
            make_record(
                {"db": make_record({"outputs": make_record({"endpoint": "10.0.0.5"})})}
            )
        )
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path = "../db"
                }
                inputs = {
                  endpoint_used = dependency.db.outputs.endpoint
                }
                """
            )
        )

        config_file = decode_full(document, context)

        assert config_file.inputs == {"endpoint_used": "10.0.0.5"}

    def test_undefined_reference(self, hcl):
        """Test that references to undefined variables raise DecodeError."""
        document = parse(hcl("inputs = {\n  a = dependency.db.outputs.a\n}"))

        with pytest.raises(DecodeError, match="Unknown variable"):
            decode_full(document, EvalContext())

    def test_unknown_top_level_attribute(self, hcl):
        """Test that unknown top-level attributes are rejected."""
        with pytest.raises(DecodeError, match="Unsupported argument"):
            decode_full(parse(hcl('download_dir = "/tmp"')), EvalContext())

    def test_unknown_block_type(self, hcl):
        """Test that unknown block types are rejected."""
        with pytest.raises(DecodeError, match="Unsupported block type"):
            decode_full(parse(hcl("locals {\n  a = 1\n}")), EvalContext())

    def test_inputs_as_block(self, hcl):
        """Test that inputs must be an attribute, not a block."""
        with pytest.raises(DecodeError, match="Unsupported block type"):
            decode_full(parse(hcl("inputs {\n  a = 1\n}")), EvalContext())

    def test_duplicate_terraform_blocks(self, hcl):
        """Test that at most one terraform block is allowed."""
        document = parse(hcl('terraform {\n}\nterraform {\n  source = "x"\n}'))

        with pytest.raises(DecodeError, match="Duplicate terraform block"):
            decode_full(document, EvalContext())

    def test_unknown_terraform_attribute(self, hcl):
        """Test that unknown terraform attributes are rejected."""
        document = parse(hcl('terraform {\n  module = "x"\n}'))

        with pytest.raises(DecodeError, match="Unsupported argument"):
            decode_full(document, EvalContext())

    def test_terraform_binary_must_be_string(self, hcl):
        """Test that terraform_binary is type checked."""
        with pytest.raises(DecodeError, match="terraform_binary"):
            decode_full(parse(hcl("terraform_binary = [1]")), EvalContext())

    def test_unnormalized_bare_include(self, hcl):
        """Test that a bare include must be normalized before decoding."""
        document = parse(hcl('include {\n  path = "../root.hcl"\n}'))

        with pytest.raises(DecodeError, match="Missing name for include"):
            decode_full(document, EvalContext())

    def test_include_body_is_not_evaluated(self, hcl):
        """Test that include bodies are carried without evaluation."""
        document = parse(
            hcl('include "root" {\n  path = find_in_parent_folders()\n}')
        )

        config_file = decode_full(document, EvalContext())

        assert config_file.includes[0].name == "root"
        assert "path" in config_file.includes[0].body
