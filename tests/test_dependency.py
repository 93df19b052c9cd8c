"""
Tests for tgconfig.dependency module.

Tests dependency output resolution including:
- Rendering mock outputs
- Using and merging real outputs from an output source
- Allowed terraform commands for mock outputs
- Encoding of the dependency variable
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tgconfig.context import EvalContext
from tgconfig.decode import Dependency
from tgconfig.document import parse
from tgconfig.exceptions import DependencyOutputUnavailableError
from tgconfig.outputs import OutputValue, parse_outputs_json
from tgconfig.dependency import (
    dependency_blocks_to_value,
    encode_mock_outputs,
    merge_records,
    render_outputs,
    resolve_dependencies,
)
from tgconfig.values import Record, make_record


def _dependency(**kwargs) -> Dependency:
    return Dependency(name=kwargs.pop("name", "db"), config_path="../db", **kwargs)


def _source(outputs: dict[str, OutputValue] | None) -> MagicMock:
    source = MagicMock()
    source.get_outputs.return_value = outputs
    return source


class TestEncodeMockOutputs:
    """Tests for encoding mock outputs into the output wire shape."""

    def test_types_and_values(self):
        """Test that each mock output carries its type descriptor and value."""
        encoded = encode_mock_outputs(
            make_record({"a": 1, "b": "x", "c": make_record({"d": True})})
        )

        assert encoded["a"] == OutputValue(sensitive=False, type="number", value=1)
        assert encoded["b"] == OutputValue(sensitive=False, type="string", value="x")
        assert encoded["c"].type == ["object", {"d": "bool"}]
        assert encoded["c"].value == {"d": True}


class TestRenderOutputs:
    """Tests for render_outputs()."""

    def test_without_mocks_source_is_not_consulted(self):
        """Test that dependencies without mock_outputs are left unrendered."""
        source = _source({"a": OutputValue(type="string", value="real")})
        dependency = _dependency()

        rendered = render_outputs(dependency, source)

        assert rendered.rendered_outputs is None
        source.get_outputs.assert_not_called()

    def test_mock_outputs_are_rendered(self):
        """Test that mock outputs are used when no source is given."""
        dependency = _dependency(mock_outputs=make_record({"a": 1, "b": "x"}))

        rendered = render_outputs(dependency)

        assert isinstance(rendered.rendered_outputs, Record)
        assert rendered.rendered_outputs == {"a": 1, "b": "x"}
        assert dependency.rendered_outputs is None

    def test_nested_mock_outputs(self):
        """Test that nested mock values survive encoding and decoding."""
        mocks = make_record(
            {"subnets": ["a", "b"], "tags": make_record({"team": "data"})}
        )

        rendered = render_outputs(_dependency(mock_outputs=mocks)).rendered_outputs

        assert rendered["subnets"] == ["a", "b"]
        assert isinstance(rendered["tags"], Record)
        assert rendered["tags"] == {"team": "data"}

    def test_empty_mock_outputs(self):
        """Test that empty mock outputs render to an empty record."""
        rendered = render_outputs(_dependency(mock_outputs=make_record({})))

        assert rendered.rendered_outputs is not None
        assert rendered.rendered_outputs.keys() == []

    def test_real_outputs_win(self, terraform_outputs_json):
        """Test that real outputs are used instead of mocks."""
        source = _source(parse_outputs_json(terraform_outputs_json))
        dependency = _dependency(mock_outputs=make_record({"endpoint": "mock"}))

        rendered = render_outputs(dependency, source)

        assert rendered.rendered_outputs == {"endpoint": "db.internal", "port": 6432}
        source.get_outputs.assert_called_once_with(dependency)

    def test_merge_with_state(self, terraform_outputs_json):
        """Test that mocks are merged underneath real outputs."""
        source = _source(parse_outputs_json(terraform_outputs_json))
        dependency = _dependency(
            mock_outputs=make_record({"endpoint": "mock", "extra": "only-mock"}),
            mock_outputs_merge_with_state=True,
        )

        rendered = render_outputs(dependency, source)

        assert rendered.rendered_outputs == {
            "endpoint": "db.internal",
            "extra": "only-mock",
            "port": 6432,
        }

    def test_empty_real_outputs_fall_back_to_mocks(self):
        """Test that an empty output set counts as not available."""
        dependency = _dependency(mock_outputs=make_record({"a": 1}))

        rendered = render_outputs(dependency, _source({}))

        assert rendered.rendered_outputs == {"a": 1}

    def test_skip_outputs(self):
        """Test that skip_outputs never consults the source."""
        source = _source({"a": OutputValue(type="number", value=2)})
        dependency = _dependency(mock_outputs=make_record({"a": 1}), skip_outputs=True)

        rendered = render_outputs(dependency, source)

        assert rendered.rendered_outputs == {"a": 1}
        source.get_outputs.assert_not_called()

    def test_allowed_command(self):
        """Test that mocks are used for an allowed command."""
        dependency = _dependency(
            mock_outputs=make_record({"a": 1}),
            mock_outputs_allowed_terraform_commands=["plan", "validate"],
        )

        rendered = render_outputs(dependency, terraform_command="plan")

        assert rendered.rendered_outputs == {"a": 1}

    def test_disallowed_command_raises(self):
        """Test that mocks are refused for commands not in the list."""
        dependency = _dependency(
            mock_outputs=make_record({"a": 1}),
            mock_outputs_allowed_terraform_commands=["plan", "validate"],
        )

        with pytest.raises(DependencyOutputUnavailableError, match="apply"):
            render_outputs(dependency, terraform_command="apply")

    def test_unknown_command_allows_mocks(self):
        """Test that the allow list is not checked without a command."""
        dependency = _dependency(
            mock_outputs=make_record({"a": 1}),
            mock_outputs_allowed_terraform_commands=["plan"],
        )

        assert render_outputs(dependency).rendered_outputs == {"a": 1}

    def test_real_outputs_ignore_allow_list(self, terraform_outputs_json):
        """Test that the allow list only applies when falling back to mocks."""
        source = _source(parse_outputs_json(terraform_outputs_json))
        dependency = _dependency(
            mock_outputs=make_record({"endpoint": "mock"}),
            mock_outputs_allowed_terraform_commands=["plan"],
        )

        rendered = render_outputs(dependency, source, terraform_command="apply")

        assert rendered.rendered_outputs["endpoint"] == "db.internal"

    def test_source_errors_propagate(self):
        """Test that hard retrieval failures abort resolution."""
        source = MagicMock()
        source.get_outputs.side_effect = DependencyOutputUnavailableError("boom")

        with pytest.raises(DependencyOutputUnavailableError, match="boom"):
            render_outputs(_dependency(mock_outputs=make_record({"a": 1})), source)


class TestMergeRecords:
    """Tests for merge_records()."""

    def test_deep_merge(self):
        """Test that nested records merge and overlay values win."""
        base = make_record({"a": 1, "n": make_record({"x": 1, "y": 2}), "l": [1]})
        overlay = make_record({"a": 2, "n": make_record({"y": 3}), "l": [2]})

        merged = merge_records(base, overlay)

        assert merged == {"a": 2, "n": {"x": 1, "y": 3}, "l": [2]}


class TestDependencyBlocksToValue:
    """Tests for dependency_blocks_to_value()."""

    def test_outputs_and_empty_entries(self):
        """Test the encoded shape with and without rendered outputs."""
        with_outputs = _dependency(name="db").model_copy(
            update={"rendered_outputs": make_record({"endpoint": "10.0.0.5"})}
        )
        without_outputs = _dependency(name="vpc")

        value = dependency_blocks_to_value([with_outputs, without_outputs])

        assert value.keys() == ["db", "vpc"]
        assert value["db"]["outputs"]["endpoint"] == "10.0.0.5"
        assert "outputs" not in value["vpc"]

    def test_heterogeneous_outputs(self):
        """Test that dependencies with differently typed outputs fit one value."""
        first = _dependency(name="a").model_copy(
            update={"rendered_outputs": make_record({"x": "string"})}
        )
        second = _dependency(name="b").model_copy(
            update={"rendered_outputs": make_record({"x": make_record({"n": 1})})}
        )

        value = dependency_blocks_to_value([first, second])

        assert value["a"]["outputs"]["x"] == "string"
        assert value["b"]["outputs"]["x"]["n"] == 1

    def test_no_dependencies(self):
        """Test that no dependencies encode to an empty record."""
        assert dependency_blocks_to_value([]).keys() == []


class TestResolveDependencies:
    """Tests for resolve_dependencies()."""

    def test_resolves_document(self, hcl):
        """Test the dependency pass over a whole document."""
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path  = "../db"
                  mock_outputs = { endpoint = "10.0.0.5" }
                }
                dependency "vpc" {
                  config_path = "../vpc"
                }
                inputs = {
                  endpoint = dependency.db.outputs.endpoint
                }
                """
            )
        )

        value, dependencies = resolve_dependencies(document, EvalContext())

        assert [d.name for d in dependencies] == ["db", "vpc"]
        assert dependencies[0].rendered_outputs == {"endpoint": "10.0.0.5"}
        assert dependencies[1].rendered_outputs is None
        assert value["db"]["outputs"]["endpoint"] == "10.0.0.5"
        assert value["vpc"].keys() == []

    def test_passes_command_and_source(self, hcl):
        """Test that the source and command reach every dependency."""
        document = parse(
            hcl(
                """
                dependency "db" {
                  config_path  = "../db"
                  mock_outputs = { a = 1 }
                  mock_outputs_allowed_terraform_commands = ["plan"]
                }
                """
            )
        )

        with pytest.raises(DependencyOutputUnavailableError):
            resolve_dependencies(
                document, EvalContext(), _source(None), terraform_command="apply"
            )
