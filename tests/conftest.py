"""
Pytest configuration and shared fixtures for tgconfig tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent
from typing import Any

import pytest
import yaml

from tgconfig.logging import SilentLogger, set_global_logger


@pytest.fixture(autouse=True)
def quiet_logger():
    """Reset the global logger so output settings never leak between tests."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def hcl():
    """
    Turn an indented HCL snippet into document bytes.

    Usage:
        content = hcl('''
            terraform_binary = "tofu"
        ''')
    """

    def _hcl(text: str) -> bytes:
        return dedent(text).lstrip("\n").encode("utf-8")

    return _hcl


@pytest.fixture
def write_hcl(tmp_test_dir: Path, hcl):
    """
    Factory fixture for creating configuration files.

    Usage:
        path = write_hcl("live/app/terragrunt.hcl", 'inputs = {}')
    """

    def _create(relative: str, text: str) -> Path:
        path = tmp_test_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(hcl(text))
        return path

    return _create


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file(".tgconfig.yaml", {"output_source": "mock"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def db_dependency_hcl() -> str:
    """Provide a document with one mocked dependency referenced from inputs."""
    return """
        terraform {
          source = "git::https://example.com/modules.git//app"
        }

        dependency "db" {
          config_path = "../db"
          mock_outputs = {
            endpoint = "10.0.0.5"
            port     = 5432
          }
        }

        inputs = {
          endpoint_used = dependency.db.outputs.endpoint
          port          = dependency.db.outputs.port
        }
    """


@pytest.fixture
def terraform_outputs_json() -> str:
    """Provide `terraform output -json` style output for a database module."""
    return (
        '{"endpoint": {"sensitive": false, "type": "string", "value": "db.internal"},'
        ' "port": {"sensitive": false, "type": "number", "value": 6432}}'
    )
