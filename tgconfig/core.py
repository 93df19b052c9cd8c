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

"""Core orchestration for tgconfig.

This module provides the high-level entry points that tie the pipeline
together:

    bytes -> parse -> normalize (re-parse if changed)
          -> resolve dependencies (first pass)
          -> build context -> decode (second pass) -> assemble

Every stage raises on its first error and evaluation stops; there is no
partial result.

Example:
    Evaluate a document held in memory:
        ```python
        from tgconfig.core import evaluate

        content = b'''
        dependency "db" {
          config_path  = "../db"
          mock_outputs = { endpoint = "10.0.0.5" }
        }
        inputs = { endpoint_used = dependency.db.outputs.endpoint }
        '''
        result = evaluate(content)
        print(result.inputs)  # {'endpoint_used': '10.0.0.5'}
        ```

    Evaluate a file with settings from .tgconfig.yaml:
        ```python
        from pathlib import Path
        from tgconfig.core import evaluate_file

        result = evaluate_file(Path("live/prod/app/terragrunt.hcl"))
        ```
"""

from __future__ import annotations

from pathlib import Path

from tgconfig.context import EvalContext, build_context
from tgconfig.decode import ConfigFile, Dependency, decode_full
from tgconfig.dependency import resolve_dependencies
from tgconfig.document import FILENAME, RawDocument, parse, reparse
from tgconfig.exceptions import ConfigError, NoConfigurationFoundError
from tgconfig.logging import get_global_logger
from tgconfig.normalize import normalize
from tgconfig.outputs import OutputSource, get_source
from tgconfig.results import ResolvedConfig
from tgconfig.settings import EvaluatorSettings, load_settings
from tgconfig.values import value_to_generic_map


def assemble(config_file: ConfigFile | None) -> ResolvedConfig:
    """Build the public result from a decoded document.

    Raises:
        NoConfigurationFoundError: If config_file is None.
        ConversionError: If inputs is not an object.

    """
    if config_file is None:
        raise NoConfigurationFoundError("no configuration found in document")

    inputs = {}
    if config_file.inputs is not None:
        inputs = value_to_generic_map(config_file.inputs)

    return ResolvedConfig(
        terraform=config_file.terraform,
        terraform_binary=config_file.terraform_binary or "",
        inputs=inputs,
        dependencies=list(config_file.dependencies),
    )


def evaluate(
    content: bytes,
    filename: str = FILENAME,
    *,
    source: OutputSource | None = None,
    terraform_command: str | None = None,
) -> ResolvedConfig:
    """Evaluate a configuration document.

    Args:
        content: Raw document bytes (UTF-8 HCL).
        filename: Logical filename used only in error messages.
        source: Output source for real dependency outputs. None means no
            real outputs are ever available, so mock outputs are rendered.
        terraform_command: The terraform command being run, checked against
            each dependency's mock_outputs_allowed_terraform_commands.

    Returns:
        The resolved configuration.

    Raises:
        HCLSyntaxError: If the document is not valid HCL.
        MultipleBareIncludesError: If more than one include block has no
            label.
        DecodeError: On structural or expression errors.
        ConversionError: If a value cannot be converted.
        DependencyOutputUnavailableError: If dependency outputs are required
            but unavailable.
        NoConfigurationFoundError: If the document is empty.

    """
    logger = get_global_logger()

    # 1. Parse and normalize
    logger.step(1, 4, f"Parsing {filename}...")
    document = parse(content, filename)
    normalized, changed = normalize(document)
    if changed:
        document = reparse(document, normalized)

    # 2. First pass: dependency outputs
    logger.step(2, 4, "Resolving dependencies...")
    dependency_value, dependencies = resolve_dependencies(
        document, build_context(), source, terraform_command
    )

    # 3. Second pass: the whole document
    logger.step(3, 4, "Decoding configuration...")
    context = build_context(dependency_value if dependencies else None)
    config_file = _decode_with_outputs(document, context, dependencies)

    # 4. Assemble
    logger.step(4, 4, "Assembling result...")
    return assemble(config_file)


def _decode_with_outputs(
    document: RawDocument, context: EvalContext, dependencies: list[Dependency]
) -> ConfigFile | None:
    """Run the second pass and carry over rendered outputs by dependency name."""
    config_file = decode_full(document, context)
    if config_file is None:
        return None
    rendered = {dependency.name: dependency.rendered_outputs for dependency in dependencies}
    return config_file.model_copy(
        update={
            "dependencies": [
                dependency.model_copy(
                    update={"rendered_outputs": rendered.get(dependency.name)}
                )
                for dependency in config_file.dependencies
            ]
        }
    )


def evaluate_file(
    path: Path,
    settings: EvaluatorSettings | None = None,
) -> ResolvedConfig:
    """Evaluate a configuration file on disk.

    Settings are loaded from the nearest .tgconfig.yaml above the file
    unless given. Relative dependency paths are resolved against the
    file's directory by the output source.

    Raises:
        ConfigError: If the file cannot be read, on invalid settings, or
            an unknown output source. Evaluation errors are the same as
            for evaluate().

    """
    logger = get_global_logger()
    path = Path(path)

    try:
        content = path.read_bytes()
    except OSError as err:
        raise ConfigError(f"cannot read configuration file: {path}: {err}") from err

    if settings is None:
        settings = load_settings(path.resolve().parent)
    logger.verbose("SETTINGS", f"Output source: {settings.output_source}")
    source = get_source(settings.output_source, settings, path.resolve().parent)

    return evaluate(
        content,
        path.name,
        source=source,
        terraform_command=settings.terraform_command,
    )
