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

"""Exception hierarchy for tgconfig.

This module defines a custom exception hierarchy that allows library users
to distinguish between the stages of the evaluation pipeline that can fail:

- HCLSyntaxError: The document text is not valid HCL
- MultipleBareIncludesError: More than one unlabeled include block
- DecodeError: Structural shape mismatch or expression evaluation failure
- ConversionError: A dynamic value could not be converted
- NoConfigurationFoundError: Decoding produced no configuration at all
- DependencyOutputUnavailableError: An output source failed hard
- ConfigError: Invalid evaluator settings (settings file, CLI flags)

All exceptions inherit from TGConfigError, allowing users to catch all
tgconfig errors with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from tgconfig.core import evaluate
        from tgconfig.exceptions import DecodeError, HCLSyntaxError

        try:
            config = evaluate(Path("terragrunt.hcl").read_bytes())
        except HCLSyntaxError as e:
            print(f"Syntax error: {e}")
        except DecodeError as e:
            print(f"Decode error: {e}")
        ```

    Catching all tgconfig errors:
        ```python
        from tgconfig.exceptions import TGConfigError

        try:
            config = evaluate_file(Path("terragrunt.hcl"))
        except TGConfigError as e:
            print(f"tgconfig error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "TGConfigError",
    "HCLSyntaxError",
    "MultipleBareIncludesError",
    "DecodeError",
    "ConversionError",
    "NoConfigurationFoundError",
    "DependencyOutputUnavailableError",
    "ConfigError",
]


class TGConfigError(Exception):
    """Base exception for all tgconfig errors.

    All tgconfig-specific exceptions inherit from this class, allowing users
    to catch all tgconfig errors with a single except clause if needed.
    """

    pass


class HCLSyntaxError(TGConfigError):
    """Raised when the configuration text cannot be parsed.

    The message always names the logical filename the document was parsed
    under, so diagnostics from a re-parse stay attributable to the same
    source.
    """

    pass


class MultipleBareIncludesError(TGConfigError):
    """Raised when a document has more than one include block without a label.

    Only one bare include block is supported, because every bare include is
    given the same synthetic empty-string label.
    """

    pass


class DecodeError(TGConfigError):
    """Raised when the document does not match the expected structure.

    This exception is raised when there are problems with:

    - Unknown top-level arguments or block types
    - Missing required attributes (e.g., a dependency without config_path)
    - Attribute values of the wrong type
    - Blocks with the wrong number of labels, or duplicate dependency names
    - Expression evaluation failures, including references to undefined
      variables or missing attributes

    Example:
        Referencing outputs of a dependency that exposes none:
            ```python
            from tgconfig.exceptions import DecodeError

            try:
                evaluate(content)
            except DecodeError as e:
                print(f"Decode error: {e}")
            ```
    """

    pass


class ConversionError(TGConfigError):
    """Raised when a dynamic value cannot be converted.

    This covers values that are not JSON-representable, values whose shape
    does not match a declared type descriptor, and malformed type
    descriptors.
    """

    pass


class NoConfigurationFoundError(TGConfigError):
    """Raised when decoding yields no configuration at all.

    An empty but syntactically valid document decodes to nothing, which is
    distinct from a document whose configuration is present but empty.
    """

    pass


class DependencyOutputUnavailableError(TGConfigError):
    """Raised when real dependency outputs cannot be obtained.

    Output sources raise this for hard failures (missing terraform binary,
    timeouts, network errors, malformed state) as opposed to signalling
    that outputs are simply not available. It is also raised when mock
    outputs are not allowed for the terraform command being run.
    """

    pass


class ConfigError(TGConfigError):
    """Raised for evaluator settings errors.

    This exception is raised when there are problems with:

    - YAML parsing of a settings file (syntax errors, invalid structure)
    - Unknown settings keys or values of the wrong type
    - Unknown output source names
    """

    pass
