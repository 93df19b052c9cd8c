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

"""Dependency output sources for tgconfig.

Available Sources:
    mock : MockSource
        Never has real outputs; mock outputs are always rendered. Default.
    terraform : TerraformOutputSource
        Runs ``terraform output -json`` in the dependency's directory.
    http : HttpStateSource
        Reads the outputs of a Terraform state document served over HTTP.

Example:
    ```python
    from pathlib import Path
    from tgconfig.outputs import get_source
    from tgconfig.settings import EvaluatorSettings

    source = get_source("mock", EvaluatorSettings(), Path("."))
    ```
"""

# Import source modules to trigger self-registration
from . import (
    http_state,  # noqa: F401
    mock,  # noqa: F401
    terraform_cli,  # noqa: F401
)
from .base import (
    OutputSource,
    OutputValue,
    available_sources,
    get_source,
    outputs_to_record,
    parse_outputs_json,
    register_source,
)

__all__ = [
    "OutputSource",
    "OutputValue",
    "available_sources",
    "get_source",
    "outputs_to_record",
    "parse_outputs_json",
    "register_source",
]
