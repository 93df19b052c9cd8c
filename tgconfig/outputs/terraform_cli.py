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

"""Output source running ``terraform output -json``.

The command runs in the dependency's config_path, resolved against the
directory of the document being evaluated.

Outcomes:
    - exit status 0 with a non-empty object: the outputs
    - non-zero exit status (e.g. nothing applied yet) or ``{}``: None, so
      mock outputs are used
    - binary not found, missing config_path, timeout or malformed JSON:
      DependencyOutputUnavailableError

Settings used: terraform_binary, output_timeout.
"""

from __future__ import annotations

from pathlib import Path
import subprocess
from typing import TYPE_CHECKING

from tgconfig.exceptions import ConversionError, DependencyOutputUnavailableError
from tgconfig.logging import get_global_logger
from tgconfig.outputs.base import OutputValue, parse_outputs_json, register_source

if TYPE_CHECKING:
    from tgconfig.decode import Dependency
    from tgconfig.settings import EvaluatorSettings


class TerraformOutputSource:
    """Read outputs with the terraform CLI."""

    def __init__(self, settings: EvaluatorSettings, base_dir: Path) -> None:
        self.binary = settings.terraform_binary
        self.timeout = settings.output_timeout
        self.base_dir = base_dir

    def get_outputs(self, dependency: Dependency) -> dict[str, OutputValue] | None:
        logger = get_global_logger()
        working_dir = (self.base_dir / dependency.config_path).resolve()
        if not working_dir.is_dir():
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: config_path {dependency.config_path!r} "
                f"is not a directory ({working_dir})"
            )

        command = [self.binary, "output", "-json"]
        logger.verbose(
            "OUTPUTS", f"Running {' '.join(command)} in {working_dir}"
        )
        try:
            result = subprocess.run(
                command,
                cwd=working_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as err:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: terraform binary not found: {self.binary}"
            ) from err
        except subprocess.TimeoutExpired:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: {' '.join(command)} timed out "
                f"after {self.timeout}s"
            ) from None

        if result.returncode != 0:
            logger.warning(
                "OUTPUTS",
                f"{dependency.name}: terraform exited with {result.returncode}; "
                f"no outputs available",
            )
            logger.debug("OUTPUTS", result.stderr.strip())
            return None

        try:
            outputs = parse_outputs_json(result.stdout)
        except ConversionError as err:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: cannot read terraform outputs: {err}"
            ) from err

        if not outputs:
            logger.verbose("OUTPUTS", f"{dependency.name}: output set is empty")
            return None
        logger.verbose(
            "OUTPUTS", f"{dependency.name}: read {len(outputs)} output(s) from terraform"
        )
        return outputs


register_source("terraform", TerraformOutputSource)
