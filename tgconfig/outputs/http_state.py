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

"""Output source reading remote Terraform state over HTTP.

The state document (format version 4) is fetched with a GET request and
its top-level ``outputs`` object is used as the output set:

    {
      "version": 4,
      "outputs": {
        "endpoint": {"value": "10.0.0.5", "type": "string"}
      },
      "resources": [...]
    }

Settings used:
    - **state_url** (str, required): URL template; ``{name}`` and
      ``{config_path}`` are replaced with the dependency's values.
      Example: "https://state.example.com/{name}.tfstate"
    - **state_token_env** (str): Environment variable holding a bearer
      token. When set and non-empty, it is sent as
      ``Authorization: Bearer <token>``.
    - **output_timeout**: Request timeout in seconds.

Outcomes:
    - 200 with outputs: the outputs
    - 404, or a state with no outputs: None, so mock outputs are used
    - any other HTTP error, network failure or malformed document:
      DependencyOutputUnavailableError
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import requests

from tgconfig.exceptions import (
    ConfigError,
    ConversionError,
    DependencyOutputUnavailableError,
)
from tgconfig.logging import get_global_logger
from tgconfig.outputs.base import OutputValue, parse_outputs_json, register_source

if TYPE_CHECKING:
    from tgconfig.decode import Dependency
    from tgconfig.settings import EvaluatorSettings


class HttpStateSource:
    """Read outputs from a Terraform state document served over HTTP."""

    def __init__(self, settings: EvaluatorSettings, base_dir: Path) -> None:
        if not settings.state_url:
            raise ConfigError("the http output source requires the 'state_url' setting")
        self.url_template = settings.state_url
        self.token_env = settings.state_token_env
        self.timeout = settings.output_timeout
        self.base_dir = base_dir

    def _url(self, dependency: Dependency) -> str:
        try:
            return self.url_template.format(
                name=dependency.name, config_path=dependency.config_path
            )
        except (KeyError, IndexError, ValueError) as err:
            raise ConfigError(
                f"invalid state_url template {self.url_template!r}: {err}"
            ) from err

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = os.environ.get(self.token_env)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            get_global_logger().debug(
                "OUTPUTS", f"Environment variable {self.token_env} not set"
            )
        return headers

    def get_outputs(self, dependency: Dependency) -> dict[str, OutputValue] | None:
        logger = get_global_logger()
        url = self._url(dependency)

        logger.verbose("OUTPUTS", f"Fetching state for {dependency.name}: GET {url}")
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.timeout)
            if response.status_code == 404:
                logger.verbose("OUTPUTS", f"{dependency.name}: no state at {url}")
                return None
            response.raise_for_status()
        except requests.exceptions.HTTPError as err:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: state request failed: "
                f"{response.status_code} {response.reason}"
            ) from err
        except requests.exceptions.RequestException as err:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: failed to fetch state: {err}"
            ) from err

        try:
            state = response.json()
        except ValueError as err:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: state is not valid JSON. "
                f"Response: {response.text[:200]}"
            ) from err
        if not isinstance(state, dict):
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: state must be a JSON object"
            )

        try:
            outputs = parse_outputs_json(state.get("outputs") or {})
        except ConversionError as err:
            raise DependencyOutputUnavailableError(
                f"dependency {dependency.name!r}: malformed state outputs: {err}"
            ) from err

        if not outputs:
            logger.verbose("OUTPUTS", f"{dependency.name}: state has no outputs")
            return None
        logger.verbose(
            "OUTPUTS", f"{dependency.name}: read {len(outputs)} output(s) from state"
        )
        return outputs


register_source("http", HttpStateSource)
