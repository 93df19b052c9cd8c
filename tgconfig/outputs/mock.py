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

"""Output source that never has real outputs.

This is the default. Every dependency with mock_outputs renders its mocks,
and no external process or service is contacted.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from tgconfig.outputs.base import OutputValue, register_source

if TYPE_CHECKING:
    from tgconfig.decode import Dependency
    from tgconfig.settings import EvaluatorSettings


class MockSource:
    """Output source reporting no real outputs for any dependency."""

    def __init__(self, settings: EvaluatorSettings, base_dir: Path) -> None:
        self.settings = settings
        self.base_dir = base_dir

    def get_outputs(self, dependency: Dependency) -> dict[str, OutputValue] | None:
        return None


register_source("mock", MockSource)
