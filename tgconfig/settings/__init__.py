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

"""Evaluator settings for tgconfig.

Settings are read from the nearest .tgconfig.yaml above the evaluated
document, layered over built-in defaults and under explicit overrides.

Example:
    ```python
    from pathlib import Path
    from tgconfig.settings import load_settings

    settings = load_settings(Path("live/prod/app"))
    print(settings.output_source)  # "mock" unless configured
    ```
"""

from .loader import DEFAULT_SETTINGS, SETTINGS_FILENAME, EvaluatorSettings, load_settings

__all__ = ["DEFAULT_SETTINGS", "SETTINGS_FILENAME", "EvaluatorSettings", "load_settings"]
