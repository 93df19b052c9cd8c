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

"""Public API return types for tgconfig.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    ```python
    from tgconfig.core import evaluate

    result = evaluate(b'terraform_binary = "tofu"\\n')
    print(result.terraform_binary)  # Attribute access, not dict access
    ```

Note:
    Decode targets (Dependency, TerraformConfig) live in tgconfig.decode
    with the logic that produces them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tgconfig.decode import Dependency, TerraformConfig


@dataclass(frozen=True)
class ResolvedConfig:
    """A fully evaluated configuration document.

    Attributes:
        terraform: The terraform block, if the document has one.
        terraform_binary: Binary to run; "" when unset.
        inputs: Evaluated inputs as plain JSON-compatible data; {} when
            unset.
        dependencies: Dependency blocks in document order, with their
            rendered outputs.
    """

    terraform: TerraformConfig | None = None
    terraform_binary: str = ""
    inputs: dict[str, Any] = field(default_factory=dict)
    dependencies: list[Dependency] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as JSON-compatible data."""
        return {
            "terraform": (
                self.terraform.model_dump(mode="json")
                if self.terraform is not None
                else None
            ),
            "terraform_binary": self.terraform_binary,
            "inputs": self.inputs,
            "dependencies": [
                dependency.model_dump(mode="json", by_alias=True)
                for dependency in self.dependencies
            ],
        }
