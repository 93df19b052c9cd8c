"""
tgconfig - Terragrunt configuration evaluator

A Python library and CLI that evaluates Terragrunt-style HCL configuration
files (terragrunt.hcl) into fully resolved configuration objects.

tgconfig provides:
  - Parsing of HCL documents with python-hcl2
  - Normalization of a bare ``include`` block to an empty-string label
  - A first pass that renders the outputs of ``dependency`` blocks (real
    outputs from terraform or remote state, or configured mock outputs)
  - A second pass that evaluates the whole document, including
    ``dependency.<name>.outputs.<key>`` references
  - Layered evaluator settings from .tgconfig.yaml

Quick Start
-----------
Render a configuration as JSON:

    $ tgconfig render live/prod/app/terragrunt.hcl

Check that a configuration evaluates:

    $ tgconfig validate live/prod/app/terragrunt.hcl

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    The evaluation pipeline.
values : module
    Dynamic values, records and JSON conversion.
document, normalize, decode, expressions, context : modules
    Parsing, include normalization, structural decoding, expression
    evaluation and the evaluation context.
dependency : module
    The dependency output pass.
outputs : package
    Pluggable sources of real dependency outputs.
settings : package
    YAML settings loading and merging.

Public API
----------
    from tgconfig.core import evaluate, evaluate_file
    from tgconfig.values import value_to_generic_map, synthetic_record_type
    from tgconfig.settings import load_settings
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Terragrunt configuration evaluator"

# Re-export commonly used functions for convenience
from tgconfig.core import evaluate, evaluate_file
from tgconfig.results import ResolvedConfig
from tgconfig.settings import load_settings
from tgconfig.values import Record, synthetic_record_type, value_to_generic_map

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "evaluate",
    "evaluate_file",
    "load_settings",
    "ResolvedConfig",
    "Record",
    "synthetic_record_type",
    "value_to_generic_map",
]
