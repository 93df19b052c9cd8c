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

"""Command-line interface for tgconfig.

Commands:

    render: Evaluate a configuration and print it as JSON
    validate: Evaluate a configuration and report success or the error

Example:
    Render with mock outputs (the default):
        ```bash
        $ tgconfig render live/prod/app/terragrunt.hcl
        ```

    Render with real outputs from terraform:
        ```bash
        $ tgconfig render live/prod/app/terragrunt.hcl --output-source terraform
        ```

    Check that mocks may be used for plan:
        ```bash
        $ tgconfig validate live/prod/app/terragrunt.hcl --terraform-command plan
        ```

Exit Codes:

- 0: Success
- 1: Error (syntax, decode, conversion, dependency or settings failure)

Note:
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode.

"""

from __future__ import annotations

import argparse
from importlib.metadata import version
import json
from pathlib import Path
import sys

from tgconfig.core import evaluate_file
from tgconfig.exceptions import ConfigError, TGConfigError
from tgconfig.logging import DefaultLogger, get_logger, set_global_logger
from tgconfig.outputs import available_sources
from tgconfig.results import ResolvedConfig
from tgconfig.settings import load_settings


def _report_error(err: Exception, args: argparse.Namespace) -> int:
    print(f"Error: {err}", file=sys.stderr)
    if args.verbose or getattr(args, "debug", False):
        import traceback

        traceback.print_exc()
    return 1


def _evaluate(args: argparse.Namespace) -> ResolvedConfig:
    config_path = Path(args.config).resolve()
    if not config_path.is_file():
        raise ConfigError(f"Configuration file not found: {config_path}")
    settings = load_settings(
        config_path.parent,
        overrides={
            "output_source": args.output_source,
            "terraform_command": args.terraform_command,
        },
    )
    return evaluate_file(config_path, settings)


def cmd_render(args: argparse.Namespace) -> int:
    """Handler for 'tgconfig render' command.

    Evaluates the configuration and prints the resolved configuration as
    JSON on stdout. Progress and errors go to stderr.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    # stdout carries the JSON document
    logger = DefaultLogger(verbose=args.verbose, debug=args.debug, stream=sys.stderr)
    set_global_logger(logger)

    try:
        result = _evaluate(args)
    except TGConfigError as err:
        return _report_error(err, args)

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'tgconfig validate' command."""
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    config_path = Path(args.config).resolve()
    print(f"Validating configuration: {config_path}")
    print()

    try:
        result = _evaluate(args)
    except TGConfigError as err:
        print(f"[FAILED] {type(err).__name__}")
        return _report_error(err, args)

    print(f"Terraform Source:  {result.terraform.source if result.terraform else '-'}")
    print(f"Dependencies:      {len(result.dependencies)}")
    print(f"Inputs:            {len(result.inputs)}")
    print()
    print("[SUCCESS] Configuration is valid!")
    return 0


def _add_evaluation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "config",
        help="Path to the configuration file (terragrunt.hcl)",
    )
    parser.add_argument(
        "--output-source",
        choices=available_sources(),
        default=None,
        help="Where real dependency outputs come from (default: from settings, else mock)",
    )
    parser.add_argument(
        "--terraform-command",
        default=None,
        help="Terraform command being run, checked against mock_outputs_allowed_terraform_commands",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the tgconfig CLI.

    This function is registered as the 'tgconfig' console script in
    pyproject.toml.
    """
    parser = argparse.ArgumentParser(
        prog="tgconfig",
        description="tgconfig - evaluate Terragrunt configuration files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"tgconfig {version('tgconfig')}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'render' command
    parser_render = subparsers.add_parser(
        "render",
        help="Evaluate a configuration and print it as JSON",
        description="Evaluate a configuration file, including dependency outputs, and print the result as JSON.",
    )
    _add_evaluation_arguments(parser_render)
    parser_render.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )
    parser_render.set_defaults(func=cmd_render)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Check that a configuration evaluates",
        description="Evaluate a configuration file and report success or the first error.",
    )
    _add_evaluation_arguments(parser_validate)
    parser_validate.set_defaults(func=cmd_validate)

    # Parse and dispatch
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
