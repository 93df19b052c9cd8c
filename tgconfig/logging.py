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

"""Print-based logging for tgconfig.

Messages are grouped by a short tag naming the pipeline stage (PARSE,
NORMALIZE, DEPENDENCY, OUTPUTS, DECODE, SETTINGS).

The logger supports four output levels:
- Step: Always printed (for progress indicators)
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)
- Warning: Always printed, to stderr unless a stream is given

Example:
    Enable verbose output for library calls:
        ```python
        from tgconfig.logging import get_logger, set_global_logger

        set_global_logger(get_logger(verbose=True))
        ```

Note:
    The default global logger is silent, so library functions print
    nothing unless configured. The CLI installs a DefaultLogger when a
    command runs.
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a numbered pipeline step, e.g. "[2/4] Resolving...".

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "OUTPUTS", "DECODE").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message."""
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning that does not stop evaluation."""
        ...


class DefaultLogger:
    """Logger that prints step, verbose and debug messages to stdout.

    Args:
        verbose: If True, print verbose messages.
        debug: If True, print debug messages (implies verbose).
        stream: Where every message goes. The CLI passes sys.stderr for
            commands whose stdout is machine-readable.
    """

    def __init__(
        self,
        verbose: bool = False,
        debug: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self._verbose = verbose or debug
        self._debug = debug
        self._stream = stream

    def _write(self, line: str, stream: TextIO | None = None) -> None:
        print(line, file=stream or self._stream or sys.stdout)

    def step(self, step: int, total: int, message: str) -> None:
        self._write(f"[{step}/{total}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            self._write(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            self._write(f"[DEBUG] [{prefix}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        self._write(f"[WARNING] [{prefix}] {message}", self._stream or sys.stderr)


class SilentLogger:
    """Logger that suppresses all output.

    Useful for programmatic usage when output is not desired.
    """

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Create a logger for the given verbosity.

    Args:
        verbose: Show verbose messages.
        debug: Show debug messages (implies verbose).

    Returns:
        A DefaultLogger configured with the given verbosity.

    """
    return DefaultLogger(verbose=verbose, debug=debug)


def set_global_logger(logger: Logger) -> None:
    """Install the logger returned by get_global_logger()."""
    global _global_logger
    _global_logger = logger


def get_global_logger() -> Logger:
    return _global_logger
