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

"""Logging interface for fslxagent.

Library modules write progress through this interface instead of printing
directly, so they stay usable without the CLI. Functions take an optional
``logger`` argument and fall back to the global logger.

Output levels:
- Step: always printed, ``[n/total] message``
- Warning: always printed, ``[WARNING] [PREFIX] message``
- Verbose: printed with ``--verbose``
- Debug: printed with ``--debug`` (implies verbose)

Secrets:
    RedactingLogger wraps another logger and masks known secret values in
    every message before it is emitted. The CLI wraps its logger with the
    share secret so that no code path can print it by accident.

Example:
    ```python
    from fslxagent.logging import RedactingLogger, get_logger, set_global_logger

    logger = RedactingLogger(get_logger(verbose=True), secrets=[config.secret])
    set_global_logger(logger)
    ```

Note:
    The default global logger is silent, so library functions won't print
    anything unless the caller configures one.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

MASK = "********"


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator (1-based step of total)."""
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Print a non-fatal problem the operator should act on."""
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a progress detail (e.g., prefix "REGISTRY", "HTTP")."""
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a diagnostic detail."""
        ...


class DefaultLogger:
    """Print to stdout, honouring verbose and debug flags."""

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self._verbose = verbose or debug
        self._debug = debug

    def step(self, step: int, total: int, message: str) -> None:
        print(f"[{step}/{total}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        print(f"[WARNING] [{prefix}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            print(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            print(f"[{prefix}] {message}")


class SilentLogger:
    """Logger that suppresses all output."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


class RedactingLogger:
    """Logger wrapper that masks secret values in every message.

    Args:
        inner: Logger that receives the masked messages.
        secrets: Values to mask. Empty values are ignored.
    """

    def __init__(self, inner: Logger, secrets: Iterable[str] = ()) -> None:
        self._inner = inner
        # Longest first so a secret containing another is masked whole.
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def _mask(self, message: str) -> str:
        for secret in self._secrets:
            message = message.replace(secret, MASK)
        return message

    def step(self, step: int, total: int, message: str) -> None:
        self._inner.step(step, total, self._mask(message))

    def warning(self, prefix: str, message: str) -> None:
        self._inner.warning(prefix, self._mask(message))

    def verbose(self, prefix: str, message: str) -> None:
        self._inner.verbose(prefix, self._mask(message))

    def debug(self, prefix: str, message: str) -> None:
        self._inner.debug(prefix, self._mask(message))


# Global logger instance (defaults to silent)
_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Return a stdout logger with the given verbosity."""
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Replace the logger used by functions called without one."""
    global _global_logger
    _global_logger = logger
