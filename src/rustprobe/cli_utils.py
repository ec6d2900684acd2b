"""CLI utility functions for rustprobe.

This module provides common utilities used across CLI commands including:
- Logging setup
- Parsing of --target and --kind values
- Error handling and formatting
"""

import logging
import sys
from typing import List, Optional

from rustprobe.build import CompileKind, TargetKind


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for console output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


class KindParser:
    """Parses platform and target kind arguments."""

    @staticmethod
    def parse_compile_kind(target: Optional[str]) -> CompileKind:
        """Build a CompileKind from an optional --target value.

        Raises:
            ValueError: If the target name is empty or contains whitespace
        """
        if target is None:
            return CompileKind.host()
        return CompileKind.target(target)

    @staticmethod
    def parse_target_kind(value: str) -> TargetKind:
        """Parse a --kind value such as "bin" or "example-bin".

        Raises:
            ValueError: If the value names no known target kind
        """
        try:
            return TargetKind(value)
        except ValueError:
            choices = ", ".join(k.value for k in TargetKind)
            raise ValueError(f"unknown target kind `{value}`, expected one of: {choices}")


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def error_chain(error: BaseException) -> List[str]:
        """Messages of an exception and every exception it was raised from."""
        messages = []
        current: Optional[BaseException] = error
        while current is not None:
            messages.append(str(current))
            current = current.__cause__
        return messages

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Probe failed")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        print(file=sys.stderr)
        print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message to stderr.

        Args:
            message: Warning message
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_error(error: Exception, verbose: bool = False) -> None:
        """Print an error with its cause chain and exit with status 1.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        chain = ErrorFormatter.error_chain(error)
        message = chain[0]
        if len(chain) > 1:
            message += "\n\nCaused by:\n" + "\n".join(f"  {m}" for m in chain[1:])
        ErrorFormatter.print_error(f"error: {type(error).__name__}", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)
