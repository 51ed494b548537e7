"""CLI utility functions for zeromq-src.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting
- Banner output

All human-facing output goes to stderr; stdout carries only the metadata
protocol (or the JSON plan).
"""

import logging
import sys
from typing import Optional, TextIO


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger once for a CLI run.

    Args:
        verbose: Log debug messages instead of warnings and above
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Configuration error", "Build failed")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        print(file=sys.stderr)
        print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        print(file=sys.stderr)
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def print_warning(message: str) -> None:
        print(file=sys.stderr)
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def handle_configuration_error(error: Exception) -> None:
        """Report an invalid or unsupported configuration and exit with status 2."""
        ErrorFormatter.print_error("Configuration error", str(error))
        sys.exit(2)

    @staticmethod
    def handle_build_error(error: Exception) -> None:
        """Report a toolchain, probe or artifact failure and exit with status 1."""
        ErrorFormatter.print_error("Build failed", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)


class BannerFormatter:
    """Formats and displays banner messages with borders."""

    DEFAULT_WIDTH = 80
    DEFAULT_BORDER_CHAR = "="

    @staticmethod
    def format_banner(
        message: str,
        width: int = DEFAULT_WIDTH,
        border_char: str = DEFAULT_BORDER_CHAR,
        center: bool = True,
    ) -> str:
        """Format a banner message with top and bottom borders.

        Args:
            message: The message to display (can be multi-line)
            width: Width of the banner in characters (default: 80)
            border_char: Character to use for borders (default: "=")
            center: Whether to center text (default: True)

        Returns:
            Formatted banner string with borders
        """
        lines = message.split("\n")
        border = border_char * width
        formatted_lines = [border]

        for line in lines:
            if center:
                padding = (width - len(line)) // 2
                formatted_line = " " * padding + line
            else:
                formatted_line = "  " + line

            formatted_lines.append(formatted_line)

        formatted_lines.append(border)
        return "\n".join(formatted_lines)

    @staticmethod
    def print_banner(
        message: str,
        width: int = DEFAULT_WIDTH,
        border_char: str = DEFAULT_BORDER_CHAR,
        center: bool = True,
        stream: Optional[TextIO] = None,
    ) -> None:
        """Print a banner message with top and bottom borders to stderr."""
        stream = stream or sys.stderr
        print(file=stream)
        print(BannerFormatter.format_banner(message, width=width, border_char=border_char, center=center), file=stream)
