"""
Error mapping and CLI utilities.

The single boundary where failures become printed output and a process exit
code. Commands raise; only run_and_exit() prints and exits.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import click
import typer

from ..errors import FatalError

T = TypeVar('T')

logger = logging.getLogger(__name__)

# Exit codes by exception type name; FatalError carries its own code
EXIT_CODES = {
    "ConfigError": 1,
    "DatabaseOpenError": 1,
    "DownloadError": 1,
    "InstrumentationError": 1,
    "ValueError": 2,
    "ValidationError": 2,
}

FALLBACK_EXIT_CODE = 1

# Set in the shared click context meta once a command has reported an error
COMMAND_FAILED_KEY = "aptly_cli.command_failed"


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to exit code.

    - FatalError: its ``return_code``
    - ConfigError, DatabaseOpenError, DownloadError, InstrumentationError: 1
    - ValueError, ValidationError (bad input): 2
    - anything else: 1

    Args:
        exc: Exception to map

    Returns:
        Non-zero exit code
    """
    if isinstance(exc, FatalError):
        return exc.return_code
    return EXIT_CODES.get(type(exc).__name__, FALLBACK_EXIT_CODE)


def error_message(exc: BaseException) -> str:
    if isinstance(exc, FatalError):
        return exc.message
    return str(exc) or type(exc).__name__


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Runs ``func``; on failure prints exactly one ``ERROR: <message>`` line to
    stderr and raises typer.Exit with the mapped exit code, chained to the
    original exception. The failure is also recorded under
    ``COMMAND_FAILED_KEY`` in the click context meta, when a click context is
    active. Resource cleanup is not done here: the root callback
    registers the context shutdown, which runs after this exits.

    Args:
        func: Zero-argument command body

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With the mapped exit code if ``func`` raises
    """
    try:
        return func()
    except (typer.Exit, typer.Abort):
        raise
    except Exception as e:
        logger.debug(f"Command failed: {e!r}")
        typer.echo(f"ERROR: {error_message(e)}", err=True)
        current = click.get_current_context(silent=True)
        if current is not None:
            current.meta[COMMAND_FAILED_KEY] = True
        raise typer.Exit(code=exit_code_for(e)) from e
