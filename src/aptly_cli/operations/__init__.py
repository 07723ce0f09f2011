"""
Operations package - error boundary between CLI commands and the context.

Centralizes exception-to-exit-code mapping so CLI commands stay thin.
"""
from .mappers import COMMAND_FAILED_KEY, exit_code_for, run_and_exit

__all__ = ["COMMAND_FAILED_KEY", "exit_code_for", "run_and_exit"]
