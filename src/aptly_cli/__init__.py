"""
aptly-cli: execution context for a Debian repository management tool.
"""
from .cli_context import AptlyContext, get_context
from .config import ConfigStructure
from .errors import FatalError
from .flags import ContextFlags
from .options import DependencyOptions

__version__ = "0.1.0"

__all__ = [
    "AptlyContext",
    "ConfigStructure",
    "ContextFlags",
    "DependencyOptions",
    "FatalError",
    "get_context",
]
