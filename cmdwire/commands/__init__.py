"""Command framework for cmdwire.

Provides the Command wrapper registered with a Bot, and the built-in
help command factory.
"""

from .base import Command, derive_usage
from .help import make_help_command

__all__ = [
    "Command",
    "derive_usage",
    "make_help_command",
]
