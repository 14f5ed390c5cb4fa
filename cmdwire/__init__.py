"""cmdwire: prefix command dispatch for chat bots."""

from .bot import Bot, default_error_handler
from .checks import allowed_senders, is_guild_owner, is_not_bot, rate_limited, run_checks
from .commands import Command, make_help_command
from .exceptions import (
    BadArgument,
    CheckFailure,
    CmdwireError,
    CommandError,
    ConfigurationError,
    PermissionDenied,
    RateLimited,
    TransportError,
)
from .message import Author, Guild, Message
from .tokenizer import split_command_line, tokenize

__version__ = "0.1.0"

__all__ = [
    "Author",
    "BadArgument",
    "Bot",
    "CheckFailure",
    "CmdwireError",
    "Command",
    "CommandError",
    "ConfigurationError",
    "Guild",
    "Message",
    "PermissionDenied",
    "RateLimited",
    "TransportError",
    "allowed_senders",
    "default_error_handler",
    "is_guild_owner",
    "is_not_bot",
    "make_help_command",
    "rate_limited",
    "run_checks",
    "split_command_line",
    "tokenize",
]
