"""Custom exception hierarchy for cmdwire.

Every error raised by the framework derives from CmdwireError so bot
owners can catch broadly in their error handler while still matching
precise subclasses (e.g. answering PermissionDenied with a reply and
re-raising everything else).
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for error handler decisions."""
    USER = "user"                    # Caused by the message author (bad args, no permission)
    PERMANENT = "permanent"          # Programming or setup mistake
    TRANSIENT = "transient"          # Worth retrying (network, rate limit)
    INFRASTRUCTURE = "infrastructure"  # Transport unreachable, env issues


class CmdwireError(Exception):
    """Base exception for all cmdwire errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification.
        module: Originating module name (e.g. "commands").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(CmdwireError):
    """Invalid or missing configuration (bad prefix, command without handler).

    Raised synchronously at setup and never recovered from.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )


# ---------------------------------------------------------------------------
# Check exceptions
# ---------------------------------------------------------------------------

class CheckFailure(CmdwireError):
    """A check refused a message and wants the error handler to know why."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "checks", **context
        )


class PermissionDenied(CheckFailure):
    """The message author is not allowed to run the command."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "security", **context
        )


class RateLimited(CheckFailure):
    """The message author sent too many commands in the rate limit window.

    Attributes:
        retry_after: Seconds until the oldest request leaves the window.
    """

    def __init__(
        self,
        message: str = "",
        *,
        retry_after: Optional[float] = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            message, category=category, module=module or "security", **context
        )


# ---------------------------------------------------------------------------
# Command exceptions
# ---------------------------------------------------------------------------

class CommandError(CmdwireError):
    """Error while invoking a command handler."""

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(
            message, category=category, module=module or "commands", **context
        )


class BadArgument(CommandError):
    """The argument tokens do not fit the handler's parameters.

    Attributes:
        usage: The command's usage string, for building a reply.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        usage: str = "",
        category: ErrorCategory = ErrorCategory.USER,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.usage = usage
        super().__init__(
            message, command=command, category=category, module=module, **context
        )


# ---------------------------------------------------------------------------
# Transport exceptions
# ---------------------------------------------------------------------------

class TransportError(CmdwireError):
    """Error talking to the underlying chat transport."""

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        super().__init__(
            message, category=category, module=module or "signal", **context
        )
