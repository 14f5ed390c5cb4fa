"""Command objects for the dispatcher registry.

A Command wraps a handler function with the name it is invoked by, a
usage string for help output, and an ordered list of checks that must
all pass before the handler runs.

Handler signature: ``handler(message, *args)`` where args are the
string tokens of the command line. Handlers may be plain functions or
coroutine functions; awaitable results are awaited.

Key classes:
    Command: Named, checkable handler wrapper.

Key functions:
    derive_usage: Build a usage string from a handler's parameters.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional, Sequence

import structlog

from ..checks import Check, run_checks
from ..exceptions import BadArgument, ConfigurationError

if TYPE_CHECKING:
    from ..message import SupportsMessage

logger = structlog.get_logger("cmdwire.commands")

Handler = Callable[..., Any]

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def derive_usage(handler: Handler) -> str:
    """Return the handler's positional parameter names after the first.

    ``async def hidden(msg, owner, *notes)`` gives ``"owner notes..."``.
    Returns an empty string when the signature can't be introspected.
    """
    try:
        params = list(inspect.signature(handler).parameters.values())
    except (TypeError, ValueError):
        return ""

    names = []
    for param in params[1:]:
        if param.kind in _POSITIONAL:
            names.append(param.name)
        elif param.kind == inspect.Parameter.VAR_POSITIONAL:
            names.append(f"{param.name}...")
    return " ".join(names)


class Command:
    """A named handler plus the checks gating it.

    Args:
        handler: Function called as ``handler(message, *args)``.
        name: Name the command is invoked by. Falls back to the
            handler's ``__name__`` when empty or containing a space.
        usage: Argument description for help output. Derived from the
            handler's parameters when empty.
        checks: Predicates over the message, evaluated in order.

    Raises:
        ConfigurationError: If no handler is given.
    """

    def __init__(
        self,
        handler: Optional[Handler],
        name: Optional[str] = None,
        usage: Optional[str] = None,
        checks: Optional[Iterable[Check]] = None,
    ):
        if handler is None:
            raise ConfigurationError(
                "A function must be given to the command", setting_name="handler"
            )
        if not name or " " in name:
            name = getattr(handler, "__name__", type(handler).__name__)
        if not usage:
            usage = derive_usage(handler)

        self.name: str = name
        self.usage: str = usage
        self.checks: List[Check] = list(checks or [])
        self.handler = handler

    def __repr__(self) -> str:
        return f"Command(name={self.name!r}, usage={self.usage!r})"

    def add_check(self, *checks: Check) -> None:
        """Append one or more checks, keeping call order."""
        self.checks.extend(checks)

    def perform_checks(self, message: "SupportsMessage") -> bool:
        """Run this command's checks in order; False on the first refusal.

        Exceptions raised by a check are not caught here.
        """
        return run_checks(self.checks, message)

    async def invoke(self, message: "SupportsMessage", args: Sequence[str]) -> Any:
        """Call the handler with the message and the argument tokens.

        Raises:
            BadArgument: If the tokens don't fit the handler's parameters.
        """
        try:
            signature = inspect.signature(self.handler)
        except (TypeError, ValueError):
            # Not introspectable; the call itself will complain
            signature = None

        if signature is not None:
            try:
                signature.bind(message, *args)
            except TypeError as e:
                raise BadArgument(
                    f"Wrong arguments for {self.name}: {e}",
                    command=self.name,
                    usage=self.usage,
                    given=len(args),
                ) from e

        logger.debug("command_invoke", command=self.name, arg_count=len(args))
        result = self.handler(message, *args)
        if inspect.isawaitable(result):
            result = await result
        return result
