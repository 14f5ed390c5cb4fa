"""Command dispatcher for cmdwire.

Receives incoming messages from a transport, filters out anything that
isn't a command, splits the command line into a verb and arguments,
runs the global checks, then invokes every registered Command whose
name matches the verb and whose own checks pass. Errors raised while
checking or invoking are handed to the bot's error handler.

Key classes:
    Bot: Owns the prefix, global checks, command registry and error
        handler for one running bot.

Key functions:
    default_error_handler: Re-raises the error it is given.
"""

import inspect
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

import structlog

from .checks import Check, run_checks
from .commands.base import Command, Handler
from .exceptions import ConfigurationError
from .message import SupportsMessage
from .security import mask
from .tokenizer import split_command_line

logger = structlog.get_logger("cmdwire.bot")

# (message, error) -> None, may be sync or async
ErrorHandler = Callable[[Any, BaseException], Union[Awaitable[None], None]]


async def default_error_handler(message: SupportsMessage, error: BaseException) -> None:
    """Re-raise the error. Replace it with a handler that replies per error type."""
    raise error


class Bot:
    """Command dispatcher with a global check chain and command registry.

    The transport calls ``handle_incoming_message`` (or its alias
    ``on_message``) once per inbound message. State is read-only after
    setup apart from the append operations, so concurrent dispatches
    don't interfere.

    Args:
        prefix: String marking a message as a command. Required, no spaces.
        error_handler: Called with (message, error) for errors raised by
            checks and handlers. Defaults to re-raising.
        commands: Initial commands, in registration order.
        checks: Initial global checks, in evaluation order.
        **options: Transport options, kept unchanged in ``self.options``.

    Raises:
        ConfigurationError: If the prefix is missing or contains a space.
    """

    def __init__(
        self,
        prefix: str,
        *,
        error_handler: Optional[ErrorHandler] = None,
        commands: Optional[Iterable[Command]] = None,
        checks: Optional[Iterable[Check]] = None,
        **options: Any,
    ):
        if not prefix or " " in prefix:
            raise ConfigurationError(
                "The bot prefix can't contain a space and must be defined",
                setting_name="prefix",
            )
        self.prefix = prefix
        self.error_handler: ErrorHandler = error_handler or default_error_handler
        self.commands: List[Command] = list(commands or [])
        self.checks: List[Check] = list(checks or [])
        self.options = options

    def add_check(self, *checks: Check) -> None:
        """Append one or more global checks, keeping call order."""
        self.checks.extend(checks)

    def add_command(self, *commands: Command) -> None:
        """Register one or more commands, keeping call order.

        Names need not be unique; every command matching a verb runs.
        """
        for command in commands:
            if self.get_commands(command.name):
                logger.debug("command_name_shared", command=command.name)
            self.commands.append(command)

    def command(
        self,
        name: Optional[str] = None,
        usage: Optional[str] = None,
        checks: Optional[Iterable[Check]] = None,
    ) -> Callable[[Handler], Command]:
        """Decorator registering a function as a Command.

        Example::

            @bot.command(usage="<who>")
            async def greet(message, who="world"):
                await message.reply(f"Hello {who}")
        """
        def decorator(handler: Handler) -> Command:
            command = Command(handler, name=name, usage=usage, checks=checks)
            self.add_command(command)
            return command
        return decorator

    def get_commands(self, name: str) -> List[Command]:
        """All registered commands invoked by ``name``, in registration order."""
        return [command for command in self.commands if command.name == name]

    async def handle_incoming_message(self, message: SupportsMessage) -> None:
        """Entry point for the transport's message event.

        Ignores messages written by bots and messages not starting with
        the prefix.
        """
        if message.author.bot or not message.content.startswith(self.prefix):
            return
        await self._command_handler(message)

    on_message = handle_incoming_message

    async def _command_handler(self, message: SupportsMessage) -> None:
        """Run the global checks, then every matching command."""
        name, args = split_command_line(message.content, self.prefix)
        logger.debug(
            "command_routing",
            command=name,
            arg_count=len(args),
            sender=mask(message.author.id),
        )

        try:
            if not run_checks(self.checks, message):
                logger.info("global_check_refused", command=name, sender=mask(message.author.id))
                return
        except Exception as e:
            await self._handle_error(message, e, command=name, stage="global_check")
            return

        matched = False
        for command in list(self.commands):
            if command.name != name:
                continue
            matched = True
            try:
                if not command.perform_checks(message):
                    logger.info(
                        "command_check_refused",
                        command=name,
                        sender=mask(message.author.id),
                    )
                    continue
            except Exception as e:
                await self._handle_error(message, e, command=name, stage="command_check")
                continue

            try:
                await command.invoke(message, args)
            except Exception as e:
                await self._handle_error(message, e, command=name, stage="invoke")

        if not matched:
            logger.debug("command_not_found", command=name)

    async def _handle_error(
        self,
        message: SupportsMessage,
        error: Exception,
        *,
        command: str,
        stage: str,
    ) -> None:
        """Pass an error to the error handler, awaiting it when async."""
        logger.debug(
            "command_error",
            command=command,
            stage=stage,
            error=str(error),
            exc_type=type(error).__name__,
            retryable=getattr(error, "is_retryable", False),
        )
        result = self.error_handler(message, error)
        if inspect.isawaitable(result):
            await result
