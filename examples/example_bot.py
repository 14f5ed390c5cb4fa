"""Example cmdwire bot.

    you   > !hello
    bot   > Hii
    you   > !specialCommand
    bot   > Only the group owner can use this command
    owner > !specialCommand
    bot   > The owner : Nothing

Run with ``python examples/example_bot.py`` after filling in
config/settings.yaml.
"""

import structlog

from cmdwire import Command, PermissionDenied, is_guild_owner, make_help_command
from cmdwire.exceptions import BadArgument, CmdwireError
from cmdwire.main import build_bot, run

logger = structlog.get_logger("cmdwire.bot")


async def error_handler(message, error):
    """Answer permission, usage and rate limit errors; re-raise the rest."""
    if isinstance(error, CmdwireError) and error.is_retryable:
        await message.reply(error.message or "Busy. Try again in a moment.")
    elif isinstance(error, PermissionDenied):
        await message.reply(error.message or "Default Error Message")
    elif isinstance(error, BadArgument):
        await message.reply(f"Usage: {error.command} {error.usage}")
    else:
        logger.error("command_failed", error=str(error), exc_type=type(error).__name__)
        raise error


async def hello(msg):
    await msg.reply("Hii")


async def hidden(msg, arg1=None):
    if not arg1:
        arg1 = "Nothing"
    await msg.reply(f"The owner : {arg1}")


bot = build_bot(error_handler=error_handler)

hidden_command = Command(hidden, "specialCommand", "", [])
hidden_command.add_check(is_guild_owner)

bot.add_command(Command(hello), hidden_command)
bot.add_command(make_help_command(bot))


if __name__ == "__main__":
    run(bot)
