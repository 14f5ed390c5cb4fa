"""Built-in help command listing the registered commands and their usage."""

from typing import TYPE_CHECKING, List, Optional

from .base import Command

if TYPE_CHECKING:
    from ..bot import Bot


def format_command(prefix: str, command: Command) -> str:
    """One help line: ``<prefix><name> <usage>``."""
    line = f"{prefix}{command.name}"
    if command.usage:
        line += f" {command.usage}"
    return line


def make_help_command(bot: "Bot", name: str = "help") -> Command:
    """Build a help Command bound to ``bot``.

    Without arguments it lists every command once, in registration
    order. With a command name (prefix optional) it shows just that one.
    """
    async def help(message, command_name: Optional[str] = None):
        lines: List[str] = []
        if command_name:
            if command_name.startswith(bot.prefix):
                command_name = command_name[len(bot.prefix):]
            matches = bot.get_commands(command_name)
            if not matches:
                await message.reply(f"Unknown command: {bot.prefix}{command_name}")
                return
            lines.append(format_command(bot.prefix, matches[0]))
        else:
            seen = set()
            for command in bot.commands:
                if command.name not in seen:
                    seen.add(command.name)
                    lines.append(format_command(bot.prefix, command))
        await message.reply("\n".join(lines))

    return Command(help, name=name, usage="[command]")
