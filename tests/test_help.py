"""Tests for the built-in help command."""

from unittest.mock import AsyncMock

import pytest

from cmdwire.bot import Bot
from cmdwire.commands import Command, make_help_command
from cmdwire.message import Author, Message


async def hello(msg):
    pass


async def hidden(msg, arg1=None):
    pass


def _make_bot():
    bot = Bot("$")
    bot.add_command(Command(hello), Command(hidden, name="specialCommand"))
    bot.add_command(Command(hello))
    bot.add_command(make_help_command(bot))
    return bot


def _make_message(content):
    reply = AsyncMock()
    message = Message(author=Author(id="+15550002222"), content=content).bind_reply(reply)
    return message, reply


def test_help_command_defaults():
    command = make_help_command(Bot("!"))
    assert command.name == "help"
    assert command.usage == "[command]"


@pytest.mark.asyncio
async def test_help_lists_each_command_once():
    bot = _make_bot()
    message, reply = _make_message("$help")
    await bot.handle_incoming_message(message)
    reply.assert_awaited_once_with(
        "$hello\n$specialCommand arg1\n$help [command]"
    )


@pytest.mark.asyncio
async def test_help_for_single_command():
    bot = _make_bot()
    message, reply = _make_message("$help specialCommand")
    await bot.handle_incoming_message(message)
    reply.assert_awaited_once_with("$specialCommand arg1")


@pytest.mark.asyncio
async def test_help_accepts_prefixed_name():
    bot = _make_bot()
    message, reply = _make_message("$help $hello")
    await bot.handle_incoming_message(message)
    reply.assert_awaited_once_with("$hello")


@pytest.mark.asyncio
async def test_help_unknown_command():
    bot = _make_bot()
    message, reply = _make_message("$help nope")
    await bot.handle_incoming_message(message)
    reply.assert_awaited_once_with("Unknown command: $nope")


def test_help_custom_name():
    command = make_help_command(Bot("!"), name="commands")
    assert command.name == "commands"
