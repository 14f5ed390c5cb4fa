"""Pydantic models for incoming chat messages.

The dispatcher only reads ``author.bot``, ``author.id`` and ``content``
(checks may also read ``guild``) and replies through ``reply()``. Any
transport object exposing those attributes satisfies SupportsMessage;
the models below are what the bundled Signal transport produces.
"""

from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel, Field, PrivateAttr

from .exceptions import TransportError

# async (text) -> None, bound by the transport to the message's conversation
ReplyFunction = Callable[[str], Awaitable[None]]


class Author(BaseModel):
    """Sender of a message."""

    id: str = Field(..., description="Phone number or UUID of the sender")
    name: Optional[str] = None
    bot: bool = False


class Guild(BaseModel):
    """Group conversation a message was posted in."""

    id: str
    name: Optional[str] = None
    owner_id: Optional[str] = None


class Message(BaseModel):
    """An incoming chat message with a reply capability."""

    author: Author
    content: str
    guild: Optional[Guild] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    _reply: Optional[ReplyFunction] = PrivateAttr(default=None)

    def bind_reply(self, reply: ReplyFunction) -> "Message":
        """Attach the transport's send function and return self."""
        self._reply = reply
        return self

    async def reply(self, text: str) -> None:
        """Send text back to the conversation the message came from."""
        if self._reply is None:
            raise TransportError("Message has no reply capability attached")
        await self._reply(text)


class SupportsMessage(Protocol):
    """Minimum interface the dispatcher and bundled checks rely on."""

    author: Author
    content: str
    guild: Optional[Guild]

    async def reply(self, text: str) -> None: ...
