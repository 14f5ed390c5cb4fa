"""Signal transport for cmdwire.

Connects to the signal-cli REST API over WebSocket, turns each incoming
envelope into a Message and hands it to the Bot's dispatcher in its own
asyncio task, so a slow command never blocks the receive loop. Replies
go out through ``POST /v2/send``.

Key classes:
    SignalClient: Owns the HTTP session, account discovery, the receive
        loop and outgoing messages.
    Envelope: Pydantic model of the parts of a signal-cli envelope used here.

Key functions:
    log_task_exception: Done-callback logging errors from dispatch tasks.
"""

import asyncio
import base64
import hashlib
import json
import time as _time
from collections import OrderedDict
from datetime import datetime
from functools import partial
from typing import TYPE_CHECKING, Optional, Set

import aiohttp
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import Config, get_config
from .exceptions import TransportError
from .message import Author, Guild, Message
from .security import mask, sanitize_input

if TYPE_CHECKING:
    from .bot import Bot

logger = structlog.get_logger("cmdwire.signal")

DEDUP_WINDOW = 60  # seconds an envelope hash is remembered
MAX_RECONNECT_DELAY = 300


def log_task_exception(task: asyncio.Task):
    """Log exceptions from fire-and-forget tasks instead of silently swallowing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error(
            "dispatch_task_failed",
            error=str(exc),
            exc_type=type(exc).__name__,
            exc_info=exc,
        )


class _SignalModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GroupInfo(_SignalModel):
    group_id: str = Field(..., alias="groupId")
    group_name: Optional[str] = Field(default=None, alias="groupName")


class DataMessage(_SignalModel):
    message: Optional[str] = None
    group_info: Optional[GroupInfo] = Field(default=None, alias="groupInfo")


class SentMessage(_SignalModel):
    destination: Optional[str] = None
    destination_number: Optional[str] = Field(default=None, alias="destinationNumber")
    message: Optional[str] = None
    group_info: Optional[GroupInfo] = Field(default=None, alias="groupInfo")


class SyncMessage(_SignalModel):
    sent_message: Optional[SentMessage] = Field(default=None, alias="sentMessage")


class Envelope(_SignalModel):
    """The subset of a signal-cli envelope the transport reads."""

    source: Optional[str] = None
    source_number: Optional[str] = Field(default=None, alias="sourceNumber")
    source_uuid: Optional[str] = Field(default=None, alias="sourceUuid")
    source_name: Optional[str] = Field(default=None, alias="sourceName")
    timestamp: int = 0
    data_message: Optional[DataMessage] = Field(default=None, alias="dataMessage")
    sync_message: Optional[SyncMessage] = Field(default=None, alias="syncMessage")

    @property
    def sender(self) -> Optional[str]:
        return self.source or self.source_number or self.source_uuid


def group_recipient(group_id: str) -> str:
    """signal-cli REST recipient id for a group's internal id."""
    return "group." + base64.b64encode(group_id.encode()).decode()


class SignalClient:
    """Signal transport feeding a Bot.

    Args:
        bot: Dispatcher receiving every parsed message.
        config: Config instance; defaults to the global config.
    """

    def __init__(self, bot: "Bot", config: Optional[Config] = None):
        self.bot = bot
        self.config = config or get_config()
        self.session: Optional[aiohttp.ClientSession] = None
        self.running = False
        self.account: Optional[str] = self.config.account
        self._processed_messages = OrderedDict()  # Dedup: msg_hash -> timestamp
        self._tasks: Set[asyncio.Task] = set()

    async def start(self):
        """Open the HTTP session and discover the account if not configured."""
        self.session = aiohttp.ClientSession()
        self.running = True
        if not self.account:
            await self._get_account()
        logger.info("signal_client_started", account=self.account)

    async def stop(self):
        """Cancel in-flight dispatches and close the HTTP session."""
        if not self.running:
            return
        self.running = False
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self.session:
            await self.session.close()
        logger.info("signal_client_stopped")

    async def _get_account(self):
        """Get the registered Signal account with retry."""
        max_attempts = 12
        base_delay = 5
        max_delay = 15

        for attempt in range(1, max_attempts + 1):
            try:
                url = f"{self.config.signal_api_url}/v1/accounts"
                async with self.session.get(url, timeout=aiohttp.ClientTimeout(total=10)) as resp:
                    if resp.status == 200:
                        accounts = await resp.json()
                        if accounts:
                            acct = accounts[0]
                            self.account = acct if isinstance(acct, str) else acct.get("number")
                            logger.info("account_found", account=self.account)
                        else:
                            logger.warning("no_accounts_registered")
                        return
                    logger.warning("account_request_failed", status=resp.status)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                delay = min(base_delay * attempt, max_delay)
                logger.warning(
                    "account_request_error", error=str(e),
                    attempt=attempt, retry_delay=delay,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(delay)

        logger.error("account_request_failed_all_attempts", attempts=max_attempts)

    async def send_message(self, recipient: str, message: str):
        """Send a message to a phone number, UUID or ``group.<id>`` recipient.

        Raises:
            TransportError: If the API rejects the message or is unreachable.
        """
        if self.session is None:
            raise TransportError("Signal client not started")
        payload = {
            "message": message,
            "number": self.account,
            "recipients": [recipient],
        }
        url = f"{self.config.signal_api_url}/v2/send"
        try:
            async with self.session.post(url, json=payload) as resp:
                if resp.status != 201:
                    body = await resp.text()
                    logger.warning("send_failed", status=resp.status, body=body[:200])
                    raise TransportError(
                        "Signal API rejected the message", status=resp.status
                    )
        except aiohttp.ClientError as e:
            logger.error("send_error", error=str(e))
            raise TransportError(f"Signal API unreachable: {e}") from e

    def parse_envelope(self, data: dict) -> Optional[Message]:
        """Build a Message from a received JSON-RPC payload.

        Returns None for receipts, typing notices, empty messages and
        anything that doesn't validate, including payloads that are not JSON
        objects.
        """
        raw = data.get("envelope", {}) if isinstance(data, dict) else None
        if not isinstance(raw, dict):
            logger.warning("invalid_payload", payload_type=type(data).__name__)
            return None
        try:
            envelope = Envelope.model_validate(raw)
        except ValidationError as e:
            logger.warning("invalid_envelope", error=str(e))
            return None

        sender = envelope.sender
        text = None
        group = None
        if envelope.data_message:
            text = envelope.data_message.message
            group = envelope.data_message.group_info
        elif envelope.sync_message and envelope.sync_message.sent_message:
            # Sent from another device of the bot's own account
            sent = envelope.sync_message.sent_message
            text = sent.message
            group = sent.group_info
            sender = self.account or sender

        if not text or not text.strip() or not sender:
            return None

        guild = None
        if group is not None:
            guild = Guild(
                id=group.group_id,
                name=group.group_name,
                owner_id=self.config.group_owners.get(group.group_id),
            )

        message = Message(
            author=Author(
                id=sender,
                name=envelope.source_name,
                bot=bool(self.account) and sender == self.account,
            ),
            content=sanitize_input(text.strip()),
            guild=guild,
            timestamp=(
                datetime.fromtimestamp(envelope.timestamp / 1000)
                if envelope.timestamp else datetime.now()
            ),
        )
        recipient = group_recipient(guild.id) if guild else sender
        return message.bind_reply(partial(self.send_message, recipient))

    def _is_duplicate(self, data: dict, message: Message) -> bool:
        """Remember recent envelopes; True if this one was already seen."""
        timestamp = data.get("envelope", {}).get("timestamp", 0)
        msg_hash = hashlib.sha256(
            f"{timestamp}:{message.author.id}:{message.content}".encode()
        ).hexdigest()
        if msg_hash in self._processed_messages:
            logger.debug("duplicate_message_skipped", timestamp=timestamp)
            return True
        self._processed_messages[msg_hash] = _time.time()

        cutoff = _time.time() - DEDUP_WINDOW
        while self._processed_messages:
            oldest_key, oldest_time = next(iter(self._processed_messages.items()))
            if oldest_time < cutoff:
                self._processed_messages.pop(oldest_key)
            else:
                break
        return False

    def dispatch(self, message: Message) -> asyncio.Task:
        """Hand a message to the bot in its own task."""
        task = asyncio.create_task(self.bot.handle_incoming_message(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(log_task_exception)
        return task

    async def _handle_signal_message(self, data: dict) -> Optional[asyncio.Task]:
        """Parse one payload and dispatch it unless it is a duplicate."""
        message = self.parse_envelope(data)
        if message is None or self._is_duplicate(data, message):
            return None
        logger.info(
            "processing_message",
            source=mask(message.author.id),
            length=len(message.content),
            group=message.guild is not None,
        )
        return self.dispatch(message)

    async def poll_messages(self):
        """Connect via WebSocket to receive messages (json-rpc mode)."""
        if not self.account:
            logger.error("no_account_for_polling")
            return

        ws_base = self.config.signal_api_url.replace(
            "http://", "ws://"
        ).replace("https://", "wss://")
        ws_url = f"{ws_base}/v1/receive/{self.account}"

        reconnect_delay = 5

        while self.running:
            try:
                logger.info("websocket_connecting", url=ws_url)
                async with self.session.ws_connect(ws_url, heartbeat=30) as ws:
                    logger.info("websocket_connected")
                    reconnect_delay = 5
                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            try:
                                data = json.loads(msg.data)
                            except json.JSONDecodeError:
                                logger.warning("invalid_json", data=msg.data[:100])
                                continue
                            await self._handle_signal_message(data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            logger.error("websocket_error", error=str(ws.exception()))
                            break
                        elif msg.type == aiohttp.WSMsgType.CLOSED:
                            logger.info("websocket_closed")
                            break

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("websocket_exception", error=str(e))
                await asyncio.sleep(reconnect_delay)
                reconnect_delay = min(reconnect_delay * 2, MAX_RECONNECT_DELAY)

    async def run(self):
        """Main run loop: start, poll messages, stop on exit."""
        await self.start()

        try:
            await self.poll_messages()
        finally:
            await self.stop()
