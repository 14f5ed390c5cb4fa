"""Entry point helpers for running a cmdwire bot on Signal.

Initializes logging in two phases (defaults then config-driven), wires
the Bot to a SignalClient, and runs the event loop with graceful
shutdown on SIGTERM/SIGINT.

Key functions:
    build_bot: Create a Bot from config with the configured global checks.
    main: Async entry point running a Bot until a shutdown signal.
    run: Synchronous wrapper that calls asyncio.run(main(bot)).
"""

import asyncio
import signal
import sys
from typing import Any, Optional

import structlog

from .bot import Bot
from .checks import allowed_senders, rate_limited
from .config import Config, get_config
from .logging_config import setup_logging


def build_bot(config: Optional[Config] = None, **kwargs: Any) -> Bot:
    """Create a Bot using the configured prefix and global checks.

    Installs an allow-list check when ``allowed_numbers`` is set and a
    per-sender rate limit check unless disabled. Extra keyword
    arguments go to the Bot constructor.
    """
    config = config or get_config()
    bot = Bot(config.prefix, **kwargs)
    if config.allowed_numbers:
        bot.add_check(allowed_senders(config.allowed_numbers))
    if config.rate_limit_enabled:
        bot.add_check(
            rate_limited(
                max_requests=config.rate_limit_max_requests,
                window=config.rate_limit_window,
            )
        )
    return bot


async def main(bot: Bot, config: Optional[Config] = None):
    """Run ``bot`` on Signal until SIGTERM/SIGINT."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("cmdwire")

    config = config or get_config()
    config.validate()

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    # Import here to ensure logging is configured first
    from .signal_client import SignalClient

    client = SignalClient(bot, config)
    logger.info("cmdwire_starting", prefix=bot.prefix, commands=len(bot.commands))

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    client_task = asyncio.create_task(client.run())
    shutdown_task = asyncio.create_task(shutdown_event.wait())
    try:
        await asyncio.wait(
            {client_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
    except Exception as e:
        logger.error("bot_error", error=str(e))
        raise
    finally:
        shutdown_task.cancel()
        client_task.cancel()
        try:
            await client_task
        except asyncio.CancelledError:
            pass
        await client.stop()
        logger.info("cmdwire_stopped")


def run(bot: Bot, config: Optional[Config] = None):
    """Synchronous entry point for bot scripts."""
    try:
        asyncio.run(main(bot, config))
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)
