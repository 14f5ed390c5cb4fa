"""Logging configuration for cmdwire.

Routes structlog events through stdlib logging so each subsystem gets
its own rotating log file, and scrubs tokens and phone numbers before
anything is rendered.

Subsystem hierarchy (stdlib dotted names, structlog wraps them):
    root              → ConsoleHandler (terminal)
      └─ cmdwire      → RotatingFileHandler → cmdwire.log (combined)
           ├─ cmdwire.bot       → RFH → bot.log       (dispatcher, config)
           ├─ cmdwire.commands  → RFH → commands.log  (command invocation)
           ├─ cmdwire.signal    → RFH → signal.log    (transport)
           └─ cmdwire.security  → RFH → security.log  (checks, rate limits)
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict

import structlog

SUBSYSTEMS = ("bot", "commands", "signal", "security")

LOGGER_PREFIX = "cmdwire"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # Bearer token values in headers
    re.compile(r"Bearer\s+[a-zA-Z0-9_./-]{20,}"),
    # token=... / api_key=... pairs in URLs and messages
    re.compile(r"(?i)(?<=token=)[a-zA-Z0-9_./-]{8,}"),
    re.compile(r"(?i)(?<=api_key=)[a-zA-Z0-9_./-]{8,}"),
]

# Phone number pattern: E.164 format (+1234567890, 7-15 digits)
_PHONE_PATTERN = re.compile(r"\+\d{7,15}")

_REDACTED = "***REDACTED***"


def _scrub_value(value: str) -> str:
    """Scrub secrets and phone numbers from a single string value."""
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    value = _PHONE_PATTERN.sub(lambda m: "..." + m.group(0)[-4:], value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs tokens and full phone numbers.

    Walks string values (including inside lists, tuples and dicts) and
    replaces matches. Phone numbers are masked to their last 4 digits
    ("...1234"), the same convention as security.mask().
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _rotating_handler(path: Path, level: int, max_bytes: int, backup_count: int, formatter):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config=None) -> None:
    """Configure structured logging with subsystem file handlers.

    Every subsystem logger propagates up the hierarchy, so each event
    lands in its subsystem file, the combined cmdwire.log and the console.

    Args:
        config: Optional Config instance. The first call (before config
                loads) uses defaults and leaves logger caching off so the
                second, config-driven call takes effect everywhere.
    """
    if config is not None:
        log_dir = config.log_dir
        root_level_name = config.logging_level.upper()
        subsystem_levels = config.logging_subsystem_levels
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count
        cache_loggers = True
    else:
        log_dir = Path.cwd() / "logs"
        root_level_name = "INFO"
        subsystem_levels = {}
        max_bytes = 10 * 1024 * 1024  # 10 MB
        backup_count = 5
        cache_loggers = False

    root_level = getattr(logging, root_level_name, logging.INFO)

    file_handlers_ok = False
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handlers_ok = True
    except OSError as exc:
        # Console-only; the bot must keep running without log files
        print(
            f"WARNING: Cannot create log directory {log_dir}: {exc}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers filter by level
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(root_level)
    console_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root_logger.addHandler(console_handler)

    parent_logger = logging.getLogger(LOGGER_PREFIX)
    parent_logger.setLevel(logging.DEBUG)
    parent_logger.handlers.clear()
    parent_logger.propagate = True

    if file_handlers_ok:
        parent_logger.addHandler(
            _rotating_handler(
                log_dir / f"{LOGGER_PREFIX}.log", root_level, max_bytes, backup_count,
                file_formatter,
            )
        )

    for subsystem in SUBSYSTEMS:
        sub_logger = logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}")
        sub_level_name = subsystem_levels.get(subsystem, "").upper()
        sub_level = getattr(logging, sub_level_name, root_level) if sub_level_name else root_level
        sub_logger.setLevel(sub_level)
        sub_logger.handlers.clear()
        sub_logger.propagate = True

        if file_handlers_ok:
            sub_logger.addHandler(
                _rotating_handler(
                    log_dir / f"{subsystem}.log", sub_level, max_bytes, backup_count,
                    file_formatter,
                )
            )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )
