"""Configuration management for cmdwire.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide safe access with
sensible defaults for the dispatcher, the Signal transport, the
bundled checks and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Accessor for the lazily created global Config instance.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .security import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW, is_uuid, mask

logger = structlog.get_logger("cmdwire.bot")

DEFAULT_PREFIX = "!"
DEFAULT_SIGNAL_API_URL = "http://127.0.0.1:8080"


class Config:
    """Central configuration manager for cmdwire.

    Loads settings.yaml and .env from the config directory. Read-only
    after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``$CMDWIRE_CONFIG_DIR`` or ``<cwd>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            env_dir = os.environ.get("CMDWIRE_CONFIG_DIR")
            config_dir = Path(env_dir) if env_dir else Path.cwd() / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise; construction of the Bot
        is where an unusable prefix becomes fatal.
        """
        prefix = self.prefix
        if not prefix or " " in prefix:
            logger.error("config_invalid_value", key="prefix", value=prefix)

        for n in self.allowed_numbers:
            if not isinstance(n, str):
                logger.error("invalid_allowed_entry", entry="..." + str(n)[-4:])
            elif is_uuid(n):
                pass  # Valid Signal UUID
            elif not n.startswith("+") or not n[1:].isdigit():
                logger.error("invalid_phone_number_format", number=mask(n))

        max_requests = self.rate_limit_max_requests
        if not isinstance(max_requests, int) or max_requests < 1:
            logger.error(
                "config_invalid_value",
                key="rate_limit.max_requests",
                value=max_requests,
                valid=">= 1",
            )

    @property
    def prefix(self) -> str:
        """Command prefix. Env var CMDWIRE_PREFIX takes precedence."""
        return os.environ.get("CMDWIRE_PREFIX") or self.settings.get("prefix", DEFAULT_PREFIX)

    @property
    def signal_api_url(self) -> str:
        """Get Signal API URL. Env var SIGNAL_API_URL takes precedence."""
        return os.environ.get("SIGNAL_API_URL") or self.settings.get(
            "signal_api_url", DEFAULT_SIGNAL_API_URL
        )

    @property
    def account(self) -> Optional[str]:
        """Signal account to use. None means the first registered account."""
        return os.environ.get("SIGNAL_ACCOUNT") or self.settings.get("account")

    @property
    def allowed_numbers(self) -> List[str]:
        """Senders allowed to use the bot. Empty means no allow-list check."""
        numbers = self.settings.get("allowed_numbers", [])
        if not isinstance(numbers, list):
            logger.error("allowed_numbers_invalid_type", type=type(numbers).__name__)
            return []
        return numbers

    @property
    def group_owners(self) -> Dict[str, str]:
        """Signal group id -> owner phone number/UUID."""
        owners = self.settings.get("group_owners", {})
        if not isinstance(owners, dict):
            logger.error("group_owners_invalid_type", type=type(owners).__name__)
            return {}
        return owners

    @property
    def rate_limit_enabled(self) -> bool:
        """Whether the per-sender rate limit check is installed (default True)."""
        return self.settings.get("rate_limit", {}).get("enabled", True)

    @property
    def rate_limit_max_requests(self) -> int:
        """Commands allowed per sender in the window (default 30)."""
        return self.settings.get("rate_limit", {}).get("max_requests", RATE_LIMIT_MAX_REQUESTS)

    @property
    def rate_limit_window(self) -> int:
        """Rate limit window in seconds (default 60)."""
        return self.settings.get("rate_limit", {}).get("window", RATE_LIMIT_WINDOW)

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return self.config_dir.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"signal": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
