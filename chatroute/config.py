"""Configuration management for chatroute.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
sensible defaults for the transport, the update poller, and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .transport import DEFAULT_API_URL

logger = structlog.get_logger("chatroute.bot")


class Config:
    """Central configuration manager for chatroute.

    Loads settings.yaml and .env from the config directory. Values are
    read-only after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = config_dir

        # Load environment variables
        env_file = config_dir / ".env"
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

        Logs warnings/errors but does not raise; a missing token is
        reported again, as a ConfigurationError, when bot_token is read.
        """
        if not os.environ.get(self.token_env):
            logger.error("bot_token_missing", env_var=self.token_env)

        pt = self.settings.get("poll_timeout")
        if pt is not None and (not isinstance(pt, int) or pt < 0 or pt > 50):
            logger.error(
                "config_invalid_value",
                key="poll_timeout",
                value=pt,
                valid="0-50",
            )

        if not self.api_url.startswith("https://"):
            logger.warning(
                "insecure_api_url", url=self.api_url,
                msg="The bot token is sent in the URL path",
            )

    @property
    def token_env(self) -> str:
        """Name of the env var holding the bot token (default TELEGRAM_BOT_TOKEN)."""
        return self.settings.get("token_env", "TELEGRAM_BOT_TOKEN")

    @property
    def bot_token(self) -> str:
        """Get the bot token from the environment.

        Raises:
            ConfigurationError: If the variable is unset or empty.
        """
        token = os.environ.get(self.token_env, "").strip()
        if not token:
            raise ConfigurationError(
                f"Environment variable {self.token_env} is not set",
                setting_name=self.token_env,
            )
        return token

    @property
    def api_url(self) -> str:
        """Get Bot API URL. Env var TELEGRAM_API_URL takes precedence."""
        return (
            os.environ.get("TELEGRAM_API_URL")
            or self.settings.get("api_url", DEFAULT_API_URL)
        )

    @property
    def poll_timeout(self) -> int:
        """Long-poll duration per getUpdates call in seconds (default 20)."""
        return self.settings.get("poll_timeout", 20)

    @property
    def poll_error_delay(self) -> float:
        """Seconds to wait after a failed getUpdates call (default 5)."""
        return self.settings.get("poll_error_delay", 5)

    @property
    def request_timeout(self) -> float:
        """Total timeout for ordinary API requests (default poll_timeout + 10)."""
        return self.settings.get("request_timeout", self.poll_timeout + 10)

    @property
    def handle_edited_messages(self) -> bool:
        """Route edited messages like new ones (default False)."""
        return bool(self.settings.get("handle_edited_messages", False))

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"router": "DEBUG"}."""
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
