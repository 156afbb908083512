"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ENV_PREFIX = "COMMAND_SCANNER_"


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # SSH transport
    ssh_port: int = field(default=22)
    ssh_username: str = field(default="crestron")
    ssh_password: str = field(default="")
    ssh_command_timeout: float = field(default=2.0)

    # Raw socket transport
    raw_port: int = field(default=41795)
    response_timeout: float = field(default=30.0)
    poll_interval_ms: int = field(default=200)
    read_size: int = field(default=4096)
    prompt: str = field(default=">")
    encoding: str = field(default="utf-8")

    # Connection
    connect_timeout: float = field(default=10.0)

    # Security
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=False)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            ssh_port=cls._get_int("SSH_PORT", 22),
            ssh_username=os.getenv(f"{ENV_PREFIX}SSH_USERNAME", "crestron"),
            ssh_password=os.getenv(f"{ENV_PREFIX}SSH_PASSWORD", ""),
            ssh_command_timeout=cls._get_float("SSH_COMMAND_TIMEOUT", 2.0),
            raw_port=cls._get_int("RAW_PORT", 41795),
            response_timeout=cls._get_float("RESPONSE_TIMEOUT", 30.0),
            poll_interval_ms=cls._get_int("POLL_INTERVAL_MS", 200),
            read_size=cls._get_int("READ_SIZE", 4096),
            prompt=os.getenv(f"{ENV_PREFIX}PROMPT") or ">",
            encoding=os.getenv(f"{ENV_PREFIX}ENCODING", "utf-8"),
            connect_timeout=cls._get_float("CONNECT_TIMEOUT", 10.0),
            known_hosts=os.getenv(f"{ENV_PREFIX}KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool("STRICT_HOST_KEY_CHECKING", False),
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("LOG_COLORS", True),
        )

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000

    @staticmethod
    def _get_int(name: str, default: int) -> int:
        """Get a positive integer from environment.

        Args:
            name: Variable name without the prefix
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        key = f"{ENV_PREFIX}{name}"
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("Non-positive value for %s: %d, using default %d", key, parsed, default)
            return default
        return parsed

    @staticmethod
    def _get_float(name: str, default: float) -> float:
        """Get a positive float from environment."""
        key = f"{ENV_PREFIX}{name}"
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("Non-positive value for %s: %s, using default %s", key, parsed, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(name: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            name: Variable name without the prefix
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(f"{ENV_PREFIX}{name}")
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
