"""Configuration module for command_scanner.

- Settings: Environment variable configuration
- HostKeyVerifier: SSH known_hosts policy
"""

from command_scanner.config.host_keys import HostKeyVerifier
from command_scanner.config.settings import Settings

__all__ = ["HostKeyVerifier", "Settings"]
