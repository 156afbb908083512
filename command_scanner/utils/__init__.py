"""Utility modules for command_scanner."""

from command_scanner.utils.console import ColorfulFormatter, configure_logging
from command_scanner.utils.ping import check_host_online

__all__ = [
    "ColorfulFormatter",
    "check_host_online",
    "configure_logging",
]
