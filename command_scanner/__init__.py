"""Send textual commands to embedded devices over SSH or a raw socket."""

from command_scanner.config import Settings
from command_scanner.models import (
    CommandResult,
    ConnectionConfig,
    DeviceCommand,
    FailureKind,
    SendResult,
    TransportKind,
)
from command_scanner.services import (
    CommandClient,
    CommandExecutionError,
    ConnectFailure,
    NotConnectedError,
    ScannerError,
    scan_commands,
)

__version__ = "0.1.0"

__all__ = [
    "CommandClient",
    "CommandExecutionError",
    "CommandResult",
    "ConnectFailure",
    "ConnectionConfig",
    "DeviceCommand",
    "FailureKind",
    "NotConnectedError",
    "ScannerError",
    "SendResult",
    "Settings",
    "TransportKind",
    "scan_commands",
]
