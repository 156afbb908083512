"""Data models for command_scanner."""

from command_scanner.models.command import CommandResult, FailureKind, SendResult
from command_scanner.models.connection import ConnectionConfig, TransportKind
from command_scanner.models.device import DeviceCommand

__all__ = [
    "CommandResult",
    "ConnectionConfig",
    "DeviceCommand",
    "FailureKind",
    "SendResult",
    "TransportKind",
]
