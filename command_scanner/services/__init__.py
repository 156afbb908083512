"""Services for command_scanner."""

from command_scanner.services.client import ClientState, CommandClient
from command_scanner.services.collector import (
    PollState,
    ResponseCollector,
    execute_command,
    run_ssh_command,
)
from command_scanner.services.connection import reconnect_with_retry
from command_scanner.services.errors import (
    CollectionCancelled,
    CommandExecutionError,
    ConnectFailure,
    NotConnectedError,
    ScannerError,
)
from command_scanner.services.scanner import (
    fetch_command_help,
    is_valid_help,
    parse_help_listing,
    scan_commands,
)
from command_scanner.services.session import (
    SocketSession,
    SSHSession,
    StreamChannel,
    TransportSession,
)

__all__ = [
    "ClientState",
    "CollectionCancelled",
    "CommandClient",
    "CommandExecutionError",
    "ConnectFailure",
    "NotConnectedError",
    "PollState",
    "ResponseCollector",
    "SSHSession",
    "ScannerError",
    "SocketSession",
    "StreamChannel",
    "TransportSession",
    "execute_command",
    "fetch_command_help",
    "is_valid_help",
    "parse_help_listing",
    "reconnect_with_retry",
    "run_ssh_command",
    "scan_commands",
]
