"""Protocol interfaces for dependency inversion.

Defines the contracts the core exposes to callers and expects from the
byte channel it polls, so either side can be replaced in tests.

Usage Example:

    from command_scanner.protocols import CommandTransport

    async def dump_help(client: CommandTransport) -> str:
        if not await client.connect():
            return ""
        try:
            return await client.send_command("help all")
        finally:
            await client.disconnect()
"""

from typing import Protocol, runtime_checkable

from command_scanner.models import SendResult


@runtime_checkable
class CommandTransport(Protocol):
    """Protocol for a "send command, get full response" client."""

    async def connect(self) -> bool:
        """Open the transport.

        Returns:
            True if the device is reachable and ready for commands
        """
        ...

    async def disconnect(self) -> None:
        """Release the transport. Safe to call more than once."""
        ...

    async def send_command(self, command: str) -> str:
        """Send a command and return its output, or a failure message."""
        ...

    async def execute(self, command: str) -> SendResult:
        """Send a command and return a typed result."""
        ...


@runtime_checkable
class ByteStream(Protocol):
    """Protocol for the byte channel polled by the response collector."""

    async def send(self, data: bytes) -> None:
        """Write bytes and flush them to the peer.

        Raises:
            ConnectionError: If the channel is closed
        """
        ...

    async def read_available(self, max_bytes: int) -> bytes | None:
        """Read data that is already available.

        Args:
            max_bytes: Maximum bytes to return

        Returns:
            Up to max_bytes of data, None when nothing is available yet,
            or b"" once the peer has closed the stream
        """
        ...
