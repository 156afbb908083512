"""Transport sessions owning one channel to the device.

Each session wraps exactly one handle (an asyncssh connection or an
asyncio stream pair) and is single-use: once it has been disconnected,
or a connect attempt has failed, a new session must be built.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import TYPE_CHECKING

import asyncssh

from command_scanner.services.collector import run_ssh_command
from command_scanner.services.errors import ConnectFailure, NotConnectedError

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

    from command_scanner.config import HostKeyVerifier
    from command_scanner.models import ConnectionConfig

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_S = 10.0

# Grace period for a read when checking whether data is already buffered
DEFAULT_READ_GRACE_S = 0.01


class TransportSession(ABC):
    """Lifecycle of a single channel to the device.

    Subclasses implement ``_open``, ``_close`` and ``is_connected``; the
    base class turns connect errors into a ``False`` result plus a typed
    ``last_error``, and makes ``disconnect`` idempotent.
    """

    kind_name = "transport"

    def __init__(
        self,
        config: "ConnectionConfig",
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
    ) -> None:
        self.config = config
        self.connect_timeout = connect_timeout
        self.last_error: ConnectFailure | None = None
        self._spent = False

    @property
    def address(self) -> str:
        return self.config.address

    @property
    @abstractmethod
    def port(self) -> int:
        """Port this session connects to."""

    @abstractmethod
    async def _open(self) -> None:
        """Open the underlying handle. May raise anything."""

    @abstractmethod
    async def _close(self) -> None:
        """Close the underlying handle if open."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check the live status of the underlying handle."""

    async def connect(self) -> bool:
        """Open the channel.

        Returns:
            True if the handle reports connected right after the attempt.
            On False, ``last_error`` holds the ConnectFailure.

        Raises:
            RuntimeError: If this session was already used
        """
        if self._spent:
            raise RuntimeError(
                f"{self.kind_name} session to {self.address} was already used; create a new session"
            )
        self._spent = True

        logger.info("Opening %s session to %s:%d", self.kind_name, self.address, self.port)
        try:
            await self._open()
        except Exception as e:
            self.last_error = ConnectFailure(self.address, self.port, e)
            logger.error("Unable to connect to %s:%d: %s", self.address, self.port, e)
            await self.disconnect()
            return False

        if not self.is_connected():
            self.last_error = ConnectFailure(
                self.address, self.port, ConnectionError("handle not connected after open")
            )
            logger.error("%s session to %s:%d did not come up", self.kind_name, self.address, self.port)
            await self.disconnect()
            return False

        logger.info("%s session established to %s:%d", self.kind_name, self.address, self.port)
        return True

    async def disconnect(self) -> None:
        """Close the channel. Safe to call any number of times."""
        self._spent = True
        await self._close()

    async def __aenter__(self) -> "TransportSession":
        if not await self.connect():
            assert self.last_error is not None
            raise self.last_error
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()


class SSHSession(TransportSession):
    """Authenticated SSH session used for one-shot command execution."""

    kind_name = "SSH"

    def __init__(
        self,
        config: "ConnectionConfig",
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        known_hosts: str | None = None,
        host_keys: "HostKeyVerifier | None" = None,
    ) -> None:
        super().__init__(config, connect_timeout)
        self._known_hosts = known_hosts
        self._host_keys = host_keys
        self._conn: asyncssh.SSHClientConnection | None = None

    @property
    def port(self) -> int:
        return self.config.ssh_port

    async def _open(self) -> None:
        # A strict verifier without a usable file fails here, as a connect error
        known_hosts = (
            self._host_keys.get_known_hosts_path() if self._host_keys is not None else self._known_hosts
        )
        self._conn = await asyncio.wait_for(
            asyncssh.connect(
                self.address,
                port=self.port,
                username=self.config.username,
                password=self.config.password,
                known_hosts=known_hosts,
                client_keys=None,
            ),
            timeout=self.connect_timeout,
        )

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.close()
            await conn.wait_closed()
        except (OSError, asyncssh.Error) as e:
            logger.debug("Ignoring error while closing SSH session to %s: %s", self.address, e)
        logger.info("SSH session to %s closed", self.address)

    def is_connected(self) -> bool:
        return self._conn is not None and not self._conn.is_closed()

    async def run(self, command: str, timeout: float) -> tuple[str, bool]:
        """Run a command on the open session.

        Returns:
            Tuple of (stdout, timed_out)

        Raises:
            NotConnectedError: If the session is not open
            CommandExecutionError: If the command exits non-zero
        """
        if self._conn is None or not self.is_connected():
            raise NotConnectedError(f"SSH session to {self.address} is not connected")
        return await run_ssh_command(self._conn, command, timeout=timeout)


class StreamChannel:
    """ByteStream adapter over an asyncio reader/writer pair."""

    def __init__(
        self,
        reader: "StreamReader",
        writer: "StreamWriter",
        read_grace: float = DEFAULT_READ_GRACE_S,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._read_grace = read_grace

    async def send(self, data: bytes) -> None:
        if self._writer.is_closing():
            raise ConnectionError("Socket is closed")
        self._writer.write(data)
        await self._writer.drain()

    async def read_available(self, max_bytes: int) -> bytes | None:
        try:
            return await asyncio.wait_for(self._reader.read(max_bytes), timeout=self._read_grace)
        except TimeoutError:
            return None


class SocketSession(TransportSession):
    """Plain TCP stream to the device's console port."""

    kind_name = "socket"

    def __init__(
        self,
        config: "ConnectionConfig",
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
        read_grace: float = DEFAULT_READ_GRACE_S,
    ) -> None:
        super().__init__(config, connect_timeout)
        self._read_grace = read_grace
        self._reader: StreamReader | None = None
        self._writer: StreamWriter | None = None

    @property
    def port(self) -> int:
        return self.config.socket_port

    @property
    def stream(self) -> StreamChannel:
        """Byte channel for the response collector.

        Raises:
            NotConnectedError: If the socket is not open
        """
        if self._reader is None or self._writer is None:
            raise NotConnectedError(f"Socket to {self.address}:{self.port} is not connected")
        return StreamChannel(self._reader, self._writer, self._read_grace)

    async def _open(self) -> None:
        self._reader, self._writer = await asyncio.wait_for(
            asyncio.open_connection(self.address, self.port),
            timeout=self.connect_timeout,
        )

    async def _close(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is None:
            return
        with contextlib.suppress(ConnectionResetError, BrokenPipeError, OSError):
            writer.close()
            await writer.wait_closed()
        logger.debug("Socket to %s:%d closed", self.address, self.port)

    def is_connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()
