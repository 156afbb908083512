"""Command client façade over the SSH and raw-socket transports.

The SSH transport keeps one session open between ``connect()`` and
``disconnect()`` and re-checks it before every send, since the device can
drop it at any time. The raw-socket transport is connectionless per
command: every send opens its own socket and always closes it before
returning, so ``connect()`` only verifies that the port answers.

``AUTO`` is resolved at ``connect()``: SSH is tried first; if that fails
and the raw-socket port accepts connections, the client uses the raw
socket until the next ``connect()``.
"""

import asyncio
import logging
from enum import Enum
from types import TracebackType

from command_scanner.config import HostKeyVerifier, Settings
from command_scanner.models import ConnectionConfig, FailureKind, SendResult, TransportKind
from command_scanner.services.collector import PollState, ResponseCollector
from command_scanner.services.connection import reconnect_with_retry
from command_scanner.services.errors import (
    CollectionCancelled,
    CommandExecutionError,
    ConnectFailure,
    NotConnectedError,
    ScannerError,
)
from command_scanner.services.session import SocketSession, SSHSession, TransportSession
from command_scanner.utils.ping import check_host_online

logger = logging.getLogger(__name__)


class ClientState(Enum):
    """Lifecycle of a CommandClient."""

    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class CommandClient:
    """Send commands to one device and collect full responses.

    Not safe for overlapping calls: callers must await each command before
    issuing the next one.

    Example:
        >>> config = ConnectionConfig.create("10.0.0.5", TransportKind.SSH)
        >>> async with CommandClient(config) as client:
        ...     print(await client.send_command("ver"))
    """

    def __init__(
        self,
        config: ConnectionConfig,
        settings: Settings | None = None,
        host_keys: HostKeyVerifier | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Device address, transport and credentials
            settings: Timeouts and framing parameters (loaded from env if None)
            host_keys: known_hosts policy (built from settings if None)
        """
        self._config = config
        self._settings = settings or Settings.from_env()
        self._host_keys = host_keys or HostKeyVerifier(
            known_hosts_path=self._settings.known_hosts,
            strict_checking=self._settings.strict_host_key_checking,
        )
        self._session: SSHSession | None = None
        self._active: TransportKind | None = (
            None if config.transport is TransportKind.AUTO else config.transport
        )
        self._state = ClientState.UNINITIALIZED
        self.last_error: ScannerError | None = None

    @classmethod
    def for_device(
        cls,
        address: str,
        transport: TransportKind | str = TransportKind.SSH,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        settings: Settings | None = None,
    ) -> "CommandClient":
        """Build a client from an address, applying transport defaults.

        Args:
            address: Hostname or IP address of the device
            transport: Transport kind or its name
            port: Explicit port, or None for the transport default
            username: SSH username, or None for the service account
            password: SSH password, or None for the default
            settings: Settings supplying defaults (loaded from env if None)

        Returns:
            Unconnected client
        """
        settings = settings or Settings.from_env()
        config = ConnectionConfig.create(
            address,
            transport,
            port=port,
            username=username,
            password=password,
            settings=settings,
        )
        return cls(config, settings=settings)

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def transport(self) -> TransportKind:
        """Configured transport kind (never changes)."""
        return self._config.transport

    @property
    def active_transport(self) -> TransportKind | None:
        """Transport commands are sent over, None while AUTO is unresolved."""
        return self._active

    @property
    def state(self) -> ClientState:
        return self._state

    def is_connected(self) -> bool:
        """Check whether commands can be sent right now.

        For SSH this reflects the live session. The raw socket holds no
        connection between commands, so it reports the lifecycle state.
        """
        if self._state is not ClientState.CONNECTED:
            return False
        if self._active is TransportKind.SSH:
            return self._session is not None and self._session.is_connected()
        return True

    def _new_session(self, kind: TransportKind) -> TransportSession:
        config = self._config.for_transport(kind)
        if kind is TransportKind.SSH:
            return SSHSession(
                config,
                connect_timeout=self._settings.connect_timeout,
                host_keys=self._host_keys,
            )
        return SocketSession(config, connect_timeout=self._settings.connect_timeout)

    def _new_ssh_session(self) -> SSHSession:
        session = self._new_session(TransportKind.SSH)
        assert isinstance(session, SSHSession)
        return session

    async def connect(self) -> bool:
        """Open the transport to the device.

        Returns:
            True on success. On False, ``last_error`` holds the
            ConnectFailure and ``connect()`` may simply be called again.
        """
        await self._release_session()
        self.last_error = None

        if self._config.transport is TransportKind.AUTO:
            connected = await self._connect_auto()
        elif self._config.transport is TransportKind.SSH:
            connected = await self._connect_ssh()
        else:
            connected = await self._probe_socket()

        self._state = ClientState.CONNECTED if connected else ClientState.DISCONNECTED
        return connected

    async def _connect_ssh(self) -> bool:
        session = self._new_ssh_session()
        if await session.connect():
            self._session = session
            return True
        self.last_error = session.last_error
        return False

    async def _probe_socket(self) -> bool:
        session = self._new_session(TransportKind.RAW_SOCKET)
        connected = await session.connect()
        # Sockets are opened per command; this one only proves the port answers
        await session.disconnect()
        if not connected:
            self.last_error = session.last_error
        return connected

    async def _connect_auto(self) -> bool:
        self._active = None
        if await self._connect_ssh():
            self._active = TransportKind.SSH
            logger.info("Auto transport for %s resolved to SSH", self._config.address)
            return True

        ssh_failure = self.last_error
        if await check_host_online(
            self._config.address,
            self._config.socket_port,
            timeout=self._settings.connect_timeout,
        ):
            self._active = TransportKind.RAW_SOCKET
            self.last_error = None
            logger.info(
                "Auto transport for %s resolved to raw socket on port %d",
                self._config.address,
                self._config.socket_port,
            )
            return True

        logger.error(
            "Auto transport for %s: neither SSH nor raw socket port %d reachable",
            self._config.address,
            self._config.socket_port,
        )
        self.last_error = ssh_failure
        return False

    async def _release_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            await session.disconnect()

    async def disconnect(self) -> None:
        """Close the transport. Safe to call any number of times."""
        await self._release_session()
        if self._state is ClientState.CONNECTED:
            logger.info("Disconnected from %s", self._config.address)
        if self._state is not ClientState.UNINITIALIZED:
            self._state = ClientState.DISCONNECTED

    async def execute(
        self,
        command: str,
        cancel_event: asyncio.Event | None = None,
    ) -> SendResult:
        """Send a command and return a typed result.

        Never raises for transport or device failures.

        Args:
            command: Command text, without line terminator
            cancel_event: Optional token that stops a raw-socket poll

        Returns:
            SendResult with the output, or the failure kind and message
        """
        try:
            if self._active is TransportKind.SSH:
                output, timed_out = await self._send_ssh(command)
            elif self._active is TransportKind.RAW_SOCKET:
                output, timed_out = await self._send_raw(command, cancel_event)
            else:
                raise NotConnectedError(
                    f"Transport for {self._config.address} is not resolved; call connect() first"
                )
        except CommandExecutionError as e:
            return self._failed(FailureKind.COMMAND_FAILED, e)
        except ConnectFailure as e:
            return self._failed(FailureKind.CONNECT_FAILED, e)
        except NotConnectedError as e:
            return self._failed(FailureKind.NOT_CONNECTED, e)
        except CollectionCancelled as e:
            return self._failed(FailureKind.CANCELLED, e)
        except Exception as e:
            logger.exception("Unexpected error sending %r to %s", command, self._config.address)
            return self._failed(FailureKind.TRANSPORT_ERROR, e)

        return SendResult.success(output, timed_out=timed_out)

    async def send_command(self, command: str) -> str:
        """Send a command and return its output as a plain string.

        Failures are returned as their message in place of output, so the
        caller never sees an exception.
        """
        result = await self.execute(command)
        return result.as_legacy_string()

    def _failed(self, kind: FailureKind, error: Exception) -> SendResult:
        if isinstance(error, ScannerError):
            self.last_error = error
        logger.warning("Command failed on %s (%s): %s", self._config.address, kind.value, error)
        return SendResult.failed(kind, str(error))

    async def _send_ssh(self, command: str) -> tuple[str, bool]:
        if self._state is not ClientState.CONNECTED:
            raise NotConnectedError(f"Not connected to {self._config.address}; call connect() first")

        if self._session is None or not self._session.is_connected():
            logger.info("SSH session to %s dropped, reconnecting", self._config.address)
            await self._release_session()
            session = await reconnect_with_retry(self._new_ssh_session)
            assert isinstance(session, SSHSession)
            self._session = session

        return await self._session.run(command, timeout=self._settings.ssh_command_timeout)

    async def _send_raw(
        self,
        command: str,
        cancel_event: asyncio.Event | None,
    ) -> tuple[str, bool]:
        session = self._new_session(TransportKind.RAW_SOCKET)
        assert isinstance(session, SocketSession)
        async with session:
            collector = ResponseCollector(
                session.stream,
                prompt=self._settings.prompt,
                poll_interval=self._settings.poll_interval,
                timeout=self._settings.response_timeout,
                read_size=self._settings.read_size,
                encoding=self._settings.encoding,
            )
            output = await collector.collect(command, cancel_event=cancel_event)
        return output, collector.state is PollState.TIMED_OUT

    async def __aenter__(self) -> "CommandClient":
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
