"""Tests for SSH and socket transport sessions."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from command_scanner.config import HostKeyVerifier
from command_scanner.models import ConnectionConfig, TransportKind
from command_scanner.services.errors import ConnectFailure, NotConnectedError
from command_scanner.services.session import SocketSession, SSHSession, StreamChannel


@pytest.fixture
def ssh_config() -> ConnectionConfig:
    """SSH config with the default service account."""
    return ConnectionConfig(
        transport=TransportKind.SSH,
        address="192.168.1.50",
        port=22,
        username="crestron",
        password="",
    )


@pytest.fixture
def socket_config() -> ConnectionConfig:
    """Raw socket config on the console port."""
    return ConnectionConfig(transport=TransportKind.RAW_SOCKET, address="192.168.1.50", port=41795)


class TestSSHSession:
    """SSH session lifecycle."""

    @pytest.mark.asyncio
    async def test_connect_opens_authenticated_session(
        self, ssh_config: ConnectionConfig, ssh_conn_factory: Any
    ) -> None:
        """Connect passes address and credentials to asyncssh."""
        session = SSHSession(ssh_config)

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = ssh_conn_factory()

            assert await session.connect() is True

            mock_connect.assert_called_once_with(
                "192.168.1.50",
                port=22,
                username="crestron",
                password="",
                known_hosts=None,
                client_keys=None,
            )
        assert session.is_connected()
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_connect_uses_known_hosts(self, ssh_config: ConnectionConfig, ssh_conn_factory: Any) -> None:
        """A configured known_hosts file is handed to asyncssh."""
        session = SSHSession(ssh_config, known_hosts="/tmp/known_hosts")

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = ssh_conn_factory()
            await session.connect()

            assert mock_connect.call_args[1]["known_hosts"] == "/tmp/known_hosts"

    @pytest.mark.asyncio
    async def test_strict_verifier_without_file_returns_false(
        self, ssh_config: ConnectionConfig, tmp_path: Any
    ) -> None:
        """Host key resolution errors are reported like any other connect error."""
        host_keys = HostKeyVerifier(known_hosts_path=str(tmp_path / "missing"), strict_checking=True)
        session = SSHSession(ssh_config, host_keys=host_keys)

        assert await session.connect() is False

        assert isinstance(session.last_error, ConnectFailure)
        assert isinstance(session.last_error.original_error, FileNotFoundError)
        assert not session.is_connected()

    @pytest.mark.asyncio
    async def test_connect_resolves_verifier_path(
        self, ssh_config: ConnectionConfig, ssh_conn_factory: Any, tmp_path: Any
    ) -> None:
        """A verifier is consulted when the session opens."""
        known_hosts = tmp_path / "known_hosts"
        known_hosts.touch()
        session = SSHSession(ssh_config, host_keys=HostKeyVerifier(known_hosts_path=str(known_hosts)))

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = ssh_conn_factory()
            await session.connect()

            assert mock_connect.call_args[1]["known_hosts"] == str(known_hosts)

    @pytest.mark.asyncio
    async def test_connect_failure_returns_false(self, ssh_config: ConnectionConfig) -> None:
        """Exceptions during connect become False plus a typed error."""
        session = SSHSession(ssh_config)
        original = OSError("No route to host")

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = original

            assert await session.connect() is False

        assert isinstance(session.last_error, ConnectFailure)
        assert session.last_error.original_error is original
        assert session.last_error.address == "192.168.1.50"
        assert session.last_error.port == 22
        assert not session.is_connected()

    @pytest.mark.asyncio
    async def test_connect_timeout_returns_false(self, ssh_config: ConnectionConfig) -> None:
        """A hanging handshake is bounded by the connect timeout."""
        session = SSHSession(ssh_config, connect_timeout=0.05)

        async def hang(*args: Any, **kwargs: Any) -> None:
            await asyncio.sleep(10)

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = hang

            assert await session.connect() is False

        assert isinstance(session.last_error.original_error, TimeoutError)

    @pytest.mark.asyncio
    async def test_connect_false_when_handle_closed(
        self, ssh_config: ConnectionConfig, ssh_conn_factory: Any
    ) -> None:
        """A handle that is already closed does not count as connected."""
        session = SSHSession(ssh_config)
        conn = ssh_conn_factory()
        conn.is_closed.return_value = True

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = conn

            assert await session.connect() is False

        assert isinstance(session.last_error, ConnectFailure)

    @pytest.mark.asyncio
    async def test_disconnect_twice_is_safe(self, ssh_config: ConnectionConfig, ssh_conn_factory: Any) -> None:
        """Disconnect is idempotent and closes the handle once."""
        session = SSHSession(ssh_config)
        conn = ssh_conn_factory()

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = conn
            await session.connect()

        await session.disconnect()
        await session.disconnect()

        conn.close.assert_called_once()
        conn.wait_closed.assert_awaited_once()
        assert not session.is_connected()

    @pytest.mark.asyncio
    async def test_disconnect_never_connected(self, ssh_config: ConnectionConfig) -> None:
        """Disconnect on a fresh session does nothing."""
        session = SSHSession(ssh_config)

        await session.disconnect()

        assert not session.is_connected()

    @pytest.mark.asyncio
    async def test_session_is_single_use(self, ssh_config: ConnectionConfig, ssh_conn_factory: Any) -> None:
        """A disconnected session cannot be connected again."""
        session = SSHSession(ssh_config)

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = ssh_conn_factory()
            await session.connect()
            await session.disconnect()

            with pytest.raises(RuntimeError):
                await session.connect()

    @pytest.mark.asyncio
    async def test_run_requires_connection(self, ssh_config: ConnectionConfig) -> None:
        """Running a command without a session raises NotConnectedError."""
        session = SSHSession(ssh_config)

        with pytest.raises(NotConnectedError):
            await session.run("ver", timeout=1.0)

    @pytest.mark.asyncio
    async def test_run_returns_output(self, ssh_config: ConnectionConfig, ssh_conn_factory: Any) -> None:
        """Run delegates to the connection."""
        session = SSHSession(ssh_config)

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = ssh_conn_factory(stdout="OK")
            await session.connect()

        assert await session.run("ver", timeout=1.0) == ("OK", False)


class TestSocketSession:
    """Raw TCP session lifecycle."""

    @pytest.mark.asyncio
    async def test_connect_opens_stream(self, socket_config: ConnectionConfig, stream_writer: MagicMock) -> None:
        """Connect opens a TCP stream to address:port."""
        session = SocketSession(socket_config)

        with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), stream_writer)

            assert await session.connect() is True

            mock_open.assert_called_once_with("192.168.1.50", 41795)
        assert session.is_connected()

    @pytest.mark.asyncio
    async def test_connect_refused(self, socket_config: ConnectionConfig) -> None:
        """A refused connection returns False with the cause recorded."""
        session = SocketSession(socket_config)

        with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
            mock_open.side_effect = ConnectionRefusedError()

            assert await session.connect() is False

        assert isinstance(session.last_error.original_error, ConnectionRefusedError)
        assert "192.168.1.50:41795" in str(session.last_error)

    @pytest.mark.asyncio
    async def test_disconnect_closes_writer_once(
        self, socket_config: ConnectionConfig, stream_writer: MagicMock
    ) -> None:
        """Disconnect closes the socket and tolerates repeats."""
        session = SocketSession(socket_config)

        with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), stream_writer)
            await session.connect()

        await session.disconnect()
        await session.disconnect()

        stream_writer.close.assert_called_once()
        assert not session.is_connected()

    @pytest.mark.asyncio
    async def test_disconnect_ignores_reset(self, socket_config: ConnectionConfig, stream_writer: MagicMock) -> None:
        """Errors while closing an already-reset socket are swallowed."""
        session = SocketSession(socket_config)
        stream_writer.wait_closed.side_effect = ConnectionResetError()

        with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), stream_writer)
            await session.connect()

        await session.disconnect()

    @pytest.mark.asyncio
    async def test_stream_requires_connection(self, socket_config: ConnectionConfig) -> None:
        """The byte channel is only available while connected."""
        session = SocketSession(socket_config)

        with pytest.raises(NotConnectedError):
            _ = session.stream

    @pytest.mark.asyncio
    async def test_context_manager_raises_connect_failure(self, socket_config: ConnectionConfig) -> None:
        """async with surfaces connect failures as ConnectFailure."""
        session = SocketSession(socket_config)

        with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
            mock_open.side_effect = OSError("unreachable")

            with pytest.raises(ConnectFailure):
                async with session:
                    pass

    @pytest.mark.asyncio
    async def test_context_manager_closes_on_error(
        self, socket_config: ConnectionConfig, stream_writer: MagicMock
    ) -> None:
        """The socket is closed even when the body raises."""
        session = SocketSession(socket_config)

        with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), stream_writer)

            with pytest.raises(ValueError):
                async with session:
                    raise ValueError("boom")

        stream_writer.close.assert_called_once()


class TestStreamChannel:
    """ByteStream adapter over asyncio streams."""

    @pytest.mark.asyncio
    async def test_read_available_returns_buffered_data(self, stream_writer: MagicMock) -> None:
        """Buffered data is returned, then None once drained."""
        reader = asyncio.StreamReader()
        reader.feed_data(b"hello>")
        channel = StreamChannel(reader, stream_writer)

        assert await channel.read_available(4096) == b"hello>"
        assert await channel.read_available(4096) is None

    @pytest.mark.asyncio
    async def test_read_available_respects_max_bytes(self, stream_writer: MagicMock) -> None:
        """Reads never exceed max_bytes."""
        reader = asyncio.StreamReader()
        reader.feed_data(b"abcdef")
        channel = StreamChannel(reader, stream_writer)

        assert await channel.read_available(4) == b"abcd"
        assert await channel.read_available(4) == b"ef"

    @pytest.mark.asyncio
    async def test_read_available_reports_eof(self, stream_writer: MagicMock) -> None:
        """A closed stream reads as b''."""
        reader = asyncio.StreamReader()
        reader.feed_eof()
        channel = StreamChannel(reader, stream_writer)

        assert await channel.read_available(4096) == b""

    @pytest.mark.asyncio
    async def test_send_writes_and_drains(self, stream_writer: MagicMock) -> None:
        """Send writes the bytes and flushes."""
        channel = StreamChannel(asyncio.StreamReader(), stream_writer)

        await channel.send(b"ver\r\n")

        stream_writer.write.assert_called_once_with(b"ver\r\n")
        stream_writer.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_on_closing_writer_raises(self, stream_writer: MagicMock) -> None:
        """Writing to a closing socket raises ConnectionError."""
        stream_writer.is_closing.return_value = True
        channel = StreamChannel(asyncio.StreamReader(), stream_writer)

        with pytest.raises(ConnectionError):
            await channel.send(b"ver\r\n")
