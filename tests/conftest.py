"""Shared fixtures for command_scanner tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from command_scanner.config import HostKeyVerifier, Settings


class FakeClock:
    """Monotonic clock advanced only by its own sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedStream:
    """ByteStream whose data becomes available at scripted clock times.

    Script items are (time, bytes) or (time, exception); b"" means EOF.
    """

    def __init__(self, clock: FakeClock, script: list[tuple[float, bytes | Exception]]) -> None:
        self.clock = clock
        self._script = list(script)
        self.sent: list[bytes] = []

    async def send(self, data: bytes) -> None:
        self.sent.append(data)

    async def read_available(self, max_bytes: int) -> bytes | None:
        if not self._script or self._script[0][0] > self.clock.now:
            return None

        at, item = self._script[0]
        if isinstance(item, Exception):
            self._script.pop(0)
            raise item

        chunk, rest = item[:max_bytes], item[max_bytes:]
        if rest:
            self._script[0] = (at, rest)
        else:
            self._script.pop(0)
        return chunk


@pytest.fixture
def clock() -> FakeClock:
    """Fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with short timeouts for fast tests."""
    return Settings(
        poll_interval_ms=10,
        response_timeout=1.0,
        ssh_command_timeout=0.5,
        connect_timeout=1.0,
    )


@pytest.fixture
def no_host_keys() -> HostKeyVerifier:
    """Host key verification disabled."""
    return HostKeyVerifier(known_hosts_path="none")


def make_ssh_conn(stdout: str = "", stderr: str = "", returncode: int | None = 0) -> MagicMock:
    """Mock asyncssh connection whose run() returns a completed process."""
    conn = MagicMock()
    conn.is_closed = MagicMock(return_value=False)
    conn.wait_closed = AsyncMock()
    conn.run = AsyncMock(
        return_value=MagicMock(stdout=stdout, stderr=stderr, returncode=returncode)
    )
    return conn


def make_stream_writer() -> MagicMock:
    """Mock asyncio StreamWriter."""
    writer = MagicMock()
    writer.is_closing = MagicMock(return_value=False)
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()
    return writer


@pytest.fixture
def ssh_conn_factory():
    """Factory for mock asyncssh connections."""
    return make_ssh_conn


@pytest.fixture
def stream_writer() -> MagicMock:
    """Mock asyncio StreamWriter."""
    return make_stream_writer()


@pytest.fixture
def scripted_stream(clock: FakeClock):
    """Factory for ScriptedStream bound to the fake clock."""

    def _make(script: list[tuple[float, bytes | Exception]]) -> ScriptedStream:
        return ScriptedStream(clock, script)

    return _make


@pytest.fixture
def stream_writer_factory():
    """Factory for mock asyncio StreamWriters."""
    return make_stream_writer
