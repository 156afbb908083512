"""Turn a "write command, read response" exchange into one awaitable call.

SSH channels carry a structured result (exit status, stdout, stderr), so
the SSH path just runs the command with a bounded wait. The raw socket
protocol has no framing at all: the response is considered complete once
the device's prompt marker shows up in the accumulated text, with a hard
timeout as a safety net.

Raw collection is an explicit state machine::

    IDLE -> WRITING -> POLLING -> COMPLETE | TIMED_OUT | CLOSED | CANCELLED

A ``>`` inside ordinary device output also ends collection early; the
protocol offers nothing better to detect the end of a reply.
"""

import asyncio
import codecs
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING

from command_scanner.models import CommandResult
from command_scanner.services.errors import CollectionCancelled, CommandExecutionError

if TYPE_CHECKING:
    import asyncssh

    from command_scanner.protocols import ByteStream

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = ">"
DEFAULT_POLL_INTERVAL_S = 0.2
DEFAULT_RESPONSE_TIMEOUT_S = 30.0
DEFAULT_READ_SIZE = 4096
DEFAULT_SSH_TIMEOUT_S = 2.0
LINE_TERMINATOR = "\r\n"


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


async def execute_command(
    conn: "asyncssh.SSHClientConnection",
    command: str,
) -> CommandResult:
    """Execute a command over SSH.

    Returns:
        CommandResult with stdout, stderr, and return code.
    """
    result = await conn.run(command, check=False)

    # A missing exit status (e.g. killed by signal) is treated as success
    returncode = result.returncode if result.returncode is not None else 0

    return CommandResult(
        output=_decode(result.stdout),
        error=_decode(result.stderr),
        returncode=returncode,
    )


async def run_ssh_command(
    conn: "asyncssh.SSHClientConnection",
    command: str,
    timeout: float = DEFAULT_SSH_TIMEOUT_S,
) -> tuple[str, bool]:
    """Run a command with a bounded wait.

    A command that has not finished within ``timeout`` is cancelled and
    reported as empty output rather than as an error.

    Args:
        conn: Open SSH connection
        command: Command line to run
        timeout: Seconds to wait for the command to finish

    Returns:
        Tuple of (stdout verbatim, timed_out)

    Raises:
        CommandExecutionError: If the command exits with a non-zero status
    """
    try:
        result = await asyncio.wait_for(execute_command(conn, command), timeout=timeout)
    except TimeoutError:
        logger.warning("SSH command %r produced no result within %.1fs", command, timeout)
        return "", True

    if result.returncode != 0:
        logger.debug("SSH command %r exited with status %d", command, result.returncode)
        raise CommandExecutionError(command, result.error, result.returncode)

    return result.output, False


class PollState(Enum):
    """Phase of a raw-socket response collection."""

    IDLE = "idle"
    WRITING = "writing"
    POLLING = "polling"
    COMPLETE = "complete"
    TIMED_OUT = "timed_out"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class ResponseCollector:
    """Collect one prompt-terminated response from a byte stream.

    A collector handles exactly one command; build a new one per call.
    The clock and sleep are injectable so tests can drive the poll loop
    without real delays.
    """

    def __init__(
        self,
        stream: "ByteStream",
        prompt: str = DEFAULT_PROMPT,
        poll_interval: float = DEFAULT_POLL_INTERVAL_S,
        timeout: float = DEFAULT_RESPONSE_TIMEOUT_S,
        read_size: int = DEFAULT_READ_SIZE,
        encoding: str = "utf-8",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not prompt:
            raise ValueError("prompt must not be empty")
        if read_size <= 0:
            raise ValueError(f"read_size must be > 0, got {read_size}")

        self._stream = stream
        self.prompt = prompt
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.read_size = read_size
        self.encoding = encoding
        self._clock = clock
        self._sleep = sleep

        self._state = PollState.IDLE
        self._chunks: list[str] = []
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._started: float | None = None
        self._eof = False
        self._prompt_seen = False
        self._tail = ""
        self.read_errors = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def text(self) -> str:
        """Everything accumulated so far."""
        return "".join(self._chunks)

    @property
    def elapsed(self) -> float:
        """Seconds since the command was written."""
        if self._started is None:
            return 0.0
        return self._clock() - self._started

    async def collect(
        self,
        command: str,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Write a command and poll until the response is complete.

        Args:
            command: Command text, without line terminator
            cancel_event: Optional token checked on every poll iteration

        Returns:
            All text read during the call, including the prompt marker.
            On timeout or remote close, whatever arrived until then.

        Raises:
            CollectionCancelled: If cancel_event was set mid-collection
            RuntimeError: If this collector was already used
        """
        if self._state is not PollState.IDLE:
            raise RuntimeError("ResponseCollector handles a single command")

        self._state = PollState.WRITING
        await self._stream.send(f"{command}{LINE_TERMINATOR}".encode(self.encoding))
        self._started = self._clock()
        self._state = PollState.POLLING
        logger.debug("Sent %r, polling for prompt %r", command, self.prompt)

        while self._state is PollState.POLLING:
            if cancel_event is not None and cancel_event.is_set():
                self._state = PollState.CANCELLED
                logger.info("Collection for %r cancelled after %.1fs", command, self.elapsed)
                raise CollectionCancelled(command, self.text)

            await self._sleep(self.poll_interval)
            await self._drain()
            self._state = self._next_state()

        if self._state is PollState.TIMED_OUT:
            logger.warning(
                "No prompt from device within %.1fs for %r (%d chars collected)",
                self.timeout,
                command,
                len(self.text),
            )
        elif self._state is PollState.CLOSED:
            logger.warning("Device closed the stream before the prompt for %r", command)
        else:
            logger.debug("Response for %r complete after %.2fs", command, self.elapsed)

        return self.text

    async def _drain(self) -> None:
        """Read everything currently available into the accumulator.

        Stops early once the prompt has arrived or the deadline has passed,
        so a device that never stops sending cannot hold the poll loop.
        I/O errors are logged and end this drain only; data already
        accumulated is kept and polling continues.
        """
        while True:
            try:
                chunk = await self._stream.read_available(self.read_size)
            except (OSError, EOFError) as e:
                self.read_errors += 1
                logger.warning("I/O error while reading response: %s", e)
                return

            if chunk is None:
                return
            if not chunk:
                self._eof = True
                self._append(self._decoder.decode(b"", final=True))
                return

            self._append(self._decoder.decode(chunk))
            logger.debug("Read %d bytes", len(chunk))
            if self._prompt_seen or self.elapsed >= self.timeout:
                return

    def _append(self, decoded: str) -> None:
        self._chunks.append(decoded)
        # Only the new text plus a prompt-sized overlap needs scanning
        window = self._tail + decoded
        if self.prompt in window:
            self._prompt_seen = True
        keep = len(self.prompt) - 1
        self._tail = window[-keep:] if keep else ""

    def _next_state(self) -> PollState:
        if self._prompt_seen:
            return PollState.COMPLETE
        if self._eof:
            return PollState.CLOSED
        if self.elapsed >= self.timeout:
            return PollState.TIMED_OUT
        return PollState.POLLING
