"""Command execution data models."""

from dataclasses import dataclass
from enum import Enum


@dataclass
class CommandResult:
    """Result of a remote command execution."""

    output: str
    error: str
    returncode: int


class FailureKind(Enum):
    """Why a command exchange did not produce output."""

    CONNECT_FAILED = "connect_failed"
    NOT_CONNECTED = "not_connected"
    COMMAND_FAILED = "command_failed"
    CANCELLED = "cancelled"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class SendResult:
    """Outcome of one send: either output or a typed failure.

    Attributes:
        output: Text the device returned (empty on failure)
        failure: Failure kind, or None on success
        message: Human-readable failure message (empty on success)
        timed_out: The device did not finish replying in time; output
            holds whatever arrived before the deadline
    """

    output: str = ""
    failure: FailureKind | None = None
    message: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command produced output without failure."""
        return self.failure is None

    @classmethod
    def success(cls, output: str, timed_out: bool = False) -> "SendResult":
        return cls(output=output, timed_out=timed_out)

    @classmethod
    def failed(cls, kind: FailureKind, message: str) -> "SendResult":
        return cls(failure=kind, message=message)

    def as_legacy_string(self) -> str:
        """Collapse into the single string older callers expect.

        Failures are reported as their message, in the same channel as
        regular device output.
        """
        return self.output if self.ok else self.message
