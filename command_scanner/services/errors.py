"""Exception hierarchy for device command exchanges."""


class ScannerError(Exception):
    """Base class for command_scanner failures."""


class ConnectFailure(ScannerError):
    """Failed to open a transport session to the device."""

    def __init__(self, address: str, port: int, original_error: Exception):
        """Initialize connection failure.

        Args:
            address: Device hostname or IP address
            port: Port the attempt targeted
            original_error: Exception raised by the attempt
        """
        self.address = address
        self.port = port
        self.original_error = original_error
        super().__init__(f"Unable to connect to {address}:{port}: {original_error}")


class NotConnectedError(ScannerError):
    """A command was sent without a usable session."""


class CommandExecutionError(ScannerError):
    """Remote command finished with a non-zero exit status."""

    def __init__(self, command: str, error: str, returncode: int = 1):
        self.command = command
        self.error = error
        self.returncode = returncode
        super().__init__(f"Send Command Error: {error} for command {command}")


class CollectionCancelled(ScannerError):
    """Response collection was cancelled before completion."""

    def __init__(self, command: str, partial: str = ""):
        self.command = command
        self.partial = partial
        super().__init__(f"Response collection cancelled for command {command}")
