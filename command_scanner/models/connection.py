"""Connection-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from command_scanner.config import Settings


class TransportKind(Enum):
    """How to reach the device."""

    SSH = "ssh"
    RAW_SOCKET = "raw_socket"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: "str | TransportKind") -> "TransportKind":
        """Parse a transport name such as ``ssh``, ``ctp`` or ``auto``.

        Raises:
            ValueError: If the name is not recognised
        """
        if isinstance(value, cls):
            return value
        name = value.strip().lower().replace("-", "_")
        aliases = {"ctp": "raw_socket", "raw": "raw_socket", "socket": "raw_socket"}
        name = aliases.get(name, name)
        for kind in cls:
            if kind.value == name:
                return kind
        raise ValueError(f"Unknown transport kind: {value!r}")


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable description of how to reach one device.

    Use :meth:`create` to fill omitted values from settings defaults.
    For AUTO, ``port`` is the SSH port tried first and ``raw_port`` the
    fallback socket port.
    """

    transport: TransportKind
    address: str
    port: int
    username: str | None = None
    password: str | None = None
    raw_port: int | None = None

    @classmethod
    def create(
        cls,
        address: str,
        transport: "TransportKind | str" = TransportKind.SSH,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        settings: "Settings | None" = None,
    ) -> "ConnectionConfig":
        """Build a config, applying defaults only where a value is omitted.

        Args:
            address: Hostname or IP address of the device
            transport: Transport kind or its name
            port: Explicit port, or None for the transport default
            username: SSH username, or None for the service account
            password: SSH password, or None for the default (empty)
            settings: Settings supplying defaults (loaded from env if None)

        Returns:
            Fully resolved configuration

        Raises:
            ValueError: If the address is empty or the port out of range
        """
        if settings is None:
            from command_scanner.config import Settings

            settings = Settings.from_env()

        address = address.strip()
        if not address:
            raise ValueError("Device address must not be empty")

        kind = TransportKind.parse(transport)

        if kind is TransportKind.RAW_SOCKET:
            resolved_port = port if port is not None else settings.raw_port
            config = cls(transport=kind, address=address, port=resolved_port)
        else:
            config = cls(
                transport=kind,
                address=address,
                port=port if port is not None else settings.ssh_port,
                username=username if username is not None else settings.ssh_username,
                password=password if password is not None else settings.ssh_password,
                raw_port=settings.raw_port if kind is TransportKind.AUTO else None,
            )

        for value in (config.port, config.raw_port):
            if value is not None and not 0 < value < 65536:
                raise ValueError(f"Port out of range: {value}")
        return config

    @property
    def ssh_port(self) -> int:
        """Port used for the SSH transport."""
        return self.port

    @property
    def socket_port(self) -> int:
        """Port used for the raw-socket transport."""
        if self.transport is TransportKind.AUTO and self.raw_port is not None:
            return self.raw_port
        return self.port

    def for_transport(self, kind: TransportKind) -> "ConnectionConfig":
        """Return a concrete single-transport view of this config.

        Used to resolve AUTO into the transport that answered.
        """
        if kind is self.transport:
            return self
        if kind is TransportKind.RAW_SOCKET:
            return ConnectionConfig(transport=kind, address=self.address, port=self.socket_port)
        if kind is TransportKind.SSH:
            return ConnectionConfig(
                transport=kind,
                address=self.address,
                port=self.ssh_port,
                username=self.username,
                password=self.password,
            )
        raise ValueError(f"Cannot narrow a config to {kind}")

    @property
    def label(self) -> str:
        """Short ``address:port`` label for logs and messages."""
        return f"{self.address}:{self.port}"
