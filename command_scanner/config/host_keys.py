"""SSH host key verification.

Embedded devices are usually reached by address without a recorded host
key, so verification is opt-in: it is enabled when a known_hosts file is
configured or present at the default location.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification manager.

    Resolves the ``known_hosts`` argument handed to asyncssh.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = False,
        default_path: Path | None = None,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Fail when the known_hosts file is missing
            default_path: Fallback file (defaults to ~/.ssh/known_hosts)
        """
        self.strict_checking = strict_checking
        self._default_path = default_path or Path.home() / ".ssh" / "known_hosts"
        self._configured = known_hosts_path

    def _resolve_known_hosts(self, env_value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if env_value and env_value.lower() == "none":
            if self.strict_checking:
                raise FileNotFoundError(
                    "Strict host key checking requires a known_hosts file, "
                    "but verification was disabled with 'none'"
                )
            logger.info("SSH host key verification disabled by configuration")
            return None

        path = Path(os.path.expanduser(env_value)) if env_value else self._default_path
        if path.exists():
            return str(path)

        if self.strict_checking:
            raise FileNotFoundError(
                f"SSH host key verification required but known_hosts not found at {path}.\n\n"
                f"To fix this:\n"
                f"1. Add host keys: ssh-keyscan <device> >> {path}\n"
                f"2. Or disable strict checking: "
                f"COMMAND_SCANNER_STRICT_HOST_KEY_CHECKING=false"
            )

        if env_value:
            logger.warning("known_hosts not found at %s, verification disabled", path)
        else:
            logger.debug("No known_hosts at %s, verification disabled", path)
        return None

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Resolved on every call, so a file added after startup is picked up.

        Returns:
            Path string or None if verification disabled

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        return self._resolve_known_hosts(self._configured)

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self.get_known_hosts_path() is not None
