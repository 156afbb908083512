"""Session (re)connection helper with automatic retry."""

import logging
from collections.abc import Callable

from command_scanner.services.errors import ConnectFailure
from command_scanner.services.session import TransportSession

logger = logging.getLogger(__name__)


async def reconnect_with_retry(
    session_factory: Callable[[], TransportSession],
) -> TransportSession:
    """Open a fresh session with one automatic retry.

    Sessions are single-use, so each attempt builds a new one:
    1. Build and connect a session
    2. On failure, log a warning and build another
    3. Raise ConnectFailure if the retry also fails

    Args:
        session_factory: Callable returning a new, unconnected session

    Returns:
        Connected session

    Raises:
        ConnectFailure: If both attempts fail
    """
    session = session_factory()
    if await session.connect():
        return session

    logger.warning(
        "Connection to %s failed: %s, retrying with a new session",
        session.address,
        session.last_error,
    )

    retry = session_factory()
    if await retry.connect():
        logger.info("Retry connection to %s succeeded", retry.address)
        return retry

    logger.error("Retry connection to %s failed: %s", retry.address, retry.last_error)
    if retry.last_error is not None:
        raise retry.last_error
    raise ConnectFailure(retry.address, retry.port, ConnectionError("connect returned False"))
