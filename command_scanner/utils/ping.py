"""TCP reachability probe for the raw console port."""

import asyncio
import logging

logger = logging.getLogger(__name__)


async def check_host_online(hostname: str, port: int, timeout: float = 2.0) -> bool:
    """Check whether a device accepts TCP connections on a port.

    The probe socket is closed straight away; nothing is sent.

    Args:
        hostname: Device address
        port: Port to probe
        timeout: Seconds to wait for the handshake

    Returns:
        True if the port accepted the connection
    """
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=timeout,
        )
    except TimeoutError:
        logger.debug("No answer from %s:%d within %.1fs", hostname, port, timeout)
        return False
    except OSError as e:
        logger.debug("Port %s:%d not reachable: %s", hostname, port, e)
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug("Ignoring error while closing probe to %s:%d: %s", hostname, port, e)
    return True
