"""Discover the commands a device supports.

Parses the device's ``help all`` listing and asks each command for its
own help text. Rendering the result is left to the caller.
"""

import logging
import re

from command_scanner.models import DeviceCommand
from command_scanner.protocols import CommandTransport

logger = logging.getLogger(__name__)

HELP_ALL_COMMAND = "help all"

# Listing columns are separated by two or more spaces
_COLUMN_SPLIT = re.compile(r" {2,}")


def parse_help_listing(text: str) -> list[DeviceCommand]:
    """Parse a ``help all`` reply into commands.

    Lines that do not have exactly three columns (name, access level,
    description) are headers, separators or prompts and are skipped.

    Args:
        text: Raw reply from the device

    Returns:
        Commands in listing order
    """
    commands = []
    for line in text.splitlines():
        fields = [f.strip() for f in _COLUMN_SPLIT.split(line) if f.strip()]
        if len(fields) != 3:
            continue
        name, access_level, description = fields
        commands.append(DeviceCommand(name=name, access_level=access_level, description=description))
    return commands


def is_valid_help(text: str) -> bool:
    """Check that a help reply carries any text at all."""
    return bool(text.strip())


async def fetch_command_help(client: CommandTransport, name: str) -> str:
    """Ask the device for one command's help text.

    Tries ``<name> ?`` and falls back to ``<name> help``.

    Returns:
        Trimmed help text, empty if neither form produced any
    """
    reply = await client.send_command(f"{name} ?")
    if not is_valid_help(reply):
        logger.debug("No help from '%s ?', trying '%s help'", name, name)
        reply = await client.send_command(f"{name} help")
    return reply.strip()


async def scan_commands(client: CommandTransport) -> list[DeviceCommand]:
    """List every command the device reports, with its help text.

    Commands are issued one at a time over the given (connected) client.

    Args:
        client: Connected command client

    Returns:
        Commands with ``help`` filled in
    """
    listing = await client.send_command(HELP_ALL_COMMAND)
    commands = parse_help_listing(listing)
    logger.info("Device listed %d commands", len(commands))

    for command in commands:
        command.help = await fetch_command_help(client, command.name)

    return commands
