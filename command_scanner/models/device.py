"""Device command listing models."""

from dataclasses import dataclass


@dataclass
class DeviceCommand:
    """One entry from the device's ``help all`` listing."""

    name: str
    access_level: str
    description: str
    help: str = ""
