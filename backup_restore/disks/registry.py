"""
Disk Driver Registry

Maps driver names from the ``disks`` settings section to disk factories.
"""

import logging
from typing import Callable, Dict

from config.settings import DiskSettings, RestoreSettings
from .base import Disk
from .local import LocalDisk

logger = logging.getLogger(__name__)

DiskFactory = Callable[[str, DiskSettings, RestoreSettings], Disk]

_DRIVERS: Dict[str, DiskFactory] = {}


def register_disk_driver(driver: str, factory: DiskFactory) -> None:
    """
    Register a disk driver.

    Args:
        driver: Driver name referenced by ``disks.<name>.driver``
        factory: Callable building a disk from its name and settings
    """
    _DRIVERS[driver] = factory
    logger.debug(f"Registered disk driver: {driver}")


def _create_local_disk(name: str, disk_settings: DiskSettings, settings: RestoreSettings) -> Disk:
    return LocalDisk(name, settings.resolve_path(disk_settings.root))


register_disk_driver("local", _create_local_disk)


def create_disk(name: str, settings: RestoreSettings) -> Disk:
    """
    Build the named disk from settings.

    Raises:
        KeyError: If the disk or its driver is not configured
    """
    if name not in settings.disks:
        raise KeyError(f"Disk '{name}' is not configured (available: {', '.join(settings.disks)})")

    disk_settings = settings.disks[name]
    factory = _DRIVERS.get(disk_settings.driver)
    if factory is None:
        raise KeyError(f"Unknown disk driver '{disk_settings.driver}' for disk '{name}'")
    return factory(name, disk_settings, settings)
