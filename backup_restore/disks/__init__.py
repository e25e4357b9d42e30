"""
Disks

Storage abstraction the locator and extractor read archives through.
"""

from .base import Disk
from .local import LocalDisk
from .registry import create_disk, register_disk_driver

__all__ = [
    'Disk',
    'LocalDisk',
    'create_disk',
    'register_disk_driver'
]
