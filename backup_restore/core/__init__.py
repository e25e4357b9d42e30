"""
Backup Restore Core

Core classes for restore operations: archive location, validation,
extraction, database and file restoration, permissions and the pipeline
manager.
"""

from .manager import RestoreManager
from .locator import ArchiveLocator
from .validator import RestoreValidator
from .extractor import ArchiveExtractor
from .database import DatabaseRestorer
from .files import FileRestorer
from .permissions import PermissionFixer
from .deadline import Deadline

__all__ = [
    'RestoreManager',
    'ArchiveLocator',
    'RestoreValidator',
    'ArchiveExtractor',
    'DatabaseRestorer',
    'FileRestorer',
    'PermissionFixer',
    'Deadline'
]
