"""
Permission Fixer

Applies configured modes to restored web and storage directories.
"""

import logging
import os
from pathlib import Path
from typing import List

from config.settings import RestoreSettings
from ..exceptions import PermissionFixError

logger = logging.getLogger(__name__)


def _raise_walk_error(error: OSError) -> None:
    raise error


class PermissionFixer:
    """
    Apply directory and file modes recursively.

    Failures never propagate; they come back as warning strings.
    """

    def __init__(self, settings: RestoreSettings):
        self.settings = settings
        self.permissions = settings.permissions

    def target_directories(self) -> List[Path]:
        configured = self.permissions.web_directories + self.permissions.storage_directories
        return [self.settings.resolve_path(d) for d in configured]

    def apply(self, root: Path) -> None:
        """
        Apply modes to root and everything below it.

        Raises:
            PermissionFixError: If a chmod fails
        """
        dir_mode = self.permissions.directories
        file_mode = self.permissions.files
        try:
            os.chmod(root, dir_mode)
            for current, dirs, files in os.walk(root, onerror=_raise_walk_error):
                for name in dirs:
                    os.chmod(os.path.join(current, name), dir_mode)
                for name in files:
                    path = os.path.join(current, name)
                    if not os.path.islink(path):
                        os.chmod(path, file_mode)
        except OSError as e:
            raise PermissionFixError(f"Failed to set permissions on {root}: {e}", path=str(root))

    def fix(self) -> List[str]:
        """
        Fix permissions on every configured directory.

        Missing directories are skipped.

        Returns:
            Warning messages, empty when everything succeeded
        """
        warnings: List[str] = []
        for directory in self.target_directories():
            if not directory.is_dir():
                logger.debug(f"Permission target missing, skipped: {directory}")
                continue
            try:
                self.apply(directory)
                logger.info(
                    f"Permissions set on {directory} "
                    f"(dirs {oct(self.permissions.directories)}, files {oct(self.permissions.files)})"
                )
            except PermissionFixError as e:
                logger.warning(e.message)
                warnings.append(e.message)
        return warnings
