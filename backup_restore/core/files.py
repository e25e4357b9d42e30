"""
File Restorer

Merges directory trees from an extracted archive into local destinations
according to the configured file mappings.
"""

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from config.settings import RestoreSettings
from ..exceptions import MappingSkippedError
from ..models.entities import ExtractedTree, FileMapping, FileRestoreResult
from .deadline import Deadline

logger = logging.getLogger(__name__)


def _raise_walk_error(error: OSError) -> None:
    raise error


class FileRestorer:
    """
    Restore files from an extracted archive.

    Each mapping is handled independently. Merges are additive: files that
    exist only at the destination are never removed.

    Example:
        ```python
        restorer = FileRestorer(settings)
        result = restorer.restore(tree)
        print(f"Restored {result.restored}, skipped {result.skipped}, failed {result.failed}")
        ```
    """

    def __init__(self, settings: RestoreSettings):
        self.settings = settings
        self.file_settings = settings.files

    def mappings(self) -> List[FileMapping]:
        """Configured mappings in declaration order."""
        return [
            FileMapping(source=source, destination=self.settings.resolve_path(destination))
            for source, destination in self.file_settings.mappings.items()
        ]

    def source_path(self, tree: ExtractedTree, mapping: FileMapping) -> Path:
        """Locate a mapping source inside the extracted tree."""
        base = tree.root / self.settings.container_base_path.strip("/")
        return base / mapping.source.strip("/")

    def snapshot(self, destination: Path) -> Path:
        """
        Copy an existing destination aside before it is merged into.

        Returns:
            Path of the snapshot directory
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        target = destination.with_name(f"{destination.name}_backup_{timestamp}")
        shutil.copytree(destination, target, symlinks=True)
        logger.info(f"Snapshot of {destination} saved to {target}")
        return target

    def merge_tree(self, source: Path, destination: Path) -> int:
        """
        Recursively copy source into destination.

        Files at the same relative path are overwritten unless
        ``files.overwrite_existing`` is off. Nothing is deleted.

        Returns:
            Number of files copied
        """
        overwrite = self.file_settings.overwrite_existing
        pending = []

        for current, dirs, files in os.walk(source, onerror=_raise_walk_error):
            relative = Path(current).relative_to(source)
            target_dir = destination / relative
            target_dir.mkdir(parents=True, exist_ok=True)
            for name in files:
                target = target_dir / name
                if target.exists() and not overwrite:
                    logger.debug(f"Keeping existing file: {target}")
                    continue
                pending.append((Path(current) / name, target))

        for src, dst in tqdm(pending, desc=f"Copying {source.name}", unit="file",
                             disable=not self.settings.restoration.show_progress):
            shutil.copy2(src, dst)

        return len(pending)

    def _restore_mapping(self, tree: ExtractedTree, mapping: FileMapping, result: FileRestoreResult) -> None:
        source = self.source_path(tree, mapping)
        if not source.is_dir():
            raise MappingSkippedError(
                f"Source '{mapping.source}' not found in backup",
                source=mapping.source
            )

        destination = mapping.destination
        if destination.exists() and self.file_settings.backup_existing_files:
            result.snapshots.append(str(self.snapshot(destination)))

        if not destination.exists():
            if not self.file_settings.create_directories:
                raise FileNotFoundError(f"Destination does not exist: {destination}")
            destination.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created destination directory: {destination}")

        copied = self.merge_tree(source, destination)
        result.files_copied += copied
        logger.info(f"Restored {mapping.source} -> {destination} ({copied} files)")

    def restore(self, tree: ExtractedTree, deadline: Optional[Deadline] = None) -> FileRestoreResult:
        """
        Apply every configured mapping.

        Missing sources are skipped with a warning. An OSError fails only the
        mapping it occurred in.

        Args:
            tree: Extracted archive
            deadline: Run deadline checked between mappings

        Returns:
            FileRestoreResult with per-mapping counts

        Raises:
            RestoreTimeoutError: If the deadline passes
        """
        result = FileRestoreResult()

        for mapping in self.mappings():
            if deadline is not None:
                deadline.check(f"restoring {mapping.source}")
            try:
                self._restore_mapping(tree, mapping, result)
                result.restored += 1
            except MappingSkippedError as e:
                logger.warning(f"Skipping mapping: {e.message}")
                result.skipped += 1
            except OSError as e:
                logger.error(f"Failed to restore {mapping.source}: {e}")
                result.failed += 1
                result.errors.append(f"{mapping.source}: {e}")

        logger.info(
            f"File restore complete: {result.restored} restored, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result
