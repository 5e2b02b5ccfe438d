"""
FileScanner implementation for recursive directory scanning.
"""

import logging
import os
from pathlib import Path
from typing import Iterator

from tagscope.core.exclusion import ExclusionPolicy

from .interfaces import FileScannerInterface
from .models import FileEntry

logger = logging.getLogger(__name__)


def _extension_of(name: str) -> str | None:
    """Lower-cased suffix including the dot, or None for extensionless names."""
    suffix = Path(name).suffix
    return suffix.lower() if suffix else None


class FileScanner(FileScannerInterface):
    """
    Concrete implementation of FileScannerInterface.

    Walks the tree depth-first in sorted name order and yields a
    ``FileEntry`` per candidate file. The exclusion policy is consulted
    for every entry before anything else happens to it, so an excluded
    directory is never listed and an excluded file is never opened.

    Symbolic links are never followed, neither to directories nor to
    files. This is what keeps the walk free of cycles; there is no cycle
    detection.
    """

    def __init__(self, policy: ExclusionPolicy | None = None):
        """
        Initialize the FileScanner.

        Args:
            policy: Exclusion policy. If None, the base rule set is used.
        """
        self._policy = policy or ExclusionPolicy()

    @property
    def policy(self) -> ExclusionPolicy:
        return self._policy

    def scan(self, root_path: Path) -> Iterator[FileEntry]:
        """
        Recursively scan a directory and yield FileEntry objects.

        Args:
            root_path: Root directory to scan

        Yields:
            FileEntry objects with root-relative paths
        """
        root_path = Path(root_path)

        if not root_path.exists():
            logger.error(f"Root path does not exist: {root_path}")
            return

        if not root_path.is_dir():
            logger.error(f"Root path is not a directory: {root_path}")
            return

        yield from self._scan_directory(root_path, "")

    def _scan_directory(self, current_path: Path, rel_prefix: str) -> Iterator[FileEntry]:
        """
        Recursively scan a directory.

        Args:
            current_path: Directory being scanned
            rel_prefix: Its path relative to the root ("" for the root itself)
        """
        try:
            with os.scandir(current_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except PermissionError as e:
            logger.warning(f"Permission denied accessing directory: {current_path} - {e}")
            return
        except OSError as e:
            logger.warning(f"Error accessing directory: {current_path} - {e}")
            return

        for entry in entries:
            rel_path = f"{rel_prefix}{entry.name}"

            try:
                if entry.is_symlink():
                    logger.debug(f"Skipping symlink: {rel_path}")
                    continue
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file(follow_symlinks=False)
            except OSError as e:
                logger.warning(f"Error inspecting {rel_path}: {e}")
                continue

            if self._policy.is_excluded(rel_path, is_dir=is_dir):
                logger.debug(f"Ignoring: {rel_path}")
                continue

            if is_dir:
                yield from self._scan_directory(Path(entry.path), rel_path + "/")
            elif is_file:
                try:
                    size_bytes = entry.stat(follow_symlinks=False).st_size
                except OSError as e:
                    logger.warning(f"Error reading file metadata: {rel_path} - {e}")
                    continue
                yield FileEntry(
                    path=rel_path,
                    size_bytes=size_bytes,
                    extension=_extension_of(entry.name),
                )
