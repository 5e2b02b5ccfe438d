"""
Abstract interfaces for file scanning operations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from .models import FileEntry


class FileScannerInterface(ABC):
    """
    Abstract interface for file scanning operations.

    Implementations walk a directory tree and yield candidate files,
    pruning whatever the exclusion policy rejects.
    """

    @abstractmethod
    def scan(self, root_path: Path) -> Iterator[FileEntry]:
        """
        Recursively scan a directory and yield FileEntry objects.

        Args:
            root_path: Root directory to scan

        Yields:
            FileEntry objects for each candidate file

        Notes:
            - Never descends into excluded directories
            - Never follows symbolic links
            - Logs errors and continues on unreadable directories
        """
        pass
