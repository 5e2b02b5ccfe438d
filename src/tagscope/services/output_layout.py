"""
Output layout for tagscope.

Every backend runs with the scan root as its working directory, reads a
list of root-relative paths and writes its database into the root or a
root-relative output directory. Nothing recorded in a database refers to
an absolute path, so the root and its databases can be moved together.
"""

import logging
import posixpath
from pathlib import Path
from typing import Iterable

from tagscope.core.errors import ConfigurationError
from tagscope.core.exclusion import ExclusionRule, RuleKind
from tagscope.core.file_scanner import FileEntry
from tagscope.core.path_utils import (
    ensure_directory_exists,
    is_root_relative,
    resolve_under_root,
)
from tagscope.services.drivers import Driver

logger = logging.getLogger(__name__)


class OutputLayout:
    """
    Assigns artifact locations under the scan root.

    Also the only place that decides which drivers may run at the same
    time: two drivers writing the same artifact path are never placed in
    the same wave.
    """

    def __init__(self, root: Path, output_dir: str | Path | None = None):
        """
        Initialize the layout.

        Args:
            root: Scan root
            output_dir: Directory for the databases, relative to the root
                        (None or "" writes into the root)

        Raises:
            ConfigurationError: If output_dir is absolute or escapes the root
        """
        self._root = Path(root).resolve()
        rel = str(output_dir or ".").replace("\\", "/")
        rel = posixpath.normpath(rel)

        if rel != "." and not is_root_relative(rel):
            raise ConfigurationError(
                f"Output directory '{output_dir}' must be relative to the scan root"
            )
        try:
            resolve_under_root(self._root, rel)
        except ValueError as e:
            raise ConfigurationError(f"Invalid output directory: {e}") from e

        self._output_dir = rel

    @property
    def root(self) -> Path:
        return self._root

    @property
    def output_dir(self) -> str:
        """Output directory relative to the root ("." for the root itself)."""
        return self._output_dir

    def prepare(self) -> None:
        """Create the output directory if needed."""
        target = self._root / self._output_dir
        if not ensure_directory_exists(target):
            raise ConfigurationError(f"Cannot create output directory: {target}")

    def artifact_paths(self, driver: Driver) -> list[str]:
        """Root-relative paths of the files a driver writes."""
        return [
            posixpath.normpath(posixpath.join(self._output_dir, name))
            for name in driver.artifacts
        ]

    def command_for(self, driver: Driver, executable: str) -> list[str]:
        return driver.build_command(executable, self._output_dir)

    def waves(self, drivers: Iterable[Driver]) -> list[list[Driver]]:
        """
        Group drivers so no two in a group share an artifact path.

        Greedy first-fit in the given order; groups run one after another,
        drivers within a group may run concurrently.
        """
        waves: list[tuple[list[Driver], set[str]]] = []
        for driver in drivers:
            paths = set(self.artifact_paths(driver))
            for members, used in waves:
                if not paths & used:
                    members.append(driver)
                    used |= paths
                    break
            else:
                waves.append(([driver], paths))
        return [members for members, _ in waves]

    def relative_listing(self, entries: Iterable[FileEntry]) -> str:
        """
        Serialize entries as a newline-delimited list of relative paths.

        Raises:
            ValueError: If an entry path is absolute or leaves the root
        """
        lines = []
        for entry in entries:
            if not is_root_relative(entry.path):
                raise ValueError(f"Path is not relative to the scan root: {entry.path}")
            lines.append(entry.path)
        return "".join(f"{line}\n" for line in lines)

    def exclusion_rules(self, drivers: Iterable[Driver]) -> list[ExclusionRule]:
        """Rules keeping generated databases out of the file list.

        Anchored to the artifact locations, so a source file that merely
        shares a name with a database elsewhere in the tree is kept.
        """
        return [
            ExclusionRule(RuleKind.GLOB, "/" + path)
            for driver in drivers
            for path in self.artifact_paths(driver)
        ]
