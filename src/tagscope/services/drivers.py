"""
Backend driver registry and selection for tagscope.

The set of backends is closed: each known indexing tool is one ``Driver``
value carrying its executable names, the kind of database it builds, the
categories it understands and how it is invoked. Selection is a pure
function of that set, the categories present in the classified file list
and the executables found on PATH.
"""

import logging
import posixpath
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Iterable

from tagscope.core.errors import ConfigurationError
from tagscope.core.file_scanner import C_FAMILY, Category, FileEntry

logger = logging.getLogger(__name__)


class DatabaseKind(str, Enum):
    """What a backend's database answers."""

    TAGS = "tags"  # symbol definitions
    XREF = "xref"  # cross references: callers, uses, includes


# Every category a tag builder can be asked about
ALL_CATEGORIES: frozenset[Category] = frozenset(
    c for c in Category if c is not Category.UNSUPPORTED
)


@dataclass(frozen=True)
class Driver:
    """
    Descriptor of one external indexing backend.

    Attributes:
        name: Identifying name used for pinning and reporting
        executables: Candidate executable names, tried in order
        kind: Kind of database the backend builds
        capabilities: Categories the backend can index
        arguments: Command-line arguments; ``{dir}`` is replaced by the
                   root-relative output directory
        artifacts: File names the backend writes into the output directory
        probe_args: Arguments for a probe run checking the executable is
                    the expected tool (empty: no probe)
        probe_markers: At least one must appear in the probe output
    """

    name: str
    executables: tuple[str, ...]
    kind: DatabaseKind
    capabilities: frozenset[Category]
    arguments: tuple[str, ...]
    artifacts: tuple[str, ...]
    probe_args: tuple[str, ...] = ()
    probe_markers: tuple[str, ...] = ()

    def offers(self, categories: Iterable[Category]) -> set[tuple[Category, DatabaseKind]]:
        """(category, kind) pairs this driver contributes for the given categories."""
        return {(c, self.kind) for c in categories if c in self.capabilities}

    def build_command(self, executable: str, output_dir: str = ".") -> list[str]:
        """
        Build the argv for one run.

        The file list is always delivered on stdin and the process runs
        with the scan root as working directory, so ``output_dir`` is
        relative to the root.
        """
        argv = [executable]
        for arg in self.arguments:
            if "{dir}" in arg:
                arg = posixpath.normpath(arg.format(dir=output_dir or "."))
            argv.append(arg)
        return argv

    def find_executable(self, search_path: str | None = None) -> str | None:
        """
        Locate a working executable for this driver.

        Args:
            search_path: PATH-style string; None uses the process PATH

        Returns:
            Absolute path of the first candidate found and accepted by the
            probe, or None
        """
        for candidate in self.executables:
            path = shutil.which(candidate, path=search_path)
            if path is None:
                continue
            if self._probe(path):
                return path
            logger.debug(f"{self.name}: {path} rejected by probe")
        return None

    def _probe(self, executable: str) -> bool:
        if not self.probe_args:
            return True
        try:
            out = subprocess.run(
                [executable, *self.probe_args],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as e:
            logger.debug(f"{self.name}: cannot run {executable}: {e}")
            return False
        output = out.stdout + out.stderr
        return any(marker in output for marker in self.probe_markers)


CTAGS = Driver(
    name="ctags",
    executables=("uctags", "ectags", "exctags", "ctags"),
    kind=DatabaseKind.TAGS,
    capabilities=ALL_CATEGORIES,
    arguments=(
        "-L", "-",
        "-f", "{dir}/tags",
        "--tag-relative=no",
        "--extra=+q",
        "--fields=+i",
    ),
    artifacts=("tags",),
    probe_args=("--version",),
    probe_markers=("Exuberant Ctags", "Universal Ctags"),
)

CSCOPE = Driver(
    name="cscope",
    executables=("cscope",),
    kind=DatabaseKind.XREF,
    capabilities=C_FAMILY | {Category.ASM, Category.JAVA},
    arguments=("-b", "-q", "-k", "-i", "-", "-f", "{dir}/cscope.out"),
    artifacts=("cscope.out", "cscope.in.out", "cscope.po.out"),
)

GTAGS = Driver(
    name="gtags",
    executables=("gtags",),
    kind=DatabaseKind.XREF,
    capabilities=C_FAMILY | {
        Category.ASM,
        Category.JAVA,
        Category.PHP,
        Category.JAVASCRIPT,
        Category.PYTHON,
        Category.RUBY,
        Category.GO,
        Category.PERL,
        Category.SHELL,
    },
    arguments=("-f", "-", "{dir}"),
    artifacts=("GTAGS", "GRTAGS", "GPATH"),
)

# Priority order: earlier drivers win ties during selection
DEFAULT_DRIVERS: tuple[Driver, ...] = (CTAGS, CSCOPE, GTAGS)


def _present_categories(classified: Iterable[FileEntry]) -> set[Category]:
    return {e.category for e in classified if e.category is not Category.UNSUPPORTED}


class DriverRegistry:
    """
    Registry of the known backend drivers, in priority order.

    Example:
        >>> registry = DriverRegistry()
        >>> installed = registry.discover_installed()
        >>> chosen = registry.select(classified_files, installed)
    """

    def __init__(self, drivers: Iterable[Driver] = DEFAULT_DRIVERS):
        self._drivers: tuple[Driver, ...] = tuple(drivers)
        names = [d.name for d in self._drivers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate driver names: {names}")
        self._priority = {d.name: i for i, d in enumerate(self._drivers)}

    @property
    def drivers(self) -> tuple[Driver, ...]:
        return self._drivers

    def names(self) -> list[str]:
        return [d.name for d in self._drivers]

    def get(self, name: str) -> Driver | None:
        for driver in self._drivers:
            if driver.name == name:
                return driver
        return None

    def discover_installed(self, search_path: str | None = None) -> dict[str, str]:
        """
        Find the executables of every known driver.

        Returns:
            Mapping of driver name to executable path, for installed drivers
        """
        installed: dict[str, str] = {}
        for driver in self._drivers:
            executable = driver.find_executable(search_path)
            if executable is not None:
                installed[driver.name] = executable
                logger.debug(f"Found {driver.name}: {executable}")
            else:
                logger.debug(f"{driver.name} not found on PATH")
        return installed

    def eligible(self, installed: dict[str, str]) -> list[Driver]:
        """Installed drivers in priority order."""
        return [d for d in self._drivers if d.name in installed]

    def require_any(self, installed: dict[str, str], pinned: str | None = None) -> None:
        """
        Fail early when nothing could be run.

        Checked before the scan so a run without backends never reads
        file content.

        Raises:
            ConfigurationError: If the pinned driver is unknown or not
                installed, or if no driver is installed at all
        """
        if pinned:
            driver = self.get(pinned)
            if driver is None:
                raise ConfigurationError(
                    f"Unknown driver {pinned!r} (known: {', '.join(self.names())})"
                )
            if pinned not in installed:
                raise ConfigurationError(
                    f"Driver {pinned!r} requested but none of "
                    f"{', '.join(driver.executables)} was found on PATH"
                )
            return

        if not self.eligible(installed):
            executables = sorted({e for d in self._drivers for e in d.executables})
            raise ConfigurationError(
                f"No indexing backend found on PATH (looked for {', '.join(executables)})"
            )

    def select(
        self,
        classified: Iterable[FileEntry],
        installed: dict[str, str],
        pinned: str | None = None,
    ) -> tuple[Driver, ...]:
        """
        Pick the drivers to run.

        A pinned driver is validated and used alone. Otherwise the smallest
        set of installed drivers covering every (category, database kind)
        pair that any installed driver offers for the present categories
        is chosen; among equally small sets the one whose priority indices
        sort first wins.

        Returns:
            Selected drivers in priority order

        Raises:
            ConfigurationError: See ``require_any``
        """
        self.require_any(installed, pinned)

        if pinned:
            return (self.get(pinned),)

        eligible = self.eligible(installed)
        categories = _present_categories(classified)

        required: set[tuple[Category, DatabaseKind]] = set()
        for driver in eligible:
            required |= driver.offers(categories)
        if not required:
            return ()

        # Drivers offering nothing for these categories can never help
        useful = [d for d in eligible if d.offers(categories)]
        for size in range(1, len(useful) + 1):
            # combinations() of a priority-ordered list yields candidates in
            # lexicographic priority order, so the first cover found wins
            for subset in combinations(useful, size):
                covered: set[tuple[Category, DatabaseKind]] = set()
                for driver in subset:
                    covered |= driver.offers(categories)
                if covered >= required:
                    logger.debug(f"Selected drivers: {[d.name for d in subset]}")
                    return subset

        # Unreachable: the full useful set always covers required
        return tuple(useful)

    def missing(
        self,
        classified: Iterable[FileEntry],
        installed: dict[str, str],
        selected: Iterable[Driver],
    ) -> list[Driver]:
        """
        Drivers that are not installed but would have added coverage.

        A missing driver is only reported when the selected drivers leave
        some (category, kind) pair it offers uncovered.
        """
        categories = _present_categories(classified)
        covered: set[tuple[Category, DatabaseKind]] = set()
        for driver in selected:
            covered |= driver.offers(categories)

        return [
            d
            for d in self._drivers
            if d.name not in installed and d.offers(categories) - covered
        ]
