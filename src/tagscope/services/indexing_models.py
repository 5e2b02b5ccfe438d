"""
Indexing Service data models.

Contains dataclasses for the unit of work handed to the invoker and for
per-driver and per-run results.
"""

from dataclasses import dataclass, field
from pathlib import Path

from tagscope.core.errors import DriverFailure
from tagscope.core.file_scanner import FileEntry
from tagscope.services.drivers import Driver

# Exit statuses of the command-line tool
EXIT_OK = 0
EXIT_DRIVER_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


@dataclass(frozen=True)
class IndexJob:
    """Everything needed to build the databases for one run."""

    root: Path
    output_dir: str
    drivers: tuple[Driver, ...]
    executables: dict[str, str]
    files: tuple[FileEntry, ...]


@dataclass
class DriverResult:
    """Outcome of running one driver."""

    driver: str
    command: list[str] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
    failure: DriverFailure | None = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class RunResult:
    """Aggregated outcome of one run."""

    total_files: int = 0
    files: list[str] = field(default_factory=list)
    results: list[DriverResult] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    require_all: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> list[DriverResult]:
        return [r for r in self.results if r.ok]

    @property
    def failures(self) -> list[DriverFailure]:
        return [r.failure for r in self.results if r.failure is not None]

    @property
    def ok(self) -> bool:
        """At least one driver succeeded, or every one with require_all.

        A run with nothing to index and therefore no driver to run is
        successful.
        """
        if not self.results:
            return True
        if self.require_all:
            return not self.failures
        return bool(self.succeeded)

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.ok else EXIT_DRIVER_FAILURE
