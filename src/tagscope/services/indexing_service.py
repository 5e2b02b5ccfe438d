"""
Indexing Service for tagscope.

Coordinates one run: driver discovery, directory scanning, parallel
classification, driver selection and backend invocation.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from tagscope.core.classifier import Classification, Classifier
from tagscope.core.config import TagscopeConfig
from tagscope.core.errors import ConfigurationError
from tagscope.core.exclusion import ExclusionPolicy, ExclusionRule
from tagscope.core.file_scanner import FileEntry, FileScanner, LanguageRegistry
from tagscope.core.path_utils import validate_scan_root
from tagscope.core.sniffers import ContentSniffer, select_sniffer
from tagscope.services.drivers import DriverRegistry
from tagscope.services.indexing_models import IndexJob, RunResult
from tagscope.services.invoker import Invoker
from tagscope.services.output_layout import OutputLayout
from tagscope.services.scheduler import ClassificationScheduler

logger = logging.getLogger(__name__)


class IndexingService:
    """
    Service for building tag databases for a source tree.

    Every dependency can be injected; by default drivers are discovered on
    ``PATH`` and the first usable content sniffer is used.
    """

    def __init__(
        self,
        config: Optional[TagscopeConfig] = None,
        driver_registry: Optional[DriverRegistry] = None,
        content_sniffer: Optional[ContentSniffer] = None,
        language_registry: Optional[LanguageRegistry] = None,
        search_path: Optional[str] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ):
        """
        Initialize the indexing service.

        Args:
            config: Run configuration (default: TagscopeConfig())
            driver_registry: Known backend drivers (default: DriverRegistry())
            content_sniffer: Sniffer to use (default: selected from config)
            language_registry: Extension/MIME tables (default registry if None)
            search_path: PATH-style string to look for executables in
                         (default: the PATH environment variable)
            progress_callback: Optional callback(done, total) for classification
        """
        self._config = config or TagscopeConfig()
        self._drivers = driver_registry or DriverRegistry()
        self._sniffer = content_sniffer
        self._language_registry = language_registry
        self._search_path = search_path
        self._progress_callback = progress_callback
        self._installed: dict[str, str] | None = None

    @property
    def config(self) -> TagscopeConfig:
        return self._config

    @property
    def driver_registry(self) -> DriverRegistry:
        return self._drivers

    @property
    def pinned_driver(self) -> str | None:
        return self._config.drivers.pinned or None

    def installed_drivers(self) -> dict[str, str]:
        """Executables of the installed drivers, discovered once."""
        if self._installed is None:
            self._installed = self._drivers.discover_installed(self._search_path)
        return self._installed

    def content_sniffer(self) -> ContentSniffer:
        """The sniffer used for classification, selected on first use.

        Raises:
            ConfigurationError: If no usable sniffer is available
        """
        if self._sniffer is None:
            self._sniffer = select_sniffer(self._config.classify.sniffer or None)
        return self._sniffer

    def layout_for(self, root: Path) -> OutputLayout:
        return OutputLayout(root, self._config.drivers.output_dir or None)

    def build_policy(self, layout: OutputLayout) -> ExclusionPolicy:
        """
        Exclusion policy for a run: base rules, configured patterns and the
        databases every known driver could write.

        Raises:
            ConfigurationError: If a configured pattern is invalid
        """
        rules: list[ExclusionRule] = []
        for pattern in self._config.scan.exclude_patterns:
            try:
                rules.append(ExclusionRule.parse(pattern))
            except ValueError as e:
                raise ConfigurationError(f"Invalid exclude pattern {pattern!r}: {e}") from e
        rules.extend(layout.exclusion_rules(self._drivers.drivers))
        return ExclusionPolicy(rules)

    def _resolve_root(self, root: Path | str) -> Path:
        result = validate_scan_root(root)
        if not result.valid:
            raise ConfigurationError(result.error_message)
        return Path(root).resolve()

    def _scheduler(self) -> ClassificationScheduler:
        """
        Build the scheduler from the configured sample size and job count.

        Raises:
            ConfigurationError: If either value is out of range
        """
        try:
            classifier = Classifier(
                self.content_sniffer(),
                registry=self._language_registry,
                sample_size=self._config.classify.sample_size,
            )
            return ClassificationScheduler(
                classifier,
                max_workers=self._config.scan.jobs or None,
                progress_callback=self._progress_callback,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def classify_directory(self, root: Path | str) -> list[FileEntry]:
        """
        Scan and classify a directory without running any backend.

        Returns:
            Included entries sorted by path

        Raises:
            ConfigurationError: If the root, output directory, patterns or
                sniffer are invalid
        """
        root_path = self._resolve_root(root)
        layout = self.layout_for(root_path)
        scanner = FileScanner(self.build_policy(layout))
        return self._scheduler().classify_all(root_path, scanner.scan(root_path))

    def inspect_directory(self, root: Path | str) -> list[tuple[FileEntry, Classification]]:
        """
        Explain the classification of every candidate file.

        No driver is needed and none is run.

        Returns:
            (entry, classification) pairs sorted by path, excluded ones included
        """
        root_path = self._resolve_root(root)
        layout = self.layout_for(root_path)
        scanner = FileScanner(self.build_policy(layout))
        return self._scheduler().explain_all(root_path, scanner.scan(root_path))

    def index_directory(self, root: Path | str) -> RunResult:
        """
        Build the databases for a directory.

        Args:
            root: Scan root

        Returns:
            RunResult with per-driver outcomes and the missing drivers

        Raises:
            ConfigurationError: If no usable driver is installed (checked
                before anything is scanned) or the setup is otherwise invalid
        """
        start_time = time.time()
        root_path = self._resolve_root(root)
        layout = self.layout_for(root_path)
        pinned = self.pinned_driver

        installed = self.installed_drivers()
        self._drivers.require_any(installed, pinned)

        scanner = FileScanner(self.build_policy(layout))
        files = self._scheduler().classify_all(root_path, scanner.scan(root_path))

        selected = self._drivers.select(files, installed, pinned)
        missing = [] if pinned else self._drivers.missing(files, installed, selected)
        for driver in missing:
            logger.warning(
                f"{driver.name} is not installed; its {driver.kind.value} database "
                f"will not be built"
            )

        if not selected:
            logger.warning(f"No indexable files found under {root_path}")
            return RunResult(
                total_files=len(files),
                files=[f.path for f in files],
                missing=[d.name for d in missing],
                require_all=self._config.drivers.require_all,
                duration_seconds=time.time() - start_time,
            )

        job = IndexJob(
            root=root_path,
            output_dir=layout.output_dir,
            drivers=selected,
            executables={d.name: installed[d.name] for d in selected},
            files=tuple(files),
        )
        logger.info(
            f"Indexing {len(files)} files with {', '.join(d.name for d in selected)}"
        )

        result = Invoker(layout, require_all=self._config.drivers.require_all).run(job)
        result.files = [f.path for f in files]
        result.missing = [d.name for d in missing]
        result.duration_seconds = time.time() - start_time
        return result
