"""
Classification scheduler for tagscope.

Fans candidate files out to a bounded thread pool and merges the results
into a single path-sorted list. Classification is I/O bound (reading a
content sample, libmagic releases the GIL), so threads are used.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

from tagscope.core.classifier import Classification, Classifier
from tagscope.core.file_scanner import FileEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_worker_count() -> int:
    """One worker per CPU this process may run on, at least one."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


class ClassificationScheduler:
    """
    Classifies candidate files in parallel.

    The only synchronization point is the final aggregation: every future
    is collected, unsupported entries are dropped, and the survivors are
    sorted by path. The output is therefore independent of worker count
    and of completion order.
    """

    def __init__(
        self,
        classifier: Classifier,
        max_workers: int | None = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            classifier: Shared classifier; must be safe to call from threads
            max_workers: Pool size (default: one per CPU)
            progress_callback: Optional callback(done, total)
        """
        workers = max_workers if max_workers else default_worker_count()
        if workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._classifier = classifier
        self._max_workers = workers
        self._progress_callback = progress_callback

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def _report_progress(self, done: int, total: int) -> None:
        if self._progress_callback:
            self._progress_callback(done, total)

    def classify_all(self, root: Path, entries: Iterable[FileEntry]) -> list[FileEntry]:
        """
        Classify every entry and return the included ones sorted by path.

        Args:
            root: Scan root the entry paths are relative to
            entries: Candidate entries, typically straight from the scanner

        Returns:
            Included entries sorted by path
        """
        root = Path(root)
        classified = self._map(
            lambda entry: self._classifier.classify_entry(root, entry), entries
        )

        included = [entry for _, entry in classified if entry.included]
        included.sort(key=lambda entry: entry.path)
        logger.info(f"Classified {len(classified)} files, {len(included)} included")
        return included

    def explain_all(
        self, root: Path, entries: Iterable[FileEntry]
    ) -> list[tuple[FileEntry, Classification]]:
        """
        Classify every entry and keep the decision details.

        Unlike ``classify_all`` nothing is dropped; used for inspection.

        Returns:
            (entry, classification) pairs sorted by path
        """
        root = Path(root)
        explained = self._map(
            lambda entry: self._classifier.explain(root / entry.path), entries
        )
        explained.sort(key=lambda pair: pair[0].path)
        return explained

    def _map(
        self, fn: Callable[[FileEntry], T], entries: Iterable[FileEntry]
    ) -> list[tuple[FileEntry, T]]:
        """Apply ``fn`` to every entry; failures are logged and dropped."""
        if self._max_workers == 1:
            results = []
            for done, entry in enumerate(entries, start=1):
                try:
                    results.append((entry, fn(entry)))
                except Exception as e:
                    logger.error(f"Failed to classify {entry.path}: {e}")
                self._report_progress(done, done)
            return results

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="tagscope-classify"
        ) as executor:
            futures = [(executor.submit(fn, entry), entry) for entry in entries]
            total = len(futures)

            results = []
            for done, (future, entry) in enumerate(futures, start=1):
                try:
                    results.append((entry, future.result()))
                except Exception as e:
                    logger.error(f"Failed to classify {entry.path}: {e}")
                if done % 100 == 0 or done == total:
                    self._report_progress(done, total)

        return results
