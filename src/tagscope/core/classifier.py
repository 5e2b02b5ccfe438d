"""
Two-tier file classifier for tagscope.

Extension lookup first; when the extension is missing or unknown, a
bounded prefix of the file is read and handed to a content sniffer.
The result depends only on the extension and the content prefix.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path

from tagscope.core.errors import ClassificationAmbiguity
from tagscope.core.file_scanner import (
    Category,
    FileEntry,
    LanguageRegistry,
    get_default_registry,
)
from tagscope.core.sniffers import ContentSniffer, SnifferError

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 8192


@dataclass(frozen=True)
class Classification:
    """
    Outcome of classifying one file.

    Attributes:
        category: Detected category
        method: "extension", "mime", or None when nothing matched
        mime_type: Sniffed MIME type, if content was sniffed
    """

    category: Category
    method: str | None = None
    mime_type: str | None = None

    @property
    def included(self) -> bool:
        return self.category is not Category.UNSUPPORTED


def _read_sample(path: Path, sample_size: int) -> bytes:
    with open(path, "rb") as fh:
        return fh.read(sample_size)


def explain(
    path: Path,
    content_sniffer: ContentSniffer,
    registry: LanguageRegistry | None = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> Classification:
    """
    Classify a file and report how the decision was reached.

    Never raises for per-file problems: unreadable files, sniffer
    failures and ambiguous MIME types all come back as UNSUPPORTED.
    """
    reg = registry or get_default_registry()
    path = Path(path)

    category = reg.detect_from_path(path)
    if category is not Category.UNSUPPORTED:
        return Classification(category, "extension")

    try:
        sample = _read_sample(path, sample_size)
    except OSError as e:
        logger.warning(f"Cannot read {path} for content sniffing: {e}")
        return Classification(Category.UNSUPPORTED)

    # Empty or binary content never names a source language
    if not sample or b"\x00" in sample:
        return Classification(Category.UNSUPPORTED)

    try:
        mime_type = content_sniffer.sniff(sample)
    except SnifferError as e:
        logger.warning(f"Cannot determine MIME type for {path}: {e}")
        return Classification(Category.UNSUPPORTED)

    try:
        category = reg.detect_mime(mime_type)
    except ClassificationAmbiguity as e:
        logger.debug(f"{path}: {e}")
        return Classification(Category.UNSUPPORTED, mime_type=mime_type)

    if category is Category.UNSUPPORTED:
        return Classification(category, mime_type=mime_type)
    return Classification(category, "mime", mime_type)


def classify(
    path: Path,
    content_sniffer: ContentSniffer,
    registry: LanguageRegistry | None = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> Category:
    """Classify a file by extension, falling back to content sniffing."""
    return explain(path, content_sniffer, registry, sample_size).category


class Classifier:
    """
    Classifier bound to a registry, a content sniffer and a sample size.

    Holds no mutable state of its own; one instance is shared by every
    scheduler worker.
    """

    def __init__(
        self,
        content_sniffer: ContentSniffer,
        registry: LanguageRegistry | None = None,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ):
        if sample_size <= 0:
            raise ValueError(f"sample_size must be positive, got {sample_size}")
        self._sniffer = content_sniffer
        self._registry = registry or get_default_registry()
        self._sample_size = sample_size

    @property
    def sniffer(self) -> ContentSniffer:
        return self._sniffer

    def explain(self, path: Path) -> Classification:
        return explain(path, self._sniffer, self._registry, self._sample_size)

    def classify(self, path: Path) -> Category:
        return self.explain(path).category

    def classify_entry(self, root: Path, entry: FileEntry) -> FileEntry:
        """Return a copy of ``entry`` carrying its detected category."""
        category = self.classify(Path(root) / entry.path)
        return replace(
            entry,
            category=category,
            included=category is not Category.UNSUPPORTED,
        )
