"""
FileScanner module for tagscope.

Provides recursive directory scanning with exclusion pruning and the
extension/MIME registry used for classification.
"""

from .interfaces import FileScannerInterface
from .language_registry import LanguageRegistry, get_default_registry, mime_subtype
from .models import C_FAMILY, Category, FileEntry
from .scanner import FileScanner

__all__ = [
    # Main classes
    "FileScanner",
    "FileScannerInterface",
    "FileEntry",
    "Category",
    # Language registry
    "LanguageRegistry",
    "get_default_registry",
    "mime_subtype",
    # Constants
    "C_FAMILY",
]
