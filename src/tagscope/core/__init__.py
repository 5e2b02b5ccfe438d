"""
Core Layer - exclusion policy, file scanning, classification and configuration.
"""

from tagscope.core.classifier import (
    DEFAULT_SAMPLE_SIZE,
    Classification,
    Classifier,
    classify,
    explain,
)
from tagscope.core.config import (
    ClassifyConfig,
    DriversConfig,
    LoggingConfig,
    ScanConfig,
    TagscopeConfig,
    load_config,
)
from tagscope.core.errors import (
    ClassificationAmbiguity,
    ConfigurationError,
    DriverFailure,
    TagscopeError,
)
from tagscope.core.exclusion import (
    BASE_RULES,
    ExclusionPolicy,
    ExclusionRule,
    RuleKind,
)
from tagscope.core.file_scanner import (
    Category,
    FileEntry,
    FileScanner,
    FileScannerInterface,
    LanguageRegistry,
    get_default_registry,
)
from tagscope.core.sniffers import (
    ContentSniffer,
    FileCommandSniffer,
    MagicSniffer,
    SnifferError,
    XdgMimeSniffer,
    select_sniffer,
)

__all__ = [
    # Config
    "TagscopeConfig",
    "ScanConfig",
    "ClassifyConfig",
    "DriversConfig",
    "LoggingConfig",
    "load_config",
    # Errors
    "TagscopeError",
    "ConfigurationError",
    "ClassificationAmbiguity",
    "DriverFailure",
    # Exclusion
    "ExclusionPolicy",
    "ExclusionRule",
    "RuleKind",
    "BASE_RULES",
    # FileScanner
    "FileEntry",
    "Category",
    "FileScannerInterface",
    "FileScanner",
    "LanguageRegistry",
    "get_default_registry",
    # Classification
    "Classification",
    "Classifier",
    "classify",
    "explain",
    "DEFAULT_SAMPLE_SIZE",
    # Sniffers
    "ContentSniffer",
    "MagicSniffer",
    "XdgMimeSniffer",
    "FileCommandSniffer",
    "SnifferError",
    "select_sniffer",
]
