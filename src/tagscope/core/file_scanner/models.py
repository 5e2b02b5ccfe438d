"""
Data models for the file scanner module.
"""

from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Semantic file kind assigned by the classifier."""

    ASM = "asm"
    C = "c"
    C_HEADER = "c-header"
    CPP = "c++"
    CPP_HEADER = "c++-header"
    CSHARP = "csharp"
    ERLANG = "erlang"
    GO = "go"
    JAVA = "java"
    JAVASCRIPT = "javascript"
    LUA = "lua"
    PERL = "perl"
    PHP = "php"
    PYTHON = "python"
    RUBY = "ruby"
    RUST = "rust"
    SHELL = "shell"
    TCL = "tcl"
    UNSUPPORTED = "unsupported"


# C-family categories, used by drivers that only understand C-like sources
C_FAMILY: frozenset[Category] = frozenset([
    Category.C,
    Category.C_HEADER,
    Category.CPP,
    Category.CPP_HEADER,
])


@dataclass(frozen=True)
class FileEntry:
    """
    A candidate file discovered under the scan root.

    Created by the scanner with ``category=UNSUPPORTED`` and
    ``included=False``; the classifier replaces it exactly once with the
    detected category.

    Attributes:
        path: Path relative to the scan root, POSIX separators
        size_bytes: File size in bytes
        extension: Lower-cased suffix including the dot, or None
        category: Detected category
        included: True if the file belongs in the index
    """

    path: str
    size_bytes: int
    extension: str | None = None
    category: Category = Category.UNSUPPORTED
    included: bool = False
