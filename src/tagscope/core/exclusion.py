"""
Exclusion policy for tagscope.

Decides which directories and files never enter the index: version
control metadata, backup files, editor swap/temp files, the databases
written by the backends, and any user-supplied patterns.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable

import pathspec

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


class RuleKind(str, Enum):
    """How an exclusion pattern is matched."""

    NAME = "name"
    GLOB = "glob"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class ExclusionRule:
    """
    A single exclusion pattern.

    Attributes:
        kind: NAME matches a file or directory by its exact name,
              DIRECTORY matches only directories by name, GLOB is a
              gitignore-style pattern matched against the root-relative path
        pattern: The pattern text
    """

    kind: RuleKind
    pattern: str

    @classmethod
    def parse(cls, text: str) -> "ExclusionRule":
        """
        Parse a user-supplied pattern.

        ``name/`` becomes a DIRECTORY rule, anything with glob
        metacharacters or an inner ``/`` becomes a GLOB rule, and a bare
        name becomes a NAME rule.

        Raises:
            ValueError: If the pattern is empty
        """
        text = text.strip()
        if not text or text == "/":
            raise ValueError("Empty exclusion pattern")

        bare = text.rstrip("/")
        if _GLOB_CHARS.intersection(text) or "/" in bare:
            return cls(RuleKind.GLOB, text)
        if text.endswith("/"):
            return cls(RuleKind.DIRECTORY, bare)
        return cls(RuleKind.NAME, text)


# Directories holding version control metadata
VCS_DIRECTORIES: tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
    ".bzr",
    "CVS",
    "_darcs",
    ".repo",
)

# Backup, swap and temp files left behind by editors and patch tools
BACKUP_PATTERNS: tuple[str, ...] = (
    "*~",
    "*.bak",
    "*.orig",
    "*.rej",
    "*.old",
)

EDITOR_TEMP_PATTERNS: tuple[str, ...] = (
    "*.swp",
    "*.swo",
    "*.swx",
    ".*.sw?",
    ".#*",
    "#*#",
    "*.tmp",
)

BASE_RULES: tuple[ExclusionRule, ...] = (
    *(ExclusionRule(RuleKind.DIRECTORY, name) for name in VCS_DIRECTORIES),
    *(ExclusionRule(RuleKind.GLOB, pattern) for pattern in BACKUP_PATTERNS),
    *(ExclusionRule(RuleKind.GLOB, pattern) for pattern in EDITOR_TEMP_PATTERNS),
)


class ExclusionPolicy:
    """
    Immutable predicate deciding whether a root-relative path is excluded.

    Built from the base rule set plus any additions; the union of all
    rules applies, so there is no precedence between them. Instances hold
    no mutable state after construction and are shared across workers.
    """

    def __init__(
        self,
        extra_rules: Iterable[ExclusionRule] = (),
        include_base: bool = True,
    ):
        """
        Initialize the policy.

        Args:
            extra_rules: Rules layered on top of the base rule set.
            include_base: If False, start from an empty rule set.
        """
        rules = list(BASE_RULES) if include_base else []
        rules.extend(extra_rules)
        self._rules: tuple[ExclusionRule, ...] = tuple(dict.fromkeys(rules))

        self._names = frozenset(r.pattern for r in self._rules if r.kind is RuleKind.NAME)
        self._directories = frozenset(
            r.pattern for r in self._rules if r.kind is RuleKind.DIRECTORY
        )
        # A leading '#' would make the line a gitignore comment
        globs = [
            "\\" + r.pattern if r.pattern.startswith("#") else r.pattern
            for r in self._rules
            if r.kind is RuleKind.GLOB
        ]
        self._pathspec: pathspec.PathSpec | None = (
            pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, globs)
            if globs
            else None
        )

    @classmethod
    def from_patterns(
        cls, patterns: Iterable[str], include_base: bool = True
    ) -> "ExclusionPolicy":
        """Build a policy from user-supplied pattern strings."""
        return cls([ExclusionRule.parse(p) for p in patterns if p.strip()], include_base)

    def with_rules(self, rules: Iterable[ExclusionRule]) -> "ExclusionPolicy":
        """Return a new policy with additional rules layered on top."""
        return ExclusionPolicy([*self._rules, *rules], include_base=False)

    @property
    def rules(self) -> tuple[ExclusionRule, ...]:
        """All rules in this policy."""
        return self._rules

    def is_excluded(self, path: str | PurePosixPath, is_dir: bool = False) -> bool:
        """
        Check whether a path is excluded.

        Args:
            path: Path relative to the scan root, POSIX separators
            is_dir: True if the path names a directory

        Returns:
            True if any rule matches
        """
        rel = str(path).replace("\\", "/").strip("/")
        if not rel or rel == ".":
            return False

        name = rel.rsplit("/", 1)[-1]
        if name in self._names:
            return True
        if is_dir and name in self._directories:
            return True

        if self._pathspec is not None:
            if self._pathspec.match_file(rel):
                return True
            if is_dir and self._pathspec.match_file(rel + "/"):
                return True

        return False
