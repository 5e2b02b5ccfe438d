"""
Path utilities for tagscope.

Scan-root validation and the checks that keep every recorded path
relative to the scan root.
"""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional


@dataclass
class PathValidationResult:
    """Result of path validation.

    Attributes:
        valid: True if the path is valid for the requested operation.
        error_message: Human-readable error message if validation failed.
    """
    valid: bool
    error_message: Optional[str] = None


def validate_scan_root(path: str | Path) -> PathValidationResult:
    """
    Validate that a path is suitable as a scan root.

    Performs the following checks:
    1. Path exists
    2. Path is a directory

    Args:
        path: Path to validate (string or Path object).

    Returns:
        PathValidationResult with valid=True if all checks pass,
        or valid=False with an appropriate error message.
    """
    try:
        p = Path(path) if isinstance(path, str) else path

        if not p.exists():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' does not exist"
            )

        if not p.is_dir():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' is not a directory"
            )

        return PathValidationResult(valid=True)

    except (OSError, ValueError) as e:
        return PathValidationResult(
            valid=False,
            error_message=f"Invalid path '{path}': {e}"
        )


def is_root_relative(path: str) -> bool:
    """
    Check that a POSIX path stays inside the root it is relative to.

    Rejects absolute paths, Windows drive paths, and any ``..`` component.
    """
    if not path or path.startswith("/") or "\\" in path:
        return False
    pure = PurePosixPath(path)
    if ":" in pure.parts[0]:
        return False
    return ".." not in pure.parts


def resolve_under_root(root: Path, relative: str | Path) -> Path:
    """
    Resolve ``relative`` against ``root`` and check it stays inside it.

    Returns:
        The resolved absolute path

    Raises:
        ValueError: If the result lies outside the root
    """
    root_resolved = Path(root).resolve()
    target = (root_resolved / relative).resolve()
    if target != root_resolved and root_resolved not in target.parents:
        raise ValueError(f"'{relative}' is outside of '{root}'")
    return target


def ensure_directory_exists(path: Path) -> bool:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory to ensure exists.

    Returns:
        True if the directory exists or was created successfully,
        False if creation failed (e.g., permission error).
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except OSError:
        return False
