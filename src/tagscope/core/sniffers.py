"""
Content sniffers for tagscope.

A sniffer turns a bounded prefix of a file's bytes into a MIME type.
Three implementations exist, listed in order of preference:

- ``magic``: libmagic through python-magic, in process
- ``xdg-mime``: the shared-mime-info database via xdg-mime(1)
- ``file``: the file(1) command, fed the sample on stdin
"""

import logging
import shutil
import subprocess
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from tagscope.core.errors import ConfigurationError, TagscopeError

logger = logging.getLogger(__name__)


class SnifferError(TagscopeError):
    """Raised when a sniffer cannot determine a MIME type."""

    pass


class ContentSniffer(ABC):
    """Abstract interface for MIME type detection from a content sample."""

    name: str = ""

    @abstractmethod
    def usable(self) -> bool:
        """Check whether the sniffer can run in this environment."""
        raise NotImplementedError

    @abstractmethod
    def sniff(self, sample: bytes) -> str:
        """
        Detect the MIME type of a content sample.

        Args:
            sample: Leading bytes of the file

        Returns:
            MIME type such as ``text/x-shellscript``

        Raises:
            SnifferError: If detection fails
        """
        raise NotImplementedError


class MagicSniffer(ContentSniffer):
    """
    libmagic-backed sniffer.

    libmagic handles are not safe to share between threads, so each
    worker thread lazily opens its own ``magic.Magic`` instance.
    """

    name = "magic"

    def __init__(self) -> None:
        self._local = threading.local()

    def _handle(self):
        handle = getattr(self._local, "handle", None)
        if handle is None:
            import magic

            handle = magic.Magic(mime=True)
            self._local.handle = handle
        return handle

    def usable(self) -> bool:
        try:
            self._handle()
        except (ImportError, OSError) as e:
            logger.debug(f"libmagic is not usable: {e}")
            return False
        return True

    def sniff(self, sample: bytes) -> str:
        try:
            return str(self._handle().from_buffer(sample)).strip()
        except Exception as e:
            # magic.MagicException does not derive from OSError
            raise SnifferError(f"libmagic failed: {e}") from e


class FileCommandSniffer(ContentSniffer):
    """Sniffer running ``file -b --mime-type -`` with the sample on stdin."""

    name = "file"

    def __init__(self, executable: str = "file"):
        self._executable = executable

    def usable(self) -> bool:
        path = shutil.which(self._executable)
        if path is None:
            return False
        try:
            out = subprocess.run(
                [path, "--help"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.debug(f"Cannot run {self._executable}: {e}")
            return False
        return "--mime-type" in (out.stdout + out.stderr)

    def sniff(self, sample: bytes) -> str:
        try:
            out = subprocess.run(
                [self._executable, "-b", "--mime-type", "-"],
                input=sample,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise SnifferError(f"Cannot run {self._executable}: {e}") from e
        if out.returncode != 0:
            raise SnifferError(
                f"{self._executable} exited with status {out.returncode}: "
                f"{out.stderr.decode('utf-8', 'replace').strip()}"
            )
        return out.stdout.decode("utf-8", "replace").strip()


class XdgMimeSniffer(ContentSniffer):
    """
    Sniffer backed by the shared-mime-info database.

    ``xdg-mime query filetype`` only accepts a path, so the sample is
    written to a suffix-less temporary file first. Glob rules therefore
    never fire and the answer depends on the content alone. Reports the
    freedesktop subtypes (``text/x-csrc``, ``text/x-chdr``, ...).
    """

    name = "xdg-mime"

    def __init__(self, executable: str = "xdg-mime"):
        self._executable = executable

    def usable(self) -> bool:
        path = shutil.which(self._executable)
        if path is None:
            return False
        try:
            out = subprocess.run(
                [path, "--help"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.debug(f"Cannot run {self._executable}: {e}")
            return False
        return "filetype" in (out.stdout + out.stderr)

    def sniff(self, sample: bytes) -> str:
        try:
            with tempfile.TemporaryDirectory(prefix="tagscope-") as tmpdir:
                target = Path(tmpdir) / "sample"
                target.write_bytes(sample)
                out = subprocess.run(
                    [self._executable, "query", "filetype", str(target)],
                    capture_output=True,
                    check=False,
                )
        except OSError as e:
            raise SnifferError(f"Cannot run {self._executable}: {e}") from e
        mime = out.stdout.decode("utf-8", "replace").strip()
        if out.returncode != 0 or not mime:
            raise SnifferError(
                f"{self._executable} exited with status {out.returncode}: "
                f"{out.stderr.decode('utf-8', 'replace').strip()}"
            )
        return mime


# Preference order
SNIFFERS: tuple[type[ContentSniffer], ...] = (MagicSniffer, XdgMimeSniffer, FileCommandSniffer)


def available_sniffers() -> list[ContentSniffer]:
    """Instantiate every known sniffer in preference order."""
    return [cls() for cls in SNIFFERS]


def select_sniffer(name: str | None = None) -> ContentSniffer:
    """
    Pick the content sniffer to use.

    Args:
        name: Pin a sniffer by name; None picks the first usable one

    Raises:
        ConfigurationError: If the pinned sniffer is unknown or unusable,
            or if no sniffer is usable
    """
    sniffers = available_sniffers()

    if name is not None:
        for sniffer in sniffers:
            if sniffer.name == name:
                if not sniffer.usable():
                    raise ConfigurationError(f"Content sniffer {name!r} is not usable")
                return sniffer
        known = ", ".join(s.name for s in sniffers)
        raise ConfigurationError(f"Unknown content sniffer {name!r} (known: {known})")

    for sniffer in sniffers:
        if sniffer.usable():
            logger.debug(f"Using content sniffer: {sniffer.name}")
            return sniffer

    raise ConfigurationError(
        "No usable content sniffer found; install libmagic, xdg-utils or file(1)"
    )
