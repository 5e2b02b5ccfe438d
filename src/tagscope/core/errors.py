"""Exception types for tagscope."""


class TagscopeError(Exception):
    """Base exception for tagscope errors."""

    pass


class ConfigurationError(TagscopeError):
    """Fatal configuration problem detected before any backend is spawned.

    Raised when a pinned driver is not installed, when no backend driver
    is usable at all, when no content sniffer is usable, or when the
    configured output directory escapes the scan root.
    """

    pass


class ClassificationAmbiguity(TagscopeError):
    """A sniffed MIME type maps to more than one category.

    Never fatal: the classifier resolves it to ``Category.UNSUPPORTED``.
    """

    def __init__(self, mime_type: str, candidates: list[str]):
        self.mime_type = mime_type
        self.candidates = candidates
        super().__init__(
            f"MIME type {mime_type!r} is ambiguous: {', '.join(sorted(candidates))}"
        )


class DriverFailure(TagscopeError):
    """A backend process could not be spawned or exited with a nonzero status.

    Collected per driver by the invoker; never aborts the other drivers.
    """

    def __init__(self, driver: str, diagnostics: str, returncode: int | None = None):
        self.driver = driver
        self.diagnostics = diagnostics
        self.returncode = returncode
        if returncode is None:
            message = f"{driver}: failed to start"
        else:
            message = f"{driver}: exited with status {returncode}"
        super().__init__(message)
