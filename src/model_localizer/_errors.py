"""Normalized error hierarchy for model_localizer."""

from __future__ import annotations

from typing import Optional


class LocalizerError(Exception):
    """Base class for all model_localizer errors.

    :param message: Human-readable error description.
    :param path: The remote or local path involved in the error, if any.
    :param backend: The backend family involved, if any.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, backend: Optional[str] = None) -> None:
        self.path = path
        self.backend = backend
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.backend is not None:
            parts.append(f"backend={self.backend!r}")
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__())]
        if self.path is not None:
            args.append(f"path={self.path!r}")
        if self.backend is not None:
            args.append(f"backend={self.backend!r}")
        return f"{cls}({', '.join(args)})"


class MalformedPath(LocalizerError):
    """Raised when no container can be extracted from a remote path."""


class UnsupportedScheme(LocalizerError):
    """Raised when a path does not start with any supported scheme."""


class BackendDisabled(LocalizerError):
    """Raised when the backend family is disabled or its SDK is not installed."""


class NoMatchingCredential(LocalizerError):
    """Raised when no registered credential name is a prefix of the path."""


class ContainerUnreachable(LocalizerError):
    """Raised when the bucket or container cannot be reached."""


class NotFound(LocalizerError):
    """Raised when the remote file or directory does not exist."""


class ListingFailed(LocalizerError):
    """Raised when a listing or metadata call fails."""


class TransferFailed(LocalizerError):
    """Raised when a download or signed-URL request fails.

    :param status: HTTP status code of the failed response, if any.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        backend: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        self.status = status
        super().__init__(message, path=path, backend=backend)

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} | status={self.status}"
        return base

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(self.args[0] if self.args else "")]
        if self.path is not None:
            args.append(f"path={self.path!r}")
        if self.backend is not None:
            args.append(f"backend={self.backend!r}")
        if self.status is not None:
            args.append(f"status={self.status!r}")
        return f"{cls}({', '.join(args)})"


class LocalIOError(LocalizerError):
    """Raised when a local directory or file cannot be created or written."""


class ConfigError(LocalizerError):
    """Raised when a configuration or credential document cannot be loaded."""
