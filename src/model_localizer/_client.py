"""StorageClient abstract base class: the capability set the engine relies on."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType


class StorageClient(abc.ABC):
    """Credential-bound client for one backend family.

    Object stores have no real directories: a path is a directory when at
    least one object key starts with ``path + "/"``. Backend-native
    exceptions must never leak; they are mapped to ``model_localizer`` errors.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Backend family tag (e.g. ``'s3'``, ``'gs'``)."""

    @abc.abstractmethod
    def check_client(self, path: str) -> None:
        """Verify the client can serve ``path``.

        :raises ContainerUnreachable: If the container cannot be reached.
        """

    @abc.abstractmethod
    def effective_path(self, path: str) -> str:
        """Canonical form of ``path`` used for all recursive calls.

        :raises MalformedPath: If ``path`` cannot be parsed.
        """

    @abc.abstractmethod
    def file_exists(self, path: str) -> bool:
        """Return ``True`` if ``path`` names an object or a directory-like prefix."""

    @abc.abstractmethod
    def is_directory(self, path: str) -> bool:
        """Return ``True`` if ``path`` is a directory. The container root always is.

        :raises ContainerUnreachable: If the container cannot be reached.
        """

    @abc.abstractmethod
    def list_children(self, path: str) -> set[str]:
        """Names of the immediate children of directory ``path``.

        Follows pagination until the listing is exhausted.

        :raises ListingFailed: If any listing page fails.
        """

    @abc.abstractmethod
    def fetch(self, path: str, destination: str) -> None:
        """Download object ``path`` to local file ``destination``, overwriting it.

        :raises TransferFailed: If the object cannot be downloaded.
        :raises LocalIOError: If ``destination`` cannot be written.
        """

    def close(self) -> None:  # noqa: B027
        """Release resources. Default is a no-op."""

    def __enter__(self) -> StorageClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
