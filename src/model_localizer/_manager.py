"""FileSystemManager: scheme dispatch, credential matching and client construction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from model_localizer._cache import CredentialCache
from model_localizer._errors import BackendDisabled, UnsupportedScheme
from model_localizer._path import AZURE, GCS, HTTP, HTTPS, S3, scheme_of
from model_localizer._sdk import ensure_initialized
from model_localizer.clients import AzureClient, GCSClient, HTTPClient, S3Client

if TYPE_CHECKING:
    from collections.abc import Iterable

    import requests

    from model_localizer._cache import CredentialSource
    from model_localizer._client import StorageClient
    from model_localizer._config import DownloadConfig

log = logging.getLogger(__name__)

CLOUD_FAMILIES = (GCS, S3, AZURE)

# Global client factory registry: maps family tags to client classes.
_CLIENT_FACTORIES: dict[str, type[StorageClient]] = {}


def register_client(family: str, cls: type[StorageClient]) -> None:
    """Register a client class for a backend family.

    The class is called as ``cls(path, credential, config=..., session=...)``.

    :param family: The family tag (``"s3"``, ``"gs"`` or ``"as"``).
    :param cls: The client class to instantiate.
    """
    if family not in CLOUD_FAMILIES:
        raise ValueError(f"Unknown backend family '{family}'. Known families: {list(CLOUD_FAMILIES)}")
    _CLIENT_FACTORIES[family] = cls


def _register_builtin_clients() -> None:
    """Register the built-in clients."""
    for family, cls in ((S3, S3Client), (GCS, GCSClient), (AZURE, AzureClient)):
        _CLIENT_FACTORIES.setdefault(family, cls)


class FileSystemManager:
    """Hands out a ready-to-use client for a remote path.

    :param enabled: Backend families this manager may serve. Defaults to all.
    :param session: ``requests`` session shared by the clients it builds.
    """

    def __init__(
        self,
        enabled: Optional[Iterable[str]] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        _register_builtin_clients()
        self._enabled = frozenset(CLOUD_FAMILIES if enabled is None else enabled)
        self._session = session
        self._cache = CredentialCache()

    def __repr__(self) -> str:
        return f"FileSystemManager(enabled={sorted(self._enabled)!r})"

    @property
    def enabled(self) -> frozenset[str]:
        return self._enabled

    @property
    def cache(self) -> CredentialCache:
        """The credential cache, as of the last :meth:`get_file_system` call."""
        return self._cache

    def get_file_system(
        self,
        path: str,
        credential_source: Optional[CredentialSource] = None,
        config: Optional[DownloadConfig] = None,
    ) -> StorageClient:
        """Return a checked client able to serve ``path``.

        Every call builds its own credential cache from ``credential_source``,
        then the entry with the longest name prefixing ``path`` is used.

        :param path: Remote location (``s3://``, ``gs://``, ``as://`` or ``http(s)://``).
        :param credential_source: Credential document path, or the parsed document.
            Not needed for HTTP URLs.
        :param config: Download options handed to the client.
        :raises UnsupportedScheme: If the scheme is unknown.
        :raises BackendDisabled: If the family is disabled or its SDK is missing.
        :raises ConfigError: If the credential document cannot be read.
        :raises NoMatchingCredential: If no credential name prefixes ``path``.
        :raises ContainerUnreachable: If the client cannot reach the container.
        """
        scheme = scheme_of(path)
        if scheme is None:
            raise UnsupportedScheme(f"Unsupported file system type for path {path}", path=path)
        if scheme in (HTTP, HTTPS):
            client: StorageClient = HTTPClient(config, session=self._session)
            client.check_client(path)
            return client
        if scheme not in self._enabled:
            raise BackendDisabled(f"{scheme}:// file-system not supported", path=path, backend=scheme)
        ensure_initialized(scheme)

        cache = CredentialCache.from_source({} if credential_source is None else credential_source)
        self._cache = cache
        entry = cache.match(scheme, path)
        if entry.client is None:
            entry.client = self._build_client(scheme, path, entry.credential, config)
        entry.client.check_client(path)
        log.debug("Using credential '%s' for %s", entry.name, path)
        return entry.client

    def _build_client(self, family: str, path: str, credential: Any, config: Optional[DownloadConfig]) -> StorageClient:
        factory = _CLIENT_FACTORIES[family]
        return factory(path, credential, config=config, session=self._session)  # type: ignore[call-arg]


def get_file_system(
    path: str,
    credential_source: Optional[CredentialSource] = None,
    config: Optional[DownloadConfig] = None,
) -> StorageClient:
    """Shortcut for :meth:`FileSystemManager.get_file_system` with every family enabled."""
    return FileSystemManager().get_file_system(path, credential_source, config)
