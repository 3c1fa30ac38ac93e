"""Localization engine: mirror a remote file or directory tree onto local disk."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import TYPE_CHECKING, Any, Optional

from model_localizer._config import (
    load_download_config,
    resolve_config_path,
    resolve_credential_path,
)
from model_localizer._errors import LocalIOError, NotFound
from model_localizer._manager import FileSystemManager
from model_localizer._path import join_path

if TYPE_CHECKING:
    from types import TracebackType

    from model_localizer._cache import CredentialSource
    from model_localizer._client import StorageClient
    from model_localizer._config import DownloadConfig

log = logging.getLogger(__name__)

_DIRECTORY_MODE = 0o700


def localize_path(client: StorageClient, remote_path: str, local_root: str) -> str:
    """Mirror ``remote_path`` into ``local_root``.

    A directory is copied breadth-first: every round takes a snapshot of the
    pending remote paths, creates the directories among them, downloads the
    files and queues the children of the directories for the next round.
    The first failure aborts the walk; files already written are left as is.

    A single file lands at ``local_root/<basename>`` when ``local_root`` is an
    existing directory, otherwise at ``local_root`` itself.

    :param client: Client able to serve ``remote_path``.
    :param remote_path: Remote file or directory to copy.
    :param local_root: Local destination.
    :returns: The local directory, or the local file for a single file.
    :raises NotFound: If ``remote_path`` does not exist.
    :raises LocalIOError: If a local directory cannot be created.
    """
    if not client.file_exists(remote_path):
        raise NotFound(
            f"directory or file does not exist at {remote_path}", path=remote_path, backend=client.name
        )
    effective = client.effective_path(remote_path)
    log.info("Localizing %s to %s", remote_path, local_root)

    pending: set[str]
    if client.is_directory(effective):
        _make_directory(local_root)
        pending = {join_path(effective, child) for child in client.list_children(effective)}
        target = local_root
    else:
        pending = {effective}
        if os.path.isdir(local_root):
            target = os.path.join(local_root, _basename(effective))
        else:
            target = local_root

    files = directories = 0
    while pending:
        batch = sorted(pending)
        pending = set()
        for remote in batch:
            destination = _destination(local_root, effective, remote, target)
            if client.is_directory(remote):
                _make_directory(destination)
                directories += 1
                log.debug("Created directory %s", destination)
                pending.update(join_path(remote, child) for child in client.list_children(remote))
            else:
                client.fetch(remote, destination)
                files += 1
                log.debug("Fetched %s to %s", remote, destination)

    log.info("Localized %s: %d files, %d directories", remote_path, files, directories)
    return target


def _basename(path: str) -> str:
    return path.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]


def _destination(local_root: str, effective: str, remote: str, single_target: str) -> str:
    relative = remote[len(effective) :].strip("/")
    if not relative:
        return single_target
    root = os.path.abspath(local_root)
    destination = os.path.abspath(os.path.join(root, *relative.split("/")))
    if os.path.commonpath([root, destination]) != root:
        raise LocalIOError(f"Remote key escapes the destination directory: {remote}", path=destination)
    return destination


def _make_directory(path: str) -> None:
    try:
        os.mkdir(path, _DIRECTORY_MODE)
    except FileExistsError:
        if not os.path.isdir(path):
            raise LocalIOError(
                f"Failed to create local folder: {path} exists and is not a directory", path=path
            ) from None
    except OSError as exc:
        raise LocalIOError(f"Failed to create local folder: {path}, errno: {exc.strerror}", path=path) from None


class LocalizedPath:
    """A remote location copied to local disk for the duration of a ``with`` block.

    Without ``local_dir`` the copy goes into a fresh temporary directory that
    is removed on exit, including when localization fails. A caller-supplied
    ``local_dir`` is never removed.

    Usage::

        with LocalizedPath("s3://models/resnet/1", credential_source="creds.json") as local:
            load_model(local.path)

    :param location: Remote location to copy.
    :param credential_source: Credential document path or parsed document.
        Defaults to ``TRITON_CLOUD_CREDENTIAL_PATH``, then the built-in default path.
    :param config: Download options. Defaults to the document at
        ``TRITON_DRAGONFLY_CONFIG_PATH``, or the built-in default config.
    :param local_dir: Destination to use instead of a temporary directory.
    :param manager: Manager used to obtain the client.
    """

    def __init__(
        self,
        location: str,
        *,
        credential_source: Optional[CredentialSource] = None,
        config: Optional[DownloadConfig] = None,
        local_dir: Optional[str] = None,
        manager: Optional[FileSystemManager] = None,
    ) -> None:
        self._location = location
        self._credential_source = credential_source
        self._config = config
        self._local_dir = local_dir
        self._manager = manager or FileSystemManager()
        self._root: Optional[str] = None
        self._path: Optional[str] = None

    def __repr__(self) -> str:
        return f"LocalizedPath(location={self._location!r}, path={self._path!r})"

    @property
    def original_path(self) -> str:
        return self._location

    @property
    def path(self) -> str:
        """Local directory, or local file when the location names one file."""
        if self._path is None:
            raise RuntimeError("LocalizedPath is not active; use it as a context manager")
        return self._path

    @property
    def owns_directory(self) -> bool:
        return self._local_dir is None

    def __enter__(self) -> LocalizedPath:
        self._root = self._local_dir or tempfile.mkdtemp(prefix="model_localizer_")
        try:
            source = self._credential_source
            if source is None:
                source = resolve_credential_path()
            config = self._config
            if config is None:
                config = load_download_config(resolve_config_path())
            client = self._manager.get_file_system(self._location, source, config)
            with client:
                self._path = localize_path(client, self._location, self._root)
        except BaseException:
            self.cleanup()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        """Remove the temporary directory, if this object created one."""
        root, self._root = self._root, None
        self._path = None
        if root is not None and self.owns_directory and os.path.isdir(root):
            shutil.rmtree(root)
            log.debug("Removed temporary directory %s", root)


def localize(
    location: str,
    local_root: str,
    *,
    credential_path: Optional[str] = None,
    config_path: Optional[str] = None,
    credentials: Optional[dict[str, Any]] = None,
    config: Optional[DownloadConfig] = None,
    manager: Optional[FileSystemManager] = None,
) -> str:
    """Copy ``location`` into ``local_root`` and return the local path.

    Document paths fall back to ``TRITON_CLOUD_CREDENTIAL_PATH`` and
    ``TRITON_DRAGONFLY_CONFIG_PATH``, then to the built-in defaults. Already
    parsed ``credentials`` and ``config`` take precedence over the files.

    :raises LocalizerError: On the first failure.
    """
    if config is None:
        config = load_download_config(resolve_config_path(config_path))
    source: CredentialSource = credentials if credentials is not None else resolve_credential_path(credential_path)
    client = (manager or FileSystemManager()).get_file_system(location, source, config)
    with client:
        return localize_path(client, location, local_root)
