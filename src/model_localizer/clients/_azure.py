"""Azure Blob Storage client using azure-storage-blob."""

from __future__ import annotations

import datetime
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from model_localizer._client import StorageClient
from model_localizer._config import AzureCredential, DownloadConfig
from model_localizer._download import download_file
from model_localizer._errors import (
    ContainerUnreachable,
    ListingFailed,
    LocalizerError,
    TransferFailed,
)
from model_localizer._path import AZURE, append_slash, child_name, parse_azure_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    import requests

    from model_localizer._path import RemotePath

log = logging.getLogger(__name__)

_DELIMITER = "/"
_SAS_DURATION = datetime.timedelta(minutes=150)


class AzureClient(StorageClient):
    """Azure client bound to one storage account.

    The account name comes from the credential's ``account_str`` or, when
    that is empty, from the path host (``<account>.blob.core.windows.net``).
    With an account key, downloads use short-lived SAS URLs; without one they
    use the plain blob URL, which only works for public containers.

    :param path: ``as://`` path the client is built for.
    :param credential: Credential record; ``None`` means anonymous access.
    :param config: Options applied to blob URL downloads.
    :param session: ``requests`` session for downloads.
    :param client: Pre-built ``BlobServiceClient`` to use as is.
    """

    def __init__(
        self,
        path: str,
        credential: Optional[AzureCredential] = None,
        *,
        config: Optional[DownloadConfig] = None,
        session: Optional[requests.Session] = None,
        client: Any = None,
    ) -> None:
        parsed = parse_azure_path(path)
        self._credential = credential or AzureCredential()
        self._account = self._credential.account_str or parsed.account
        self._config = config or DownloadConfig()
        self._session = session
        self._client_instance: Any = client

    @property
    def name(self) -> str:
        return AZURE

    @property
    def account(self) -> str:
        return self._account

    @property
    def service_url(self) -> str:
        return f"https://{self._account}.blob.core.windows.net"

    # region: lazy client

    @property
    def _client(self) -> Any:
        if self._client_instance is None:
            from azure.storage.blob import BlobServiceClient  # type: ignore[import-untyped]

            if self._credential.account_key:
                credential: Any = {"account_name": self._account, "account_key": self._credential.account_key}
            else:
                credential = None
            self._client_instance = BlobServiceClient(self.service_url, credential=credential)
            log.info("Created Azure blob client for %s", self.service_url)
        return self._client_instance

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str, error_cls: type[LocalizerError] = ListingFailed) -> Iterator[None]:
        """Map azure-core exceptions to model_localizer errors."""
        try:
            yield
        except LocalizerError:
            raise
        except Exception as exc:
            raise error_cls(f"{type(exc).__name__}: {exc}", path=path, backend=self.name) from None

    # endregion

    def _parse(self, path: str) -> RemotePath:
        return parse_azure_path(path)

    def _first_page(self, container: str, prefix: str) -> list[Any]:
        container_client = self._client.get_container_client(container)
        pages = container_client.walk_blobs(name_starts_with=prefix, delimiter=_DELIMITER).by_page()
        for page in pages:
            return list(page)
        return []

    # region: capability set

    def check_client(self, path: str) -> None:
        with self._errors(path, ContainerUnreachable):
            client = self._client
        if client is None:
            raise ContainerUnreachable(
                "Unable to create Azure filesystem client. Check account credentials.",
                path=path,
                backend=self.name,
            )

    def effective_path(self, path: str) -> str:
        return str(self._parse(path))

    def file_exists(self, path: str) -> bool:
        parsed = self._parse(path)
        if parsed.is_root:
            return self.is_directory(path)
        dir_prefix = append_slash(parsed.key)
        with self._errors(path):
            container_client = self._client.get_container_client(parsed.container)
            listing = container_client.walk_blobs(name_starts_with=parsed.key, delimiter=_DELIMITER)
            for page in listing.by_page():
                for item in page:
                    if item.name == parsed.key or item.name.startswith(dir_prefix):
                        return True
        return False

    def is_directory(self, path: str) -> bool:
        parsed = self._parse(path)
        if parsed.is_root:
            try:
                exists = self._client.get_container_client(parsed.container).exists()
            except Exception as exc:
                raise ContainerUnreachable(
                    f"Could not get properties of container {parsed.container}: {exc}",
                    path=path,
                    backend=self.name,
                ) from None
            if not exists:
                raise ContainerUnreachable(
                    f"Container does not exist: {parsed.container}", path=path, backend=self.name
                )
            return True
        with self._errors(path):
            entries = self._first_page(parsed.container, append_slash(parsed.key))
        # A single listed blob equal to the key is the file itself.
        if len(entries) == 1 and entries[0].name == parsed.key:
            return False
        return bool(entries)

    def list_children(self, path: str) -> set[str]:
        parsed = self._parse(path)
        prefix = append_slash(parsed.key)
        children: set[str] = set()
        with self._errors(path):
            container_client = self._client.get_container_client(parsed.container)
            listing = container_client.walk_blobs(name_starts_with=prefix, delimiter=_DELIMITER)
            for page_number, page in enumerate(listing.by_page(), start=1):
                log.debug("Listing page %d of %s", page_number, path)
                for item in page:
                    name = child_name(item.name, prefix)
                    if name is None:
                        continue
                    if not name:
                        raise ListingFailed(
                            f"Cannot handle item with empty name at {path}", path=path, backend=self.name
                        )
                    children.add(name)
        return children

    def fetch(self, path: str, destination: str) -> None:
        parsed = self._parse(path)
        with self._errors(path, TransferFailed):
            blob_client = self._client.get_blob_client(container=parsed.container, blob=parsed.key)
            url = blob_client.url
            if self._credential.account_key:
                url = f"{url}?{self._sas_token(parsed)}"
            else:
                log.warning("No account key for %s, downloading without a SAS token", self._account)
        download_file(url, destination, self._config, session=self._session, source=path, backend=self.name)

    # endregion

    def _sas_token(self, parsed: RemotePath) -> str:
        from azure.storage.blob import BlobSasPermissions, generate_blob_sas

        expiry = datetime.datetime.now(datetime.timezone.utc) + _SAS_DURATION
        return generate_blob_sas(
            account_name=self._account,
            container_name=parsed.container,
            blob_name=parsed.key,
            account_key=self._credential.account_key,
            permission=BlobSasPermissions(read=True),
            expiry=expiry,
        )

    def close(self) -> None:
        if self._client_instance is not None:
            self._client_instance.close()
            self._client_instance = None
