"""Google Cloud Storage client using google-cloud-storage."""

from __future__ import annotations

import datetime
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from model_localizer._client import StorageClient
from model_localizer._config import DownloadConfig, GCSCredential
from model_localizer._download import download_file
from model_localizer._errors import (
    ContainerUnreachable,
    ListingFailed,
    LocalizerError,
    TransferFailed,
)
from model_localizer._path import GCS, append_slash, child_name, parse_gcs_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    import requests

    from model_localizer._path import RemotePath

log = logging.getLogger(__name__)

_SIGNED_URL_DURATION = datetime.timedelta(minutes=150)


class GCSClient(StorageClient):
    """GCS client bound to one service-account credential.

    Credential resolution: the service-account JSON file named by the
    credential, then application default credentials (e.g. the compute
    engine metadata server), then an anonymous client.

    :param path: Path the client is built for.
    :param credential: Credential record; ``None`` skips the service-account step.
    :param config: Options applied to signed-URL downloads.
    :param session: ``requests`` session for downloads.
    :param client: Pre-built ``google.cloud.storage.Client`` to use as is.
    """

    def __init__(
        self,
        path: str,
        credential: Optional[GCSCredential] = None,
        *,
        config: Optional[DownloadConfig] = None,
        session: Optional[requests.Session] = None,
        client: Any = None,
    ) -> None:
        parse_gcs_path(path)
        self._credential = credential or GCSCredential()
        self._config = config or DownloadConfig()
        self._session = session
        self._client_instance: Any = client
        self._anonymous = False
        # Application default credentials, when the client was built from them.
        self._default_credentials: Any = None

    @property
    def name(self) -> str:
        return GCS

    # region: lazy client

    @property
    def _client(self) -> Any:
        if self._client_instance is None:
            self._client_instance = self._create_client()
        return self._client_instance

    def _create_client(self) -> Any:
        from google.cloud import storage  # type: ignore[import-untyped]

        if self._credential.path:
            try:
                client = storage.Client.from_service_account_json(self._credential.path)
                log.info("Created GCS client from service account file %s", self._credential.path)
                return client
            except (OSError, ValueError) as exc:
                log.warning("Cannot load GCS service account file %s: %s", self._credential.path, exc)

        import google.auth
        from google.auth.exceptions import DefaultCredentialsError

        try:
            credentials, project = google.auth.default()
        except DefaultCredentialsError:
            log.warning("No GCS credentials available, falling back to an anonymous client")
            self._anonymous = True
            return storage.Client.create_anonymous_client()
        log.info("Created GCS client from application default credentials")
        self._default_credentials = credentials
        return storage.Client(credentials=credentials, project=project)

    def _signing_options(self) -> dict[str, Any]:
        """Extra ``generate_signed_url`` options for credentials without a private key.

        Token-only credentials (e.g. compute engine) sign through the IAM
        signBlob API, which needs the service account email and a fresh token.
        """
        from google.auth.credentials import Signing

        credentials = self._default_credentials
        if credentials is None or isinstance(credentials, Signing):
            return {}
        if not credentials.valid:
            from google.auth.transport.requests import Request

            credentials.refresh(Request())
        return {
            "service_account_email": getattr(credentials, "service_account_email", None),
            "access_token": credentials.token,
        }

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str, error_cls: type[LocalizerError] = ListingFailed) -> Iterator[None]:
        """Map google-cloud exceptions to model_localizer errors."""
        try:
            yield
        except LocalizerError:
            raise
        except Exception as exc:
            raise error_cls(f"{type(exc).__name__}: {exc}", path=path, backend=self.name) from None

    # endregion

    def _parse(self, path: str) -> RemotePath:
        return parse_gcs_path(path)

    # region: capability set

    def check_client(self, path: str) -> None:
        with self._errors(path, ContainerUnreachable):
            client = self._client
        if client is None:
            raise ContainerUnreachable(
                "Unable to create GCS client. Check account credentials.", path=path, backend=self.name
            )

    def effective_path(self, path: str) -> str:
        return str(self._parse(path))

    def file_exists(self, path: str) -> bool:
        parsed = self._parse(path)
        if not parsed.is_root:
            with self._errors(path):
                blob = self._client.bucket(parsed.container).get_blob(parsed.key)
            if blob is not None:
                return True
        # GCS has no directory objects, so it could still be a directory.
        return self.is_directory(path)

    def is_directory(self, path: str) -> bool:
        parsed = self._parse(path)
        try:
            self._client.get_bucket(parsed.container)
        except Exception as exc:
            raise ContainerUnreachable(
                f"Could not get MetaData for bucket with name {parsed.container}: {exc}",
                path=path,
                backend=self.name,
            ) from None
        if parsed.is_root:
            return True
        with self._errors(path):
            blobs = self._client.list_blobs(parsed.container, prefix=append_slash(parsed.key), max_results=1)
            return any(True for _ in blobs)

    def list_children(self, path: str) -> set[str]:
        parsed = self._parse(path)
        prefix = append_slash(parsed.key)
        children: set[str] = set()
        with self._errors(path):
            iterator = self._client.list_blobs(parsed.container, prefix=prefix)
            for page_number, page in enumerate(iterator.pages, start=1):
                log.debug("Listing page %d of %s", page_number, path)
                for blob in page:
                    item = child_name(blob.name, prefix)
                    if item is None:
                        continue
                    if not item:
                        raise ListingFailed(
                            f"Cannot handle item with empty name at {path}", path=path, backend=self.name
                        )
                    children.add(item)
        return children

    def fetch(self, path: str, destination: str) -> None:
        parsed = self._parse(path)
        with self._errors(path, TransferFailed):
            blob = self._client.bucket(parsed.container).blob(parsed.key)
            if self._anonymous:
                url = blob.public_url
            else:
                url = blob.generate_signed_url(
                    version="v4",
                    expiration=_SIGNED_URL_DURATION,
                    method="GET",
                    **self._signing_options(),
                )
        download_file(url, destination, self._config, session=self._session, source=path, backend=self.name)

    # endregion

    def close(self) -> None:
        if self._client_instance is not None:
            close = getattr(self._client_instance, "close", None)
            if callable(close):
                close()
            self._client_instance = None
