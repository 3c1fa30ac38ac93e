"""Plain HTTP(S) passthrough: a URL names exactly one file."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from model_localizer._client import StorageClient
from model_localizer._config import DownloadConfig
from model_localizer._download import download_file
from model_localizer._errors import ListingFailed
from model_localizer._path import HTTP, parse_http_path

log = logging.getLogger(__name__)

_MISSING_STATUSES = (404, 410)


class HTTPClient(StorageClient):
    """Client for ``http://`` and ``https://`` URLs.

    URLs have no listing, so every URL is a file and there are no children.

    :param config: Options applied to the existence probe and the download.
    :param session: ``requests`` session to use.
    """

    def __init__(
        self,
        config: Optional[DownloadConfig] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config or DownloadConfig()
        self._session = session

    @property
    def name(self) -> str:
        return HTTP

    def check_client(self, path: str) -> None:
        parse_http_path(path)

    def effective_path(self, path: str) -> str:
        parse_http_path(path)
        return path

    def file_exists(self, path: str) -> bool:
        http = self._session if self._session is not None else requests
        try:
            with http.get(
                path,
                headers=self._config.request_headers(),
                proxies=self._config.proxies(),
                stream=True,
            ) as response:
                status = response.status_code
        except requests.RequestException as exc:
            raise ListingFailed(f"Could not probe URL: {exc}", path=path, backend=self.name) from None
        if status in _MISSING_STATUSES:
            return False
        if status >= 400:
            raise ListingFailed(f"Could not probe URL: HTTP {status}", path=path, backend=self.name)
        return True

    def is_directory(self, path: str) -> bool:
        return False

    def list_children(self, path: str) -> set[str]:
        return set()

    def fetch(self, path: str, destination: str) -> None:
        download_file(path, destination, self._config, session=self._session, backend=self.name)
