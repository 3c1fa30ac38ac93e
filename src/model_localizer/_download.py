"""HTTP download of a single URL into a local file."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import requests

from model_localizer._errors import LocalIOError, TransferFailed

if TYPE_CHECKING:
    from model_localizer._config import DownloadConfig

log = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def download_file(
    url: str,
    destination: str,
    config: DownloadConfig,
    *,
    session: Optional[requests.Session] = None,
    source: Optional[str] = None,
    backend: Optional[str] = None,
) -> int:
    """GET ``url`` and write the body verbatim to ``destination``.

    Extra headers, the joined filter header and the proxy from ``config`` are
    applied to the request. An existing file at ``destination`` is overwritten.
    No timeout is set; the ``requests`` default applies.

    :param source: Remote path reported in errors instead of the (signed) URL.
    :returns: Number of bytes written.
    :raises TransferFailed: On connection failure or a non-success status.
    :raises LocalIOError: If ``destination`` cannot be written.
    """
    reported = source or url
    http = session if session is not None else requests
    try:
        with http.get(
            url,
            headers=config.request_headers(),
            proxies=config.proxies(),
            stream=True,
        ) as response:
            if not response.ok:
                raise TransferFailed(
                    f"Failed to get object: HTTP {response.status_code} {response.reason}",
                    path=reported,
                    backend=backend,
                    status=response.status_code,
                )
            written = _write_body(response, destination)
    except requests.RequestException as exc:
        raise TransferFailed(f"Failed to get object: {exc}", path=reported, backend=backend) from None
    log.debug("Downloaded %s -> %s (%d bytes)", reported, destination, written)
    return written


def _write_body(response: requests.Response, destination: str) -> int:
    written = 0
    try:
        with open(destination, "wb") as fh:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
                    written += len(chunk)
    except requests.RequestException:
        # A broken stream is a transfer failure; RequestException subclasses OSError.
        raise
    except OSError as exc:
        raise LocalIOError(f"Failed to write local file: {exc.strerror or exc}", path=destination) from None
    return written
