"""Shared test fixtures and marker registration."""

from __future__ import annotations

import os
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING, Any, Union

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator
    from email.message import Message


def pytest_configure(config: object) -> None:
    """Register custom markers."""
    if isinstance(config, pytest.Config):
        config.addinivalue_line("markers", "integration: requires external services")


@pytest.fixture()
def model_tree() -> dict[str, bytes]:
    """A small model repository laid out under ``models/``."""
    return {
        "models/cfg.txt": b"name: resnet\n",
        "models/v1/model.bin": os.urandom(2048),
        "models/v1/sub/extra.bin": b"\x00\x01\x02extra",
    }

# region: in-process HTTP server


class _FileServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _FileHandler)
        # URL path -> body bytes, or an int status to answer with.
        self.files: dict[str, Union[bytes, int]] = {}
        # URL path -> Content-Length to announce instead of the body length.
        self.announced_lengths: dict[str, int] = {}
        self.requests: list[tuple[str, Message]] = []

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"


class _FileHandler(BaseHTTPRequestHandler):
    server: _FileServer

    def do_GET(self) -> None:  # noqa: N802
        self.server.requests.append((self.path, self.headers))
        url_path = self.path.split("?", 1)[0]
        body = self.server.files.get(url_path, 404)
        if isinstance(body, int):
            self.send_response(body)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        self.send_response(200)
        self.send_header("Content-Length", str(self.server.announced_lengths.get(url_path, len(body))))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        pass


@pytest.fixture()
def http_server(monkeypatch: pytest.MonkeyPatch) -> Iterator[_FileServer]:
    """Serve ``server.files`` over HTTP and record every request."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    server = _FileServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join()


# endregion


# region: moto S3 server


def _s3_available() -> bool:
    try:
        import boto3  # noqa: F401
        import moto  # noqa: F401
        import s3fs  # noqa: F401

        return True
    except ImportError:
        return False


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("", 0))
        return s.getsockname()[1]


@pytest.fixture(scope="session")
def moto_server() -> Iterator[str]:
    """Start a moto HTTP server for the test session.

    Uses server mode instead of mock_aws() to avoid Python 3.13
    PEP 667 f_locals incompatibility with s3fs/aiobotocore.
    """
    if not _s3_available():
        pytest.skip("moto, boto3 or s3fs not installed")
    from moto.moto_server.threaded_moto_server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(ip_address="127.0.0.1", port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


# endregion
