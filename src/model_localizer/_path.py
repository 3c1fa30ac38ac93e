"""RemotePath and the per-backend path parsers."""

from __future__ import annotations

import dataclasses
import re
from typing import Final, Optional

from model_localizer._errors import MalformedPath, UnsupportedScheme

S3: Final = "s3"
GCS: Final = "gs"
AZURE: Final = "as"
HTTP: Final = "http"
HTTPS: Final = "https"

_ENDPOINT_PROTOCOLS = ("https://", "http://")

# s3://[http(s)://]host:port/bucket[/key...]
_S3_ENDPOINT_PATTERN = re.compile(
    r"s3://(http://|https://|)([0-9a-zA-Z\-.]+):([0-9]+)/([0-9a-z.\-]+)((?:/[0-9a-zA-Z.\-_]+)*)"
)
# as://account-host/container[/blob][?query]
_AZURE_PATTERN = re.compile(r"as://([^/]+)/([^/?]+)(?:/([^?]*))?(\?.*)?")
_AZURE_HOST_SUFFIX = ".blob.core.windows.net"


@dataclasses.dataclass(frozen=True)
class RemotePath:
    """A parsed, normalized remote location.

    ``str(path)`` is the canonical effective path (``scheme://container/key``,
    or ``as://host/container/key`` for Azure). Endpoint decorations embedded in
    the raw string are kept in :attr:`endpoint` but never in the canonical form.

    :param scheme: Backend family tag (``"s3"``, ``"gs"``, ``"as"``, ``"http"``, ``"https"``).
    :param container: Bucket or container name, never empty.
    :param key: Object key, empty for the container root. Never starts with ``/``.
    :param host: Azure account host (or HTTP host), empty otherwise.
    :param endpoint: Custom S3 endpoint URL (``http(s)://host:port``), if any.
    """

    scheme: str
    container: str
    key: str = ""
    host: str = ""
    endpoint: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.container:
            raise MalformedPath("No container name found in path", backend=self.scheme)
        if self.key.startswith("/"):
            object.__setattr__(self, "key", self.key.lstrip("/"))

    def __str__(self) -> str:
        if self.scheme == AZURE:
            base = f"{self.scheme}://{self.host}/{self.container}"
        else:
            base = f"{self.scheme}://{self.container}"
        return f"{base}/{self.key}" if self.key else base

    @property
    def is_root(self) -> bool:
        """``True`` if the path names the container itself."""
        return not self.key

    @property
    def name(self) -> str:
        """Final component of the key, or the container name for the root."""
        if not self.key:
            return self.container
        return self.key.rstrip("/").rsplit("/", 1)[-1]

    @property
    def account(self) -> str:
        """Azure storage account name derived from the host."""
        if self.host.endswith(_AZURE_HOST_SUFFIX):
            return self.host[: -len(_AZURE_HOST_SUFFIX)]
        return self.host


# region: normalization helpers


def scheme_of(raw: str) -> Optional[str]:
    """Return the scheme tag of ``raw`` or ``None`` if it has no supported scheme."""
    for scheme in (GCS, S3, AZURE, HTTPS, HTTP):
        if raw.startswith(f"{scheme}://"):
            return scheme
    return None


def clean_path(raw: str, scheme: str) -> str:
    """Normalize ``raw``: strip the scheme and endpoint-protocol tokens, trim and collapse slashes.

    The stripped tokens are re-emitted in front of the cleaned remainder, so
    ``clean_path(clean_path(p, s), s) == clean_path(p, s)``.

    :raises MalformedPath: If nothing but slashes is left after the tokens.
    """
    prefix = f"{scheme}://"
    rest = raw
    cleaned = ""
    if rest.startswith(prefix):
        rest = rest[len(prefix) :]
        cleaned = prefix
    for protocol in _ENDPOINT_PROTOCOLS:
        if rest.startswith(protocol):
            rest = rest[len(protocol) :]
            cleaned += protocol
            break

    rest = rest.strip("/")
    if not rest:
        raise MalformedPath(f"Invalid bucket name: {raw!r}", path=raw, backend=scheme)
    return cleaned + re.sub(r"/{2,}", "/", rest)


def append_slash(key: str) -> str:
    """Return ``key`` with exactly one trailing ``/``, or empty for the root."""
    if not key or key.endswith("/"):
        return key
    return key + "/"


def join_path(*segments: str) -> str:
    """Join remote path segments with single ``/`` separators."""
    joined = ""
    for seg in segments:
        if not joined:
            joined = seg
        elif seg.startswith("/"):
            joined = joined.rstrip("/") + seg
        else:
            joined = joined.rstrip("/") + "/" + seg
    return joined


def child_name(name: str, prefix: str) -> Optional[str]:
    """Reduce a listed key to the immediate child segment below ``prefix``.

    Returns ``None`` for the degenerate entry equal to ``prefix`` itself
    (explicit empty-directory markers) and for keys outside ``prefix``.
    The returned string is empty for keys such as ``prefix + "/x"``.
    """
    if name == prefix or not name.startswith(prefix):
        return None
    rest = name[len(prefix) :]
    return rest.split("/", 1)[0]


# endregion

# region: parsers


def _require_scheme(raw: str, scheme: str) -> None:
    if not raw.startswith(f"{scheme}://"):
        raise MalformedPath(f"Path does not start with '{scheme}://'", path=raw, backend=scheme)


def parse_s3_path(raw: str) -> RemotePath:
    """Parse ``s3://bucket/key`` or ``s3://[http(s)://]host:port/bucket/key``.

    :raises MalformedPath: If no bucket can be extracted.
    """
    _require_scheme(raw, S3)
    cleaned = clean_path(raw, S3)

    match = _S3_ENDPOINT_PATTERN.fullmatch(cleaned)
    if match is not None:
        protocol, host, port, bucket, key = match.groups()
        endpoint = f"{protocol or 'http://'}{host}:{port}"
        return RemotePath(S3, bucket, key.lstrip("/"), endpoint=endpoint)

    rest = cleaned[len("s3://") :]
    if rest.startswith(_ENDPOINT_PROTOCOLS):
        raise MalformedPath(
            "Endpoint paths must have the form s3://http(s)://host:port/bucket/key",
            path=raw,
            backend=S3,
        )
    bucket, _, key = rest.partition("/")
    if not bucket:
        raise MalformedPath(f"No bucket name found in path: {raw}", path=raw, backend=S3)
    return RemotePath(S3, bucket, key)


def parse_gcs_path(raw: str) -> RemotePath:
    """Parse ``gs://bucket/key``.

    :raises MalformedPath: If no bucket can be extracted.
    """
    _require_scheme(raw, GCS)
    rest = clean_path(raw, GCS)[len("gs://") :]
    bucket, _, key = rest.partition("/")
    if not bucket:
        raise MalformedPath(f"No bucket name found in path: {raw}", path=raw, backend=GCS)
    return RemotePath(GCS, bucket, key)


def parse_azure_path(raw: str) -> RemotePath:
    """Parse ``as://account[.blob.core.windows.net]/container/blob``.

    :raises MalformedPath: If the path does not name both an account and a container.
    """
    _require_scheme(raw, AZURE)
    cleaned = clean_path(raw, AZURE)
    match = _AZURE_PATTERN.fullmatch(cleaned)
    if match is None:
        raise MalformedPath(f"Invalid azure storage path: {raw}", path=raw, backend=AZURE)
    host, container, blob, _query = match.groups()
    return RemotePath(AZURE, container, blob or "", host=host)


def parse_http_path(raw: str) -> RemotePath:
    """Parse a plain ``http(s)://host/path`` URL."""
    scheme = scheme_of(raw)
    if scheme not in (HTTP, HTTPS):
        raise MalformedPath("Not an http(s) URL", path=raw, backend=HTTP)
    rest = raw[len(scheme) + 3 :]
    host, _, key = rest.partition("/")
    if not host:
        raise MalformedPath(f"No host found in URL: {raw}", path=raw, backend=scheme)
    return RemotePath(scheme, host, key.split("?", 1)[0])


_PARSERS = {
    S3: parse_s3_path,
    GCS: parse_gcs_path,
    AZURE: parse_azure_path,
    HTTP: parse_http_path,
    HTTPS: parse_http_path,
}


def parse_path(raw: str) -> RemotePath:
    """Dispatch ``raw`` to the parser of its scheme.

    :raises UnsupportedScheme: If ``raw`` has no supported scheme prefix.
    :raises MalformedPath: If the backend parser rejects ``raw``.
    """
    scheme = scheme_of(raw)
    if scheme is None:
        raise UnsupportedScheme(f"Unsupported file-system type for path: {raw}", path=raw)
    return _PARSERS[scheme](raw)


# endregion
