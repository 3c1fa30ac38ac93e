"""S3-compatible object storage client using s3fs."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from model_localizer._client import StorageClient
from model_localizer._config import DownloadConfig, S3Credential
from model_localizer._download import download_file
from model_localizer._errors import (
    ContainerUnreachable,
    ListingFailed,
    LocalizerError,
    NotFound,
    TransferFailed,
)
from model_localizer._path import S3, append_slash, child_name, parse_s3_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    import requests

    from model_localizer._path import RemotePath

log = logging.getLogger(__name__)

_PRESIGN_EXPIRATION = 3600


class S3Client(StorageClient):
    """S3 client bound to one credential and, optionally, a custom endpoint.

    The endpoint comes from the path itself
    (``s3://http://host:port/bucket/key``); every later call may use either
    the decorated or the canonical ``s3://bucket/key`` form.

    :param path: Path the client is built for; supplies the endpoint, if any.
    :param credential: Credential record; ``None`` uses the default chain.
    :param config: Options applied to presigned-URL downloads.
    :param session: ``requests`` session for downloads.
    :param client_options: Additional options passed to s3fs.
    """

    def __init__(
        self,
        path: str,
        credential: Optional[S3Credential] = None,
        *,
        config: Optional[DownloadConfig] = None,
        session: Optional[requests.Session] = None,
        client_options: Optional[dict[str, Any]] = None,
    ) -> None:
        self._endpoint = parse_s3_path(path).endpoint
        self._credential = credential or S3Credential()
        self._config = config or DownloadConfig()
        self._session = session
        self._client_options = client_options or {}
        self._fs_instance: Any = None

    @property
    def name(self) -> str:
        return S3

    @property
    def endpoint(self) -> Optional[str]:
        return self._endpoint

    # region: lazy filesystem

    @property
    def _fs(self) -> Any:
        if self._fs_instance is None:
            import s3fs  # type: ignore[import-untyped]

            cred = self._credential
            opts: dict[str, Any] = dict(self._client_options)
            if self._endpoint is not None:
                opts["endpoint_url"] = self._endpoint
            # key pair -> profile -> default credential chain
            if cred.has_keys:
                opts["key"] = cred.key_id
                opts["secret"] = cred.secret_key
                if cred.session_token:
                    opts["token"] = cred.session_token
            elif cred.profile:
                opts["profile"] = cred.profile
            if cred.region:
                client_kwargs: dict[str, Any] = opts.setdefault("client_kwargs", {})
                client_kwargs["region_name"] = cred.region
            config_kwargs: dict[str, Any] = opts.setdefault("config_kwargs", {})
            config_kwargs.setdefault("s3", {"addressing_style": "path"})
            opts.setdefault("anon", False)
            opts.setdefault("skip_instance_cache", True)
            self._fs_instance = s3fs.S3FileSystem(**opts)
            log.info("Created S3 client (endpoint=%s)", self._endpoint or "default")
        return self._fs_instance

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str, error_cls: type[LocalizerError] = ListingFailed) -> Iterator[None]:
        """Map s3fs/botocore exceptions to model_localizer errors."""
        try:
            yield
        except LocalizerError:
            raise
        except Exception as exc:
            raise self._classify_error(exc, path, error_cls) from None

    def _classify_error(self, exc: Exception, path: str, error_cls: type[LocalizerError]) -> LocalizerError:
        msg = str(exc).lower()
        if "nosuchbucket" in msg:
            return ContainerUnreachable(f"Bucket does not exist: {exc}", path=path, backend=self.name)
        if _is_not_found(exc):
            return NotFound(f"Not found: {path}", path=path, backend=self.name)
        return error_cls(f"{type(exc).__name__}: {exc}", path=path, backend=self.name)

    # endregion

    # region: helpers

    def _parse(self, path: str) -> RemotePath:
        return parse_s3_path(path)

    def _head_bucket(self, bucket: str, path: str) -> None:
        fs = self._fs
        try:
            fs.call_s3("head_bucket", Bucket=bucket)
        except Exception as exc:
            raise ContainerUnreachable(
                f"Could not get MetaData for bucket with name {bucket}: {exc}",
                path=path,
                backend=self.name,
            ) from None

    # endregion

    # region: capability set

    def check_client(self, path: str) -> None:
        parsed = self._parse(path)
        try:
            self._head_bucket(parsed.container, path)
        except ContainerUnreachable as exc:
            raise ContainerUnreachable(
                f"Unable to create S3 filesystem client. Check account credentials. {exc.args[0]}",
                path=path,
                backend=self.name,
            ) from None

    def effective_path(self, path: str) -> str:
        return str(self._parse(path))

    def file_exists(self, path: str) -> bool:
        # S3 has no directory objects, so check for a prefix first.
        if self.is_directory(path):
            return True
        parsed = self._parse(path)
        try:
            self._fs.call_s3("head_object", Bucket=parsed.container, Key=parsed.key)
        except Exception as exc:
            if _is_not_found(exc):
                return False
            raise ListingFailed(
                f"Could not get MetaData for object at {path}: {exc}",
                path=path,
                backend=self.name,
            ) from None
        return True

    def is_directory(self, path: str) -> bool:
        parsed = self._parse(path)
        self._head_bucket(parsed.container, path)
        if parsed.is_root:
            return True
        with self._errors(path):
            page = self._fs.call_s3(
                "list_objects_v2",
                Bucket=parsed.container,
                Prefix=append_slash(parsed.key),
                MaxKeys=1,
            )
        return bool(page.get("Contents"))

    def list_children(self, path: str) -> set[str]:
        parsed = self._parse(path)
        prefix = append_slash(parsed.key)
        request: dict[str, Any] = {"Bucket": parsed.container, "Prefix": prefix}
        children: set[str] = set()
        while True:
            with self._errors(path):
                page = self._fs.call_s3("list_objects_v2", **request)
            for obj in page.get("Contents", []):
                item = child_name(obj["Key"], prefix)
                if item is None:
                    continue
                if not item:
                    raise ListingFailed(f"Cannot handle item with empty name at {path}", path=path, backend=self.name)
                children.add(item)
            if not page.get("IsTruncated"):
                break
            request["ContinuationToken"] = page["NextContinuationToken"]
            log.debug("Following continuation token for %s", path)
        return children

    def fetch(self, path: str, destination: str) -> None:
        parsed = self._parse(path)
        with self._errors(path, TransferFailed):
            url = self._fs.url(f"{parsed.container}/{parsed.key}", expires=_PRESIGN_EXPIRATION)
        download_file(url, destination, self._config, session=self._session, source=path, backend=self.name)

    # endregion

    # region: lifecycle

    def close(self) -> None:
        self._fs_instance = None

    # endregion


def _is_not_found(exc: Exception) -> bool:
    if isinstance(exc, FileNotFoundError):
        return True
    msg = str(exc).lower()
    return "404" in msg or "nosuchkey" in msg or "not found" in msg
