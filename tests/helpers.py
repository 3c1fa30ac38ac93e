"""Test doubles and helpers shared by the test modules."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Optional

from model_localizer._client import StorageClient
from model_localizer._errors import TransferFailed
from model_localizer._path import S3, append_slash, child_name, parse_s3_path

if TYPE_CHECKING:
    from collections.abc import Iterable


class InMemoryClient(StorageClient):
    """StorageClient over a dict of ``key -> bytes`` in one bucket.

    ``seed`` provides the objects when the class is built by a manager.
    Keys in ``fail_on`` raise :class:`TransferFailed` when fetched.
    """

    seed: dict[str, bytes] = {}

    def __init__(
        self,
        path: str = "s3://bucket",
        credential: Any = None,
        *,
        config: Any = None,
        session: Any = None,
        objects: Optional[dict[str, bytes]] = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.bucket = parse_s3_path(path).container
        self.credential = credential
        self.config = config
        self.objects = dict(self.seed if objects is None else objects)
        self.fail_on = set(fail_on)
        self.checked: list[str] = []
        self.fetched: list[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return S3

    def _key(self, path: str) -> str:
        return parse_s3_path(path).key

    def check_client(self, path: str) -> None:
        self.checked.append(path)

    def effective_path(self, path: str) -> str:
        return str(parse_s3_path(path))

    def file_exists(self, path: str) -> bool:
        return self._key(path) in self.objects or self.is_directory(path)

    def is_directory(self, path: str) -> bool:
        key = self._key(path)
        if not key:
            return True
        prefix = append_slash(key)
        return any(name.startswith(prefix) for name in self.objects)

    def list_children(self, path: str) -> set[str]:
        prefix = append_slash(self._key(path))
        names = set()
        for name in self.objects:
            child = child_name(name, prefix)
            if child is not None:
                names.add(child)
        return names

    def fetch(self, path: str, destination: str) -> None:
        key = self._key(path)
        self.fetched.append(key)
        if key in self.fail_on:
            raise TransferFailed("Failed to get object: HTTP 500", path=path, backend=self.name, status=500)
        with open(destination, "wb") as fh:
            fh.write(self.objects[key])

    def close(self) -> None:
        self.closed = True


def read_tree(root: str) -> dict[str, bytes]:
    """Return ``relative/posix/path -> bytes`` for every file under ``root``."""
    found: dict[str, bytes] = {}
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            full = os.path.join(dirpath, filename)
            relative = os.path.relpath(full, root).replace(os.sep, "/")
            with open(full, "rb") as fh:
                found[relative] = fh.read()
    return found
