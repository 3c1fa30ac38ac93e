"""CredentialCache: per-family credential entries resolved by longest name prefix."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Optional, Union

from model_localizer._config import AzureCredential, GCSCredential, S3Credential, load_json
from model_localizer._errors import ConfigError, NoMatchingCredential
from model_localizer._path import AZURE, GCS, S3

if TYPE_CHECKING:
    from collections.abc import Mapping

    from model_localizer._client import StorageClient

log = logging.getLogger(__name__)

Credential = Union[S3Credential, GCSCredential, AzureCredential]
CredentialSource = Union[str, "Mapping[str, Any]"]

# Credential record type per backend family, in document key order.
CREDENTIAL_TYPES: dict[str, type[Credential]] = {
    GCS: GCSCredential,
    S3: S3Credential,
    AZURE: AzureCredential,
}


@dataclasses.dataclass
class CredentialEntry:
    """A registered credential set and the client lazily built from it.

    :param name: Registered name; matched as a literal prefix of remote paths.
    :param credential: Backend-specific credential record.
    :param client: Client built from ``credential``, once requested.
    """

    name: str
    credential: Credential
    client: Optional[StorageClient] = None


class CredentialCache:
    """Ordered credential entries for every backend family.

    Within a family, entries are kept longest name first, so the first entry
    whose name is a prefix of a path is the most specific match. The cache is
    rebuilt in full by :meth:`load`; it is never updated incrementally.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[CredentialEntry]] = {family: [] for family in CREDENTIAL_TYPES}

    def __repr__(self) -> str:
        counts = {family: len(entries) for family, entries in self._entries.items()}
        return f"CredentialCache({counts!r})"

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    @classmethod
    def from_source(cls, source: CredentialSource) -> CredentialCache:
        """Build a cache from a credential document path or a parsed mapping."""
        cache = cls()
        cache.load(source)
        return cache

    def load(self, source: CredentialSource) -> None:
        """Replace every family's entries with those in ``source``.

        :param source: Path to a JSON document, or the parsed document.
        :raises ConfigError: If the document or one of its records is malformed.
        """
        document = load_json(source) if isinstance(source, str) else source
        origin = source if isinstance(source, str) else None
        for family, credential_type in CREDENTIAL_TYPES.items():
            self._entries[family] = _load_family(document, family, credential_type, origin)
        log.debug("Loaded credentials: %r", self)

    def entries(self, family: str) -> tuple[CredentialEntry, ...]:
        """Entries of ``family`` in match order."""
        return tuple(self._entries.get(family, ()))

    def match(self, family: str, path: str) -> CredentialEntry:
        """Return the entry of ``family`` with the longest name that prefixes ``path``.

        :raises NoMatchingCredential: If no registered name is a prefix of ``path``.
        """
        for entry in self._entries.get(family, ()):
            if path.startswith(entry.name):
                return entry
        raise NoMatchingCredential(f"Cannot match credential for path {path}", path=path, backend=family)


def _load_family(
    document: Mapping[str, Any],
    family: str,
    credential_type: type[Credential],
    origin: Optional[str],
) -> list[CredentialEntry]:
    records = document.get(family)
    if records is None:
        return []
    if not isinstance(records, dict):
        raise ConfigError(f"Credentials for '{family}' must be an object", path=origin, backend=family)
    entries: list[CredentialEntry] = []
    for name, record in records.items():
        try:
            credential = credential_type.from_dict(record)
        except TypeError as exc:
            raise ConfigError(f"Invalid credential '{name}': {exc}", path=origin, backend=family) from None
        entries.append(CredentialEntry(name=str(name), credential=credential))
    entries.sort(key=lambda entry: len(entry.name), reverse=True)
    return entries
