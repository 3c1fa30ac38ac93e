"""Configuration model: download options, credential records, document loading."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from typing import Any, Optional

from model_localizer._errors import ConfigError

log = logging.getLogger(__name__)

CREDENTIAL_PATH_ENV = "TRITON_CLOUD_CREDENTIAL_PATH"
CONFIG_PATH_ENV = "TRITON_DRAGONFLY_CONFIG_PATH"
DEFAULT_CREDENTIAL_PATH = "/home/triton/cloud_credential.json"
DEFAULT_CONFIG_PATH = "/home/triton/dragonfly_config.json"

FILTER_HEADER = "X-Dragonfly-Filter"


def _str_field(data: dict[str, Any], name: str) -> str:
    value = data.get(name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"Field '{name}' must be a string, got {type(value).__name__}")
    return value


@dataclasses.dataclass(frozen=True)
class DownloadConfig:
    """Per-call options applied to every plain HTTP download.

    :param proxy: Outbound proxy URL, or ``None`` to connect directly.
    :param headers: Literal header name/value pairs attached to each request.
    :param filter: Opaque filter tokens, joined with ``&`` and sent as one header.
    """

    proxy: Optional[str] = None
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
    filter: list[str] = dataclasses.field(default_factory=list)

    def request_headers(self) -> dict[str, str]:
        """Headers to send with a download request, filter header included."""
        headers = dict(self.headers)
        if self.filter:
            headers[FILTER_HEADER] = "&".join(self.filter)
        return headers

    def proxies(self) -> Optional[dict[str, str]]:
        """Proxy mapping in the form ``requests`` expects, or ``None``."""
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DownloadConfig:
        """Construct from a parsed config document.

        Keys: ``proxy`` (string), ``header`` (string map), ``filter`` (string list).
        Non-string header values and filter items are skipped.
        """
        if not isinstance(data, dict):
            raise TypeError("Download config must be a dict")
        proxy = data.get("proxy") or None
        if proxy is not None and not isinstance(proxy, str):
            raise TypeError("Field 'proxy' must be a string")

        raw_headers = data.get("header", {}) or {}
        if not isinstance(raw_headers, dict):
            raise TypeError("Field 'header' must be a dict")
        headers = {str(k): v for k, v in raw_headers.items() if isinstance(v, str)}

        raw_filter = data.get("filter", []) or []
        if not isinstance(raw_filter, list):
            raise TypeError("Field 'filter' must be a list")
        tokens = [item for item in raw_filter if isinstance(item, str)]

        return cls(proxy=proxy, headers=headers, filter=tokens)


# region: credentials


@dataclasses.dataclass(frozen=True)
class S3Credential:
    """S3 credential record.

    Resolution order when the client is built: explicit key pair (with
    optional session token and region), then ``profile``, then the default
    credential chain.
    """

    key_id: str = ""
    secret_key: str = ""
    region: str = ""
    session_token: str = ""
    profile: str = ""

    @property
    def has_keys(self) -> bool:
        return bool(self.key_id and self.secret_key)

    @classmethod
    def from_dict(cls, data: Any) -> S3Credential:
        if not isinstance(data, dict):
            raise TypeError("S3 credential must be a dict")
        return cls(
            key_id=_str_field(data, "key_id"),
            secret_key=_str_field(data, "secret_key"),
            region=_str_field(data, "region"),
            session_token=_str_field(data, "session_token"),
            profile=_str_field(data, "profile"),
        )


@dataclasses.dataclass(frozen=True)
class GCSCredential:
    """GCS credential record: path to a service-account JSON file."""

    path: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> GCSCredential:
        # The document stores the file path as a bare string.
        if isinstance(data, str):
            return cls(path=data)
        if isinstance(data, dict):
            return cls(path=_str_field(data, "path"))
        raise TypeError("GCS credential must be a string path")


@dataclasses.dataclass(frozen=True)
class AzureCredential:
    """Azure credential record: account name override and shared key."""

    account_str: str = ""
    account_key: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> AzureCredential:
        if not isinstance(data, dict):
            raise TypeError("Azure credential must be a dict")
        return cls(
            account_str=_str_field(data, "account_str"),
            account_key=_str_field(data, "account_key"),
        )


# endregion

# region: documents


def load_json(path: str) -> dict[str, Any]:
    """Read and parse a JSON document.

    :raises ConfigError: If the file cannot be read or is not a JSON object.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ConfigError(f"Failed to open text file for read: {exc}", path=path) from None
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON: {exc}", path=path) from None
    if not isinstance(data, dict):
        raise ConfigError("Expected a JSON object at the top level", path=path)
    return data


def load_download_config(path: Optional[str]) -> DownloadConfig:
    """Load a :class:`DownloadConfig` from ``path``.

    A missing file yields the default config; a malformed one raises.

    :raises ConfigError: If the file exists but cannot be parsed.
    """
    if not path or not os.path.exists(path):
        log.debug("No download config at %r, using defaults", path)
        return DownloadConfig()
    data = load_json(path)
    try:
        return DownloadConfig.from_dict(data)
    except TypeError as exc:
        raise ConfigError(str(exc), path=path) from None


def resolve_credential_path(explicit: Optional[str] = None) -> str:
    """Credential document path: explicit argument > environment > default."""
    return explicit or os.environ.get(CREDENTIAL_PATH_ENV) or DEFAULT_CREDENTIAL_PATH


def resolve_config_path(explicit: Optional[str] = None) -> str:
    """Download config path: explicit argument > environment > default."""
    return explicit or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH


# endregion
