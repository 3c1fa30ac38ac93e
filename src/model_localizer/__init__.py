"""Localize model artifacts from remote object storage onto local disk."""

from model_localizer._cache import CredentialCache, CredentialEntry
from model_localizer._client import StorageClient
from model_localizer._config import (
    AzureCredential,
    DownloadConfig,
    GCSCredential,
    S3Credential,
    load_download_config,
    resolve_config_path,
    resolve_credential_path,
)
from model_localizer._errors import (
    BackendDisabled,
    ConfigError,
    ContainerUnreachable,
    ListingFailed,
    LocalIOError,
    LocalizerError,
    MalformedPath,
    NoMatchingCredential,
    NotFound,
    TransferFailed,
    UnsupportedScheme,
)
from model_localizer._localize import LocalizedPath, localize, localize_path
from model_localizer._manager import FileSystemManager, get_file_system, register_client
from model_localizer._path import RemotePath, parse_path
from model_localizer._sdk import ensure_initialized

__version__ = "0.1.0"

__all__ = [
    # Core
    "localize",
    "localize_path",
    "LocalizedPath",
    "FileSystemManager",
    "get_file_system",
    "register_client",
    "StorageClient",
    "ensure_initialized",
    # Path
    "RemotePath",
    "parse_path",
    # Config & credentials
    "DownloadConfig",
    "S3Credential",
    "GCSCredential",
    "AzureCredential",
    "CredentialCache",
    "CredentialEntry",
    "load_download_config",
    "resolve_config_path",
    "resolve_credential_path",
    # Errors
    "LocalizerError",
    "MalformedPath",
    "UnsupportedScheme",
    "BackendDisabled",
    "NoMatchingCredential",
    "ContainerUnreachable",
    "NotFound",
    "ListingFailed",
    "TransferFailed",
    "LocalIOError",
    "ConfigError",
    # Version
    "__version__",
]
