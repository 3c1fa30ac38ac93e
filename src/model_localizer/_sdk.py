"""Process-wide, one-time setup of the backend SDKs."""

from __future__ import annotations

import importlib
import logging
import threading

from model_localizer._errors import BackendDisabled
from model_localizer._path import AZURE, GCS, S3

log = logging.getLogger(__name__)

# Modules each family needs at runtime, and the SDK loggers that are too
# chatty at INFO level to leave alone.
_REQUIRED_MODULES: dict[str, tuple[str, ...]] = {
    S3: ("s3fs",),
    GCS: ("google.cloud.storage",),
    AZURE: ("azure.storage.blob",),
}
_DISTRIBUTIONS: dict[str, str] = {S3: "s3fs", GCS: "google-cloud-storage", AZURE: "azure-storage-blob"}
_NOISY_LOGGERS: dict[str, tuple[str, ...]] = {
    S3: ("botocore", "aiobotocore", "s3fs"),
    GCS: ("google.auth", "urllib3.connectionpool"),
    AZURE: ("azure.core.pipeline.policies.http_logging_policy", "azure.identity"),
}

_lock = threading.Lock()
_initialized: set[str] = set()


def ensure_initialized(family: str) -> None:
    """Import and configure the SDK for ``family`` exactly once per process.

    Safe to call repeatedly and from several threads.

    :raises BackendDisabled: If the SDK for ``family`` is not installed.
    """
    if family in _initialized:
        return
    with _lock:
        if family in _initialized:
            return
        for module in _REQUIRED_MODULES.get(family, ()):
            try:
                importlib.import_module(module)
            except ImportError as exc:
                raise BackendDisabled(
                    f"{family}:// file-system not supported: {exc}. "
                    f"Install the '{_DISTRIBUTIONS[family]}' package.",
                    backend=family,
                ) from None
        for name in _NOISY_LOGGERS.get(family, ()):
            logging.getLogger(name).setLevel(logging.WARNING)
        _initialized.add(family)
        log.debug("Initialized %s SDK", family)


def is_initialized(family: str) -> bool:
    """Whether :func:`ensure_initialized` has completed for ``family``."""
    return family in _initialized
