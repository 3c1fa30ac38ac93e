"""Storage client implementations. SDKs are imported on first use."""

from model_localizer.clients._azure import AzureClient
from model_localizer.clients._gcs import GCSClient
from model_localizer.clients._http import HTTPClient
from model_localizer.clients._s3 import S3Client

__all__ = ["AzureClient", "GCSClient", "HTTPClient", "S3Client"]
