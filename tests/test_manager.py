"""Tests for FileSystemManager dispatch, credential matching and client construction."""

from __future__ import annotations

import json
import os

import pytest
from helpers import InMemoryClient

from model_localizer import _manager
from model_localizer._config import DownloadConfig, S3Credential
from model_localizer._errors import BackendDisabled, ConfigError, NoMatchingCredential, UnsupportedScheme
from model_localizer._manager import FileSystemManager, get_file_system, register_client
from model_localizer.clients import AzureClient, GCSClient, HTTPClient, S3Client

CREDENTIALS = {
    "s3": {
        "s3://bucket": {"key_id": "bucket-key", "secret_key": "s"},
        "s3://bucket/models": {"key_id": "models-key", "secret_key": "s"},
    },
}


@pytest.fixture()
def memory_s3(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(_manager._CLIENT_FACTORIES, "s3", InMemoryClient)


class TestRegisterClient:
    def test_builtins_registered(self) -> None:
        FileSystemManager()
        assert _manager._CLIENT_FACTORIES["s3"] is S3Client
        assert _manager._CLIENT_FACTORIES["gs"] is GCSClient
        assert _manager._CLIENT_FACTORIES["as"] is AzureClient

    def test_register_replaces_factory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(_manager, "_CLIENT_FACTORIES", dict(_manager._CLIENT_FACTORIES))
        register_client("s3", InMemoryClient)
        client = FileSystemManager().get_file_system("s3://bucket/x", CREDENTIALS)
        assert isinstance(client, InMemoryClient)

    def test_unknown_family(self) -> None:
        with pytest.raises(ValueError, match="Unknown backend family"):
            register_client("ftp", InMemoryClient)


class TestDispatch:
    def test_unsupported_scheme(self) -> None:
        with pytest.raises(UnsupportedScheme):
            FileSystemManager().get_file_system("ftp://host/model", CREDENTIALS)

    def test_local_path_unsupported(self) -> None:
        with pytest.raises(UnsupportedScheme):
            FileSystemManager().get_file_system("/models/resnet", CREDENTIALS)

    def test_disabled_family(self) -> None:
        manager = FileSystemManager(enabled=["s3"])
        with pytest.raises(BackendDisabled) as exc_info:
            manager.get_file_system("gs://bucket/model", {"gs": {"gs://bucket": "/sa.json"}})
        assert exc_info.value.backend == "gs"

    def test_enabled_default(self) -> None:
        assert FileSystemManager().enabled == frozenset({"s3", "gs", "as"})

    @pytest.mark.parametrize("url", ["http://example.com/m.onnx", "https://example.com/m.onnx?sig=1"])
    def test_http_needs_no_credentials(self, url: str) -> None:
        config = DownloadConfig(proxy="http://proxy:1")
        client = FileSystemManager().get_file_system(url, None, config)
        assert isinstance(client, HTTPClient)
        assert client.name == "http"

    def test_http_available_when_clouds_disabled(self) -> None:
        client = FileSystemManager(enabled=()).get_file_system("https://example.com/m.onnx")
        assert isinstance(client, HTTPClient)


class TestCredentialMatching:
    def test_longest_prefix_credential(self, memory_s3: None) -> None:
        client = FileSystemManager().get_file_system("s3://bucket/models/resnet", CREDENTIALS)
        assert isinstance(client, InMemoryClient)
        assert client.credential == S3Credential(key_id="models-key", secret_key="s")
        assert client.checked == ["s3://bucket/models/resnet"]

    def test_shorter_prefix_credential(self, memory_s3: None) -> None:
        client = FileSystemManager().get_file_system("s3://bucket/datasets", CREDENTIALS)
        assert client.credential.key_id == "bucket-key"  # type: ignore[attr-defined]

    def test_no_matching_credential(self, memory_s3: None) -> None:
        with pytest.raises(NoMatchingCredential):
            FileSystemManager().get_file_system("s3://other/models", CREDENTIALS)

    def test_no_credentials_at_all(self, memory_s3: None) -> None:
        with pytest.raises(NoMatchingCredential):
            FileSystemManager().get_file_system("s3://bucket/models")

    def test_config_handed_to_client(self, memory_s3: None) -> None:
        config = DownloadConfig(filter=["Expires"])
        client = FileSystemManager().get_file_system("s3://bucket/models", CREDENTIALS, config)
        assert client.config is config  # type: ignore[attr-defined]

    def test_new_client_each_call(self, memory_s3: None) -> None:
        manager = FileSystemManager()
        first = manager.get_file_system("s3://bucket/models", CREDENTIALS)
        second = manager.get_file_system("s3://bucket/models", CREDENTIALS)
        assert first is not second

    def test_each_call_builds_its_own_cache(self, memory_s3: None) -> None:
        manager = FileSystemManager()
        first = manager.get_file_system("s3://bucket/models", CREDENTIALS)
        first_cache = manager.cache
        manager.get_file_system("s3://other/m", {"s3": {"s3://other": {"key_id": "o", "secret_key": "s"}}})

        assert manager.cache is not first_cache
        assert [entry.name for entry in first_cache.entries("s3")] == ["s3://bucket/models", "s3://bucket"]
        assert first_cache.entries("s3")[0].client is first
        assert [entry.name for entry in manager.cache.entries("s3")] == ["s3://other"]

    def test_reloads_credential_file_every_call(self, memory_s3: None, tmp_path: os.PathLike) -> None:
        path = os.path.join(tmp_path, "creds.json")
        with open(path, "w") as fh:
            json.dump({"s3": {"s3://bucket": {"key_id": "v1", "secret_key": "s"}}}, fh)
        manager = FileSystemManager()
        assert manager.get_file_system("s3://bucket/m", path).credential.key_id == "v1"  # type: ignore[attr-defined]

        with open(path, "w") as fh:
            json.dump({"s3": {"s3://bucket": {"key_id": "v2", "secret_key": "s"}}}, fh)
        assert manager.get_file_system("s3://bucket/m", path).credential.key_id == "v2"  # type: ignore[attr-defined]

    def test_missing_credential_file(self, memory_s3: None, tmp_path: os.PathLike) -> None:
        with pytest.raises(ConfigError):
            FileSystemManager().get_file_system("s3://bucket/m", os.path.join(tmp_path, "missing.json"))

    def test_module_shortcut(self, memory_s3: None) -> None:
        client = get_file_system("s3://bucket/models", CREDENTIALS)
        assert isinstance(client, InMemoryClient)
