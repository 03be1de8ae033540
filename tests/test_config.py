# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for resume_store/config.py."""

import dataclasses
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from resume_store.config import (
    ConfigurationError,
    StorageConfig,
    _EnvVar,
    _make_loader,
    _raw_resolve,
    get_config_path,
)
from resume_store.logging import SecretFilter
from tests.vectors import ACCESS_KEY_ID, SECRET_ACCESS_KEY


FULL_ENV = {
    "AWS_S3_BUCKET_NAME": "resumes-prod",
    "AWS_REGION": "eu-west-1",
    "AWS_ACCESS_KEY_ID": ACCESS_KEY_ID,
    "AWS_SECRET_ACCESS_KEY": SECRET_ACCESS_KEY,
}


class TestRawResolve:
    """Tests for _raw_resolve."""

    def test_literal_string(self) -> None:
        assert _raw_resolve("hello") == "hello"

    def test_none(self) -> None:
        assert _raw_resolve(None) is None

    def test_int_stringified(self) -> None:
        assert _raw_resolve(42) == "42"

    def test_envvar_set(self) -> None:
        with patch.dict("os.environ", {"MY_VAR": "val"}):
            assert _raw_resolve(_EnvVar("MY_VAR")) == "val"

    def test_envvar_unset(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert _raw_resolve(_EnvVar("MISSING")) is None

    def test_envvar_empty(self) -> None:
        """Empty env vars count as unset."""
        with patch.dict("os.environ", {"EMPTY": ""}):
            assert _raw_resolve(_EnvVar("EMPTY")) is None


class TestStorageConfig:
    """Tests for StorageConfig validation."""

    def test_valid(self) -> None:
        config = StorageConfig(
            bucket="b",
            region="us-east-1",
            access_key_id="id",
            secret_access_key="secret",
        )
        assert config.host == "b.s3.us-east-1.amazonaws.com"
        assert config.timeout_seconds == 30.0

    @pytest.mark.parametrize(
        "missing",
        ["bucket", "region", "access_key_id", "secret_access_key"],
    )
    def test_missing_field(self, missing: str) -> None:
        values = {
            "bucket": "b",
            "region": "r",
            "access_key_id": "id",
            "secret_access_key": "secret",
        }
        values[missing] = ""
        with pytest.raises(ConfigurationError, match=missing):
            StorageConfig(**values)

    def test_all_missing_fields_listed(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            StorageConfig(
                bucket="", region="", access_key_id="", secret_access_key=""
            )
        message = str(exc_info.value)
        for name in ("bucket", "region", "access_key_id", "secret_access_key"):
            assert name in message

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout"):
            StorageConfig(
                bucket="b",
                region="r",
                access_key_id="id",
                secret_access_key="secret",
                timeout_seconds=0,
            )

    def test_immutable(self, storage_config: StorageConfig) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            storage_config.bucket = "other"  # type: ignore[misc]

    def test_secret_not_in_repr(self, storage_config: StorageConfig) -> None:
        assert SECRET_ACCESS_KEY not in repr(storage_config)

    def test_secret_redacted_from_logs(
        self, storage_config: StorageConfig
    ) -> None:
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="secret=%s",
            args=(storage_config.secret_access_key,),
            exc_info=None,
        )
        SecretFilter().filter(record)
        assert record.getMessage() == "secret=[REDACTED]"

    def test_endpoint_override(self) -> None:
        config = StorageConfig(
            bucket="b",
            region="auto",
            access_key_id="id",
            secret_access_key="secret",
            endpoint_host="b.account.r2.cloudflarestorage.com",
        )
        assert config.host == "b.account.r2.cloudflarestorage.com"


class TestFromEnv:
    """Tests for StorageConfig.from_env."""

    def test_reads_all_fields(self) -> None:
        config = StorageConfig.from_env(
            {**FULL_ENV, "RESUME_STORE_TIMEOUT": "12.5"}
        )

        assert config.bucket == "resumes-prod"
        assert config.region == "eu-west-1"
        assert config.access_key_id == ACCESS_KEY_ID
        assert config.secret_access_key == SECRET_ACCESS_KEY
        assert config.timeout_seconds == 12.5
        assert config.endpoint_host is None

    @pytest.mark.parametrize("var", sorted(FULL_ENV))
    def test_missing_variable(self, var: str) -> None:
        env = {k: v for k, v in FULL_ENV.items() if k != var}
        with pytest.raises(ConfigurationError, match="Missing storage"):
            StorageConfig.from_env(env)

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ConfigurationError, match="RESUME_STORE_TIMEOUT"):
            StorageConfig.from_env({**FULL_ENV, "RESUME_STORE_TIMEOUT": "x"})

    def test_process_environment_loads_dotenv(self) -> None:
        with (
            patch.dict("os.environ", FULL_ENV, clear=True),
            patch("resume_store.config.load_dotenv_once") as mock_load,
        ):
            config = StorageConfig.from_env()

        mock_load.assert_called_once()
        assert config.bucket == "resumes-prod"


class TestFromYaml:
    """Tests for StorageConfig.from_yaml."""

    def test_literal_values(self, tmp_path: Path) -> None:
        path = tmp_path / "resume-store.yaml"
        path.write_text(
            "storage:\n"
            "  bucket: resumes-prod\n"
            "  region: us-west-2\n"
            "  access_key_id: AKIDEXAMPLE\n"
            "  secret_access_key: s3cr3t\n"
            "  timeout: 45\n"
            "  endpoint: resumes-prod.storage.test\n"
        )

        config = StorageConfig.from_yaml(path)

        assert config.bucket == "resumes-prod"
        assert config.region == "us-west-2"
        assert config.access_key_id == "AKIDEXAMPLE"
        assert config.secret_access_key == "s3cr3t"
        assert config.timeout_seconds == 45.0
        assert config.endpoint_host == "resumes-prod.storage.test"

    def test_env_tags(self, tmp_path: Path) -> None:
        path = tmp_path / "resume-store.yaml"
        path.write_text(
            "storage:\n"
            "  bucket: !env AWS_S3_BUCKET_NAME\n"
            "  region: !env AWS_REGION\n"
            "  access_key_id: !env AWS_ACCESS_KEY_ID\n"
            "  secret_access_key: !env AWS_SECRET_ACCESS_KEY\n"
        )

        with patch.dict("os.environ", FULL_ENV):
            config = StorageConfig.from_yaml(path)

        assert config.bucket == "resumes-prod"
        assert config.secret_access_key == SECRET_ACCESS_KEY

    def test_unset_env_tag_is_missing(self, tmp_path: Path) -> None:
        path = tmp_path / "resume-store.yaml"
        path.write_text(
            "storage:\n"
            "  bucket: b\n"
            "  region: r\n"
            "  access_key_id: id\n"
            "  secret_access_key: !env RESUME_STORE_TEST_UNSET\n"
        )

        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ConfigurationError, match="secret_access_key"):
                StorageConfig.from_yaml(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            StorageConfig.from_yaml(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "resume-store.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="YAML mapping"):
            StorageConfig.from_yaml(path)

    def test_missing_storage_section(self, tmp_path: Path) -> None:
        path = tmp_path / "resume-store.yaml"
        path.write_text("other: 1\n")
        with pytest.raises(ConfigurationError, match="'storage'"):
            StorageConfig.from_yaml(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "resume-store.yaml"
        path.write_text("storage: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            StorageConfig.from_yaml(path)

    def test_default_path(self) -> None:
        with patch(
            "resume_store.config.get_config_path",
            return_value=Path("/nonexistent/resume-store.yaml"),
        ):
            with pytest.raises(ConfigurationError, match="/nonexistent"):
                StorageConfig.from_yaml()

    def test_env_loader_tag(self) -> None:
        import yaml

        raw = yaml.load("value: !env HOME\n", Loader=_make_loader())
        assert isinstance(raw["value"], _EnvVar)
        assert raw["value"].var_name == "HOME"


class TestPaths:
    def test_config_path_name(self) -> None:
        path = get_config_path()
        assert path.name == "resume-store.yaml"
        assert path.parent.name == "resume-store"
