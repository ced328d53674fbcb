"""
Tests for the config module.

Covers: loading from file and environment, endpoint resolution, and
persisting the consumer key.
"""

import logging
from unittest.mock import patch

import ovh.client
import pytest
from dotenv import dotenv_values

from ovhctl.config import (
    Configuration,
    load_configuration,
    persist_consumer_key,
    resolve_endpoint,
)
from ovhctl.exceptions import ConfigurationError
from ovhctl.signer import Credentials


# ========= resolve_endpoint ============


class TestResolveEndpoint:
    """Tests for endpoint aliases and URLs."""

    @pytest.mark.parametrize("alias", ["ovh-eu", "ovh-ca", "ovh-us"])
    def test_alias(self, alias):
        assert resolve_endpoint(alias) == ovh.client.ENDPOINTS[alias]

    def test_url_trailing_slash_stripped(self):
        assert resolve_endpoint("https://ca.api.ovh.com/1.0/") == "https://ca.api.ovh.com/1.0"

    @pytest.mark.parametrize("endpoint", ["ovh-mars", "eu.api.ovh.com", "ftp://eu.api.ovh.com"])
    def test_unknown(self, endpoint):
        with pytest.raises(ConfigurationError):
            resolve_endpoint(endpoint)


# ========= load_configuration ============


class TestLoadConfiguration:
    """Tests for loading the credential file."""

    def test_load_valid_file(self, tmp_env_file):
        config = load_configuration(tmp_env_file)

        assert isinstance(config, Configuration)
        assert config.endpoint == ovh.client.ENDPOINTS["ovh-eu"]
        assert config.credentials == Credentials(
            "test_app_key_1234", "test_secret", "test_consumer_key",
        )
        assert config.path == tmp_env_file

    def test_default_path(self, tmp_env_file):
        with patch("ovhctl.config.ENV_FILE", tmp_env_file):
            config = load_configuration()

        assert config.path == tmp_env_file
        assert config.credentials.application_key == "test_app_key_1234"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_configuration(tmp_path / "nonexistent.env")

    def test_default_missing_file_without_env(self, tmp_path):
        with patch("ovhctl.config.ENV_FILE", tmp_path / "nonexistent.env"):
            with pytest.raises(ConfigurationError, match="OVH_APPLICATION_KEY"):
                load_configuration()

    def test_missing_secret(self, tmp_path):
        env_file = tmp_path / "credentials.env"
        env_file.write_text("OVH_APPLICATION_KEY=key\n")

        with pytest.raises(ConfigurationError, match="OVH_APPLICATION_SECRET"):
            load_configuration(env_file)

    def test_consumer_key_optional(self, tmp_path):
        env_file = tmp_path / "credentials.env"
        env_file.write_text(
            "OVH_APPLICATION_KEY=key\n"
            "OVH_APPLICATION_SECRET=secret\n"
        )

        config = load_configuration(env_file)

        assert config.credentials.consumer_key is None
        assert config.endpoint == "https://eu.api.ovh.com/1.0"

    def test_empty_value_is_missing(self, tmp_path):
        env_file = tmp_path / "credentials.env"
        env_file.write_text(
            "OVH_APPLICATION_KEY=\n"
            "OVH_APPLICATION_SECRET=secret\n"
        )

        with pytest.raises(ConfigurationError):
            load_configuration(env_file)

    def test_load_with_comments(self, tmp_path):
        env_file = tmp_path / "credentials.env"
        env_file.write_text(
            "# Application created on https://eu.api.ovh.com/createApp/\n"
            "OVH_APPLICATION_KEY=key\n"
            "OVH_APPLICATION_SECRET=secret\n"
            "# Written by 'ovhctl confirm'\n"
            "OVH_CONSUMER_KEY=consumer\n"
        )

        config = load_configuration(env_file)

        assert config.credentials.consumer_key == "consumer"

    def test_undecodable_file(self, tmp_path):
        env_file = tmp_path / "credentials.env"
        env_file.write_bytes(b"OVH_APPLICATION_KEY=k\xff\xfe\nOVH_APPLICATION_SECRET=secret\n")

        with pytest.raises(ConfigurationError, match="could not read configuration file"):
            load_configuration(env_file)

    def test_unknown_endpoint(self, tmp_env_file):
        tmp_env_file.write_text(
            "OVH_ENDPOINT=nowhere\n"
            "OVH_APPLICATION_KEY=key\n"
            "OVH_APPLICATION_SECRET=secret\n"
        )

        with pytest.raises(ConfigurationError, match="unknown endpoint"):
            load_configuration(tmp_env_file)


# ========= Environment variable override ============


class TestEnvVarOverride:
    """Tests for per-key env var override of file values."""

    def test_all_from_env_vars_no_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OVH_ENDPOINT", "ovh-ca")
        monkeypatch.setenv("OVH_APPLICATION_KEY", "env_key")
        monkeypatch.setenv("OVH_APPLICATION_SECRET", "env_secret")

        with patch("ovhctl.config.ENV_FILE", tmp_path / "nonexistent.env"):
            config = load_configuration()

        assert config.endpoint == ovh.client.ENDPOINTS["ovh-ca"]
        assert config.credentials == Credentials("env_key", "env_secret", None)

    def test_env_var_overrides_single_file_key(self, tmp_env_file, monkeypatch):
        monkeypatch.setenv("OVH_CONSUMER_KEY", "env_consumer")

        config = load_configuration(tmp_env_file)

        assert config.credentials.consumer_key == "env_consumer"
        assert config.credentials.application_key == "test_app_key_1234"


# ========= persist_consumer_key ============


class TestPersistConsumerKey:
    """Tests for writing the consumer key into the credential file."""

    def test_replaces_consumer_key_only(self, tmp_env_file):
        config = load_configuration(tmp_env_file)
        before = tmp_env_file.read_text().splitlines()

        updated = persist_consumer_key(config, "new_consumer_key")

        after = tmp_env_file.read_text().splitlines()
        values = dotenv_values(tmp_env_file)
        assert values["OVH_CONSUMER_KEY"] == "new_consumer_key"
        assert values["OVH_APPLICATION_KEY"] == "test_app_key_1234"
        assert values["OVH_APPLICATION_SECRET"] == "test_secret"
        assert [line for line in before if "CONSUMER" not in line] == \
            [line for line in after if "CONSUMER" not in line]
        assert updated.credentials == config.credentials._replace(consumer_key="new_consumer_key")

    def test_adds_consumer_key(self, tmp_path):
        env_file = tmp_path / "credentials.env"
        env_file.write_text(
            "# keep me\n"
            "OVH_APPLICATION_KEY=key\n"
            "OVH_APPLICATION_SECRET=secret\n"
        )
        config = load_configuration(env_file)

        persist_consumer_key(config, "abc")

        assert env_file.read_text().startswith(
            "# keep me\nOVH_APPLICATION_KEY=key\nOVH_APPLICATION_SECRET=secret\n"
        )
        assert load_configuration(env_file).credentials.consumer_key == "abc"

    def test_creates_missing_file(self, tmp_path):
        env_file = tmp_path / "ovhctl" / "credentials.env"
        config = Configuration(
            endpoint="https://eu.api.ovh.com/1.0",
            credentials=Credentials("key", "secret"),
            path=env_file,
        )

        persist_consumer_key(config, "abc")

        assert dotenv_values(env_file) == {"OVH_CONSUMER_KEY": "abc"}
        assert env_file.stat().st_mode & 0o077 == 0

    def test_warns_when_environment_overrides(self, tmp_env_file, monkeypatch, caplog):
        monkeypatch.setenv("OVH_CONSUMER_KEY", "env_consumer")
        config = load_configuration(tmp_env_file)

        with caplog.at_level(logging.WARNING, logger="ovhctl.config"):
            persist_consumer_key(config, "abc")

        assert dotenv_values(tmp_env_file)["OVH_CONSUMER_KEY"] == "abc"
        assert "OVH_CONSUMER_KEY is set in the environment" in caplog.text

    def test_no_warning_without_environment_key(self, tmp_env_file, caplog):
        config = load_configuration(tmp_env_file)

        with caplog.at_level(logging.WARNING, logger="ovhctl.config"):
            persist_consumer_key(config, "abc")

        assert "overrides" not in caplog.text
