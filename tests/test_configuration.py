"""Tests for configuration loading and editing."""

import os
import stat
import sys

import pytest
import yaml

from prefixload.config.settings import (
    DEFAULT_PART_SIZE,
    MIN_PART_SIZE,
    CredentialsConfig,
    PrefixloadConfig,
)
from prefixload.errors import ConfigurationError


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture
def config_data():
    return {
        "endpoint": "https://s3.example.com",
        "bucket": "backups",
        "part_size": 8 * 1024 * 1024,
        "local_directory_path": "/var/backups",
        "directory_struct": [
            {"prefix_file": "db_prod", "cloud_dir": "production"},
            {"prefix_file": "db_", "cloud_dir": "databases"},
        ],
    }


class TestPrefixloadConfig:

    def test_default_template_is_valid(self, tmp_path):
        path = tmp_path / "prefixload" / "config.yml"

        assert PrefixloadConfig.ensure_exists(path) is True
        assert PrefixloadConfig.ensure_exists(path) is False

        config = PrefixloadConfig.from_yaml(path)
        assert config.part_size == 15728640 == DEFAULT_PART_SIZE
        assert config.region == "us-east-1"
        assert [r.prefix_file for r in config.directory_struct] == [
            "prefix_1_backup", "prefix_2_backup", "prefix_3_backup"
        ]

    def test_rule_order_survives_round_trip(self, tmp_path, config_data):
        path = write_yaml(tmp_path / "config.yml", config_data)

        config = PrefixloadConfig.from_yaml(path)
        config.to_yaml(path)
        reloaded = PrefixloadConfig.from_yaml(path)

        assert [r.prefix_file for r in reloaded.directory_struct] == ["db_prod", "db_"]
        assert reloaded.force_path_style is False

    def test_save_keeps_backup(self, tmp_path, config_data):
        path = write_yaml(tmp_path / "config.yml", config_data)
        original = path.read_text(encoding="utf-8")

        config = PrefixloadConfig.from_yaml(path)
        config.update(bucket="other")
        config.to_yaml(path)

        assert (tmp_path / "config.yml.bak").read_text(encoding="utf-8") == original
        assert PrefixloadConfig.from_yaml(path).bucket == "other"

    @pytest.mark.parametrize("part_size", [0, -5, 1024 * 1024, MIN_PART_SIZE - 1])
    def test_part_size_below_minimum_rejected(self, tmp_path, config_data, part_size):
        config_data["part_size"] = part_size
        path = write_yaml(tmp_path / "config.yml", config_data)

        with pytest.raises(ConfigurationError):
            PrefixloadConfig.from_yaml(path)

    def test_minimum_part_size_accepted(self, tmp_path, config_data):
        config_data["part_size"] = MIN_PART_SIZE
        path = write_yaml(tmp_path / "config.yml", config_data)

        assert PrefixloadConfig.from_yaml(path).part_size == 5 * 1024 * 1024

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            PrefixloadConfig.from_yaml(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("endpoint: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            PrefixloadConfig.from_yaml(path)

    def test_missing_required_field(self, tmp_path, config_data):
        del config_data["bucket"]
        path = write_yaml(tmp_path / "config.yml", config_data)

        with pytest.raises(ConfigurationError):
            PrefixloadConfig.from_yaml(path)

    def test_update_ignores_none_and_validates(self, config_data):
        config = PrefixloadConfig(**config_data)

        changed = config.update(endpoint=None, region="eu-central-1", force_path_style=True)

        assert changed == ["region", "force_path_style"]
        assert config.endpoint == "https://s3.example.com"
        with pytest.raises(ConfigurationError):
            config.update(part_size=0)

    def test_add_and_remove_rules(self, config_data):
        config = PrefixloadConfig(**config_data)

        assert config.add_rule("logs_", "logs") is True
        assert config.add_rule("logs_", "elsewhere") is False
        assert [r.prefix_file for r in config.directory_struct][-1] == "logs_"

        assert config.remove_rule("db_prod") is True
        assert config.remove_rule("db_prod") is False
        assert [r.prefix_file for r in config.directory_struct] == ["db_", "logs_"]

    def test_empty_prefix_rejected(self, config_data):
        config = PrefixloadConfig(**config_data)

        with pytest.raises(ConfigurationError):
            config.add_rule("", "anywhere")

    def test_local_directory_expands_user(self, config_data):
        config_data["local_directory_path"] = "~/backups"

        assert "~" not in str(PrefixloadConfig(**config_data).local_directory)


class TestCredentialsConfig:

    def test_missing_file_gives_empty_credentials(self, tmp_path):
        creds = CredentialsConfig.from_yaml(tmp_path / "credentials.yml")

        assert creds.access_key is None
        assert not creds.has_keys

    def test_round_trip(self, tmp_path):
        path = tmp_path / "credentials.yml"

        CredentialsConfig(access_key="AK", secret_key="SK").to_yaml(path)
        creds = CredentialsConfig.from_yaml(path)

        assert (creds.access_key, creds.secret_key) == ("AK", "SK")
        assert creds.has_keys

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_private(self, tmp_path):
        path = tmp_path / "credentials.yml"

        CredentialsConfig(access_key="AK", secret_key="SK").to_yaml(path)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "ENV_AK")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "ENV_SK")
        monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)

        creds = CredentialsConfig.from_env()

        assert (creds.access_key, creds.secret_key, creds.session_token) == ("ENV_AK", "ENV_SK", None)

    def test_file_values_take_precedence(self):
        from_file = CredentialsConfig(access_key="FILE_AK")
        from_env = CredentialsConfig(access_key="ENV_AK", secret_key="ENV_SK")

        merged = from_file.merged_with(from_env)

        assert (merged.access_key, merged.secret_key) == ("FILE_AK", "ENV_SK")
