"""Unit tests for snowbridge configuration module."""

import pytest
from pathlib import Path

from snowbridge.config import load_profile, list_profiles, resolve_config_path, get_default_config_path


class TestLoadProfile:
    """Tests for load_profile function."""

    @pytest.fixture
    def temp_config_file(self, tmp_path):
        """Create a temporary TOML config file for testing."""
        config_content = """
[default]
account = "test-account.region"
username = "test-user"
password = "pw"
warehouse = "TEST_WH"
database = "TEST_DB"
schema = "PUBLIC"

[keypair]
account = "kp-account.region"
username = "svc-user"
authenticator = "SNOWFLAKE_JWT"
private_key_file = "~/.ssh/key.p8"
warehouse = "KP_WH"
database = "KP_DB"
schema = "KP_SCHEMA"
"""
        config_path = tmp_path / "connections.toml"
        config_path.write_text(config_content)
        return config_path

    def test_load_default_profile(self, temp_config_file):
        """Test loading the default profile."""
        config = load_profile("default", path=temp_config_file)

        assert config["account"] == "test-account.region"
        assert config["username"] == "test-user"
        assert config["warehouse"] == "TEST_WH"

    def test_load_keypair_profile(self, temp_config_file):
        """Test loading a keypair profile."""
        config = load_profile("keypair", path=temp_config_file)

        assert config["authenticator"] == "SNOWFLAKE_JWT"
        assert config["private_key_file"] == "~/.ssh/key.p8"

    def test_missing_profile_raises_error(self, temp_config_file):
        """Test that requesting a non-existent profile raises KeyError."""
        with pytest.raises(KeyError) as exc_info:
            load_profile("nonexistent", path=temp_config_file)

        assert "Profile 'nonexistent' not found" in str(exc_info.value)
        assert "Available profiles: default, keypair" in str(exc_info.value)

    def test_missing_file_raises_error(self, tmp_path):
        """Test that a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError) as exc_info:
            load_profile("default", path=tmp_path / "does_not_exist.toml")

        assert "not found" in str(exc_info.value).lower()


class TestListProfiles:
    """Tests for list_profiles function."""

    def test_list_all_profiles(self, tmp_path):
        """Test listing all available profiles."""
        config_path = tmp_path / "connections.toml"
        config_path.write_text('[default]\naccount = "a"\n\n[dev]\naccount = "b"\n')

        assert list_profiles(path=config_path) == ["default", "dev"]

    def test_list_profiles_missing_file(self, tmp_path):
        """Test listing profiles when file doesn't exist returns empty list."""
        assert list_profiles(path=tmp_path / "does_not_exist.toml") == []

    def test_list_profiles_without_config_dir(self, tmp_path, monkeypatch):
        """Test that a missing default config yields no profiles."""
        monkeypatch.setenv("SNOWBRIDGE_CONFIG_DIR", str(tmp_path / "empty"))

        assert list_profiles() == []


class TestResolveConfigPath:
    """Tests for path resolution functions."""

    def test_explicit_path_takes_precedence(self, tmp_path):
        """Test that an explicit path is used when provided."""
        explicit_path = tmp_path / "my_config.toml"

        assert resolve_config_path(path=explicit_path) == explicit_path

    def test_string_path_converted_to_path_object(self):
        """Test that string paths are converted to Path objects."""
        resolved = resolve_config_path(path="some/path/config.toml")

        assert isinstance(resolved, Path)
        assert resolved.name == "config.toml"

    def test_env_override(self, tmp_path, monkeypatch):
        """Test that SNOWBRIDGE_CONFIG_DIR locates connections.toml."""
        (tmp_path / "connections.toml").write_text('[default]\naccount = "a"\n')
        monkeypatch.setenv("SNOWBRIDGE_CONFIG_DIR", str(tmp_path))

        assert get_default_config_path() == tmp_path / "connections.toml"

    def test_missing_default_config(self, tmp_path, monkeypatch):
        """Test that the error explains where to put connections.toml."""
        monkeypatch.setenv("SNOWBRIDGE_CONFIG_DIR", str(tmp_path))

        with pytest.raises(FileNotFoundError, match="SNOWBRIDGE_CONFIG_DIR"):
            get_default_config_path()
