"""Fixtures for integration tests against a real Snowflake account.

Tests are skipped unless $SNOWBRIDGE_CONFIG_DIR/test_config.toml (or
~/.snowbridge/test_config.toml) names a profile:

    [test]
    profile = "dev"
"""

import sys
from typing import Dict, Any

# Use tomllib for Python 3.11+, fallback to tomli for older versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import pytest

from snowbridge import Client
from snowbridge.config.paths import _get_config_directory


def _load_test_config() -> Dict[str, Any]:
    """Load the [test] section of test_config.toml, empty when the file is missing"""
    test_config_path = _get_config_directory() / "test_config.toml"
    if not test_config_path.exists():
        return {}

    with open(test_config_path, "rb") as f:
        config = tomllib.load(f)

    return config.get("test", {})


_TEST_CONFIG = _load_test_config()


@pytest.fixture(scope="session")
def test_profile() -> str:
    """Profile to use for integration tests."""
    profile = _TEST_CONFIG.get("profile")
    if not profile:
        pytest.skip("Integration profile not configured in test_config.toml")
    return profile


@pytest.fixture(scope="class")
def live_client(test_profile):
    """One client and connection shared by the tests of a class."""
    client = Client()
    connection_id = client.connect_profile(test_profile)
    yield client, connection_id
    client.close()
