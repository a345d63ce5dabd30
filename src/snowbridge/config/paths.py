"""Path resolution for snowbridge configuration files."""

import os
from pathlib import Path
from typing import Optional, Union

from importlib.resources import files as importlib_files


def _get_config_directory() -> Path:
    """
    Get the configuration directory for snowbridge.

    Priority order:
    1. SNOWBRIDGE_CONFIG_DIR environment variable (override)
    2. ~/.snowbridge/ (dotfile directory in user home)

    Returns:
        Path: Configuration directory path
    """
    env_config_dir = os.getenv("SNOWBRIDGE_CONFIG_DIR")
    if env_config_dir:
        return Path(env_config_dir)

    return Path.home() / ".snowbridge"


def _get_example_files_dir() -> Path:
    """Get the directory containing example configuration files from the installed package"""
    package_data = importlib_files("snowbridge") / "_data"
    return Path(str(package_data))


def get_default_config_path() -> Path:
    """
    Get the path to connections.toml configuration file.

    Returns:
        Path: The path to connections.toml

    Raises:
        FileNotFoundError: If connections.toml doesn't exist in the config directory
    """
    config_path = _get_config_directory() / "connections.toml"

    if not config_path.exists():
        example_file = _get_example_files_dir() / "connections.toml.example"

        error_msg = (
            f"Configuration file 'connections.toml' not found at: {config_path}\n\n"
            f"To create it:\n"
            f"1. Copy example: {example_file}\n"
            f"2. To: {config_path}\n"
            f"3. Edit with your connection details\n\n"
            f"Configuration directory priority:\n"
            f"  1. SNOWBRIDGE_CONFIG_DIR environment variable (if set)\n"
            f"  2. ~/.snowbridge/ (dotfile directory)\n"
        )

        raise FileNotFoundError(error_msg)

    return config_path


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the path to connections.toml file using explicit path or default config path"""
    if path is None:
        return get_default_config_path()

    return Path(path)
