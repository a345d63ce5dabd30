"""Configuration module exports."""

from .profiles import load_profile, list_profiles
from .paths import resolve_config_path, get_default_config_path
from .logging import init, parse_log_level, TRACE

__all__ = [
    "load_profile",
    "list_profiles",
    "resolve_config_path",
    "get_default_config_path",
    "init",
    "parse_log_level",
    "TRACE",
]
