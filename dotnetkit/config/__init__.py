"""
Configuration for DotnetKit.
"""

from .settings import (
    InstallSettings,
    load_settings,
    DEFAULT_CONFIG_FILE,
)

__all__ = ["InstallSettings", "load_settings", "DEFAULT_CONFIG_FILE"]
