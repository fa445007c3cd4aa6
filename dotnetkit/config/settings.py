"""
Install settings for DotnetKit.

Settings come from the ``dotnet:`` section of a YAML file (``dotnetkit.yaml``
by default) and fall back to defaults for anything not given:

    dotnet:
      install_script_url: https://dot.net/v1
      channel: LTS
      version: 8.0.100        # optional, omit for the channel's latest
      install_dir: .dotnet    # relative to the YAML file

Only this section is read; the rest of the file belongs to other tools.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from dotnetkit.core.exceptions import SettingsError
from dotnetkit.sdk.installer import InstallPlan

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "dotnetkit.yaml"
DEFAULT_INSTALL_SCRIPT_URL = "https://dot.net/v1"
DEFAULT_CHANNEL = "LTS"
DEFAULT_INSTALL_DIR = ".dotnet"

_KNOWN_KEYS = {"install_script_url", "channel", "version", "install_dir"}


@dataclass(frozen=True)
class InstallSettings:
    """Configured defaults for an SDK installation."""

    install_script_url: str = DEFAULT_INSTALL_SCRIPT_URL
    channel: str = DEFAULT_CHANNEL
    version: Optional[str] = None
    install_directory: Path = Path(DEFAULT_INSTALL_DIR)

    def with_overrides(
        self,
        channel: Optional[str] = None,
        install_directory: Optional[Union[str, Path]] = None,
    ) -> "InstallSettings":
        """Return a copy with command-line overrides applied."""
        changes: Dict[str, Any] = {}
        if channel:
            changes["channel"] = channel
        if install_directory:
            changes["install_directory"] = Path(install_directory)
        return replace(self, **changes) if changes else self

    def to_plan(self, requested_version: Optional[str] = None) -> InstallPlan:
        """
        Build the plan for one installation.

        Args:
            requested_version: Version asked for by the caller; wins over the
                configured version when given

        Returns:
            InstallPlan ready for install_sdk()
        """
        version = requested_version or self.version or None
        return InstallPlan(
            install_script_url=self.install_script_url,
            channel=self.channel,
            version=version,
            install_directory=self.install_directory,
        )


def load_settings(
    config_file: Union[str, Path], required: bool = False
) -> InstallSettings:
    """
    Load install settings from a YAML file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        InstallSettings (defaults if the file or section is missing)

    Raises:
        SettingsError: If the file is required but missing, is not valid YAML,
            the dotnet section is not a mapping, or channel/version is not
            a string

    Example:
        >>> settings = load_settings(Path("dotnetkit.yaml"))
        >>> plan = settings.to_plan("8.0.100")
    """
    config_file = Path(config_file)
    base_dir = config_file.resolve().parent

    if not config_file.exists():
        if required:
            raise SettingsError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return InstallSettings(install_directory=base_dir / DEFAULT_INSTALL_DIR)

    logger.debug(f"Loading settings from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise SettingsError(f"Expected a mapping at the top of {config_file}")

    section = config.get("dotnet") or {}
    if not isinstance(section, dict):
        raise SettingsError(f"'dotnet' section in {config_file} must be a mapping")

    return _settings_from_section(section, base_dir)


def _settings_from_section(section: Dict[str, Any], base_dir: Path) -> InstallSettings:
    for key in sorted(set(section) - _KNOWN_KEYS):
        logger.debug(f"Ignoring unknown dotnet setting: {key}")

    install_dir = Path(str(section.get("install_dir") or DEFAULT_INSTALL_DIR))
    if not install_dir.is_absolute():
        install_dir = base_dir / install_dir

    return InstallSettings(
        install_script_url=str(
            section.get("install_script_url") or DEFAULT_INSTALL_SCRIPT_URL
        ),
        channel=_text_setting(section, "channel") or DEFAULT_CHANNEL,
        version=_text_setting(section, "version"),
        install_directory=install_dir,
    )


def _text_setting(section: Dict[str, Any], key: str) -> Optional[str]:
    """
    Read a setting that must be written as text.

    YAML turns unquoted values like 8.0 or 9.10 into numbers, which loses
    digits (9.10 becomes 9.1), so anything but a string is rejected.
    """
    value = section.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise SettingsError(
            f"dotnet.{key} must be a string, got {value!r}; "
            f'quote it in the YAML file (e.g. {key}: "{value}")'
        )
    return value
