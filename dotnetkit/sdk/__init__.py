"""
.NET SDK installation for DotnetKit.
"""

from .installer import (
    InstallPlan,
    build_install_arguments,
    build_shell_arguments,
    install_sdk,
    dotnet_executable,
    list_installed_sdks,
    ensure_sdk,
)

__all__ = [
    "InstallPlan",
    "build_install_arguments",
    "build_shell_arguments",
    "install_sdk",
    "dotnet_executable",
    "list_installed_sdks",
    "ensure_sdk",
]
