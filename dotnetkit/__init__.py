"""
DotnetKit - bootstrap the .NET SDK on build machines.

Resolves the host platform, downloads the official dotnet-install script,
and runs it under a supervising command runner.
"""

__version__ = "0.1.0"
