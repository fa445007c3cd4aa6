"""
Entry point for running DotnetKit CLI as a module.

Usage: python -m dotnetkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
