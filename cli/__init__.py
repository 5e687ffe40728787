"""
Preflight CLI Package

Command-line interface for the startup bootstrap.
Runs the resolvers once and maps their outcomes to an exit status.

Usage:
    preflight bootstrap --json
    preflight resolve-binary
    preflight serve --port 8000
"""

__version__ = "0.1.0"
__author__ = "Preflight Team"

from cli.main import app

__all__ = ["app", "__version__"]
