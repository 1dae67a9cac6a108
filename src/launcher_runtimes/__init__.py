"""Managed Java runtime installations for the game launcher."""

__version__ = "0.1.0"
