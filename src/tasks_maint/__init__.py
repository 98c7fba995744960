"""Maintenance tooling for background task records."""

__version__ = "0.4.0"
