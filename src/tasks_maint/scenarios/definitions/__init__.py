"""Scenario definitions available to the registry."""
