"""Scenario composition engine, procedures and scenario definitions."""
