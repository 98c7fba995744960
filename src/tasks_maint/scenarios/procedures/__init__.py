"""Procedures that scenarios compose into steps."""
