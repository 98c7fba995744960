"""Relational storage adapters for the task tables."""
