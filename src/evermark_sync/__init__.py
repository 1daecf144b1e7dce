"""Evermark voting-state sync engine."""

__version__ = "0.1.0"
