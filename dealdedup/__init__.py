"""Duplicate detection and resolution engine for financial deal news."""

__version__ = "0.1.0"
