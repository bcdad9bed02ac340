"""Bidirectional sync between a local CSV file and GitHub issues."""

__version__ = "0.3.0"
