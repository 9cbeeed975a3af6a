"""Revision tracking, polling and incremental changelogs for a remotely hosted KB."""

__version__ = "0.1.0"
