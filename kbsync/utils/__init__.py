"""Utility modules for the KB revision sync engine."""
