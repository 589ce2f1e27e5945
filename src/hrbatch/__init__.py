"""Batch resume ranking and interview lifecycle tracking."""

__version__ = "0.1.0"
