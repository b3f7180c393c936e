"""Data Alchemist: validation and rule-consistency engine for client/worker/task data."""

__version__ = "0.1.0"
